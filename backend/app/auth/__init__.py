from app.auth.token import TokenPayload, get_current_user, verify_token
from app.auth.rbac import can_modify, require_admin, require_role
from app.auth.dependencies import AdminUser, CurrentUser, DB

__all__ = [
    "TokenPayload", "get_current_user", "verify_token",
    "can_modify", "require_admin", "require_role",
    "AdminUser", "CurrentUser", "DB",
]
