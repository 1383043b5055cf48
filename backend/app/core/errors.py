"""
API error type and the common error factories.

Every failure leaves the API in the same shape:

    {"success": false, "error": {"code": "NOT_FOUND", "message": "Document not found"}}

Route handlers and services raise ApiError; the exception handlers in
app.main render it. Domain-specific factories (DocumentErrors,
CategoryErrors, ...) live next to their schemas and build on these.
"""

from __future__ import annotations

from fastapi import status


class ApiError(Exception):
    """An error that maps 1:1 onto an HTTP response."""

    def __init__(self, status_code: int, code: str, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {"success": False, "error": {"code": self.code, "message": self.message}}

    def __repr__(self) -> str:
        return f"ApiError({self.status_code}, {self.code!r}, {self.message!r})"


# ---------------------------------------------------------------------------
# Generic factories
# ---------------------------------------------------------------------------

def bad_request(message: str, code: str = "VALIDATION_ERROR") -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, code, message)


def not_found(resource: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, "NOT_FOUND", f"{resource} not found")


def forbidden(message: str = "Not authorized") -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, "FORBIDDEN", message)


def conflict(message: str, code: str = "CONFLICT") -> ApiError:
    return ApiError(status.HTTP_409_CONFLICT, code, message)


def internal(message: str, code: str = "INTERNAL_ERROR") -> ApiError:
    return ApiError(status.HTTP_500_INTERNAL_SERVER_ERROR, code, message)


# Status → code used when rendering a bare HTTPException (auth dependencies)
HTTP_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "UNAUTHORIZED",
    403: "FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    413: "FILE_TOO_LARGE",
    500: "INTERNAL_ERROR",
    503: "SERVICE_UNAVAILABLE",
}
