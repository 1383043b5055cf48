"""
FastAPI Application — Entry Point

Course Portal API: semesters, subjects and their teachers, shared study
documents, Q&A, comments, teacher ratings, favorites and an activity feed.

Architecture:
  - All routes are versioned under /api/v1/
  - Authentication is a bearer JWT (HS256, claims user_id + role) verified
    per request; tokens are issued elsewhere
  - Collaborators (object storage, text extraction, search index, background
    dispatcher) are built once in lifespan and stored on app.state
  - Every 4xx/5xx answers {"success": false, "error": {"code", "message"}}

Middleware stack (innermost → outermost):
  1. CORS — restrict to configured origins
  2. Gzip — compress responses > 1 KB
  3. Request ID + logging — X-Request-ID on every response, one log line per request
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.api.v1.activities import router as activities_router
from app.api.v1.categories import router as categories_router
from app.api.v1.comments import router as comments_router
from app.api.v1.documents import router as documents_router
from app.api.v1.favorites import router as favorites_router
from app.api.v1.qa import router as qa_router
from app.api.v1.search import router as search_router
from app.api.v1.semesters import router as semesters_router
from app.api.v1.subjects import router as subjects_router
from app.api.v1.teacher_ratings import router as teacher_ratings_router
from app.api.v1.users import router as users_router
from app.core.config import settings
from app.core.errors import HTTP_ERROR_CODES, ApiError
from app.db.session import check_db_health, session_scope
from app.processing.extractor import TikaTextExtractor
from app.search.factory import create_search_index
from app.services.activity import ActivityService
from app.services.categories import seed_unassigned_categories
from app.storage.s3 import S3StorageService
from app.workers.background import BackgroundDispatcher
from app.workers.publisher import EventPublisher

logger = logging.getLogger(__name__)

logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)


def _error(status_code: int, code: str, message: str, headers: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": {"code": code, "message": message}},
        headers=headers,
    )


# ---------------------------------------------------------------------------
# Application lifespan — startup / shutdown hooks
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup: check the database, build the collaborators, make sure the
    bucket and search indexes exist, seed the Unassigned categories.
    Shutdown: drop unfinished background work, close clients and the pool.
    """
    logger.info("Starting Course Portal API | env=%s", settings.app_env)

    db_health = await check_db_health()
    if db_health["status"] != "ok":
        logger.critical("Database health check failed at startup: %s", db_health)
        raise RuntimeError(f"DB unavailable: {db_health}")
    logger.info("Database: connected")

    storage    = S3StorageService()
    extractor  = TikaTextExtractor()
    search     = create_search_index()
    dispatcher = BackgroundDispatcher()
    activity   = ActivityService()

    app.state.storage    = storage
    app.state.extractor  = extractor
    app.state.search     = search
    app.state.dispatcher = dispatcher
    app.state.publisher  = EventPublisher(dispatcher=dispatcher, search=search, activity=activity)

    await storage.ensure_bucket()
    logger.info("S3 bucket: %s", storage.bucket)

    try:
        await search.ensure_indexes()
        logger.info("Search indexes ready | url=%s", settings.meili_url)
    except Exception as exc:
        # Uploads keep working; the index catches up on the next re-index.
        logger.warning("Search index provisioning failed | url=%s error=%s", settings.meili_url, exc)

    if settings.seed_categories_on_startup:
        async with session_scope() as session:
            await seed_unassigned_categories(session)

    yield

    logger.info("Shutting down Course Portal API")
    dispatcher.shutdown()
    await extractor.aclose()
    await search.aclose()

    from app.db.session import engine
    await engine.dispose()


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------

def create_app() -> FastAPI:
    app = FastAPI(
        title="Course Portal API",
        description=(
            "Study materials, Q&A and ratings for university subjects. "
            "Uploaded documents are stored in S3-compatible storage and made searchable."
        ),
        version="1.0.0",
        docs_url="/api/docs" if not settings.is_production else None,
        redoc_url="/api/redoc" if not settings.is_production else None,
        openapi_url="/api/openapi.json" if not settings.is_production else None,
        lifespan=lifespan,
    )

    # ----------------------------------------------------------------
    # Middleware (applied in reverse order — last added = outermost)
    # ----------------------------------------------------------------

    app.add_middleware(GZipMiddleware, minimum_size=1024)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["X-Request-ID", "Content-Disposition"],
    )

    @app.middleware("http")
    async def request_id_and_logging(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        start = time.perf_counter()

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        logger.info(
            "HTTP %s %s %d %.1fms | request_id=%s",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            request_id,
        )
        return response

    # ----------------------------------------------------------------
    # Exception handlers — uniform structured error responses
    # ----------------------------------------------------------------

    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        if exc.status_code >= 500:
            logger.error("%s %s → %d %s", request.method, request.url.path, exc.status_code, exc.code)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Auth dependencies and routing raise HTTPException; render it in the envelope."""
        code = HTTP_ERROR_CODES.get(exc.status_code, "ERROR")
        message = exc.detail if isinstance(exc.detail, str) else code.replace("_", " ").capitalize()
        return _error(exc.status_code, code, message, headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Malformed input is a client error: 400 with the first problem spelled out."""
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(loc) for loc in first["loc"] if loc not in ("body", "query", "path", "form"))
            message = f"{field}: {first['msg']}" if field else first["msg"]
        else:
            message = "Invalid request"
        return _error(status.HTTP_400_BAD_REQUEST, "VALIDATION_ERROR", message)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch-all for unhandled exceptions — never expose stack traces."""
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        logger.exception(
            "Unhandled exception | path=%s request_id=%s",
            request.url.path, request_id,
        )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "INTERNAL_ERROR",
            "An unexpected error occurred",
            headers={"X-Request-ID": request_id},
        )

    # ----------------------------------------------------------------
    # Routers
    # ----------------------------------------------------------------

    for router in (
        users_router,
        semesters_router,
        subjects_router,
        categories_router,
        documents_router,
        search_router,
        qa_router,
        comments_router,
        teacher_ratings_router,
        favorites_router,
        activities_router,
    ):
        app.include_router(router, prefix="/api/v1")

    # ----------------------------------------------------------------
    # Health & readiness endpoints (no auth — used by load balancer)
    # ----------------------------------------------------------------

    @app.get(
        "/health",
        tags=["Operations"],
        summary="Liveness probe",
        description="Returns 200 if the process is alive. No external checks.",
    )
    async def health() -> dict:
        return {"status": "ok", "service": "course-portal-api"}

    @app.get(
        "/health/ready",
        tags=["Operations"],
        summary="Readiness probe",
        description="Returns 200 only if the database is reachable.",
    )
    @app.get("/ready", tags=["Operations"], include_in_schema=False)
    async def readiness() -> JSONResponse:
        db_status = await check_db_health()
        if db_status["status"] != "ok":
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "not_ready", "database": db_status},
            )
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "ready", "database": db_status},
        )

    return app


# ---------------------------------------------------------------------------
# Application instance (imported by uvicorn)
# ---------------------------------------------------------------------------

app = create_app()


# ---------------------------------------------------------------------------
# Local development entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.app_env == "development",
        log_level="debug" if settings.debug else "info",
        access_log=True,
    )
