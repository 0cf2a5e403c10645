"""
FastAPI application for the task tracker.

`create_app()` wires settings, the document store, the token service
and the resource services onto `app.state`, registers the error
handlers that produce the response envelope, and mounts the routers.
"""

from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tasktracker.api.tasks import router as tasks_router
from tasktracker.api.users import router as users_router
from tasktracker.auth.passwords import PasswordHasher
from tasktracker.auth.routes import router as auth_router
from tasktracker.auth.tokens import TokenService
from tasktracker.config import Settings, get_settings
from tasktracker.core.errors import (
    AppError,
    DuplicateError,
    MethodNotAllowedError,
    NotFoundError,
    ValidationFailedError,
)
from tasktracker.core.utils import utc_now
from tasktracker.integrations.sentry import capture_exception, init_sentry
from tasktracker.logging_config import configure_logging
from tasktracker.services import TaskService, UserService
from tasktracker.storage import DocumentStore, DuplicateKeyError, create_store
from tasktracker.validation import field_errors

logger = logging.getLogger(__name__)


# =============================================================================
# Lifespan
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize and cleanup app resources."""
    settings: Settings = app.state.settings
    store: DocumentStore = app.state.store

    init_sentry(settings)
    await store.init_indexes()

    if settings.admin_email and settings.admin_password:
        await app.state.users.ensure_admin(
            settings.admin_name, settings.admin_email, settings.admin_password
        )

    logger.info(f"Task tracker API starting in {settings.environment} mode")

    yield

    await store.close()
    logger.info("Task tracker API shutting down")


# =============================================================================
# Error handlers
# =============================================================================


async def _app_error(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    error = ValidationFailedError(errors=field_errors(exc.errors()))
    return JSONResponse(error.to_dict(), status_code=error.status_code)


async def _http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        error: AppError = NotFoundError(
            f"Route {request.url.path} not found", path=request.url.path
        )
    elif exc.status_code == 405:
        error = MethodNotAllowedError(f"Method {request.method} not allowed on {request.url.path}")
    else:
        return JSONResponse(
            {"success": False, "message": str(exc.detail), "code": "HTTP_ERROR"},
            status_code=exc.status_code,
            headers=getattr(exc, "headers", None),
        )
    return JSONResponse(error.to_dict(), status_code=error.status_code)


async def _duplicate_key(request: Request, exc: DuplicateKeyError) -> JSONResponse:
    error = DuplicateError(f"A record with this {exc.field} already exists", field=exc.field)
    return JSONResponse(error.to_dict(), status_code=error.status_code)


def _unhandled(settings: Settings, request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    capture_exception(exc, method=request.method, path=request.url.path)

    error = AppError()
    body = error.to_dict()
    if not settings.is_production:
        body["error"] = str(exc)
    return JSONResponse(body, status_code=error.status_code)


# =============================================================================
# App factory
# =============================================================================


def create_app(settings: Settings | None = None, store: DocumentStore | None = None) -> FastAPI:
    """
    Build the application.

    Usage:
        app = create_app()                              # from environment
        app = create_app(Settings(...), InMemoryDocumentStore())  # tests
    """
    settings = settings or get_settings()
    configure_logging(settings)

    store = store or create_store(settings)
    hasher = PasswordHasher(settings.password_hash_iterations)

    app = FastAPI(
        title="Task Tracker API",
        description="Task management API with JWT authentication",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Everything request handlers need; lifespan only does startup I/O
    app.state.settings = settings
    app.state.store = store
    app.state.tokens = TokenService(settings)
    app.state.users = UserService(store, hasher)
    app.state.tasks = TaskService(store)

    app.add_exception_handler(AppError, _app_error)
    app.add_exception_handler(RequestValidationError, _request_validation_error)
    app.add_exception_handler(StarletteHTTPException, _http_error)
    app.add_exception_handler(DuplicateKeyError, _duplicate_key)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        # Unexpected errors become the 500 envelope before the request line is logged
        try:
            response = await call_next(request)
        except Exception as exc:
            response = _unhandled(settings, request, exc)
        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} {elapsed_ms:.1f}ms"
        )
        return response

    @app.get("/health")
    async def health_check():
        """Liveness only."""
        return {
            "success": True,
            "message": "Server is running",
            "timestamp": utc_now().isoformat(),
            "environment": settings.environment,
        }

    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(tasks_router)

    return app
