"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import FileResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy import text

from folioguard import __version__
from folioguard.app.api.dependencies import AdminAuth, Services
from folioguard.app.api.v1 import admin_router, auth_router
from folioguard.app.config import get_settings
from folioguard.app.container import ServiceContainer, build_container
from folioguard.app.logging import setup_logging
from folioguard.app.metrics import get_metrics_response
from folioguard.app.metrics.collector import RATE_LIMITED_TOTAL
from folioguard.app.middleware import LoggingMiddleware, SecurityHeadersMiddleware
from folioguard.core.errors import (
    ErrorCode,
    ErrorResponse,
    FolioGuardError,
    RateLimitedError,
    UnauthenticatedError,
    UnauthorizedAdminError,
)
from folioguard.core.logging_schema import Component, LogEvent
from folioguard.infra import close_db, init_db

setup_logging()
logger = logging.getLogger(__name__)

API_PREFIX = "/api/"


def install_services(app: FastAPI, services: ServiceContainer) -> None:
    """Attach a service container and its API limiter to the app."""
    app.state.services = services
    app.state.limiter = services.api_limiter
    # Probes are never throttled
    services.api_limiter.exempt(health)
    services.api_limiter.exempt(metrics)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    session_factory = await init_db()
    services = build_container(settings, session_factory)
    install_services(app, services)
    services.maintenance.start()

    logger.info(
        "Starting application",
        extra={
            "event": LogEvent.APP_STARTED,
            "environment": settings.app.environment,
            "version": __version__,
        },
    )

    yield

    logger.info("Shutting down application", extra={"event": LogEvent.APP_STOPPED})
    await services.maintenance.stop()
    await close_db()


app = FastAPI(title="folioguard", version=__version__, lifespan=lifespan)
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)


def _is_api_request(request: Request) -> bool:
    return request.url.path.startswith(API_PREFIX)


@app.exception_handler(FolioGuardError)
async def folioguard_error_handler(request: Request, exc: FolioGuardError) -> Response:
    """Handle FolioGuardError exceptions.

    API paths get the JSON error body. Page navigations that fail the
    authentication or admin gate are redirected instead.
    """
    if not _is_api_request(request) and isinstance(
        exc, (UnauthenticatedError, UnauthorizedAdminError)
    ):
        services: ServiceContainer = request.app.state.services
        target = (
            services.settings.redirect.login_path
            if isinstance(exc, UnauthenticatedError)
            else services.settings.redirect.forbidden
        )
        return RedirectResponse(url=target, status_code=303)

    headers = None
    if isinstance(exc, RateLimitedError):
        headers = {"Retry-After": str(exc.retry_after)}
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_response().to_content(),
        headers=headers,
    )


def api_rate_limit_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Handle general API limit rejections from SlowAPIMiddleware.

    Must stay synchronous: the middleware calls it without awaiting.
    """
    retry_after = int(exc.limit.limit.get_expiry())
    RATE_LIMITED_TOTAL.labels(scope="api").inc()
    body = ErrorResponse(
        error="Too many requests, try again later",
        code=ErrorCode.RATE_LIMITED.value,
        retry_after=retry_after,
    )
    return JSONResponse(
        status_code=429,
        content=body.to_content(),
        headers={"Retry-After": str(retry_after)},
    )


app.add_exception_handler(RateLimitExceeded, api_rate_limit_handler)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "Unhandled error",
        extra={
            "event": LogEvent.REQUEST_FAILED,
            "component": Component.API,
            "path": request.url.path,
            "error_type": type(exc).__name__,
        },
    )
    body = ErrorResponse(
        error="Internal server error", code=ErrorCode.INTERNAL_ERROR.value
    )
    return JSONResponse(status_code=500, content=body.to_content())


app.include_router(auth_router, prefix="/api/v1")
app.include_router(admin_router, prefix="/api/v1")


@app.get("/health")
async def health(services: Services) -> dict:
    try:
        async with services.session_factory() as db:
            await db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        database = f"error: {e}"

    return {
        "status": "ok" if database == "connected" else "degraded",
        "version": __version__,
        "services": {"database": database},
    }


@app.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    return get_metrics_response()


STATIC_DIR = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")


@app.get("/")
async def root() -> FileResponse:
    return FileResponse(STATIC_DIR / "index.html")


@app.get("/admin-login")
async def login_page() -> FileResponse:
    """Serve the login page."""
    return FileResponse(STATIC_DIR / "login.html")


@app.get("/admin")
async def admin_page(_auth: AdminAuth) -> FileResponse:
    """Serve the admin console. Browsers without an admin session are redirected."""
    return FileResponse(STATIC_DIR / "admin.html")
