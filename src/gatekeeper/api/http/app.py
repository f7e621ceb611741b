"""FastAPI application factory and setup."""

import time
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse

from src.gatekeeper.api.http.app_data import (
    ApplicationDependencies,
    build_application_dependencies,
)
from src.gatekeeper.api.http.routers import auth, health, users
from src.gatekeeper.api.utils.app_startup import configure_logging
from src.gatekeeper.core.errors import AuthenticationError, BadInput, PersistenceError
from src.gatekeeper.core.services.database import DbManageService
from src.gatekeeper.runtime.config.config_data import ConfigData
from src.gatekeeper.runtime.context import get_config

INVALID_CREDENTIALS = "Invalid credentials"
SERVICE_UNAVAILABLE = "Service temporarily unavailable"


# --- Security middleware ---
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, hsts: bool = False):
        super().__init__(app)
        self._hsts = hsts

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        response.headers.setdefault("Cache-Control", "no-store")
        if self._hsts:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains"
            )
        return response


# --- Request logging middleware ---
async def log_requests(request: Request, call_next):
    request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    xff = request.headers.get("x-forwarded-for")
    client_ip = (
        xff.split(",")[0].strip()
        if xff
        else request.client.host
        if request.client
        else "unknown"
    )

    # query strings may contain secrets; not logged
    base_ctx = {
        "request_id": request_id,
        "method": request.method,
        "path": request.url.path,
        "client_ip": client_ip,
    }

    start = time.perf_counter()
    with logger.contextualize(**base_ctx):
        try:
            logger.info("request.start")
            response = await call_next(request)
        except Exception as exc:
            duration_ms = (time.perf_counter() - start) * 1000
            logger.bind(
                status_code=500,
                duration_ms=round(duration_ms, 1),
                error_type=type(exc).__name__,
            ).exception("request.error")
            return JSONResponse(
                status_code=500,
                content={"detail": "Internal Server Error", "request_id": request_id},
                headers={"X-Request-ID": request_id},
            )

        duration_ms = (time.perf_counter() - start) * 1000
        logger.bind(
            status_code=response.status_code, duration_ms=round(duration_ms, 1)
        ).info("request.end")
        response.headers.setdefault("X-Request-ID", request_id)
        return response


# --- Error translation ---
async def authentication_error_handler(request: Request, exc: AuthenticationError):
    """Map core failures onto uniform responses; the audit log keeps the reason."""
    if isinstance(exc, BadInput):
        return JSONResponse(status_code=400, content={"detail": exc.detail})
    if isinstance(exc, PersistenceError):
        return JSONResponse(status_code=503, content={"detail": SERVICE_UNAVAILABLE})
    return JSONResponse(
        status_code=401,
        content={"detail": INVALID_CREDENTIALS},
        headers={"WWW-Authenticate": "Bearer"},
    )


# --- Lifecycle hooks ---
async def startup(app: FastAPI, config: ConfigData) -> None:
    logger.info("Starting up application in {} environment", config.app.environment)
    if getattr(app.state, "app_dependencies", None) is None:
        app.state.app_dependencies = build_application_dependencies(config)

    deps: ApplicationDependencies = app.state.app_dependencies
    DbManageService(deps.database_service.engine).create_all()

    if not config.directory.configured:
        logger.warning("Directory endpoints are not configured; password logins will fail")


async def shutdown(app: FastAPI) -> None:
    logger.info("Shutting down application")
    deps: ApplicationDependencies | None = getattr(app.state, "app_dependencies", None)
    if deps is not None:
        deps.database_service.engine.dispose()


def create_app(config: ConfigData | None = None) -> FastAPI:
    """Build the application.

    Tests set ``app.state.app_dependencies`` themselves; otherwise startup
    wires the dependencies from ``config``.
    """
    config = config or get_config()
    is_production = config.app.environment == "production"

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await startup(app, config)
        try:
            yield
        finally:
            await shutdown(app)

    app = FastAPI(
        title="Gatekeeper",
        lifespan=lifespan,
        docs_url=None if is_production else "/docs",
        redoc_url=None if is_production else "/redoc",
    )

    app.add_middleware(SecurityHeadersMiddleware, hsts=is_production)

    # --- CORS configuration ---
    if is_production and "*" in config.app.cors.origins:
        raise RuntimeError(
            "CORS misconfigured: cannot use '*' with allow_credentials=True in production"
        )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.app.cors.origins,
        allow_credentials=config.app.cors.allow_credentials,
        allow_methods=config.app.cors.allow_methods,
        allow_headers=config.app.cors.allow_headers,
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(AuthenticationError, authentication_error_handler)

    # --- Router registration ---
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(users.router)
    return app


if __name__ == "__main__":
    import uvicorn

    main_config = get_config()
    configure_logging(main_config)
    uvicorn.run(
        create_app(main_config),
        host=main_config.app.host,
        port=main_config.app.port,
        access_log=False,  # access logging happens in middleware
    )
