"""Health check endpoints router for monitoring service availability."""

from typing import Any

from fastapi import APIRouter, Request
from starlette.responses import JSONResponse

from src.gatekeeper.api.http.app_data import ApplicationDependencies

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health() -> dict[str, str]:
    """Liveness probe; does not check dependencies."""
    return {"status": "healthy", "service": "gatekeeper"}


@router.get("/ready", response_model=None)
async def readiness(request: Request) -> dict[str, Any] | JSONResponse:
    """Readiness probe. Returns 503 while the database is unreachable."""
    app_deps: ApplicationDependencies = request.app.state.app_dependencies
    config = app_deps.config

    db_healthy = app_deps.database_service.health_check()
    response = {
        "status": "ready" if db_healthy else "not_ready",
        "environment": config.app.environment,
        "checks": {
            "database": {
                "status": "healthy" if db_healthy else "unhealthy",
                "type": "postgresql" if "postgresql" in config.database.url else "sqlite",
            },
            "directory": {
                "status": "configured" if config.directory.configured else "not_configured",
                "fallback": app_deps.password_verifier.has_fallback,
            },
        },
    }
    if not db_healthy:
        return JSONResponse(status_code=503, content=response)
    return response
