"""
Health check endpoints for monitoring and orchestration.
Provides liveness, readiness, and startup probes.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from provisioner.config.settings import settings

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def health_check():
    """
    Basic health check endpoint.
    Returns current status and version.
    """
    return {
        "status": "healthy",
        "version": settings.app_version,
        "environment": settings.environment,
        "timestamp": _now(),
    }


@router.get("/live")
async def liveness():
    """
    Kubernetes liveness probe.
    Indicates whether the application should be restarted.
    """
    return {"status": "alive", "timestamp": _now()}


@router.get("/ready")
async def readiness(request: Request):
    """
    Kubernetes readiness probe.
    Ready while the lifecycle engine exists and has not been shut down.
    """
    engine = getattr(request.app.state, "lifecycle_engine", None)

    if engine is None or engine.is_shut_down:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "lifecycle_engine": "stopped" if engine is not None else "uninitialized",
                "timestamp": _now(),
            },
        )

    return {
        "status": "ready",
        "lifecycle_engine": "running",
        "servers": len(engine.list_servers()),
        "pending_transitions": engine.scheduler.pending_count,
        "timestamp": _now(),
    }


@router.get("/startup")
async def startup(request: Request):
    """
    Kubernetes startup probe.
    Indicates whether the application has started successfully.
    """
    started = getattr(request.app.state, "lifecycle_engine", None) is not None

    if not started:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "starting", "timestamp": _now()},
        )

    return {"status": "started", "timestamp": _now()}
