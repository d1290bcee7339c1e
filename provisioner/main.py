"""
Main FastAPI application entry point.
Server provisioning service with an in-memory store and asynchronous lifecycle engine.
"""
from contextlib import asynccontextmanager
from typing import AsyncGenerator

import sentry_sdk
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator

from provisioner.api.v1 import health, servers
from provisioner.config.logging import configure_logging, get_logger
from provisioner.config.settings import settings
from provisioner.core.lifecycle_engine import LifecycleEngine
from provisioner.core.resource_store import InMemoryResourceStore
from provisioner.core.transition_scheduler import TransitionPolicy
from provisioner.exceptions import ProvisionerException

# Configure logging
configure_logging()
logger = get_logger(__name__)

# Initialize Sentry for error tracking (production)
if settings.sentry_dsn and settings.is_production:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        environment=settings.environment,
        release=settings.app_version,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Application lifespan manager.

    Creates the resource store and lifecycle engine on startup and abandons
    outstanding background transitions on shutdown.
    """
    logger.info(
        "application_starting",
        version=settings.app_version,
        environment=settings.environment,
    )

    policy = TransitionPolicy.from_settings(settings)
    app.state.lifecycle_engine = LifecycleEngine(InMemoryResourceStore(), policy=policy)

    logger.info(
        "application_started",
        version=settings.app_version,
        build_delay_seconds=policy.build_delay,
        teardown_delay_seconds=policy.teardown_delay,
        purge_delay_seconds=policy.purge_delay,
    )

    yield

    logger.info("application_shutting_down")
    await app.state.lifecycle_engine.shutdown()
    logger.info("application_shutdown_complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Server provisioning service with asynchronous build and teardown",
    docs_url="/docs" if not settings.is_production else None,
    redoc_url="/redoc" if not settings.is_production else None,
    openapi_url="/openapi.json" if not settings.is_production else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# Exception handlers
@app.exception_handler(ProvisionerException)
async def provisioner_exception_handler(request: Request, exc: ProvisionerException) -> JSONResponse:
    """Handle custom provisioning service exceptions."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "provisioner_exception",
        path=request.url.path,
        method=request.method,
        error=exc.message,
        status_code=exc.status_code,
        details=exc.details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.message,
                "details": exc.details,
                "status_code": exc.status_code,
            }
        },
    )


def _sanitize_errors(errors):
    """Sanitize Pydantic validation errors to be JSON serializable."""
    sanitized = []
    for error in errors:
        sanitized_error = {}
        for key, value in error.items():
            if key == 'ctx' and isinstance(value, dict):
                sanitized_error[key] = {k: str(v) for k, v in value.items()}
            elif isinstance(value, (str, int, float, bool, type(None))):
                sanitized_error[key] = value
            elif isinstance(value, (list, tuple)):
                sanitized_error[key] = list(value)
            else:
                sanitized_error[key] = str(value)
        sanitized.append(sanitized_error)
    return sanitized


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    errors = _sanitize_errors(exc.errors())

    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        errors=errors,
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "message": "Validation error",
                "details": errors,
                "status_code": 422,
            }
        },
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other exceptions."""
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "message": "Internal server error",
                "details": {} if settings.is_production else {"error": str(exc)},
                "status_code": 500,
            }
        },
    )


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests."""
    logger.info(
        "request_started",
        method=request.method,
        path=request.url.path,
        client=request.client.host if request.client else None,
    )

    response = await call_next(request)

    logger.info(
        "request_completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
    )

    return response


if settings.prometheus_enabled:
    Instrumentator().instrument(app).expose(app, endpoint="/metrics")


# Include routers
app.include_router(health.router, prefix="/health", tags=["Health"])
app.include_router(servers.router, prefix="/api/v1/servers", tags=["Servers"])


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "status": "running",
        "docs": "/docs" if not settings.is_production else "disabled",
    }


if __name__ == "__main__":
    import uvicorn

    try:
        uvicorn.run(
            "provisioner.main:app",
            host=settings.host,
            port=settings.port,
            reload=settings.reload,
            log_level=settings.log_level.lower(),
        )
    except KeyboardInterrupt:
        logger.info("application_stopped")
