"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from .core.config import settings
from .core.database import close_db, engine, init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    SERVICE_NAME,
    SERVICE_VERSION,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .routers import accommodation, attendance, auth, dispatch, event, health, metrics, registration
from .services.dispatch_service import close_notification_sender, dispatch_registry
from .workers.manager import worker_manager

# Route stdlib logging through structlog
setup_structured_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Sets up observability, the schema and background workers on startup;
    cancels in-flight dispatch runs and releases connections on shutdown.
    """
    logger.info(
        "Starting registrations service",
        extra={"environment": settings.environment, "debug": settings.debug}
    )

    setup_tracing(SERVICE_NAME)
    setup_metrics(SERVICE_NAME)
    instrument_sqlalchemy(engine)

    await init_db()
    logger.info("Database initialized successfully")

    await worker_manager.start_all()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down registrations service")

    try:
        await worker_manager.stop_all()
        await dispatch_registry.shutdown()
        await close_notification_sender()
        await close_db()
    except Exception as e:
        logger.error("Error during application cleanup", extra={"error": str(e)}, exc_info=True)

    logger.info("Application shutdown complete")


def register_routes(app: FastAPI) -> None:
    """Attach exception handlers and API routers."""
    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(event.router)
    app.include_router(registration.router)
    app.include_router(accommodation.router)
    app.include_router(attendance.router)
    app.include_router(dispatch.router)
    app.include_router(metrics.router)


def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Conexus Registrations API",
        description="RPC-over-HTTP API for conference registrations, room allocation, "
                    "card check-in and certificate dispatch",
        version=SERVICE_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "traceparent", "tracestate"],
    )

    setup_middleware(app, enable_logging=True)
    instrument_fastapi(app)

    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        tags=["Health"],
        summary="Health Check",
        description="Check if the service is healthy and responsive",
        response_model=dict,
    )
    async def health_check():
        """Liveness probe."""
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": settings.environment,
        }

    @app.get(
        "/ready",
        tags=["Health"],
        summary="Readiness Check",
        description="Check that the database answers queries",
        response_model=dict,
    )
    async def readiness_check():
        """Readiness probe; 503 while the database is unreachable."""
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            database = "ok"
        except Exception as e:
            logger.warning("Readiness check failed", extra={"error": str(e)})
            database = "unavailable"

        ready = database == "ok"
        return JSONResponse(
            status_code=status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "ready" if ready else "not_ready",
                "service": SERVICE_NAME,
                "checks": {
                    "database": database,
                    "workers": worker_manager.get_worker_status(),
                },
            },
        )

    @app.get(
        "/info",
        status_code=status.HTTP_200_OK,
        tags=["Info"],
        summary="Service Information",
        description="Get detailed information about the service",
        response_model=dict,
    )
    async def service_info():
        """Service information and effective workflow settings."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "environment": settings.environment,
            "settings": {
                "attendance_dedup_window_seconds": settings.attendance_dedup_window_seconds,
                "scan_match_email_fallback": settings.scan_match_email_fallback,
                "dispatch_pool_width": settings.dispatch_pool_width,
                "dispatch_send_timeout_seconds": settings.dispatch_send_timeout_seconds,
                "allow_rejected_to_approved": settings.allow_rejected_to_approved,
                "require_revoke_note": settings.require_revoke_note,
                "release_room_on_revoke": settings.release_room_on_revoke,
            },
            "endpoints": {
                "health": "/health",
                "readiness": "/ready",
                "info": "/info",
                "metrics": "/metrics",
                "docs": "/docs" if settings.debug else None,
            },
        }

    register_routes(app)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "conexus.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=True,
    )
