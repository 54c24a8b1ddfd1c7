"""
Main FastAPI application entry point.

Uses Application Factory Pattern; background workers run in the lifespan.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from passerelle.config.settings import Settings, get_settings, validate_configuration
from passerelle.di.container import DIContainer
from passerelle.domain.exceptions import PasserelleException
from passerelle.infrastructure.monitoring import get_logger, setup_logging
from passerelle.presentation.api.middleware import (
    MetricsMiddleware,
    RateLimitMiddleware,
    RequestIDMiddleware,
    passerelle_exception_handler,
    request_validation_exception_handler,
)
from passerelle.presentation.api.routes import health, transfers


def create_app(
    settings: Optional[Settings] = None,
    container: Optional[DIContainer] = None,
) -> FastAPI:
    """
    Application factory - creates and configures FastAPI app.

    Args:
        settings: Optional Settings instance (for testing)
        container: Optional pre-built container (for testing)

    Returns:
        Configured FastAPI application
    """
    if settings is None:
        settings = container.settings if container else get_settings()

    # Structured logging (JSON only in production)
    json_logs = settings.ENV == "production"
    setup_logging(level=settings.LOG_LEVEL, json_logs=json_logs)
    logger = get_logger(__name__)

    logger.info(f"Creating Passerelle application (ENV={settings.ENV})")

    problems = validate_configuration(settings)
    for problem in problems:
        logger.warning(f"Configuration problem: {problem}")
    if problems and settings.ENV == "production":
        raise RuntimeError(
            "Invalid production configuration: " + "; ".join(problems)
        )

    if container is None:
        container = DIContainer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager with background workers."""
        logger.info("Starting Passerelle application...")
        await container.initialize()
        container.start_background_tasks()
        logger.info("Passerelle application started successfully")

        yield

        logger.info("Shutting down Passerelle application...")
        await container.shutdown()
        logger.info("Passerelle application shutdown complete")

    app = FastAPI(
        title="Passerelle API",
        description="Cross-chain stablecoin transfer tracking and reconciliation",
        version=settings.APP_VERSION,
        lifespan=lifespan,
    )
    app.state.container = container

    # Middleware chain: the last added runs first
    app.add_middleware(RateLimitMiddleware)
    app.add_middleware(MetricsMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
    )

    # Exception handlers
    app.add_exception_handler(PasserelleException, passerelle_exception_handler)
    app.add_exception_handler(
        RequestValidationError, request_validation_exception_handler
    )

    # Register routes
    app.include_router(health.router)
    app.include_router(transfers.router, prefix="/api")

    @app.get("/", tags=["Health"])
    async def root():
        """Root endpoint."""
        return {
            "service": settings.APP_NAME,
            "status": "running",
            "version": settings.APP_VERSION,
        }

    @app.get("/metrics", tags=["Monitoring"])
    async def metrics():
        """
        Prometheus metrics endpoint.

        Returns metrics in Prometheus text format for scraping.
        """
        return Response(
            content=generate_latest(),
            media_type=CONTENT_TYPE_LATEST,
        )

    logger.info("Passerelle application created successfully")
    return app


def get_app() -> FastAPI:
    """
    Create application instance.

    For uvicorn: uvicorn passerelle.main:get_app --factory
    """
    return create_app()


def main():
    """Run the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "passerelle.main:get_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.API_RELOAD,
    )


if __name__ == "__main__":
    main()
