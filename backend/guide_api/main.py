"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from guide_api.api.errors import register_exception_handlers
from guide_api.api.routes import router
from guide_api.core.config import Settings, get_settings
from guide_api.core.logging_config import configure_logging
from guide_api.observability import RequestLoggingMiddleware, get_metrics_backend, setup_tracing
from guide_api.services.state import start_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan events."""
    # Startup
    settings: Settings = app.state.settings
    logger.info(f"Starting {settings.app_name} in {settings.environment} mode")
    app.state.services = await start_services(settings)
    yield
    # Shutdown
    logger.info("Shutting down gracefully")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for ``settings`` (defaults to the environment)."""
    settings = settings or get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )
    application.state.settings = settings

    metrics_backend = get_metrics_backend()

    # Production only answers the mobile app origins
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestLoggingMiddleware, metrics=metrics_backend)
    setup_tracing(application, settings)
    register_exception_handlers(application, settings)

    application.include_router(router)

    @application.get("/metrics", include_in_schema=False)
    async def metrics() -> PlainTextResponse:
        """Prometheus-style metrics endpoint."""
        return PlainTextResponse(metrics_backend.render_prometheus())

    return application


configure_logging(get_settings())
app = create_app()


def run() -> None:
    """Serve the application with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    run()
