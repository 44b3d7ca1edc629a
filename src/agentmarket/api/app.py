"""FastAPI application factory for the agent marketplace API."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware

from agentmarket.api.middleware.correlation import CorrelationIdMiddleware
from agentmarket.api.middleware.error_handler import setup_error_handlers
from agentmarket.api.routes.agents import router as agents_router
from agentmarket.api.routes.executions import router as executions_router
from agentmarket.api.routes.health import router as health_router
from agentmarket.bootstrap import MarketplaceServices, build_services
from agentmarket.config import APP_VERSION, MarketplaceConfig, load_config_from_env
from agentmarket.observability.logging import get_logger, setup_logging
from agentmarket.observability.metrics import get_metrics_collector

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Create storage on startup and release it on shutdown."""
    services: MarketplaceServices = app.state.services
    await services.startup()
    try:
        yield
    finally:
        await services.shutdown()


def create_app(
    config: Optional[MarketplaceConfig] = None,
    services: Optional[MarketplaceServices] = None,
) -> FastAPI:
    """Create and configure a FastAPI application instance.

    Args:
        config: Configuration; loaded from the environment when None
        services: Prebuilt service graph, mainly for tests

    Examples:
        >>> app = create_app()
        >>> # uvicorn agentmarket.api.app:app --reload
    """
    if services is None:
        config = config or load_config_from_env()
        setup_logging(log_level=config.log_level, json_logs=config.json_logs)
        services = build_services(config)

    app = FastAPI(
        title="AI Agent Marketplace API",
        version=APP_VERSION,
        description="Register third-party agent webhooks and run them with validated inputs",
        lifespan=lifespan,
    )
    app.state.services = services

    # TODO: Restrict allowed origins once the frontend host is configurable
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(CorrelationIdMiddleware)  # type: ignore[arg-type]

    setup_error_handlers(app)

    app.include_router(agents_router)
    app.include_router(executions_router)
    app.include_router(health_router)

    @app.get("/metrics")
    async def metrics() -> Response:
        """Prometheus metrics endpoint."""
        return Response(
            content=get_metrics_collector().generate_metrics(),
            media_type="text/plain; version=0.0.4; charset=utf-8",
        )

    return app


# Module-level app instance for uvicorn
app = create_app()
