"""
chatgraph API

Serves the latest relationship graph snapshot and triggers recomputation.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Callable

import structlog
from fastapi import FastAPI
from prometheus_client import make_asgi_app

from chatgraph import __version__
from chatgraph.api.errors import register_exception_handlers
from chatgraph.api.routes import graph, health
from chatgraph.config import PipelineOptions, Settings, get_settings
from chatgraph.connectors.base import GatewayClient
from chatgraph.connectors.waha import WahaGatewayClient
from chatgraph.monitoring import configure_logging
from chatgraph.pipeline import SnapshotStore


logger = structlog.get_logger()


def create_app(
    settings: Settings | None = None,
    gateway_factory: Callable[[], GatewayClient] | None = None,
    refresh_on_startup: bool = False,
) -> FastAPI:
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        logger.info("Starting chatgraph API", version=__version__, gateway=settings.waha_url)
        if refresh_on_startup:
            app.state.snapshot_store.claim()
            await graph._run_refresh(app)
        yield
        logger.info("Shutting down chatgraph API")

    app = FastAPI(title="chatgraph", version=__version__, lifespan=lifespan)
    app.state.snapshot_store = SnapshotStore()
    app.state.pipeline_options = PipelineOptions.from_settings(settings)
    app.state.gateway_factory = gateway_factory or (lambda: WahaGatewayClient.from_settings(settings))

    register_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(graph.router)
    app.mount("/metrics", make_asgi_app())
    return app


configure_logging()
app = create_app()
