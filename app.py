"""FastAPI application factory."""

from fastapi import FastAPI, Request

from api.handlers import handle_metrics
from services.aggregator import MetricsAggregator


def create_app(aggregator: MetricsAggregator) -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Metrics Fan-out Proxy",
        version="0.1.0",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.state.aggregator = aggregator

    @app.get("/metrics")
    async def export_metrics(request: Request):
        return await handle_metrics(request)

    return app
