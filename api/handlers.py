"""FastAPI route handlers."""

from fastapi import Request
from fastapi.responses import StreamingResponse


async def handle_metrics(request: Request) -> StreamingResponse:
    """Handle /metrics by streaming every upstream's payload as it arrives.

    Status and headers go out before any upstream has answered; failed
    upstreams are skipped, so the body may be empty but the status is 200.
    """
    aggregator = request.app.state.aggregator
    return StreamingResponse(
        aggregator.stream(),
        status_code=200,
        headers={"Content-Type": "text/plain"},
    )
