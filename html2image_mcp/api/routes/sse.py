"""
SSE Routes
==========

Server-Sent Events stream of tool call progress. Each connection subscribes
to the progress notifier for as long as the client stays connected.
"""

from typing import Any, AsyncGenerator, Dict
import asyncio
import json

from fastapi import APIRouter, Depends, Request
from fastapi.responses import StreamingResponse

from html2image_mcp.api.main import get_services
from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.events import ProgressNotifier
from html2image_mcp.mcp_server.server import Html2ImageServices
from html2image_mcp.models.schemas import ProgressEvent

logger = get_logger(__name__)

router = APIRouter(tags=["SSE"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",  # Disable Nginx buffering
}

CONNECTED_COMMENT = ": connected\n\n"
KEEPALIVE_COMMENT = ": keepalive\n\n"


def format_sse_event(data: Dict[str, Any]) -> str:
    """
    Format data for Server-Sent Events protocol.

    Args:
        data: Event data dictionary

    Returns:
        A single `data:` line followed by the blank line ending the event
    """
    return f"data: {json.dumps(data, separators=(',', ':'))}\n\n"


async def progress_event_stream(
    notifier: ProgressNotifier,
    request: Any,
    heartbeat_interval: float = 15.0,
    buffer_size: int = 100,
) -> AsyncGenerator[str, None]:
    """
    Yield SSE frames for every progress event until the client disconnects.

    Events are buffered per connection; when a slow client lets the buffer
    fill up, further events are dropped for that client only.
    """
    queue: "asyncio.Queue[ProgressEvent]" = asyncio.Queue(maxsize=buffer_size)

    def enqueue(event: ProgressEvent) -> None:
        try:
            queue.put_nowait(event)
        except asyncio.QueueFull:
            logger.warning("SSE buffer full, dropping event", step=event.step.value)

    token = notifier.subscribe(enqueue)
    logger.info("SSE client connected", token=token)
    try:
        yield CONNECTED_COMMENT
        while True:
            if await request.is_disconnected():
                break
            try:
                event = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
            except asyncio.TimeoutError:
                yield KEEPALIVE_COMMENT
                continue
            yield format_sse_event(event.to_wire())
    finally:
        notifier.unsubscribe(token)
        logger.info("SSE client disconnected", token=token)


@router.get("/sse")
async def connect_sse(
    request: Request, services: Html2ImageServices = Depends(get_services)
) -> StreamingResponse:
    """
    Establish SSE connection.

    Returns:
        Streaming response with one `data:` event per progress event
    """
    settings = services.settings
    return StreamingResponse(
        progress_event_stream(
            services.notifier,
            request,
            heartbeat_interval=settings.sse_heartbeat_interval,
            buffer_size=settings.sse_event_buffer_size,
        ),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
    )
