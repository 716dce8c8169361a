"""
Health Routes
=============

FastAPI routes for health check endpoints.
"""

from fastapi import APIRouter, Depends

from html2image_mcp.api.main import get_services
from html2image_mcp.mcp_server.server import Html2ImageServices
from html2image_mcp.models.schemas import HealthStatus

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=HealthStatus, response_model_by_alias=True)
async def health_check(services: Html2ImageServices = Depends(get_services)) -> HealthStatus:
    """
    Report whether the server is up and the browser is connected.

    The server stays `healthy` while serving; `degraded` means the browser
    is not connected and will be relaunched on the next render.
    """
    connected = services.engine.is_connected
    return HealthStatus(
        status="healthy" if connected else "degraded",
        engine_connected=connected,
        version=services.settings.app_version,
        subscribers=services.notifier.subscriber_count,
    )
