"""
RPC Routes
==========

JSON-RPC over HTTP. Every request is answered with HTTP 200 and a JSON-RPC
body, including protocol errors; notifications are acknowledged with 202.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse
from mcp.types import PARSE_ERROR

from html2image_mcp.api.main import get_services
from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.validation import RENDER_TOOL
from html2image_mcp.mcp_server.handlers import error_response, parse_json
from html2image_mcp.mcp_server.server import Html2ImageServices

logger = get_logger(__name__)

router = APIRouter(tags=["MCP"])


@router.post("/rpc")
async def rpc(request: Request, services: Html2ImageServices = Depends(get_services)) -> Response:
    """
    Handle one JSON-RPC request.

    Returns:
        JSON-RPC response body, or an empty 202 for notifications
    """
    body = await request.body()
    response = await services.handler.handle_raw(body)
    if response is None:
        return Response(status_code=202)
    return JSONResponse(content=response)


def as_tool_call(body: Any) -> Dict[str, Any]:
    """
    Build `tools/call` params from a /convert body.

    Accepts either `{"name": ..., "arguments": {...}}` or a bare object of
    render arguments.
    """
    if isinstance(body, dict) and isinstance(body.get("name"), str):
        return {"name": body["name"], "arguments": body.get("arguments")}
    return {"name": RENDER_TOOL, "arguments": body}


@router.post("/convert")
async def convert(
    request: Request, services: Html2ImageServices = Depends(get_services)
) -> JSONResponse:
    """Render shortcut: call a tool without a JSON-RPC envelope."""
    try:
        body = parse_json(await request.body())
    except ValueError as e:
        logger.warning("Unparseable convert payload", error=str(e))
        return JSONResponse(content=error_response(PARSE_ERROR, f"Parse error: {e}").to_dict())

    message = {
        "jsonrpc": "2.0",
        "id": None,
        "method": "tools/call",
        "params": as_tool_call(body),
    }
    response = await services.handler.handle_message(message)
    return JSONResponse(content=response.to_dict() if response is not None else None)
