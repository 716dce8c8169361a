"""
MCP Server Message Handlers
===========================

JSON-RPC 2.0 message handling shared by the stdio channel and the HTTP
endpoint. Protocol-level problems (unparseable payloads, malformed requests,
unknown methods) become JSON-RPC errors; tool failures are returned as tool
results with `isError` set.
"""

from typing import Any, Dict, Optional, Union
from dataclasses import dataclass
import json

from mcp.types import (
    ErrorData,
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    LATEST_PROTOCOL_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
)

from html2image_mcp.config.logging import get_logger
from html2image_mcp.mcp_server.dispatcher import ToolDispatcher
from html2image_mcp.models.schemas import ToolCallRequest

logger = get_logger(__name__)

RequestId = Union[str, int, None]


@dataclass
class MCPMessage:
    """MCP protocol message structure."""

    method: str
    params: Dict[str, Any]
    id: RequestId = None
    jsonrpc: str = "2.0"
    notification: bool = False


@dataclass
class MCPResponse:
    """MCP protocol response structure."""

    result: Optional[Any] = None
    error: Optional[ErrorData] = None
    id: RequestId = None
    jsonrpc: str = "2.0"

    def to_dict(self) -> Dict[str, Any]:
        response: Dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.error is not None:
            response["error"] = self.error.model_dump(mode="json", exclude_none=True)
        else:
            response["result"] = self.result
        return response


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Invalid JSON constant: {name}")


def parse_json(payload: Union[str, bytes]) -> Any:
    """Decode strict JSON; the non-standard NaN and Infinity tokens are rejected."""
    return json.loads(payload, parse_constant=_reject_constant)


def error_response(code: int, message: str, request_id: RequestId = None) -> MCPResponse:
    return MCPResponse(error=ErrorData(code=code, message=message), id=request_id)


class MessageHandler:
    """Routes JSON-RPC requests to the tool dispatcher."""

    def __init__(
        self,
        dispatcher: ToolDispatcher,
        server_name: str = "html2image-mcp-server",
        server_version: str = "2.6.0",
    ) -> None:
        self.dispatcher = dispatcher
        self.server_name = server_name
        self.server_version = server_version
        self.logger: Any = logger.bind(component="message_handler")

    async def handle_raw(self, payload: Union[str, bytes]) -> Optional[Dict[str, Any]]:
        """
        Handle one raw JSON-RPC payload.

        Args:
            payload: Request text as received from a transport

        Returns:
            Response object ready for JSON encoding, or None for notifications
        """
        try:
            message = parse_json(payload)
        except ValueError as e:
            self.logger.warning("Unparseable JSON-RPC payload", error=str(e))
            return error_response(PARSE_ERROR, f"Parse error: {e}").to_dict()

        response = await self.handle_message(message)
        return response.to_dict() if response is not None else None

    async def handle_message(self, message: Any) -> Optional[MCPResponse]:
        """
        Handle a decoded JSON-RPC message.

        Args:
            message: Decoded JSON value

        Returns:
            MCP response, or None for notifications
        """
        if not isinstance(message, dict):
            return error_response(INVALID_REQUEST, "Invalid request: expected a JSON object")

        request_id = message.get("id")
        if request_id is not None and (
            not isinstance(request_id, (str, int)) or isinstance(request_id, bool)
        ):
            return error_response(INVALID_REQUEST, "Invalid request: bad id")

        method = message.get("method")
        if not isinstance(method, str):
            return error_response(INVALID_REQUEST, "Invalid request: missing method", request_id)

        params = message.get("params") or {}
        if not isinstance(params, dict):
            return error_response(INVALID_PARAMS, "Invalid params: expected an object", request_id)

        msg = MCPMessage(
            method=method, params=params, id=request_id, notification="id" not in message
        )
        if msg.notification:
            self.logger.debug("Notification received", method=msg.method)
            return None

        self.logger.debug("Processing message", method=msg.method, id=msg.id)

        try:
            if msg.method == "tools/call":
                return await self._handle_tool_call(msg)
            elif msg.method == "tools/list":
                return self._handle_tools_list(msg)
            elif msg.method == "initialize":
                return self._handle_initialize(msg)
            elif msg.method == "ping":
                return MCPResponse(result={}, id=msg.id)
            else:
                return error_response(METHOD_NOT_FOUND, f"Method not found: {msg.method}", msg.id)

        except Exception as e:
            self.logger.error(
                "Message handling error", error=str(e), method=msg.method, exc_info=True
            )
            return error_response(INTERNAL_ERROR, "Internal error", msg.id)

    async def _handle_tool_call(self, message: MCPMessage) -> MCPResponse:
        """Handle tool call request."""
        tool_name = message.params.get("name")
        if not isinstance(tool_name, str) or not tool_name:
            return error_response(
                INVALID_PARAMS, "Invalid params: 'name' must be a non-empty string", message.id
            )

        request = ToolCallRequest(tool_name=tool_name, arguments=message.params.get("arguments"))
        result = await self.dispatcher.call_tool(request.tool_name, request.arguments)
        call_result = result.to_call_result()
        return MCPResponse(
            result=call_result.model_dump(mode="json", by_alias=True, exclude_none=True),
            id=message.id,
        )

    def _handle_tools_list(self, message: MCPMessage) -> MCPResponse:
        """Handle tools list request."""
        tools = [
            tool.model_dump(mode="json", by_alias=True, exclude_none=True)
            for tool in self.dispatcher.list_tools()
        ]
        return MCPResponse(result={"tools": tools}, id=message.id)

    def _handle_initialize(self, message: MCPMessage) -> MCPResponse:
        """Handle initialize request."""
        requested = message.params.get("protocolVersion")
        return MCPResponse(
            result={
                "protocolVersion": requested
                if isinstance(requested, str)
                else LATEST_PROTOCOL_VERSION,
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": self.server_name, "version": self.server_version},
            },
            id=message.id,
        )
