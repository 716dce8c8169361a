"""
Tool Errors
===========

Error taxonomy shared by the validator, the tool handlers and the dispatcher.
Each error knows its JSON-RPC error code and how to present itself as an
error envelope.
"""

from typing import Any, Dict, Literal, Optional

from mcp.types import ErrorData, INVALID_PARAMS, METHOD_NOT_FOUND

RENDER_ERROR = -32001
ENCODING_ERROR = -32002

RenderPhase = Literal["no-content-source", "navigation-timeout", "wait-timeout", "engine-failure"]


class ToolError(Exception):
    """Base class for failures surfaced to tool callers."""

    code: int = -32000

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def error_data(self) -> Optional[Dict[str, Any]]:
        return None

    def to_error_data(self) -> ErrorData:
        return ErrorData(code=self.code, message=self.message, data=self.error_data())


class ValidationError(ToolError):
    """Raised when tool arguments do not match the tool's input schema."""

    code = INVALID_PARAMS

    def __init__(self, tool_name: str, errors: list[str]) -> None:
        self.tool_name = tool_name
        self.errors = errors
        super().__init__(f"Invalid arguments for tool '{tool_name}': {'; '.join(errors)}")

    def error_data(self) -> Dict[str, Any]:
        return {"errors": self.errors}


class UnknownToolError(ToolError):
    """Raised when a tool name is not in the catalog."""

    code = METHOD_NOT_FOUND

    def __init__(self, tool_name: str) -> None:
        self.tool_name = tool_name
        super().__init__(f"Unknown tool: {tool_name}")


class RenderError(ToolError):
    """Raised when a render fails; `phase` names the step that failed."""

    code = RENDER_ERROR

    def __init__(self, phase: RenderPhase, detail: str) -> None:
        self.phase = phase
        self.detail = detail
        super().__init__(f"Render failed ({phase}): {detail}")

    def error_data(self) -> Dict[str, Any]:
        return {"phase": self.phase}


class EncodingError(ToolError):
    """Raised when base64 input cannot be decoded."""

    code = ENCODING_ERROR
