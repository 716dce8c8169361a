"""
Tool Dispatcher
===============

Resolves tool calls against the catalog, validates arguments, runs the bound
handler and publishes progress events. This is the one place where internal
failures are turned into transport-agnostic error results.
"""

from typing import Any, Dict, List, Optional
import uuid

from mcp.types import ErrorData, INTERNAL_ERROR, Tool

from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.events import ProgressNotifier
from html2image_mcp.core.exceptions import ToolError, UnknownToolError
from html2image_mcp.core.validation import validate
from html2image_mcp.mcp_server.tools import ToolCatalog
from html2image_mcp.models.schemas import ProgressEvent, ProgressStep, ToolResult

logger = get_logger(__name__)


class ToolDispatcher:
    """Lists and calls the tools of a catalog."""

    def __init__(self, catalog: ToolCatalog, notifier: ProgressNotifier, debug: bool = False):
        self.catalog = catalog
        self.notifier = notifier
        self.debug = debug
        self.logger: Any = logger.bind(component="tool_dispatcher")

    def list_tools(self) -> List[Tool]:
        """Return the static tool catalog."""
        return self.catalog.descriptors()

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> ToolResult:
        """
        Validate and execute a tool call.

        Args:
            name: Tool name
            arguments: Raw, untrusted tool arguments

        Returns:
            ToolResult; failures are reported with `is_error` set rather than raised
        """
        call_id = str(uuid.uuid4())
        log = self.logger.bind(tool=name, call_id=call_id)

        entry = self.catalog.get(name)
        if entry is None:
            error = UnknownToolError(name)
            log.warning("Tool not found")
            return ToolResult.failure(error.to_error_data())

        try:
            validated = validate(name, arguments, self.catalog.schemas)
        except ToolError as e:
            log.warning("Tool arguments rejected", error=e.message)
            return ToolResult.failure(e.to_error_data())

        log.info("Tool called")
        self._publish(ProgressStep.START, name, call_id)

        try:
            result = await entry.handler(validated)
        except ToolError as e:
            log.error("Tool execution failed", error=e.message)
            self._publish(ProgressStep.ERROR, name, call_id, e.message)
            return ToolResult.failure(e.to_error_data())
        except Exception as e:
            log.error("Unexpected tool failure", error=str(e), exc_info=True)
            message = f"Tool execution failed: {type(e).__name__}"
            self._publish(ProgressStep.ERROR, name, call_id, message)
            data = {"exception": str(e)} if self.debug else None
            return ToolResult.failure(ErrorData(code=INTERNAL_ERROR, message=message, data=data))

        log.info("Tool completed")
        self._publish(ProgressStep.DONE, name, call_id)
        return result

    def _publish(
        self, step: ProgressStep, tool_name: str, call_id: str, message: Optional[str] = None
    ) -> None:
        self.notifier.publish(
            ProgressEvent(step=step, tool_name=tool_name, call_id=call_id, message=message)
        )
