"""
MCP Server Tools
================

Tool implementations and the static tool catalog.
Provides the HTML-to-image render tool and the base64-to-file decode tool.
"""

from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Type
from dataclasses import dataclass
from types import MappingProxyType

from mcp.types import ImageContent, TextContent, Tool
from pydantic import BaseModel

from html2image_mcp.config.logging import get_logger
from html2image_mcp.core.rendering.orchestrator import RenderOrchestrator
from html2image_mcp.core.storage import ImageStore, decode_base64
from html2image_mcp.core.validation import DECODE_TOOL, RENDER_TOOL
from html2image_mcp.models.schemas import (
    DecodeArguments,
    RenderArguments,
    RenderJob,
    ToolResult,
)

logger = get_logger(__name__)

ToolHandler = Callable[[Any], Awaitable[ToolResult]]


def input_schema(model: Type[BaseModel]) -> Dict[str, Any]:
    """JSON schema advertised for a tool's argument model."""
    schema = model.model_json_schema(by_alias=True)
    schema.pop("title", None)
    schema["type"] = "object"
    return schema


@dataclass(frozen=True)
class CatalogEntry:
    """A tool descriptor bound to its argument model and handler."""

    descriptor: Tool
    arguments: Type[BaseModel]
    handler: ToolHandler

    @property
    def name(self) -> str:
        return self.descriptor.name


class ToolCatalog:
    """Immutable mapping of tool names to catalog entries."""

    def __init__(self, entries: Iterable[CatalogEntry]):
        by_name: Dict[str, CatalogEntry] = {}
        for entry in entries:
            if entry.name in by_name:
                raise ValueError(f"Duplicate tool name: {entry.name}")
            by_name[entry.name] = entry
        self._entries: Mapping[str, CatalogEntry] = MappingProxyType(by_name)
        self.schemas: Mapping[str, Type[BaseModel]] = MappingProxyType(
            {name: entry.arguments for name, entry in by_name.items()}
        )

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def get(self, name: str) -> Optional[CatalogEntry]:
        return self._entries.get(name)

    def descriptors(self) -> List[Tool]:
        """Copies of the tool descriptors, in registration order."""
        return [entry.descriptor.model_copy(deep=True) for entry in self._entries.values()]


class RenderTool:
    """Tool for rendering HTML, URLs and local files to images."""

    def __init__(self, orchestrator: RenderOrchestrator, store: ImageStore):
        self.orchestrator = orchestrator
        self.store = store
        self.logger: Any = logger.bind(tool=RENDER_TOOL)

    async def execute(self, arguments: RenderArguments) -> ToolResult:
        """
        Render the requested content.

        Args:
            arguments: Validated render arguments

        Returns:
            ToolResult with the image inline as base64, or a file URL when
            `output` is `file`
        """
        job = RenderJob.from_arguments(arguments)
        result = await self.orchestrator.render(job)

        if arguments.output == "file":
            file_url = await self.store.save(
                result.image_bytes, result.mime_type, arguments.file_name
            )
            self.logger.info("Rendered image saved", file_url=file_url)
            return ToolResult(
                content=[TextContent(type="text", text=f"Image saved to {file_url}")],
                structured={"fileUrl": file_url, "content_type": result.mime_type},
            )

        return ToolResult(
            content=[ImageContent(type="image", data=result.encoding, mimeType=result.mime_type)],
            structured={"content_type": result.mime_type, "data": result.encoding},
        )


class DecodeTool:
    """Tool for writing base64 image data to the images directory."""

    def __init__(self, store: ImageStore):
        self.store = store
        self.logger: Any = logger.bind(tool=DECODE_TOOL)

    async def execute(self, arguments: DecodeArguments) -> ToolResult:
        image_bytes = decode_base64(arguments.base64_data)
        file_url = await self.store.save(image_bytes, arguments.mime_type, arguments.file_name)
        self.logger.info("Decoded image saved", file_url=file_url, file_size=len(image_bytes))
        return ToolResult(
            content=[TextContent(type="text", text=f"Image saved to {file_url}")],
            structured={"fileUrl": file_url, "file_size": len(image_bytes)},
        )


def build_catalog(orchestrator: RenderOrchestrator, store: ImageStore) -> ToolCatalog:
    """Build the static tool catalog bound to the given collaborators."""
    render_tool = RenderTool(orchestrator, store)
    decode_tool = DecodeTool(store)

    return ToolCatalog(
        [
            CatalogEntry(
                descriptor=Tool(
                    name=RENDER_TOOL,
                    description=(
                        "Render HTML markup, a web page URL or a local HTML file to a "
                        "PNG, JPEG or WEBP image"
                    ),
                    inputSchema=input_schema(RenderArguments),
                ),
                arguments=RenderArguments,
                handler=render_tool.execute,
            ),
            CatalogEntry(
                descriptor=Tool(
                    name=DECODE_TOOL,
                    description="Decode base64 image data and save it as an image file",
                    inputSchema=input_schema(DecodeArguments),
                ),
                arguments=DecodeArguments,
                handler=decode_tool.execute,
            ),
        ]
    )
