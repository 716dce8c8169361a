"""
Pydantic Models and Schemas
===========================

Core data models for tool arguments, render jobs, results and progress events.
Tool argument models double as the declarative input schemas advertised in the
tool catalog, so every transport validates through the same definitions.
"""

from typing import Optional, List, Dict, Any, Union, Literal, Annotated
from datetime import datetime, timezone
from enum import Enum
import uuid

from pydantic import BaseModel, ConfigDict, Field
from mcp.types import CallToolResult, ErrorData, ImageContent, TextContent


# Enums
class OutputFormat(str, Enum):
    """Raster output formats."""

    PNG = "png"
    JPEG = "jpeg"
    WEBP = "webp"

    @property
    def mime_type(self) -> str:
        return f"image/{self.value}"


class ProgressStep(str, Enum):
    """Lifecycle steps published for a tool call."""

    START = "start"
    DONE = "done"
    ERROR = "error"


# Tool argument models
# Upper bound for duration waits, in milliseconds
MAX_WAIT_MS = 60000

Duration = Annotated[
    float, Field(ge=0, le=MAX_WAIT_MS, allow_inf_nan=False, description="Milliseconds to wait")
]
Selector = Annotated[str, Field(min_length=1, description="CSS selector to wait for")]


class RenderArguments(BaseModel):
    """Arguments accepted by the render tool."""

    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    html: Optional[str] = Field(None, description="Inline HTML markup to render")
    url: Optional[str] = Field(None, description="Remote URL to navigate to")
    file_path: Optional[str] = Field(
        None, alias="filePath", description="Path of a local HTML file to render"
    )
    format: Literal["png", "jpeg", "webp"] = Field("png", description="Output image format")
    width: int = Field(800, gt=0, le=4000, description="Viewport width in pixels")
    height: int = Field(600, gt=0, le=4000, description="Viewport height in pixels")
    wait_for: Optional[Union[Duration, Selector]] = Field(
        None,
        alias="waitFor",
        description="Milliseconds to wait, or a CSS selector to wait for, before capture",
    )
    output: Literal["inline", "file"] = Field(
        "inline", description="Return the image inline as base64 or save it to the images directory"
    )
    file_name: Optional[str] = Field(
        None, alias="fileName", min_length=1, description="File name used when output is 'file'"
    )


class DecodeArguments(BaseModel):
    """Arguments accepted by the base64 decode tool."""

    model_config = ConfigDict(strict=True, populate_by_name=True, extra="ignore")

    base64_data: str = Field(
        ...,
        alias="base64Data",
        min_length=1,
        description="Base64 image data, optionally prefixed with 'data:<mime>;base64,'",
    )
    file_name: Optional[str] = Field(
        None, alias="fileName", min_length=1, description="Output file name without extension"
    )
    mime_type: Literal["image/png", "image/jpeg", "image/gif"] = Field(
        "image/png", alias="mimeType", description="Image MIME type"
    )


class ToolCallRequest(BaseModel):
    """A single tool invocation as received from a transport."""

    tool_name: str = Field(..., min_length=1, description="Tool name")
    arguments: Any = Field(None, description="Raw, unvalidated tool arguments")


# Rendering Models
class Viewport(BaseModel):
    """Browser viewport dimensions."""

    width: int = Field(800, gt=0)
    height: int = Field(600, gt=0)


class WaitCondition(BaseModel):
    """Condition awaited after content has settled."""

    kind: Literal["duration", "selector"]
    value: Union[float, str]

    @classmethod
    def from_argument(cls, wait_for: Union[float, str, None]) -> Optional["WaitCondition"]:
        if wait_for is None:
            return None
        if isinstance(wait_for, str):
            return cls(kind="selector", value=wait_for)
        return cls(kind="duration", value=float(wait_for))


class RenderJob(BaseModel):
    """A single render, built from validated render arguments."""

    html: Optional[str] = None
    url: Optional[str] = None
    file_path: Optional[str] = None
    viewport: Viewport = Field(default_factory=Viewport)
    wait_condition: Optional[WaitCondition] = None
    output_format: OutputFormat = OutputFormat.PNG

    @classmethod
    def from_arguments(cls, arguments: RenderArguments) -> "RenderJob":
        return cls(
            html=arguments.html,
            url=arguments.url,
            file_path=arguments.file_path,
            viewport=Viewport(width=arguments.width, height=arguments.height),
            wait_condition=WaitCondition.from_argument(arguments.wait_for),
            output_format=OutputFormat(arguments.format),
        )

    @property
    def content_sources(self) -> List[str]:
        """Names of the content sources that are set."""
        sources = {"html": self.html, "url": self.url, "filePath": self.file_path}
        return [name for name, value in sources.items() if value]


class RenderResult(BaseModel):
    """Result of a render."""

    image_bytes: bytes = Field(..., description="Raw image bytes", exclude=True)
    encoding: str = Field(..., description="Base64 encoded image bytes")
    mime_type: str = Field(..., description="Image MIME type")

    @property
    def file_size(self) -> int:
        return len(self.image_bytes)


# Progress events
class ProgressEvent(BaseModel):
    """Lifecycle event for an in-flight tool call."""

    model_config = ConfigDict(populate_by_name=True)

    step: ProgressStep
    tool_name: str = Field(..., serialization_alias="tool")
    call_id: str = Field(default_factory=lambda: str(uuid.uuid4()), serialization_alias="callId")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    message: Optional[str] = None

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready representation sent to event-stream subscribers."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Tool results
class ToolResult(BaseModel):
    """Transport-agnostic outcome of a tool call."""

    is_error: bool = False
    content: List[Union[TextContent, ImageContent]] = Field(default_factory=list)
    structured: Optional[Dict[str, Any]] = None
    error: Optional[ErrorData] = None

    @classmethod
    def failure(cls, error: ErrorData) -> "ToolResult":
        structured: Dict[str, Any] = {"error": error.model_dump(exclude_none=True)}
        return cls(
            is_error=True,
            content=[TextContent(type="text", text=error.message)],
            structured=structured,
            error=error,
        )

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error else None

    def to_call_result(self) -> CallToolResult:
        return CallToolResult(
            content=list(self.content),
            structuredContent=self.structured,
            isError=self.is_error,
        )


# Health Check Models
class HealthStatus(BaseModel):
    """Health check status."""

    model_config = ConfigDict(populate_by_name=True)

    status: Literal["healthy", "degraded"] = Field(..., description="Overall status")
    engine_connected: bool = Field(
        ..., serialization_alias="engineConnected", description="Browser handle connected"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), description="Check timestamp"
    )
    version: str = Field(..., description="Application version")
    subscribers: int = Field(0, ge=0, description="Active progress subscribers")
