"""
Schema Validation
=================

Single validation entry point for tool arguments. Each tool declares its
arguments as a pydantic model; `validate` checks raw arguments against the
model registered for the tool and returns the normalized model instance.
"""

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Type

import pydantic
from pydantic import BaseModel

from html2image_mcp.core.exceptions import UnknownToolError, ValidationError
from html2image_mcp.models.schemas import DecodeArguments, RenderArguments

RENDER_TOOL = "html2image"
DECODE_TOOL = "base64_to_image"

TOOL_SCHEMAS: Mapping[str, Type[BaseModel]] = MappingProxyType(
    {
        RENDER_TOOL: RenderArguments,
        DECODE_TOOL: DecodeArguments,
    }
)


def format_errors(exc: pydantic.ValidationError) -> list[str]:
    """Flatten pydantic errors into short `field: message` strings."""
    messages = []
    for error in exc.errors(include_url=False):
        location = ".".join(str(part) for part in error["loc"]) or "arguments"
        messages.append(f"{location}: {error['msg']}")
    return messages


def validate(
    tool_name: str,
    raw_arguments: Optional[Dict[str, Any]],
    schemas: Mapping[str, Type[BaseModel]] = TOOL_SCHEMAS,
) -> BaseModel:
    """
    Validate raw tool arguments against the tool's declared schema.

    Args:
        tool_name: Name of the tool being called
        raw_arguments: Untrusted arguments, `None` is treated as empty
        schemas: Tool name to argument model mapping

    Returns:
        Validated argument model with defaults applied

    Raises:
        UnknownToolError: If no schema is registered for the tool
        ValidationError: If the arguments do not match the schema
    """
    model = schemas.get(tool_name)
    if model is None:
        raise UnknownToolError(tool_name)

    if raw_arguments is None:
        raw_arguments = {}
    if not isinstance(raw_arguments, dict):
        raise ValidationError(tool_name, ["arguments: must be an object"])

    try:
        return model.model_validate(raw_arguments)
    except pydantic.ValidationError as e:
        raise ValidationError(tool_name, format_errors(e)) from e
