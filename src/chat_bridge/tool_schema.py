"""Map generic JSON-schema tool descriptors onto the backend function DTO.

Only a small schema subset is understood: an object with flat
``properties`` whose entries carry string ``type``/``description`` fields,
plus a ``required`` list. Anything else is ignored rather than rejected, so
mapping never fails a request.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Literal

from pydantic import BaseModel, Field

from chat_bridge.types import ToolDescriptor

_DEFAULT_PARAMETERS_TYPE = "object"
_DEFAULT_PROPERTY_TYPE = "string"


class ToolProperty(BaseModel):
    type: str = _DEFAULT_PROPERTY_TYPE
    description: str = ""


class FunctionParameters(BaseModel):
    type: str = _DEFAULT_PARAMETERS_TYPE
    properties: dict[str, ToolProperty] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)


class FunctionDefinition(BaseModel):
    name: str
    description: str = ""
    parameters: FunctionParameters = Field(default_factory=FunctionParameters)


class ToolDefinition(BaseModel):
    """Tool entry as it appears in the request payload."""

    type: Literal["function"] = "function"
    function: FunctionDefinition


def map_tool(descriptor: ToolDescriptor) -> ToolDefinition:
    """Convert ``descriptor`` into the backend's function representation."""

    schema = descriptor.json_schema if isinstance(descriptor.json_schema, Mapping) else {}

    parameters = FunctionParameters(
        type=_string_or(schema.get("type"), _DEFAULT_PARAMETERS_TYPE),
        properties=_map_properties(schema.get("properties")),
        required=_map_required(schema.get("required")),
    )
    function = FunctionDefinition(
        name=descriptor.name or "",
        description=descriptor.description or "",
        parameters=parameters,
    )
    return ToolDefinition(function=function)


def map_tools(descriptors: Iterable[ToolDescriptor | None]) -> list[ToolDefinition]:
    """Map every descriptor in order, skipping ``None`` entries."""
    return [map_tool(d) for d in descriptors if d is not None]


def _map_properties(raw: Any) -> dict[str, ToolProperty]:
    if not isinstance(raw, Mapping):
        return {}

    properties: dict[str, ToolProperty] = {}
    for name, schema in raw.items():
        if not isinstance(name, str):
            continue
        if isinstance(schema, Mapping):
            prop = ToolProperty(
                type=_string_or(schema.get("type"), _DEFAULT_PROPERTY_TYPE),
                description=_string_or(schema.get("description"), ""),
            )
        else:
            prop = ToolProperty()
        properties[name] = prop
    return properties


def _map_required(raw: Any) -> list[str]:
    if not isinstance(raw, (list, tuple)):
        return []
    return [item for item in raw if isinstance(item, str) and item]


def _string_or(value: Any, default: str) -> str:
    return value if isinstance(value, str) else default
