"""Build the JSON request body for the command-execution surface."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict

from chat_bridge.options import translate_options
from chat_bridge.tool_schema import ToolDefinition, map_tools
from chat_bridge.types import ChatMessage, ChatOptions


class PayloadMessage(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    content: str


class RequestPayload(BaseModel):
    """Chat completion request in OpenAI-compatible shape."""

    model_config = ConfigDict(frozen=True)

    model: str | None = None
    messages: tuple[PayloadMessage, ...] = ()
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    max_tokens: int | None = None
    seed: int | None = None
    tools: tuple[ToolDefinition, ...] | None = None
    tool_choice: str | None = None
    parallel_tool_calls: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)

    def to_json(self) -> str:
        return self.model_dump_json(exclude_none=True)


def build_payload(
    messages: Sequence[ChatMessage],
    options: ChatOptions | None,
    *,
    model_id: str | None,
) -> RequestPayload:
    """Assemble model id, messages, sampling fields and the tool block."""

    settings, _ = translate_options(options)
    payload: dict[str, Any] = {
        "model": (options.model_id if options is not None and options.model_id else model_id),
        "messages": tuple(_serialize_message(m) for m in messages),
    }
    payload.update(settings.as_payload())

    if options is not None:
        if options.tools:
            payload["tools"] = tuple(map_tools(options.tools))
        if options.tool_mode is not None:
            payload["tool_choice"] = options.tool_mode
        if options.allow_multiple_tool_calls is not None:
            payload["parallel_tool_calls"] = options.allow_multiple_tool_calls

    return RequestPayload(**payload)


def _serialize_message(message: ChatMessage) -> PayloadMessage:
    return PayloadMessage(role=message.role, content=message.text)
