"""Backend-agnostic request/response models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

Role = Literal["system", "user", "assistant", "tool"]
ToolMode = Literal["none", "auto", "required"]
DiagnosticKind = Literal[
    "capability_unavailable",
    "payload_build_failed",
    "execution_failed",
    "empty_result",
    "producer_failed",
]


class ChatMessage(BaseModel):
    """Single chat message."""

    model_config = ConfigDict(frozen=True)

    role: Role
    text: str = ""


class ToolDescriptor(BaseModel):
    """Generic JSON-schema tool/function description.

    ``json_schema`` is expected to be an object with ``type``, ``properties``
    and ``required`` but any JSON value is accepted; the mapper forwards only
    what it recognises.
    """

    name: str
    description: str | None = None
    json_schema: Any = Field(default_factory=dict)


class ChatOptions(BaseModel):
    """Per-request options. ``None`` leaves the backend default untouched."""

    model_id: str | None = None
    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    max_output_tokens: int | None = None
    seed: int | None = None
    tool_mode: ToolMode | None = None
    allow_multiple_tool_calls: bool | None = None
    tools: list[ToolDescriptor] = Field(default_factory=list)


class ChatResponse(BaseModel):
    """Completed answer."""

    message: ChatMessage
    # backend-native object kept for diagnostics
    raw: Any = None

    @property
    def text(self) -> str:
        return self.message.text


class ChatResponseUpdate(BaseModel):
    """One streamed fragment of an answer."""

    role: Role = "assistant"
    text: str = ""
    raw: Any = None


class DiagnosticEvent(BaseModel):
    """Reported whenever a request silently falls back or a stream is truncated."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    kind: DiagnosticKind
    message: str
    error: BaseException | None = None
