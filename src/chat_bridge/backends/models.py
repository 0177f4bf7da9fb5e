"""Typed wire models for OpenAI-compatible chat completion backends."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SamplingSettings(BaseModel):
    """Sampling fields a backend applies to the next completion call."""

    model_config = ConfigDict(frozen=True)

    temperature: float | None = None
    top_p: float | None = None
    top_k: int | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    max_tokens: int | None = None
    seed: int | None = None

    def as_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)


class BackendMessage(BaseModel):
    """Message in the shape the completion endpoint expects."""

    role: str | None = None
    content: str | None = None


class CompletionChoice(BaseModel):
    model_config = ConfigDict(extra="allow")

    index: int = 0
    message: BackendMessage | None = None
    # populated on streaming chunks instead of ``message``
    delta: BackendMessage | None = None
    finish_reason: str | None = None


class ChatCompletion(BaseModel):
    """A full completion or a single streaming chunk."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    object: str | None = None
    model: str | None = None
    choices: list[CompletionChoice] = Field(default_factory=list)
    usage: dict[str, Any] | None = None
