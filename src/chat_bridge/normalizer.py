"""Reduce heterogeneous raw backend responses to the canonical shapes.

Raw values come in three flavours: typed objects exposing attributes
(``ChatCompletion``), deserialised JSON mappings, and plain strings. Only
the first choice of a multi-choice response is ever surfaced.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any

from chat_bridge.types import ChatMessage, ChatResponse, ChatResponseUpdate

_logger = logging.getLogger(__name__)


def normalize_response(raw: Any) -> ChatResponse:
    """Build a ``ChatResponse`` with an assistant message from ``raw``."""
    return ChatResponse(message=ChatMessage(role="assistant", text=extract_text(raw)), raw=raw)


def normalize_update(raw: Any) -> ChatResponseUpdate:
    """Build one ``ChatResponseUpdate`` from a single raw chunk."""
    return ChatResponseUpdate(role="assistant", text=extract_text(raw), raw=raw)


def extract_text(raw: Any) -> str:
    """Return the canonical text of ``raw``; never ``None``."""

    if isinstance(raw, (str, bytes, bytearray)):
        decoded = parse_completion(raw)
        if decoded is None:
            return raw if isinstance(raw, str) else bytes(raw).decode("utf-8", errors="replace")
        raw = decoded

    choices = _field(raw, "choices")
    if isinstance(choices, (list, tuple)) and choices:
        first = choices[0]
        message = _field(first, "message")
        if message is None:
            message = _field(first, "delta")

        content = _field(message, "content")
        if isinstance(content, str) and content:
            return content

        text = _textual(message)
        if text:
            return text

    return _textual(raw)


def parse_completion(data: str | bytes | bytearray | None) -> dict[str, Any] | None:
    """Decode a JSON object; ``None`` when empty, invalid or not an object."""

    if not data:
        return None
    try:
        decoded = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError):
        _logger.debug("Result is not JSON: %.200r", data)
        return None
    return decoded if isinstance(decoded, dict) else None


def _field(obj: Any, name: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _textual(obj: Any) -> str:
    """Generic textual representation: a string itself or its text/content field."""
    if obj is None:
        return ""
    if isinstance(obj, str):
        return obj
    for name in ("text", "content"):
        value = _field(obj, name)
        if isinstance(value, str) and value:
            return value
    return ""
