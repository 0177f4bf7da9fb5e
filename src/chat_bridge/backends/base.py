"""Interfaces for the two backend surfaces the client adapts."""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

from pydantic import BaseModel, Field

from chat_bridge.backends.models import BackendMessage, SamplingSettings

ChunkCallback = Callable[[str], None]

CHAT_COMPLETIONS_COMMAND = "chat_completions"


class ChatBackend(ABC):
    """Typed completion client (the standard path)."""

    name: str
    settings: SamplingSettings = SamplingSettings()

    @property
    @abstractmethod
    def model_id(self) -> str | None:
        """Identifier of the model this backend serves."""
        raise NotImplementedError

    def apply_settings(self, settings: SamplingSettings) -> None:
        """Bind the sampling settings used by the next call."""
        self.settings = settings

    @abstractmethod
    def complete_chat(self, messages: list[BackendMessage]) -> Awaitable[Any]:
        """Return an awaitable resolving to the raw completion for ``messages``.

        Implementations must read ``self.settings`` before returning so the
        caller's settings are captured at call time.
        """
        raise NotImplementedError

    @abstractmethod
    def complete_chat_streaming(self, messages: list[BackendMessage]) -> AsyncIterator[Any]:
        """Return an async iterator of raw completion chunks.

        Implementations must read ``self.settings`` before returning so the
        caller's settings are captured at call time.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None


class CommandRequest(BaseModel):
    """Backend-native request built from a JSON payload."""

    body: dict[str, Any] = Field(default_factory=dict)


class CommandExecutor(ABC):
    """Lower-level command-execution surface (the advanced path)."""

    name: str

    @abstractmethod
    def build_request(self, payload_json: str) -> CommandRequest | None:
        """Wrap a JSON payload into a native request, or return ``None``."""
        raise NotImplementedError

    @abstractmethod
    async def execute(self, command: str, request: CommandRequest) -> str | None:
        """Run ``command`` once and return the JSON result, if any.

        Both execute methods raise ``UnsupportedFeatureError`` for a command
        the executor does not know.
        """
        raise NotImplementedError

    @abstractmethod
    async def execute_with_callback(
        self,
        command: str,
        request: CommandRequest,
        on_chunk: ChunkCallback,
        stop_event: threading.Event,
    ) -> None:
        """Run ``command`` and call ``on_chunk`` once per produced chunk.

        ``on_chunk`` may be invoked from any thread. Returns when the backend
        signals completion; implementations should stop early once
        ``stop_event`` is set.
        """
        raise NotImplementedError

    async def aclose(self) -> None:
        return None
