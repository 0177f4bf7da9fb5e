"""Process-wide backend context, built once at startup and shared read-only."""

from __future__ import annotations

from dataclasses import dataclass

from chat_bridge.backends.base import ChatBackend, CommandExecutor
from chat_bridge.backends.command import HttpCommandExecutor
from chat_bridge.backends.openai_compat import OpenAICompatibleBackend
from chat_bridge.config import BridgeSettings


@dataclass(frozen=True)
class BackendContext:
    """The typed backend plus the optional command-execution capability."""

    chat_backend: ChatBackend
    command_executor: CommandExecutor | None = None
    model_id: str | None = None

    @property
    def resolved_model_id(self) -> str | None:
        return self.model_id or self.chat_backend.model_id

    async def aclose(self) -> None:
        await self.chat_backend.aclose()
        if self.command_executor is not None:
            await self.command_executor.aclose()


def create_context(settings: BridgeSettings | None = None) -> BackendContext:
    """Build the shared context from ``settings`` (environment by default)."""

    settings = settings or BridgeSettings.from_env()
    backend = OpenAICompatibleBackend(
        model_id=settings.model_id,
        api_key=settings.api_key,
        base_url=settings.base_url,
        timeout_s=settings.timeout_s,
    )
    executor: CommandExecutor | None = None
    if settings.command_execution:
        executor = HttpCommandExecutor(
            api_key=settings.api_key,
            base_url=settings.base_url,
            timeout_s=settings.timeout_s,
        )
    return BackendContext(chat_backend=backend, command_executor=executor, model_id=settings.model_id)
