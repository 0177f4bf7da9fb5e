"""Backend surfaces for chat_bridge."""

from .base import CHAT_COMPLETIONS_COMMAND, ChatBackend, CommandExecutor, CommandRequest
from .command import HttpCommandExecutor
from .models import SamplingSettings
from .openai_compat import OpenAICompatibleBackend

__all__ = [
    "CHAT_COMPLETIONS_COMMAND",
    "ChatBackend",
    "CommandExecutor",
    "CommandRequest",
    "HttpCommandExecutor",
    "OpenAICompatibleBackend",
    "SamplingSettings",
]
