"""
Runtime configuration for chat-bridge.

Values come from the environment with defaults; unparsable numbers fall
back to the default instead of failing startup.
"""

from __future__ import annotations

import logging
import os

from pydantic import BaseModel

from chat_bridge.backends.openai_compat import DEFAULT_BASE_URL

logger = logging.getLogger(__name__)

DEFAULT_MODEL: str = "phi-4-mini"
DEFAULT_TIMEOUT_SECONDS: float = 60.0

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


class BridgeSettings(BaseModel):
    """Connection settings for the local model server."""

    base_url: str = DEFAULT_BASE_URL
    model_id: str = DEFAULT_MODEL
    api_key: str | None = None
    timeout_s: float = DEFAULT_TIMEOUT_SECONDS
    # expose the command-execution surface (tool calling)
    command_execution: bool = True

    @classmethod
    def from_env(cls) -> "BridgeSettings":
        """
        Load settings from environment variables.

        CHAT_BRIDGE_BASE_URL, CHAT_BRIDGE_MODEL, CHAT_BRIDGE_API_KEY,
        CHAT_BRIDGE_TIMEOUT_S, CHAT_BRIDGE_COMMAND_EXECUTION.
        """
        return cls(
            base_url=os.environ.get("CHAT_BRIDGE_BASE_URL", DEFAULT_BASE_URL).rstrip("/"),
            model_id=os.environ.get("CHAT_BRIDGE_MODEL", DEFAULT_MODEL),
            api_key=os.environ.get("CHAT_BRIDGE_API_KEY") or None,
            timeout_s=_get_float("CHAT_BRIDGE_TIMEOUT_S", DEFAULT_TIMEOUT_SECONDS),
            command_execution=_get_bool("CHAT_BRIDGE_COMMAND_EXECUTION", True),
        )


def _get_float(key: str, default: float) -> float:
    raw = os.environ.get(key)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
        return default


def _get_bool(key: str, default: bool) -> bool:
    raw = os.environ.get(key)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    logger.warning("Ignoring invalid %s=%r, using %s", key, raw, default)
    return default
