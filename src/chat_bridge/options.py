"""Translate generic chat options into backend sampling settings."""

from __future__ import annotations

from chat_bridge.backends.models import SamplingSettings
from chat_bridge.types import ChatOptions

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def translate_options(options: ChatOptions | None) -> tuple[SamplingSettings, bool]:
    """Return the sampling settings and whether the advanced path is required."""

    if options is None:
        return SamplingSettings(), False

    settings = SamplingSettings(
        temperature=options.temperature,
        top_p=options.top_p,
        top_k=options.top_k,
        frequency_penalty=options.frequency_penalty,
        presence_penalty=options.presence_penalty,
        max_tokens=options.max_output_tokens,
        seed=narrow_seed(options.seed),
    )
    return settings, requires_advanced_path(options)


def requires_advanced_path(options: ChatOptions | None) -> bool:
    """True when the options ask for tool-calling semantics."""
    if options is None:
        return False
    return (
        options.tool_mode is not None
        or options.allow_multiple_tool_calls is not None
        or bool(options.tools)
    )


def narrow_seed(seed: int | None) -> int | None:
    """Narrow a 64-bit seed to the backend's 32-bit integer, dropping it if it does not fit."""
    if seed is None or isinstance(seed, bool) or not isinstance(seed, int):
        return None
    if _INT32_MIN <= seed <= _INT32_MAX:
        return seed
    return None
