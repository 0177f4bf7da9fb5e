"""Typed completion client for OpenAI-compatible local model servers."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator, Awaitable
from typing import Any

import httpx
from pydantic import ValidationError

from chat_bridge.backends.base import ChatBackend
from chat_bridge.backends.models import BackendMessage, ChatCompletion
from chat_bridge.errors import BackendError

DEFAULT_BASE_URL = "http://localhost:5273"
CHAT_PATH = "/v1/chat/completions"


class OpenAICompatibleBackend(ChatBackend):
    """Minimal async wrapper for the Chat Completions API of a local server."""

    name = "openai-compatible"
    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        model_id: str,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_s: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._model_id = model_id
        self._client = http_client or httpx.AsyncClient(
            base_url=base_url or DEFAULT_BASE_URL, timeout=timeout_s
        )
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"

    @property
    def model_id(self) -> str:
        return self._model_id

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def complete_chat(self, messages: list[BackendMessage]) -> Awaitable[ChatCompletion]:
        """Return a coroutine that calls Chat Completions and yields the typed result."""

        # settings are captured here, not when the coroutine first runs
        return self._post_completion(self._build_payload(messages))

    async def _post_completion(self, payload: dict[str, Any]) -> ChatCompletion:
        response = await self._client.post(CHAT_PATH, headers=self._headers, json=payload)
        data = self._json_or_error(response)
        try:
            return ChatCompletion.model_validate(data)
        except ValidationError as exc:
            raise BackendError(self.name, f"Malformed completion: {exc}") from exc

    def complete_chat_streaming(self, messages: list[BackendMessage]) -> AsyncIterator[ChatCompletion]:
        """Return an async iterator of typed streaming chunks."""

        # settings are captured here, not when iteration starts
        payload = self._build_payload(messages)
        payload["stream"] = True

        async def _gen() -> AsyncIterator[ChatCompletion]:
            async with self._client.stream(
                "POST",
                CHAT_PATH,
                headers=self._headers,
                json=payload,
            ) as response:
                if response.status_code >= 400:
                    body = await response.aread()
                    raise BackendError(
                        self.name,
                        body.decode() or response.reason_phrase,
                        status_code=response.status_code,
                    )

                async for line in response.aiter_lines():
                    data_str = parse_sse_data(line)
                    if data_str is None:
                        continue
                    if data_str == "[DONE]":
                        return

                    try:
                        yield ChatCompletion.model_validate_json(data_str)
                    except ValidationError:
                        self._logger.debug("Skipping malformed streaming chunk: %s", data_str)

        return _gen()

    def _build_payload(self, messages: list[BackendMessage]) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self._model_id,
            "messages": [m.model_dump(exclude_none=True) for m in messages],
        }
        payload.update(self.settings.as_payload())
        return payload

    def _json_or_error(self, response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise BackendError(
                self.name,
                response.text or response.reason_phrase,
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except json.JSONDecodeError as exc:
            raise BackendError(self.name, "Response is not JSON") from exc
        if not isinstance(data, dict):
            raise BackendError(self.name, "Response is not a JSON object")
        return data


def parse_sse_data(line: str) -> str | None:
    """Return the payload of an SSE ``data:`` line, or ``None`` for other lines."""
    line = line.strip()
    # servers may also send "event:" or comment lines; only data matters
    if not line.startswith("data:"):
        return None
    return line[len("data:") :].strip()
