"""Command-execution surface over HTTP.

Commands carry an opaque JSON body. Single-shot execution returns the raw
JSON text; callback execution runs a blocking HTTP stream on a worker
thread and hands each ``data:`` payload to the callback from that thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
import threading

import httpx

from chat_bridge.backends.base import (
    CHAT_COMPLETIONS_COMMAND,
    ChunkCallback,
    CommandExecutor,
    CommandRequest,
)
from chat_bridge.backends.openai_compat import CHAT_PATH, DEFAULT_BASE_URL, parse_sse_data
from chat_bridge.errors import BackendError, UnsupportedFeatureError

_COMMAND_PATHS = {
    CHAT_COMPLETIONS_COMMAND: CHAT_PATH,
}


class HttpCommandExecutor(CommandExecutor):
    """Executes JSON commands against an OpenAI-compatible local server."""

    name = "http-command"
    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout_s: float = 60.0,
        http_client: httpx.AsyncClient | None = None,
        sync_client: httpx.Client | None = None,
    ) -> None:
        base = base_url or DEFAULT_BASE_URL
        self._client = http_client or httpx.AsyncClient(base_url=base, timeout=timeout_s)
        self._sync_client = sync_client or httpx.Client(base_url=base, timeout=timeout_s)
        self._headers = {"Content-Type": "application/json"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"

    async def aclose(self) -> None:
        await self._client.aclose()
        self._sync_client.close()

    def build_request(self, payload_json: str) -> CommandRequest | None:
        try:
            body = json.loads(payload_json)
        except (TypeError, json.JSONDecodeError) as exc:
            self._logger.debug("Cannot build command request: %s", exc)
            return None
        if not isinstance(body, dict):
            return None
        return CommandRequest(body=body)

    async def execute(self, command: str, request: CommandRequest) -> str | None:
        path = _command_path(command)

        try:
            response = await self._client.post(path, headers=self._headers, json=request.body)
        except httpx.HTTPError as exc:
            self._logger.warning("Command %r failed: %s", command, exc)
            return None
        if response.status_code >= 400:
            self._logger.warning(
                "Command %r returned status %s: %s", command, response.status_code, response.text
            )
            return None
        return response.text or None

    async def execute_with_callback(
        self,
        command: str,
        request: CommandRequest,
        on_chunk: ChunkCallback,
        stop_event: threading.Event,
    ) -> None:
        path = _command_path(command)
        body = dict(request.body)
        body["stream"] = True
        await asyncio.to_thread(self._stream_blocking, path, body, on_chunk, stop_event)

    def _stream_blocking(
        self,
        path: str,
        body: dict,
        on_chunk: ChunkCallback,
        stop_event: threading.Event,
    ) -> None:
        with self._sync_client.stream("POST", path, headers=self._headers, json=body) as response:
            if response.status_code >= 400:
                response.read()
                raise BackendError(
                    self.name,
                    response.text or response.reason_phrase,
                    status_code=response.status_code,
                )

            for line in response.iter_lines():
                if stop_event.is_set():
                    self._logger.debug("Command stream stopped by consumer")
                    return
                data_str = parse_sse_data(line)
                if not data_str:
                    continue
                if data_str == "[DONE]":
                    return
                on_chunk(data_str)


def _command_path(command: str) -> str:
    path = _COMMAND_PATHS.get(command)
    if path is None:
        raise UnsupportedFeatureError(f"command {command}")
    return path
