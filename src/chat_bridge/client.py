"""Async client routing chat requests across the two backend surfaces."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from collections.abc import AsyncIterator, Callable, Iterable

from chat_bridge.backends.base import CHAT_COMPLETIONS_COMMAND, ChunkCallback, CommandExecutor, CommandRequest
from chat_bridge.backends.models import BackendMessage, SamplingSettings
from chat_bridge.bridge import stream_from_callback
from chat_bridge.cancellation import iterate_cancellable, run_cancellable
from chat_bridge.context import BackendContext
from chat_bridge.errors import (
    CapabilityUnavailableError,
    ChatBridgeError,
    EmptyResultError,
    InvalidRequestError,
    PayloadBuildError,
    ProducerError,
    RequestCancelledError,
)
from chat_bridge.normalizer import normalize_response, normalize_update, parse_completion
from chat_bridge.options import translate_options
from chat_bridge.payload import build_payload
from chat_bridge.types import (
    ChatMessage,
    ChatOptions,
    ChatResponse,
    ChatResponseUpdate,
    DiagnosticEvent,
    DiagnosticKind,
)

DiagnosticHook = Callable[[DiagnosticEvent], None]

_logger = logging.getLogger(__name__)


class ChatClient:
    """Uniform chat interface over a typed backend and a command executor.

    Requests without tool semantics use the typed backend. Requests with tool
    semantics go through the command executor and fall back to the typed
    backend whenever that surface is missing or misbehaves; routing itself
    never fails.
    """

    def __init__(
        self,
        context: BackendContext,
        *,
        on_diagnostic: DiagnosticHook | None = None,
    ) -> None:
        self._context = context
        self._on_diagnostic = on_diagnostic

    @property
    def context(self) -> BackendContext:
        return self._context

    async def aclose(self) -> None:
        """Close the backends held by the context."""
        await self._context.aclose()

    async def get_response(
        self,
        messages: Iterable[ChatMessage],
        options: ChatOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> ChatResponse:
        """Return the completed answer for ``messages``."""

        msgs = _require_messages(messages)
        sampling, advanced = translate_options(options)

        if advanced:
            response = await self._send_advanced(msgs, options, cancel_event)
            if response is not None:
                return response

        return await self._send_standard(msgs, sampling, cancel_event)

    def get_streaming_response(
        self,
        messages: Iterable[ChatMessage],
        options: ChatOptions | None = None,
        *,
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[ChatResponseUpdate]:
        """Return a lazy, finite stream of updates for ``messages``.

        Each call starts a new producer. The stream ends on backend
        completion, cancellation, or early failure of the command executor.
        """

        msgs = _require_messages(messages)
        sampling, advanced = translate_options(options)

        async def _gen() -> AsyncIterator[ChatResponseUpdate]:
            if advanced:
                prepared = self._prepare_advanced(msgs, options)
                if prepared is not None:
                    executor, request = prepared
                    async with contextlib.aclosing(
                        self._stream_advanced(executor, request, cancel_event)
                    ) as chunks:
                        async for chunk in chunks:
                            yield normalize_update(chunk)
                    return

            async with contextlib.aclosing(self._stream_standard(msgs, sampling, cancel_event)) as raws:
                async for raw in raws:
                    yield normalize_update(raw)

        return _gen()

    # standard path

    async def _send_standard(
        self,
        messages: list[ChatMessage],
        sampling: SamplingSettings,
        cancel_event: asyncio.Event | None,
    ) -> ChatResponse:
        backend = self._context.chat_backend
        backend_messages = _to_backend_messages(messages)
        _logger.debug("Standard path: %d message(s) via %s", len(messages), backend.name)
        if cancel_event is not None and cancel_event.is_set():
            raise RequestCancelledError()
        # complete_chat snapshots the settings before returning its awaitable
        backend.apply_settings(sampling)
        pending = backend.complete_chat(backend_messages)
        raw = await run_cancellable(pending, cancel_event)
        return normalize_response(raw)

    def _stream_standard(
        self,
        messages: list[ChatMessage],
        sampling: SamplingSettings,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[object]:
        backend = self._context.chat_backend
        backend_messages = _to_backend_messages(messages)
        _logger.debug("Standard streaming path: %d message(s) via %s", len(messages), backend.name)
        backend.apply_settings(sampling)
        return iterate_cancellable(backend.complete_chat_streaming(backend_messages), cancel_event)

    # advanced path

    def _prepare_advanced(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None,
    ) -> tuple[CommandExecutor, CommandRequest] | None:
        executor = self._context.command_executor
        if executor is None:
            self._diagnose(
                "capability_unavailable",
                CapabilityUnavailableError("No command executor configured; tool directives dropped."),
            )
            return None

        payload = build_payload(messages, options, model_id=self._context.resolved_model_id)
        try:
            request = executor.build_request(payload.to_json())
        except Exception as exc:
            error = PayloadBuildError(f"{executor.name} rejected the payload: {exc}")
            error.__cause__ = exc
            self._diagnose("payload_build_failed", error)
            return None
        if request is None:
            self._diagnose(
                "payload_build_failed", PayloadBuildError(f"{executor.name} could not build a request.")
            )
            return None
        return executor, request

    async def _send_advanced(
        self,
        messages: list[ChatMessage],
        options: ChatOptions | None,
        cancel_event: asyncio.Event | None,
    ) -> ChatResponse | None:
        prepared = self._prepare_advanced(messages, options)
        if prepared is None:
            return None
        executor, request = prepared

        try:
            result = await run_cancellable(
                executor.execute(CHAT_COMPLETIONS_COMMAND, request), cancel_event
            )
        except RequestCancelledError:
            raise
        except Exception as exc:
            error = EmptyResultError(f"{executor.name} failed: {exc}")
            error.__cause__ = exc
            self._diagnose("execution_failed", error)
            return None

        completion = parse_completion(result)
        if completion is None:
            self._diagnose(
                "empty_result", EmptyResultError(f"{executor.name} returned no usable result.")
            )
            return None
        return normalize_response(completion)

    def _stream_advanced(
        self,
        executor: CommandExecutor,
        request: CommandRequest,
        cancel_event: asyncio.Event | None,
    ) -> AsyncIterator[object]:
        async def _produce(on_chunk: ChunkCallback, stop_event: threading.Event) -> None:
            await executor.execute_with_callback(CHAT_COMPLETIONS_COMMAND, request, on_chunk, stop_event)

        def _on_error(exc: BaseException) -> None:
            error = ProducerError(f"{executor.name} stream ended early: {exc}")
            error.__cause__ = exc
            self._diagnose("producer_failed", error)

        _logger.debug("Advanced streaming path via %s", executor.name)
        return stream_from_callback(_produce, cancel_event=cancel_event, on_error=_on_error)

    def _diagnose(self, kind: DiagnosticKind, error: ChatBridgeError) -> None:
        _logger.warning("%s: %s", kind, error)
        if self._on_diagnostic is None:
            return
        try:
            self._on_diagnostic(DiagnosticEvent(kind=kind, message=str(error), error=error))
        except Exception:
            _logger.exception("Diagnostic hook raised")


def _require_messages(messages: Iterable[ChatMessage] | None) -> list[ChatMessage]:
    if messages is None:
        raise InvalidRequestError("messages must not be None")
    msgs = list(messages)
    for m in msgs:
        if not isinstance(m, ChatMessage):
            raise InvalidRequestError(f"Expected ChatMessage, got {type(m).__name__}")
    return msgs


def _to_backend_messages(messages: list[ChatMessage]) -> list[BackendMessage]:
    return [BackendMessage(role=m.role, content=m.text) for m in messages]
