import asyncio
import json
import threading
import unittest

import httpx

from chat_bridge.backends.command import HttpCommandExecutor
from chat_bridge.backends.models import BackendMessage, ChatCompletion, SamplingSettings
from chat_bridge.backends.openai_compat import OpenAICompatibleBackend, parse_sse_data
from chat_bridge.errors import BackendError, UnsupportedFeatureError

BASE_URL = "http://local-model.test"

COMPLETION = {
    "id": "chatcmpl-1",
    "object": "chat.completion",
    "model": "phi-4-mini",
    "choices": [{"index": 0, "message": {"role": "assistant", "content": "Paris."}, "finish_reason": "stop"}],
    "usage": {"prompt_tokens": 5, "completion_tokens": 2, "total_tokens": 7},
}

SSE_BODY = (
    'data: {"choices":[{"index":0,"delta":{"role":"assistant","content":""}}]}\n\n'
    ": keep-alive\n\n"
    'data: {"choices":[{"index":0,"delta":{"content":"Par"}}]}\n\n'
    "data: not-json\n\n"
    'data: {"choices":[{"index":0,"delta":{"content":"is."}}]}\n\n'
    "data: [DONE]\n\n"
    'data: {"choices":[{"index":0,"delta":{"content":"ignored"}}]}\n\n'
).encode()


class Recorder:
    def __init__(self, response: httpx.Response) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    def body(self, index: int = 0) -> dict:
        return json.loads(self.requests[index].content)


def _async_client(recorder: Recorder) -> httpx.AsyncClient:
    return httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(recorder))


def _sync_client(recorder: Recorder) -> httpx.Client:
    return httpx.Client(base_url=BASE_URL, transport=httpx.MockTransport(recorder))


def _sse_response() -> httpx.Response:
    return httpx.Response(200, content=SSE_BODY, headers={"content-type": "text/event-stream"})


class OpenAICompatibleBackendTests(unittest.TestCase):
    def test_complete_chat_sends_settings_and_parses_typed_result(self) -> None:
        recorder = Recorder(httpx.Response(200, json=COMPLETION))
        backend = OpenAICompatibleBackend(model_id="phi-4-mini", api_key="k", http_client=_async_client(recorder))
        backend.apply_settings(SamplingSettings(temperature=0.1, max_tokens=32))

        result = asyncio.run(backend.complete_chat([BackendMessage(role="user", content="Capital of France?")]))

        self.assertIsInstance(result, ChatCompletion)
        self.assertEqual(result.choices[0].message.content, "Paris.")
        self.assertEqual(recorder.requests[0].url.path, "/v1/chat/completions")
        self.assertEqual(recorder.requests[0].headers["Authorization"], "Bearer k")
        self.assertEqual(
            recorder.body(),
            {
                "model": "phi-4-mini",
                "messages": [{"role": "user", "content": "Capital of France?"}],
                "temperature": 0.1,
                "max_tokens": 32,
            },
        )

    def test_complete_chat_captures_settings_at_call_time(self) -> None:
        recorder = Recorder(httpx.Response(200, json=COMPLETION))
        backend = OpenAICompatibleBackend(model_id="m", http_client=_async_client(recorder))
        backend.apply_settings(SamplingSettings(temperature=0.1))
        pending = backend.complete_chat([])
        backend.apply_settings(SamplingSettings(temperature=0.9))

        async def finish() -> ChatCompletion:
            return await pending

        asyncio.run(finish())
        self.assertEqual(recorder.body()["temperature"], 0.1)

    def test_error_status_raises_backend_error(self) -> None:
        recorder = Recorder(httpx.Response(500, text="model not loaded"))
        backend = OpenAICompatibleBackend(model_id="m", http_client=_async_client(recorder))
        with self.assertRaises(BackendError) as ctx:
            asyncio.run(backend.complete_chat([]))
        self.assertEqual(ctx.exception.status_code, 500)

    def test_streaming_parses_sse_chunks(self) -> None:
        recorder = Recorder(_sse_response())
        backend = OpenAICompatibleBackend(model_id="m", http_client=_async_client(recorder))

        async def collect() -> list[ChatCompletion]:
            return [c async for c in backend.complete_chat_streaming([BackendMessage(role="user", content="q")])]

        chunks = asyncio.run(collect())
        self.assertEqual([c.choices[0].delta.content for c in chunks], ["", "Par", "is."])
        self.assertIs(recorder.body()["stream"], True)

    def test_streaming_captures_settings_at_call_time(self) -> None:
        recorder = Recorder(_sse_response())
        backend = OpenAICompatibleBackend(model_id="m", http_client=_async_client(recorder))
        backend.apply_settings(SamplingSettings(top_k=5))
        stream = backend.complete_chat_streaming([])
        backend.apply_settings(SamplingSettings(top_k=9))

        async def drain() -> None:
            async for _ in stream:
                pass

        asyncio.run(drain())
        self.assertEqual(recorder.body()["top_k"], 5)

    def test_streaming_error_status(self) -> None:
        recorder = Recorder(httpx.Response(404, text="no such model"))
        backend = OpenAICompatibleBackend(model_id="m", http_client=_async_client(recorder))

        async def drain() -> None:
            async for _ in backend.complete_chat_streaming([]):
                pass

        with self.assertRaises(BackendError):
            asyncio.run(drain())

    def test_parse_sse_data(self) -> None:
        self.assertEqual(parse_sse_data("data: {}"), "{}")
        self.assertEqual(parse_sse_data("  data:[DONE] "), "[DONE]")
        self.assertIsNone(parse_sse_data("event: message"))
        self.assertIsNone(parse_sse_data(""))


class HttpCommandExecutorTests(unittest.TestCase):
    def make_executor(self, recorder: Recorder) -> HttpCommandExecutor:
        return HttpCommandExecutor(
            http_client=_async_client(recorder),
            sync_client=_sync_client(recorder),
        )

    def test_build_request(self) -> None:
        executor = self.make_executor(Recorder(httpx.Response(200)))
        request = executor.build_request('{"model": "m", "messages": []}')
        self.assertIsNotNone(request)
        self.assertEqual(request.body, {"model": "m", "messages": []})
        self.assertIsNone(executor.build_request("{broken"))
        self.assertIsNone(executor.build_request("[1, 2]"))

    def test_execute_returns_raw_json(self) -> None:
        recorder = Recorder(httpx.Response(200, json=COMPLETION))
        executor = self.make_executor(recorder)
        request = executor.build_request('{"model": "m", "tools": []}')

        result = asyncio.run(executor.execute("chat_completions", request))

        self.assertEqual(json.loads(result), COMPLETION)
        self.assertEqual(recorder.body(), {"model": "m", "tools": []})

    def test_execute_error_status_returns_none(self) -> None:
        executor = self.make_executor(Recorder(httpx.Response(503, text="busy")))
        request = executor.build_request("{}")
        self.assertIsNone(asyncio.run(executor.execute("chat_completions", request)))

    def test_unknown_command_rejected_on_both_paths(self) -> None:
        recorder = Recorder(httpx.Response(200, json=COMPLETION))
        executor = self.make_executor(recorder)
        request = executor.build_request("{}")
        with self.assertRaises(UnsupportedFeatureError):
            asyncio.run(executor.execute("embeddings", request))
        with self.assertRaises(UnsupportedFeatureError):
            asyncio.run(executor.execute_with_callback("embeddings", request, lambda c: None, threading.Event()))
        self.assertEqual(recorder.requests, [])

    def test_execute_transport_error_returns_none(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        executor = HttpCommandExecutor(
            http_client=httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(refuse))
        )
        self.assertIsNone(asyncio.run(executor.execute("chat_completions", executor.build_request("{}"))))

    def test_execute_with_callback_calls_back_from_worker_thread(self) -> None:
        recorder = Recorder(_sse_response())
        executor = self.make_executor(recorder)
        request = executor.build_request('{"model": "m"}')
        received: list[str] = []
        threads: set[int] = set()

        def on_chunk(chunk: str) -> None:
            threads.add(threading.get_ident())
            received.append(chunk)

        asyncio.run(executor.execute_with_callback("chat_completions", request, on_chunk, threading.Event()))

        self.assertEqual(len(received), 4)
        self.assertEqual(received[2], "not-json")
        self.assertNotIn(threading.get_ident(), threads)
        self.assertIs(recorder.body()["stream"], True)
        self.assertNotIn("stream", request.body)

    def test_execute_with_callback_honours_stop_event(self) -> None:
        executor = self.make_executor(Recorder(_sse_response()))
        stop = threading.Event()
        received: list[str] = []

        def on_chunk(chunk: str) -> None:
            received.append(chunk)
            stop.set()

        asyncio.run(executor.execute_with_callback("chat_completions", executor.build_request("{}"), on_chunk, stop))
        self.assertEqual(len(received), 1)

    def test_execute_with_callback_errors(self) -> None:
        executor = self.make_executor(Recorder(httpx.Response(500, text="boom")))
        request = executor.build_request("{}")
        with self.assertRaises(BackendError):
            asyncio.run(executor.execute_with_callback("chat_completions", request, lambda c: None, threading.Event()))


if __name__ == "__main__":
    unittest.main()
