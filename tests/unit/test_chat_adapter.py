"""Unit tests for the Mistral chat completion adapter (httpx MockTransport)."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, AsyncIterator, Callable

import httpx
import pytest

from contracts.audit import AuditEvent
from contracts.chat import ChatCompletionMessage, ChatCompletionRequest, FinishReason, Role
from contracts.settings import ChatDefaults, MistralConfig
from bindings.audit.logger import JsonlAuditLogger
from bindings.errors import ApiResponseError, StreamDecodeError
from bindings.model_adapters.mistral import MistralChatAdapter


# ── helpers ─────────────────────────────────────────────────────────


class _TrackingStream(httpx.AsyncByteStream):
    """Response body that records whether it was closed."""

    def __init__(self, parts: list[bytes]) -> None:
        self._parts = parts
        self.closed = False

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for part in self._parts:
            yield part

    async def aclose(self) -> None:
        self.closed = True


def _adapter(
    handler: Callable[[httpx.Request], Any], **kwargs: Any
) -> MistralChatAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MistralChatAdapter(MistralConfig(api_key="test-key"), http_client=client, **kwargs)


def _messages() -> list[ChatCompletionMessage]:
    return [
        ChatCompletionMessage(role=Role.SYSTEM, content="Be brief."),
        ChatCompletionMessage(role=Role.USER, content="Hi"),
    ]


def _completion(content: str = "Hello!") -> dict[str, Any]:
    return {
        "id": "cmpl-1",
        "object": "chat.completion",
        "created": 1711000000,
        "model": "mistral-small-latest",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ],
        "usage": {"prompt_tokens": 9, "total_tokens": 12, "completion_tokens": 3},
    }


def _sse(chunk_id: str, *contents: str, done: bool = True) -> bytes:
    events = []
    for i, content in enumerate(contents):
        finish = "stop" if i == len(contents) - 1 else None
        payload = {
            "id": chunk_id,
            "object": "chat.completion.chunk",
            "created": 1711000000,
            "model": "mistral-small-latest",
            "choices": [{"index": 0, "delta": {"content": content}, "finish_reason": finish}],
        }
        events.append(f"data: {json.dumps(payload)}\n\n")
    if done:
        events.append("data: [DONE]\n\n")
    return "".join(events).encode()


def _event_stream(body: bytes) -> httpx.Response:
    return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})


# ── synchronous exchange ────────────────────────────────────────────


class TestChatCompletion:
    @pytest.mark.asyncio
    async def test_returns_full_completion(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=_completion())

        adapter = _adapter(handler)
        completion = await adapter.chat_completion(
            ChatCompletionRequest(messages=_messages(), model="mistral-small-latest")
        )

        assert completion.choices[0].message.content == "Hello!"
        assert completion.choices[0].finish_reason == FinishReason.STOP
        assert completion.usage.total_tokens == 12

        assert len(seen) == 1
        req = seen[0]
        assert req.method == "POST"
        assert str(req.url) == "https://api.mistral.ai/v1/chat/completions"
        assert req.headers["authorization"] == "Bearer test-key"
        assert req.headers["content-type"] == "application/json"
        body = json.loads(req.content)
        assert body["stream"] is False
        assert body["messages"][0] == {"role": "system", "content": "Be brief."}

    @pytest.mark.asyncio
    async def test_stream_flag_true_is_rejected_before_sending(self) -> None:
        calls: list[httpx.Request] = []
        adapter = _adapter(lambda r: calls.append(r) or httpx.Response(200, json=_completion()))

        with pytest.raises(ValueError, match="stream property to false"):
            await adapter.chat_completion(
                ChatCompletionRequest(messages=_messages(), model="m", stream=True)
            )
        assert calls == []

    @pytest.mark.asyncio
    async def test_missing_model_uses_configured_default(self) -> None:
        bodies: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json=_completion())

        await _adapter(handler).chat_completion(ChatCompletionRequest(messages=_messages()))
        assert bodies[0]["model"] == "mistral-small-latest"

    @pytest.mark.asyncio
    async def test_error_status_goes_to_default_handler(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(401, text="Unauthorized"))

        with pytest.raises(ApiResponseError) as exc_info:
            await adapter.chat_completion(ChatCompletionRequest(messages=_messages(), model="m"))
        assert exc_info.value.status_code == 401
        assert "Unauthorized" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_custom_error_handler(self) -> None:
        class Boom(Exception):
            pass

        handled: list[int] = []

        def handler(response: httpx.Response) -> None:
            handled.append(response.status_code)
            if response.status_code >= 400:
                raise Boom(response.text)

        adapter = _adapter(lambda r: httpx.Response(429, text="slow down"), error_handler=handler)
        with pytest.raises(Boom, match="slow down"):
            await adapter.chat_completion(ChatCompletionRequest(messages=_messages(), model="m"))
        assert handled == [429]

    @pytest.mark.asyncio
    async def test_audit_records_start_and_end(self, tmp_path: Path) -> None:
        audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
        adapter = _adapter(lambda r: httpx.Response(200, json=_completion()), audit_logger=audit)

        await adapter.chat_completion(ChatCompletionRequest(messages=_messages(), model="m"))

        entries = audit.tail()
        assert [e.event for e in entries] == [AuditEvent.REQUEST_START, AuditEvent.REQUEST_END]
        assert entries[0].request_id == entries[1].request_id
        assert entries[1].detail["usage"]["total_tokens"] == 12
        assert entries[1].detail["finish_reasons"] == ["stop"]
        assert entries[1].provider == "mistral"

    @pytest.mark.asyncio
    async def test_audit_records_errors(self, tmp_path: Path) -> None:
        audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
        adapter = _adapter(lambda r: httpx.Response(500, text="oops"), audit_logger=audit)

        with pytest.raises(ApiResponseError):
            await adapter.chat_completion(ChatCompletionRequest(messages=_messages(), model="m"))

        last = audit.tail(1)[0]
        assert last.event == AuditEvent.REQUEST_ERROR
        assert last.detail["status_code"] == 500

    @pytest.mark.asyncio
    async def test_malformed_success_body_is_audited_as_error(self, tmp_path: Path) -> None:
        audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
        adapter = _adapter(lambda r: httpx.Response(200, json={"unexpected": True}), audit_logger=audit)

        with pytest.raises(ValueError):
            await adapter.chat_completion(ChatCompletionRequest(messages=_messages(), model="m"))

        entries = audit.tail()
        assert [e.event for e in entries] == [AuditEvent.REQUEST_START, AuditEvent.REQUEST_ERROR]
        assert entries[1].detail["status_code"] is None

    @pytest.mark.asyncio
    async def test_null_request_is_rejected(self) -> None:
        calls: list[httpx.Request] = []
        adapter = _adapter(lambda r: calls.append(r) or httpx.Response(200, json=_completion()))

        with pytest.raises(ValueError, match="request body can not be null"):
            await adapter.chat_completion(None)
        assert calls == []


class TestCreateRequest:
    def test_uses_configured_defaults(self) -> None:
        config = MistralConfig(
            api_key="k", chat=ChatDefaults(model="mistral-large-latest", temperature=0.1, max_tokens=64)
        )
        adapter = MistralChatAdapter(config)
        req = adapter.create_request(_messages())
        assert req.model == "mistral-large-latest"
        assert req.temperature == 0.1
        assert req.max_tokens == 64
        assert req.stream is False

    def test_overrides_win(self) -> None:
        adapter = MistralChatAdapter(MistralConfig(api_key="k"))
        req = adapter.create_request(_messages(), stream=True, model="open-mistral-7b", random_seed=3)
        assert req.model == "open-mistral-7b"
        assert req.random_seed == 3
        assert req.stream is True

    def test_missing_api_key_fails_at_construction(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("MISTRAL_API_KEY", raising=False)
        with pytest.raises(ValueError, match="No API key"):
            MistralChatAdapter(MistralConfig())


# ── streaming exchange ──────────────────────────────────────────────


class TestChatCompletionStream:
    @pytest.mark.asyncio
    async def test_yields_chunks_until_sentinel(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _event_stream(_sse("c1", "Hel", "lo"))

        adapter = _adapter(handler)
        request = ChatCompletionRequest(messages=_messages(), model="m", stream=True)
        chunks = [c async for c in adapter.chat_completion_stream(request)]

        assert [c.id for c in chunks] == ["c1", "c1"]
        assert "".join(c.choices[0].delta.content for c in chunks) == "Hello"
        assert chunks[0].choices[0].finish_reason is None
        assert chunks[-1].choices[0].finish_reason == FinishReason.STOP
        assert json.loads(seen[0].content)["stream"] is True
        assert seen[0].headers["accept"] == "text/event-stream"

    def test_stream_flag_false_is_rejected_immediately(self) -> None:
        adapter = _adapter(lambda r: _event_stream(_sse("c1", "x")))
        with pytest.raises(ValueError, match="stream property to true"):
            adapter.chat_completion_stream(ChatCompletionRequest(messages=_messages(), model="m"))

    def test_null_request_is_rejected_immediately(self) -> None:
        adapter = _adapter(lambda r: _event_stream(_sse("c1", "x")))
        with pytest.raises(ValueError, match="request body can not be null"):
            adapter.chat_completion_stream(None)

    @pytest.mark.asyncio
    async def test_transport_close_without_sentinel(self, tmp_path: Path) -> None:
        audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
        adapter = _adapter(lambda r: _event_stream(_sse("c2", "a", "b", done=False)), audit_logger=audit)
        request = ChatCompletionRequest(messages=_messages(), model="m", stream=True)

        chunks = [c async for c in adapter.chat_completion_stream(request)]

        assert len(chunks) == 2
        end = audit.tail(1)[0]
        assert end.event == AuditEvent.STREAM_END
        assert end.detail["termination"] == "transport_close"
        assert end.detail["chunks"] == 2

    @pytest.mark.asyncio
    async def test_sentinel_termination_is_audited(self, tmp_path: Path) -> None:
        audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
        adapter = _adapter(lambda r: _event_stream(_sse("c3", "a")), audit_logger=audit)
        request = ChatCompletionRequest(messages=_messages(), model="m", stream=True)

        [c async for c in adapter.chat_completion_stream(request)]

        events = [e.event for e in audit.tail()]
        assert events == [AuditEvent.REQUEST_START, AuditEvent.STREAM_END]
        assert audit.tail(1)[0].detail["termination"] == "sentinel"

    @pytest.mark.asyncio
    async def test_decode_error_fails_the_stream(self, tmp_path: Path) -> None:
        audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
        body = _sse("c4", "ok", done=False) + b"data: {broken\n\ndata: [DONE]\n\n"
        adapter = _adapter(lambda r: _event_stream(body), audit_logger=audit)
        request = ChatCompletionRequest(messages=_messages(), model="m", stream=True)

        received = []
        with pytest.raises(StreamDecodeError):
            async for chunk in adapter.chat_completion_stream(request):
                received.append(chunk)

        assert len(received) == 1
        last = audit.tail(1)[0]
        assert last.event == AuditEvent.DECODE_ERROR
        assert last.detail["chunks"] == 1

    @pytest.mark.asyncio
    async def test_error_status_on_stream(self) -> None:
        adapter = _adapter(lambda r: httpx.Response(400, text="bad request"))
        request = ChatCompletionRequest(messages=_messages(), model="m", stream=True)

        with pytest.raises(ApiResponseError) as exc_info:
            async for _ in adapter.chat_completion_stream(request):
                pass
        assert exc_info.value.status_code == 400
        assert exc_info.value.body == "bad request"

    @pytest.mark.asyncio
    async def test_abandoning_the_stream_closes_the_response(self, tmp_path: Path) -> None:
        audit = JsonlAuditLogger(tmp_path / "audit.jsonl")
        body = _TrackingStream([_sse("c5", "a", "b", "c")])

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, stream=body, headers={"content-type": "text/event-stream"})

        adapter = _adapter(handler, audit_logger=audit)
        stream = adapter.chat_completion_stream(
            ChatCompletionRequest(messages=_messages(), model="m", stream=True)
        )
        first = await stream.__anext__()
        await stream.aclose()

        assert first.id == "c5"
        assert body.closed
        end = audit.tail(1)[0]
        assert end.event == AuditEvent.STREAM_END
        assert end.detail["termination"] == "abandoned"

    @pytest.mark.asyncio
    async def test_concurrent_streams_are_independent(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            model = json.loads(request.content)["model"]
            return _event_stream(_sse(f"id-{model}", "x", "y", "z"))

        adapter = _adapter(handler)

        async def collect(model: str) -> list[str]:
            request = ChatCompletionRequest(messages=_messages(), model=model, stream=True)
            return [c.id async for c in adapter.chat_completion_stream(request)]

        a, b = await asyncio.gather(collect("one"), collect("two"))
        assert a == ["id-one"] * 3
        assert b == ["id-two"] * 3
