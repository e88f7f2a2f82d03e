"""Mistral AI chat completion adapter.

Synchronous and streaming calls to ``/v1/chat/completions`` via httpx.
Streams are server-sent events terminated by ``data: [DONE]``.
"""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator, Sequence

import httpx

from contracts.audit import AuditEvent, AuditLogger
from contracts.chat import (
    ChatCompletion,
    ChatCompletionChunk,
    ChatCompletionMessage,
    ChatCompletionRequest,
)
from contracts.settings import MistralConfig

from bindings.errors import ErrorHandler, StreamDecodeError, default_error_handler
from bindings.sse import StreamDecoder, iter_sse_data
from bindings.transport import JsonTransport

log = logging.getLogger(__name__)

CHAT_COMPLETIONS_PATH = "/v1/chat/completions"


class MistralChatAdapter:
    """Async client for the Mistral chat completion endpoint."""

    def __init__(
        self,
        config: MistralConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        error_handler: ErrorHandler = default_error_handler,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._config = config or MistralConfig()
        self._transport = JsonTransport(
            self._config,
            provider="mistral",
            http_client=http_client,
            error_handler=error_handler,
            audit_logger=audit_logger,
        )

    def create_request(
        self,
        messages: Sequence[ChatCompletionMessage],
        *,
        stream: bool = False,
        **overrides: Any,
    ) -> ChatCompletionRequest:
        """Build a request from the configured chat defaults."""
        fields: dict[str, Any] = self._config.chat.model_dump()
        fields.update(overrides)
        return ChatCompletionRequest(messages=list(messages), stream=stream, **fields)

    async def chat_completion(self, request: ChatCompletionRequest) -> ChatCompletion:
        """Send a non-streaming request and return the full completion."""
        if request is None:
            raise ValueError("The request body can not be null.")
        if request.stream:
            raise ValueError("Request must set the stream property to false.")

        request = self._with_model(request)
        request_id = self._transport.new_request_id()
        self._transport.record(
            request_id, AuditEvent.REQUEST_START, operation="chat", model=request.model,
            messages=len(request.messages),
        )
        try:
            data = await self._transport.post_json(CHAT_COMPLETIONS_PATH, request.to_wire())
            completion = ChatCompletion.model_validate(data)
        except Exception as exc:
            self._transport.record(
                request_id, AuditEvent.REQUEST_ERROR, operation="chat", model=request.model,
                error=str(exc), status_code=getattr(exc, "status_code", None),
            )
            raise

        self._transport.record(
            request_id, AuditEvent.REQUEST_END, operation="chat", model=completion.model or request.model,
            usage=completion.usage.model_dump() if completion.usage else None,
            finish_reasons=[c.finish_reason.value for c in completion.choices if c.finish_reason],
        )
        return completion

    def chat_completion_stream(
        self, request: ChatCompletionRequest
    ) -> AsyncIterator[ChatCompletionChunk]:
        """Send a streaming request and return its chunks as an async iterator.

        The request is checked here, before any network call. Close the
        iterator (``aclose()``) to abandon the stream and release the
        connection.
        """
        if request is None:
            raise ValueError("The request body can not be null.")
        if not request.stream:
            raise ValueError("Request must set the stream property to true.")
        return self._stream(self._with_model(request))

    async def _stream(self, request: ChatCompletionRequest) -> AsyncIterator[ChatCompletionChunk]:
        request_id = self._transport.new_request_id()
        self._transport.record(
            request_id, AuditEvent.REQUEST_START, operation="chat.stream", model=request.model,
            messages=len(request.messages),
        )

        decoder = StreamDecoder()
        lines = self._transport.stream_lines(CHAT_COMPLETIONS_PATH, request.to_wire())
        frames = iter_sse_data(lines)
        chunks = decoder.decode(frames)
        usage: dict[str, Any] | None = None
        try:
            async for chunk in chunks:
                if chunk.usage is not None:
                    usage = chunk.usage.model_dump()
                yield chunk
        except StreamDecodeError as exc:
            self._transport.record(
                request_id, AuditEvent.DECODE_ERROR, operation="chat.stream", model=request.model,
                error=str(exc), chunks=decoder.chunk_count,
            )
            raise
        except GeneratorExit:
            self._transport.record(
                request_id, AuditEvent.STREAM_END, operation="chat.stream", model=request.model,
                termination="abandoned", chunks=decoder.chunk_count, usage=usage,
            )
            raise
        except Exception as exc:
            self._transport.record(
                request_id, AuditEvent.REQUEST_ERROR, operation="chat.stream", model=request.model,
                error=str(exc), status_code=getattr(exc, "status_code", None),
            )
            raise
        finally:
            await chunks.aclose()
            await frames.aclose()
            await lines.aclose()

        termination = decoder.termination.value if decoder.termination else ""
        log.debug("stream %s ended (%s) after %d chunks", request_id, termination, decoder.chunk_count)
        self._transport.record(
            request_id, AuditEvent.STREAM_END, operation="chat.stream", model=request.model,
            termination=termination, chunks=decoder.chunk_count, usage=usage,
        )

    def _with_model(self, request: ChatCompletionRequest) -> ChatCompletionRequest:
        if request.model is not None:
            return request
        return request.model_copy(update={"model": self._config.chat.model})
