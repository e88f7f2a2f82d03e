"""Server-sent-event decoding for streamed chat completions.

The provider sends one JSON ``ChatCompletionChunk`` per event ``data:``
payload and finishes with the literal payload ``[DONE]``.
"""

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Iterable, Iterator

from pydantic import ValidationError

from contracts.audit import StreamTermination
from contracts.chat import ChatCompletionChunk

from bindings.errors import StreamDecodeError

SENTINEL = "[DONE]"


async def iter_sse_data(lines: AsyncIterable[str]) -> AsyncIterator[str]:
    """Group raw SSE lines into events and yield each event's data payload.

    Multi-line data is joined with ``\\n``; comments and non-data fields are
    skipped. A trailing event without a blank line is still yielded.
    """
    data: list[str] = []
    async for line in lines:
        if not line:
            if data:
                yield "\n".join(data)
                data = []
            continue
        if line.startswith(":"):
            continue
        field, _, value = line.partition(":")
        if field != "data":
            continue
        if value.startswith(" "):
            value = value[1:]
        data.append(value)
    if data:
        yield "\n".join(data)


class StreamDecoder:
    """Turns the data frames of a single stream into typed chunks.

    Use one instance per stream. ``termination`` stays ``None`` while the
    stream is active and is set once it ends.
    """

    def __init__(self) -> None:
        self.termination: StreamTermination | None = None
        self.chunk_count = 0

    async def decode(self, frames: AsyncIterable[str]) -> AsyncIterator[ChatCompletionChunk]:
        async for frame in frames:
            chunk = self._step(frame)
            if chunk is None:
                return
            yield chunk
        self.termination = StreamTermination.TRANSPORT_CLOSE

    def decode_frames(self, frames: Iterable[str]) -> Iterator[ChatCompletionChunk]:
        for frame in frames:
            chunk = self._step(frame)
            if chunk is None:
                return
            yield chunk
        self.termination = StreamTermination.TRANSPORT_CLOSE

    def _step(self, frame: str) -> ChatCompletionChunk | None:
        if frame == SENTINEL:
            self.termination = StreamTermination.SENTINEL
            return None
        try:
            chunk = parse_chunk(frame)
        except StreamDecodeError:
            self.termination = StreamTermination.DECODE_ERROR
            raise
        self.chunk_count += 1
        return chunk


def parse_chunk(frame: str) -> ChatCompletionChunk:
    """Parse one event payload, raising ``StreamDecodeError`` on bad input."""
    try:
        return ChatCompletionChunk.model_validate_json(frame)
    except ValidationError as exc:
        errors = exc.errors()
        reason = errors[0]["msg"] if errors else str(exc)
        raise StreamDecodeError(frame, reason) from exc


def decode_stream(frames: AsyncIterable[str]) -> AsyncIterator[ChatCompletionChunk]:
    """Lazily decode *frames* until the sentinel or the end of input."""
    return StreamDecoder().decode(frames)


def decode_frames(frames: Iterable[str]) -> Iterator[ChatCompletionChunk]:
    """Synchronous counterpart of ``decode_stream``."""
    return StreamDecoder().decode_frames(frames)
