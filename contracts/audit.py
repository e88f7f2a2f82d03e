"""Exchange audit contracts.

Append-only JSONL, one record per event of a provider call.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class AuditEvent(str, Enum):
    REQUEST_START = "request.start"
    REQUEST_END = "request.end"
    REQUEST_ERROR = "request.error"
    STREAM_END = "stream.end"
    DECODE_ERROR = "stream.decode_error"


class StreamTermination(str, Enum):
    """How a streamed completion ended."""

    SENTINEL = "sentinel"
    TRANSPORT_CLOSE = "transport_close"
    DECODE_ERROR = "decode_error"


class AuditEntry(BaseModel):
    """A single audit log record."""

    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    request_id: str
    event: AuditEvent
    operation: str = ""  # "chat", "chat.stream", "embeddings", "transcription"
    provider: str = ""
    model: str = ""
    detail: dict[str, Any] = {}  # usage, finish reasons, status code, etc.


class AuditLogger(ABC):
    """Interface for the append-only audit logger."""

    @abstractmethod
    def log(self, entry: AuditEntry) -> None:
        """Append an entry to the audit log."""
        ...

    @abstractmethod
    def query_by_request(self, request_id: str) -> list[AuditEntry]:
        """Return all entries for a given request_id."""
        ...

    @abstractmethod
    def tail(self, n: int = 20) -> list[AuditEntry]:
        """Return the last N entries."""
        ...
