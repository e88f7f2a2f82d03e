"""Audio transcription contracts (OpenAI ``/v1/audio/transcriptions``)."""

from __future__ import annotations

from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"


class TranscriptionResponseFormat(str, Enum):
    JSON = "json"
    TEXT = "text"
    SRT = "srt"
    VERBOSE_JSON = "verbose_json"
    VTT = "vtt"


class TranscriptionOptions(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: str | None = None
    temperature: float | None = None
    response_format: TranscriptionResponseFormat | None = None
    language: str | None = None  # ISO-639-1
    prompt: str | None = None

    def merged_over(self, defaults: TranscriptionOptions) -> TranscriptionOptions:
        """Return these options with unset fields taken from *defaults*."""
        base = defaults.model_dump(exclude_none=True)
        base.update(self.model_dump(exclude_none=True))
        return TranscriptionOptions(**base)


class TranscriptionRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    audio: bytes
    filename: str = "audio"
    options: TranscriptionOptions | None = None

    @classmethod
    def from_path(
        cls, path: str | Path, options: TranscriptionOptions | None = None
    ) -> TranscriptionRequest:
        p = Path(path)
        if not p.exists():
            raise FileNotFoundError(f"Audio file not found: {path}")
        return cls(audio=p.read_bytes(), filename=p.name, options=options)


class TranscriptionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    language: str | None = None
    duration: float | None = None


class Transcript(BaseModel):
    model_config = ConfigDict(frozen=True)

    text: str
    metadata: TranscriptionMetadata = TranscriptionMetadata()


class TranscriptionResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    results: list[Transcript]

    @property
    def result(self) -> Transcript:
        return self.results[0]


class TranscriptionAdapter(ABC):
    """Abstract base class for speech-to-text backends."""

    @abstractmethod
    async def transcribe(self, request: TranscriptionRequest) -> TranscriptionResponse:
        """Transcribe one audio file."""
        ...
