"""OpenAI audio transcription adapter.

Uploads audio to ``/v1/audio/transcriptions`` as a multipart form via httpx.
"""

from __future__ import annotations

import httpx

from contracts.audit import AuditEvent, AuditLogger
from contracts.settings import OpenAiConfig
from contracts.transcription import (
    Transcript,
    TranscriptionAdapter,
    TranscriptionMetadata,
    TranscriptionOptions,
    TranscriptionRequest,
    TranscriptionResponse,
    TranscriptionResponseFormat,
)

from bindings.errors import ErrorHandler, default_error_handler
from bindings.transport import JsonTransport

TRANSCRIPTIONS_PATH = "/v1/audio/transcriptions"

# These formats come back as plain text rather than JSON.
_TEXT_FORMATS = {
    TranscriptionResponseFormat.TEXT,
    TranscriptionResponseFormat.SRT,
    TranscriptionResponseFormat.VTT,
}


class OpenAiTranscriptionAdapter(TranscriptionAdapter):
    """Async adapter for the OpenAI speech-to-text endpoint."""

    def __init__(
        self,
        config: OpenAiConfig | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        error_handler: ErrorHandler = default_error_handler,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._config = config or OpenAiConfig()
        self._transport = JsonTransport(
            self._config,
            provider="openai",
            http_client=http_client,
            error_handler=error_handler,
            audit_logger=audit_logger,
        )

    def options_for(self, request: TranscriptionRequest) -> TranscriptionOptions:
        """Per-request options laid over the configured defaults."""
        if request.options is None:
            return self._config.transcription
        return request.options.merged_over(self._config.transcription)

    async def transcribe(self, request: TranscriptionRequest) -> TranscriptionResponse:
        options = self.options_for(request)
        form = {
            key: str(value) for key, value in options.model_dump(mode="json", exclude_none=True).items()
        }
        files = {"file": (request.filename, request.audio)}

        request_id = self._transport.new_request_id()
        self._transport.record(
            request_id, AuditEvent.REQUEST_START, operation="transcription", model=options.model,
            audio_bytes=len(request.audio),
        )
        try:
            resp = await self._transport.post_multipart(TRANSCRIPTIONS_PATH, form, files)
            transcript = self._to_transcript(resp, options.response_format)
        except Exception as exc:
            self._transport.record(
                request_id, AuditEvent.REQUEST_ERROR, operation="transcription", model=options.model,
                error=str(exc), status_code=getattr(exc, "status_code", None),
            )
            raise

        self._transport.record(
            request_id, AuditEvent.REQUEST_END, operation="transcription", model=options.model,
            characters=len(transcript.text),
        )
        return TranscriptionResponse(results=[transcript])

    @staticmethod
    def _to_transcript(
        resp: httpx.Response, response_format: TranscriptionResponseFormat | None
    ) -> Transcript:
        if response_format in _TEXT_FORMATS:
            return Transcript(text=resp.text.strip())
        data = resp.json()
        return Transcript(
            text=data.get("text", ""),
            metadata=TranscriptionMetadata(
                language=data.get("language"),
                duration=data.get("duration"),
            ),
        )
