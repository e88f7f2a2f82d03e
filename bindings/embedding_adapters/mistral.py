"""Mistral AI embedding adapter.

Sends embedding requests to ``/v1/embeddings`` via httpx.
"""

from __future__ import annotations

from typing import Any

import httpx

from contracts.audit import AuditEvent, AuditLogger
from contracts.embedding import EmbeddingAdapter, EmbeddingList, EmbeddingRequest
from contracts.settings import MistralConfig

from bindings.errors import ErrorHandler, default_error_handler
from bindings.transport import JsonTransport

EMBEDDINGS_PATH = "/v1/embeddings"


class MistralEmbeddingAdapter(EmbeddingAdapter):
    """Async adapter for the Mistral /v1/embeddings endpoint."""

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

    def create_request(self, input: Any) -> EmbeddingRequest:
        """Build a request for *input* with the configured model and encoding."""
        defaults = self._config.embedding
        return EmbeddingRequest(
            input=input, model=defaults.model, encoding_format=defaults.encoding_format
        )

    async def embeddings(self, request: EmbeddingRequest) -> EmbeddingList:
        """Create embedding vectors for the request input."""
        if request is None:
            raise ValueError("The request body can not be null.")

        request_id = self._transport.new_request_id()
        self._transport.record(
            request_id, AuditEvent.REQUEST_START, operation="embeddings", model=request.model,
            input_kind=request.input_kind.value,
        )
        try:
            data = await self._transport.post_json(EMBEDDINGS_PATH, request.to_wire())
            result = EmbeddingList.model_validate(data)
        except Exception as exc:
            self._transport.record(
                request_id, AuditEvent.REQUEST_ERROR, operation="embeddings", model=request.model,
                error=str(exc), status_code=getattr(exc, "status_code", None),
            )
            raise

        self._transport.record(
            request_id, AuditEvent.REQUEST_END, operation="embeddings", model=result.model or request.model,
            usage=result.usage.model_dump() if result.usage else None,
            vectors=len(result.data),
        )
        return result

    def model_name(self) -> str:
        """Return the name of the configured embedding model."""
        return self._config.embedding.model
