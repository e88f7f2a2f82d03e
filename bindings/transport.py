"""Shared httpx transport for the provider adapters.

Sets the bearer and JSON headers once from a ``ClientConfig``, borrows an
injected ``httpx.AsyncClient`` (or opens one per call), hands every non-2xx
response to the injected error handler and records the exchange in the audit
log when one is configured.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

import httpx

from contracts.audit import AuditEntry, AuditEvent, AuditLogger
from contracts.settings import ClientConfig

from bindings.errors import ErrorHandler, default_error_handler

log = logging.getLogger(__name__)


class JsonTransport:
    """POSTs JSON (or multipart) bodies to one provider base URL."""

    def __init__(
        self,
        config: ClientConfig,
        *,
        provider: str,
        http_client: httpx.AsyncClient | None = None,
        error_handler: ErrorHandler = default_error_handler,
        audit_logger: AuditLogger | None = None,
    ) -> None:
        self._config = config
        self._provider = provider
        self._base_url = config.base_url.rstrip("/")
        self._api_key = config.resolve_api_key()
        self._http_client = http_client
        self._error_handler = error_handler
        self._audit = audit_logger

    @property
    def base_url(self) -> str:
        return self._base_url

    def headers(self, *, json_body: bool = True) -> dict[str, str]:
        headers = {"Authorization": f"Bearer {self._api_key}"}
        if json_body:
            headers["Content-Type"] = "application/json"
        return headers

    # ── exchanges ───────────────────────────────────────────────────

    async def post_json(self, path: str, payload: dict[str, Any]) -> Any:
        """POST *payload* and return the decoded JSON response body."""
        url = f"{self._base_url}{path}"
        log.debug("POST %s", url)
        try:
            async with self._client() as client:
                resp = await client.post(url, json=payload, headers=self.headers())
        except httpx.ConnectError as exc:
            raise RuntimeError(f"Cannot connect to {self._base_url}: {exc}") from exc

        self._error_handler(resp)
        return resp.json()

    async def post_multipart(
        self, path: str, data: dict[str, str], files: dict[str, tuple[str, bytes]]
    ) -> httpx.Response:
        """POST a multipart form and return the checked response."""
        url = f"{self._base_url}{path}"
        log.debug("POST %s (multipart)", url)
        try:
            async with self._client() as client:
                resp = await client.post(
                    url, data=data, files=files, headers=self.headers(json_body=False)
                )
        except httpx.ConnectError as exc:
            raise RuntimeError(f"Cannot connect to {self._base_url}: {exc}") from exc

        self._error_handler(resp)
        return resp

    async def stream_lines(self, path: str, payload: dict[str, Any]) -> AsyncIterator[str]:
        """POST *payload* and yield the response body line by line.

        Closing the iterator closes the response (and the client when it was
        opened here).
        """
        url = f"{self._base_url}{path}"
        headers = self.headers()
        headers["Accept"] = "text/event-stream"
        log.debug("POST %s (stream)", url)
        try:
            async with self._client() as client:
                async with client.stream("POST", url, json=payload, headers=headers) as resp:
                    if not resp.is_success:
                        await resp.aread()
                    self._error_handler(resp)
                    async for line in resp.aiter_lines():
                        yield line
        except httpx.ConnectError as exc:
            raise RuntimeError(f"Cannot connect to {self._base_url}: {exc}") from exc

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._config.timeout) as client:
            yield client

    # ── audit ───────────────────────────────────────────────────────

    def new_request_id(self) -> str:
        return str(uuid.uuid4())

    def record(
        self,
        request_id: str,
        event: AuditEvent,
        *,
        operation: str,
        model: str | None,
        **detail: Any,
    ) -> None:
        if self._audit is None:
            return
        self._audit.log(
            AuditEntry(
                request_id=request_id,
                event=event,
                operation=operation,
                provider=self._provider,
                model=model or "",
                detail=detail,
            )
        )
