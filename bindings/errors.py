"""Errors raised by the provider bindings and the default error handler."""

from __future__ import annotations

from typing import Callable

import httpx

ErrorHandler = Callable[[httpx.Response], None]


class ApiResponseError(RuntimeError):
    """The provider answered with a non-2xx status."""

    def __init__(self, status_code: int, body: str, url: str = "") -> None:
        super().__init__(f"Request to {url or 'provider'} failed ({status_code}): {body}")
        self.status_code = status_code
        self.body = body
        self.url = url


class StreamDecodeError(ValueError):
    """A streamed event payload could not be parsed into a chunk."""

    def __init__(self, frame: str, reason: str) -> None:
        super().__init__(f"Cannot decode stream event {frame[:200]!r}: {reason}")
        self.frame = frame


def default_error_handler(response: httpx.Response) -> None:
    """Raise ``ApiResponseError`` for any non-2xx response.

    The body must already be read (``await response.aread()`` for streams).
    """
    if response.is_success:
        return
    try:
        url = str(response.request.url)
    except RuntimeError:  # response built without a request
        url = ""
    raise ApiResponseError(response.status_code, response.text, url)
