"""Typed batchexecute errors."""

from typing import Any

import httpx


class BatchExecuteError(Exception):
    """Base error for batchexecute failures."""


class TransportError(BatchExecuteError):
    """Raised when the HTTP request never produced a response (DNS, connect, TLS, timeout)."""


class HTTPStatusError(BatchExecuteError):
    """Raised when the server answers with a non-2xx status."""

    def __init__(self, status_code: int, message: str, response: httpx.Response | None = None):
        super().__init__(f"batchexecute error: {message} (status: {status_code})")
        self.status_code = status_code
        self.message = message
        self.response = response


class UnauthorizedError(HTTPStatusError):
    """Raised on HTTP 401. Callers should re-authenticate and retry."""


class DecodeError(BatchExecuteError):
    """Raised when a response body cannot be decoded under either wire shape.

    ``attempts`` holds the error raised by each decoding strategy, in the
    order they were tried.
    """

    def __init__(self, message: str, attempts: list[Any] | None = None):
        super().__init__(message)
        self.attempts: list[Any] = list(attempts or [])


class NoResponsesError(DecodeError):
    """Raised when a body parses but holds no wrb.fr result frame."""
