"""
Typed error taxonomy for article acquisition.

Fetch components below the service layer return these errors as values
instead of raising them across component boundaries. Only the URL
normalizer raises (``ValidationError``), because a malformed request is
rejected before any pipeline work starts.
"""

from __future__ import annotations

from typing import Any


class FetchError(Exception):
    """Base class for every error surfaced by the article pipeline.

    Attributes:
        message: Human readable description
        type: Stable machine readable error code used in error envelopes
        status_code: HTTP-style status the error maps to
        details: Optional diagnostic payload (attempt counts, URLs, ...)
    """

    type = "UNKNOWN_ERROR"
    default_status = 500

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code if status_code is not None else self.default_status
        self.details = details or {}

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, status_code={self.status_code})"


class ValidationError(FetchError):
    """Malformed or unsafe URL, unknown source kind, or schema mismatch. Never retried."""

    type = "VALIDATION_ERROR"
    default_status = 400


class PrivateNetworkError(ValidationError):
    """The URL resolves to a loopback, private or link-local host."""


class NetworkError(FetchError):
    """Connection failure, non-2xx response, or an exhausted attempt pool."""

    type = "NETWORK_ERROR"
    default_status = 500


class ParseError(FetchError):
    """Extraction produced no usable article content."""

    type = "PARSE_ERROR"
    default_status = 500


class BlockedError(FetchError):
    """The origin refused the request (401/403/429 or a tarpitted body)."""

    type = "BLOCKED_ERROR"
    default_status = 403


class RateLimitError(FetchError):
    """The origin asked us to back off (HTTP 429).

    Attributes:
        retry_after: Raw ``Retry-After`` header value, if the origin sent one
    """

    type = "RATE_LIMIT_ERROR"
    default_status = 429

    def __init__(
        self,
        message: str,
        retry_after: str | None = None,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = dict(details or {})
        if retry_after is not None:
            details.setdefault("retryAfter", retry_after)
        super().__init__(message, status_code=status_code, details=details)
        self.retry_after = retry_after


class FetchTimeoutError(FetchError):
    """Every attempt timed out, or the request deadline expired."""

    type = "TIMEOUT_ERROR"
    default_status = 504


def error_for_status(status: int, message: str, retry_after: str | None = None, details: dict[str, Any] | None = None) -> FetchError:
    """Map an upstream HTTP error status to the matching FetchError."""
    if status == 429:
        return RateLimitError(message, retry_after=retry_after, details=details)
    if status in (401, 403):
        return BlockedError(message, status_code=status, details=details)
    if status in (408, 504):
        return FetchTimeoutError(message, details=details)
    return NetworkError(message, status_code=status, details=details)
