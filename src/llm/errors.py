# src/llm/errors.py - v1
"""Translate SDK exceptions into the ProviderError taxonomy.

Adapters call ``classify_provider_exception`` in their except blocks so the
orchestrator only ever branches on ProviderError.kind. Classification uses
the HTTP status when the SDK exposes one, then the exception class name,
then the message text.
"""

from __future__ import annotations

import asyncio

from docuforge.core.errors import ProviderError, ProviderErrorKind

_MAX_DETAIL_CHARS = 500


def _status_of(error: BaseException) -> int | None:
    for attr in ("status_code", "status", "http_status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value
    code = getattr(error, "code", None)
    if isinstance(code, int) and 100 <= code < 600:
        return code
    return None


def kind_for_status(status: int) -> ProviderErrorKind:
    if status == 429:
        return ProviderErrorKind.RATE_LIMITED
    if status in (401, 403):
        return ProviderErrorKind.UNAUTHORIZED
    if status in (400, 404, 409, 413, 422):
        return ProviderErrorKind.INVALID_REQUEST
    return ProviderErrorKind.UNAVAILABLE


def classify_provider_exception(error: BaseException, provider: str = "") -> ProviderError:
    """Map any exception raised by an SDK call onto a ProviderError."""
    if isinstance(error, ProviderError):
        return error

    detail = str(error)[:_MAX_DETAIL_CHARS]
    status = _status_of(error)
    if status is not None:
        return ProviderError(kind_for_status(status), provider, detail, status_code=status)

    if isinstance(error, (asyncio.TimeoutError, TimeoutError, ConnectionError)):
        return ProviderError(ProviderErrorKind.UNAVAILABLE, provider, detail or "timeout")

    name = type(error).__name__.lower()
    msg = detail.lower()
    if "ratelimit" in name or "resourceexhausted" in name or "rate limit" in msg or "429" in msg:
        kind = ProviderErrorKind.RATE_LIMITED
    elif "authentication" in name or "permission" in name or "unauthenticated" in name:
        kind = ProviderErrorKind.UNAUTHORIZED
    elif "api key" in msg or "unauthorized" in msg:
        kind = ProviderErrorKind.UNAUTHORIZED
    elif "badrequest" in name or "notfound" in name or "invalidargument" in name:
        kind = ProviderErrorKind.INVALID_REQUEST
    else:
        # Timeouts, dropped connections, 5xx and anything unrecognised.
        kind = ProviderErrorKind.UNAVAILABLE
    return ProviderError(kind, provider, detail)
