# src/core/errors.py - v1
"""Exception hierarchy shared by every component.

Callers branch on exception type and, for provider failures, on
ProviderError.kind. Raw provider bodies stay in ``detail`` for logs only;
anything user-visible goes through ``public_message``.
"""

from __future__ import annotations

from enum import Enum


class DocuforgeError(Exception):
    """Base class for all domain errors."""


class RequestValidationError(DocuforgeError):
    """Malformed or schema-violating generation input. Never retried."""

    def __init__(self, message: str, errors: list[str] | None = None) -> None:
        self.errors = errors or []
        super().__init__(message)


class QuotaExceeded(DocuforgeError):
    """Admission check refused the request before any provider call."""

    def __init__(self, reason: str = "Cost limit exceeded") -> None:
        self.reason = reason
        super().__init__(reason)


class ProviderErrorKind(str, Enum):
    RATE_LIMITED = "rate_limited"
    UNAUTHORIZED = "unauthorized"
    INVALID_REQUEST = "invalid_request"
    UNAVAILABLE = "unavailable"

    @property
    def is_transient(self) -> bool:
        return self in (ProviderErrorKind.RATE_LIMITED, ProviderErrorKind.UNAVAILABLE)


_PUBLIC_MESSAGES: dict[ProviderErrorKind, str] = {
    ProviderErrorKind.RATE_LIMITED: "The AI provider is rate limiting requests",
    ProviderErrorKind.UNAUTHORIZED: "The AI provider rejected the configured credentials",
    ProviderErrorKind.INVALID_REQUEST: "The AI provider rejected the request",
    ProviderErrorKind.UNAVAILABLE: "The AI provider is unavailable",
}


class ProviderError(DocuforgeError):
    """Classified provider failure.

    Attributes:
        kind: Failure class the retry policy branches on.
        provider: Provider name that raised.
        detail: Raw provider message, for logs only.
        status_code: HTTP status when known.
    """

    def __init__(
        self,
        kind: ProviderErrorKind,
        provider: str = "",
        detail: str = "",
        status_code: int | None = None,
    ) -> None:
        self.kind = kind
        self.provider = provider
        self.detail = detail
        self.status_code = status_code
        super().__init__(f"[{provider or 'provider'}] {kind.value}: {detail}")

    @property
    def is_transient(self) -> bool:
        return self.kind.is_transient

    @property
    def public_message(self) -> str:
        return _PUBLIC_MESSAGES[self.kind]


class ParseError(DocuforgeError):
    """Model output could not be turned into the expected structure."""


class OutlineParseError(ParseError):
    pass


class SectionParseError(ParseError):
    pass


class CacheUnavailable(DocuforgeError):
    """Cache backend unreachable. Callers degrade to miss / skip write."""


class RetryExhausted(DocuforgeError):
    """All retry attempts failed with transient errors."""

    def __init__(self, attempts: int, last_error: ProviderError) -> None:
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(f"Failed after {attempts} attempts: {last_error}")


class GenerationFailed(DocuforgeError):
    """Terminal pipeline failure with the stage and provider recorded."""

    def __init__(self, stage: str, provider: str, model: str, reason: str) -> None:
        self.stage = stage
        self.provider = provider
        self.model = model
        self.reason = reason
        super().__init__(f"Generation failed during {stage} ({provider}/{model}): {reason}")


class GenerationCancelled(DocuforgeError):
    """Run stopped at a cancellation checkpoint."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Generation cancelled during {stage}")
