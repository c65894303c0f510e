# src/llm/retry.py - v2
"""Per-call retry policy with exponential backoff.

Only transient provider errors (rate_limited, unavailable) are retried.
Non-transient ones (unauthorized, invalid_request) propagate on the first
attempt. A per-attempt timeout turns a hung call into ``unavailable``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from docuforge.config.settings import Settings
from docuforge.core.errors import ProviderError, ProviderErrorKind, RetryExhausted

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryConfig:
    """Retry configuration shared by every provider call site."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    backoff_factor: float = 2.0
    max_delay_s: float = 30.0
    jitter: bool = False
    timeout_s: float | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryConfig:
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
            backoff_factor=settings.retry_backoff_factor,
            max_delay_s=settings.retry_max_delay_s,
            jitter=settings.retry_jitter,
            timeout_s=settings.llm_timeout_s,
        )


def _compute_delay(config: RetryConfig, attempt: int) -> float:
    """Compute delay for a given attempt (0-based)."""
    delay = min(config.base_delay_s * (config.backoff_factor ** attempt), config.max_delay_s)
    if config.jitter:
        delay *= 0.5 + random.random()  # noqa: S311
    return delay


async def with_retry(
    fn: Callable[..., Awaitable[Any]],
    *args: Any,
    step: str = "unknown",
    provider: str = "",
    config: RetryConfig | None = None,
    on_retry: Callable[[ProviderError, int], None] | None = None,
    **kwargs: Any,
) -> Any:
    """Execute an async provider call with retry logic.

    Args:
        fn: Coroutine function to call.
        step: Call-site label for logs.
        provider: Provider name, used when classifying timeouts.
        config: Retry policy (defaults to 3 attempts, 1s base, x2).
        on_retry: Called with the error and attempt number before each sleep.

    Raises:
        ProviderError: Non-transient failure, raised on the first attempt.
        RetryExhausted: Transient failures on every attempt.
    """
    config = config or RetryConfig()
    attempt = 0

    while True:
        attempt += 1
        try:
            call = fn(*args, **kwargs)
            if config.timeout_s is not None:
                return await asyncio.wait_for(call, timeout=config.timeout_s)
            return await call
        except asyncio.TimeoutError as e:
            error = ProviderError(
                ProviderErrorKind.UNAVAILABLE, provider,
                f"call timed out after {config.timeout_s}s",
            )
            error.__cause__ = e
        except ProviderError as e:
            error = e

        if not error.is_transient:
            logger.error("'%s' failed (%s), not retrying", step, error.kind.value)
            raise error

        if attempt >= config.max_attempts:
            logger.error(
                "'%s' failed after %d attempts (%s)", step, attempt, error.kind.value,
            )
            raise RetryExhausted(attempt, error) from error

        delay = _compute_delay(config, attempt - 1)
        logger.warning(
            "'%s' - %s (attempt %d/%d), retrying in %.1fs",
            step, error.kind.value, attempt, config.max_attempts, delay,
        )
        if on_retry is not None:
            on_retry(error, attempt)
        await asyncio.sleep(delay)
