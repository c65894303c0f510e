# src/logging/context.py - v2
"""Contextual logging support: attach document_id, run_id, stage, provider to log records.

Context variables follow asyncio tasks, so concurrent generation runs keep
their own values.
"""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per generation run.
_document_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "document_id", default=None
)
_run_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "run_id", default=None
)
_stage: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "stage", default=None
)
_provider: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "provider", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    document_id: str | None = None
    run_id: str | None = None
    stage: str | None = None
    provider: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        document_id=_document_id.get(),
        run_id=_run_id.get(),
        stage=_stage.get(),
        provider=_provider.get(),
    )


def set_run_context(document_id: str, run_id: str, provider: str | None = None) -> None:
    """Set run-level context (called once per generation run)."""
    _document_id.set(document_id)
    _run_id.set(run_id)
    _provider.set(provider)


def set_stage_context(stage: str, provider: str | None = None) -> None:
    """Set stage-level context (called on each stage transition)."""
    _stage.set(stage)
    if provider is not None:
        _provider.set(provider)


def clear_context() -> None:
    """Reset all context variables."""
    _document_id.set(None)
    _run_id.set(None)
    _stage.set(None)
    _provider.set(None)
