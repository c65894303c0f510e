# src/tracking/call_logger.py - v2
"""LLM call logging: records every provider call of a generation run.

The records travel with the final DocumentRecord; persisting them is the
persistence collaborator's job. ``save`` dumps them as JSON Lines.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path

from docuforge.llm.models import LLMResponse
from docuforge.tracking.cost_calculator import compute_call_cost
from docuforge.tracking.models import LLMCallRecord

logger = logging.getLogger(__name__)


class CallLogger:
    """Accumulates LLM call records during a pipeline run."""

    def __init__(self) -> None:
        self._records: list[LLMCallRecord] = []

    def record(
        self,
        stage: str,
        step: str,
        response: LLMResponse,
        status: str = "success",
        retry_count: int = 0,
    ) -> LLMCallRecord:
        """Record a successful (or retried) LLM call.

        Args:
            stage: Pipeline stage (outline, section, refinement).
            step: Step identifier (e.g. "section_early_life").
            response: LLM response with token usage.
            status: Call status (success, retry, failed).
            retry_count: Number of retries before this result.

        Returns:
            The recorded LLMCallRecord.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            stage=stage,
            step=step,
            provider=response.provider,
            model=response.model,
            input_tokens=response.prompt_tokens,
            output_tokens=response.completion_tokens,
            total_tokens=response.total_tokens,
            latency_ms=response.latency_ms,
            status=status,
            retry_count=retry_count,
        )
        record.estimated_cost_usd = compute_call_cost(record)
        self._records.append(record)
        return record

    def record_failure(
        self,
        stage: str,
        step: str,
        provider: str,
        model: str,
        error_kind: str,
        retry_count: int = 0,
        status: str = "failed",
    ) -> LLMCallRecord:
        """Record a call attempt that ended without a usable response.

        ``status="retry"`` marks a transient failure that was retried.
        """
        record = LLMCallRecord(
            call_id=str(uuid.uuid4()),
            timestamp=datetime.now(timezone.utc),
            stage=stage,
            step=step,
            provider=provider,
            model=model,
            input_tokens=0,
            output_tokens=0,
            total_tokens=0,
            latency_ms=0,
            status=status,
            retry_count=retry_count,
            error_kind=error_kind,
        )
        self._records.append(record)
        return record

    @property
    def records(self) -> list[LLMCallRecord]:
        """All recorded calls."""
        return list(self._records)

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed across all calls."""
        return sum(r.total_tokens for r in self._records)

    @property
    def prompt_tokens(self) -> int:
        return sum(r.input_tokens for r in self._records)

    @property
    def completion_tokens(self) -> int:
        return sum(r.output_tokens for r in self._records)

    @property
    def total_cost(self) -> float:
        return sum(r.estimated_cost_usd for r in self._records)

    @property
    def total_calls(self) -> int:
        """Total number of LLM calls."""
        return len(self._records)

    def save(self, path: Path) -> None:
        """Save all records to a JSON Lines file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w") as f:
            for record in self._records:
                f.write(json.dumps(record.model_dump(), default=str) + "\n")
        logger.info("Saved %d call records to %s", len(self._records), path)
