# tests/unit/tracking/test_call_logger.py - v1
"""Tests for tracking/call_logger.py."""

from __future__ import annotations

import json

import pytest

from docuforge.llm.models import LLMResponse
from docuforge.tracking.call_logger import CallLogger


def _response(prompt_tokens: int = 100, completion_tokens: int = 200) -> LLMResponse:
    return LLMResponse(
        content="text",
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
        model="gpt-4o",
        provider="openai",
        latency_ms=42,
    )


class TestCallLogger:
    def test_record(self):
        logger = CallLogger()
        record = logger.record("section", "section_intro", _response(), retry_count=2)
        assert record.stage == "section"
        assert record.step == "section_intro"
        assert record.input_tokens == 100
        assert record.output_tokens == 200
        assert record.latency_ms == 42
        assert record.status == "success"
        assert record.retry_count == 2
        assert record.estimated_cost_usd == pytest.approx(0.1 * 0.0025 + 0.2 * 0.01)

    def test_record_failure(self):
        logger = CallLogger()
        record = logger.record_failure("outline", "outline", "openai", "gpt-4o", "rate_limited", status="retry")
        assert record.status == "retry"
        assert record.error_kind == "rate_limited"
        assert record.total_tokens == 0
        assert record.estimated_cost_usd == 0.0

    def test_totals(self):
        logger = CallLogger()
        logger.record("outline", "outline", _response(100, 200))
        logger.record("section", "section_a", _response(50, 150))
        logger.record_failure("section", "section_b", "openai", "gpt-4o", "unavailable")
        assert logger.total_calls == 3
        assert logger.prompt_tokens == 150
        assert logger.completion_tokens == 350
        assert logger.total_tokens == 500
        assert logger.total_cost == pytest.approx(sum(r.estimated_cost_usd for r in logger.records))

    def test_records_is_a_copy(self):
        logger = CallLogger()
        logger.record("outline", "outline", _response())
        logger.records.clear()
        assert logger.total_calls == 1

    def test_save_jsonl(self, tmp_path):
        logger = CallLogger()
        logger.record("outline", "outline", _response())
        logger.record("section", "section_a", _response())
        path = tmp_path / "logs" / "calls.jsonl"
        logger.save(path)
        lines = path.read_text().splitlines()
        assert len(lines) == 2
        assert json.loads(lines[1])["step"] == "section_a"
