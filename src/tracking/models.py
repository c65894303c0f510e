# src/tracking/models.py - v2
"""Tracking domain models: LLMCallRecord, ModelPricing, StageUsage."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


class LLMCallRecord(BaseModel):
    """Individual LLM API call log entry, handed to the persistence layer."""

    call_id: str
    timestamp: datetime
    stage: str
    step: str
    provider: str
    model: str
    input_tokens: int
    output_tokens: int
    total_tokens: int
    latency_ms: int
    status: Literal["success", "retry", "failed"]
    retry_count: int = 0
    estimated_cost_usd: float = 0.0
    error_kind: str | None = None


class ModelPricing(BaseModel):
    """Static per-model pricing, USD per 1K tokens."""

    provider: str
    model: str
    input_cost_per_1k: float
    output_cost_per_1k: float


class StageUsage(BaseModel):
    """Aggregated usage for one pipeline stage."""

    stage: str
    total_calls: int
    total_input_tokens: int
    total_output_tokens: int
    total_tokens: int
    avg_latency_ms: float
    retry_count: int = 0
    failure_count: int = 0
    estimated_cost_usd: float = 0.0
