# src/api/models.py - v2
"""API-level models: admin job status and health report."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

from docuforge.cache.models import CacheStats
from docuforge.jobs.cache_warmer import WarmResult


class WarmJobStatus(BaseModel):
    """State of one background warming job."""

    job_id: str
    status: Literal["queued", "running", "completed", "failed"] = "queued"
    document_type: str
    provider: str
    model: str
    current: int = 0
    total: int = 0
    result: WarmResult | None = None
    error: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    finished_at: datetime | None = None


class HealthReport(BaseModel):
    healthy: bool
    backend: str
    stats: CacheStats | None = None
