# src/core/models.py - v2
"""Shared Pydantic domain models used across modules.

No module redefines these types; all imports come from core.models.
Outline models accept both snake_case and the camelCase keys LLMs tend to
emit, and always serialize snake_case.
"""

from __future__ import annotations

import copy
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from docuforge.config.document_types import DocumentType
from docuforge.core.errors import GenerationCancelled, GenerationFailed
from docuforge.tracking.models import LLMCallRecord


# === PIPELINE STATE ===


class PipelineStage(str, Enum):
    INITIALIZING = "initializing"
    GENERATING_OUTLINE = "generating_outline"
    GENERATING_SECTIONS = "generating_sections"
    REFINING = "refining"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineStage.COMPLETED, PipelineStage.FAILED, PipelineStage.CANCELLED)


# === REQUEST ===


class GenerationRequest(BaseModel):
    """Immutable unit of work consumed by the orchestrator and the key normalizer."""

    model_config = ConfigDict(frozen=True, protected_namespaces=())

    document_type: DocumentType
    raw_input: dict[str, Any] = Field(default_factory=dict)
    provider_name: str | None = None
    model_id: str | None = None
    user_id: str = ""
    temperature: float | None = None
    max_tokens: int | None = None
    use_cache: bool = True
    force_refresh: bool = False
    prompt_style: str | None = None

    @field_validator("raw_input", mode="before")
    @classmethod
    def _detach_input(cls, v: Any) -> Any:
        # Callers keep their dict; later mutation must not leak into the request.
        return copy.deepcopy(v) if isinstance(v, dict) else v


# === OUTLINE ===

_OUTLINE_CONFIG = ConfigDict(populate_by_name=True, extra="ignore")


class OutlineIntroduction(BaseModel):
    model_config = _OUTLINE_CONFIG

    hook: str = ""
    thesis: str = ""
    preview: str = ""


class OutlineSection(BaseModel):
    """One planned section. ``order`` is the only ordering invariant."""

    model_config = _OUTLINE_CONFIG

    title: str
    description: str = ""
    key_points: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("key_points", "keyPoints"),
    )
    estimated_words: int = Field(
        default=500,
        validation_alias=AliasChoices("estimated_words", "estimatedWords", "estimatedWordCount"),
    )
    order: int = 0


class OutlineConclusion(BaseModel):
    model_config = _OUTLINE_CONFIG

    summary: str = ""
    call_to_action: str | None = Field(
        default=None,
        validation_alias=AliasChoices("call_to_action", "callToAction"),
    )


class OutlineMetadata(BaseModel):
    model_config = _OUTLINE_CONFIG

    total_sections: int = Field(
        default=0, validation_alias=AliasChoices("total_sections", "totalSections"),
    )
    estimated_total_words: int = Field(
        default=0,
        validation_alias=AliasChoices("estimated_total_words", "estimatedTotalWords"),
    )
    suggested_tone: str = Field(
        default="professional",
        validation_alias=AliasChoices("suggested_tone", "suggestedTone"),
    )


class Outline(BaseModel):
    """Structured plan produced once per run, consumed by every section step."""

    model_config = _OUTLINE_CONFIG

    title: str
    introduction: OutlineIntroduction = Field(default_factory=OutlineIntroduction)
    sections: dict[str, OutlineSection]
    conclusion: OutlineConclusion = Field(default_factory=OutlineConclusion)
    metadata: OutlineMetadata = Field(default_factory=OutlineMetadata)

    def ordered_sections(self) -> list[tuple[str, OutlineSection]]:
        """Sections in ascending ``order``; ties broken by id for determinism."""
        return sorted(self.sections.items(), key=lambda item: (item[1].order, item[0]))

    def section_ids(self) -> list[str]:
        return [section_id for section_id, _ in self.ordered_sections()]


# === SECTIONS ===


class GeneratedSection(BaseModel):
    """Post-processed section text plus quality signals."""

    section_id: str
    title: str
    content: str
    word_count: int
    target_words: int
    key_points_covered: list[str] = []
    missing_key_points: list[str] = []
    suggested_revisions: list[str] = []
    citations: list[str] = []


# === PROGRESS ===


class ProgressEvent(BaseModel):
    """Stage transition or progress tick published on the event bus."""

    document_id: str
    stage: PipelineStage
    progress: int = Field(ge=0, le=100)
    message: str = ""
    current_section_id: str | None = None
    from_cache: bool = False
    estimated_ms_remaining: int | None = None
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.stage.is_terminal


# === RESULTS ===


class GenerationStats(BaseModel):
    """Per-run statistics. Transient; persisted only by the caller."""

    outline_from_cache: bool = False
    sections_from_cache: int = 0
    total_sections: int = 0
    document_from_cache: bool = False
    cost_saved: float = 0.0
    elapsed_ms: int = 0


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class FailureInfo(BaseModel):
    """Where and why a run stopped. ``reason`` is safe to show to users."""

    stage: PipelineStage
    provider: str
    model: str
    reason: str
    error_kind: str | None = None
    fallback_provider: str | None = None


class DocumentRecord(BaseModel):
    """Terminal record handed to the persistence collaborator."""

    document_id: str
    status: PipelineStage
    document_type: DocumentType
    provider: str
    model: str
    content: str = ""
    sections: dict[str, str] = {}
    outline: Outline | None = None
    token_usage: TokenUsage = Field(default_factory=TokenUsage)
    cost: float = 0.0
    stats: GenerationStats = Field(default_factory=GenerationStats)
    failure: FailureInfo | None = None
    call_records: list[LLMCallRecord] = []
    citations: list[str] = []

    @property
    def succeeded(self) -> bool:
        return self.status == PipelineStage.COMPLETED

    def raise_for_status(self) -> None:
        """Raise GenerationFailed / GenerationCancelled for non-completed records."""
        if self.status == PipelineStage.CANCELLED:
            stage = self.failure.stage.value if self.failure else "unknown"
            raise GenerationCancelled(stage)
        if self.status == PipelineStage.FAILED:
            failure = self.failure
            raise GenerationFailed(
                stage=failure.stage.value if failure else "unknown",
                provider=failure.provider if failure else self.provider,
                model=failure.model if failure else self.model,
                reason=failure.reason if failure else "unknown failure",
            )
