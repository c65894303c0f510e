# src/pipeline/state.py - v2
"""Mutable run state for one generation request.

Accumulates results stage by stage: resolved configuration, outline,
generated sections, combined content and cache statistics. The orchestrator
owns the instance; chains only read from it.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Awaitable, Protocol

from pydantic import BaseModel, Field

from docuforge.config.document_types import DocumentType
from docuforge.core.models import (
    GeneratedSection,
    GenerationStats,
    Outline,
    PipelineStage,
)
from docuforge.llm.models import LLMResponse


class CompletionCall(Protocol):
    """Provider call as seen by the chains.

    The orchestrator binds the client, model, retry policy and call logging;
    chains only supply the prompt and sampling parameters.
    """

    def __call__(
        self,
        prompt: str,
        system_prompt: str | None,
        temperature: float,
        max_tokens: int,
    ) -> Awaitable[LLMResponse]: ...


class GenerationState(BaseModel):
    """State accumulating results across the pipeline stages."""

    model_config = {"arbitrary_types_allowed": True}

    # === IDENTITY ===
    run_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    document_id: str = ""
    document_type: DocumentType
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    # === CONFIGURATION ===
    provider: str = ""
    model: str = ""
    payload: dict[str, Any] = Field(default_factory=dict)

    # === PROGRESS ===
    stage: PipelineStage = PipelineStage.INITIALIZING
    progress: int = 0

    # === OUTLINE ===
    outline: Outline | None = None

    # === SECTIONS ===
    sections: dict[str, GeneratedSection] = Field(default_factory=dict)
    citations: list[str] = Field(default_factory=list)

    # === REFINEMENT ===
    content: str = ""
    refined: bool = False

    stats: GenerationStats = Field(default_factory=GenerationStats)

    def section_texts(self) -> dict[str, str]:
        """Section id to text, in generation order."""
        return {sid: s.content for sid, s in self.sections.items()}
