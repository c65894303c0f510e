# src/config/settings.py - v2
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for all deployment-specific settings: provider
credentials, system-default generation parameters, retry and timeout
policy, cache backend and TTLs, and logging.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docuforge.config.document_types import (
    DEFAULT_REFINEMENT_TYPES,
    DEFAULT_TTL_SECONDS,
    DocumentType,
)


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === LLM PROVIDERS ===
    llm_default_provider: str = "openai"
    llm_default_model: str = "gpt-4o"
    llm_default_temperature: float = 0.7
    llm_default_max_tokens: int = 4000
    outline_max_tokens: int = 2000
    section_max_tokens: int = 4000
    refinement_temperature: float = 0.3

    # Provider API keys / endpoints
    openai_api_key: str = ""
    anthropic_api_key: str = ""
    gemini_api_key: str = ""
    perplexity_api_key: str = ""
    perplexity_base_url: str = "https://api.perplexity.ai"
    llama_base_url: str = "http://localhost:11434"
    llama_host: Literal["local", "together", "groq"] = "local"
    llama_api_key: str = ""

    # === Resilience ===
    llm_timeout_s: float = 120.0
    retry_max_attempts: int = 3
    retry_base_delay_s: float = 1.0
    retry_backoff_factor: float = 2.0
    retry_max_delay_s: float = 30.0
    retry_jitter: bool = False
    allow_fallback: bool = False

    # === Cost model ===
    cost_input_token_share: float = 0.6

    # === Cache ===
    cache_enabled: bool = True
    cache_backend: Literal["json", "sqlite", "redis"] = "json"
    cache_root: Path = Path("~/.docuforge/cache")
    cache_redis_url: str = ""
    cache_namespace: str = "docuforge"
    cache_ttl_biography_s: int = DEFAULT_TTL_SECONDS[DocumentType.BIOGRAPHY]
    cache_ttl_business_plan_s: int = DEFAULT_TTL_SECONDS[DocumentType.BUSINESS_PLAN]
    cache_ttl_grant_proposal_s: int = DEFAULT_TTL_SECONDS[DocumentType.GRANT_PROPOSAL]
    cache_ttl_case_summary_s: int = DEFAULT_TTL_SECONDS[DocumentType.CASE_SUMMARY]
    cache_ttl_medical_report_s: int = DEFAULT_TTL_SECONDS[DocumentType.MEDICAL_REPORT]
    cache_ttl_default_s: int = 3600
    cache_ttl_embedding_s: int = 30 * 24 * 60 * 60
    cache_warm_delay_s: float = 1.0

    # === Pipeline ===
    refinement_document_types: str = ",".join(t.value for t in DEFAULT_REFINEMENT_TYPES)

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("retry_max_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:  # noqa: N805
        if v < 1:
            raise ValueError("retry_max_attempts must be >= 1")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.cache_backend == "redis" and not self.cache_redis_url:
            errors.append("CACHE_BACKEND=redis requires CACHE_REDIS_URL")

        ttl_fields = {
            "cache_ttl_biography_s": self.cache_ttl_biography_s,
            "cache_ttl_business_plan_s": self.cache_ttl_business_plan_s,
            "cache_ttl_grant_proposal_s": self.cache_ttl_grant_proposal_s,
            "cache_ttl_case_summary_s": self.cache_ttl_case_summary_s,
            "cache_ttl_medical_report_s": self.cache_ttl_medical_report_s,
            "cache_ttl_default_s": self.cache_ttl_default_s,
            "cache_ttl_embedding_s": self.cache_ttl_embedding_s,
        }
        for name, value in ttl_fields.items():
            if value <= 0:
                errors.append(f"{name.upper()} must be > 0")

        if not 0.0 < self.cost_input_token_share < 1.0:
            errors.append("COST_INPUT_TOKEN_SHARE must be between 0 and 1 (exclusive)")

        if self.llm_timeout_s <= 0:
            errors.append("LLM_TIMEOUT_S must be > 0")

        unknown = [
            t for t in self.refinement_document_types_list
            if t not in {d.value for d in DocumentType}
        ]
        if unknown:
            errors.append(f"REFINEMENT_DOCUMENT_TYPES has unknown types: {unknown}")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def refinement_document_types_list(self) -> list[str]:
        """Parse comma-separated refinement-eligible document types."""
        return [
            t.strip().lower()
            for t in self.refinement_document_types.split(",")
            if t.strip()
        ]

    def ttl_for(self, document_type: DocumentType | str | None) -> int:
        """TTL in seconds for a document type; default TTL when unknown."""
        if document_type is None:
            return self.cache_ttl_default_s
        try:
            doc_type = DocumentType(document_type)
        except ValueError:
            return self.cache_ttl_default_s
        return {
            DocumentType.BIOGRAPHY: self.cache_ttl_biography_s,
            DocumentType.BUSINESS_PLAN: self.cache_ttl_business_plan_s,
            DocumentType.GRANT_PROPOSAL: self.cache_ttl_grant_proposal_s,
            DocumentType.CASE_SUMMARY: self.cache_ttl_case_summary_s,
            DocumentType.MEDICAL_REPORT: self.cache_ttl_medical_report_s,
        }[doc_type]

    def is_refinement_enabled(self, document_type: DocumentType | str) -> bool:
        value = document_type.value if isinstance(document_type, DocumentType) else str(document_type)
        return value.lower() in self.refinement_document_types_list


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or per-run config).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
