# src/core/collaborators.py - v1
"""Boundary contracts for the collaborators the engine consumes.

Admission (cost limits), stored provider preferences and job transport are
owned by other parts of the system. The engine only talks to these ABCs;
the in-process implementations below serve the CLI and tests.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable

from pydantic import BaseModel

from docuforge.config.document_types import DocumentType

logger = logging.getLogger(__name__)


# === ADMISSION ===


class AdmissionDecision(BaseModel):
    allowed: bool
    reason: str | None = None


class BaseAdmissionPolicy(ABC):
    """Yes/no cost-limit gate consulted before any provider call."""

    @abstractmethod
    async def check_cost_limit(self, user_id: str) -> AdmissionDecision:
        """Return whether the user may start a new generation."""


class AllowAllAdmission(BaseAdmissionPolicy):
    async def check_cost_limit(self, user_id: str) -> AdmissionDecision:
        return AdmissionDecision(allowed=True)


class StaticCostLimitAdmission(BaseAdmissionPolicy):
    """Compare current spend against a fixed monthly limit.

    Args:
        monthly_limit_usd: Spend ceiling per user.
        spend_lookup: Async callable returning the user's current spend.
    """

    def __init__(
        self,
        monthly_limit_usd: float,
        spend_lookup: Callable[[str], Awaitable[float]],
    ) -> None:
        self._limit = monthly_limit_usd
        self._spend_lookup = spend_lookup

    async def check_cost_limit(self, user_id: str) -> AdmissionDecision:
        spent = await self._spend_lookup(user_id)
        if spent >= self._limit:
            return AdmissionDecision(
                allowed=False,
                reason=f"Monthly cost limit of ${self._limit:.2f} reached",
            )
        return AdmissionDecision(allowed=True)


# === PREFERENCES ===


class ProviderPreference(BaseModel):
    """Stored provider choice for one document type."""

    provider: str | None = None
    model: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    cache_enabled: bool = True


class UserPreferences(BaseModel):
    default_provider: str | None = None
    default_model: str | None = None
    prompt_style: str | None = None
    allow_fallback: bool = False
    fallback_provider: str | None = None


class BasePreferenceStore(ABC):
    """Read-only view of user preferences."""

    @abstractmethod
    async def get_provider_for_document_type(
        self, user_id: str, document_type: DocumentType
    ) -> ProviderPreference | None:
        """Per-document-type preference, or None when the user has none."""

    @abstractmethod
    async def get_user_preferences(self, user_id: str) -> UserPreferences:
        """User-level defaults."""


class InMemoryPreferenceStore(BasePreferenceStore):
    """Dict-backed preferences for the CLI and tests."""

    def __init__(self) -> None:
        self._by_type: dict[tuple[str, DocumentType], ProviderPreference] = {}
        self._users: dict[str, UserPreferences] = {}

    def set_document_type_preference(
        self, user_id: str, document_type: DocumentType, pref: ProviderPreference
    ) -> None:
        self._by_type[(user_id, DocumentType(document_type))] = pref

    def set_user_preferences(self, user_id: str, prefs: UserPreferences) -> None:
        self._users[user_id] = prefs

    async def get_provider_for_document_type(
        self, user_id: str, document_type: DocumentType
    ) -> ProviderPreference | None:
        return self._by_type.get((user_id, DocumentType(document_type)))

    async def get_user_preferences(self, user_id: str) -> UserPreferences:
        return self._users.get(user_id, UserPreferences())


# === JOB TRANSPORT ===


class BaseJobObserver(ABC):
    """Job-queue callbacks. Queue persistence and workers live elsewhere."""

    @abstractmethod
    async def on_progress(self, job_id: str, percent: int) -> None:
        """Progress tick in 0..100."""

    @abstractmethod
    async def on_complete(self, job_id: str, result: dict[str, Any]) -> None:
        """Terminal success."""

    @abstractmethod
    async def on_fail(self, job_id: str, result: dict[str, Any]) -> None:
        """Terminal failure or cancellation."""


class NullJobObserver(BaseJobObserver):
    async def on_progress(self, job_id: str, percent: int) -> None:
        return None

    async def on_complete(self, job_id: str, result: dict[str, Any]) -> None:
        return None

    async def on_fail(self, job_id: str, result: dict[str, Any]) -> None:
        return None


class RecordingJobObserver(BaseJobObserver):
    """Keeps every callback in memory; used by the CLI to print a summary."""

    def __init__(self) -> None:
        self.progress: list[tuple[str, int]] = []
        self.completed: dict[str, dict[str, Any]] = {}
        self.failed: dict[str, dict[str, Any]] = {}

    async def on_progress(self, job_id: str, percent: int) -> None:
        self.progress.append((job_id, percent))

    async def on_complete(self, job_id: str, result: dict[str, Any]) -> None:
        self.completed[job_id] = result

    async def on_fail(self, job_id: str, result: dict[str, Any]) -> None:
        logger.info("Job %s failed: %s", job_id, result.get("reason"))
        self.failed[job_id] = result
