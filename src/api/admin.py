# src/api/admin.py - v2
"""Cache administrative surface.

Operations other parts of the system call against the cache: bulk clears,
statistics, a health probe and warm jobs. Warm jobs run as asyncio tasks in
this process and are tracked in an in-memory registry keyed by job id. Only
the most recent finished jobs are kept.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from docuforge.api.models import HealthReport, WarmJobStatus
from docuforge.cache.models import CacheStats
from docuforge.cache.service import CacheService
from docuforge.config.document_types import DocumentType
from docuforge.jobs.cache_warmer import CacheWarmer

logger = logging.getLogger(__name__)

MAX_FINISHED_JOBS = 50


class CacheAdmin:
    """Admin operations over one CacheService.

    Args:
        cache: The cache service shared with the orchestrator.
        warmer: Warmer bound to the same cache.
        backend: Backend name reported by health checks.
        max_finished_jobs: Finished jobs kept for status lookups; older ones
            are evicted when a new job is queued.
    """

    def __init__(
        self,
        cache: CacheService,
        warmer: CacheWarmer,
        backend: str = "",
        max_finished_jobs: int = MAX_FINISHED_JOBS,
    ) -> None:
        self._cache = cache
        self._warmer = warmer
        self._backend = backend or type(cache.store).__name__
        self._jobs: dict[str, WarmJobStatus] = {}
        self._tasks: dict[str, asyncio.Task[None]] = {}
        self._max_finished_jobs = max_finished_jobs

    async def clear_by_document_type(self, document_type: DocumentType | str) -> int:
        doc_type = DocumentType(document_type)
        count = await self._cache.clear_by_document_type(doc_type.value)
        logger.info("Admin cleared %d %s entries", count, doc_type.value)
        return count

    async def clear_by_provider(self, provider: str) -> int:
        return await self._cache.clear_by_provider(provider)

    async def clear_all(self) -> int:
        count = await self._cache.clear_all()
        logger.warning("Admin cleared the whole cache (%d entries)", count)
        return count

    async def get_stats(self) -> CacheStats:
        return await self._cache.stats()

    async def health_check(self, include_stats: bool = False) -> HealthReport:
        healthy = await self._cache.health_check()
        stats = await self._cache.stats() if include_stats and healthy else None
        return HealthReport(healthy=healthy, backend=self._backend, stats=stats)

    # --- Warm jobs ---

    def warm_cache(
        self,
        document_type: DocumentType | str,
        provider: str,
        model: str,
        patterns: list[dict[str, Any]] | None = None,
    ) -> str:
        """Schedule a warm job on the running loop and return its id."""
        doc_type = DocumentType(document_type)
        self._evict_finished_jobs()
        job_id = f"warm-{uuid.uuid4().hex[:12]}"
        self._jobs[job_id] = WarmJobStatus(
            job_id=job_id, document_type=doc_type.value, provider=provider, model=model,
        )
        self._tasks[job_id] = asyncio.get_running_loop().create_task(
            self._run_job(job_id, doc_type, provider, model, patterns),
        )
        logger.info("Queued warm job %s for %s/%s/%s", job_id, doc_type.value, provider, model)
        return job_id

    def job_status(self, job_id: str) -> WarmJobStatus | None:
        return self._jobs.get(job_id)

    def list_jobs(self) -> list[WarmJobStatus]:
        return list(self._jobs.values())

    async def wait_for_job(self, job_id: str) -> WarmJobStatus | None:
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.shield(task)
        return self._jobs.get(job_id)

    def _evict_finished_jobs(self) -> None:
        finished = [jid for jid, job in self._jobs.items() if job.finished_at is not None]
        for job_id in finished[: max(0, len(finished) - self._max_finished_jobs)]:
            del self._jobs[job_id]

    async def _run_job(
        self,
        job_id: str,
        document_type: DocumentType,
        provider: str,
        model: str,
        patterns: list[dict[str, Any]] | None,
    ) -> None:
        job = self._jobs[job_id]
        job.status = "running"

        def on_progress(current: int, total: int) -> None:
            job.current, job.total = current, total

        try:
            job.result = await self._warmer.warm(
                document_type, provider, model, patterns, on_progress=on_progress,
            )
            job.total = job.result.total
            job.status = "completed"
        except Exception as exc:
            logger.exception("Warm job %s failed", job_id)
            job.status = "failed"
            job.error = str(exc)
        finally:
            job.finished_at = datetime.now(timezone.utc)
            self._tasks.pop(job_id, None)
