"""JobStore — research job records in the key-value store.

Key layout:
    research-job-{researchId}   ResearchJob (camelCase JSON)
    research-result-{researchId} ResearchResult, written once the job ends

Job records are written strictly: a write that cannot reach Redis raises
``StorageError`` rather than vanishing into a process-local dict.

Only single-key atomicity is available, so ``save_transition`` is a plain
load → compare → store. One consumer writes any given job, so concurrent
writers to the same key are not expected.

Dependency injection:
    Pass a ``KVStore(in_memory=True)`` in tests.
"""

from __future__ import annotations

import structlog
from pydantic import ValidationError

from tofu.research.models import ResearchJob, ResearchResult
from tofu.tools.kv_store import KVStore

logger = structlog.get_logger().bind(component="research.store")

_KEY_PREFIX = "research-job-"
_RESULT_PREFIX = "research-result-"


def job_key(research_id: str) -> str:
    return f"{_KEY_PREFIX}{research_id}"


def result_key(research_id: str) -> str:
    return f"{_RESULT_PREFIX}{research_id}"


class JobStore:
    """Read/write interface for ``ResearchJob`` records."""

    def __init__(self, kv: KVStore) -> None:
        self.kv = kv

    async def get(self, research_id: str) -> ResearchJob | None:
        """Return the job, or None when absent or unreadable."""
        raw = await self.kv.get(job_key(research_id))
        if raw is None:
            return None
        try:
            return ResearchJob.model_validate(raw)
        except ValidationError as exc:
            logger.warning("research_job_corrupt", research_id=research_id, error=str(exc))
            return None

    async def put(self, job: ResearchJob) -> None:
        """Unconditional write. Use for the initial ``queued`` record.

        Raises:
            StorageError: the record did not reach the shared store.
        """
        await self.kv.set(job_key(job.research_id), job.to_json_dict(), strict=True)
        logger.debug("research_job_saved", research_id=job.research_id, status=job.status)

    async def save_transition(self, job: ResearchJob) -> bool:
        """Write *job* only if its status moves the stored record forward.

        Returns False (and writes nothing) when the stored record is already
        at or past ``job.status`` — in particular once it is terminal, so
        repeated completion writes are no-ops.
        """
        current = await self.get(job.research_id)
        if current is not None and not current.can_transition(job.status):
            logger.info(
                "research_job_transition_skipped",
                research_id=job.research_id,
                stored=current.status,
                attempted=job.status,
            )
            return False
        await self.put(job)
        logger.info("research_job_transition", research_id=job.research_id, status=job.status)
        return True

    async def put_result(self, job: ResearchJob) -> None:
        """Write the completion notice for a terminal *job*."""
        result = ResearchResult.from_job(job)
        await self.kv.set(result_key(job.research_id), result.to_json_dict())

    async def get_result(self, research_id: str) -> ResearchResult | None:
        raw = await self.kv.get(result_key(research_id))
        if raw is None:
            return None
        try:
            return ResearchResult.model_validate(raw)
        except ValidationError as exc:
            logger.warning("research_result_corrupt", research_id=research_id, error=str(exc))
            return None
