"""ResearchJob — durable record of one asynchronous deep-research request.

Stored as JSON at ``research-job-{research_id}`` in the key-value store.

Lifecycle::

    queued ──► running ──► completed
                      └──► failed
                      └──► canceled

Transitions only move forward. Once a job is terminal it is never
rewritten, which makes a re-delivered queue message a no-op.
"""

from __future__ import annotations

import uuid
from typing import Literal

from pydantic import Field

from tofu.models.schemas import CamelModel, EntityType
from tofu.utils.clock import now_iso

JobStatus = Literal["queued", "running", "completed", "failed", "canceled"]

TERMINAL_STATUSES: frozenset[str] = frozenset({"completed", "failed", "canceled"})

_STATUS_RANK: dict[str, int] = {
    "queued": 0,
    "running": 1,
    "completed": 2,
    "failed": 2,
    "canceled": 2,
}


def new_research_id() -> str:
    return f"research-{uuid.uuid4().hex}"


class JobResult(CamelModel):
    """Where the finished report was published."""

    page_url: str
    page_title: str


class ResearchJob(CamelModel):
    research_id: str = Field(default_factory=new_research_id)
    query: str
    entity_type: EntityType
    status: JobStatus = "queued"
    created_at: str = Field(default_factory=now_iso)
    completed_at: str | None = None
    result: JobResult | None = None
    error: str | None = None

    # Invocation context carried from the action to the consumer
    user_id: str | None = None
    cloud_id: str | None = None
    space_key: str | None = None
    issue_key: str | None = None

    # ── Convenience properties ──────────────────────────────────────────

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def page_url(self) -> str | None:
        return self.result.page_url if self.result else None

    def can_transition(self, status: str) -> bool:
        """True when *status* is strictly ahead of the current status."""
        return _STATUS_RANK[status] > _STATUS_RANK[self.status]

    # ── Transitions (return updated copies) ─────────────────────────────

    def mark_running(self) -> "ResearchJob":
        return self.model_copy(update={"status": "running"})

    def mark_completed(self, page_url: str, page_title: str) -> "ResearchJob":
        return self.model_copy(
            update={
                "status": "completed",
                "result": JobResult(page_url=page_url, page_title=page_title),
                "error": None,
                "completed_at": now_iso(),
            }
        )

    def mark_failed(self, error: str) -> "ResearchJob":
        return self.model_copy(
            update={
                "status": "failed",
                "result": None,
                "error": error or "Unknown error",
                "completed_at": now_iso(),
            }
        )


class ResearchResult(CamelModel):
    """Completion notice stored at ``research-result-{job_id}`` when a job ends."""

    job_id: str
    success: bool
    query: str
    entity_type: EntityType
    page_url: str | None = None
    page_title: str | None = None
    error: str | None = None
    completed_at: str | None = None

    @classmethod
    def from_job(cls, job: ResearchJob) -> "ResearchResult":
        return cls(
            job_id=job.research_id,
            success=job.status == "completed",
            query=job.query,
            entity_type=job.entity_type,
            page_url=job.page_url,
            page_title=job.result.page_title if job.result else None,
            error=job.error,
            completed_at=job.completed_at,
        )
