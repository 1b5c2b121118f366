"""Tofu Research — the asynchronous deep-research pipeline.

Architecture:
    ResearchJob   — durable status record for one research request
    JobStore      — ResearchJob persistence over the key-value store
    ResearchResult — completion notice written when a job ends
    PollPolicy    — backoff policy for polling Exa research tasks
    formatter     — report text → Confluence storage format

Queue consumer:
    tofu.tasks.consumer.deep_research_consumer — runs research, publishes the
    page, finalises the job record.

CLI surface (wired in tofu.main):
    tofu research "<subject>" --type company --async
    tofu job <research-id>
"""

from .formatter import convert_markdown, to_publishable_markup
from .models import JobResult, ResearchJob, ResearchResult, new_research_id
from .policy import PollPolicy
from .store import JobStore

__all__ = [
    "JobResult",
    "JobStore",
    "PollPolicy",
    "ResearchJob",
    "ResearchResult",
    "convert_markdown",
    "new_research_id",
    "to_publishable_markup",
]
