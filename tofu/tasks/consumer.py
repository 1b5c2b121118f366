"""deep_research_consumer — completes one queued research request.

Each message:
  1. Loads the job record; a job already terminal is a duplicate delivery
     and is skipped.
  2. Moves the job to ``running``.
  3. Runs Exa deep research (poll with backoff, fallback search).
  4. Resolves the Confluence space: message, app config, default space,
     first listed space.
  5. Publishes ``Research: {query}`` and records ``completed`` with the
     page link, plus a ``research-result-{id}`` completion notice.
  6. If the request came from a Jira issue, comments a link to the page on
     it. A failed comment does not fail the job.

Any exception in steps 3-5 becomes a ``failed`` job record. Nothing is
re-raised to the queue, so a bad message is never redelivered forever.
A job record that cannot be saved is logged and the message still counts
as handled.
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import ValidationError

from tofu.actions.adf import research_comment
from tofu.errors import StorageError, TofuError
from tofu.models.schemas import CamelModel, EntityType
from tofu.research.models import ResearchJob
from tofu.research.publish import publish_report, resolve_space_key
from tofu.research.store import JobStore
from tofu.runtime import Runtime
from tofu.tools.exa_client import is_no_information

logger = structlog.get_logger().bind(component="tasks.consumer")


class ResearchMessage(CamelModel):
    """Queue message body written by ``enqueue_research``."""

    research_id: str
    query: str
    entity_type: EntityType
    user_id: str | None = None
    cloud_id: str | None = None
    space_key: str | None = None
    issue_key: str | None = None


def page_title(query: str) -> str:
    return f"Research: {query}"


async def _record(jobs: JobStore, job: ResearchJob, log) -> bool:
    """Save a job transition. A store outage is logged, not raised."""
    try:
        return await jobs.save_transition(job)
    except StorageError as exc:
        log.error("consumer_job_record_write_failed", status=job.status, error=str(exc))
        return False


async def _finish(jobs: JobStore, job: ResearchJob, log) -> None:
    if await _record(jobs, job, log):
        await jobs.put_result(job)


async def deep_research_consumer(body: dict[str, Any], runtime: Runtime) -> ResearchJob | None:
    """Handle one message body. Returns the final job record (None if undecodable)."""
    try:
        message = ResearchMessage.model_validate(body)
    except ValidationError as exc:
        logger.error("consumer_message_invalid", error=str(exc))
        return None

    log = logger.bind(research_id=message.research_id)
    jobs = runtime.jobs

    job = await jobs.get(message.research_id)
    if job is None:
        # Record lost or never written; rebuild it from the message
        job = ResearchJob(
            research_id=message.research_id,
            query=message.query,
            entity_type=message.entity_type,
            user_id=message.user_id,
            cloud_id=message.cloud_id,
            space_key=message.space_key,
            issue_key=message.issue_key,
        )
    if job.is_terminal:
        log.info("consumer_duplicate_delivery_skipped", status=job.status)
        return job

    if job.status == "queued":
        job = job.mark_running()
        await _record(jobs, job, log)

    try:
        log.info("consumer_research_start", query=message.query, entity_type=message.entity_type)
        report = await runtime.exa.deep_research(message.query, message.entity_type)
        if is_no_information(report):
            log.info("consumer_no_information", query=message.query)

        space_key = await resolve_space_key(
            runtime.confluence,
            message.space_key,
            runtime.config.confluence_space_key,
        )
        title = page_title(message.query)
        page = await publish_report(
            runtime.confluence, space_key, title, report, message.query, message.entity_type
        )
        if not page.page_url:
            raise TofuError("Confluence did not return a link for the created page")
        job = job.mark_completed(page.page_url, page.title or title)
    except Exception as exc:
        log.error("consumer_research_failed", error_type=type(exc).__name__, error=str(exc))
        job = job.mark_failed(str(exc) or type(exc).__name__)
        await _finish(jobs, job, log)
        return job

    await _finish(jobs, job, log)
    log.info("consumer_research_completed", page_url=job.page_url)

    if message.issue_key:
        try:
            await runtime.jira.add_comment(
                message.issue_key,
                research_comment(job.page_url, job.result.page_title, message.query, message.entity_type),
            )
        except Exception as exc:
            log.warning("consumer_issue_comment_failed", issue=message.issue_key, error=str(exc))

    return job
