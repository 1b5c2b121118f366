"""Async dispatch — hand a research request to the worker and track it.

``enqueue_research`` writes the ``queued`` job record first and only then
pushes the message, so the consumer's ``running`` / terminal writes can
never be overwritten by a late ``queued`` write. If the push is refused the
record is moved to ``failed`` and the ``QueueError`` propagates. A record
that cannot reach the shared store raises ``StorageError`` before anything
is pushed.
"""

from __future__ import annotations

import structlog

from tofu.actions.payloads import ActionContext, DeepResearchAsyncPayload, ResearchStatusPayload
from tofu.errors import QueueError, StorageError
from tofu.models.schemas import EntityType, entity_emoji
from tofu.research.models import ResearchJob
from tofu.runtime import Runtime

logger = structlog.get_logger().bind(component="actions.dispatch")


async def enqueue_research(
    runtime: Runtime,
    query: str,
    entity_type: EntityType,
    context: ActionContext | None = None,
    *,
    space_key: str | None = None,
    issue_key: str | None = None,
) -> ResearchJob:
    """Record a queued job and push it; return as soon as the queue acknowledged."""
    context = context or ActionContext()
    job = ResearchJob(
        query=query,
        entity_type=entity_type,
        user_id=context.user_id,
        cloud_id=context.cloud_id,
        space_key=space_key,
        issue_key=issue_key,
    )
    await runtime.jobs.put(job)

    body = {
        "researchId": job.research_id,
        "query": query,
        "entityType": entity_type,
        "userId": context.user_id,
        "cloudId": context.cloud_id,
        "spaceKey": space_key,
        "issueKey": issue_key,
    }
    try:
        queue_job_id = await runtime.queue.push({k: v for k, v in body.items() if v is not None})
    except QueueError as exc:
        try:
            await runtime.jobs.save_transition(job.mark_failed(str(exc)))
        except StorageError as store_exc:
            logger.error("research_failed_record_lost", research_id=job.research_id, error=str(store_exc))
        raise

    logger.info(
        "research_enqueued",
        research_id=job.research_id,
        queue_job_id=queue_job_id,
        entity_type=entity_type,
    )
    return job


async def deep_research_async(payload: DeepResearchAsyncPayload, runtime: Runtime) -> str:
    try:
        job = await enqueue_research(
            runtime,
            payload.query,
            payload.entity_type,
            payload.context,
            space_key=payload.space_key,
            issue_key=payload.issue_key,
        )
    except Exception as exc:
        logger.error("research_enqueue_failed", query=payload.query, error=str(exc))
        return f"Sorry, I couldn't start background research on {payload.query}: {exc}"

    return (
        f"{entity_emoji(payload.entity_type)} **Deep research started for {payload.query}**\n\n"
        f"Research ID: `{job.research_id}`\n\n"
        "The research runs in the background and usually takes a few minutes. "
        f'When it finishes, a Confluence page titled "Research: {payload.query}" will be created.\n\n'
        f"💡 Ask me for the status of research {job.research_id} to check on it."
    )


def describe_job(job: ResearchJob) -> str:
    """One user-facing status message per job status."""
    subject = f"**{job.query}**"
    if job.status == "queued":
        return f"⏳ Research on {subject} is queued and will start shortly."
    if job.status == "running":
        return f"🔄 Research on {subject} is in progress."
    if job.status == "completed":
        title = job.result.page_title if job.result else f"Research: {job.query}"
        link = f"\n\n📄 [{title}]({job.page_url})" if job.page_url else ""
        return f"✅ Research on {subject} is complete!{link}"
    if job.status == "canceled":
        return f"🚫 Research on {subject} was canceled."
    return f"❌ Research on {subject} failed: {job.error or 'Unknown error'}"


async def research_status(payload: ResearchStatusPayload, runtime: Runtime) -> str:
    job = await runtime.jobs.get(payload.research_id)
    if job is None:
        return f"I couldn't find a research job with ID {payload.research_id}."
    return describe_job(job)
