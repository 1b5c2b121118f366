"""Tofu actions — the conversational surface.

Every action takes a raw payload dict tagged with ``action``::

    {"action": "search-people", "query": "Senior React developers in Berlin"}
    {"action": "deep-research", "query": "Acme Corp", "entityType": "company"}
    {"action": "deep-research-async", "query": "Acme Corp", "entityType": "company"}
    {"action": "research-status", "researchId": "research-..."}
    {"action": "add-to-board", "name": "...", "entityType": "person", "summary": "..."}
    {"action": "issue-deep-research", "issueKey": "LEADS-12"}

``run_action`` validates, dispatches and never raises: failures come back
as the text the user should see.
"""

from __future__ import annotations

from typing import Any

import structlog

from tofu.errors import InvalidPayloadError
from tofu.runtime import Runtime

from .add_to_board import add_to_board
from .deep_research import deep_research
from .dispatch import deep_research_async, enqueue_research, research_status
from .issue_research import IssueResearchResult, issue_deep_research
from .payloads import (
    AddToBoardPayload,
    DeepResearchAsyncPayload,
    DeepResearchPayload,
    IssueDeepResearchPayload,
    ResearchStatusPayload,
    SearchCompaniesPayload,
    SearchPeoplePayload,
    parse_payload,
)
from .search import search_companies, search_people

logger = structlog.get_logger().bind(component="actions")

_HANDLERS = {
    SearchPeoplePayload: search_people,
    SearchCompaniesPayload: search_companies,
    DeepResearchPayload: deep_research,
    DeepResearchAsyncPayload: deep_research_async,
    ResearchStatusPayload: research_status,
    AddToBoardPayload: add_to_board,
    IssueDeepResearchPayload: issue_deep_research,
}


async def run_action(raw: dict[str, Any], runtime: Runtime) -> str | IssueResearchResult:
    """Validate *raw*, run the matching action, and return its result."""
    try:
        payload = parse_payload(raw)
    except InvalidPayloadError as exc:
        logger.info("action_payload_rejected", action=raw.get("action") if isinstance(raw, dict) else None)
        if isinstance(raw, dict) and raw.get("action") == "issue-deep-research":
            return IssueResearchResult(success=False, message=str(exc))
        return str(exc)

    logger.info("action_invoked", action=payload.action)
    handler = _HANDLERS[type(payload)]
    try:
        return await handler(payload, runtime)
    except Exception as exc:
        logger.error("action_failed", action=payload.action, error=str(exc))
        if isinstance(payload, IssueDeepResearchPayload):
            return IssueResearchResult(success=False, message=f"Something went wrong: {exc}")
        return f"Sorry, something went wrong: {exc}"


__all__ = [
    "IssueResearchResult",
    "enqueue_research",
    "parse_payload",
    "run_action",
]
