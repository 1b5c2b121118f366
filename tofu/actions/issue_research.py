"""issue-deep-research — research the lead behind a Jira issue.

Runs from an issue panel: fetch the issue, check it is a Tofu lead, work out
who or what it is about, research it, publish a Confluence page and link
the page back to the issue with a comment.
"""

from __future__ import annotations

import re

import structlog
from pydantic import BaseModel

from tofu.actions.adf import research_comment
from tofu.actions.add_to_board import LEAD_LABEL
from tofu.actions.payloads import IssueDeepResearchPayload
from tofu.errors import AtlassianAPIError, NoPublishLocationError
from tofu.models.schemas import EntityType, entity_emoji, entity_label
from tofu.research.publish import publish_report, resolve_space_key
from tofu.runtime import Runtime
from tofu.tools.exa_client import is_no_information

logger = structlog.get_logger().bind(component="actions.issue_research")

_LEAD_PREFIX = re.compile(r"^\[(?:Lead|Company Lead|Person Lead)\]\s*", re.IGNORECASE)


class IssueResearchResult(BaseModel):
    success: bool
    message: str
    page_url: str | None = None
    page_title: str | None = None


def extract_lead_name(summary: str) -> str:
    """'[Company Lead] Acme Corp' → 'Acme Corp'"""
    return _LEAD_PREFIX.sub("", summary).strip() or summary


def determine_entity_type(labels: list[str]) -> EntityType | None:
    """Exact ``person`` / ``company`` label first, then any label containing one."""
    if "person" in labels:
        return "person"
    if "company" in labels:
        return "company"
    lowered = [label.lower() for label in labels]
    if any("person" in label for label in lowered):
        return "person"
    if any("company" in label for label in lowered):
        return "company"
    return None


def _fail(message: str) -> IssueResearchResult:
    return IssueResearchResult(success=False, message=message)


async def issue_deep_research(payload: IssueDeepResearchPayload, runtime: Runtime) -> IssueResearchResult:
    issue_key = payload.issue_key

    try:
        issue = await runtime.jira.get_issue(issue_key)
    except Exception as exc:
        logger.error("issue_fetch_failed", issue=issue_key, error=str(exc))
        return _fail(f"Could not fetch issue details for {issue_key}. Please check your permissions.")

    if LEAD_LABEL not in issue.labels:
        return _fail(
            "This issue is not a Tofu lead. Deep research is only available for "
            f'issues with the "{LEAD_LABEL}" label.'
        )

    entity_type = determine_entity_type(issue.labels)
    if entity_type is None:
        return _fail(
            "Could not determine if this is a person or company lead. "
            'Please ensure the issue has a "person" or "company" label.'
        )

    name = extract_lead_name(issue.summary)
    logger.info("issue_research_start", issue=issue_key, entity_type=entity_type, subject=name)

    try:
        report = await runtime.exa.deep_research(name, entity_type)
    except Exception as exc:
        logger.error("issue_research_failed", issue=issue_key, error=str(exc))
        return _fail(f"Research failed: {exc}. Please try again.")

    if is_no_information(report):
        return _fail(
            f'Could not find detailed information about "{name}". '
            "The research may require more specific details."
        )

    try:
        space_key = await resolve_space_key(runtime.confluence, runtime.config.confluence_space_key)
    except NoPublishLocationError:
        return _fail(
            "No Confluence space available. Please ensure you have access to at least one Confluence space."
        )
    except AtlassianAPIError as exc:
        logger.error("issue_research_spaces_failed", issue=issue_key, error=str(exc))
        return _fail(f"Could not list Confluence spaces: {exc}")

    title = f"Research: {name} ({entity_label(entity_type)})"
    try:
        page = await publish_report(runtime.confluence, space_key, title, report, name, entity_type)
    except Exception as exc:
        logger.error("issue_research_publish_failed", issue=issue_key, space=space_key, error=str(exc))
        return _fail(f'Failed to create Confluence page in space "{space_key}". Please check your permissions.')

    try:
        await runtime.jira.add_comment(issue_key, research_comment(page.page_url, title, name, entity_type))
    except Exception as exc:
        logger.warning("issue_research_comment_failed", issue=issue_key, error=str(exc))

    return IssueResearchResult(
        success=True,
        message=(
            f"{entity_emoji(entity_type)} Deep research complete! A Confluence page has been "
            f"created with comprehensive information about {name}."
        ),
        page_url=page.page_url,
        page_title=title,
    )
