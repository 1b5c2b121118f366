"""add-to-board — create a Jira issue that tracks a lead."""

from __future__ import annotations

import structlog

from tofu.actions.adf import lead_description
from tofu.actions.payloads import AddToBoardPayload
from tofu.errors import MissingProjectKeyError
from tofu.models.schemas import entity_emoji
from tofu.runtime import Runtime

logger = structlog.get_logger().bind(component="actions.add_to_board")

LEAD_LABEL = "tofu-lead"


async def resolve_project_key(payload: AddToBoardPayload, runtime: Runtime) -> str:
    """Payload, then app config, then invocation context, then first Jira project."""
    if payload.project_key:
        return payload.project_key
    if runtime.config.default_project_key:
        return runtime.config.default_project_key
    if payload.context.jira and payload.context.jira.project_key:
        return payload.context.jira.project_key

    default = await runtime.jira.get_default_project_key()
    if default:
        return default
    raise MissingProjectKeyError(
        "No project key specified. Please provide a project key or configure a "
        "default in the Tofu settings."
    )


def issue_summary(name: str, entity_type: str) -> str:
    return f"[Lead] {name}" if entity_type == "person" else f"[Company Lead] {name}"


async def add_to_board(payload: AddToBoardPayload, runtime: Runtime) -> str:
    try:
        project_key = await resolve_project_key(payload, runtime)
        title = issue_summary(payload.name, payload.entity_type)
        issue = await runtime.jira.create_issue(
            project_key,
            title,
            lead_description(
                payload.name,
                payload.entity_type,
                payload.summary,
                payload.details,
                payload.source_url,
            ),
            labels=[LEAD_LABEL, payload.entity_type],
            issue_type=runtime.config.default_issue_type,
        )
    except Exception as exc:
        logger.error("add_to_board_failed", name=payload.name, error=str(exc))
        return (
            f"Sorry, I couldn't add this lead to Jira: {exc}\n\n"
            "💡 **Troubleshooting:**\n"
            "• Make sure you have access to the target Jira project\n"
            "• Check that a default project is configured in Tofu settings\n"
            '• Try specifying a project key: "add to project ABC"'
        )

    await runtime.leads.increment_leads_added()
    logger.info("lead_added_to_board", issue=issue.key, project=project_key)

    link = f"🔗 [View in Jira]({issue.url})\n\n" if issue.url else ""
    return (
        f"{entity_emoji(payload.entity_type)} **Lead added successfully!**\n\n"
        f"Created issue **{issue.key}**: {title}\n\n"
        f"{link}"
        "💡 You can find this lead in your Jira project backlog or board."
    )
