"""deep-research — synchronous research, bounded by the action time budget.

A full research cycle can outlast one invocation; when the budget runs out
the user is pointed at ``deep-research-async`` instead.
"""

from __future__ import annotations

import asyncio

import structlog

from tofu.actions.payloads import DeepResearchPayload
from tofu.models.schemas import EntityType, entity_emoji
from tofu.runtime import Runtime
from tofu.tools.exa_client import is_no_information

logger = structlog.get_logger().bind(component="actions.deep_research")

_NEXT_STEPS = {
    "person": (
        "\n\n💡 **Next steps:**\n"
        '• Say "add this person to board" to track them in Jira\n'
        "• Ask me to search for similar people\n"
        "• Ask about their company for more context"
    ),
    "company": (
        "\n\n💡 **Next steps:**\n"
        '• Say "add this company to board" to track them in Jira\n'
        "• Ask me to find people at this company\n"
        "• Search for similar companies in the same space"
    ),
}


def no_information_message(entity_type: EntityType) -> str:
    who = "this person" if entity_type == "person" else "this company"
    return (
        f"I couldn't find detailed information about {who}. Here are some suggestions:\n\n"
        "• Try using the full name\n"
        "• Include additional context (company name for people, industry for companies)\n"
        "• Check for spelling variations"
    )


async def deep_research(payload: DeepResearchPayload, runtime: Runtime, *, timeout: float | None = None) -> str:
    from tofu.config import settings

    budget = timeout if timeout is not None else settings.sync_action_timeout
    logger.info("deep_research_action", query=payload.query, entity_type=payload.entity_type, budget=budget)

    try:
        report = await asyncio.wait_for(
            runtime.exa.deep_research(payload.query, payload.entity_type),
            timeout=budget,
        )
    except asyncio.TimeoutError:
        logger.warning("deep_research_action_timeout", query=payload.query, budget=budget)
        return (
            f"Research on {payload.query} is taking longer than this conversation allows.\n\n"
            "💡 Ask me to run it as background research instead: the report will be "
            "published to Confluence when it is ready and you can check on it with its research ID."
        )
    except Exception as exc:
        logger.error("deep_research_action_failed", query=payload.query, error=str(exc))
        return (
            f"Sorry, I encountered an error while researching: {exc}\n\n"
            "Please try again with a different query."
        )

    if is_no_information(report):
        return no_information_message(payload.entity_type)

    header = f"{entity_emoji(payload.entity_type)} **Deep Research: {payload.query}**\n\n"
    return header + report + _NEXT_STEPS[payload.entity_type]
