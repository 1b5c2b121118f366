"""search-people / search-companies — Exa search with lead capture."""

from __future__ import annotations

import structlog

from tofu.actions.payloads import SearchCompaniesPayload, SearchPeoplePayload
from tofu.models.exa import ExaSearchResult
from tofu.models.leads import CompanyLead, PersonLead
from tofu.models.schemas import EntityType
from tofu.runtime import Runtime
from tofu.tools.exa_client import format_results_for_agent

logger = structlog.get_logger().bind(component="actions.search")

_FOLLOW_UP = {
    "person": (
        "\n\n💡 **Next steps:**\n"
        "• Ask me to research any specific person for more details\n"
        '• Say "add [name] to board" to create a Jira issue for tracking'
    ),
    "company": (
        "\n\n💡 **Next steps:**\n"
        "• Ask me to research any specific company for more details\n"
        "• Ask me to find people who work at one of these companies\n"
        '• Say "add [company] to board" to create a Jira issue for tracking'
    ),
}
_TIPS = {
    "person": (
        "\n\n💡 **Tips:**\n"
        "• Try a more specific query with skills, location, or company\n"
        "• Use different keywords to broaden your search"
    ),
    "company": (
        "\n\n💡 **Tips:**\n"
        "• Try a more specific query with industry, stage, or location\n"
        "• Use different keywords to broaden your search"
    ),
}


def results_to_leads(results: list[ExaSearchResult], entity_type: EntityType) -> list[PersonLead | CompanyLead]:
    model = PersonLead if entity_type == "person" else CompanyLead
    return [model.from_search_result(result) for result in results]


async def _run_search(query: str, num_results: int | None, entity_type: EntityType, runtime: Runtime) -> str:
    plural = "people" if entity_type == "person" else "companies"
    count = num_results or runtime.config.default_result_count
    logger.info("search_action", entity_type=entity_type, query=query, count=count)

    try:
        if entity_type == "person":
            results = await runtime.exa.search_people(query, count)
        else:
            results = await runtime.exa.search_companies(query, count)
    except Exception as exc:
        logger.error("search_action_failed", entity_type=entity_type, error=str(exc))
        return (
            f"Sorry, I encountered an error while searching for {plural}: {exc}\n\n"
            "Please try again or rephrase your search query."
        )

    await runtime.leads.record_search(query, plural, len(results))
    if results and runtime.config.auto_save_results:
        await runtime.leads.save_leads(entity_type, results_to_leads(results, entity_type))

    follow_up = _FOLLOW_UP[entity_type] if results else _TIPS[entity_type]
    return format_results_for_agent(results, entity_type) + follow_up


async def search_people(payload: SearchPeoplePayload, runtime: Runtime) -> str:
    return await _run_search(payload.query, payload.num_results, "person", runtime)


async def search_companies(payload: SearchCompaniesPayload, runtime: Runtime) -> str:
    return await _run_search(payload.query, payload.num_results, "company", runtime)
