"""Dashboard resolver — named functions behind the Tofu global page.

Each handler receives ``(payload, runtime)`` and returns plain JSON-able
data. Handlers never raise: failures are logged and an empty result or
``{"success": False}`` is returned, so the dashboard always renders.

    resolver = build_resolver()
    data = await resolver.invoke("getSavedLeads", {"type": "person"}, runtime)
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from pydantic import ValidationError

from tofu.models.leads import TofuConfig
from tofu.runtime import Runtime

logger = structlog.get_logger().bind(component="resolver")

Handler = Callable[[dict[str, Any], Runtime], Awaitable[Any]]


class Resolver:
    """Registry of named async handlers with a per-handler fallback result."""

    def __init__(self) -> None:
        self._handlers: dict[str, tuple[Handler, Callable[[], Any]]] = {}

    def define(self, name: str, *, fallback: Callable[[], Any] = lambda: {"success": False}):
        def register(handler: Handler) -> Handler:
            self._handlers[name] = (handler, fallback)
            return handler

        return register

    @property
    def names(self) -> list[str]:
        return sorted(self._handlers)

    async def invoke(self, name: str, payload: dict[str, Any] | None, runtime: Runtime) -> Any:
        if name not in self._handlers:
            raise KeyError(f"No resolver function named {name!r}")
        handler, fallback = self._handlers[name]
        logger.debug("resolver_invoked", function=name)
        try:
            return await handler(payload or {}, runtime)
        except Exception as exc:
            logger.error("resolver_failed", function=name, error=str(exc))
            return fallback()


def _empty_page() -> dict[str, Any]:
    return {"items": [], "total": 0}


def _empty_dashboard() -> dict[str, Any]:
    from tofu.models.leads import DashboardStats

    return {"stats": DashboardStats().to_json_dict(), "recentSearches": [], "recentLeads": []}


def _int(payload: dict[str, Any], key: str, default: int) -> int:
    value = payload.get(key)
    return int(value) if value is not None else default


def build_resolver() -> Resolver:
    resolver = Resolver()

    # ── Dashboard ─────────────────────────────────────────────────────

    @resolver.define("getDashboardData", fallback=_empty_dashboard)
    async def get_dashboard_data(payload, runtime):
        return await runtime.leads.dashboard_data()

    # ── Search history ────────────────────────────────────────────────

    @resolver.define("getSearchHistory", fallback=_empty_page)
    async def get_search_history(payload, runtime):
        items, total = await runtime.leads.get_history(_int(payload, "offset", 0), _int(payload, "limit", 20))
        return {"items": [item.to_json_dict() for item in items], "total": total}

    @resolver.define("clearSearchHistory")
    async def clear_search_history(payload, runtime):
        await runtime.leads.clear_history()
        return {"success": True}

    # ── Leads ─────────────────────────────────────────────────────────

    @resolver.define("getSavedLeads", fallback=_empty_page)
    async def get_saved_leads(payload, runtime):
        items, total = await runtime.leads.list_leads(
            payload.get("type") or "all",
            payload.get("status") or "all",
            _int(payload, "offset", 0),
            _int(payload, "limit", 20),
        )
        return {"items": [lead.to_json_dict() for lead in items], "total": total}

    @resolver.define("updateLeadStatus")
    async def update_lead_status(payload, runtime):
        lead_id, lead_type, status = payload.get("leadId"), payload.get("leadType"), payload.get("newStatus")
        if not (lead_id and lead_type and status):
            return {"success": False}
        return {"success": await runtime.leads.update_status(lead_type, lead_id, status)}

    @resolver.define("deleteLead")
    async def delete_lead(payload, runtime):
        lead_id, lead_type = payload.get("leadId"), payload.get("leadType")
        if not (lead_id and lead_type):
            return {"success": False}
        return {"success": await runtime.leads.delete_lead(lead_type, lead_id)}

    # ── Configuration ─────────────────────────────────────────────────

    @resolver.define("getConfig", fallback=lambda: TofuConfig().to_json_dict())
    async def get_config(payload, runtime):
        return (await runtime.configs.load()).to_json_dict()

    @resolver.define("saveConfig")
    async def save_config(payload, runtime):
        if not payload:
            return {"success": False}
        try:
            config = TofuConfig.model_validate(payload)
        except ValidationError as exc:
            logger.info("config_rejected", error=str(exc))
            return {"success": False}
        await runtime.configs.save(config)
        runtime.config = config
        return {"success": True}

    # ── Jira / research ───────────────────────────────────────────────

    @resolver.define("getJiraProjects", fallback=list)
    async def get_jira_projects(payload, runtime):
        return await runtime.jira.list_projects()

    @resolver.define("getJiraBoards", fallback=list)
    async def get_jira_boards(payload, runtime):
        return await runtime.jira.list_boards()

    @resolver.define("getResearchJob", fallback=lambda: None)
    async def get_research_job(payload, runtime):
        research_id = payload.get("researchId")
        if not research_id:
            return None
        job = await runtime.jobs.get(research_id)
        return job.to_json_dict() if job else None

    return resolver
