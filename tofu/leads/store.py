"""LeadStore / ConfigStore — leads, search history, stats and app config.

Key layout (all camelCase JSON):
    pending-leads          list[PersonLead]         newest first, cap 200
    pending-company-leads  list[CompanyLead]        newest first, cap 200
    search-history         list[SearchHistoryItem]  newest first, cap 50
    tofu-stats             {"leadsAddedToJira": int}
    tofu-config            TofuConfig

Every operation is load → mutate → store against the key-value store; no
state is kept on the instance between calls.

Graceful degradation:
    History, stats and lead saving sit beside a user's primary action, so
    their storage errors are logged and swallowed. Reads used for display
    return empty collections on failure.
"""

from __future__ import annotations

from typing import Any, Literal

import structlog
from pydantic import TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from tofu.models.leads import (
    LEAD_STATUSES,
    CompanyLead,
    DashboardStats,
    Lead,
    PersonLead,
    SearchHistoryItem,
    TofuConfig,
)
from tofu.models.schemas import EntityType
from tofu.tools.kv_store import KVStore

logger = structlog.get_logger().bind(component="leads.store")

PEOPLE_KEY = "pending-leads"
COMPANIES_KEY = "pending-company-leads"
HISTORY_KEY = "search-history"
STATS_KEY = "tofu-stats"
CONFIG_KEY = "tofu-config"

LEADS_CAP = 200
HISTORY_CAP = 50

_lead_adapter: TypeAdapter[Lead] = TypeAdapter(Lead)


def leads_key(entity_type: EntityType) -> str:
    return PEOPLE_KEY if entity_type == "person" else COMPANIES_KEY


def _dump(items: list) -> list[dict[str, Any]]:
    return [item.to_json_dict() for item in items]


class LeadStore:
    """Deduplicated, capped lead collections plus search history.

    Args:
        kv:            Key-value store (``KVStore(in_memory=True)`` in tests).
        leads_cap:     Max entries per lead collection.
        history_cap:   Max search-history entries.
    """

    def __init__(self, kv: KVStore, *, leads_cap: int = LEADS_CAP, history_cap: int = HISTORY_CAP) -> None:
        self.kv = kv
        self.leads_cap = leads_cap
        self.history_cap = history_cap

    # ── Raw collection access ─────────────────────────────────────────────

    async def _load_leads(self, entity_type: EntityType) -> list[PersonLead | CompanyLead]:
        raw = await self.kv.get(leads_key(entity_type), []) or []
        leads: list[PersonLead | CompanyLead] = []
        for item in raw:
            if isinstance(item, dict):
                item.setdefault("type", entity_type)
            try:
                leads.append(_lead_adapter.validate_python(item))
            except ValidationError as exc:
                logger.warning("lead_record_skipped", entity_type=entity_type, error=str(exc))
        return leads

    async def _store_leads(self, entity_type: EntityType, leads: list) -> None:
        await self.kv.set(leads_key(entity_type), _dump(leads))

    async def load_history(self) -> list[SearchHistoryItem]:
        raw = await self.kv.get(HISTORY_KEY, []) or []
        history: list[SearchHistoryItem] = []
        for item in raw:
            try:
                history.append(SearchHistoryItem.model_validate(item))
            except ValidationError:
                logger.warning("history_record_skipped")
        return history

    # ── Search history ────────────────────────────────────────────────────

    async def record_search(
        self,
        query: str,
        search_type: Literal["people", "companies"],
        result_count: int,
    ) -> SearchHistoryItem | None:
        """Prepend a history item and trim to the cap. Never raises."""
        try:
            item = SearchHistoryItem(query=query, search_type=search_type, result_count=result_count)
            history = [item, *(await self.load_history())][: self.history_cap]
            await self.kv.set(HISTORY_KEY, _dump(history))
            logger.info("search_recorded", query=query, search_type=search_type, results=result_count)
            return item
        except Exception as exc:
            logger.error("search_history_save_failed", query=query, error=str(exc))
            return None

    async def get_history(self, offset: int = 0, limit: int = 20) -> tuple[list[SearchHistoryItem], int]:
        history = await self.load_history()
        return history[offset : offset + limit], len(history)

    async def clear_history(self) -> None:
        await self.kv.set(HISTORY_KEY, [])
        logger.info("search_history_cleared")

    # ── Leads ─────────────────────────────────────────────────────────────

    async def save_leads(self, entity_type: EntityType, leads: list[PersonLead | CompanyLead]) -> int:
        """Prepend leads whose dedup key is not stored yet; trim to the cap.

        A duplicate key inside *leads* itself keeps the first occurrence.
        Leads without a dedup key are never treated as duplicates.
        Returns the number of leads added. Never raises.
        """
        try:
            existing = await self._load_leads(entity_type)
            seen = {lead.dedup_key for lead in existing if lead.dedup_key}
            fresh: list[PersonLead | CompanyLead] = []
            for lead in leads:
                key = lead.dedup_key
                if key and key in seen:
                    continue
                if key:
                    seen.add(key)
                fresh.append(lead)

            await self._store_leads(entity_type, [*fresh, *existing][: self.leads_cap])
            logger.info("leads_saved", entity_type=entity_type, added=len(fresh), offered=len(leads))
            return len(fresh)
        except Exception as exc:
            logger.error("leads_save_failed", entity_type=entity_type, error=str(exc))
            return 0

    async def list_leads(
        self,
        entity_type: EntityType | Literal["all"] | None = "all",
        status: str | None = "all",
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[PersonLead | CompanyLead], int]:
        """Filter by type and status, newest ``foundAt`` first, then paginate.

        Returns ``(page, total_matching)``.
        """
        if entity_type in ("person", "company"):
            leads = await self._load_leads(entity_type)
        else:
            leads = [*(await self._load_leads("person")), *(await self._load_leads("company"))]

        if status and status != "all":
            leads = [lead for lead in leads if lead.status == status]

        leads.sort(key=lambda lead: lead.found_at, reverse=True)
        return leads[offset : offset + limit], len(leads)

    async def update_status(self, entity_type: EntityType, lead_id: str, status: str) -> bool:
        """Set the status of one lead. Any status may follow any other."""
        if status not in LEAD_STATUSES:
            raise ValueError(f"Unknown lead status: {status!r}")
        leads = await self._load_leads(entity_type)
        updated = False
        for index, lead in enumerate(leads):
            if lead.id == lead_id:
                leads[index] = lead.model_copy(update={"status": status})
                updated = True
        if updated:
            await self._store_leads(entity_type, leads)
            logger.info("lead_status_updated", lead_id=lead_id, status=status)
        return updated

    async def delete_lead(self, entity_type: EntityType, lead_id: str) -> bool:
        leads = await self._load_leads(entity_type)
        remaining = [lead for lead in leads if lead.id != lead_id]
        if len(remaining) == len(leads):
            return False
        await self._store_leads(entity_type, remaining)
        logger.info("lead_deleted", lead_id=lead_id)
        return True

    # ── Stats / dashboard ─────────────────────────────────────────────────

    async def increment_leads_added(self) -> int:
        """Bump the add-to-board counter. Never raises; returns the new count."""
        try:
            stats = await self.kv.get(STATS_KEY, {}) or {}
            count = int(stats.get("leadsAddedToJira", 0)) + 1
            stats["leadsAddedToJira"] = count
            await self.kv.set(STATS_KEY, stats)
            return count
        except Exception as exc:
            logger.warning("stats_update_failed", error=str(exc))
            return 0

    async def dashboard_data(self) -> dict[str, Any]:
        """Stats plus the ten most recent searches and leads."""
        stats_raw = await self.kv.get(STATS_KEY, {}) or {}
        history = await self.load_history()
        all_leads = [*(await self._load_leads("person")), *(await self._load_leads("company"))]

        stats = DashboardStats(
            total_searches=len(history),
            total_leads_found=len(all_leads),
            pending_leads=sum(1 for lead in all_leads if lead.status == "pending"),
            accepted_leads=sum(1 for lead in all_leads if lead.status == "accepted"),
            leads_added_to_jira=int(stats_raw.get("leadsAddedToJira", 0)),
        )
        return {
            "stats": stats.to_json_dict(),
            "recentSearches": _dump(history[:10]),
            "recentLeads": _dump(all_leads[:10]),
        }


class ConfigStore:
    """Read-modify-write access to the ``TofuConfig`` record."""

    def __init__(self, kv: KVStore) -> None:
        self.kv = kv

    async def load(self) -> TofuConfig:
        """Stored config, or defaults when absent or unreadable."""
        raw = await self.kv.get(CONFIG_KEY)
        if not raw:
            return TofuConfig()
        try:
            return TofuConfig.model_validate(raw)
        except ValidationError as exc:
            logger.warning("config_invalid_using_defaults", error=str(exc))
            return TofuConfig()

    async def save(self, config: TofuConfig) -> None:
        await self.kv.set(CONFIG_KEY, config.to_json_dict())
        logger.info("config_saved")

    async def update(self, **changes: Any) -> TofuConfig:
        """Apply *changes* (snake_case or camelCase names) and save."""
        current = (await self.load()).model_dump(by_alias=True)
        config = TofuConfig.model_validate({**current, **{to_camel(k): v for k, v in changes.items()}})
        await self.save(config)
        return config
