"""Lead, search-history, configuration and dashboard models.

Stored as camelCase JSON in the key-value store:

    pending-leads          list[PersonLead]   (cap 200, newest first)
    pending-company-leads  list[CompanyLead]  (cap 200, newest first)
    search-history         list[SearchHistoryItem]  (cap 50, newest first)
    tofu-config            TofuConfig
    tofu-stats             {"leadsAddedToJira": int}
"""

from __future__ import annotations

import uuid
from typing import Annotated, Literal, Union

from pydantic import Field

from tofu.models.exa import ExaSearchResult
from tofu.models.schemas import CamelModel
from tofu.utils.clock import epoch_ms, now_iso

LeadStatus = Literal["pending", "accepted", "rejected", "contacted"]
LEAD_STATUSES: tuple[str, ...] = ("pending", "accepted", "rejected", "contacted")

# Characters kept from the search result text in a lead summary
_SUMMARY_CHARS = 500


def generate_lead_id() -> str:
    """Random fallback id — unique with high probability, not guaranteed."""
    return f"lead-{epoch_ms()}-{uuid.uuid4().hex[:9]}"


class _LeadBase(CamelModel):
    id: str = Field(default_factory=generate_lead_id)
    name: str
    location: str | None = None
    summary: str | None = None
    found_at: str = Field(default_factory=now_iso)
    source: str = "Exa Search"
    status: LeadStatus = "pending"


class PersonLead(_LeadBase):
    type: Literal["person"] = "person"
    title: str | None = None
    company: str | None = None
    profile_url: str | None = None
    skills: list[str] = Field(default_factory=list)

    @property
    def dedup_key(self) -> str | None:
        return self.profile_url

    @classmethod
    def from_search_result(cls, result: ExaSearchResult) -> "PersonLead":
        return cls(
            id=result.id or generate_lead_id(),
            name=result.title or "Unknown",
            profile_url=result.url,
            summary=result.text[:_SUMMARY_CHARS] if result.text else None,
            source=result.url or "Exa Search",
        )


class CompanyLead(_LeadBase):
    type: Literal["company"] = "company"
    industry: str | None = None
    size: str | None = None
    website: str | None = None
    funding_stage: str | None = None
    technologies: list[str] = Field(default_factory=list)

    @property
    def dedup_key(self) -> str | None:
        return self.website

    @classmethod
    def from_search_result(cls, result: ExaSearchResult) -> "CompanyLead":
        return cls(
            id=result.id or generate_lead_id(),
            name=result.title or "Unknown",
            website=result.url,
            summary=result.text[:_SUMMARY_CHARS] if result.text else None,
            source=result.url or "Exa Search",
        )


Lead = Annotated[Union[PersonLead, CompanyLead], Field(discriminator="type")]


class SearchHistoryItem(CamelModel):
    id: str = Field(default_factory=lambda: f"search-{epoch_ms()}")
    query: str
    search_type: Literal["people", "companies"]
    timestamp: str = Field(default_factory=now_iso)
    result_count: int = 0


class TofuConfig(CamelModel):
    """App settings edited from the dashboard.

    Loaded once per invocation and passed to whatever needs it.
    """

    default_project_key: str | None = None
    default_issue_type: str | None = None
    default_result_count: int = Field(default=10, ge=1, le=100)
    auto_save_results: bool = True
    confluence_space_key: str | None = None


class DashboardStats(CamelModel):
    total_searches: int = 0
    total_leads_found: int = 0
    pending_leads: int = 0
    accepted_leads: int = 0
    leads_added_to_jira: int = 0
