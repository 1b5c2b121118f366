"""Pydantic models shared across clients, stores and actions."""

from .exa import ExaSearchOptions, ExaSearchResult, ResearchTaskResponse
from .leads import (
    CompanyLead,
    DashboardStats,
    Lead,
    PersonLead,
    SearchHistoryItem,
    TofuConfig,
)
from .schemas import CamelModel, EntityType

__all__ = [
    "CamelModel",
    "CompanyLead",
    "DashboardStats",
    "EntityType",
    "ExaSearchOptions",
    "ExaSearchResult",
    "Lead",
    "PersonLead",
    "ResearchTaskResponse",
    "SearchHistoryItem",
    "TofuConfig",
]
