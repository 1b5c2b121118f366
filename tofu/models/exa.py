"""Exa API shapes — search results and research task responses."""

from __future__ import annotations

from typing import Literal

from pydantic import Field

from tofu.models.schemas import CamelModel

SearchCategory = Literal["people", "company", "news", "pdf", "tweet", "research paper"]
ResearchTaskStatus = Literal["pending", "running", "completed", "canceled", "failed"]


class ExaSearchResult(CamelModel):
    """One ranked hit from ``POST /search``."""

    id: str = ""
    title: str | None = None
    url: str | None = None
    published_date: str | None = None
    author: str | None = None
    text: str | None = None
    highlights: list[str] = Field(default_factory=list)
    score: float | None = None


class ExaSearchResponse(CamelModel):
    results: list[ExaSearchResult] = Field(default_factory=list)
    autoprompt_string: str | None = None


class ExaSearchOptions(CamelModel):
    """Options for a free-form search (``ExaClient.search``)."""

    query: str
    num_results: int = 10
    category: SearchCategory | None = None
    text: bool = True
    highlights: bool = True
    include_domains: list[str] = Field(default_factory=list)
    exclude_domains: list[str] = Field(default_factory=list)
    start_published_date: str | None = None
    end_published_date: str | None = None

    def to_request_body(self) -> dict:
        body: dict = {
            "query": self.query,
            "numResults": self.num_results or 10,
            "text": self.text,
            "highlights": self.highlights,
        }
        if self.category:
            body["category"] = self.category
        if self.include_domains:
            body["includeDomains"] = self.include_domains
        if self.exclude_domains:
            body["excludeDomains"] = self.exclude_domains
        if self.start_published_date:
            body["startPublishedDate"] = self.start_published_date
        if self.end_published_date:
            body["endPublishedDate"] = self.end_published_date
        return body


class ResearchSource(CamelModel):
    url: str
    title: str = ""
    snippet: str | None = None


class ResearchTaskResponse(CamelModel):
    """Body of ``POST /research/v1`` and ``GET /research/v1/{id}``."""

    research_id: str = ""
    status: ResearchTaskStatus
    model: str | None = None
    instructions: str | None = None
    created_at: int | None = None
    completed_at: int | None = None
    output: str | dict | None = None
    sources: list[ResearchSource] = Field(default_factory=list)
    error: str | None = None
