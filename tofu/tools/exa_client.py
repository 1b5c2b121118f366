"""Async client for the Exa search and research APIs.

Route map:
    Search:           POST /search           {query, numResults, category, text, highlights}
    Create research:  POST /research/v1      {instructions, model} -> {researchId, status}
    Get research:     GET  /research/v1/{id} -> {status, output?, sources?, error?}

Auth: ``x-api-key`` header on every request.

``deep_research`` is the long-running path: it creates a research task,
polls it with exponential backoff, and falls back to a broadened
synchronous search when the task fails, is canceled, times out, or the API
errors. When even the fallback finds nothing it returns the
``no_information_found`` sentinel instead of raising.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import structlog

from tofu.errors import (
    ConfigurationError,
    ExaAPIError,
    ResearchCanceledError,
    ResearchFailedError,
    ResearchTimeoutError,
)
from tofu.models.exa import (
    ExaSearchOptions,
    ExaSearchResponse,
    ExaSearchResult,
    ResearchTaskResponse,
)
from tofu.models.schemas import EntityType, entity_emoji
from tofu.research.policy import PollPolicy

logger = structlog.get_logger().bind(component="exa_client")

# Marker shared by the sentinel and ``is_no_information``
_NO_INFO_MARKER = "No detailed information found"


def no_information_found(subject: str) -> str:
    """Sentinel report: research and fallback both came back empty."""
    return f"{_NO_INFO_MARKER} for {subject}."


def is_no_information(report: str | None) -> bool:
    """True for an empty report or the sentinel — a semantic miss, not a crash."""
    return not report or _NO_INFO_MARKER in report


def build_research_instructions(subject: str, entity_type: EntityType) -> str:
    if entity_type == "person":
        return (
            f"Research and provide a comprehensive profile of {subject}. Include:\n"
            "- Professional background and current role\n"
            "- Career history and notable achievements\n"
            "- Education and qualifications\n"
            "- Skills and areas of expertise\n"
            "- Any public presence (LinkedIn, Twitter, publications)\n"
            "- Recent news or mentions\n"
            "Provide specific details with citations where available."
        )
    return (
        f"Research and provide a comprehensive overview of the company {subject}. Include:\n"
        "- Company overview and what they do\n"
        "- Founding date, headquarters, and key leadership\n"
        "- Products or services offered\n"
        "- Industry and market position\n"
        "- Funding history and financial status (if available)\n"
        "- Recent news, partnerships, or notable developments\n"
        "- Company culture and employee count (if available)\n"
        "Provide specific details with citations where available."
    )


def format_research_output(task: ResearchTaskResponse) -> str:
    """Completed task → report text followed by a numbered, linked source list."""
    output = task.output
    if isinstance(output, dict):
        output = output.get("content") or json.dumps(output, indent=2)
    report = output or "No research output available."

    if task.sources:
        lines = ["", "", "**Sources:**"]
        for index, source in enumerate(task.sources, start=1):
            lines.append(f"{index}. [{source.title or source.url}]({source.url})")
        report += "\n".join(lines) + "\n"
    return report


def format_results_for_agent(results: list[ExaSearchResult], entity_type: EntityType) -> str:
    """Readable listing of search hits for the conversational agent."""
    plural = "people" if entity_type == "person" else "companies"
    if not results:
        return f"No {plural} found matching your search criteria."

    emoji = entity_emoji(entity_type)
    header = f"Found {len(results)} {plural} matching your search:"

    blocks: list[str] = []
    for index, result in enumerate(results, start=1):
        lines = [f"{emoji} **{index}. {result.title or 'Unknown'}**"]
        if result.url:
            lines.append(f"   🔗 {result.url}")
        if result.text:
            text = result.text[:200] + "..." if len(result.text) > 200 else result.text
            lines.append(f"   📝 {text}")
        if result.published_date:
            lines.append(f"   📅 {result.published_date}")
        blocks.append("\n".join(lines))

    return f"{header}\n\n" + "\n\n".join(blocks)


class ExaClient:
    """Async client for Exa. Single httpx client, single base URL.

    Args:
        api_key:    Exa key (defaults to settings; checked on first request).
        base_url:   API root (defaults to settings).
        model:      Research model name (defaults to settings).
        policy:     Poll policy for research tasks (defaults to settings).
        timeout:    Per-request HTTP timeout in seconds.
        sleep:      Awaitable sleep used between polls (inject a fake in tests).
        transport:  httpx transport override (``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        *,
        model: str | None = None,
        policy: PollPolicy | None = None,
        timeout: float = 30.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        from tofu.config import settings

        self.api_key = api_key if api_key is not None else settings.exa_api_key
        self.base_url = (base_url or settings.exa_base_url).rstrip("/")
        self.model = model or settings.exa_research_model
        self.policy = policy or PollPolicy.from_settings()
        self.timeout = timeout
        self._sleep = sleep
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "ExaClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def _auth_headers(self) -> dict[str, str]:
        if not self.api_key:
            raise ConfigurationError(
                "Exa API key not configured. Set the EXA_API_KEY environment variable."
            )
        return {"x-api-key": self.api_key}

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    # ── Raw requests ──────────────────────────────────────────────────────

    async def _post(self, endpoint: str, body: dict[str, Any]) -> dict[str, Any]:
        headers = self._auth_headers()
        client = await self._get_client()
        logger.debug("exa_request", method="POST", endpoint=endpoint)
        response = await client.post(endpoint, json=body, headers=headers)
        if response.is_error:
            logger.error("exa_api_error", endpoint=endpoint, status=response.status_code)
            raise ExaAPIError(response.status_code, response.text)
        return response.json()

    async def _get(self, endpoint: str) -> dict[str, Any]:
        headers = self._auth_headers()
        client = await self._get_client()
        logger.debug("exa_request", method="GET", endpoint=endpoint)
        response = await client.get(endpoint, headers=headers)
        if response.is_error:
            logger.error("exa_api_error", endpoint=endpoint, status=response.status_code)
            raise ExaAPIError(response.status_code, response.text)
        return response.json()

    # ── Search ────────────────────────────────────────────────────────────

    async def _search_body(self, body: dict[str, Any]) -> list[ExaSearchResult]:
        data = await self._post("/search", body)
        results = ExaSearchResponse.model_validate(data).results
        logger.info("exa_search_ok", category=body.get("category"), count=len(results))
        return results

    async def search(self, options: ExaSearchOptions) -> list[ExaSearchResult]:
        """Free-form search with full option support."""
        return await self._search_body(options.to_request_body())

    async def _category_search(self, query: str, num_results: int, category: str) -> list[ExaSearchResult]:
        return await self._search_body(
            {
                "query": query,
                "numResults": num_results,
                "category": category,
                "text": {"maxCharacters": 2000, "includeHtmlTags": False},
                "highlights": {"numSentences": 3, "highlightsPerUrl": 3},
            }
        )

    async def search_people(self, query: str, num_results: int = 10) -> list[ExaSearchResult]:
        """People search over Exa's indexed profiles (``category=people``)."""
        return await self._category_search(query, num_results, "people")

    async def search_companies(self, query: str, num_results: int = 10) -> list[ExaSearchResult]:
        """Company search (``category=company``)."""
        return await self._category_search(query, num_results, "company")

    # ── Research tasks ────────────────────────────────────────────────────

    async def create_research_task(self, instructions: str) -> ResearchTaskResponse:
        data = await self._post(
            "/research/v1",
            {"instructions": instructions, "model": self.model},
        )
        task = ResearchTaskResponse.model_validate(data)
        logger.info("research_task_created", task_id=task.research_id, status=task.status)
        return task

    async def get_research_task(self, task_id: str) -> ResearchTaskResponse:
        return ResearchTaskResponse.model_validate(await self._get(f"/research/v1/{task_id}"))

    async def poll_research(self, task_id: str) -> str:
        """Poll *task_id* until it is terminal; return the formatted report.

        Raises:
            ResearchFailedError:   task reported ``failed``.
            ResearchCanceledError: task reported ``canceled``.
            ResearchTimeoutError:  still running after ``policy.max_attempts`` polls.
        """
        attempt = 0
        for attempt, delay in enumerate(self.policy.delays(), start=1):
            await self._sleep(delay)
            task = await self.get_research_task(task_id)
            logger.debug(
                "research_poll",
                task_id=task_id,
                attempt=attempt,
                max_attempts=self.policy.max_attempts,
                status=task.status,
            )

            if task.status == "completed":
                logger.info("research_task_completed", task_id=task_id, attempts=attempt)
                return format_research_output(task)
            if task.status == "failed":
                raise ResearchFailedError(task.error)
            if task.status == "canceled":
                raise ResearchCanceledError()

        raise ResearchTimeoutError(attempt)

    async def run_research(self, subject: str, entity_type: EntityType) -> str:
        """Create + poll without fallback. Raises on any failure."""
        task = await self.create_research_task(build_research_instructions(subject, entity_type))
        return await self.poll_research(task.research_id)

    async def deep_research(self, subject: str, entity_type: EntityType) -> str:
        """Research *subject*, falling back to a broadened search on any error.

        Returns the report text, or ``no_information_found(subject)`` when the
        fallback search has no results. Errors raised by the fallback search
        itself propagate.
        """
        logger.info("deep_research_start", subject=subject, entity_type=entity_type)
        try:
            return await self.run_research(subject, entity_type)
        except Exception as exc:
            logger.warning(
                "deep_research_falling_back",
                subject=subject,
                error_type=type(exc).__name__,
                error=str(exc),
            )
        return await self.fallback_search(subject, entity_type)

    async def fallback_search(self, subject: str, entity_type: EntityType) -> str:
        """Synchronous full-text search used when the research task fails."""
        enhanced_query = (
            f"Detailed profile and background information about {subject}"
            if entity_type == "person"
            else f"Company profile, overview, and detailed information about {subject}"
        )
        results = await self._search_body(
            {
                "query": enhanced_query,
                "numResults": 5,
                "category": "people" if entity_type == "person" else "company",
                "text": {"maxCharacters": 3000, "includeHtmlTags": False},
                "highlights": {"numSentences": 5, "highlightsPerUrl": 5},
            }
        )
        if not results:
            logger.info("fallback_search_empty", subject=subject)
            return no_information_found(subject)

        parts = [f"**Research Results for {subject}**\n"]
        for index, result in enumerate(results, start=1):
            block = [f"**{index}. {result.title or 'Unknown'}**"]
            if result.url:
                block.append(f"Source: {result.url}")
            if result.text:
                block.append(f"\n{result.text[:1500]}")
            if result.highlights:
                block.append("\nKey points:")
                block.extend(f"• {highlight}" for highlight in result.highlights[:3])
            block.append("\n---\n")
            parts.append("\n".join(block))
        return "\n".join(parts)
