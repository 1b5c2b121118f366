"""Unit-test conftest — fake Exa / Atlassian APIs, in-memory stores, fake sleep.

All fixtures here are available to every test under tests/unit/ without import.
HTTP is faked with ``httpx.MockTransport``; nothing leaves the process.
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import pytest

from tofu.models.leads import TofuConfig
from tofu.research.policy import PollPolicy
from tofu.runtime import Runtime
from tofu.tools.confluence_client import ConfluenceClient
from tofu.tools.exa_client import ExaClient
from tofu.tools.jira_client import JiraClient
from tofu.tools.kv_store import KVStore
from tofu.tools.queue import ResearchQueue

EXA_URL = "https://api.exa.ai"
SITE_URL = "https://example.atlassian.net"


# ─────────────────────────────────────────────────────────────────────────────
# FakeSleep: records poll delays instead of waiting
# ─────────────────────────────────────────────────────────────────────────────

class FakeSleep:
    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.calls.append(delay)


# ─────────────────────────────────────────────────────────────────────────────
# MockExaAPI: scripted /search and /research/v1
# ─────────────────────────────────────────────────────────────────────────────

class MockExaAPI:
    """Configurable fake Exa server.

    Args:
        statuses:        Status returned by each successive poll; the last one
                         repeats once the list is exhausted.
        output:          Research output returned with ``completed``.
        sources:         Research sources returned with ``completed``.
        error:           Upstream error message returned with ``failed``.
        search_results:  Results returned by ``POST /search``.
        create_status:   HTTP status for ``POST /research/v1`` (non-2xx → error).
        search_status:   HTTP status for ``POST /search``.
    """

    def __init__(
        self,
        *,
        statuses: list[str] | None = None,
        output: Any = "Research output.",
        sources: list[dict] | None = None,
        error: str | None = None,
        search_results: list[dict] | None = None,
        create_status: int = 200,
        search_status: int = 200,
    ) -> None:
        self.statuses = list(statuses or ["completed"])
        self.output = output
        self.sources = sources or []
        self.error = error
        self.search_results = search_results or []
        self.create_status = create_status
        self.search_status = search_status
        self.requests: list[httpx.Request] = []

    @property
    def polls(self) -> int:
        return sum(1 for r in self.requests if r.method == "GET" and r.url.path.startswith("/research/v1/"))

    @property
    def search_bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == "/search"]

    def _next_status(self) -> str:
        return self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if request.method == "POST" and path == "/research/v1":
            if self.create_status >= 400:
                return httpx.Response(self.create_status, text="research unavailable")
            return httpx.Response(200, json={"researchId": "task-1", "status": "pending"})

        if request.method == "GET" and path.startswith("/research/v1/"):
            status = self._next_status()
            body: dict[str, Any] = {"researchId": "task-1", "status": status}
            if status == "completed":
                body["output"] = self.output
                body["sources"] = self.sources
            if status == "failed":
                body["error"] = self.error
            return httpx.Response(200, json=body)

        if request.method == "POST" and path == "/search":
            if self.search_status >= 400:
                return httpx.Response(self.search_status, text="search unavailable")
            return httpx.Response(200, json={"results": self.search_results})

        return httpx.Response(404, text=f"unexpected {request.method} {path}")

    def client(self, sleep: FakeSleep | None = None, policy: PollPolicy | None = None) -> ExaClient:
        return ExaClient(
            api_key="test-key",
            base_url=EXA_URL,
            model="exa-research-fast",
            policy=policy or PollPolicy(max_attempts=5, initial_delay=2.0, multiplier=1.5, max_delay=30.0),
            sleep=sleep or FakeSleep(),
            transport=httpx.MockTransport(self.handler),
        )


# ─────────────────────────────────────────────────────────────────────────────
# MockAtlassianAPI: Jira + Confluence on one site
# ─────────────────────────────────────────────────────────────────────────────

class MockAtlassianAPI:
    """Fake Jira/Confluence site.

    Args:
        spaces:        Spaces returned by the space listing.
        issues:        Issues by key: ``{"summary": ..., "labels": [...]}``.
        projects:      Projects returned by project search.
        issue_types:   Issue types of every project.
        fail_spaces:   Space listing returns 401.
        fail_pages:    Page creation returns 403.
        fail_comments: Comment creation returns 500.
        issue_error:   JSON body returned with 400 on issue creation.
    """

    def __init__(
        self,
        *,
        spaces: list[dict] | None = None,
        issues: dict[str, dict] | None = None,
        projects: list[dict] | None = None,
        issue_types: list[dict] | None = None,
        fail_spaces: bool = False,
        fail_pages: bool = False,
        fail_comments: bool = False,
        issue_error: dict | None = None,
    ) -> None:
        self.spaces = spaces if spaces is not None else [
            {"id": "100", "key": "SALES", "name": "Sales", "type": "global"},
        ]
        self.issues = issues or {}
        self.projects = projects if projects is not None else [{"id": "1", "key": "LEADS", "name": "Leads"}]
        self.issue_types = issue_types if issue_types is not None else [
            {"id": "10001", "name": "Story", "subtask": False},
            {"id": "10002", "name": "Task", "subtask": False},
            {"id": "10003", "name": "Sub-task", "subtask": True},
        ]
        self.fail_spaces = fail_spaces
        self.fail_pages = fail_pages
        self.fail_comments = fail_comments
        self.issue_error = issue_error
        self.requests: list[httpx.Request] = []
        self.pages: list[dict] = []
        self.comments: list[tuple[str, dict]] = []
        self.created_issues: list[dict] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        params = request.url.params
        method = request.method

        # ── Confluence ──
        if path == "/wiki/api/v2/spaces":
            if self.fail_spaces:
                return httpx.Response(401, text="unauthorized")
            if "keys" in params:
                matches = [s for s in self.spaces if s["key"] == params["keys"]]
                return httpx.Response(200, json={"results": matches[:1]})
            return httpx.Response(200, json={"results": self.spaces})

        if path == "/wiki/api/v2/pages" and method == "POST":
            if self.fail_pages:
                return httpx.Response(403, text="no permission")
            payload = json.loads(request.content)
            self.pages.append(payload)
            page_id = str(9000 + len(self.pages))
            return httpx.Response(
                200,
                json={
                    "id": page_id,
                    "title": payload["title"],
                    "status": "current",
                    "_links": {"webui": f"/spaces/SALES/pages/{page_id}", "base": f"{SITE_URL}/wiki"},
                },
            )

        # ── Jira ──
        if path == "/rest/api/3/serverInfo":
            return httpx.Response(200, json={"baseUrl": SITE_URL})

        if path == "/rest/api/3/project/search":
            limit = int(params.get("maxResults", 50))
            return httpx.Response(200, json={"values": self.projects[:limit]})

        if path.startswith("/rest/api/3/project/"):
            return httpx.Response(200, json={"issueTypes": self.issue_types})

        if path == "/rest/agile/1.0/board":
            return httpx.Response(200, json={"values": [{"id": 7, "name": "Leads board", "type": "kanban"}]})

        if path == "/rest/api/3/issue" and method == "POST":
            if self.issue_error is not None:
                return httpx.Response(400, json=self.issue_error)
            payload = json.loads(request.content)
            self.created_issues.append(payload)
            return httpx.Response(201, json={"id": "20001", "key": f"LEADS-{len(self.created_issues)}"})

        if path.endswith("/comment") and method == "POST":
            if self.fail_comments:
                return httpx.Response(500, text="comment failed")
            key = path.split("/")[-2]
            self.comments.append((key, json.loads(request.content)["body"]))
            return httpx.Response(201, json={"id": "c-1"})

        if path.startswith("/rest/api/3/issue/") and method == "GET":
            key = path.rsplit("/", 1)[-1]
            if key not in self.issues:
                return httpx.Response(404, json={"errorMessages": ["Issue does not exist"]})
            issue = self.issues[key]
            return httpx.Response(
                200,
                json={
                    "id": "30001",
                    "key": key,
                    "fields": {
                        "summary": issue.get("summary", ""),
                        "labels": issue.get("labels", []),
                        "issuetype": {"name": "Task"},
                    },
                },
            )

        return httpx.Response(404, text=f"unexpected {method} {path}")

    def jira(self) -> JiraClient:
        return JiraClient(SITE_URL, "bot@example.com", "token", transport=httpx.MockTransport(self.handler))

    def confluence(self) -> ConfluenceClient:
        return ConfluenceClient(SITE_URL, "bot@example.com", "token", transport=httpx.MockTransport(self.handler))


# ─────────────────────────────────────────────────────────────────────────────
# WriteRefusingRedis: reads work, every write fails
# ─────────────────────────────────────────────────────────────────────────────

class WriteRefusingRedis:
    """Stand-in for ``redis.asyncio.Redis`` whose writes raise ``ConnectionError``.

    Args:
        data:  Raw string values already stored, by key.
    """

    def __init__(self, data: dict[str, str] | None = None) -> None:
        self.data = data or {}
        self.write_attempts: list[str] = []

    async def get(self, key: str) -> str | None:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.write_attempts.append(key)
        raise ConnectionError("Redis refused the write")

    async def delete(self, key: str) -> None:
        raise ConnectionError("Redis refused the write")

    async def aclose(self) -> None:
        return None


# ─────────────────────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────────────────────

def search_result(index: int, *, url: str | None = None, **fields) -> dict:
    """One raw Exa search hit as the API returns it (camelCase)."""
    return {
        "id": f"exa-{index}",
        "title": f"Result {index}",
        "url": url or f"https://example.com/{index}",
        "text": f"Profile text {index}",
        "highlights": [f"highlight {index}"],
        **fields,
    }


# ─────────────────────────────────────────────────────────────────────────────
# Fixtures
#
# The mock APIs read their attributes at request time, so a test can build
# ``runtime`` and then script the fake, e.g. ``exa_api.statuses = [...]``.
# ─────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def fake_sleep():
    return FakeSleep()


@pytest.fixture
def kv():
    """A fresh in-process key-value store."""
    return KVStore(in_memory=True)


@pytest.fixture
def queue():
    return ResearchQueue(in_memory=True)


@pytest.fixture
def exa_api():
    return MockExaAPI()


@pytest.fixture
def atlassian_api():
    return MockAtlassianAPI()


@pytest.fixture
def make_hit():
    """Factory for raw Exa search hits: ``make_hit(1, url=...)``."""
    return search_result


@pytest.fixture
def exa(exa_api, fake_sleep):
    return exa_api.client(fake_sleep)


@pytest.fixture
def runtime(kv, queue, exa, atlassian_api):
    """Runtime wired to the fakes above with default app config."""
    return Runtime(
        kv=kv,
        exa=exa,
        jira=atlassian_api.jira(),
        confluence=atlassian_api.confluence(),
        queue=queue,
        config=TofuConfig(),
    )


@pytest.fixture
def refusing_kv():
    """KVStore over a Redis that accepts reads and refuses writes."""
    return KVStore("redis://fake:6379/0", _redis=WriteRefusingRedis())
