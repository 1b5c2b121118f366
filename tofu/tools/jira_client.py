"""Async Jira Cloud client — lead issues, comments, projects and boards.

Route map:
    Create issue:   POST /rest/api/3/issue
    Get issue:      GET  /rest/api/3/issue/{key}?fields=summary,description,labels,issuetype
    Add comment:    POST /rest/api/3/issue/{key}/comment
    Projects:       GET  /rest/api/3/project/search?maxResults=N
    Issue types:    GET  /rest/api/3/project/{key}
    Boards:         GET  /rest/agile/1.0/board
    Site URL:       GET  /rest/api/3/serverInfo
"""

from __future__ import annotations

from typing import Any

import structlog
from pydantic import BaseModel, Field

from tofu.errors import AtlassianAPIError
from tofu.tools.atlassian import AtlassianClient

logger = structlog.get_logger().bind(component="jira_client")


class JiraIssue(BaseModel):
    id: str = ""
    key: str
    summary: str = ""
    labels: list[str] = Field(default_factory=list)
    issue_type: str | None = None
    description: dict[str, Any] | None = None


class CreatedIssue(BaseModel):
    key: str
    id: str = ""
    url: str | None = None


class JiraClient(AtlassianClient):
    component = "jira"

    # ── Issues ────────────────────────────────────────────────────────────

    async def resolve_issue_type_id(self, project_key: str, preferred: str | None = None) -> str | None:
        """Preferred type by name (default ``Task``), else the first non-subtask type."""
        project = await self._request("GET", f"/rest/api/3/project/{project_key}")
        standard = [t for t in project.get("issueTypes", []) if not t.get("subtask")]
        if not standard:
            logger.warning("jira_no_standard_issue_types", project=project_key)
            return None

        wanted = (preferred or "Task").lower()
        for issue_type in standard:
            if issue_type.get("name", "").lower() == wanted:
                return issue_type["id"]
        logger.info("jira_issue_type_fallback", project=project_key, using=standard[0].get("name"))
        return standard[0]["id"]

    async def create_issue(
        self,
        project_key: str,
        summary: str,
        description: dict[str, Any],
        labels: list[str] | None = None,
        issue_type: str | None = None,
    ) -> CreatedIssue:
        """Create an issue and return its key and browse URL.

        Raises:
            AtlassianAPIError: Jira refused the issue (message carries Jira's
                               own error text) or no usable issue type exists.
        """
        type_id = await self.resolve_issue_type_id(project_key, issue_type)
        if type_id is None:
            raise AtlassianAPIError(
                400, "", f"Could not find a valid issue type for project {project_key}"
            )

        data = await self._request(
            "POST",
            "/rest/api/3/issue",
            json_body={
                "fields": {
                    "project": {"key": project_key},
                    "summary": summary,
                    "description": description,
                    "issuetype": {"id": type_id},
                    "labels": labels or [],
                }
            },
        )
        key = data["key"]
        logger.info("jira_issue_created", key=key, project=project_key)

        site = await self.site_url()
        return CreatedIssue(key=key, id=str(data.get("id", "")), url=f"{site}/browse/{key}" if site else None)

    async def get_issue(self, key: str) -> JiraIssue:
        data = await self._request(
            "GET",
            f"/rest/api/3/issue/{key}",
            params={"fields": "summary,description,labels,issuetype"},
        )
        fields = data.get("fields", {})
        return JiraIssue(
            id=str(data.get("id", "")),
            key=data.get("key", key),
            summary=fields.get("summary") or "",
            labels=fields.get("labels") or [],
            issue_type=(fields.get("issuetype") or {}).get("name"),
            description=fields.get("description"),
        )

    async def add_comment(self, key: str, body: dict[str, Any]) -> str:
        """Post an ADF comment; return the comment id."""
        data = await self._request("POST", f"/rest/api/3/issue/{key}/comment", json_body={"body": body})
        logger.info("jira_comment_added", key=key)
        return str(data.get("id", ""))

    # ── Projects / boards ─────────────────────────────────────────────────

    async def get_default_project_key(self) -> str | None:
        """Key of the first visible project, or None."""
        try:
            data = await self._request("GET", "/rest/api/3/project/search", params={"maxResults": 1})
        except AtlassianAPIError as exc:
            logger.warning("jira_default_project_failed", error=str(exc))
            return None
        values = data.get("values") or []
        return values[0]["key"] if values else None

    async def list_projects(self, max_results: int = 50) -> list[dict[str, Any]]:
        try:
            data = await self._request("GET", "/rest/api/3/project/search", params={"maxResults": max_results})
        except AtlassianAPIError as exc:
            logger.warning("jira_list_projects_failed", error=str(exc))
            return []
        return [{"key": p["key"], "name": p.get("name", p["key"])} for p in data.get("values") or []]

    async def list_boards(self) -> list[dict[str, Any]]:
        try:
            data = await self._request("GET", "/rest/agile/1.0/board")
        except AtlassianAPIError as exc:
            logger.warning("jira_list_boards_failed", error=str(exc))
            return []
        return [
            {"id": b["id"], "name": b.get("name", ""), "type": b.get("type", "")}
            for b in data.get("values") or []
        ]

    async def site_url(self) -> str:
        """Site base URL reported by Jira; falls back to the configured one."""
        try:
            data = await self._request("GET", "/rest/api/3/serverInfo")
            return (data.get("baseUrl") or self.base_url).rstrip("/")
        except AtlassianAPIError as exc:
            logger.warning("jira_server_info_failed", error=str(exc))
            return self.base_url
