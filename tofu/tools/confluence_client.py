"""Async Confluence Cloud client — spaces and research pages (REST v2).

Route map:
    List spaces:   GET  /wiki/api/v2/spaces?limit=25&sort=name
    Space by key:  GET  /wiki/api/v2/spaces?keys={key}&limit=1
    Create page:   POST /wiki/api/v2/pages
"""

from __future__ import annotations

from typing import Any, Literal

import structlog
from pydantic import BaseModel

from tofu.errors import AtlassianAPIError
from tofu.tools.atlassian import AtlassianClient

logger = structlog.get_logger().bind(component="confluence_client")

PageFormat = Literal["storage", "atlas_doc_format"]


class Space(BaseModel):
    id: str
    key: str
    name: str = ""
    type: str = ""


class CreatedPage(BaseModel):
    page_id: str
    title: str
    page_url: str


class ConfluenceClient(AtlassianClient):
    component = "confluence"

    async def list_spaces(self, limit: int = 25) -> list[Space]:
        """Visible spaces sorted by name.

        Raises:
            AtlassianAPIError: the listing was refused (bad credentials, no access).
        """
        data = await self._request("GET", "/wiki/api/v2/spaces", params={"limit": limit, "sort": "name"})
        spaces = [Space.model_validate({**s, "id": str(s.get("id", ""))}) for s in data.get("results") or []]
        logger.debug("confluence_spaces", count=len(spaces))
        return spaces

    async def get_default_space_key(self) -> str | None:
        """First global (non-personal) space, or None."""
        for space in await self.list_spaces():
            if space.type == "global":
                return space.key
        return None

    async def get_space_id(self, space_key: str) -> str:
        data = await self._request("GET", "/wiki/api/v2/spaces", params={"keys": space_key, "limit": 1})
        results = data.get("results") or []
        if not results or not results[0].get("id"):
            raise AtlassianAPIError(404, "", f"Confluence space not found: {space_key}")
        return str(results[0]["id"])

    async def create_page(
        self,
        space_key: str,
        title: str,
        body: str,
        *,
        format: PageFormat = "storage",
        parent_id: str | None = None,
    ) -> CreatedPage:
        """Create a current page in *space_key*.

        ``page_url`` is absolute when Confluence reports a ``_links.base``,
        otherwise the site-relative web UI path.
        """
        space_id = await self.get_space_id(space_key)
        payload: dict[str, Any] = {
            "spaceId": space_id,
            "status": "current",
            "title": title,
            "body": {"representation": format, "value": body},
        }
        if parent_id:
            payload["parentId"] = parent_id

        page = await self._request("POST", "/wiki/api/v2/pages", json_body=payload)
        links = page.get("_links") or {}
        webui = links.get("webui", "")
        base = links.get("base")
        page_url = f"{base.rstrip('/')}{webui}" if base else webui

        logger.info("confluence_page_created", page_id=page.get("id"), space=space_key, title=title)
        return CreatedPage(page_id=str(page.get("id", "")), title=page.get("title", title), page_url=page_url)
