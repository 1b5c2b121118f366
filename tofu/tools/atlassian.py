"""Shared httpx plumbing for the Jira and Confluence Cloud REST clients.

Both products live on one site (``https://<site>.atlassian.net``) and take
the same basic auth (account email + API token).
"""

from __future__ import annotations

import json
from typing import Any

import httpx
import structlog

from tofu.errors import AtlassianAPIError, ConfigurationError

logger = structlog.get_logger().bind(component="atlassian")


def parse_error_body(status_code: int, body: str) -> str:
    """Flatten Atlassian ``errorMessages`` / ``errors`` into one sentence."""
    try:
        data = json.loads(body)
    except ValueError:
        return f"HTTP {status_code}: {body}"
    if not isinstance(data, dict):
        return f"HTTP {status_code}: {body}"
    messages = [*data.get("errorMessages", []), *(data.get("errors") or {}).values()]
    return ". ".join(str(m) for m in messages) or f"HTTP {status_code}: {body}"


class AtlassianClient:
    """Base for the product clients. Single httpx client, basic auth.

    Args:
        base_url:   Site URL (defaults to settings).
        email:      Account email (defaults to settings).
        api_token:  API token (defaults to settings).
        timeout:    Per-request HTTP timeout in seconds.
        transport:  httpx transport override (``httpx.MockTransport`` in tests).
    """

    component = "atlassian"

    def __init__(
        self,
        base_url: str | None = None,
        email: str | None = None,
        api_token: str | None = None,
        *,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        from tofu.config import settings

        self.base_url = (base_url if base_url is not None else settings.atlassian_base_url).rstrip("/")
        self.email = email if email is not None else settings.atlassian_email
        self.api_token = api_token if api_token is not None else settings.atlassian_api_token
        self.timeout = timeout
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _get_client(self) -> httpx.AsyncClient:
        if not self.base_url:
            raise ConfigurationError(
                "Atlassian site not configured. Set the ATLASSIAN_BASE_URL environment variable."
            )
        if self._client is None or self._client.is_closed:
            auth = httpx.BasicAuth(self.email, self.api_token) if self.api_token else None
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                auth=auth,
                headers={"Accept": "application/json"},
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: dict[str, Any] | None = None,
    ) -> Any:
        """One round trip. Raises ``AtlassianAPIError`` on non-2xx."""
        client = await self._get_client()
        response = await client.request(method, path, params=params, json=json_body)
        if response.is_error:
            logger.error(
                "atlassian_api_error",
                client=self.component,
                method=method,
                path=path,
                status=response.status_code,
            )
            raise AtlassianAPIError(
                response.status_code,
                response.text,
                parse_error_body(response.status_code, response.text),
            )
        if not response.content:
            return {}
        return response.json()
