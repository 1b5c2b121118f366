"""Exception hierarchy shared by the clients, stores and actions.

Actions never let these escape to the caller — they are turned into a
user-readable string at the action boundary. The research consumer turns
them into a ``failed`` job record.
"""

from __future__ import annotations


class TofuError(Exception):
    """Base class for every error Tofu raises on purpose."""


# ── Configuration ─────────────────────────────────────────────────────────────


class ConfigurationError(TofuError):
    """A required setting is missing. The message names the setting."""


class MissingProjectKeyError(ConfigurationError):
    """No Jira project could be resolved for a new lead issue."""


class NoPublishLocationError(ConfigurationError):
    """No Confluence space is available to publish a research page into."""


# ── Upstream HTTP APIs ────────────────────────────────────────────────────────


class UpstreamAPIError(TofuError):
    """Non-2xx response from a third-party API."""

    service = "upstream"

    def __init__(self, status_code: int, body: str, message: str | None = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"{self.service} API error: {status_code} - {body}")


class ExaAPIError(UpstreamAPIError):
    service = "Exa"


class AtlassianAPIError(UpstreamAPIError):
    service = "Atlassian"


# ── Research task outcomes ────────────────────────────────────────────────────


class ResearchError(TofuError):
    """The research task did not produce a report."""


class ResearchFailedError(ResearchError):
    def __init__(self, upstream_error: str | None) -> None:
        self.upstream_error = upstream_error or "Unknown error"
        super().__init__(f"Research failed: {self.upstream_error}")


class ResearchCanceledError(ResearchError):
    def __init__(self) -> None:
        super().__init__("Research task was canceled")


class ResearchTimeoutError(ResearchError):
    def __init__(self, attempts: int) -> None:
        self.attempts = attempts
        super().__init__(
            "Research timed out. The request is taking longer than expected."
        )


# ── Queue / payloads ──────────────────────────────────────────────────────────


class QueueError(TofuError):
    """The research queue did not acknowledge a push."""


class InvalidPayloadError(TofuError):
    """An action payload failed validation. ``str(exc)`` is user-facing."""


class StorageError(TofuError):
    """A write that must be shared across processes did not reach Redis."""
