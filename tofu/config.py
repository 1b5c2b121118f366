"""Tofu configuration — loaded from .env via pydantic-settings."""

from pydantic import Field
from pydantic_settings import BaseSettings


class TofuSettings(BaseSettings):
    """All Tofu process settings. Reads from .env file and environment variables.

    App-level preferences (default project, result count, ...) are NOT here —
    they live in the key-value store as ``TofuConfig`` and are edited from
    the dashboard.
    """

    # --- Exa search / research API ---
    exa_api_key: str = Field(default="", description="Exa API key (x-api-key header)")
    exa_base_url: str = Field(default="https://api.exa.ai", description="Exa API base URL")
    exa_research_model: str = Field(
        default="exa-research-fast",
        description="Model used for /research/v1 tasks",
    )

    # --- Atlassian Cloud (Jira + Confluence) ---
    atlassian_base_url: str = Field(
        default="",
        description="Site URL, e.g. https://example.atlassian.net",
    )
    atlassian_email: str = Field(default="", description="Account email for basic auth")
    atlassian_api_token: str = Field(default="", description="Atlassian API token")

    # --- Redis (key-value store + research queue) ---
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the key-value store and the research queue",
    )
    queue_name: str = Field(default="tofu:research-queue", description="Redis list used as queue")

    # --- Research polling policy ---
    research_max_attempts: int = Field(default=30, description="Max status polls per research task")
    research_initial_delay: float = Field(default=2.0, description="First poll delay (seconds)")
    research_backoff_multiplier: float = Field(default=1.5, description="Delay growth per poll")
    research_max_delay: float = Field(default=30.0, description="Delay cap (seconds)")

    # Wall-clock budget of the synchronous deep-research action. Anything
    # longer must go through the queue.
    sync_action_timeout: float = Field(default=25.0, description="Sync research budget (seconds)")

    # --- Logging ---
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="console",
        description="Log format: 'console' for dev, 'json' for production",
    )

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


# Singleton, import this everywhere
settings = TofuSettings()
