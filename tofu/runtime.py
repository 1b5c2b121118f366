"""Runtime — the collaborators one invocation works with.

Actions, resolver handlers and the queue consumer all receive a ``Runtime``
instead of reaching for module globals. App configuration is loaded once
per invocation (``Runtime.create`` / ``reload_config``) and never cached
beyond it.

Tests build one with ``Runtime.create(in_memory=True, exa=..., ...)``.
"""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from tofu.leads.store import ConfigStore, LeadStore
from tofu.models.leads import TofuConfig
from tofu.research.store import JobStore
from tofu.tools.confluence_client import ConfluenceClient
from tofu.tools.exa_client import ExaClient
from tofu.tools.jira_client import JiraClient
from tofu.tools.kv_store import KVStore
from tofu.tools.queue import ResearchQueue

logger = structlog.get_logger().bind(component="runtime")


@dataclass
class Runtime:
    kv: KVStore
    exa: ExaClient
    jira: JiraClient
    confluence: ConfluenceClient
    queue: ResearchQueue
    config: TofuConfig = field(default_factory=TofuConfig)

    @property
    def jobs(self) -> JobStore:
        return JobStore(self.kv)

    @property
    def leads(self) -> LeadStore:
        return LeadStore(self.kv)

    @property
    def configs(self) -> ConfigStore:
        return ConfigStore(self.kv)

    @classmethod
    async def create(
        cls,
        *,
        in_memory: bool = False,
        kv: KVStore | None = None,
        exa: ExaClient | None = None,
        jira: JiraClient | None = None,
        confluence: ConfluenceClient | None = None,
        queue: ResearchQueue | None = None,
    ) -> "Runtime":
        """Build default collaborators for anything not passed in, then load config."""
        runtime = cls(
            kv=kv or KVStore(in_memory=in_memory),
            exa=exa or ExaClient(),
            jira=jira or JiraClient(),
            confluence=confluence or ConfluenceClient(),
            queue=queue or ResearchQueue(in_memory=in_memory),
        )
        await runtime.reload_config()
        return runtime

    async def reload_config(self) -> TofuConfig:
        self.config = await self.configs.load()
        return self.config

    async def close(self) -> None:
        for client in (self.exa, self.jira, self.confluence):
            await client.close()
        await self.queue.close()
        await self.kv.close()
