"""Key-value store for leads, history, config and research job records.

Flat namespace, JSON values, single-key atomicity only — there are no
transactions across keys, so every caller does load → mutate → store.

Tries to connect to Redis on first use. If Redis is unavailable, falls
back to an in-process dict so dashboards and one-shot CLI calls still work.
Job records are written with ``strict=True`` and never take that fallback.
"""

from __future__ import annotations

import json
from typing import Any

import structlog

from tofu.errors import StorageError

logger = structlog.get_logger().bind(component="kv_store")


class KVStore:
    """Async JSON key-value store with in-process dict fallback.

    Priority:
        1. Real Redis via redis-py (if installed + server up)
        2. In-process dict (always works, not shared across processes)

    Args:
        url:        Redis URL (defaults to settings).
        in_memory:  Skip Redis entirely and use the dict.
        _redis:     Pre-built ``redis.asyncio.Redis`` (inject for tests).
    """

    def __init__(self, url: str | None = None, *, in_memory: bool = False, _redis=None) -> None:
        if url is None and _redis is None and not in_memory:
            from tofu.config import settings
            url = settings.redis_url
        self.url = url
        self._redis = _redis
        self._fallback: dict[str, str] = {}
        self._in_memory = in_memory
        self._use_fallback = in_memory

    async def _get_redis(self):
        """Lazy connect to Redis. Sets _use_fallback if unavailable."""
        if self._use_fallback:
            return None
        if self._redis is not None:
            return self._redis
        try:
            import redis.asyncio as aioredis  # type: ignore
            client = aioredis.from_url(self.url, decode_responses=True)
            await client.ping()
            self._redis = client
            logger.info("redis_connected", url=self.url)
            return self._redis
        except Exception as e:
            logger.warning("redis_unavailable_using_fallback", error=str(e))
            self._use_fallback = True
            return None

    async def get(self, key: str, default: Any = None) -> Any:
        """Return the decoded value at *key*, or *default* when absent."""
        raw: str | None = None
        r = await self._get_redis()
        if r:
            try:
                raw = await r.get(key)
            except Exception as e:
                logger.warning("redis_get_error", key=key, error=str(e))
                raw = self._fallback.get(key)
        else:
            raw = self._fallback.get(key)

        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("kv_value_not_json", key=key)
            return default

    async def set(self, key: str, value: Any, *, strict: bool = False) -> None:
        """Store *value* (anything ``json.dumps`` accepts) at *key*.

        With ``strict=True`` a value that cannot reach Redis raises
        ``StorageError`` instead of landing in the process-local dict, which
        no other process can read.
        """
        raw = json.dumps(value)
        r = await self._get_redis()
        if r:
            try:
                await r.set(key, raw)
                return
            except Exception as e:
                logger.warning("redis_set_error", key=key, error=str(e))
                if strict:
                    raise StorageError(f"Could not save {key}: {e}") from e
        elif strict and not self._in_memory:
            raise StorageError(f"Could not save {key}: Redis is unavailable")
        self._fallback[key] = raw

    async def delete(self, key: str) -> None:
        r = await self._get_redis()
        if r:
            try:
                await r.delete(key)
                return
            except Exception as e:
                logger.warning("redis_delete_error", key=key, error=str(e))
        self._fallback.pop(key, None)

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
