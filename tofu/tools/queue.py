"""Research queue — hands research requests from actions to the worker.

Redis layout:
    {name}             LIST  pending envelopes (RPUSH in, BLMOVE out)
    {name}:processing  LIST  envelopes handed to a worker but not yet acked

Envelope (JSON)::

    {"jobId": "job-1a2b3c4d5e6f", "body": {...}, "enqueuedAt": "2026-..."}

Delivery is at-least-once: a worker that dies between ``pop`` and ``ack``
leaves the envelope in the processing list, and ``recover()`` on the next
worker start moves it back to the pending list. Consumers must therefore
tolerate duplicates.

Unlike the key-value store there is no silent fallback: if Redis refuses a
push the caller gets ``QueueError`` — a request must never be reported as
queued when nobody will ever see it. ``in_memory=True`` gives a deque-backed
queue for tests and single-process runs.
"""

from __future__ import annotations

import asyncio
import json
import uuid
from collections import deque
from typing import Any

import structlog
from pydantic import Field

from tofu.errors import QueueError
from tofu.models.schemas import CamelModel
from tofu.utils.clock import now_iso

logger = structlog.get_logger().bind(component="queue")


class QueueMessage(CamelModel):
    job_id: str
    body: dict[str, Any] = Field(default_factory=dict)
    enqueued_at: str = ""
    # Exact envelope as stored, LREM needs it on ack
    raw: str = Field(default="", exclude=True)

    @classmethod
    def decode(cls, raw: str) -> "QueueMessage":
        msg = cls.model_validate_json(raw)
        msg.raw = raw
        return msg


class ResearchQueue:
    """Reliable FIFO queue over a pair of Redis lists.

    Args:
        url:        Redis URL (defaults to settings).
        name:       Pending-list key (defaults to settings.queue_name).
        in_memory:  Use in-process deques instead of Redis.
        _redis:     Pre-built ``redis.asyncio.Redis`` (inject for tests).
    """

    def __init__(
        self,
        url: str | None = None,
        name: str | None = None,
        *,
        in_memory: bool = False,
        _redis=None,
    ) -> None:
        if (url is None or name is None) and not in_memory:
            from tofu.config import settings
            url = url or settings.redis_url
            name = name or settings.queue_name
        self.url = url
        self.name = name or "tofu:research-queue"
        self.processing_name = f"{self.name}:processing"
        self._redis = _redis
        self._in_memory = in_memory
        self._pending: deque[str] = deque()
        self._processing: list[str] = []

    async def _get_redis(self):
        if self._redis is None:
            try:
                import redis.asyncio as aioredis  # type: ignore
                self._redis = aioredis.from_url(self.url, decode_responses=True)
            except Exception as exc:
                raise QueueError(f"Research queue unavailable: {exc}") from exc
        return self._redis

    # ── Producer side ─────────────────────────────────────────────────────

    async def push(self, body: dict[str, Any]) -> str:
        """Enqueue *body*; return the job id once the queue acknowledged it."""
        job_id = f"job-{uuid.uuid4().hex[:12]}"
        raw = json.dumps({"jobId": job_id, "body": body, "enqueuedAt": now_iso()})

        if self._in_memory:
            self._pending.append(raw)
        else:
            r = await self._get_redis()
            try:
                await r.rpush(self.name, raw)
            except Exception as exc:
                logger.error("queue_push_failed", queue=self.name, error=str(exc))
                raise QueueError(f"Research queue rejected the request: {exc}") from exc

        logger.info("queue_pushed", queue=self.name, job_id=job_id)
        return job_id

    # ── Consumer side ─────────────────────────────────────────────────────

    async def pop(self, timeout: float = 5.0) -> QueueMessage | None:
        """Take the oldest envelope, parking it in the processing list.

        Blocks up to *timeout* seconds on Redis; returns None when idle.
        Undecodable envelopes are dropped (acked) and logged.
        """
        if self._in_memory:
            if not self._pending:
                # Idle pop waits like BLMOVE would
                await asyncio.sleep(timeout)
                return None
            raw = self._pending.popleft()
            self._processing.append(raw)
        else:
            r = await self._get_redis()
            raw = await r.blmove(self.name, self.processing_name, timeout, "LEFT", "RIGHT")
            if raw is None:
                return None

        try:
            return QueueMessage.decode(raw)
        except ValueError as exc:
            logger.error("queue_message_undecodable", error=str(exc), raw=raw[:200])
            await self._remove_processing(raw)
            return None

    async def ack(self, message: QueueMessage) -> None:
        """Forget a handled envelope."""
        await self._remove_processing(message.raw)
        logger.debug("queue_acked", job_id=message.job_id)

    async def _remove_processing(self, raw: str) -> None:
        if self._in_memory:
            if raw in self._processing:
                self._processing.remove(raw)
            return
        r = await self._get_redis()
        await r.lrem(self.processing_name, 1, raw)

    async def recover(self) -> int:
        """Move un-acked envelopes back to the head of the pending list."""
        moved = 0
        if self._in_memory:
            while self._processing:
                self._pending.appendleft(self._processing.pop())
                moved += 1
        else:
            r = await self._get_redis()
            while await r.lmove(self.processing_name, self.name, "RIGHT", "LEFT"):
                moved += 1
        if moved:
            logger.warning("queue_recovered_unacked", queue=self.name, count=moved)
        return moved

    async def size(self) -> int:
        if self._in_memory:
            return len(self._pending)
        r = await self._get_redis()
        return int(await r.llen(self.name))

    async def close(self) -> None:
        if self._redis is not None:
            try:
                await self._redis.aclose()
            except Exception as e:
                logger.warning("queue_close_error", queue=self.name, error=str(e))
            self._redis = None
