"""Integration-test conftest — real Redis fixtures.

Integration tests require:
    TOFU_TEST_INTEGRATION=1   (set in shell before running)
    Redis at REDIS_URL (default redis://localhost:6379/0)

Run with:
    TOFU_TEST_INTEGRATION=1 pytest tests/integration/ -v
"""

from __future__ import annotations

import os
import uuid

import pytest

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")


@pytest.fixture
async def redis_queue():
    """A ResearchQueue on a throwaway list name, deleted afterwards."""
    from tofu.tools.queue import ResearchQueue

    queue = ResearchQueue(REDIS_URL, f"tofu:test:{uuid.uuid4().hex[:8]}")
    yield queue
    r = await queue._get_redis()
    await r.delete(queue.name, queue.processing_name)
    await queue.close()


@pytest.fixture
async def redis_kv():
    from tofu.tools.kv_store import KVStore

    store = KVStore(REDIS_URL)
    yield store
    await store.close()
