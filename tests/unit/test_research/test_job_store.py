"""Unit tests for ResearchJob transitions and JobStore persistence.

Covers:
  - queued → running → completed / failed
  - terminal records are never rewritten
  - corrupt or missing records read as None
  - camelCase storage layout
  - job writes that cannot reach Redis raise StorageError
  - research-result completion notices
"""

from __future__ import annotations

import pytest


def _job(**kwargs):
    from tofu.research.models import ResearchJob

    return ResearchJob(query="Acme Corp", entity_type="company", **kwargs)


# ─────────────────────────────────────────────────────────────────────────────
# 1. ResearchJob
# ─────────────────────────────────────────────────────────────────────────────

def test_new_job_defaults():
    job = _job()
    assert job.status == "queued"
    assert job.research_id.startswith("research-")
    assert job.created_at.endswith("Z")
    assert not job.is_terminal
    assert job.page_url is None


def test_transitions_only_move_forward():
    job = _job()
    assert job.can_transition("running")
    assert job.can_transition("completed")
    running = job.mark_running()
    assert not running.can_transition("queued")
    assert not running.can_transition("running")
    done = running.mark_completed("https://wiki/page", "Research: Acme Corp")
    assert done.is_terminal
    assert not done.can_transition("failed")


def test_mark_completed_sets_result():
    done = _job().mark_running().mark_completed("https://wiki/page", "Research: Acme Corp")
    assert done.status == "completed"
    assert done.page_url == "https://wiki/page"
    assert done.result.page_title == "Research: Acme Corp"
    assert done.completed_at is not None
    assert done.error is None


def test_mark_failed_defaults_message():
    failed = _job().mark_failed("")
    assert failed.status == "failed"
    assert failed.error == "Unknown error"
    assert failed.result is None


# ─────────────────────────────────────────────────────────────────────────────
# 2. JobStore
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_put_and_get_roundtrip(kv):
    from tofu.research.store import JobStore, job_key

    store = JobStore(kv)
    job = _job(issue_key="LEADS-7")
    await store.put(job)

    raw = await kv.get(job_key(job.research_id))
    assert raw["researchId"] == job.research_id
    assert raw["entityType"] == "company"
    assert raw["issueKey"] == "LEADS-7"

    loaded = await store.get(job.research_id)
    assert loaded == job


@pytest.mark.asyncio
async def test_get_missing_returns_none(kv):
    from tofu.research.store import JobStore

    assert await JobStore(kv).get("research-nope") is None


@pytest.mark.asyncio
async def test_get_corrupt_returns_none(kv):
    from tofu.research.store import JobStore, job_key

    await kv.set(job_key("research-bad"), {"status": "exploded"})
    assert await JobStore(kv).get("research-bad") is None


@pytest.mark.asyncio
async def test_save_transition_moves_forward(kv):
    from tofu.research.store import JobStore

    store = JobStore(kv)
    job = _job()
    await store.put(job)

    assert await store.save_transition(job.mark_running()) is True
    assert (await store.get(job.research_id)).status == "running"


@pytest.mark.asyncio
async def test_terminal_record_is_never_rewritten(kv):
    from tofu.research.store import JobStore

    store = JobStore(kv)
    job = _job()
    await store.put(job)
    completed = job.mark_running().mark_completed("https://wiki/page", "Research: Acme Corp")
    assert await store.save_transition(completed) is True

    assert await store.save_transition(job.mark_failed("late failure")) is False
    assert await store.save_transition(job.mark_running().mark_completed("https://wiki/other", "x")) is False
    assert await store.save_transition(job.mark_running()) is False

    stored = await store.get(job.research_id)
    assert stored.status == "completed"
    assert stored.page_url == "https://wiki/page"


@pytest.mark.asyncio
async def test_save_transition_writes_when_absent(kv):
    from tofu.research.store import JobStore

    store = JobStore(kv)
    job = _job().mark_failed("queue down")
    assert await store.save_transition(job) is True
    assert (await store.get(job.research_id)).error == "queue down"


@pytest.mark.asyncio
async def test_put_raises_when_store_refuses_write(refusing_kv):
    from tofu.errors import StorageError
    from tofu.research.store import JobStore

    store = JobStore(refusing_kv)
    job = _job()

    with pytest.raises(StorageError):
        await store.put(job)
    with pytest.raises(StorageError):
        await store.save_transition(job.mark_running())

    assert await store.get(job.research_id) is None


# ─────────────────────────────────────────────────────────────────────────────
# 3. Completion notices
# ─────────────────────────────────────────────────────────────────────────────

@pytest.mark.asyncio
async def test_result_notice_for_completed_job(kv):
    from tofu.research.store import JobStore, result_key

    store = JobStore(kv)
    job = _job().mark_running().mark_completed("https://wiki/page", "Research: Acme Corp")
    await store.put_result(job)

    raw = await kv.get(result_key(job.research_id))
    assert raw["jobId"] == job.research_id
    assert raw["success"] is True

    result = await store.get_result(job.research_id)
    assert result.page_url == "https://wiki/page"
    assert result.page_title == "Research: Acme Corp"
    assert result.completed_at == job.completed_at
    assert result.error is None


@pytest.mark.asyncio
async def test_result_notice_for_failed_job(kv):
    from tofu.research.store import JobStore

    store = JobStore(kv)
    job = _job().mark_failed("No Confluence spaces available")
    await store.put_result(job)

    result = await store.get_result(job.research_id)
    assert result.success is False
    assert result.error == "No Confluence spaces available"
    assert result.page_url is None
    assert await store.get_result("research-nope") is None
