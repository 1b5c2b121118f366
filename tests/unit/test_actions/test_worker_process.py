"""Unit tests for the worker loop (process_one / run_worker).

Covers:
  - process_one handles and acks a message
  - process_one on an idle queue
  - a crashing consumer still acks its message
  - a cancelled worker leaves its message for recover()
  - run_worker recovers un-acked messages and keeps going after a crash
  - app config is reloaded per message
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest


@pytest.mark.asyncio
async def test_process_one_completes_job(runtime):
    from tofu.actions.dispatch import enqueue_research
    from tofu.tasks.worker_process import process_one

    job = await enqueue_research(runtime, "Acme Corp", "company")

    assert await process_one(runtime, timeout=0.01) is True
    assert (await runtime.jobs.get(job.research_id)).status == "completed"
    assert await runtime.queue.recover() == 0


@pytest.mark.asyncio
async def test_process_one_idle(runtime):
    from tofu.tasks.worker_process import process_one

    assert await process_one(runtime, timeout=0.01) is False


@pytest.mark.asyncio
async def test_crashing_consumer_still_acks(runtime):
    from tofu.tasks.worker_process import process_one

    await runtime.queue.push({"researchId": "r-1", "query": "Acme", "entityType": "company"})

    async def crash(body, runtime):
        raise RuntimeError("boom")

    with patch("tofu.tasks.consumer.deep_research_consumer", crash):
        with pytest.raises(RuntimeError):
            await process_one(runtime, timeout=0.01)

    assert await runtime.queue.recover() == 0
    assert await runtime.queue.size() == 0


@pytest.mark.asyncio
async def test_config_reloaded_per_message(runtime):
    from tofu.models.leads import TofuConfig
    from tofu.tasks.worker_process import process_one

    await runtime.configs.save(TofuConfig(confluence_space_key="SALES"))
    await runtime.queue.push({"researchId": "r-1", "query": "Acme", "entityType": "company"})

    await process_one(runtime, timeout=0.01)
    assert runtime.config.confluence_space_key == "SALES"


@pytest.mark.asyncio
async def test_run_worker_recovers_and_survives_crash(runtime):
    from tofu.tasks.worker_process import run_worker

    await runtime.queue.push({"n": 1})
    await runtime.queue.push({"n": 2})
    await runtime.queue.pop()  # left un-acked by a "dead" worker

    stop = asyncio.Event()
    seen = []

    async def consumer(body, runtime):
        seen.append(body["n"])
        if len(seen) == 1:
            raise RuntimeError("first message explodes")
        stop.set()
        return None

    with patch("tofu.tasks.consumer.deep_research_consumer", consumer):
        handled = await asyncio.wait_for(run_worker(runtime, stop=stop, poll_timeout=0.01), timeout=10)

    assert seen == [1, 2]
    assert handled == 1
    assert await runtime.queue.recover() == 0


@pytest.mark.asyncio
async def test_cancelled_mid_research_leaves_message_unacked(runtime):
    """Shutdown during research must not ack: the next worker re-runs the job."""
    from tofu.actions.dispatch import enqueue_research
    from tofu.tasks.worker_process import process_one

    job = await enqueue_research(runtime, "Acme Corp", "company")
    started = asyncio.Event()

    async def research_forever(query, entity_type):
        started.set()
        await asyncio.Event().wait()

    with patch.object(runtime.exa, "deep_research", research_forever):
        task = asyncio.create_task(process_one(runtime, timeout=0.01))
        await asyncio.wait_for(started.wait(), timeout=5)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    assert (await runtime.jobs.get(job.research_id)).status == "running"
    assert await runtime.queue.recover() == 1

    assert await process_one(runtime, timeout=0.01) is True
    assert (await runtime.jobs.get(job.research_id)).status == "completed"
    assert await runtime.queue.recover() == 0
