"""Tofu research worker — subprocess entrypoint.

Launched by ``tofu worker`` (foreground) or as a detached background
process. The process runs until killed: it first moves any un-acked
messages left by a previous worker back onto the queue, then loops
``pop → deep_research_consumer → ack``.

Usage (internal — do not call directly)::

    python -m tofu.tasks.worker_process \
        --queue-name tofu:research-queue \
        --redis-url redis://localhost:6379/0

PID file
--------
Written to ``~/.tofu/worker.pid`` so that ``tofu worker --status`` can
find the process without needing a daemon manager.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from pathlib import Path

logger = logging.getLogger("tofu.worker")

PID_DIR = Path.home() / ".tofu"
PID_FILE = PID_DIR / "worker.pid"


def _write_pid() -> None:
    PID_DIR.mkdir(parents=True, exist_ok=True)
    PID_FILE.write_text(str(os.getpid()))


def _remove_pid() -> None:
    try:
        PID_FILE.unlink(missing_ok=True)
    except OSError:
        pass


def read_pid() -> int | None:
    """Return the PID stored in the PID file, or None if absent / stale."""
    if not PID_FILE.exists():
        return None
    try:
        pid = int(PID_FILE.read_text().strip())
        # Check the process is actually alive
        os.kill(pid, 0)
        return pid
    except (ValueError, ProcessLookupError, PermissionError):
        _remove_pid()
        return None


async def process_one(runtime, timeout: float = 5.0) -> bool:
    """Take one message, handle it, ack it. Returns False when the queue was idle.

    App config is reloaded per message so dashboard edits apply to the next
    job without a restart. The message is acked once the consumer returns or
    raises; a cancelled worker leaves it for the next one's ``recover()``.
    """
    from tofu.tasks.consumer import deep_research_consumer

    message = await runtime.queue.pop(timeout=timeout)
    if message is None:
        return False

    logger.info("Processing %s", message.job_id)
    await runtime.reload_config()
    try:
        job = await deep_research_consumer(message.body, runtime)
    except Exception:
        await runtime.queue.ack(message)
        raise
    await runtime.queue.ack(message)
    if job is not None:
        logger.info("Finished %s → %s (%s)", message.job_id, job.research_id, job.status)
    return True


async def run_worker(runtime, *, stop: asyncio.Event | None = None, poll_timeout: float = 5.0) -> int:
    """Recover un-acked messages, then consume until *stop* is set. Returns messages handled."""
    stop = stop or asyncio.Event()
    recovered = await runtime.queue.recover()
    if recovered:
        logger.warning("Re-queued %d unfinished message(s) from a previous worker", recovered)

    handled = 0
    while not stop.is_set():
        try:
            if await process_one(runtime, timeout=poll_timeout):
                handled += 1
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception("Message handling crashed; continuing")
            await asyncio.sleep(1.0)
    return handled


async def _run(queue_name: str, redis_url: str) -> None:
    from tofu.runtime import Runtime
    from tofu.tools.kv_store import KVStore
    from tofu.tools.queue import ResearchQueue
    from tofu.utils import setup_logging

    setup_logging()
    _write_pid()
    logger.info("Tofu Worker starting (PID=%d)", os.getpid())

    runtime = await Runtime.create(
        kv=KVStore(redis_url),
        queue=ResearchQueue(redis_url, queue_name),
    )
    try:
        logger.info("Worker ready — consuming %s", queue_name)
        await run_worker(runtime)
    finally:
        await runtime.close()
        _remove_pid()
        logger.info("Tofu Worker stopped")


def main() -> None:
    from tofu.config import settings

    parser = argparse.ArgumentParser(description="Tofu research worker")
    parser.add_argument("--queue-name", default=settings.queue_name, help="Redis list used as the queue")
    parser.add_argument("--redis-url", default=settings.redis_url, help="Redis connection URL")
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stdout,
    )

    # Graceful shutdown on SIGTERM / SIGINT
    loop = asyncio.new_event_loop()

    def _shutdown(signum, frame):  # noqa: ARG001
        logger.info("Received signal %d — shutting down", signum)
        for task in asyncio.all_tasks(loop):
            task.cancel()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    try:
        loop.run_until_complete(_run(args.queue_name, args.redis_url))
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        loop.close()


if __name__ == "__main__":
    main()
