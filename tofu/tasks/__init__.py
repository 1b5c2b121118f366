"""Tofu background tasks.

Messages pushed by ``tofu.actions.dispatch.enqueue_research`` are picked up
by the worker subprocess launched via ``tofu worker``.

Public surface
--------------
``deep_research_consumer`` — handles one research message body
``run_worker``             — recover + pop/consume/ack loop
"""

from .consumer import ResearchMessage, deep_research_consumer
from .worker_process import process_one, run_worker

__all__ = ["ResearchMessage", "deep_research_consumer", "process_one", "run_worker"]
