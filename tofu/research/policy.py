"""Poll policy for long-running research tasks.

Delay before poll *n* is ``initial_delay * multiplier ** (n - 1)``, capped at
``max_delay``; at most ``max_attempts`` polls are made. With the defaults
(2 s, x1.5, cap 30 s, 30 polls) a task gets roughly 13 minutes.
"""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import BaseModel, ConfigDict, Field


class PollPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=30, ge=1)
    initial_delay: float = Field(default=2.0, ge=0.0)
    multiplier: float = Field(default=1.5, ge=1.0)
    max_delay: float = Field(default=30.0, ge=0.0)

    @classmethod
    def from_settings(cls) -> "PollPolicy":
        from tofu.config import settings

        return cls(
            max_attempts=settings.research_max_attempts,
            initial_delay=settings.research_initial_delay,
            multiplier=settings.research_backoff_multiplier,
            max_delay=settings.research_max_delay,
        )

    def delays(self) -> Iterator[float]:
        """Yield the sleep before each poll, one value per attempt."""
        delay = self.initial_delay
        for _ in range(self.max_attempts):
            yield min(delay, self.max_delay)
            delay = min(delay * self.multiplier, self.max_delay)

    @property
    def total_wait(self) -> float:
        return sum(self.delays())
