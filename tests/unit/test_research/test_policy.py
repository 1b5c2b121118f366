"""Unit tests for PollPolicy backoff schedule."""

from __future__ import annotations

import pytest


def test_default_schedule():
    from tofu.research.policy import PollPolicy

    delays = list(PollPolicy().delays())
    assert len(delays) == 30
    assert delays[:4] == [2.0, 3.0, 4.5, 6.75]
    assert max(delays) == 30.0
    assert delays[-1] == 30.0


def test_delays_never_decrease():
    from tofu.research.policy import PollPolicy

    delays = list(PollPolicy(max_attempts=12, initial_delay=1.0, multiplier=2.0, max_delay=10.0).delays())
    assert delays == sorted(delays)
    assert delays[:5] == [1.0, 2.0, 4.0, 8.0, 10.0]


def test_initial_delay_above_cap_is_capped():
    from tofu.research.policy import PollPolicy

    assert list(PollPolicy(max_attempts=2, initial_delay=60.0, max_delay=30.0).delays()) == [30.0, 30.0]


def test_total_wait():
    from tofu.research.policy import PollPolicy

    assert PollPolicy(max_attempts=3, initial_delay=2.0, multiplier=1.5).total_wait == pytest.approx(9.5)


def test_invalid_policy_rejected():
    from pydantic import ValidationError

    from tofu.research.policy import PollPolicy

    with pytest.raises(ValidationError):
        PollPolicy(max_attempts=0)
    with pytest.raises(ValidationError):
        PollPolicy(multiplier=0.5)


def test_from_settings(monkeypatch):
    from tofu.config import settings
    from tofu.research.policy import PollPolicy

    monkeypatch.setattr(settings, "research_max_attempts", 4)
    monkeypatch.setattr(settings, "research_initial_delay", 1.0)
    policy = PollPolicy.from_settings()
    assert policy.max_attempts == 4
    assert policy.initial_delay == 1.0
