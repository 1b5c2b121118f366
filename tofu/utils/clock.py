"""Centralised wall-clock helpers — single source of truth for 'now'.

Lead timestamps, job timestamps and page banners all read the time from
here, so tests only have to patch one function.
"""

from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return the current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """ISO 8601 timestamp with milliseconds: '2026-02-23T10:15:00.123Z'"""
    return now_utc().isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_ms() -> int:
    """Milliseconds since the epoch, used in generated identifiers."""
    return int(now_utc().timestamp() * 1000)


def today_str() -> str:
    """ISO 8601 date string: '2026-02-23'"""
    return now_utc().strftime("%Y-%m-%d")
