"""Root conftest — shared pytest markers and global settings.

Markers
-------
unit        fast, no I/O, pure logic
integration requires a live Redis (set TOFU_TEST_INTEGRATION=1)
slow        expected to take > 5 seconds
"""

from __future__ import annotations

import os
import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, no I/O tests")
    config.addinivalue_line("markers", "integration: requires a live Redis")
    config.addinivalue_line("markers", "slow: test is expected to take > 5 s")


# ── Skip guards ───────────────────────────────────────────────────────────────

requires_integration = pytest.mark.skipif(
    not os.getenv("TOFU_TEST_INTEGRATION"),
    reason="Set TOFU_TEST_INTEGRATION=1 to run integration tests",
)
