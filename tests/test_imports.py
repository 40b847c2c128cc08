"""Importing the limiter primitives must not read configuration."""

from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]

_IMPORT_CORE = """
import sys
import admission
from admission.adapters.store.in_memory import InMemoryCounterStore
from admission.adapters.rate_limit.fixed_window import FixedWindowLimiter
from admission.adapters.rate_limit.token_bucket import TokenBucketLimiter
from admission.core.logging import configure_logging
assert "admission.core.config" not in sys.modules, "settings loaded on import"
limiter = FixedWindowLimiter(InMemoryCounterStore(), limit=1, window_seconds=1)
assert limiter.allow("127.0.0.1") is True
"""


@pytest.mark.parametrize(
    "env",
    [
        {"LIMITER_LIMIT": "-1"},
        {"LIMITER_STRATEGY": "leaky_bucket", "LOG_FORMAT": "xml"},
    ],
)
def test_core_imports_ignore_invalid_environment(env: dict[str, str]) -> None:
    child_env = {**os.environ, **env, "PYTHONPATH": str(PROJECT_ROOT)}

    result = subprocess.run(
        [sys.executable, "-c", _IMPORT_CORE],
        cwd=PROJECT_ROOT,
        env=child_env,
        capture_output=True,
        text=True,
        timeout=60,
    )

    assert result.returncode == 0, result.stderr
