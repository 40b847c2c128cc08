"""Tests for environment-driven settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from admission.core.config import LimiterSettings, LogSettings


def test_defaults() -> None:
    cfg = LimiterSettings()

    assert cfg.enabled is True
    assert cfg.strategy == "fixed_window"
    assert cfg.limit == 10
    assert cfg.window_seconds == 60
    assert cfg.atomic is False
    assert cfg.fractional_tokens is True


def test_reads_prefixed_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("LIMITER_STRATEGY", "token_bucket")
    monkeypatch.setenv("LIMITER_CAPACITY", "25")
    monkeypatch.setenv("LIMITER_REFILL_PERIOD_SECONDS", "2.5")
    monkeypatch.setenv("LOG_FORMAT", "plain")

    cfg = LimiterSettings()

    assert cfg.strategy == "token_bucket"
    assert cfg.capacity == 25
    assert cfg.refill_period_seconds == 2.5
    assert LogSettings().format == "plain"


@pytest.mark.parametrize(
    "env",
    [
        {"LIMITER_STRATEGY": "leaky_bucket"},
        {"LIMITER_LIMIT": "-1"},
        {"LIMITER_WINDOW_SECONDS": "0"},
        {"LIMITER_STORE_SHARDS": "0"},
    ],
)
def test_rejects_invalid_values(monkeypatch: pytest.MonkeyPatch, env: dict[str, str]) -> None:
    for name, value in env.items():
        monkeypatch.setenv(name, value)

    with pytest.raises(ValidationError):
        LimiterSettings()
