"""Tests for identity redaction in logs."""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest

from admission.adapters.rate_limit.fixed_window import FixedWindowLimiter
from admission.adapters.store.in_memory import InMemoryCounterStore
from admission.core.config import LogSettings
from admission.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    configure_logging,
)
from admission.core.hashing import hash_identity


@pytest.fixture
def stream_logger():
    logger = logging.getLogger("test_redaction")
    logger.setLevel(logging.DEBUG)
    logger.handlers.clear()

    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.addFilter(SensitiveDataFilter())
    handler.setFormatter(JsonFormatter())
    logger.addHandler(handler)
    yield logger, stream
    logger.handlers.clear()


def test_identity_fields_are_redacted(stream_logger):
    logger, stream = stream_logger

    logger.info(
        "rate_limit.allowed",
        extra={
            "identity": "203.0.113.7",
            "api_key": "sk-secret-123",
            "strategy": "fixed_window",
        },
    )

    output = stream.getvalue()
    assert "203.0.113.7" not in output
    assert "sk-secret-123" not in output
    assert "[REDACTED]" in output
    assert "fixed_window" in output


def test_nested_sensitive_fields_are_redacted(stream_logger):
    logger, stream = stream_logger

    logger.info(
        "nested_event",
        extra={"headers": {"x-api-key": "secret-key", "user-agent": "pytest"}},
    )

    output = stream.getvalue()
    assert "secret-key" not in output
    assert "pytest" in output


def test_json_lines_carry_level_and_logger(stream_logger):
    logger, stream = stream_logger

    logger.warning("rate_limit.exceeded", extra={"retry_after_s": 3})

    record = json.loads(stream.getvalue())
    assert record["level"] == "warning"
    assert record["logger"] == "test_redaction"
    assert record["message"] == "rate_limit.exceeded"
    assert record["retry_after_s"] == 3


def test_hash_identity_is_stable_and_short():
    assert hash_identity("ip:127.0.0.1") == hash_identity("ip:127.0.0.1")
    assert hash_identity("ip:127.0.0.1") != hash_identity("ip:127.0.0.2")
    assert len(hash_identity("ip:127.0.0.1")) == 16
    assert hash_identity(None) == "anonymous"


def test_limiter_logs_never_contain_raw_identity(caplog):
    limiter = FixedWindowLimiter(InMemoryCounterStore(), limit=1, window_seconds=60)

    with caplog.at_level(logging.DEBUG, logger="admission"):
        limiter.allow("198.51.100.23")
        limiter.allow("198.51.100.23")

    assert any(r.getMessage() == "rate_limit.denied" for r in caplog.records)
    assert "198.51.100.23" not in caplog.text
    for record in caplog.records:
        assert "198.51.100.23" not in json.dumps(record.__dict__, default=str)


def test_configure_logging_writes_to_file(tmp_path):
    log_file = tmp_path / "logs" / "admission.log"
    root = logging.getLogger()
    previous_handlers = list(root.handlers)
    previous_level = root.level

    try:
        configure_logging(LogSettings(output="file", file_path=str(log_file), level="debug"))
        logging.getLogger("admission.test").info("store.ready", extra={"client_ip": "10.1.1.1"})
        for handler in root.handlers:
            handler.flush()
    finally:
        for handler in root.handlers:
            handler.close()
        root.handlers[:] = previous_handlers
        root.setLevel(previous_level)

    content = log_file.read_text(encoding="utf-8")
    assert "store.ready" in content
    assert "10.1.1.1" not in content
