"""Tests for the structlog processors and context helpers."""

import logging

import pytest
import structlog

from shared.logging import (
    LogContext,
    bind_context,
    clear_context,
    configure_logging,
    get_correlation_id,
    set_correlation_id,
)
from shared.logging.config import (
    NOISY_LOGGERS,
    ServiceInfo,
    add_correlation_id,
    build_processors,
    redact_content,
)


@pytest.fixture(autouse=True)
def clean_context():
    clear_context()
    set_correlation_id(None)
    yield
    clear_context()
    set_correlation_id(None)


# =============================================================================
# Processors
# =============================================================================


class TestRedactContent:
    """Generated content never reaches the rendered event."""

    def test_replaces_content_with_length(self):
        event = redact_content(None, "info", {"event": "x", "text": "Hello", "lyrics": b"la la"})
        assert event["text"] == "<redacted len=5>"
        assert event["lyrics"] == "<redacted len=5>"

    def test_list_values_report_item_count(self):
        event = redact_content(None, "info", {"inputs": [{"text": "a"}, {"text": "b"}]})
        assert event["inputs"] == "<redacted len=2>"

    def test_leaves_other_keys_alone(self):
        event = redact_content(None, "info", {"record_id": "g1", "characters": 12})
        assert event == {"record_id": "g1", "characters": 12}


class TestCorrelationProcessor:
    """Tests for correlation id stamping."""

    def test_adds_current_correlation_id(self):
        set_correlation_id("req-1")
        assert get_correlation_id() == "req-1"
        assert add_correlation_id(None, "info", {})["correlation_id"] == "req-1"

    def test_absent_without_id(self):
        assert "correlation_id" not in add_correlation_id(None, "info", {})


class TestServiceInfo:
    def test_stamps_without_overriding(self):
        stamp = ServiceInfo("voiceforge-api", "1.2.3")
        event = stamp(None, "info", {"service": "override"})
        assert event == {"service": "override", "version": "1.2.3"}


class TestBuildProcessors:
    def test_json_chain_ends_with_renderer(self):
        chain = build_processors(True, ServiceInfo("svc", "0.1.0"))
        assert isinstance(chain[-1], structlog.processors.JSONRenderer)
        assert redact_content in chain

    def test_console_chain(self):
        chain = build_processors(False, ServiceInfo("svc", "0.1.0"))
        assert isinstance(chain[-1], structlog.dev.ConsoleRenderer)


# =============================================================================
# Configuration and context
# =============================================================================


class TestConfigureLogging:
    def test_quietens_http_client_loggers(self):
        configure_logging(level="DEBUG", json_format=True)
        for name in NOISY_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING


class TestLogContext:
    """Tests for context binding."""

    def test_binds_for_block_only(self):
        with LogContext(feature="tts", user_id="u1"):
            assert structlog.contextvars.get_contextvars() == {"feature": "tts", "user_id": "u1"}
        assert structlog.contextvars.get_contextvars() == {}

    def test_bind_and_clear(self):
        bind_context(user_id="u1")
        assert structlog.contextvars.get_contextvars()["user_id"] == "u1"
        clear_context()
        assert structlog.contextvars.get_contextvars() == {}
