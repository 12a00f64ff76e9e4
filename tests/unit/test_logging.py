"""
Unit tests for structured logging setup.
"""

import logging

import pytest
import structlog
from opentelemetry.sdk.trace import TracerProvider

from bgqueue.config import get_settings
from bgqueue.observability.logging import add_trace_context, setup_logging


class TestTraceContext:
    """Tests for the trace context processor."""

    def test_no_active_span(self):
        """Records outside a span are left untouched."""
        event_dict = add_trace_context(None, "info", {"event": "Task queued"})

        assert event_dict == {"event": "Task queued"}

    def test_active_span(self):
        """Records inside a span get trace and span ids."""
        tracer = TracerProvider().get_tracer("test")

        with tracer.start_as_current_span("execute_task") as span:
            event_dict = add_trace_context(None, "info", {"event": "Task completed"})
            ctx = span.get_span_context()

        assert event_dict["trace_id"] == format(ctx.trace_id, "032x")
        assert event_dict["span_id"] == format(ctx.span_id, "016x")


class TestSetupLogging:
    """Tests for setup_logging."""

    @pytest.fixture(autouse=True)
    def restore_root_logger(self):
        root = logging.getLogger()
        handlers, level = root.handlers[:], root.level
        get_settings.cache_clear()
        yield
        root.handlers = handlers
        root.setLevel(level)
        get_settings.cache_clear()

    def test_configures_root_logger(self, monkeypatch: pytest.MonkeyPatch):
        """The root logger gets one structlog-formatted handler at the configured level."""
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FORMAT", "console")

        setup_logging()

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
