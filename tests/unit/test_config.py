"""
Unit tests for settings.
"""

import pytest

from bgqueue.config import Settings
from bgqueue.constants import DEFAULT_CAPACITY


class TestSettings:
    """Tests for Settings."""

    def test_defaults(self, monkeypatch: pytest.MonkeyPatch):
        """Defaults match the documented policy."""
        monkeypatch.delenv("QUEUE_CAPACITY", raising=False)

        settings = Settings(_env_file=None)

        assert settings.queue_capacity == DEFAULT_CAPACITY == 3
        assert settings.queue_task_timeout_seconds is None
        assert settings.otel_exporter_otlp_endpoint is None

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch):
        """Settings are read from environment variables."""
        monkeypatch.setenv("QUEUE_CAPACITY", "5")
        monkeypatch.setenv("QUEUE_TASK_TIMEOUT_SECONDS", "12.5")
        monkeypatch.setenv("log_format", "console")

        settings = Settings(_env_file=None)

        assert settings.queue_capacity == 5
        assert settings.queue_task_timeout_seconds == 12.5
        assert settings.log_format == "console"

    def test_explicit_values(self, test_settings: Settings):
        """Explicit values take precedence."""
        assert test_settings.queue_name == "test"
        assert test_settings.queue_capacity == 2
        assert test_settings.queue_shutdown_timeout_seconds == 1.0
