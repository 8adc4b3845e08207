"""
Tests for the Sentry monitoring wrapper.
"""

from __future__ import annotations

from unittest.mock import Mock

import pytest

from apps.core import monitoring


@pytest.fixture
def sentry_enabled(monkeypatch):
    monkeypatch.setattr(monitoring, "_sentry_enabled", True)


class TestInitSentry:
    """
    Tests for init_sentry.
    """

    @pytest.mark.parametrize("dsn", ["", "   "])
    def test_empty_dsn_disables_monitoring(self, monkeypatch, dsn):
        """
        GOAL: Verify an empty DSN leaves monitoring off without calling the SDK.
        """
        sdk_init = Mock()
        monkeypatch.setattr(monitoring, "sentry_init", sdk_init)
        monkeypatch.setattr(monitoring, "_sentry_enabled", True)

        assert monitoring.init_sentry(dsn) is False
        assert monitoring.is_sentry_enabled() is False
        sdk_init.assert_not_called()

    def test_dsn_initializes_sdk(self, monkeypatch):
        sdk_init = Mock()
        monkeypatch.setattr(monitoring, "sentry_init", sdk_init)
        monkeypatch.setattr(monitoring, "_sentry_enabled", False)

        assert monitoring.init_sentry("https://key@sentry.example/1", environment="production") is True
        assert monitoring.is_sentry_enabled() is True
        assert sdk_init.call_args.kwargs["environment"] == "production"

    def test_sdk_failure_is_logged(self, monkeypatch, caplog):
        """
        GOAL: Verify SDK initialization errors never reach the caller.
        """
        monkeypatch.setattr(monitoring, "sentry_init", Mock(side_effect=ValueError("bad dsn")))
        monkeypatch.setattr(monitoring, "_sentry_enabled", False)

        assert monitoring.init_sentry("not-a-dsn") is False
        assert "Failed to initialize Sentry" in caplog.text


class TestCaptureException:
    """
    Tests for capture_exception and add_breadcrumb.
    """

    def test_disabled_is_noop(self, monkeypatch):
        sdk_capture = Mock()
        monkeypatch.setattr(monitoring, "sentry_capture_exception", sdk_capture)
        monkeypatch.setattr(monitoring, "_sentry_enabled", False)

        assert monitoring.capture_exception(ValueError("boom")) is None
        sdk_capture.assert_not_called()

    def test_enabled_forwards_scope(self, monkeypatch, sentry_enabled):
        """
        GOAL: Verify level, extras and tags reach the SDK.
        """
        sdk_capture = Mock(return_value="evt-1")
        monkeypatch.setattr(monitoring, "sentry_capture_exception", sdk_capture)
        exc = ValueError("boom")

        event_id = monitoring.capture_exception(
            exc, level="error", extra={"line": 3}, tags={"exception_type": "ValueError"}
        )

        assert event_id == "evt-1"
        sdk_capture.assert_called_once_with(
            exc, level="error", extras={"line": 3}, tags={"exception_type": "ValueError"}
        )

    def test_send_failure_returns_none(self, monkeypatch, sentry_enabled):
        monkeypatch.setattr(monitoring, "sentry_capture_exception", Mock(side_effect=RuntimeError("offline")))

        assert monitoring.capture_exception(ValueError("boom")) is None

    def test_breadcrumb_forwarded_when_enabled(self, monkeypatch, sentry_enabled):
        sdk_breadcrumb = Mock()
        monkeypatch.setattr(monitoring, "sentry_add_breadcrumb", sdk_breadcrumb)

        monitoring.add_breadcrumb("fopen(COM3) failed", category="arduino", level="warning", data={"port": "COM3"})

        sdk_breadcrumb.assert_called_once_with(
            {"message": "fopen(COM3) failed", "category": "arduino", "level": "warning", "data": {"port": "COM3"}}
        )

    def test_breadcrumb_noop_when_disabled(self, monkeypatch):
        sdk_breadcrumb = Mock()
        monkeypatch.setattr(monitoring, "sentry_add_breadcrumb", sdk_breadcrumb)
        monkeypatch.setattr(monitoring, "_sentry_enabled", False)

        monitoring.add_breadcrumb("ignored")

        sdk_breadcrumb.assert_not_called()
