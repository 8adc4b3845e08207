"""
Tests for runtime error DTOs.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from apps.core.dtos import (
    DEFAULT_PRESENTER,
    EnvironmentPolicy,
    ErrorEvent,
    InterceptionResult,
    Outcome,
    Severity,
    UncaughtException,
)
from apps.core.exceptions import EscalatedError, RecoverableErrorWarning


class TestSeverity:
    """
    Tests for Severity.
    """

    @pytest.mark.parametrize(
        "category, expected",
        [
            (RecoverableErrorWarning, Severity.RECOVERABLE_ERROR),
            (DeprecationWarning, Severity.DEPRECATED),
            (PendingDeprecationWarning, Severity.DEPRECATED),
            (FutureWarning, Severity.USER_DEPRECATED),
            (SyntaxWarning, Severity.COMPILE_WARNING),
            (ImportWarning, Severity.CORE_WARNING),
            (UnicodeWarning, Severity.NOTICE),
            (UserWarning, Severity.USER_WARNING),
            (RuntimeWarning, Severity.WARNING),
            (ResourceWarning, Severity.WARNING),
        ],
    )
    def test_from_warning(self, category, expected):
        assert Severity.from_warning(category) is expected

    def test_from_warning_uses_closest_base(self):
        """
        GOAL: Verify subclasses of listed categories map like their base.
        """

        class SensorWarning(UserWarning):
            pass

        assert Severity.from_warning(SensorWarning) is Severity.USER_WARNING
        assert Severity.from_warning(Warning) is Severity.WARNING

    def test_numeric_values_are_stable(self):
        assert int(Severity.WARNING) == 2
        assert int(Severity.USER_ERROR) == 256
        assert int(Severity.RECOVERABLE_ERROR) == 4096
        assert int(Severity.USER_DEPRECATED) == 16384

    @pytest.mark.parametrize(
        "severity, level",
        [
            (Severity.NOTICE, logging.INFO),
            (Severity.USER_DEPRECATED, logging.INFO),
            (Severity.WARNING, logging.WARNING),
            (Severity.USER_WARNING, logging.WARNING),
            (Severity.ERROR, logging.WARNING),
        ],
    )
    def test_log_level(self, severity, level):
        assert severity.log_level == level

    def test_user_levels(self):
        assert {s for s in Severity if s.is_user_level} == {
            Severity.USER_ERROR,
            Severity.USER_WARNING,
            Severity.USER_NOTICE,
            Severity.USER_DEPRECATED,
        }


class TestErrorEvent:
    """
    Tests for ErrorEvent.
    """

    def test_event_is_frozen(self):
        event = ErrorEvent(severity=Severity.WARNING, message="x", filename="a.py", lineno=1)

        with pytest.raises(ValidationError):
            event.message = "y"

    def test_escalate_keeps_location(self):
        event = ErrorEvent(severity=Severity.USER_ERROR, message="bad state", filename="a.py", lineno=3)

        exc = event.escalate()

        assert isinstance(exc, EscalatedError)
        assert (exc.message, exc.severity, exc.filename, exc.lineno) == (
            "bad state",
            Severity.USER_ERROR,
            "a.py",
            3,
        )


class TestUncaughtException:
    """
    Tests for UncaughtException.from_exception.
    """

    def test_snapshot_of_raised_exception(self):
        """
        GOAL: Verify message, location and trace are captured.
        """
        try:
            raise KeyError("sensor")
        except KeyError as exc:
            snapshot = UncaughtException.from_exception(exc)

        assert snapshot.message == "'sensor'"
        assert snapshot.filename.endswith("tests_dtos.py")
        assert snapshot.lineno > 0
        assert snapshot.stack_trace.endswith("{main}")
        assert snapshot.cause is None

    def test_explicit_cause_is_reported(self):
        """
        GOAL: Verify chained exceptions show the cause in the details block.
        """
        try:
            try:
                raise OSError("port busy")
            except OSError as inner:
                raise RuntimeError("connect failed") from inner
        except RuntimeError as exc:
            snapshot = UncaughtException.from_exception(exc)

        assert snapshot.cause == "OSError: port busy"
        assert snapshot.details().endswith("\nCaused by: OSError: port busy")

    def test_suppressed_context_is_ignored(self):
        try:
            try:
                raise OSError("port busy")
            except OSError:
                raise RuntimeError("connect failed") from None
        except RuntimeError as exc:
            snapshot = UncaughtException.from_exception(exc)

        assert snapshot.cause is None

    def test_details_layout(self):
        snapshot = UncaughtException(
            message="boom",
            filename="/srv/app/main.py",
            lineno=10,
            stack_trace="#0 {main}",
        )

        assert snapshot.details() == "File: /srv/app/main.py on line 10\nTrace: #0 {main}"


class TestEnvironmentPolicy:
    """
    Tests for EnvironmentPolicy.from_settings.
    """

    def test_from_settings(self, settings, tmp_path):
        """
        GOAL: Verify policy values are read from Django settings.
        """
        settings.APP_DEBUG = True
        settings.LOG_DIR = tmp_path
        settings.ARDUINO_PORT = "/dev/ttyUSB0"
        settings.ARDUINO_BAUDRATE = "115200"
        settings.SERVER_SOFTWARE = "nginx/1.25"
        settings.ERROR_PRESENTER = "apps.errors.presenter.ErrorPresenter"

        policy = EnvironmentPolicy.from_settings(settings)

        assert policy.debug_enabled is True
        assert policy.device_log_path == Path(tmp_path) / "arduino_errors.log"
        assert policy.device_port == "/dev/ttyUSB0"
        assert policy.device_baud_rate == "115200"
        assert policy.server_software == "nginx/1.25"

    def test_empty_settings_mean_not_configured(self, settings, tmp_path):
        """
        GOAL: Verify empty strings are treated as missing values.
        """
        settings.APP_DEBUG = False
        settings.LOG_DIR = tmp_path
        settings.ARDUINO_PORT = ""
        settings.ARDUINO_BAUDRATE = ""
        settings.SERVER_SOFTWARE = ""
        settings.ERROR_PRESENTER = ""

        policy = EnvironmentPolicy.from_settings(settings)

        assert policy.debug_enabled is False
        assert policy.device_port is None
        assert policy.device_baud_rate is None
        assert policy.server_software is None
        assert policy.presenter_path == DEFAULT_PRESENTER


class TestInterceptionResult:
    """
    Tests for InterceptionResult.
    """

    @pytest.fixture
    def event(self):
        return ErrorEvent(severity=Severity.WARNING, message="x", filename="a.py", lineno=1)

    def test_handled(self, event):
        result = InterceptionResult.handled(event)

        assert result.outcome is Outcome.HANDLED
        assert result.suppress_display is True
        assert result.is_fatal is False
        result.raise_if_fatal()

    def test_passthrough(self, event):
        result = InterceptionResult.passthrough(event)

        assert result.suppress_display is False
        assert result.error is None

    def test_fatal(self, event):
        result = InterceptionResult.fatal(event)

        assert result.is_fatal is True
        with pytest.raises(EscalatedError):
            result.raise_if_fatal()
