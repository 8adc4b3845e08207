"""
Tests for the runtime error interceptor, the warning hook and trigger_error.
"""

from __future__ import annotations

import logging
import sys
import warnings

import pytest
from django.core.exceptions import ImproperlyConfigured

from apps.core import error_handler
from apps.core.dispatcher import PRESENTER_MISSING_MESSAGE
from apps.core.dtos import ErrorEvent, Outcome, Severity
from apps.core.error_handler import (
    ESCALATED_SEVERITIES,
    RuntimeErrorInterceptor,
    configure_runtime_reporting,
    get_error_handlers,
    trigger_error,
)
from apps.core.exceptions import EscalatedError, RecoverableErrorWarning

NON_ESCALATED_SEVERITIES = sorted(set(Severity) - ESCALATED_SEVERITIES)


def _event(severity: Severity, message: str) -> ErrorEvent:
    return ErrorEvent(severity=severity, message=message, filename="/srv/app/serial.py", lineno=42)


def _general_lines(caplog) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.name == "tests.runtime_errors"]


def _device_records(policy) -> int:
    if not policy.device_log_path.exists():
        return 0
    return policy.device_log_path.read_text(encoding="utf-8").count("[ARDUINO ERROR]")


@pytest.fixture
def interceptor(policy, device_log, general_logger):
    return RuntimeErrorInterceptor(policy, device_log=device_log, general_logger=general_logger)


@pytest.fixture
def debug_interceptor(debug_policy, device_log, general_logger):
    return RuntimeErrorInterceptor(debug_policy, device_log=device_log, general_logger=general_logger)


class TestRuntimeErrorInterceptor:
    """
    Tests for RuntimeErrorInterceptor.handle / classify.
    """

    def test_serial_warning_in_production(self, interceptor, policy, caplog):
        """
        GOAL: Verify the fopen(COM3) warning scenario in production.

        GUARANTEES:
          - Device log gains exactly one entry
          - General log gains exactly one entry
          - Handler returns True
        """
        handled = interceptor.handle(_event(Severity.WARNING, "fopen(COM3): failed to open"))

        assert handled is True
        assert _device_records(policy) == 1
        assert _general_lines(caplog) == [
            "Error PHP (2): fopen(COM3): failed to open en /srv/app/serial.py:42"
        ]

    def test_user_error_in_debug_is_escalated(self, debug_interceptor, policy, caplog):
        """
        GOAL: Verify the UserError scenario in debug mode.

        GUARANTEES:
          - EscalatedError carries the original message
          - No device log entry without a subsystem marker
        """
        with pytest.raises(EscalatedError) as exc_info:
            debug_interceptor.handle(_event(Severity.USER_ERROR, "bad state"))

        assert str(exc_info.value) == "bad state"
        assert exc_info.value.severity is Severity.USER_ERROR
        assert exc_info.value.filename == "/srv/app/serial.py"
        assert exc_info.value.lineno == 42
        assert _device_records(policy) == 0
        assert _general_lines(caplog) == []

    @pytest.mark.parametrize("debug", [False, True])
    @pytest.mark.parametrize("severity", sorted(ESCALATED_SEVERITIES))
    def test_escalated_severities_always_raise(self, severity, debug, policy, device_log, general_logger, caplog):
        """
        GOAL: Verify escalation is independent of debug mode.

        GUARANTEES:
          - handle() raises for every escalated severity
          - Nothing is written to the general log
        """
        interceptor = RuntimeErrorInterceptor(
            policy.model_copy(update={"debug_enabled": debug}),
            device_log=device_log,
            general_logger=general_logger,
        )

        with pytest.raises(EscalatedError):
            interceptor.handle(_event(severity, "engine failure"))

        assert _general_lines(caplog) == []

    @pytest.mark.parametrize("severity", NON_ESCALATED_SEVERITIES)
    def test_non_escalated_in_production_are_logged_and_suppressed(self, severity, interceptor, caplog):
        """
        GOAL: Verify production handling of non-escalated severities.

        GUARANTEES:
          - Returns True
          - Exactly one general log line with the numeric level
        """
        assert interceptor.handle(_event(severity, "something odd")) is True

        assert _general_lines(caplog) == [
            f"Error PHP ({int(severity)}): something odd en /srv/app/serial.py:42"
        ]

    @pytest.mark.parametrize("severity", NON_ESCALATED_SEVERITIES)
    def test_non_escalated_in_debug_pass_through(self, severity, debug_interceptor, caplog):
        """
        GOAL: Verify debug mode lets non-escalated events reach the default display.

        GUARANTEES:
          - Returns False
          - Nothing is written to the general log
        """
        assert debug_interceptor.handle(_event(severity, "something odd")) is False

        assert _general_lines(caplog) == []

    def test_device_log_written_before_escalation(self, interceptor, policy):
        """
        GOAL: Verify a device-related escalated event is logged and then raised.
        """
        with pytest.raises(EscalatedError):
            interceptor.handle(_event(Severity.RECOVERABLE_ERROR, "serial port lost"))

        assert _device_records(policy) == 1

    def test_device_log_in_debug_mode(self, debug_interceptor, policy):
        """
        GOAL: Verify device logging does not depend on debug mode.
        """
        assert debug_interceptor.handle(_event(Severity.NOTICE, "puerto serial ocupado")) is False

        assert _device_records(policy) == 1

    def test_classify_returns_fatal_without_raising(self, interceptor):
        """
        GOAL: Verify classify() reports escalation as a typed result.

        GUARANTEES:
          - Outcome is FATAL and carries the EscalatedError
          - raise_if_fatal() raises it
        """
        result = interceptor.classify(_event(Severity.PARSE, "unexpected token"))

        assert result.outcome is Outcome.FATAL
        assert result.is_fatal is True
        assert isinstance(result.error, EscalatedError)
        with pytest.raises(EscalatedError):
            result.raise_if_fatal()

    def test_general_log_level_follows_severity(self, interceptor, caplog):
        """
        GOAL: Verify notices are logged at INFO and warnings at WARNING.
        """
        interceptor.handle(_event(Severity.NOTICE, "undefined index"))
        interceptor.handle(_event(Severity.WARNING, "division by zero"))

        levels = [r.levelno for r in caplog.records if r.name == "tests.runtime_errors"]
        assert levels == [logging.INFO, logging.WARNING]

    def test_call_accepts_raw_arguments(self, interceptor):
        """
        GOAL: Verify the four-argument call form.
        """
        assert interceptor(Severity.WARNING, "something odd", "/srv/app/x.py", 1) is True

    def test_undecodable_device_message_is_handled(self, interceptor, policy):
        """
        GOAL: Verify a device message with a lone surrogate does not escape handle().
        """
        assert interceptor(Severity.WARNING, "fopen(/dev/tty\udcff): failed to open", "/srv/app/x.py", 1) is True

        assert _device_records(policy) == 1


class TestWarningHook:
    """
    Tests for ErrorHandlers.show_warning and excepthook.
    """

    def test_user_warning_is_logged_in_production(self, install_handlers, policy, caplog):
        """
        GOAL: Verify Python warnings are routed through the interceptor.

        GUARANTEES:
          - UserWarning maps to USER_WARNING (512)
          - Previous showwarning is not called
        """
        handlers = install_handlers(policy)

        handlers.show_warning(UserWarning("cache miss"), UserWarning, "/srv/app/cache.py", 3)

        assert _general_lines(caplog) == ["Error PHP (512): cache miss en /srv/app/cache.py:3"]
        handlers.previous_showwarning.assert_not_called()

    def test_debug_defers_to_previous_showwarning(self, install_handlers, debug_policy):
        """
        GOAL: Verify passthrough events use the previous display.
        """
        handlers = install_handlers(debug_policy)
        message = RuntimeWarning("overflow")

        handlers.show_warning(message, RuntimeWarning, "/srv/app/calc.py", 8)

        handlers.previous_showwarning.assert_called_once_with(
            message, RuntimeWarning, "/srv/app/calc.py", 8, None, None
        )

    def test_recoverable_warning_escalates_at_call_site(self, install_handlers, policy):
        """
        GOAL: Verify warnings.warn raises EscalatedError where it was called.

        GUARANTEES:
          - Exception points at this test module
          - Device log receives the fault-site stack trace
        """
        handlers = install_handlers(policy)

        with warnings.catch_warnings():
            configure_runtime_reporting(policy.debug_enabled)
            warnings.showwarning = handlers.show_warning
            with pytest.raises(EscalatedError) as exc_info:
                warnings.warn("puerto serial cerrado", RecoverableErrorWarning)

        assert exc_info.value.severity is Severity.RECOVERABLE_ERROR
        assert exc_info.value.filename.endswith("tests_error_handler.py")
        text = policy.device_log_path.read_text(encoding="utf-8")
        assert "test_recoverable_warning_escalates_at_call_site()" in text

    def test_repeated_warnings_are_each_logged(self, install_handlers, policy, caplog):
        """
        GOAL: Verify repeated warnings from one line are not deduplicated.

        GUARANTEES:
          - Every occurrence writes one device record and one general line
          - Holds even when the stock "default" filter was active before
        """
        handlers = install_handlers(policy)

        with warnings.catch_warnings():
            warnings.resetwarnings()
            warnings.simplefilter("default")
            configure_runtime_reporting(False)
            warnings.showwarning = handlers.show_warning
            for _ in range(3):
                warnings.warn("fopen(COM3): failed to open", UserWarning)

        assert _device_records(policy) == 3
        assert len(_general_lines(caplog)) == 3

    @pytest.mark.parametrize("debug", [False, True])
    def test_repeated_recoverable_warning_escalates_every_time(self, install_handlers, policy, debug):
        """
        GOAL: Verify a recoverable error raised in a retry loop escalates on each attempt.
        """
        handlers = install_handlers(policy.model_copy(update={"debug_enabled": debug}))
        escalations = 0

        with warnings.catch_warnings():
            warnings.resetwarnings()
            warnings.simplefilter("default")
            configure_runtime_reporting(debug)
            warnings.showwarning = handlers.show_warning
            for _ in range(2):
                try:
                    warnings.warn("sensor reset", RecoverableErrorWarning)
                except EscalatedError:
                    escalations += 1

        assert escalations == 2

    def test_excepthook_writes_dispatch_output(self, install_handlers, policy, capsys):
        """
        GOAL: Verify uncaught exceptions outside requests are dispatched.
        """
        handlers = install_handlers(policy.model_copy(update={"presenter_path": "apps.missing.Presenter"}))
        exc = ValueError("boom")

        handlers.excepthook(ValueError, exc, None)

        assert PRESENTER_MISSING_MESSAGE in capsys.readouterr().err

    def test_excepthook_leaves_keyboard_interrupt_alone(self, install_handlers, policy):
        handlers = install_handlers(policy)
        exc = KeyboardInterrupt()

        handlers.excepthook(KeyboardInterrupt, exc, None)

        handlers.previous_excepthook.assert_called_once_with(KeyboardInterrupt, exc, None)


class TestInstallErrorHandlers:
    """
    Tests for install_error_handlers / get_error_handlers.
    """

    def test_install_replaces_hooks_once(self, install_handlers, policy, debug_policy):
        """
        GOAL: Verify handlers are installed exactly once.

        GUARANTEES:
          - warnings.showwarning and sys.excepthook point at the handlers
          - A second call returns the first handlers unchanged
        """
        first = install_handlers(policy)
        second = install_handlers(debug_policy)

        assert second is first
        assert second.policy.debug_enabled is False
        assert warnings.showwarning == first.show_warning
        assert sys.excepthook == first.excepthook
        assert get_error_handlers() is first

    def test_get_error_handlers_requires_install(self, monkeypatch):
        monkeypatch.setattr(error_handler, "_handlers", None)

        with pytest.raises(ImproperlyConfigured):
            get_error_handlers()

    def test_production_reporting_ignores_notices_and_deprecations(self):
        """
        GOAL: Verify notice and deprecation warnings are filtered out in production.
        """
        with warnings.catch_warnings(record=True) as caught:
            warnings.resetwarnings()
            configure_runtime_reporting(False)
            warnings.warn("old api", DeprecationWarning)
            warnings.warn("soon old", PendingDeprecationWarning)
            warnings.warn("mixed bytes", BytesWarning)
            warnings.warn("bad decode", UnicodeWarning)
            warnings.warn("cache miss", UserWarning)

        assert [w.category for w in caught] == [UserWarning]

    def test_debug_reporting_surfaces_deprecations(self):
        """
        GOAL: Verify every warning category is surfaced in debug mode.
        """
        with warnings.catch_warnings(record=True) as caught:
            warnings.resetwarnings()
            warnings.filterwarnings("ignore", category=DeprecationWarning)
            configure_runtime_reporting(True)
            warnings.warn("old api", DeprecationWarning)

        assert [w.category for w in caught] == [DeprecationWarning]


class TestTriggerError:
    """
    Tests for trigger_error.
    """

    def test_notice_in_production_is_logged(self, install_handlers, policy, caplog):
        """
        GOAL: Verify trigger_error reports the caller's location.
        """
        install_handlers(policy)

        assert trigger_error("valor fuera de rango") is True

        lines = _general_lines(caplog)
        assert len(lines) == 1
        assert lines[0].startswith("Error PHP (1024): valor fuera de rango en ")
        assert "tests_error_handler.py:" in lines[0]

    def test_debug_uses_default_display(self, install_handlers, debug_policy):
        """
        GOAL: Verify passthrough user errors are displayed as warnings.
        """
        handlers = install_handlers(debug_policy)

        assert trigger_error("check wiring", Severity.USER_WARNING) is False

        args = handlers.previous_showwarning.call_args.args
        assert args[0] == "check wiring"
        assert args[1] is UserWarning
        assert args[2].endswith("tests_error_handler.py")

    def test_user_error_is_escalated(self, install_handlers, debug_policy):
        install_handlers(debug_policy)

        with pytest.raises(EscalatedError) as exc_info:
            trigger_error("bad state", Severity.USER_ERROR)

        assert exc_info.value.message == "bad state"
        assert exc_info.value.filename.endswith("tests_error_handler.py")

    def test_device_message_logs_caller_stack(self, install_handlers, policy):
        """
        GOAL: Verify the device log gets the trace of the trigger_error caller.
        """
        install_handlers(policy)

        trigger_error("serial port lost", Severity.USER_WARNING)

        text = policy.device_log_path.read_text(encoding="utf-8")
        assert "Level: 512, Message: serial port lost" in text
        assert "test_device_message_logs_caller_stack()" in text

    @pytest.mark.parametrize("severity", [Severity.WARNING, Severity.ERROR, Severity.NOTICE])
    def test_rejects_non_user_severities(self, install_handlers, policy, severity):
        install_handlers(policy)

        with pytest.raises(ValueError):
            trigger_error("nope", severity)

    def test_requires_installed_handlers(self, monkeypatch):
        monkeypatch.setattr(error_handler, "_handlers", None)

        with pytest.raises(ImproperlyConfigured):
            trigger_error("too early")
