"""
Tests for the serial/Arduino device error log.
"""

from __future__ import annotations

import json
import traceback

import pytest

from apps.core.diagnostics import (
    DeviceErrorLog,
    build_diagnostic_context,
    capture_stack,
    exception_location,
    format_trace,
    is_device_related,
)
from apps.core.dtos import DEVICE_LOG_SEPARATOR, DiagnosticContext, ErrorEvent, Severity
from apps.core.exceptions import EscalatedError


def _event(message: str = "fopen(COM3): failed to open", **kwargs) -> ErrorEvent:
    data = {"severity": Severity.WARNING, "message": message, "filename": "/srv/app/serial.py", "lineno": 42}
    data.update(kwargs)
    return ErrorEvent(**data)


def _context_line(text: str) -> str:
    return next(line for line in text.splitlines() if line.startswith("Context: "))


class TestSubsystemMarkers:
    """
    Tests for is_device_related.
    """

    @pytest.mark.parametrize(
        "message",
        [
            "fopen(COM3): failed to open stream",
            "No se pudo abrir el puerto serial",
            "serial port /dev/ttyACM0 is busy",
            "COM4 access denied",
        ],
    )
    def test_marker_messages_match(self, message):
        """
        GOAL: Verify every subsystem marker is detected.
        """
        assert is_device_related(message) is True

    @pytest.mark.parametrize(
        "message",
        [
            "division by zero",
            "com port closed",
            "Serial Port unavailable",
            "FOPEN failed",
        ],
    )
    def test_match_is_case_sensitive(self, message):
        """
        GOAL: Verify matching is a case-sensitive substring search.

        GUARANTEES:
          - Differently cased markers do not match
        """
        assert is_device_related(message) is False


class TestDiagnosticContext:
    """
    Tests for build_diagnostic_context.
    """

    def test_context_uses_policy_values(self, policy, monkeypatch):
        """
        GOAL: Verify configured device settings end up in the context.
        """
        monkeypatch.delenv("USERNAME", raising=False)
        monkeypatch.setenv("USER", "arduino")

        context = build_diagnostic_context(policy)

        assert context.device_port == "COM3"
        assert context.device_baud_rate == "9600"
        assert context.server_software == "Apache/2.4.57"
        assert context.process_user == "arduino"
        assert context.operating_system
        assert context.runtime_version

    def test_username_takes_precedence_over_user(self, policy, monkeypatch):
        """
        GOAL: Verify USERNAME is preferred and USER is the fallback.
        """
        monkeypatch.setenv("USERNAME", "operador")
        monkeypatch.setenv("USER", "arduino")

        assert build_diagnostic_context(policy).process_user == "operador"

    def test_missing_user_is_serialized_as_null(self, policy, monkeypatch):
        """
        GOAL: Verify an unknown process user is reported as JSON null.
        """
        monkeypatch.delenv("USERNAME", raising=False)
        monkeypatch.delenv("USER", raising=False)

        context = build_diagnostic_context(policy)

        assert context.process_user is None
        assert json.loads(context.to_json())["USER"] is None

    def test_missing_values_use_sentinels(self, policy):
        """
        GOAL: Verify sentinels for unconfigured server, port and baud rate.

        GUARANTEES:
          - Server software falls back to "Unknown"
          - Port and baud rate fall back to "No configurado"
        """
        bare = policy.model_copy(
            update={"device_port": None, "device_baud_rate": None, "server_software": None}
        )

        context = build_diagnostic_context(bare)

        assert context.server_software == "Unknown"
        assert context.device_port == "No configurado"
        assert context.device_baud_rate == "No configurado"

    def test_json_keys_and_unescaped_slashes(self):
        """
        GOAL: Verify the JSON layout written to the device log.

        GUARANTEES:
          - Keys match the device log format
          - Forward slashes are not escaped
        """
        context = DiagnosticContext(
            operating_system="Linux",
            runtime_version="3.12.1",
            process_user="arduino",
            server_software="Apache/2.4.57",
            device_port="/dev/ttyACM0",
            device_baud_rate="9600",
        )

        raw = context.to_json()

        assert "/dev/ttyACM0" in raw
        assert "\\/" not in raw
        assert json.loads(raw) == {
            "OS": "Linux",
            "PYTHON_VERSION": "3.12.1",
            "USER": "arduino",
            "SERVER_SOFTWARE": "Apache/2.4.57",
            "CURRENT_PORT": "/dev/ttyACM0",
            "ARDUINO_BAUDRATE": "9600",
        }


class TestDeviceErrorLog:
    """
    Tests for DeviceErrorLog.write.
    """

    def test_write_creates_directory_and_appends_record(self, policy, device_log):
        """
        GOAL: Verify a record is written in the expected format.

        GUARANTEES:
          - Log directory is created
          - Header, context, trace and separator lines are present
        """
        record = device_log.write(_event(), build_diagnostic_context(policy), stack_trace="#0 {main}")

        assert record is not None
        text = policy.device_log_path.read_text(encoding="utf-8")
        assert text.startswith(
            "2024-01-15 10:30:00 [ARDUINO ERROR] Level: 2, "
            "Message: fopen(COM3): failed to open, File: /srv/app/serial.py:42\n"
        )
        assert "\nStack trace: #0 {main}\n" in text
        assert text.endswith(f"{DEVICE_LOG_SEPARATOR}\n")
        assert json.loads(_context_line(text)[len("Context: "):])["CURRENT_PORT"] == "COM3"

    def test_write_appends_without_truncating(self, policy, device_log):
        """
        GOAL: Verify records accumulate in write order.
        """
        context = build_diagnostic_context(policy)

        device_log.write(_event("fopen(COM3): first"), context)
        device_log.write(_event("fopen(COM3): second"), context)

        text = policy.device_log_path.read_text(encoding="utf-8")
        assert text.count("[ARDUINO ERROR]") == 2
        assert text.index("first") < text.index("second")

    def test_directory_creation_is_idempotent(self, policy, device_log):
        """
        GOAL: Verify an existing log directory does not cause failures.
        """
        policy.log_dir.mkdir(parents=True)

        device_log.ensure_directory()
        device_log.ensure_directory()
        assert device_log.write(_event(), build_diagnostic_context(policy)) is not None

    def test_event_trace_is_preferred(self, policy, device_log):
        """
        GOAL: Verify the fault-site trace carried by the event is logged.
        """
        event = _event(stack_trace="#0 /srv/app/serial.py(42): open_port()\n#1 {main}")

        device_log.write(event, build_diagnostic_context(policy))

        text = policy.device_log_path.read_text(encoding="utf-8")
        assert "Stack trace: #0 /srv/app/serial.py(42): open_port()\n#1 {main}" in text

    def test_trace_is_captured_when_event_has_none(self, policy, device_log):
        """
        GOAL: Verify a trace is captured at write time when none is supplied.
        """
        device_log.write(_event(), build_diagnostic_context(policy))

        text = policy.device_log_path.read_text(encoding="utf-8")
        assert "test_trace_is_captured_when_event_has_none()" in text
        assert "{main}" in text

    def test_write_failure_is_not_raised(self, tmp_path, policy):
        """
        GOAL: Verify filesystem errors are swallowed by the best-effort writer.

        GUARANTEES:
          - write() returns None instead of raising
        """
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        log = DeviceErrorLog(blocker / "arduino_errors.log")

        assert log.write(_event(), build_diagnostic_context(policy)) is None

    def test_undecodable_device_path_is_escaped(self, policy, device_log):
        """
        GOAL: Verify messages holding lone surrogates are written, not raised.

        GUARANTEES:
          - The record is written
          - The surrogate appears backslash-escaped
        """
        event = _event("fopen(/dev/tty\udcff): failed to open")

        record = device_log.write(event, build_diagnostic_context(policy), stack_trace="#0 {main}")

        assert record is not None
        text = policy.device_log_path.read_text(encoding="utf-8")
        assert "Message: fopen(/dev/tty\\udcff): failed to open" in text


class TestTraceHelpers:
    """
    Tests for format_trace, capture_stack and exception_location.
    """

    def test_format_trace_numbers_innermost_first(self):
        frames = [
            traceback.FrameSummary("/srv/app/main.py", 10, "main"),
            traceback.FrameSummary("/srv/app/serial.py", 42, "open_port"),
        ]

        assert format_trace(frames) == (
            "#0 /srv/app/serial.py(42): open_port()\n"
            "#1 /srv/app/main.py(10): main()\n"
            "#2 {main}"
        )

    def test_format_trace_empty(self):
        assert format_trace([]) == "#0 {main}"

    def test_capture_stack_starts_at_caller(self):
        trace = capture_stack()

        assert trace.splitlines()[0].endswith("test_capture_stack_starts_at_caller()")

    def test_exception_location_for_escalated_error(self):
        exc = EscalatedError("bad state", Severity.USER_ERROR, "/srv/app/state.py", 7)

        assert exception_location(exc) == ("/srv/app/state.py", 7)

    def test_exception_location_uses_innermost_frame(self):
        def fail():
            raise ValueError("boom")

        try:
            fail()
        except ValueError as exc:
            filename, lineno = exception_location(exc)

        assert filename.endswith("tests_diagnostics.py")
        assert lineno == fail.__code__.co_firstlineno + 1

    def test_exception_location_without_traceback(self):
        assert exception_location(ValueError("never raised")) == ("[internal]", 0)
