"""
Diagnostics for serial port / Arduino related runtime errors.

Errors whose message mentions the serial subsystem get a dedicated,
append-only log with process context and a stack trace, so that device
problems can be investigated without enabling debug mode.
"""

from __future__ import annotations

import logging
import os
import platform
import traceback
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable, Optional

from apps.core.dtos import (
    NOT_CONFIGURED,
    UNKNOWN_SERVER,
    DeviceLogRecord,
    DiagnosticContext,
    EnvironmentPolicy,
    ErrorEvent,
)
from apps.core.exceptions import EscalatedError
from apps.core.monitoring import add_breadcrumb

logger = logging.getLogger(__name__)

# Case-sensitive substrings identifying serial/device errors.
SUBSYSTEM_MARKERS: tuple[str, ...] = ("COM", "fopen", "puerto serial", "serial port")

LOG_DIR_MODE = 0o755


def is_device_related(message: str) -> bool:
    return any(marker in message for marker in SUBSYSTEM_MARKERS)


"""
GOAL: Build a fresh diagnostic context for one device error.

PARAMETERS:
  policy: EnvironmentPolicy - Startup configuration - Not None

RETURNS:
  DiagnosticContext - Context for the log record - Never None

RAISES:
  None

GUARANTEES:
  - Process user is read from USERNAME, falling back to USER, at call time
  - Missing server software is reported as "Unknown"
  - Missing port / baud rate are reported as "No configurado"
"""
def build_diagnostic_context(policy: EnvironmentPolicy) -> DiagnosticContext:
    return DiagnosticContext(
        operating_system=platform.system(),
        runtime_version=platform.python_version(),
        process_user=os.environ.get("USERNAME") or os.environ.get("USER") or None,
        server_software=policy.server_software or UNKNOWN_SERVER,
        device_port=policy.device_port or NOT_CONFIGURED,
        device_baud_rate=policy.device_baud_rate or NOT_CONFIGURED,
    )


"""
GOAL: Render stack frames as numbered lines, innermost first.

PARAMETERS:
  frames: Iterable[traceback.FrameSummary] - Frames, outermost first - May be empty

RETURNS:
  str - "#0 file(line): func()" lines terminated by "#N {main}" - Never None

RAISES:
  None

GUARANTEES:
  - Always ends with the "{main}" entry, even for an empty frame list
"""
def format_trace(frames: Iterable[traceback.FrameSummary]) -> str:
    lines = [
        f"#{index} {frame.filename}({frame.lineno}): {frame.name}()"
        for index, frame in enumerate(reversed(list(frames)))
    ]
    lines.append(f"#{len(lines)} {{main}}")
    return "\n".join(lines)


def capture_stack(skip: int = 0) -> str:
    """
    Format the current call stack, dropping this function and ``skip``
    more of the innermost frames.
    """
    frames = traceback.extract_stack()[: -(skip + 1)]
    return format_trace(frames)


def exception_location(exc: BaseException) -> tuple[str, int]:
    """Return (filename, lineno) where ``exc`` originated."""
    if isinstance(exc, EscalatedError):
        return exc.filename, exc.lineno
    frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
    if not frames:
        return "[internal]", 0
    last = frames[-1]
    return last.filename, last.lineno or 0


class DeviceErrorLog:
    """
    Append-only file sink for serial/Arduino error records.
    """

    def __init__(self, path: Path, clock: Optional[Callable[[], datetime]] = None):
        self.path = Path(path)
        self._clock = clock or datetime.now

    def ensure_directory(self) -> None:
        self.path.parent.mkdir(mode=LOG_DIR_MODE, parents=True, exist_ok=True)

    """
    GOAL: Append one record for a device related event (best-effort).

    PARAMETERS:
      event: ErrorEvent - Intercepted runtime error - Not None
      context: DiagnosticContext - Process context - Not None
      stack_trace: str | None - Trace to store - None captures the current stack

    RETURNS:
      DeviceLogRecord | None - Written record, None if the write failed

    RAISES:
      None (filesystem and serialization errors are logged)

    GUARANTEES:
      - Exactly one append per call on success
      - File is opened in append mode; existing records are never truncated
      - Log directory is created when missing
      - Unencodable characters such as lone surrogates are backslash-escaped
    """
    def write(
        self,
        event: ErrorEvent,
        context: DiagnosticContext,
        stack_trace: Optional[str] = None,
    ) -> Optional[DeviceLogRecord]:
        record = DeviceLogRecord(
            timestamp=self._clock(),
            event=event,
            context=context,
            stack_trace=stack_trace or event.stack_trace or capture_stack(skip=1),
        )
        try:
            self.ensure_directory()
            with self.path.open("a", encoding="utf-8", errors="backslashreplace") as fh:
                fh.write(record.render())
        except (OSError, ValueError) as exc:
            logger.warning("Failed to write device error log %s: %s", self.path, exc)
            return None

        add_breadcrumb(
            message=f"Device error: {event.message}",
            category="device",
            level="warning",
            data={
                "severity": int(event.severity),
                "file": event.filename,
                "line": event.lineno,
                "port": context.device_port,
            },
        )
        return record
