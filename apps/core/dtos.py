"""
Data Transfer Objects (DTOs) for runtime error interception.

This module defines pydantic v2 models passed between the interceptor,
the device error log and the uncaught exception dispatcher.
All models are frozen: they are created once and only read afterwards.
"""

from __future__ import annotations

import logging
import traceback
from datetime import datetime
from enum import Enum, IntEnum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from apps.core.exceptions import EscalatedError, RecoverableErrorWarning

DEFAULT_PRESENTER = "apps.errors.presenter.ErrorPresenter"
DEVICE_LOG_FILENAME = "arduino_errors.log"
DEVICE_LOG_SEPARATOR = "-" * 40

UNKNOWN_SERVER = "Unknown"
NOT_CONFIGURED = "No configurado"


# ============================================================================
# Severity
# ============================================================================

class Severity(IntEnum):
    """
    Runtime error severity.

    Numeric values are written to the device log as ``Level: <n>`` and must
    stay stable for existing log readers.
    """

    ERROR = 1
    WARNING = 2
    PARSE = 4
    NOTICE = 8
    CORE_ERROR = 16
    CORE_WARNING = 32
    COMPILE_ERROR = 64
    COMPILE_WARNING = 128
    USER_ERROR = 256
    USER_WARNING = 512
    USER_NOTICE = 1024
    RECOVERABLE_ERROR = 4096
    DEPRECATED = 8192
    USER_DEPRECATED = 16384

    @property
    def log_level(self) -> int:
        """Return the stdlib logging level used for the general log line."""
        return _LOG_LEVELS.get(self, logging.WARNING)

    @property
    def is_user_level(self) -> bool:
        return self in USER_SEVERITIES

    """
    GOAL: Map a Python warning category onto a runtime error severity.

    PARAMETERS:
      category: type[Warning] - Warning class passed to showwarning - Not None

    RETURNS:
      Severity - Matching severity - Never None

    RAISES:
      None

    GUARANTEES:
      - Subclasses map like their closest listed base class
      - Unknown categories map to WARNING
    """
    @classmethod
    def from_warning(cls, category: type[Warning]) -> "Severity":
        for base, severity in _WARNING_SEVERITIES:
            if issubclass(category, base):
                return severity
        return cls.WARNING


USER_SEVERITIES = frozenset({
    Severity.USER_ERROR,
    Severity.USER_WARNING,
    Severity.USER_NOTICE,
    Severity.USER_DEPRECATED,
})

_LOG_LEVELS: dict[Severity, int] = {
    Severity.NOTICE: logging.INFO,
    Severity.USER_NOTICE: logging.INFO,
    Severity.DEPRECATED: logging.INFO,
    Severity.USER_DEPRECATED: logging.INFO,
    Severity.WARNING: logging.WARNING,
    Severity.CORE_WARNING: logging.WARNING,
    Severity.COMPILE_WARNING: logging.WARNING,
    Severity.USER_WARNING: logging.WARNING,
}

# First match wins; subclasses must come before their bases.
_WARNING_SEVERITIES: tuple[tuple[type[Warning], Severity], ...] = (
    (RecoverableErrorWarning, Severity.RECOVERABLE_ERROR),
    (DeprecationWarning, Severity.DEPRECATED),
    (PendingDeprecationWarning, Severity.DEPRECATED),
    (FutureWarning, Severity.USER_DEPRECATED),
    (SyntaxWarning, Severity.COMPILE_WARNING),
    (ImportWarning, Severity.CORE_WARNING),
    (BytesWarning, Severity.NOTICE),
    (UnicodeWarning, Severity.NOTICE),
    (UserWarning, Severity.USER_WARNING),
)


# ============================================================================
# Event DTOs
# ============================================================================

class ErrorEvent(BaseModel):
    """
    A single runtime error, as handed to the interceptor.
    """
    severity: Severity
    message: str
    filename: str
    lineno: int
    stack_trace: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    def escalate(self) -> EscalatedError:
        """Build the exception raised when this event is escalated."""
        return EscalatedError(self.message, self.severity, self.filename, self.lineno)


class DiagnosticContext(BaseModel):
    """
    Process context attached to every device error log record.
    """
    operating_system: str = Field(serialization_alias="OS")
    runtime_version: str = Field(serialization_alias="PYTHON_VERSION")
    process_user: Optional[str] = Field(default=None, serialization_alias="USER")
    server_software: str = Field(default=UNKNOWN_SERVER, serialization_alias="SERVER_SOFTWARE")
    device_port: str = Field(default=NOT_CONFIGURED, serialization_alias="CURRENT_PORT")
    device_baud_rate: str = Field(default=NOT_CONFIGURED, serialization_alias="ARDUINO_BAUDRATE")

    model_config = ConfigDict(frozen=True)

    def to_json(self) -> str:
        """Compact JSON with the device log keys; slashes are left as-is."""
        return self.model_dump_json(by_alias=True)


class DeviceLogRecord(BaseModel):
    """
    One block of the dedicated device error log.
    """
    timestamp: datetime
    event: ErrorEvent
    context: DiagnosticContext
    stack_trace: str

    model_config = ConfigDict(frozen=True)

    def render(self) -> str:
        event = self.event
        return (
            f"{self.timestamp:%Y-%m-%d %H:%M:%S} [ARDUINO ERROR] "
            f"Level: {int(event.severity)}, Message: {event.message}, "
            f"File: {event.filename}:{event.lineno}\n"
            f"Context: {self.context.to_json()}\n"
            f"Stack trace: {self.stack_trace}\n"
            f"{DEVICE_LOG_SEPARATOR}\n"
        )


class UncaughtException(BaseModel):
    """
    Snapshot of an exception that reached the top of the call stack.
    """
    message: str
    filename: str
    lineno: int
    stack_trace: str
    cause: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    """
    GOAL: Build a snapshot from a live exception.

    PARAMETERS:
      exc: BaseException - Uncaught exception - Not None

    RETURNS:
      UncaughtException - Snapshot - Never None

    RAISES:
      None

    GUARANTEES:
      - EscalatedError keeps the location of the original runtime error
      - Other exceptions use the innermost traceback frame
      - cause is set from __cause__ (or implicit __context__) when present
    """
    @classmethod
    def from_exception(cls, exc: BaseException) -> "UncaughtException":
        from apps.core.diagnostics import exception_location, format_trace

        filename, lineno = exception_location(exc)
        frames = traceback.extract_tb(exc.__traceback__) if exc.__traceback__ else []
        linked = exc.__cause__ or (None if exc.__suppress_context__ else exc.__context__)
        return cls(
            message=str(exc),
            filename=filename,
            lineno=lineno,
            stack_trace=format_trace(frames),
            cause=f"{type(linked).__name__}: {linked}" if linked is not None else None,
        )

    def details(self) -> str:
        """Details block handed to the error presenter."""
        text = f"File: {self.filename} on line {self.lineno}\nTrace: {self.stack_trace}"
        if self.cause:
            text += f"\nCaused by: {self.cause}"
        return text


# ============================================================================
# Policy
# ============================================================================

class EnvironmentPolicy(BaseModel):
    """
    Environment-dependent settings read by both handlers.

    Resolved once at startup and passed by value; never mutated.
    """
    debug_enabled: bool = False
    log_dir: Path
    device_port: Optional[str] = None
    device_baud_rate: Optional[str] = None
    server_software: Optional[str] = None
    presenter_path: str = DEFAULT_PRESENTER

    model_config = ConfigDict(frozen=True)

    @property
    def device_log_path(self) -> Path:
        return self.log_dir / DEVICE_LOG_FILENAME

    """
    GOAL: Build the policy from Django settings.

    PARAMETERS:
      settings: Any - django.conf.settings (or compatible) - Must provide LOG_DIR

    RETURNS:
      EnvironmentPolicy - Frozen policy - Never None

    RAISES:
      pydantic.ValidationError: If a setting has the wrong type

    GUARANTEES:
      - Missing optional settings fall back to None / defaults
      - Empty strings are treated as not configured
    """
    @classmethod
    def from_settings(cls, settings: Any) -> "EnvironmentPolicy":
        return cls(
            debug_enabled=bool(getattr(settings, "APP_DEBUG", False)),
            log_dir=Path(settings.LOG_DIR),
            device_port=getattr(settings, "ARDUINO_PORT", "") or None,
            device_baud_rate=getattr(settings, "ARDUINO_BAUDRATE", "") or None,
            server_software=getattr(settings, "SERVER_SOFTWARE", "") or None,
            presenter_path=getattr(settings, "ERROR_PRESENTER", "") or DEFAULT_PRESENTER,
        )


# ============================================================================
# Interception result
# ============================================================================

class Outcome(str, Enum):
    HANDLED = "handled"
    PASSTHROUGH = "passthrough"
    FATAL = "fatal"


class InterceptionResult(BaseModel):
    """
    Typed outcome of classifying one ErrorEvent.

    FATAL results carry the exception the caller has to raise.
    """
    outcome: Outcome
    event: ErrorEvent
    error: Optional[EscalatedError] = None

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    @classmethod
    def handled(cls, event: ErrorEvent) -> "InterceptionResult":
        return cls(outcome=Outcome.HANDLED, event=event)

    @classmethod
    def passthrough(cls, event: ErrorEvent) -> "InterceptionResult":
        return cls(outcome=Outcome.PASSTHROUGH, event=event)

    @classmethod
    def fatal(cls, event: ErrorEvent) -> "InterceptionResult":
        return cls(outcome=Outcome.FATAL, event=event, error=event.escalate())

    @property
    def is_fatal(self) -> bool:
        return self.outcome is Outcome.FATAL

    @property
    def suppress_display(self) -> bool:
        return self.outcome is Outcome.HANDLED

    def raise_if_fatal(self) -> None:
        if self.error is not None:
            raise self.error
