"""
Exception classes for runtime error interception.

Escalated runtime errors are raised as EscalatedError so that they travel
through the normal exception path and end up in the uncaught exception
dispatcher.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from apps.core.dtos import Severity


class ErrorHandlingError(Exception):
    """
    Base exception class for the error handling layer.
    """


class EscalatedError(ErrorHandlingError):
    """
    Runtime error converted into an exception.

    Raised by the interceptor for severities that must never be silently
    recovered from. Carries the location of the original fault, not the
    location where the exception object was created.
    """

    def __init__(self, message: str, severity: "Severity", filename: str, lineno: int):
        """
        Initialize escalated error.

        PARAMETERS:
          message: str - Original runtime error message - May be empty
          severity: Severity - Severity of the original event - Not None
          filename: str - File of the original fault - Not None
          lineno: int - Line of the original fault - >= 0

        GUARANTEES:
          - str(exc) equals the original message
          - filename/lineno point at the original fault
        """
        super().__init__(message)
        self.message = message
        self.severity = severity
        self.filename = filename
        self.lineno = lineno

    def __repr__(self) -> str:
        return (
            f"EscalatedError(message={self.message!r}, severity={self.severity!r}, "
            f"filename={self.filename!r}, lineno={self.lineno})"
        )


class RecoverableErrorWarning(RuntimeWarning):
    """
    Warning category for recoverable runtime errors.

    warnings.warn(..., RecoverableErrorWarning) is escalated into an
    EscalatedError by the installed warning hook.
    """
