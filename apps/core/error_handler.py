"""
Process-wide runtime error interception.

Every non-fatal runtime error (a displayed Python warning or an error raised
through trigger_error) is turned into an ErrorEvent and classified:

- serial/Arduino related messages are written to the dedicated device log,
- a closed set of severities is escalated into EscalatedError,
- everything else is logged (production) or left to the default display (debug).

Handlers are installed once at startup by CoreConfig.ready().
"""

from __future__ import annotations

import logging
import os
import sys
import traceback
import warnings
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable, Optional

from django.core.exceptions import ImproperlyConfigured

from apps.core.diagnostics import (
    DeviceErrorLog,
    build_diagnostic_context,
    format_trace,
    is_device_related,
)
from apps.core.dispatcher import UncaughtExceptionDispatcher
from apps.core.dtos import EnvironmentPolicy, ErrorEvent, InterceptionResult, Severity

logger = logging.getLogger(__name__)

GENERAL_LOGGER_NAME = "runtime_errors"
GENERAL_LOG_FORMAT = "Error PHP (%d): %s en %s:%s"

# Escalated regardless of debug mode or subsystem match.
ESCALATED_SEVERITIES = frozenset({
    Severity.ERROR,
    Severity.CORE_ERROR,
    Severity.COMPILE_ERROR,
    Severity.PARSE,
    Severity.RECOVERABLE_ERROR,
    Severity.USER_ERROR,
})

# Notice and deprecation levels, silenced at the warnings-filter level outside debug mode.
PRODUCTION_IGNORED_CATEGORIES: tuple[type[Warning], ...] = (
    DeprecationWarning,
    PendingDeprecationWarning,
    BytesWarning,
    UnicodeWarning,
)


class RuntimeErrorInterceptor:
    """
    Classifies runtime errors and applies the environment policy.
    """

    def __init__(
        self,
        policy: EnvironmentPolicy,
        device_log: Optional[DeviceErrorLog] = None,
        general_logger: Optional[logging.Logger] = None,
    ):
        self.policy = policy
        self.device_log = device_log or DeviceErrorLog(policy.device_log_path)
        self.general_logger = general_logger or logging.getLogger(GENERAL_LOGGER_NAME)

    """
    GOAL: Classify one runtime error without raising.

    PARAMETERS:
      event: ErrorEvent - Intercepted runtime error - Not None

    RETURNS:
      InterceptionResult - HANDLED, PASSTHROUGH or FATAL - Never None

    RAISES:
      None (device log failures are logged by DeviceErrorLog)

    GUARANTEES:
      - Device log is written before any severity/debug decision
      - Severities in ESCALATED_SEVERITIES are FATAL in every environment
      - In production, non-fatal events produce exactly one general log line
      - In debug mode, non-fatal events write nothing to the general log
    """
    def classify(self, event: ErrorEvent) -> InterceptionResult:
        if is_device_related(event.message):
            self.device_log.write(event, build_diagnostic_context(self.policy))

        if event.severity in ESCALATED_SEVERITIES:
            return InterceptionResult.fatal(event)

        if not self.policy.debug_enabled:
            self.general_logger.log(
                event.severity.log_level,
                GENERAL_LOG_FORMAT,
                int(event.severity),
                event.message,
                event.filename,
                event.lineno,
            )
            return InterceptionResult.handled(event)

        return InterceptionResult.passthrough(event)

    """
    GOAL: Handle one runtime error the way the runtime hook expects.

    PARAMETERS:
      event: ErrorEvent - Intercepted runtime error - Not None

    RETURNS:
      bool - True to suppress the default display, False to let it through

    RAISES:
      EscalatedError: For severities in ESCALATED_SEVERITIES

    GUARANTEES:
      - Never returns for escalated severities
    """
    def handle(self, event: ErrorEvent) -> bool:
        result = self.classify(event)
        result.raise_if_fatal()
        return result.suppress_display

    def __call__(self, severity: Severity, message: str, filename: str, lineno: int) -> bool:
        return self.handle(
            ErrorEvent(severity=severity, message=message, filename=filename, lineno=lineno)
        )


_WARNINGS_MODULE_FILES = {"warnings.py", "_py_warnings.py"}


def _is_warnings_frame(frame: traceback.FrameSummary) -> bool:
    return os.path.basename(frame.filename) in _WARNINGS_MODULE_FILES


@dataclass
class ErrorHandlers:
    """
    The installed interceptor/dispatcher pair and the hooks they replaced.
    """
    policy: EnvironmentPolicy
    interceptor: RuntimeErrorInterceptor
    dispatcher: UncaughtExceptionDispatcher
    previous_showwarning: Callable[..., Any]
    previous_excepthook: Callable[..., Any]

    def display(self, event: ErrorEvent) -> None:
        """Default display for events the interceptor let through."""
        self.previous_showwarning(event.message, UserWarning, event.filename, event.lineno)

    """
    GOAL: Replacement for warnings.showwarning.

    PARAMETERS:
      message: Warning | str - Warning being displayed
      category: type[Warning] - Warning class
      filename: str - File that issued the warning
      lineno: int - Line that issued the warning

    RETURNS:
      None

    RAISES:
      EscalatedError: When the warning's severity is escalated

    GUARANTEES:
      - Escalation propagates out of the warnings.warn() call site
      - PASSTHROUGH events are shown by the previous showwarning
    """
    def show_warning(
        self,
        message: Any,
        category: type[Warning],
        filename: str,
        lineno: int,
        file: Any = None,
        line: Optional[str] = None,
    ) -> None:
        frames = [frame for frame in traceback.extract_stack()[:-1] if not _is_warnings_frame(frame)]
        event = ErrorEvent(
            severity=Severity.from_warning(category),
            message=str(message),
            filename=filename,
            lineno=lineno,
            stack_trace=format_trace(frames),
        )
        if not self.interceptor.handle(event):
            self.previous_showwarning(message, category, filename, lineno, file, line)

    def excepthook(
        self,
        exc_type: type[BaseException],
        exc: BaseException,
        tb: Optional[TracebackType],
    ) -> None:
        """Replacement for sys.excepthook; writes the dispatcher output to stderr."""
        if issubclass(exc_type, KeyboardInterrupt):
            self.previous_excepthook(exc_type, exc, tb)
            return

        if exc.__traceback__ is None and tb is not None:
            exc = exc.with_traceback(tb)
        response = self.dispatcher.dispatch(exc)
        sys.stderr.write(response.content.decode(response.charset) + "\n")


_handlers: Optional[ErrorHandlers] = None


"""
GOAL: Configure warning filters for the environment.

PARAMETERS:
  debug: bool - Debug mode flag - Not None

RETURNS:
  None

RAISES:
  None

GUARANTEES:
  - Every occurrence reaches the interceptor; repeats from the same line
    are never deduplicated by the warnings registry
  - Debug: every warning category is reported
  - Production: notice and deprecation categories are ignored before interception
"""
def configure_runtime_reporting(debug: bool) -> None:
    warnings.simplefilter("always")
    if debug:
        return

    for category in PRODUCTION_IGNORED_CATEGORIES:
        warnings.filterwarnings("ignore", category=category)


"""
GOAL: Install the runtime error and uncaught exception hooks exactly once.

PARAMETERS:
  policy: EnvironmentPolicy - Startup configuration - Not None
  device_log: DeviceErrorLog | None - Device log sink - Defaults to policy path
  general_logger: logging.Logger | None - General log - Defaults to "runtime_errors"

RETURNS:
  ErrorHandlers - Installed handlers - Never None

RAISES:
  None

GUARANTEES:
  - warnings.showwarning and sys.excepthook are replaced on the first call
  - Later calls return the already installed handlers unchanged
"""
def install_error_handlers(
    policy: EnvironmentPolicy,
    *,
    device_log: Optional[DeviceErrorLog] = None,
    general_logger: Optional[logging.Logger] = None,
) -> ErrorHandlers:
    global _handlers

    if _handlers is not None:
        return _handlers

    handlers = ErrorHandlers(
        policy=policy,
        interceptor=RuntimeErrorInterceptor(policy, device_log=device_log, general_logger=general_logger),
        dispatcher=UncaughtExceptionDispatcher(policy),
        previous_showwarning=warnings.showwarning,
        previous_excepthook=sys.excepthook,
    )
    warnings.showwarning = handlers.show_warning
    sys.excepthook = handlers.excepthook
    configure_runtime_reporting(policy.debug_enabled)

    _handlers = handlers
    logger.info(
        "Error handlers installed (debug=%s, device_log=%s)",
        policy.debug_enabled,
        handlers.interceptor.device_log.path,
    )
    return handlers


def get_error_handlers() -> ErrorHandlers:
    if _handlers is None:
        raise ImproperlyConfigured(
            "Error handlers are not installed. Is apps.core in INSTALLED_APPS?"
        )
    return _handlers


"""
GOAL: Raise a user-level runtime error from application code.

PARAMETERS:
  message: str - Error message - May be empty
  severity: Severity - One of the USER_* severities - Default USER_NOTICE
  stacklevel: int - 1 reports the direct caller - >= 1

RETURNS:
  bool - True if the error was handled silently, False if it was displayed

RAISES:
  ValueError: If severity is not a USER_* severity
  EscalatedError: For USER_ERROR
  ImproperlyConfigured: If handlers are not installed

GUARANTEES:
  - File/line and stack trace point at the caller
"""
def trigger_error(
    message: str,
    severity: Severity = Severity.USER_NOTICE,
    *,
    stacklevel: int = 1,
) -> bool:
    severity = Severity(severity)
    if not severity.is_user_level:
        raise ValueError(f"trigger_error() only accepts USER_* severities, got {severity.name}")

    handlers = get_error_handlers()
    frames = traceback.extract_stack()[:-stacklevel]
    caller = frames[-1]
    event = ErrorEvent(
        severity=severity,
        message=message,
        filename=caller.filename,
        lineno=caller.lineno or 0,
        stack_trace=format_trace(frames),
    )
    handled = handlers.interceptor.handle(event)
    if not handled:
        handlers.display(event)
    return handled
