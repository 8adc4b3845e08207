"""
Uncaught exception dispatcher.

Forwards exceptions that reached the top of the call stack to the error
presenter, with two levels of fallback:

- presenter module cannot be located -> fixed critical message,
- presenter raises while rendering   -> debug-conditional plain text.

Every branch produces a 500 response and ends the request.
"""

from __future__ import annotations

import importlib.util
import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse
from django.utils.module_loading import import_string

from apps.core.diagnostics import exception_location
from apps.core.dtos import EnvironmentPolicy, UncaughtException
from apps.core.monitoring import capture_exception

logger = logging.getLogger(__name__)

ERROR_STATUS = 500
ERROR_TITLE = "Error interno"
PRESENTER_MISSING_MESSAGE = "Error crítico: No se pudo cargar el controlador de errores."
GENERIC_FAILURE_MESSAGE = "Error interno del servidor. Por favor, intente más tarde."

PLAIN_TEXT = "text/plain; charset=utf-8"


def _plain_response(body: str) -> HttpResponse:
    return HttpResponse(body, status=ERROR_STATUS, content_type=PLAIN_TEXT)


class UncaughtExceptionDispatcher:
    """
    Terminal handler for uncaught exceptions.
    """

    def __init__(self, policy: EnvironmentPolicy):
        self.policy = policy

    """
    GOAL: Check that the presenter's module can be located without importing it.

    PARAMETERS:
      None

    RETURNS:
      bool - True if the module of policy.presenter_path is locatable

    RAISES:
      None

    GUARANTEES:
      - Invalid dotted paths and missing parent packages yield False
    """
    def presenter_available(self) -> bool:
        module_path, _, attr = self.policy.presenter_path.rpartition(".")
        if not module_path or not attr:
            return False
        try:
            return importlib.util.find_spec(module_path) is not None
        except (ImportError, ValueError):
            return False

    """
    GOAL: Turn an uncaught exception into the final response.

    PARAMETERS:
      exc: BaseException - Uncaught exception - Not None
      request: HttpRequest | None - Current request, None outside requests

    RETURNS:
      HttpResponse - Status 500 in every branch - Never None

    RAISES:
      None

    GUARANTEES:
      - Missing presenter: fixed critical message, no further processing
      - Presenter available: its rendered response is returned as-is
      - Presenter failure in production: generic message, no internal details
      - Presenter failure in debug: secondary exception message, file and line
    """
    def dispatch(self, exc: BaseException, request: Optional[HttpRequest] = None) -> HttpResponse:
        if not self.presenter_available():
            logger.critical(
                "Error presenter %s not found; aborting with fixed message",
                self.policy.presenter_path,
                exc_info=(type(exc), exc, exc.__traceback__),
            )
            return _plain_response(PRESENTER_MISSING_MESSAGE)

        uncaught = UncaughtException.from_exception(exc)
        logger.error(
            "Uncaught exception: %s (%s:%s)",
            uncaught.message,
            uncaught.filename,
            uncaught.lineno,
            exc_info=(type(exc), exc, exc.__traceback__),
        )
        capture_exception(
            exc,
            level="error",
            extra={"file": uncaught.filename, "line": uncaught.lineno},
            tags={"exception_type": type(exc).__name__},
        )

        try:
            presenter = import_string(self.policy.presenter_path)
            return presenter.render_error(
                ERROR_STATUS,
                ERROR_TITLE,
                uncaught.message,
                uncaught.details(),
                request=request,
                debug=self.policy.debug_enabled,
            )
        except Exception as secondary:
            logger.exception("Error presenter %s failed", self.policy.presenter_path)
            return self._fallback(secondary)

    def _fallback(self, secondary: Exception) -> HttpResponse:
        if not self.policy.debug_enabled:
            return _plain_response(GENERIC_FAILURE_MESSAGE)

        filename, lineno = exception_location(secondary)
        return _plain_response(
            f"Error crítico: {secondary}\nEn archivo: {filename} línea: {lineno}"
        )
