"""
Request-level entry point for uncaught exceptions.

View exceptions (including EscalatedError raised by the runtime error
interceptor) are handed to the uncaught exception dispatcher. Exceptions
Django already maps to 4xx responses are left alone.
"""

import logging
from typing import Callable, Optional

from django.core.exceptions import BadRequest, PermissionDenied, SuspiciousOperation
from django.http import Http404, HttpRequest, HttpResponse

from apps.core.error_handler import get_error_handlers

logger = logging.getLogger(__name__)

# Rendered by Django's own 400/403/404 handlers.
CLIENT_ERROR_EXCEPTIONS: tuple[type[Exception], ...] = (
    Http404,
    PermissionDenied,
    SuspiciousOperation,
    BadRequest,
)


class UncaughtExceptionMiddleware:
    """
    Middleware that dispatches uncaught view exceptions.
    """

    def __init__(self, get_response: Callable[[HttpRequest], HttpResponse]):
        self.get_response = get_response

    def __call__(self, request: HttpRequest) -> HttpResponse:
        return self.get_response(request)

    """
    GOAL: Produce the final response for an exception raised by a view.

    PARAMETERS:
      request: HttpRequest - Current request - Not None
      exception: Exception - Exception raised by the view - Not None

    RETURNS:
      HttpResponse | None - Dispatcher response, None to let Django handle it

    RAISES:
      ImproperlyConfigured: If error handlers were never installed

    GUARANTEES:
      - 4xx exceptions (Http404, PermissionDenied, ...) return None
      - Every other exception yields a 500 response from the dispatcher
    """
    def process_exception(self, request: HttpRequest, exception: Exception) -> Optional[HttpResponse]:
        if isinstance(exception, CLIENT_ERROR_EXCEPTIONS):
            return None

        logger.debug(
            "Dispatching %s raised on %s %s",
            type(exception).__name__,
            request.method,
            request.path,
        )
        return get_error_handlers().dispatcher.dispatch(exception, request=request)
