"""
Django error views.
"""

import logging
import sys

from django.http import HttpRequest, HttpResponse

from apps.core.error_handler import get_error_handlers

logger = logging.getLogger(__name__)


"""
GOAL: handler500 for exceptions that escaped the middleware chain.

PARAMETERS:
  request: HttpRequest - Failed request - Not None

RETURNS:
  HttpResponse - Dispatcher response with status 500 - Never None

RAISES:
  None

GUARANTEES:
  - The exception currently being handled is dispatched
  - Without an active exception, a RuntimeError placeholder is dispatched
"""
def server_error(request: HttpRequest) -> HttpResponse:
    exc = sys.exc_info()[1]
    if exc is None:
        logger.warning("server_error called without an active exception (path=%s)", request.path)
        exc = RuntimeError("Unknown server error")
    return get_error_handlers().dispatcher.dispatch(exc, request=request)
