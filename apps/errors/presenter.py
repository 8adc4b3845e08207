from __future__ import annotations

import logging
from typing import Optional

from django.http import HttpRequest, HttpResponse
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "errors/error.html"


class ErrorPresenter:
    """
    Renders generic error pages.
    """

    """
    GOAL: Render an error page with the given status.

    PARAMETERS:
      status_code: int - HTTP status - 400-599
      title: str - Page title - Not empty
      message: str - Error message - May be empty
      details: str - File/line/trace block - May be empty
      request: HttpRequest | None - Current request - Optional
      debug: bool - Debug flag resolved at startup - Default False

    RETURNS:
      HttpResponse - Rendered HTML page - Never None

    RAISES:
      TemplateDoesNotExist: If the error template is missing

    GUARANTEES:
      - Response status equals status_code
      - details are only rendered when debug is True
    """
    @staticmethod
    def render_error(
        status_code: int,
        title: str,
        message: str,
        details: str,
        request: Optional[HttpRequest] = None,
        debug: bool = False,
    ) -> HttpResponse:
        content = render_to_string(
            TEMPLATE_NAME,
            {
                "status_code": status_code,
                "title": title,
                "message": message,
                "details": details if debug else "",
                "show_details": debug,
            },
            request=request,
        )
        logger.debug("Rendered error page (status=%s title=%s)", status_code, title)
        return HttpResponse(content, status=status_code)
