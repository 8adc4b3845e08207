"""
Sentry integration for the error handling layer.

Dispatched exceptions are reported as events; device errors are recorded as
breadcrumbs. Every function degrades to a local no-op when SENTRY_DSN is empty.
"""

import logging
from typing import Any, Dict, Optional

from sentry_sdk import add_breadcrumb as sentry_add_breadcrumb
from sentry_sdk import capture_exception as sentry_capture_exception
from sentry_sdk import init as sentry_init
from sentry_sdk.integrations.django import DjangoIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)

_sentry_enabled: bool = False


"""
GOAL: Initialize the Sentry SDK.

PARAMETERS:
  dsn: str - Sentry DSN - Empty string disables monitoring
  environment: str - development, staging or production - Not empty
  traces_sample_rate: float - Trace sampling (0.0-1.0)
  release: Optional[str] - Release identifier - May be None

RETURNS:
  bool - True if Sentry was initialized - Never raises

RAISES:
  None

GUARANTEES:
  - Empty DSN leaves monitoring disabled
  - _sentry_enabled reflects the actual state
"""
def init_sentry(
    dsn: str,
    environment: str = "development",
    traces_sample_rate: float = 0.1,
    release: Optional[str] = None,
) -> bool:
    global _sentry_enabled

    if not dsn or not dsn.strip():
        logger.info("Sentry monitoring disabled: SENTRY_DSN is empty")
        _sentry_enabled = False
        return False

    try:
        sentry_init(
            dsn=dsn,
            environment=environment,
            traces_sample_rate=traces_sample_rate,
            release=release,
            integrations=[
                DjangoIntegration(),
                # The runtime_errors logger is already mirrored by the interceptor.
                LoggingIntegration(level=logging.INFO, event_level=None),
            ],
            ignore_errors=[KeyboardInterrupt, SystemExit],
        )
    except Exception as e:
        logger.error("Failed to initialize Sentry: %s", e, exc_info=True)
        _sentry_enabled = False
        return False

    _sentry_enabled = True
    logger.info("Sentry monitoring initialized: environment=%s", environment)
    return True


"""
GOAL: Report an exception to Sentry.

PARAMETERS:
  exception: BaseException - Exception to report - Not None
  level: Optional[str] - 'error', 'warning', 'info' - May be None
  extra: Optional[Dict[str, Any]] - Additional context - May be None
  tags: Optional[Dict[str, str]] - Grouping tags - May be None

RETURNS:
  Optional[str] - Sentry event id, None when disabled or on failure

RAISES:
  None

GUARANTEES:
  - Never raises; send failures are logged locally
"""
def capture_exception(
    exception: BaseException,
    level: Optional[str] = None,
    extra: Optional[Dict[str, Any]] = None,
    tags: Optional[Dict[str, str]] = None,
) -> Optional[str]:
    if not _sentry_enabled:
        return None

    scope_kwargs: Dict[str, Any] = {}
    if level:
        scope_kwargs["level"] = level
    if extra:
        scope_kwargs["extras"] = extra
    if tags:
        scope_kwargs["tags"] = tags

    try:
        event_id = sentry_capture_exception(exception, **scope_kwargs)
    except Exception as e:
        logger.error("Failed to send exception to Sentry: %s", e, exc_info=True)
        return None

    logger.debug("Exception sent to Sentry: %s", event_id)
    return event_id


def add_breadcrumb(
    message: str,
    category: str = "default",
    level: str = "info",
    data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Record a breadcrumb shown with the next Sentry event. No-op when disabled.
    """
    if not _sentry_enabled:
        return

    breadcrumb: Dict[str, Any] = {"message": message, "category": category, "level": level}
    if data:
        breadcrumb["data"] = data

    try:
        sentry_add_breadcrumb(breadcrumb)
    except Exception as e:
        logger.error("Failed to add breadcrumb: %s", e, exc_info=True)


def is_sentry_enabled() -> bool:
    return _sentry_enabled
