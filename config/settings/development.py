from __future__ import annotations

from .base import *
from .base import _env, _logging_config

"""
GOAL: Configure development settings with runtime errors displayed.

PARAMETERS:
  None

RETURNS:
  None - Module-level configuration

RAISES:
  None

GUARANTEES:
  - DEBUG mode is enabled
  - APP_DEBUG defaults to "true" unless overridden in the environment
  - Verbose console logging
"""

DEBUG = True
APP_DEBUG = (_env("APP_DEBUG", "true") or "").strip() == "true"

if not ALLOWED_HOSTS:
    ALLOWED_HOSTS = ["localhost", "127.0.0.1", "0.0.0.0"]

LOGGING = _logging_config("DEBUG", "DEBUG", ["console", "error_file"], verbose=True)

SENTRY_ENVIRONMENT = "development"
SENTRY_TRACES_SAMPLE_RATE = 1.0
