from __future__ import annotations

from .base import *
from .base import _logging_config

"""
GOAL: Configure staging settings that behave like production.

PARAMETERS:
  None

RETURNS:
  None - Module-level configuration

RAISES:
  None

GUARANTEES:
  - DEBUG mode is disabled
  - APP_DEBUG follows the environment (only "true" enables it)
"""

DEBUG = False

# Set ALLOWED_HOSTS in the environment for real deployments
if not ALLOWED_HOSTS:
    ALLOWED_HOSTS = ["staging.arduino-panel.local"]

LOGGING = _logging_config("INFO", "WARNING", ["console", "error_file"])

SENTRY_ENVIRONMENT = "staging"
SENTRY_TRACES_SAMPLE_RATE = 0.5
