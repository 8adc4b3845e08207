from __future__ import annotations

from .base import *
from .base import _logging_config

"""
GOAL: Configure production settings with minimal error disclosure.

PARAMETERS:
  None

RETURNS:
  None - Module-level configuration

RAISES:
  None

GUARANTEES:
  - DEBUG and APP_DEBUG are disabled regardless of the environment
  - Runtime errors go to LOG_DIR/error.log only
  - Secure cookies and HSTS
"""

DEBUG = False
APP_DEBUG = False

if not ALLOWED_HOSTS:
    ALLOWED_HOSTS = ["arduino-panel.local"]

LOGGING = _logging_config("WARNING", "ERROR", ["error_file"])

SENTRY_ENVIRONMENT = "production"
SENTRY_TRACES_SAMPLE_RATE = 0.1

SECURE_SSL_REDIRECT = True
SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = True
CSRF_COOKIE_SECURE = True
SECURE_CONTENT_TYPE_NOSNIFF = True
X_FRAME_OPTIONS = "DENY"
SECURE_HSTS_SECONDS = 31536000
SECURE_HSTS_INCLUDE_SUBDOMAINS = True
