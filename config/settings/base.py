from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent.parent


"""
GOAL: Read an environment variable with optional default.

PARAMETERS:
  name: str - Environment variable name - Must be non-empty
  default: str | None - Fallback value - Optional

RETURNS:
  str | None - Environment value or default - Never raises on missing var

RAISES:
  None

GUARANTEES:
  - Does not strip or coerce the value
"""
def _env(name: str, default: str | None = None) -> str | None:
    return os.getenv(name, default)


load_dotenv(BASE_DIR / ".env")


SECRET_KEY = _env("SECRET_KEY", "dev-secret-key-change-me")

ALLOWED_HOSTS = [h.strip() for h in (_env("ALLOWED_HOSTS", "") or "").split(",") if h.strip()]

INSTALLED_APPS = [
    "django.contrib.contenttypes",
    "django.contrib.staticfiles",
    "apps.core.apps.CoreConfig",
    "apps.errors.apps.ErrorsConfig",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "apps.core.middleware.UncaughtExceptionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES: dict[str, Any] = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

LANGUAGE_CODE = "es-es"
TIME_ZONE = _env("TIME_ZONE", "UTC") or "UTC"
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

LOG_DIR = BASE_DIR / "logs"
# FileHandlers in LOGGING open their files at configuration time.
LOG_DIR.mkdir(mode=0o755, parents=True, exist_ok=True)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
VERBOSE_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(module)s %(funcName)s:%(lineno)d %(message)s"


"""
GOAL: Build the LOGGING dictConfig shared by every environment.

PARAMETERS:
  app_level: str - Level for apps.* loggers - e.g. "DEBUG"
  request_level: str - Level for django.request - e.g. "WARNING"
  runtime_handlers: list[str] - Handlers of the runtime_errors log - Not empty
  verbose: bool - Use the verbose console format - Default False

RETURNS:
  dict - logging.config.dictConfig payload

RAISES:
  None

GUARANTEES:
  - runtime_errors logs at INFO, or DEBUG when app_level is DEBUG
  - error_file writes to LOG_DIR/error.log
"""
def _logging_config(
    app_level: str,
    request_level: str,
    runtime_handlers: list[str],
    verbose: bool = False,
) -> dict[str, Any]:
    runtime_level = "DEBUG" if app_level == "DEBUG" else "INFO"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"format": VERBOSE_LOG_FORMAT if verbose else LOG_FORMAT},
            "file": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "console"},
            "error_file": {
                "class": "logging.FileHandler",
                "filename": str(LOG_DIR / "error.log"),
                "formatter": "file",
            },
        },
        "loggers": {
            "django": {"handlers": ["console"], "level": "WARNING" if app_level == "WARNING" else "INFO"},
            "django.request": {"handlers": ["console", "error_file"], "level": request_level},
            "runtime_errors": {"handlers": runtime_handlers, "level": runtime_level},
            "apps.core": {"handlers": ["console", "error_file"], "level": app_level},
            "apps.errors": {"handlers": ["console"], "level": app_level},
        },
    }


LOGGING = _logging_config("INFO", "WARNING", ["console", "error_file"])

# Runtime error handling
# Only the literal "true" enables debug disclosure; resolved once here.
APP_DEBUG = (_env("APP_DEBUG", "") or "").strip() == "true"

# Serial device, reported in the Arduino error log context
ARDUINO_PORT = _env("ARDUINO_PORT", "") or ""
ARDUINO_BAUDRATE = _env("ARDUINO_BAUDRATE", "") or ""
SERVER_SOFTWARE = _env("SERVER_SOFTWARE", "") or ""

# Dotted path of the class rendering uncaught exceptions
ERROR_PRESENTER = _env("ERROR_PRESENTER", "apps.errors.presenter.ErrorPresenter") or "apps.errors.presenter.ErrorPresenter"

# Sentry monitoring settings
SENTRY_DSN = _env("SENTRY_DSN", "") or ""
SENTRY_ENVIRONMENT = _env("SENTRY_ENVIRONMENT", "development") or "development"
SENTRY_TRACES_SAMPLE_RATE = float(_env("SENTRY_TRACES_SAMPLE_RATE", "0.1") or "0.1")
