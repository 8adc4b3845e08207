from __future__ import annotations

import os

"""
GOAL: Load the settings module matching DJANGO_ENV.

PARAMETERS:
  None

RETURNS:
  None - Module-level configuration import

RAISES:
  ValueError: If DJANGO_ENV has invalid value

GUARANTEES:
  - Falls back to development if DJANGO_ENV is not set
  - DJANGO_ENV is exported with the resolved environment name
"""

VALID_ENVIRONMENTS = {"development", "staging", "production"}


def get_environment() -> str:
    env = os.getenv("DJANGO_ENV", "development").lower().strip()
    if env not in VALID_ENVIRONMENTS:
        raise ValueError(
            f"Invalid DJANGO_ENV value: '{env}'. "
            f"Must be one of: {', '.join(sorted(VALID_ENVIRONMENTS))}"
        )
    return env


DJANGO_ENV = get_environment()

if DJANGO_ENV == "production":
    from .production import *  # noqa: F401, F403
elif DJANGO_ENV == "staging":
    from .staging import *  # noqa: F401, F403
else:
    from .development import *  # noqa: F401, F403

# Initialized after the environment module so its SENTRY_* overrides apply
if SENTRY_DSN:
    from apps.core.monitoring import init_sentry

    init_sentry(
        dsn=SENTRY_DSN,
        environment=SENTRY_ENVIRONMENT,
        traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
    )
