#!/usr/bin/env python
import os
import sys


"""
GOAL: Execute Django management commands using the configured settings module.

PARAMETERS:
  None

RETURNS:
  None

RAISES:
  ImportError: If Django is not installed/available

GUARANTEES:
  - Uses DJANGO_SETTINGS_MODULE=config.settings by default
  - DJANGO_ENV selects development, staging or production settings
"""
def main() -> None:
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
    from django.core.management import execute_from_command_line

    execute_from_command_line(sys.argv)


if __name__ == "__main__":
    main()
