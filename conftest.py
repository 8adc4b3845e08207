"""
Pytest configuration and fixtures for the error handling tests.

This module provides common fixtures used across all test modules.
"""

import logging
import sys
import warnings
from datetime import datetime
from unittest.mock import Mock

import pytest
from django.test import RequestFactory as DjangoRequestFactory

from apps.core.diagnostics import DeviceErrorLog
from apps.core.dtos import EnvironmentPolicy

FIXED_NOW = datetime(2024, 1, 15, 10, 30, 0)


@pytest.fixture
def rf():
    """
    GOAL: Provide a Django RequestFactory for creating test requests.

    RETURNS:
      RequestFactory - Django request factory instance
    """
    return DjangoRequestFactory()


@pytest.fixture
def policy(tmp_path):
    """
    GOAL: Provide a production policy writing logs under tmp_path.

    RETURNS:
      EnvironmentPolicy - debug disabled, device configured on COM3

    GUARANTEES:
      - Log directory does not exist yet
      - Presenter is the real apps.errors presenter
    """
    return EnvironmentPolicy(
        debug_enabled=False,
        log_dir=tmp_path / "logs",
        device_port="COM3",
        device_baud_rate="9600",
        server_software="Apache/2.4.57",
    )


@pytest.fixture
def debug_policy(policy):
    """
    GOAL: Same as policy, with debug enabled.
    """
    return policy.model_copy(update={"debug_enabled": True})


@pytest.fixture
def device_log(policy):
    """
    GOAL: Provide a device log on the policy path with a frozen clock.

    GUARANTEES:
      - Every record is timestamped 2024-01-15 10:30:00
    """
    return DeviceErrorLog(policy.device_log_path, clock=lambda: FIXED_NOW)


@pytest.fixture
def general_logger():
    """
    GOAL: Provide an isolated general log that caplog can observe.

    GUARANTEES:
      - Logger accepts every level
      - Records propagate to caplog's root handler
    """
    logger = logging.getLogger("tests.runtime_errors")
    logger.setLevel(logging.DEBUG)
    return logger


@pytest.fixture
def install_handlers(monkeypatch, general_logger):
    """
    GOAL: Install error handlers for one test without leaking global hooks.

    RETURNS:
      function - install(policy) -> ErrorHandlers

    GUARANTEES:
      - Previously installed handlers are hidden for the test
      - warnings.showwarning and sys.excepthook are restored afterwards
      - Previous hooks are Mocks so default display can be asserted
    """
    from apps.core import error_handler

    monkeypatch.setattr(error_handler, "_handlers", None)
    monkeypatch.setattr(warnings, "showwarning", Mock(name="showwarning"))
    monkeypatch.setattr(sys, "excepthook", Mock(name="excepthook"))

    def _install(policy: EnvironmentPolicy):
        return error_handler.install_error_handlers(
            policy,
            device_log=DeviceErrorLog(policy.device_log_path, clock=lambda: FIXED_NOW),
            general_logger=general_logger,
        )

    return _install
