"""
Core app configuration for Django.

Installs the process-wide runtime error and uncaught exception handlers.
"""

from django.apps import AppConfig


class CoreConfig(AppConfig):
    """
    Configuration for the core application.

    Provides:
    - Runtime error interceptor (warnings, trigger_error)
    - Uncaught exception dispatcher
    - Serial/Arduino device error log
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.core"
    verbose_name = "Core"

    def ready(self) -> None:
        from django.conf import settings

        from apps.core.dtos import EnvironmentPolicy
        from apps.core.error_handler import install_error_handlers

        install_error_handlers(EnvironmentPolicy.from_settings(settings))
