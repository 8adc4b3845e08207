from django.apps import AppConfig


class ErrorsConfig(AppConfig):
    """
    Configuration for the error presentation application.
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.errors"
    verbose_name = "Errors"
