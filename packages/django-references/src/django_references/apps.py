"""Django app configuration for django-references."""

from django.apps import AppConfig


class DjangoReferencesConfig(AppConfig):
    """App configuration for django-references."""

    name = "django_references"
    verbose_name = "Django References"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        # connects the setting_changed receiver that resets the resolver
        from . import services  # noqa: F401
