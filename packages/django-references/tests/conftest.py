"""Pytest configuration for django-references tests."""

import django
import pytest
from django.conf import settings


ALLOWED_TARGETS = {
    "tests.Source": {
        "nullable": ["tests.Target"],
        # "required" is not listed, unlisted references accept any target
    },
}


def pytest_configure():
    """Configure Django settings for pytest."""
    if not settings.configured:
        settings.configure(
            DEBUG=True,
            SECRET_KEY="test-secret-key-for-django-references",
            DATABASES={
                "default": {
                    "ENGINE": "django.db.backends.sqlite3",
                    "NAME": ":memory:",
                }
            },
            INSTALLED_APPS=[
                "django.contrib.contenttypes",
                "django.contrib.auth",
                "django_references",
                "tests",
            ],
            DEFAULT_AUTO_FIELD="django.db.models.BigAutoField",
            USE_TZ=True,
            REFERENCES_ALLOWED_TARGETS=ALLOWED_TARGETS,
        )
    django.setup()


@pytest.fixture(autouse=True)
def reset_default_resolver():
    """Rebuild the default resolver from settings for every test."""
    from django_references.services import reset_resolver

    reset_resolver()
    yield
    reset_resolver()


@pytest.fixture
def resolver():
    """A resolver with the test allow-list."""
    from django_references.services import ReferenceResolver

    return ReferenceResolver(allowed_targets=ALLOWED_TARGETS)


@pytest.fixture
def target(db):
    """A persisted Target."""
    from tests.models import Target

    return Target.objects.create(name="target")


@pytest.fixture
def other_target(db):
    """A second persisted Target."""
    from tests.models import Target

    return Target.objects.create(name="other target")
