"""Django References - Polymorphic references between models."""

__version__ = "0.1.0"

__all__ = [
    "HasReferences",
    "Reference",
    "ReferenceQuerySet",
    "ReferenceResolver",
    "ReferenceValue",
    "get_resolver",
    "get_referenced_object",
    "set_referenced_object",
]

_LAZY_IMPORTS = {
    "HasReferences": "django_references.models",
    "Reference": "django_references.schema",
    "ReferenceQuerySet": "django_references.models",
    "ReferenceValue": "django_references.schema",
    "ReferenceResolver": "django_references.services",
    "get_resolver": "django_references.services",
}


def __getattr__(name):
    """Lazy imports to prevent AppRegistryNotReady errors."""
    if name in _LAZY_IMPORTS:
        from importlib import import_module

        return getattr(import_module(_LAZY_IMPORTS[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def get_referenced_object(owner, name: str):
    """Return the object referenced by name on owner."""
    from django_references.services import get_referenced_object as _get_referenced_object

    return _get_referenced_object(owner, name)


def set_referenced_object(owner, name: str, target) -> None:
    """Point the reference given by name on owner at target."""
    from django_references.services import set_referenced_object as _set_referenced_object

    return _set_referenced_object(owner, name, target)
