"""Type tags and ancestor lookup for reference targets.

A type tag is the string stored in a reference's class column. Django models
are tagged with their model label (``app_label.ModelName``), any other class
with its dotted path. Hierarchy checks are set-membership tests against the
precomputed ancestor closure of a class.
"""

from django.apps import apps
from django.db import models

from .exceptions import UnknownTargetType


# Model and its own bases never take part in allow-list matching
_EXCLUDED_BASES = frozenset(models.Model.__mro__)


def type_tag(value) -> str:
    """Return the type tag for a tag string, a class or an instance."""
    if isinstance(value, str):
        return value

    cls = value if isinstance(value, type) else type(value)
    if issubclass(cls, models.Model):
        return cls._meta.label
    return f"{cls.__module__}.{cls.__qualname__}"


class TypeRegistry:
    """Resolves type tags to classes and caches ancestor closures.

    Usage:
        registry = TypeRegistry()
        registry.ancestors(TargetChild)
        # frozenset({'shop.TargetChild', 'shop.Target'})

        registry.is_subtype(target_child, 'shop.Target')  # True
    """

    def __init__(self):
        self._classes: dict[str, type] = {}
        self._ancestors: dict[type, frozenset[str]] = {}

    def register(self, cls: type) -> str:
        """Make a non-model class resolvable by its tag and return the tag."""
        tag = type_tag(cls)
        self._classes[tag] = cls
        return tag

    def resolve(self, tag: str) -> type:
        """Return the class for a tag.

        Raises:
            UnknownTargetType: If the tag names neither a registered class
                nor an installed model
        """
        if tag in self._classes:
            return self._classes[tag]

        try:
            return apps.get_model(tag)
        except (LookupError, ValueError):
            raise UnknownTargetType(tag)

    def ancestors(self, value) -> frozenset[str]:
        """Return the tags of a type and all of its base classes.

        Strings that cannot be resolved only match themselves.
        """
        if isinstance(value, str):
            try:
                cls = self.resolve(value)
            except UnknownTargetType:
                return frozenset([value])
        else:
            cls = value if isinstance(value, type) else type(value)

        closure = self._ancestors.get(cls)
        if closure is None:
            closure = frozenset(
                type_tag(base)
                for base in cls.__mro__
                if base not in _EXCLUDED_BASES
            )
            self._ancestors[cls] = closure
        return closure

    def is_subtype(self, value, tag: str) -> bool:
        """Check whether value is the type named by tag or one of its descendants."""
        return tag in self.ancestors(value)

    def clear(self) -> None:
        """Forget registered classes and cached closures (for testing)."""
        self._classes.clear()
        self._ancestors.clear()


default_registry = TypeRegistry()
