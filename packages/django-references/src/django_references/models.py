"""Polymorphic reference support for Django models.

Usage:
    from django.db import models
    from django_references.models import HasReferences, Reference, ReferenceQuerySet

    class Comment(HasReferences, models.Model):
        references = [
            Reference("subject", required=True),
            Reference("author"),
        ]

        subject_class = models.CharField(max_length=255)
        subject_identifiers = models.CharField(max_length=255)
        author_class = models.CharField(max_length=255, null=True, blank=True)
        author_identifiers = models.CharField(max_length=255, null=True, blank=True)

        objects = ReferenceQuerySet.as_manager()

    comment.set_reference("subject", "shop.Product", {"id": 7})
    comment.get_reference("subject")
    # ReferenceValue(target_type='shop.Product', identifiers={'id': 7})

The identifiers column should be a CharField rather than a JSONField so it
can take part in keys and be compared as a plain string.
"""

from typing import Any, Mapping, Optional

from django.db import models

from .encoding import decode_identifiers, encode_identifiers
from .exceptions import IncompleteReference, ReferenceNotNullable
from .registry import type_tag
from .schema import Reference, ReferenceSchema, ReferenceValue

__all__ = [
    "HasReferences",
    "Reference",
    "ReferenceQuerySet",
    "ReferenceValue",
]


class HasReferences:
    """Mixin for models that store named polymorphic references.

    Declare ``references`` as a list of Reference objects (or the short form
    ``{"name": required}``) and add the matching class/identifiers fields.

    The mixin only reads and writes the fields; loading referenced objects and
    checking allowed target types is done by
    :class:`django_references.services.ReferenceResolver`.
    """

    references = ()

    @classmethod
    def get_reference_schema(cls) -> ReferenceSchema:
        """Return the cached schema built from this class's declaration."""
        schema = cls.__dict__.get("_reference_schema")
        if schema is None:
            schema = ReferenceSchema(cls, cls.references)
            cls._reference_schema = schema
        return schema

    @classmethod
    def get_reference_names(cls) -> list[str]:
        """Return the reference names this model can store."""
        return cls.get_reference_schema().names()

    @classmethod
    def is_reference_nullable(cls, name: str) -> bool:
        """Return whether the reference given by name can be empty."""
        return cls.get_reference_schema().is_nullable(name)

    @classmethod
    def get_filter_values(
        cls,
        name: str,
        target_type=None,
        identifiers: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        """Return ``{field: value}`` lookups for filtering by this reference."""
        return cls.get_reference_schema().filter_criteria(name, target_type, identifiers)

    def get_reference(self, name: str) -> Optional[ReferenceValue]:
        """Return the stored reference, or None if nothing is referenced.

        Raises:
            UnknownReference: If name is not declared
        """
        reference = self.get_reference_schema().get(name)

        target_type = getattr(self, reference.class_field)
        identifiers = getattr(self, reference.identifiers_field)
        if not target_type or not identifiers:
            return None

        return ReferenceValue(target_type, decode_identifiers(identifiers))

    def set_reference(
        self,
        name: str,
        target_type=None,
        identifiers: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Store the reference given by name.

        target_type and identifiers must both be set, or both be empty to
        clear an optional reference. Does not save the instance.

        Raises:
            UnknownReference: If name is not declared
            IncompleteReference: If only one of target_type and identifiers is set
            ReferenceNotNullable: If clearing a required reference
            InvalidArgument: If the identifiers cannot be encoded; nothing is
                written in that case
        """
        reference = self.get_reference_schema().get(name)

        if bool(target_type) != bool(identifiers):
            raise IncompleteReference(name)

        if not target_type and reference.required:
            raise ReferenceNotNullable(name)

        tag = encoded = None
        if target_type:
            tag = type_tag(target_type)
            encoded = encode_identifiers(identifiers)

        setattr(self, reference.class_field, tag)
        setattr(self, reference.identifiers_field, encoded)


class ReferenceQuerySet(models.QuerySet):
    """QuerySet for models with HasReferences.

    Filters are derived by the default resolver, so allow-list rules apply.

    Usage:
        Comment.objects.referencing("subject", product)        # one object
        Comment.objects.referencing("subject", Product)        # any Product
        Comment.objects.referencing("author", None)            # unset
    """

    def referencing(self, name: str, target):
        """Return rows whose reference points at target.

        target may be a model instance, a model class or type tag, or None.
        """
        from .services import get_resolver

        resolver = get_resolver()
        if target is None or not isinstance(target, (str, type)):
            criteria = resolver.get_entity_filter_values(self.model, name, target)
        else:
            criteria = resolver.get_class_filter_values(self.model, name, target)
        return self.filter(**criteria)

    def without_reference(self, name: str):
        """Return rows where the reference given by name is not set."""
        return self.referencing(name, None)
