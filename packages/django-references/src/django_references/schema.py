"""Reference definitions and the per-model reference schema."""

from dataclasses import dataclass
from typing import Any, Mapping, NamedTuple, Optional

from django.core.exceptions import FieldDoesNotExist

from .encoding import encode_identifiers
from .exceptions import InvalidArgument, ReferencesConfigError, UnknownReference
from .registry import type_tag


@dataclass(frozen=True)
class Reference:
    """Definition of one named reference on an owner model.

    Each reference is stored in two columns: the target's type tag and its
    encoded identifiers. Column names default to ``<name>_class`` and
    ``<name>_identifiers``.

    Attributes:
        name: Reference name, unique per owner model
        required: Whether the reference may be empty
        class_field: Field holding the target type tag
        identifiers_field: Field holding the encoded identifiers
    """

    name: str
    required: bool = False
    class_field: str = ""
    identifiers_field: str = ""

    def __post_init__(self):
        if not self.class_field:
            object.__setattr__(self, "class_field", f"{self.name}_class")
        if not self.identifiers_field:
            object.__setattr__(self, "identifiers_field", f"{self.name}_identifiers")

    @property
    def nullable(self) -> bool:
        return not self.required


class ReferenceValue(NamedTuple):
    """A stored reference: target type tag plus identifier mapping."""

    target_type: str
    identifiers: dict


def build_references(declaration) -> list[Reference]:
    """Normalize a ``references`` declaration into Reference objects.

    Accepts a sequence of Reference objects or a mapping of
    ``name -> required``.
    """
    if isinstance(declaration, Mapping):
        return [
            Reference(name=name, required=bool(required))
            for name, required in declaration.items()
        ]

    references = []
    for item in declaration:
        if not isinstance(item, Reference):
            raise ReferencesConfigError(
                f"Reference declarations must be Reference instances, got {item!r}"
            )
        references.append(item)
    return references


class ReferenceSchema:
    """Type-level view of the references declared on a model.

    Answers name, nullability and filter questions without an instance.

    Usage:
        schema = Comment.get_reference_schema()
        schema.names()                       # ['subject', 'author']
        schema.filter_criteria('subject', 'shop.Product')
        # {'subject_class': 'shop.Product'}
    """

    def __init__(self, model, references):
        self.model = model
        self._references: dict[str, Reference] = {}

        for reference in build_references(references):
            if reference.name in self._references:
                raise ReferencesConfigError(
                    f"Duplicate reference name '{reference.name}' on {model.__name__}"
                )
            self._check_fields(reference)
            self._references[reference.name] = reference

    def _check_fields(self, reference: Reference) -> None:
        meta = getattr(self.model, "_meta", None)
        if meta is None:
            return

        for field_name in (reference.class_field, reference.identifiers_field):
            try:
                meta.get_field(field_name)
            except FieldDoesNotExist:
                raise ReferencesConfigError(
                    f"{self.model.__name__} declares reference '{reference.name}' "
                    f"but has no field '{field_name}'"
                )

    def __iter__(self):
        return iter(self._references.values())

    def __len__(self):
        return len(self._references)

    def __contains__(self, name):
        return name in self._references

    def names(self) -> list[str]:
        """Return all reference names in declaration order."""
        return list(self._references)

    def get(self, name: str) -> Reference:
        """Return the definition for name.

        Raises:
            UnknownReference: If name is not declared
        """
        try:
            return self._references[name]
        except KeyError:
            raise UnknownReference(name, self.model)

    def is_nullable(self, name: str) -> bool:
        return self.get(name).nullable

    def filter_criteria(
        self,
        name: str,
        target_type=None,
        identifiers: Optional[Mapping[str, Any]] = None,
    ) -> dict[str, Any]:
        """Return ``{field: value}`` lookups selecting rows by reference.

        - no type, no identifiers: rows without a reference
        - type only: rows referencing any object of that type
        - type and identifiers: rows referencing that exact object

        Raises:
            UnknownReference: If name is not declared
            InvalidArgument: If identifiers are given without a type
        """
        reference = self.get(name)

        if not target_type and not identifiers:
            return {
                reference.class_field: None,
                reference.identifiers_field: None,
            }

        if not target_type:
            raise InvalidArgument(
                "When filtering by reference the target type must be set"
            )

        if not identifiers:
            return {reference.class_field: type_tag(target_type)}

        return {
            reference.class_field: type_tag(target_type),
            reference.identifiers_field: encode_identifiers(identifiers),
        }
