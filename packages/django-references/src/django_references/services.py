"""Services for django-references.

The resolver connects reference fields to live objects: it extracts
identifiers from targets, enforces the allow-list, loads referenced objects
and builds query filters.
"""

import logging
from functools import lru_cache
from typing import Any, Mapping, Optional

from django.core.signals import setting_changed
from django.dispatch import receiver

from . import conf
from .allowlist import AllowList
from .backends import ModelLoader, ModelMetadata
from .exceptions import InvalidArgument, NotPersisted, NotReferenceCapable, TargetNotAllowed
from .models import HasReferences
from .registry import TypeRegistry, default_registry, type_tag
from .schema import ReferenceValue

logger = logging.getLogger(__name__)


class ReferenceResolver:
    """Loads, assigns and filters polymorphic references.

    Usage:
        resolver = ReferenceResolver(allowed_targets={
            "shop.Comment": {"subject": ["shop.Product"]},
        })

        resolver.set_referenced_object(comment, "subject", product)
        comment.save()

        resolver.get_referenced_object(comment, "subject")  # product

        Comment.objects.filter(
            **resolver.get_entity_filter_values(Comment, "subject", product)
        )
    """

    def __init__(
        self,
        loader=None,
        metadata=None,
        allowed_targets: Optional[Mapping] = None,
        registry: Optional[TypeRegistry] = None,
    ):
        self.registry = registry or default_registry
        self.loader = loader if loader is not None else ModelLoader(self.registry)
        self.metadata = metadata if metadata is not None else ModelMetadata()
        self.allow_list = AllowList(allowed_targets, registry=self.registry)

    @classmethod
    def from_settings(cls) -> "ReferenceResolver":
        """Build a resolver from the REFERENCES_* settings."""
        allowed_targets = conf.get_allowed_targets()
        resolver = cls(
            loader=conf.get_loader(),
            metadata=conf.get_metadata(),
            allowed_targets=allowed_targets,
        )
        logger.info(
            f"Reference resolver configured with allowed targets for "
            f"{len(allowed_targets)} owner type(s)"
        )
        return resolver

    # Objects

    def get_referenced_object(self, owner, name: str):
        """Return the object referenced by name on owner, or None if unset.

        Raises:
            NotReferenceCapable: If owner does not implement HasReferences
            UnknownReference: If name is not declared on owner
        """
        self._check_owner(owner)
        reference = owner.get_reference(name)
        if reference is None:
            return None
        return self.get_object(reference)

    def get_reference_data(self, obj) -> ReferenceValue:
        """Return the type tag and identifiers of a persisted object.

        Raises:
            NotPersisted: If obj has no identifier values yet
        """
        identifiers = self.metadata.get_identifier_values(obj)
        if not identifiers:
            raise NotPersisted(obj)
        return ReferenceValue(type_tag(obj), dict(identifiers))

    def get_object(self, reference):
        """Load the object for a ReferenceValue or ``(type, identifiers)`` pair.

        Raises:
            InvalidArgument: If the type or the identifiers are missing
        """
        try:
            target_type, identifiers = reference
        except (TypeError, ValueError):
            raise InvalidArgument(f"Invalid reference data {reference!r}")

        if not target_type or not identifiers:
            raise InvalidArgument(
                "Target type and identifiers must be set in the reference data"
            )

        target_type = type_tag(target_type)
        logger.debug(f"Loading referenced {target_type} {dict(identifiers)}")
        return self.loader.load(target_type, dict(identifiers))

    def set_referenced_object(self, owner, name: str, target) -> None:
        """Point the reference given by name on owner at target.

        Passing None clears the reference. The owner is not saved.

        Raises:
            NotReferenceCapable: If owner does not implement HasReferences
            TargetNotAllowed: If the allow-list rejects the target's type
            NotPersisted: If target has no identifiers yet
            UnknownReference: If name is not declared on owner
            ReferenceNotNullable: If clearing a required reference
        """
        self._check_owner(owner)

        if target is None:
            owner.set_reference(name, None, None)
            logger.debug(f"Cleared reference '{name}' on {type_tag(owner)}")
            return

        if not self.is_allowed_target(owner, name, target):
            raise TargetNotAllowed(type_tag(owner), name, type_tag(target))

        reference = self.get_reference_data(target)
        owner.set_reference(name, reference.target_type, reference.identifiers)
        logger.debug(
            f"Set reference '{name}' on {type_tag(owner)} to "
            f"{reference.target_type} {reference.identifiers}"
        )

    # Allow-list

    def is_allowed_target(self, owner, name: str, target) -> bool:
        """Check if target is allowed for reference name on owner.

        owner and target may be instances, classes or type tags. This does
        not check that the reference exists on the owner.
        """
        return self.allow_list.is_allowed(owner, name, target)

    def get_allowed_targets(self, owner_type, name: str) -> list[str]:
        """Return the targets listed for exactly this owner type and reference.

        Subclasses of the listed targets are not included. An empty list
        means either that nothing is listed (every target allowed) or that
        the listed reference has no targets.
        """
        return self.allow_list.targets_for(owner_type, name)

    def add_allowed_target(self, owner_type, name: str, target_type) -> None:
        """Allow one more target type for the owner type and reference."""
        self.allow_list.add(owner_type, name, target_type)

    def add_allowed_targets(self, allowed_targets: Mapping) -> None:
        """Merge allow-list rules, replacing existing rules per owner type."""
        self.allow_list.merge(allowed_targets)

    def set_allowed_targets(self, allowed_targets: Mapping) -> None:
        """Replace the whole allow-list."""
        self.allow_list.replace(allowed_targets)

    # Filters

    def get_class_filter_values(self, owner_type, name: str, target_type) -> dict[str, Any]:
        """Return lookups for owners whose reference points at any target_type.

        Raises:
            NotReferenceCapable: If owner_type does not implement HasReferences
            UnknownReference: If name is not declared on owner_type
            TargetNotAllowed: If the allow-list rejects target_type
        """
        model = self._owner_model(owner_type)
        schema = model.get_reference_schema()
        schema.get(name)

        if not target_type:
            return schema.filter_criteria(name)

        if not self.is_allowed_target(model, name, target_type):
            raise TargetNotAllowed(type_tag(model), name, type_tag(target_type))

        return schema.filter_criteria(name, type_tag(target_type))

    def get_entity_filter_values(self, owner_type, name: str, target) -> dict[str, Any]:
        """Return lookups for owners whose reference points at target.

        A None target selects owners without a reference.

        Raises:
            NotReferenceCapable: If owner_type does not implement HasReferences
            UnknownReference: If name is not declared on owner_type
            TargetNotAllowed: If the allow-list rejects the target's type
            NotPersisted: If target has no identifiers yet
        """
        model = self._owner_model(owner_type)
        schema = model.get_reference_schema()
        schema.get(name)

        if target is None:
            return schema.filter_criteria(name)

        if not self.is_allowed_target(model, name, target):
            raise TargetNotAllowed(type_tag(model), name, type_tag(target))

        reference = self.get_reference_data(target)
        return schema.filter_criteria(name, reference.target_type, reference.identifiers)

    def _owner_model(self, owner_type) -> type:
        if isinstance(owner_type, str):
            model = self.registry.resolve(owner_type)
        elif isinstance(owner_type, type):
            model = owner_type
        else:
            model = type(owner_type)

        if not issubclass(model, HasReferences):
            raise NotReferenceCapable(model)
        return model

    def _check_owner(self, owner) -> None:
        if not isinstance(owner, HasReferences):
            raise NotReferenceCapable(type(owner))


@lru_cache(maxsize=None)
def get_resolver() -> ReferenceResolver:
    """Return the process-wide resolver built from settings."""
    return ReferenceResolver.from_settings()


def reset_resolver() -> None:
    """Drop the process-wide resolver so it is rebuilt from settings."""
    get_resolver.cache_clear()
    conf.clear_backend_cache()


@receiver(setting_changed)
def _reset_on_setting_changed(sender, setting, **kwargs):
    if setting.startswith("REFERENCES_"):
        reset_resolver()


def get_referenced_object(owner, name: str):
    """Return the object referenced by name on owner using the default resolver."""
    return get_resolver().get_referenced_object(owner, name)


def set_referenced_object(owner, name: str, target) -> None:
    """Set the reference given by name on owner using the default resolver."""
    get_resolver().set_referenced_object(owner, name, target)
