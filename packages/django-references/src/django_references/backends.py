"""ORM collaborators used by the resolver.

ModelMetadata reads identifier values from model instances, ModelLoader
loads instances back from a type tag and identifiers. Both can be replaced
through the REFERENCES_METADATA and REFERENCES_LOADER settings.
"""

import logging
from typing import Any

from .registry import TypeRegistry, default_registry

logger = logging.getLogger(__name__)


class ModelMetadata:
    """Extracts primary key values from model instances."""

    def get_identifier_values(self, obj) -> dict[str, Any]:
        """Return ``{attname: value}`` for each primary key field of obj.

        Returns an empty dict for instances that have not been saved yet.
        """
        state = getattr(obj, "_state", None)
        if state is not None and state.adding:
            return {}

        meta = obj._meta
        # composite primary keys expose their parts as pk_fields
        pk_fields = getattr(meta, "pk_fields", None) or [meta.pk]

        identifiers = {}
        for field in pk_fields:
            value = getattr(obj, field.attname)
            if value is None:
                return {}
            identifiers[field.attname] = value
        return identifiers


class ModelLoader:
    """Loads referenced objects through the model's default manager."""

    def __init__(self, registry: TypeRegistry | None = None):
        self.registry = registry or default_registry

    def load(self, target_type: str, identifiers: dict[str, Any]):
        """Return the object of target_type matching identifiers, or None.

        Raises:
            UnknownTargetType: If target_type is not an installed model
        """
        model = self.registry.resolve(target_type)
        obj = model._default_manager.filter(**identifiers).first()
        if obj is None:
            logger.warning(f"Referenced {target_type} {identifiers} does not exist")
        return obj
