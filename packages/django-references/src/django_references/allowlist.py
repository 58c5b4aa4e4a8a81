"""Allow-list of target types per owner type and reference name."""

import logging
from typing import Mapping

from .exceptions import ReferencesConfigError
from .registry import TypeRegistry, default_registry, type_tag

logger = logging.getLogger(__name__)


class AllowList:
    """Restricts which target types a reference may point at.

    Rules have the shape::

        {
            "shop.Comment": {
                "subject": ["shop.Product", "shop.Order"],
            },
        }

    Owner types and reference names that are not listed allow every target.
    A listed reference allows its targets and their subclasses, and the rule
    also applies to subclasses of the listed owner.
    """

    def __init__(self, rules: Mapping | None = None, registry: TypeRegistry | None = None):
        self.registry = registry or default_registry
        self._rules: dict[str, dict[str, list[str]]] = {}
        if rules:
            self.replace(rules)

    def _normalize(self, rules: Mapping) -> dict[str, dict[str, list[str]]]:
        normalized = {}
        for owner, references in rules.items():
            owner_tag = type_tag(owner)
            if not isinstance(references, Mapping):
                raise ReferencesConfigError(
                    f"Allowed targets for '{owner_tag}' must be a mapping of reference names"
                )

            normalized[owner_tag] = {}
            for name, targets in references.items():
                if isinstance(targets, str) or not isinstance(targets, (list, tuple, set, frozenset)):
                    raise ReferencesConfigError(
                        f"Allowed targets for '{owner_tag}.{name}' must be a list"
                    )

                tags = []
                for target in targets:
                    tag = type_tag(target)
                    if tag not in tags:
                        tags.append(tag)
                if not tags:
                    logger.warning(
                        f"Reference '{name}' on {owner_tag} lists no allowed targets, "
                        "every target will be rejected"
                    )
                normalized[owner_tag][name] = tags
        return normalized

    def replace(self, rules: Mapping) -> None:
        """Replace all rules."""
        self._rules = self._normalize(rules)

    def merge(self, rules: Mapping) -> None:
        """Merge rules by owner type.

        An incoming owner entry replaces the existing entry for that owner
        as a whole; reference names are not merged individually.
        """
        self._rules.update(self._normalize(rules))

    def add(self, owner, name: str, target) -> None:
        """Allow one more target type for an owner type and reference."""
        targets = self._rules.setdefault(type_tag(owner), {}).setdefault(name, [])
        tag = type_tag(target)
        if tag not in targets:
            targets.append(tag)

    def targets_for(self, owner, name: str) -> list[str]:
        """Return the listed targets for exactly this owner type and name.

        Subclasses are not considered. An empty list is returned when the
        owner or the reference is not listed, in which case every target is
        allowed, and when the listed reference has no targets.
        """
        return list(self._rules.get(type_tag(owner), {}).get(name, []))

    def is_allowed(self, owner, name: str, target) -> bool:
        """Check whether target may be stored in reference name on owner.

        owner and target may be instances, classes or type tags. This does
        not check that the reference exists on the owner.
        """
        owner_types = self.registry.ancestors(owner)
        target_types = self.registry.ancestors(target)
        rule_found = False

        for owner_tag, references in self._rules.items():
            if owner_tag not in owner_types:
                continue

            if name not in references:
                continue

            # a rule for this owner and reference exists, whether or not
            # the target matches it
            rule_found = True

            if target_types.intersection(references[name]):
                return True

        return not rule_found

    def as_dict(self) -> dict[str, dict[str, list[str]]]:
        """Return a copy of the rules."""
        return {
            owner: {name: list(targets) for name, targets in references.items()}
            for owner, references in self._rules.items()
        }

    def __bool__(self):
        return bool(self._rules)
