"""Configuration helpers for django-references.

Settings:
    REFERENCES_ALLOWED_TARGETS: allow-list mapping
        ``{owner_label: {reference_name: [target_label, ...]}}``
    REFERENCES_ALLOWED_TARGETS_FILE: path to a YAML file with the same
        mapping, merged over REFERENCES_ALLOWED_TARGETS by owner
    REFERENCES_LOADER: dotted path of the loader backend class
    REFERENCES_METADATA: dotted path of the metadata backend class
"""

import logging
from functools import lru_cache
from importlib import import_module
from pathlib import Path
from typing import Any

import yaml
from django.conf import settings

from .exceptions import ReferencesConfigError

logger = logging.getLogger(__name__)

DEFAULT_LOADER = "django_references.backends.ModelLoader"
DEFAULT_METADATA = "django_references.backends.ModelMetadata"


def get_setting(name: str, default=None):
    """Get a setting with REFERENCES_ prefix."""
    return getattr(settings, f"REFERENCES_{name}", default)


def parse_allowed_targets(data: Any) -> dict[str, dict[str, list[str]]]:
    """Validate an allow-list mapping and return a normalized copy.

    Raises:
        ReferencesConfigError: If data is not
            ``{owner: {name: [target, ...]}}``
    """
    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ReferencesConfigError("Allowed targets must be a mapping of owner types")

    allowed = {}
    for owner, references in data.items():
        if not isinstance(references, dict):
            raise ReferencesConfigError(
                f"Allowed targets for '{owner}' must be a mapping of reference names"
            )

        allowed[owner] = {}
        for name, targets in references.items():
            if isinstance(targets, str) or not isinstance(targets, (list, tuple, set)):
                raise ReferencesConfigError(
                    f"Allowed targets for '{owner}.{name}' must be a list"
                )
            for target in targets:
                if not isinstance(target, str):
                    raise ReferencesConfigError(
                        f"Allowed targets for '{owner}.{name}' must be strings"
                    )
            allowed[owner][name] = list(targets)

    return allowed


def load_allowed_targets(path: Path | str) -> dict[str, dict[str, list[str]]]:
    """Load an allow-list from a YAML file.

    The file holds the mapping itself or nests it under ``allowed_targets``.

    Raises:
        ReferencesConfigError: If the file is missing or invalid
    """
    path = Path(path)

    if not path.exists():
        raise ReferencesConfigError(f"Allowed targets file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ReferencesConfigError(f"Invalid YAML in {path}: {e}")

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ReferencesConfigError(f"{path} must contain a YAML mapping")

    if "allowed_targets" in data:
        data = data["allowed_targets"]

    return parse_allowed_targets(data)


def get_allowed_targets() -> dict[str, dict[str, list[str]]]:
    """Build the configured allow-list from settings and the optional YAML file."""
    allowed = parse_allowed_targets(get_setting("ALLOWED_TARGETS", {}))

    path = get_setting("ALLOWED_TARGETS_FILE")
    if path:
        allowed.update(load_allowed_targets(path))
        logger.info(f"Loaded allowed reference targets from {path}")

    return allowed


@lru_cache(maxsize=32)
def load_backend(dotted_path: str):
    """Import and instantiate a backend class from a dotted path.

    Raises:
        ReferencesConfigError: For bad paths, missing modules or classes
    """
    try:
        module_path, class_name = dotted_path.rsplit(".", 1)
    except ValueError:
        raise ReferencesConfigError(f"Invalid backend path '{dotted_path}'")

    try:
        module = import_module(module_path)
    except ImportError as e:
        raise ReferencesConfigError(f"Cannot import backend '{dotted_path}': {e}")

    try:
        backend_class = getattr(module, class_name)
    except AttributeError:
        raise ReferencesConfigError(
            f"Backend class '{class_name}' not found in module '{module_path}'"
        )

    return backend_class()


def get_loader():
    return load_backend(get_setting("LOADER", DEFAULT_LOADER))


def get_metadata():
    return load_backend(get_setting("METADATA", DEFAULT_METADATA))


def clear_backend_cache():
    """Clear the backend loading cache. Useful for testing."""
    load_backend.cache_clear()
