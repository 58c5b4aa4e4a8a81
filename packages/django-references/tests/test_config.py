"""Tests for configuration helpers."""

from pathlib import Path

import pytest

from django_references.backends import ModelLoader, ModelMetadata
from django_references.conf import (
    DEFAULT_LOADER,
    clear_backend_cache,
    get_allowed_targets,
    get_loader,
    get_metadata,
    get_setting,
    load_allowed_targets,
    load_backend,
    parse_allowed_targets,
)
from django_references.exceptions import ReferencesConfigError
from django_references.services import get_resolver


FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture(autouse=True)
def clear_cache():
    """Clear backend cache before and after each test."""
    clear_backend_cache()
    yield
    clear_backend_cache()


class TestParseAllowedTargets:
    """Tests for parse_allowed_targets."""

    def test_valid(self):
        data = {"tests.Source": {"nullable": ("tests.Target",)}}

        assert parse_allowed_targets(data) == {"tests.Source": {"nullable": ["tests.Target"]}}

    def test_none_is_empty(self):
        assert parse_allowed_targets(None) == {}

    def test_root_must_be_mapping(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            parse_allowed_targets(["tests.Source"])

        assert "must be a mapping of owner types" in str(exc_info.value)

    def test_references_must_be_mapping(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            parse_allowed_targets({"tests.Source": ["nullable"]})

        assert "mapping of reference names" in str(exc_info.value)

    def test_targets_must_be_list(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            parse_allowed_targets({"tests.Source": {"nullable": "tests.Target"}})

        assert "'tests.Source.nullable' must be a list" in str(exc_info.value)

    def test_targets_must_be_strings(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            parse_allowed_targets({"tests.Source": {"nullable": [5, ["tests.Target"]]}})

        assert "'tests.Source.nullable' must be strings" in str(exc_info.value)


class TestLoadAllowedTargets:
    """Tests for load_allowed_targets."""

    def test_load_fixture(self):
        allowed = load_allowed_targets(FIXTURES_DIR / "allowed_targets.yaml")

        assert allowed == {
            "tests.Comment": {"subject": ["tests.Target", "tests.UUIDTarget"]},
            "tests.Source": {"required": ["tests.Target"]},
        }

    def test_load_plain_mapping(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("tests.Source:\n  nullable:\n    - tests.Target\n")

        assert load_allowed_targets(path) == {"tests.Source": {"nullable": ["tests.Target"]}}

    def test_missing_file(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            load_allowed_targets("/nonexistent/targets.yaml")

        assert "not found" in str(exc_info.value)

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("invalid: yaml: content: [")

        with pytest.raises(ReferencesConfigError) as exc_info:
            load_allowed_targets(path)

        assert "Invalid YAML" in str(exc_info.value)

    def test_root_not_mapping(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("- tests.Source\n")

        with pytest.raises(ReferencesConfigError) as exc_info:
            load_allowed_targets(path)

        assert "must contain a YAML mapping" in str(exc_info.value)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "targets.yaml"
        path.write_text("")

        assert load_allowed_targets(path) == {}


class TestGetAllowedTargets:
    """Tests for combining allow-list settings."""

    def test_from_settings(self):
        assert get_allowed_targets() == {"tests.Source": {"nullable": ["tests.Target"]}}

    def test_file_merged_by_owner(self, settings):
        settings.REFERENCES_ALLOWED_TARGETS_FILE = str(FIXTURES_DIR / "allowed_targets.yaml")

        allowed = get_allowed_targets()

        assert allowed["tests.Comment"] == {"subject": ["tests.Target", "tests.UUIDTarget"]}
        # the file's entry for tests.Source replaces the settings entry
        assert allowed["tests.Source"] == {"required": ["tests.Target"]}

    def test_unset(self, settings):
        del settings.REFERENCES_ALLOWED_TARGETS

        assert get_allowed_targets() == {}

    def test_resolver_uses_file(self, settings):
        settings.REFERENCES_ALLOWED_TARGETS_FILE = str(FIXTURES_DIR / "allowed_targets.yaml")

        resolver = get_resolver()

        assert resolver.get_allowed_targets("tests.Comment", "subject") == [
            "tests.Target",
            "tests.UUIDTarget",
        ]


class TestGetSetting:
    """Tests for get_setting."""

    def test_prefixed(self, settings):
        settings.REFERENCES_SOMETHING = "value"

        assert get_setting("SOMETHING") == "value"

    def test_default(self):
        assert get_setting("MISSING", "fallback") == "fallback"


class TestLoadBackend:
    """Tests for load_backend."""

    def test_load_default_backends(self):
        assert isinstance(get_loader(), ModelLoader)
        assert isinstance(get_metadata(), ModelMetadata)

    def test_bad_dotted_path_format(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            load_backend("invalid")

        assert "Invalid backend path" in str(exc_info.value)

    def test_module_not_found(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            load_backend("nonexistent.module.Loader")

        assert "Cannot import backend" in str(exc_info.value)

    def test_class_not_found(self):
        with pytest.raises(ReferencesConfigError) as exc_info:
            load_backend("django_references.backends.MissingLoader")

        assert "not found in module" in str(exc_info.value)

    def test_same_backend_returned_on_multiple_loads(self):
        assert load_backend(DEFAULT_LOADER) is load_backend(DEFAULT_LOADER)

    def test_clear_cache_creates_new_instances(self):
        loader = load_backend(DEFAULT_LOADER)
        clear_backend_cache()

        assert load_backend(DEFAULT_LOADER) is not loader

    def test_custom_backend_from_settings(self, settings):
        settings.REFERENCES_LOADER = "tests.backends.RecordingLoader"

        resolver = get_resolver()

        assert type(resolver.loader).__name__ == "RecordingLoader"
