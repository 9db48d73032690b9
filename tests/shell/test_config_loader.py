"""Tests for the Configuration Loader module.

Tests configuration loading from YAML files and environment variables.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from parentconnect.core.config import Config
from parentconnect.core.errors import InvalidInputError
from parentconnect.core.filters import AGE_RANGES
from parentconnect.core.geo import Coordinate
from parentconnect.shell.config_loader import (
    _parse_place,
    _resolve_value,
    load_config,
    load_config_from_dict,
    load_config_from_env,
)


EXAMPLE_CONFIG = Path(__file__).resolve().parents[2] / "config" / "config.example.yaml"


class TestResolveValue:
    """Tests for _resolve_value function."""

    def test_returns_non_string_unchanged(self):
        """Non-string values are returned unchanged."""
        assert _resolve_value(123) == 123
        assert _resolve_value(None) is None

    def test_returns_plain_string_unchanged(self):
        """Plain strings without placeholders are returned unchanged."""
        assert _resolve_value("my-project") == "my-project"

    def test_resolves_env_var_placeholder(self):
        """Resolves ${VAR} placeholders from environment."""
        with patch.dict(os.environ, {"TEST_PROJECT": "parents-prod"}):
            assert _resolve_value("${TEST_PROJECT}") == "parents-prod"

    def test_returns_placeholder_if_env_var_not_set(self):
        """Returns original placeholder if env var not set."""
        with patch.dict(os.environ, {}, clear=True):
            assert _resolve_value("${UNDEFINED_VAR}") == "${UNDEFINED_VAR}"


class TestParsePlace:
    """Tests for _parse_place function."""

    def test_parses_valid_place(self):
        """Parses name and coordinates, converting strings to floats."""
        place = _parse_place({"name": "Home", "latitude": "37.7749", "longitude": -122.4194})

        assert place.name == "Home"
        assert place.coordinate == Coordinate(37.7749, -122.4194)

    def test_rejects_out_of_range(self):
        """Invalid coordinates are rejected when the place is built."""
        with pytest.raises(InvalidInputError):
            _parse_place({"name": "Nowhere", "latitude": 95.0, "longitude": 0.0})

    def test_missing_field_raises(self):
        """Missing keys raise KeyError."""
        with pytest.raises(KeyError):
            _parse_place({"name": "Home", "latitude": 37.0})


class TestLoadConfigFromDict:
    """Tests for load_config_from_dict function."""

    def test_empty_dict_gives_defaults(self):
        """An empty mapping yields the default configuration."""
        assert load_config_from_dict({}) == Config()

    def test_full_config(self):
        """All sections are read."""
        with patch.dict(os.environ, {"GCP_PROJECT": "parents-prod"}):
            config = load_config_from_dict({
                "storage_backend": "firestore",
                "firestore": {
                    "project": "${GCP_PROJECT}",
                    "database": "events",
                    "entities_collection": "events",
                    "participation_collection": "attendees",
                },
                "max_occurrences": 6,
                "default_privacy_level": "Friends Only",
                "age_ranges": ["0-2 years", "3-5 years"],
                "saved_places": [
                    {"name": "Home", "latitude": 37.7749, "longitude": -122.4194},
                ],
            })

        assert config.storage_backend == "firestore"
        assert config.firestore_project == "parents-prod"
        assert config.firestore_database == "events"
        assert config.entities_collection == "events"
        assert config.participation_collection == "attendees"
        assert config.max_occurrences == 6
        assert config.default_privacy_level == "Friends Only"
        assert config.age_ranges == ("0-2 years", "3-5 years")
        assert config.find_place("home") is not None

    def test_null_firestore_section(self):
        """A firestore key with no body is treated as empty."""
        config = load_config_from_dict({"firestore": None})
        assert config.firestore_project is None

    def test_empty_age_ranges_fall_back(self):
        """An empty age list keeps the built-in labels."""
        assert load_config_from_dict({"age_ranges": []}).age_ranges == AGE_RANGES


class TestLoadConfig:
    """Tests for load_config function."""

    def test_missing_file_returns_defaults(self, tmp_path):
        """A missing file is not an error."""
        assert load_config(tmp_path / "missing.yaml") == Config()

    def test_empty_file_returns_defaults(self, tmp_path):
        """An empty file yields defaults."""
        path = tmp_path / "config.yaml"
        path.write_text("")

        assert load_config(path) == Config()

    def test_loads_yaml(self, tmp_path):
        """Reads values from YAML."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "storage_backend: memory\n"
            "max_occurrences: 4\n"
            "saved_places:\n"
            "  - name: Park\n"
            "    latitude: 37.7694\n"
            "    longitude: -122.4862\n"
        )

        config = load_config(path)

        assert config.max_occurrences == 4
        assert config.saved_places[0].name == "Park"

    def test_uses_config_path_env(self, tmp_path):
        """CONFIG_PATH is used when no path is passed."""
        path = tmp_path / "env.yaml"
        path.write_text("max_occurrences: 2\n")

        with patch.dict(os.environ, {"CONFIG_PATH": str(path)}):
            assert load_config().max_occurrences == 2

    def test_example_config_loads(self):
        """The shipped example configuration is valid."""
        with patch.dict(os.environ, {"GCP_PROJECT": "demo"}):
            config = load_config(EXAMPLE_CONFIG)

        assert config.firestore_project == "demo"
        assert config.find_place("Home") is not None


class TestLoadConfigFromEnv:
    """Tests for load_config_from_env function."""

    def test_reads_environment(self):
        """Reads backend, project and occurrence cap."""
        env = {
            "STORAGE_BACKEND": "firestore",
            "GCP_PROJECT": "parents-dev",
            "FIRESTORE_DATABASE": "events",
            "MAX_OCCURRENCES": "5",
        }
        with patch.dict(os.environ, env, clear=True):
            config = load_config_from_env()

        assert config.storage_backend == "firestore"
        assert config.firestore_project == "parents-dev"
        assert config.firestore_database == "events"
        assert config.max_occurrences == 5

    def test_defaults(self):
        """Unset variables fall back to defaults."""
        with patch.dict(os.environ, {}, clear=True):
            config = load_config_from_env()

        assert config.storage_backend == "memory"
        assert config.max_occurrences == 10
