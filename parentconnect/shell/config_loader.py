"""Configuration Loader - Imperative Shell.

This module handles loading configuration from YAML files and
environment variables. All I/O is contained here.

Models (Config, NamedPlace) are defined in parentconnect/core to avoid
information leakage between layers.
"""

import logging
import os
from pathlib import Path
from typing import Any

import yaml

from parentconnect.core.config import Config
from parentconnect.core.geo import Coordinate, NamedPlace
from parentconnect.core.recurrence import MAX_OCCURRENCES


logger = logging.getLogger(__name__)


def _resolve_value(value: Any) -> Any:
    """Resolve a ${VAR} environment placeholder.

    Args:
        value: Value to resolve; non-strings are returned unchanged

    Returns:
        Resolved value, or the original placeholder if the variable is unset
    """
    if not isinstance(value, str):
        return value

    if value.startswith("${") and value.endswith("}"):
        var_name = value[2:-1]
        env_value = os.environ.get(var_name)
        if env_value:
            return env_value
        logger.warning("Environment variable %s not set", var_name)

    return value


def _parse_place(data: dict[str, Any]) -> NamedPlace:
    """Parse a saved place from config data."""
    return NamedPlace(
        name=data["name"],
        coordinate=Coordinate(
            latitude=float(data["latitude"]),
            longitude=float(data["longitude"]),
        ),
    )


def load_config_from_dict(data: dict[str, Any]) -> Config:
    """Load configuration from a dictionary.

    This is a pure-ish function (only env var expansion has side effects).

    Args:
        data: Configuration dictionary

    Returns:
        Parsed Config object
    """
    firestore = data.get("firestore", {}) or {}

    places = [
        _parse_place(p)
        for p in data.get("saved_places", [])
    ]

    defaults = Config()
    age_ranges = data.get("age_ranges")

    return Config(
        storage_backend=_resolve_value(data.get("storage_backend", defaults.storage_backend)),
        firestore_project=_resolve_value(firestore.get("project")),
        firestore_database=_resolve_value(firestore.get("database")),
        entities_collection=firestore.get("entities_collection", defaults.entities_collection),
        participation_collection=firestore.get(
            "participation_collection", defaults.participation_collection
        ),
        max_occurrences=int(data.get("max_occurrences", MAX_OCCURRENCES)),
        default_privacy_level=data.get("default_privacy_level", defaults.default_privacy_level),
        age_ranges=tuple(age_ranges) if age_ranges else defaults.age_ranges,
        saved_places=places,
    )


def load_config(config_path: str | Path | None = None) -> Config:
    """Load configuration from a YAML file.

    This method performs file I/O.

    Args:
        config_path: Path to YAML config file.
                    If None, uses CONFIG_PATH env var or default.

    Returns:
        Parsed Config object

    Raises:
        yaml.YAMLError: If config file is invalid YAML
    """
    if config_path is None:
        config_path = os.environ.get("CONFIG_PATH", "config/config.yaml")

    path = Path(config_path)

    logger.info("Loading configuration from %s", path)

    if not path.exists():
        logger.warning("Config file not found: %s, using defaults", path)
        return Config()

    with open(path, "r") as f:
        data = yaml.safe_load(f)

    if data is None:
        logger.warning("Config file is empty, using defaults")
        return Config()

    config = load_config_from_dict(data)

    logger.info(
        "Loaded config: backend=%s, %d saved places, max %d occurrences",
        config.storage_backend,
        len(config.saved_places),
        config.max_occurrences,
    )

    return config


def load_config_from_env() -> Config:
    """Load minimal configuration from environment variables.

    Useful for simple deployments without a YAML file.

    Environment variables:
        STORAGE_BACKEND: "memory" or "firestore"
        GCP_PROJECT: Firestore project
        FIRESTORE_DATABASE: Firestore database name
        MAX_OCCURRENCES: Cap on occurrences per series

    Returns:
        Config object from environment
    """
    return Config(
        storage_backend=os.environ.get("STORAGE_BACKEND", "memory"),
        firestore_project=os.environ.get("GCP_PROJECT"),
        firestore_database=os.environ.get("FIRESTORE_DATABASE"),
        max_occurrences=int(os.environ.get("MAX_OCCURRENCES", str(MAX_OCCURRENCES))),
    )
