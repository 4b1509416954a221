"""Loading of the Keystone sync configuration.

The config is a YAML document with three optional keys::

    data_types_to_sync: [projects]
    namespace_format: "%n-%i"
    projects_black_list: [id1, id2]

Keys missing from the document keep their default values. Loading does
not validate; call ``SyncConfig.validate()`` on the result.
"""

import dataclasses
import logging
from pathlib import Path
from typing import Any

import yaml

from models import ConfigLoadError, SyncConfig

logger = logging.getLogger(__name__)

_KNOWN_KEYS = frozenset(
    {"data_types_to_sync", "namespace_format", "projects_black_list"}
)


def default_sync_config() -> SyncConfig:
    """Return the default sync config.

    By default the namespace name is just the Keystone project id and all
    supported data types are synced.
    """
    return SyncConfig()


def _scalar(key: str, value: Any) -> str:
    """Coerce a YAML scalar into a string field.

    Nulls become "", booleans keep their YAML spelling, and other scalars
    such as numbers are converted with str(). Collections are rejected.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, dict)):
        raise ConfigLoadError(f"{key} must be a string, got {value!r}")
    return str(value)


def _string_list(key: str, value: Any) -> list[str]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise ConfigLoadError(f"{key} must be a list of strings, got {value!r}")
    return [_scalar(key, v) for v in value]


def load_sync_config(document: bytes | str) -> SyncConfig:
    """Parse a sync config document on top of the defaults.

    Raises:
        ConfigLoadError: if the document is not valid YAML or a field holds
            a collection where a string is expected.
    """
    try:
        data = yaml.safe_load(document)
    except yaml.YAMLError as e:
        logger.error("Failed to parse sync config: %s", e)
        raise ConfigLoadError(f"Failed to parse sync config: {e}") from e

    if data is None:
        return default_sync_config()
    if not isinstance(data, dict):
        logger.error("Sync config must be a mapping, got %s", type(data).__name__)
        raise ConfigLoadError(
            f"Sync config must be a mapping, got {type(data).__name__}"
        )

    unknown = set(data) - _KNOWN_KEYS
    if unknown:
        logger.debug("Ignoring unknown sync config keys: %s", sorted(unknown))

    overrides: dict[str, Any] = {}
    try:
        if "data_types_to_sync" in data:
            overrides["data_types_to_sync"] = tuple(
                _string_list("data_types_to_sync", data["data_types_to_sync"])
            )
        if "namespace_format" in data:
            overrides["namespace_format"] = _scalar(
                "namespace_format", data["namespace_format"]
            )
        if "projects_black_list" in data:
            overrides["projects_black_list"] = frozenset(
                _string_list("projects_black_list", data["projects_black_list"])
            )
    except ConfigLoadError as e:
        logger.error("Invalid sync config: %s", e)
        raise

    return dataclasses.replace(default_sync_config(), **overrides)


def load_sync_config_from_file(path: str | Path) -> SyncConfig:
    """Load a sync config from a YAML file."""
    try:
        document = Path(path).read_bytes()
    except OSError as e:
        logger.error("Failed to read sync config %s: %s", path, e)
        raise ConfigLoadError(f"Failed to read sync config {path}: {e}") from e

    logger.info("Loading sync config from %s", path)
    return load_sync_config(document)
