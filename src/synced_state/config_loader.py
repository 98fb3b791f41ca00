"""Load SyncedStateConfig from synced_state.yaml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from synced_state._errors import ConfigError
from synced_state.config import SyncedStateConfig

if TYPE_CHECKING:
    from pathlib import Path

_CONFIG_KEYS: frozenset[str] = frozenset({
    "topic",
    "on_unmatched",
    "queue_size",
    "max_events",
})


def load_config(root: Path, **overrides: object) -> SyncedStateConfig:
    """Load SyncedStateConfig from root, optionally merging synced_state.yaml.

    Looks for synced_state.yaml, synced_state.yml, or synced_state.toml in
    root. If found, loads and merges with overrides. Overrides take precedence.

    Raises:
        ConfigError: If an override key is unknown or the merged
            configuration is invalid (e.g. no topic).

    """
    unknown = sorted(set(overrides) - _CONFIG_KEYS)
    if unknown:
        msg = f"Unknown config keys: {', '.join(unknown)}"
        raise ConfigError(msg)
    file_config = _read_config_file(root)
    merged = {**file_config, **overrides}
    if "topic" not in merged:
        msg = f"No topic configured: set one in {root}/synced_state.yaml or pass topic="
        raise ConfigError(msg)
    return SyncedStateConfig(**merged)  # type: ignore[arg-type]


def _read_config_file(root: Path) -> dict[str, object]:
    """Read config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("synced_state.yaml", "synced_state.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "synced_state.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_section(data)


def _flatten_section(data: dict[str, object]) -> dict[str, object]:
    """Extract synced_state.* keys into top-level config.

    Top-level keys win over the section so a flat file can override a
    shared section.
    """
    result: dict[str, object] = {}
    section = data.get("synced_state")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _CONFIG_KEYS:
                result[k] = v
    for k, v in data.items():
        if k in _CONFIG_KEYS:
            result[k] = v
    return result
