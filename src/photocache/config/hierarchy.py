"""Configuration hierarchy: merges sources in priority order.

Precedence (later overrides earlier):
  1. Package defaults
  2. Global config   (~/.photocache/config.yaml)
  3. Project config   (photocache.yaml, nearest to cwd)
  4. Environment variables (PHOTOCACHE_<KEY>, e.g. PHOTOCACHE_DISK_BUDGET_MB)
  5. Runtime arguments

YAML files may hold settings at the top level or nested under ``cache:``.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from photocache.config.defaults import get_defaults

logger = logging.getLogger(__name__)

_GLOBAL_CONFIG_PATH = Path.home() / ".photocache" / "config.yaml"
_PROJECT_CONFIG_NAME = "photocache.yaml"
_ENV_PREFIX = "PHOTOCACHE_"
_SIZE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*[xX]\s*(\d+(?:\.\d+)?)\s*$")


def load_config_hierarchy(**runtime_overrides: Any) -> dict[str, Any]:
    """Resolve settings from every source into one flat dict.

    Unknown keys are passed through; validation happens in CacheSettings.
    """
    config = get_defaults()

    for path in (_GLOBAL_CONFIG_PATH, _find_project_config()):
        if path is None:
            continue
        values = _load_yaml_config(path)
        if values:
            logger.debug("Applying config from %s (%d keys)", path, len(values))
            config.update(values)

    config.update(_load_env_vars())
    config.update({k: v for k, v in runtime_overrides.items() if v is not None})
    return config


def _load_yaml_config(path: Path) -> dict[str, Any] | None:
    """Settings mapping from *path*, or None when absent or unusable."""
    if not path.is_file():
        return None
    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to load config %s: %s", path, e)
        return None

    if isinstance(data, dict) and isinstance(data.get("cache"), dict):
        data = data["cache"]
    if not isinstance(data, dict):
        logger.warning("Config file %s is not a mapping, ignoring", path)
        return None
    return data


def _find_project_config() -> Path | None:
    cwd = Path.cwd()
    for directory in (cwd, *cwd.parents):
        candidate = directory / _PROJECT_CONFIG_NAME
        if candidate.is_file():
            return candidate
    return None


def _load_env_vars() -> dict[str, Any]:
    """One PHOTOCACHE_<KEY> variable per known setting."""
    result: dict[str, Any] = {}
    for key in get_defaults():
        value = os.environ.get(f"{_ENV_PREFIX}{key.upper()}")
        if value is not None:
            result[key] = _coerce_env_value(key, value)
    return result


def _coerce_env_value(key: str, value: str) -> Any:
    """Convert *value* to the type of the setting's default.

    Values that do not parse are returned unchanged so that validation
    reports them against the setting's name.
    """
    default = get_defaults().get(key)
    try:
        if key == "thumbnail_sizes":
            return _parse_sizes(value)
        if isinstance(default, int):
            return int(value)
        if isinstance(default, float):
            return float(value)
    except ValueError:
        logger.warning("Cannot parse %s%s=%r", _ENV_PREFIX, key.upper(), value)
    return value


def _parse_sizes(value: str) -> list[list[float]]:
    """``"110x120,600x600"`` -> ``[[110.0, 120.0], [600.0, 600.0]]``."""
    sizes = []
    for part in value.split(","):
        if not part.strip():
            continue
        match = _SIZE_PATTERN.match(part)
        if match is None:
            raise ValueError(f"not a WxH size: {part!r}")
        sizes.append([float(match.group(1)), float(match.group(2))])
    return sizes
