"""YAML config loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from photocache.config.defaults import get_defaults
from photocache.config.schema import CacheSettings


def load_yaml(path: str | Path) -> dict[str, Any]:
    """Load any YAML file safely."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"YAML file not found: {path}")

    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict):
        raise ValueError(f"Expected YAML mapping, got {type(raw).__name__} in {path}")

    return raw


def load_settings_yaml(path: str | Path) -> CacheSettings:
    """Load a settings YAML file on top of package defaults.

    The file may nest its keys under a top-level ``cache`` key.
    """
    raw = load_yaml(path)
    values = raw.get("cache", raw)
    if not isinstance(values, dict):
        raise ValueError(f"Invalid settings YAML: 'cache' must be a mapping in {path}")

    merged = get_defaults()
    merged.update(values)
    return CacheSettings(**merged)
