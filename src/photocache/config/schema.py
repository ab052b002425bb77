"""Pydantic model for cache configuration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator

from photocache.config.defaults import (
    DEFAULT_DISK_BUDGET_MB,
    DEFAULT_DISK_DIR,
    DEFAULT_DISK_HOT_COST_LIMIT_MB,
    DEFAULT_DISK_HOT_COUNT_LIMIT,
    DEFAULT_DISPLAY_SCALE,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_PHOTO_BYTES,
    DEFAULT_MAX_PHOTO_DIMENSION,
    DEFAULT_MAX_QUALITY,
    DEFAULT_MEMORY_COST_LIMIT_MB,
    DEFAULT_MEMORY_COUNT_LIMIT,
    DEFAULT_MIN_QUALITY,
    DEFAULT_SEARCH_ITERATIONS,
    DEFAULT_THUMBNAIL_QUALITY,
    DEFAULT_THUMBNAIL_SIZES,
)
from photocache.types import PointSize

_MB = 1024 * 1024


class CacheSettings(BaseModel):
    """Resolved settings for the memory tier, disk tier and write path."""

    model_config = {"extra": "ignore"}

    memory_count_limit: int = Field(default=DEFAULT_MEMORY_COUNT_LIMIT, ge=1)
    memory_cost_limit_mb: float = Field(default=DEFAULT_MEMORY_COST_LIMIT_MB, gt=0)

    disk_dir: Path = DEFAULT_DISK_DIR
    disk_budget_mb: float = Field(default=DEFAULT_DISK_BUDGET_MB, gt=0)
    disk_hot_count_limit: int = Field(default=DEFAULT_DISK_HOT_COUNT_LIMIT, ge=1)
    disk_hot_cost_limit_mb: float = Field(default=DEFAULT_DISK_HOT_COST_LIMIT_MB, gt=0)

    thumbnail_quality: float = Field(default=DEFAULT_THUMBNAIL_QUALITY, gt=0, le=1)

    max_photo_bytes: int = Field(default=DEFAULT_MAX_PHOTO_BYTES, gt=0)
    min_quality: float = Field(default=DEFAULT_MIN_QUALITY, gt=0, le=1)
    max_quality: float = Field(default=DEFAULT_MAX_QUALITY, gt=0, le=1)
    search_iterations: int = Field(default=DEFAULT_SEARCH_ITERATIONS, ge=1)
    max_photo_dimension: int = Field(default=DEFAULT_MAX_PHOTO_DIMENSION, ge=1)

    display_scale: float = Field(default=DEFAULT_DISPLAY_SCALE, gt=0)
    thumbnail_sizes: list[PointSize] = Field(
        default_factory=lambda: [PointSize(width=w, height=h) for w, h in DEFAULT_THUMBNAIL_SIZES]
    )

    log_level: str = DEFAULT_LOG_LEVEL

    @field_validator("thumbnail_sizes", mode="before")
    @classmethod
    def _coerce_sizes(cls, value: Any) -> Any:
        # YAML and the defaults dict carry sizes as [width, height] pairs
        if isinstance(value, list):
            return [
                {"width": item[0], "height": item[1]}
                if isinstance(item, (list, tuple))
                else item
                for item in value
            ]
        return value

    @field_validator("disk_dir", mode="before")
    @classmethod
    def _expand_dir(cls, value: Any) -> Any:
        if isinstance(value, str):
            return Path(value).expanduser()
        return value

    @model_validator(mode="after")
    def _check_quality_bounds(self) -> CacheSettings:
        if self.min_quality >= self.max_quality:
            raise ValueError(
                f"min_quality ({self.min_quality}) must be below max_quality ({self.max_quality})"
            )
        return self

    @property
    def memory_cost_limit_bytes(self) -> int:
        return int(self.memory_cost_limit_mb * _MB)

    @property
    def disk_budget_bytes(self) -> int:
        return int(self.disk_budget_mb * _MB)

    @property
    def disk_hot_cost_limit_bytes(self) -> int:
        return int(self.disk_hot_cost_limit_mb * _MB)

    @classmethod
    def load(cls, **runtime_overrides: Any) -> CacheSettings:
        """Resolve the full config hierarchy and validate it."""
        from photocache.config.hierarchy import load_config_hierarchy

        return cls(**load_config_hierarchy(**runtime_overrides))
