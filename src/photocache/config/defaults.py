"""Package-level default configuration values."""

from __future__ import annotations

from pathlib import Path
from typing import Any

# Memory tier
DEFAULT_MEMORY_COUNT_LIMIT = 50
DEFAULT_MEMORY_COST_LIMIT_MB = 100.0

# Disk tier
DEFAULT_DISK_BUDGET_MB = 64.0
DEFAULT_DISK_DIR = Path.home() / ".photocache" / "images"
DEFAULT_DISK_HOT_COUNT_LIMIT = 300
DEFAULT_DISK_HOT_COST_LIMIT_MB = 64.0

# Thumbnails written to the disk tier
DEFAULT_THUMBNAIL_QUALITY = 0.9

# Storage compression
DEFAULT_MAX_PHOTO_BYTES = 2_000_000
DEFAULT_MIN_QUALITY = 0.45
DEFAULT_MAX_QUALITY = 0.92
DEFAULT_SEARCH_ITERATIONS = 7
DEFAULT_MAX_PHOTO_DIMENSION = 1920

# Display
DEFAULT_DISPLAY_SCALE = 3.0

# Points, pre-scale: grid cell, detail view
DEFAULT_THUMBNAIL_SIZES: list[tuple[float, float]] = [
    (110.0, 120.0),
    (600.0, 600.0),
]

# Log level
DEFAULT_LOG_LEVEL = "WARNING"


def get_defaults() -> dict[str, Any]:
    """Return all defaults as a flat dictionary for merging."""
    return {
        "memory_count_limit": DEFAULT_MEMORY_COUNT_LIMIT,
        "memory_cost_limit_mb": DEFAULT_MEMORY_COST_LIMIT_MB,
        "disk_budget_mb": DEFAULT_DISK_BUDGET_MB,
        "disk_dir": DEFAULT_DISK_DIR,
        "disk_hot_count_limit": DEFAULT_DISK_HOT_COUNT_LIMIT,
        "disk_hot_cost_limit_mb": DEFAULT_DISK_HOT_COST_LIMIT_MB,
        "thumbnail_quality": DEFAULT_THUMBNAIL_QUALITY,
        "max_photo_bytes": DEFAULT_MAX_PHOTO_BYTES,
        "min_quality": DEFAULT_MIN_QUALITY,
        "max_quality": DEFAULT_MAX_QUALITY,
        "search_iterations": DEFAULT_SEARCH_ITERATIONS,
        "max_photo_dimension": DEFAULT_MAX_PHOTO_DIMENSION,
        "display_scale": DEFAULT_DISPLAY_SCALE,
        "thumbnail_sizes": [list(size) for size in DEFAULT_THUMBNAIL_SIZES],
        "log_level": DEFAULT_LOG_LEVEL,
    }
