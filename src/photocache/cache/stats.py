"""Cache entry and statistics models."""

from __future__ import annotations

import time
from typing import Any

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field

_BYTES_PER_PIXEL = 4  # RGBA
_MB = 1024 * 1024


def image_cost(image: Image.Image) -> int:
    """Approximate resident size of a decoded bitmap."""
    width, height = image.size
    return width * height * _BYTES_PER_PIXEL


class MemoryCacheEntry(BaseModel):
    """A decoded bitmap held by the memory tier."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    key: str
    value: Any
    cost: int = 0
    created_at: float = Field(default_factory=time.time)


class DiskCacheEntry(BaseModel):
    """Index row of one blob in the disk tier."""

    key: str
    size_bytes: int
    created_at: float
    last_accessed: float


class MemoryCacheStats(BaseModel):
    """Snapshot of the memory tier."""

    entries: int = 0
    count_limit: int = 0
    cost_limit_bytes: int = 0
    cost_bytes: int = 0
    hits: int = 0
    misses: int = 0
    least_recently_used: list[str] = Field(default_factory=list)

    @property
    def cost_limit_mb(self) -> float:
        return self.cost_limit_bytes / _MB

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class CacheStats(BaseModel):
    """Aggregate statistics across both tiers and the pipeline."""

    memory: MemoryCacheStats = Field(default_factory=MemoryCacheStats)
    disk_entries: int = 0
    disk_size_bytes: int = 0
    disk_budget_bytes: int = 0
    memory_hits: int = 0
    disk_hits: int = 0
    downsamples: int = 0
    decode_failures: int = 0

    @property
    def disk_size_mb(self) -> float:
        return self.disk_size_bytes / _MB

    @property
    def hit_rate(self) -> float:
        total = self.memory_hits + self.disk_hits + self.downsamples
        return (self.memory_hits + self.disk_hits) / total if total > 0 else 0.0
