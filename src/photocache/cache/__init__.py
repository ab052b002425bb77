"""Cache subsystem: two tiers (memory and disk) with entity-prefixed keys."""

from photocache.cache.disk import DiskImageCache
from photocache.cache.keys import (
    content_key_base,
    entity_key_prefix,
    hash_image,
    keys_for_entity,
    make_cache_key,
)
from photocache.cache.memory import MemoryImageCache
from photocache.cache.stats import CacheStats, MemoryCacheStats, image_cost

__all__ = [
    "DiskImageCache",
    "MemoryImageCache",
    "CacheStats",
    "MemoryCacheStats",
    "content_key_base",
    "entity_key_prefix",
    "hash_image",
    "image_cost",
    "keys_for_entity",
    "make_cache_key",
]
