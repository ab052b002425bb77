"""Cache key construction.

Keys have the form ``<entity>_downsample_<w>x<h>`` with pixel dimensions, so
every artifact of one entity shares the ``<entity>_downsample_`` prefix and
can be found without a reverse index.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable

from photocache.types import PointSize, TargetSize

_DOWNSAMPLE_MARKER = "_downsample_"


def make_cache_key(base: str, target: TargetSize) -> str:
    """Build the key for *base* rendered at *target* (scale already applied)."""
    return f"{base}{_DOWNSAMPLE_MARKER}{target.pixel_width}x{target.pixel_height}"


def entity_key_prefix(entity_id: str) -> str:
    """Prefix shared by every key of one entity.

    Includes the marker so that ``photo1`` does not match ``photo10``.
    """
    return f"{entity_id}{_DOWNSAMPLE_MARKER}"


def content_key_base(image_bytes: bytes) -> str:
    """Key base for images that have no owning entity identifier."""
    return f"image_{hash_image(image_bytes)}"


def keys_for_entity(entity_id: str, sizes: Iterable[PointSize], scale: float) -> list[str]:
    """Reconstruct the key of every known size variant of one entity."""
    return [make_cache_key(entity_id, size.at_scale(scale)) for size in sizes]


def hash_image(image_bytes: bytes) -> str:
    """Hash image bytes for cache key use."""
    return hashlib.sha256(image_bytes).hexdigest()
