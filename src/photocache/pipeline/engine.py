"""Image pipeline: memory tier, then disk tier, then downsampling."""

from __future__ import annotations

import asyncio
import io
import logging

from PIL import Image

from photocache.cache.disk import DiskImageCache
from photocache.cache.keys import content_key_base, make_cache_key
from photocache.cache.memory import MemoryImageCache
from photocache.errors.exceptions import DecodeError
from photocache.imaging.compress import encode_jpeg, encode_png
from photocache.imaging.downsample import downsample
from photocache.pipeline.inflight import InFlightTasks
from photocache.types import TargetSize

logger = logging.getLogger(__name__)

_DEFAULT_DISK_QUALITY = 0.9


def cache_key_for(image_bytes: bytes, target: TargetSize, cache_id: str | None = None) -> str:
    """Key for *image_bytes* at *target*; content-hashed when there is no entity id."""
    base = cache_id if cache_id is not None else content_key_base(image_bytes)
    return make_cache_key(base, target)


class ImagePipeline:
    """Produce display bitmaps for encoded photos, caching both tiers.

    Lookup order: memory → disk → downsample. A downsample result is put in
    memory immediately and written to disk afterwards; a failed disk write
    never fails the lookup.
    """

    def __init__(
        self,
        memory: MemoryImageCache,
        disk: DiskImageCache | None = None,
        disk_quality: float = _DEFAULT_DISK_QUALITY,
    ) -> None:
        self._memory = memory
        self._disk = disk
        self._disk_quality = disk_quality
        self._inflight: InFlightTasks[Image.Image] = InFlightTasks()
        self.memory_hits = 0
        self.disk_hits = 0
        self.downsamples = 0
        self.decode_failures = 0

    @property
    def memory(self) -> MemoryImageCache:
        return self._memory

    @property
    def disk(self) -> DiskImageCache | None:
        return self._disk

    async def image_for(
        self,
        image_bytes: bytes,
        target: TargetSize,
        cache_id: str | None = None,
    ) -> Image.Image:
        """Return a bitmap of *image_bytes* sized for *target*.

        Raises DecodeError when the source bytes cannot be decoded.
        """
        key = cache_key_for(image_bytes, target, cache_id)

        cached = self._memory.get(key)
        if cached is not None:
            self.memory_hits += 1
            return cached

        if self._disk:
            disk_data = await self._disk.data(key)
            if disk_data is not None:
                image = await asyncio.to_thread(_decode_cached, disk_data, key)
                if image is not None:
                    self._memory.put(key, image)
                    self.disk_hits += 1
                    return image

        task, _ = self._inflight.task_for(
            key, lambda: asyncio.create_task(self._produce(image_bytes, target, key))
        )
        # Shielded so one cancelled caller does not cancel the shared work
        return await asyncio.shield(task)

    async def _produce(self, image_bytes: bytes, target: TargetSize, key: str) -> Image.Image:
        """Downsample once and fill both tiers, whichever callers are still waiting."""
        try:
            image = await asyncio.to_thread(downsample, image_bytes, target, key)
        except DecodeError:
            self.decode_failures += 1
            raise
        self.downsamples += 1
        self._memory.put(key, image)
        if self._disk:
            data = await asyncio.to_thread(self._encode_for_disk, image, key)
            if data is not None:
                await self._disk.set_data(data, key)
        return image

    def _encode_for_disk(self, image: Image.Image, key: str) -> bytes | None:
        try:
            return encode_jpeg(image, self._disk_quality)
        except (OSError, ValueError) as e:
            logger.debug("JPEG encode failed for %s, trying PNG: %s", key, e)
        try:
            return encode_png(image)
        except (OSError, ValueError) as e:
            logger.warning("Skipping disk cache for %s; encode failed: %s", key, e)
            return None


def _decode_cached(data: bytes, key: str) -> Image.Image | None:
    try:
        img = Image.open(io.BytesIO(data))
        img.load()
        return img
    except (OSError, ValueError) as e:
        logger.warning("Corrupt disk cache entry %s, treating as miss: %s", key, e)
        return None
