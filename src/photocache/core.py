"""Top-level entry point: PhotoCacheService."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import Future
from types import TracebackType

from PIL import Image

from photocache.cache.disk import DiskImageCache
from photocache.cache.memory import MemoryImageCache
from photocache.cache.stats import CacheStats
from photocache.config.schema import CacheSettings
from photocache.deletion import DeletionCoordinator, PhotoStore
from photocache.imaging.storage import prepare_for_storage
from photocache.pipeline.engine import ImagePipeline
from photocache.types import CompressionResult, TargetSize

logger = logging.getLogger(__name__)


class PhotoCacheService:
    """Owns one memory tier, one disk tier and everything that uses them.

    Construct one per process (or per test) and pass it to callers; there is
    no module-level instance.
    """

    def __init__(
        self,
        settings: CacheSettings | None = None,
        memory: MemoryImageCache | None = None,
        disk: DiskImageCache | None = None,
    ) -> None:
        self._settings = settings or CacheSettings()
        s = self._settings
        self._memory = memory or MemoryImageCache(
            count_limit=s.memory_count_limit,
            cost_limit_bytes=s.memory_cost_limit_bytes,
        )
        self._disk = disk or DiskImageCache(
            directory=s.disk_dir,
            budget_bytes=s.disk_budget_bytes,
            hot_count_limit=s.disk_hot_count_limit,
            hot_cost_limit_bytes=s.disk_hot_cost_limit_bytes,
        )
        self._pipeline = ImagePipeline(self._memory, self._disk, disk_quality=s.thumbnail_quality)
        self._coordinator = DeletionCoordinator(
            self._memory,
            self._disk,
            known_sizes=s.thumbnail_sizes,
            scale=s.display_scale,
        )
        logger.debug(
            "PhotoCacheService ready (memory: %d images / %.0fMB, disk: %s, %.0fMB)",
            s.memory_count_limit, s.memory_cost_limit_mb, s.disk_dir, s.disk_budget_mb,
        )

    @property
    def settings(self) -> CacheSettings:
        return self._settings

    @property
    def memory(self) -> MemoryImageCache:
        return self._memory

    @property
    def disk(self) -> DiskImageCache:
        return self._disk

    @property
    def pipeline(self) -> ImagePipeline:
        return self._pipeline

    @property
    def coordinator(self) -> DeletionCoordinator:
        return self._coordinator

    async def image_for(
        self,
        image_bytes: bytes,
        target: TargetSize,
        cache_id: str | None = None,
    ) -> Image.Image:
        """Bitmap of *image_bytes* sized for *target*. Raises DecodeError."""
        return await self._pipeline.image_for(image_bytes, target, cache_id)

    async def thumbnail(
        self,
        image_bytes: bytes,
        width: float,
        height: float,
        cache_id: str | None = None,
        scale: float | None = None,
    ) -> Image.Image:
        """Like :meth:`image_for` with a point size and the configured display scale."""
        target = TargetSize(width=width, height=height, scale=scale or self._settings.display_scale)
        return await self._pipeline.image_for(image_bytes, target, cache_id)

    def invalidate(
        self,
        entity_ids: Iterable[str] | str,
        scale: float | None = None,
    ) -> Future[int] | None:
        return self._coordinator.invalidate(entity_ids, scale=scale)

    def delete_photos(
        self,
        entity_ids: Iterable[str] | str,
        store: PhotoStore,
        scale: float | None = None,
    ) -> Future[int] | None:
        return self._coordinator.delete_photos(entity_ids, store, scale=scale)

    def prepare_for_storage(self, image_bytes: bytes) -> CompressionResult:
        """Compress a captured photo with the configured budget and bounds."""
        s = self._settings
        return prepare_for_storage(
            image_bytes,
            max_bytes=s.max_photo_bytes,
            max_dimension=s.max_photo_dimension,
            min_quality=s.min_quality,
            max_quality=s.max_quality,
            iterations=s.search_iterations,
        )

    async def clear_all(self) -> None:
        """Empty both tiers. Raises StorageError if the disk tier cannot be cleared."""
        self._memory.remove_all()
        await self._disk.remove_all()

    def handle_memory_pressure(self) -> None:
        self._memory.handle_memory_pressure()

    async def stats(self) -> CacheStats:
        return CacheStats(
            memory=self._memory.stats(),
            disk_entries=await self._disk.entry_count(),
            disk_size_bytes=await self._disk.size_bytes(),
            disk_budget_bytes=self._disk.budget_bytes,
            memory_hits=self._pipeline.memory_hits,
            disk_hits=self._pipeline.disk_hits,
            downsamples=self._pipeline.downsamples,
            decode_failures=self._pipeline.decode_failures,
        )

    def close(self) -> None:
        self._coordinator.join_pending()
        self._disk.close()

    def __enter__(self) -> PhotoCacheService:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
