"""Keeps both cache tiers consistent with photo deletions.

Memory entries are dropped synchronously, before the UI can re-render a
stale bitmap. Disk entries are reconstructed from the known thumbnail sizes
and removed on the disk tier's worker without the caller waiting. Sizes not
in the known list are left to the disk tier's capacity sweep.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from collections.abc import Iterable, Sequence
from concurrent.futures import Future
from concurrent.futures import wait as wait_futures
from typing import Protocol

from photocache.cache.disk import DiskImageCache
from photocache.cache.keys import entity_key_prefix, keys_for_entity
from photocache.cache.memory import MemoryImageCache
from photocache.config.defaults import DEFAULT_DISPLAY_SCALE, DEFAULT_THUMBNAIL_SIZES
from photocache.types import PointSize

logger = logging.getLogger(__name__)


def _as_ids(entity_ids: Iterable[str] | str) -> Iterable[str]:
    # A bare id would otherwise be iterated character by character
    if isinstance(entity_ids, str):
        return [entity_ids]
    return entity_ids


class PhotoStore(Protocol):
    """The primary store that owns photo records."""

    def delete(self, entity_ids: Sequence[str]) -> None: ...

    def commit(self) -> None: ...


class DeletionCoordinator:
    """Evicts cached artifacts of deleted photos from both tiers."""

    def __init__(
        self,
        memory: MemoryImageCache,
        disk: DiskImageCache | None = None,
        known_sizes: Iterable[PointSize] | None = None,
        scale: float = DEFAULT_DISPLAY_SCALE,
    ) -> None:
        self._memory = memory
        self._disk = disk
        self._known_sizes = (
            list(known_sizes)
            if known_sizes is not None
            else [PointSize(width=w, height=h) for w, h in DEFAULT_THUMBNAIL_SIZES]
        )
        self._scale = scale
        self._pending: set[Future[int]] = set()
        self._lock = threading.Lock()

    @property
    def known_sizes(self) -> list[PointSize]:
        return list(self._known_sizes)

    def disk_keys_for(self, entity_id: str, scale: float | None = None) -> list[str]:
        return keys_for_entity(entity_id, self._known_sizes, scale or self._scale)

    def delete_photos(
        self,
        entity_ids: Iterable[str] | str,
        store: PhotoStore,
        scale: float | None = None,
    ) -> Future[int] | None:
        """Delete photos from *store*, commit, then invalidate their cache entries.

        Identifiers are captured before the delete. If the store raises, the
        caches are left untouched and the error propagates.
        """
        ids = [str(entity_id) for entity_id in _as_ids(entity_ids)]
        if not ids:
            return None

        store.delete(ids)
        store.commit()

        future = self.invalidate(ids, scale=scale)
        logger.info("Deleted %d photos, evicted cache for %d ids", len(ids), len(ids))
        return future

    def invalidate(
        self,
        entity_ids: Iterable[str] | str,
        scale: float | None = None,
    ) -> Future[int] | None:
        """Drop cache entries for *entity_ids*.

        Returns the future of the background disk removal, or None when
        there is nothing to remove on disk. Callers are not expected to wait.
        """
        ids = list(dict.fromkeys(_as_ids(entity_ids)))
        if not ids:
            return None

        removed = 0
        for entity_id in ids:
            removed += self._memory.remove_images_with_prefix(entity_key_prefix(entity_id))
        logger.debug("Evicted %d memory entries for %d ids", removed, len(ids))

        if self._disk is None:
            return None

        keys = [key for entity_id in ids for key in self.disk_keys_for(entity_id, scale)]
        future = self._disk.submit_removal(keys)
        with self._lock:
            self._pending.add(future)
        future.add_done_callback(self._forget)
        return future

    async def wait_pending(self) -> None:
        """Wait for every scheduled disk removal (tests, shutdown)."""
        with self._lock:
            futures = list(self._pending)
        if futures:
            await asyncio.gather(*(asyncio.wrap_future(f) for f in futures))

    def join_pending(self, timeout: float | None = None) -> None:
        """Blocking variant of :meth:`wait_pending` for synchronous callers."""
        with self._lock:
            futures = list(self._pending)
        if futures:
            wait_futures(futures, timeout=timeout)

    def _forget(self, future: Future[int]) -> None:
        with self._lock:
            self._pending.discard(future)
