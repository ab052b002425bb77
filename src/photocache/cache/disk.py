"""L2 disk cache backed by SQLite.

Every SQLite call runs on one dedicated worker thread. Operations are
therefore applied in submission order, and the running size total needs no
further locking. The public API is async and awaits that worker.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, TypeVar

from photocache.cache.memory import MemoryImageCache
from photocache.cache.stats import DiskCacheEntry
from photocache.errors.exceptions import StorageError

logger = logging.getLogger(__name__)

T = TypeVar("T")

_DEFAULT_BUDGET_BYTES = 64 * 1024 * 1024
_DEFAULT_DIR = Path.home() / ".photocache" / "images"
_DB_NAME = "cache.db"
_HOT_COUNT_LIMIT = 300
_HOT_COST_LIMIT_BYTES = 64 * 1024 * 1024
_DELETE_BATCH = 500


class DiskImageCache:
    """Persistent, size-bounded cache of encoded image bytes.

    Reads and writes go through a small in-process LRU of raw bytes first.
    Capacity is enforced after every write by evicting the entries with the
    oldest access time until the total is back under budget.
    """

    def __init__(
        self,
        directory: Path | None = None,
        budget_bytes: int = _DEFAULT_BUDGET_BYTES,
        hot_count_limit: int = _HOT_COUNT_LIMIT,
        hot_cost_limit_bytes: int = _HOT_COST_LIMIT_BYTES,
    ) -> None:
        self._directory = directory or _DEFAULT_DIR
        self._db_path = self._directory / _DB_NAME
        self._budget_bytes = budget_bytes
        self._hot = MemoryImageCache(
            count_limit=hot_count_limit,
            cost_limit_bytes=hot_cost_limit_bytes,
            cost_fn=len,
            name="disk data",
        )
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="photocache-disk")
        self._conn: sqlite3.Connection | None = None
        self._total_bytes = 0
        self._closed = False

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def budget_bytes(self) -> int:
        return self._budget_bytes

    async def data(self, key: str) -> bytes | None:
        """Return the stored bytes for *key*, or ``None`` on a miss or read failure."""
        if self._closed:
            return None
        cached = self._hot.get(key)
        if cached is not None:
            self._executor.submit(self._touch, key)
            return cached
        try:
            return await self._run(self._read, key)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Disk cache read failed for %s: %s", key, e)
            return None

    async def set_data(self, data: bytes, key: str) -> None:
        """Store *data* under *key*. Failures are logged, never raised."""
        if self._closed:
            logger.debug("Disk cache closed; not storing %s", key)
            return
        try:
            await self._run(self._write, key, data)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Disk cache write failed for %s: %s", key, e)

    async def remove_images(self, keys: Iterable[str]) -> int:
        """Delete exactly *keys*; unknown keys are ignored. Returns count removed."""
        return await asyncio.wrap_future(self.submit_removal(keys))

    def submit_removal(self, keys: Iterable[str]) -> Future[int]:
        """Queue deletion of *keys* without waiting; usable outside an event loop.

        The future resolves to the count removed and never raises for
        storage failures.
        """
        if self._closed:
            done: Future[int] = Future()
            done.set_result(0)
            return done
        return self._executor.submit(self._delete_logged, list(keys))

    async def remove_all(self) -> None:
        """Delete every entry.

        Raises StorageError if the store cannot be cleared.
        """
        try:
            await self._run(self._clear)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(
                f"Failed to clear disk cache at {self._directory}: {e}",
                operation="remove_all",
                original=e,
            ) from e
        logger.debug("Disk cache cleared")

    async def enforce_capacity(self) -> int:
        """Run the capacity sweep now. Returns the number of entries evicted."""
        if self._closed:
            return 0
        try:
            return await self._run(self._sweep)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Disk cache capacity sweep failed: %s", e)
            return 0

    async def entry_count(self) -> int:
        return await self._query(self._count)

    async def size_bytes(self) -> int:
        return await self._query(self._size)

    async def entries(self) -> list[DiskCacheEntry]:
        """Index rows ordered from least to most recently accessed."""
        return await self._query(self._list_entries)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.submit(self._close_connection).result()
        self._executor.shutdown(wait=True)

    # ── Worker-thread side ──

    async def _run(self, fn: Callable[..., T], *args: Any) -> T:
        if self._closed:
            raise StorageError(
                f"Disk cache at {self._directory} is closed",
                operation=fn.__name__.lstrip("_"),
            )
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, fn, *args)

    async def _query(self, fn: Callable[[], T]) -> T:
        try:
            return await self._run(fn)
        except (sqlite3.Error, OSError) as e:
            raise StorageError(
                f"Failed to query disk cache at {self._directory}: {e}",
                operation=fn.__name__.lstrip("_"),
                original=e,
            ) from e

    def _connection(self) -> sqlite3.Connection:
        if self._conn is None:
            self._directory.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(str(self._db_path))
            conn.execute("""
                CREATE TABLE IF NOT EXISTS images (
                    key TEXT PRIMARY KEY,
                    data BLOB NOT NULL,
                    size_bytes INTEGER NOT NULL,
                    created_at REAL,
                    last_accessed REAL
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_images_last_accessed ON images (last_accessed)"
            )
            conn.commit()
            row = conn.execute("SELECT COALESCE(SUM(size_bytes), 0) FROM images").fetchone()
            self._total_bytes = row[0]
            self._conn = conn
        return self._conn

    def _read(self, key: str) -> bytes | None:
        conn = self._connection()
        row = conn.execute("SELECT data FROM images WHERE key = ?", (key,)).fetchone()
        if row is None:
            return None
        conn.execute(
            "UPDATE images SET last_accessed = ? WHERE key = ?",
            (time.time(), key),
        )
        conn.commit()
        data = bytes(row[0])
        self._hot.put(key, data)
        return data

    def _touch(self, key: str) -> None:
        try:
            conn = self._connection()
            conn.execute(
                "UPDATE images SET last_accessed = ? WHERE key = ?",
                (time.time(), key),
            )
            conn.commit()
        except (sqlite3.Error, OSError) as e:
            logger.debug("Disk cache touch failed for %s: %s", key, e)

    def _write(self, key: str, data: bytes) -> None:
        conn = self._connection()
        now = time.time()
        row = conn.execute("SELECT size_bytes FROM images WHERE key = ?", (key,)).fetchone()
        previous = row[0] if row else 0
        conn.execute(
            """INSERT OR REPLACE INTO images
               (key, data, size_bytes, created_at, last_accessed)
               VALUES (?, ?, ?, ?, ?)""",
            (key, sqlite3.Binary(data), len(data), now, now),
        )
        conn.commit()
        self._total_bytes += len(data) - previous
        self._hot.put(key, data)
        self._sweep()

    def _delete_logged(self, keys: list[str]) -> int:
        if not keys:
            return 0
        try:
            return self._delete(keys)
        except (sqlite3.Error, OSError) as e:
            logger.warning("Disk cache removal failed for %d keys: %s", len(keys), e)
            return 0

    def _delete(self, keys: list[str]) -> int:
        for key in keys:
            self._hot.remove(key)
        conn = self._connection()
        rows: list[tuple[str, int]] = []
        # Stay under SQLite's bound-parameter limit
        for start in range(0, len(keys), _DELETE_BATCH):
            batch = keys[start:start + _DELETE_BATCH]
            placeholders = ",".join("?" * len(batch))
            rows.extend(conn.execute(
                f"SELECT key, size_bytes FROM images WHERE key IN ({placeholders})", batch
            ).fetchall())
        if not rows:
            return 0
        conn.executemany("DELETE FROM images WHERE key = ?", [(r[0],) for r in rows])
        conn.commit()
        self._total_bytes -= sum(r[1] for r in rows)
        logger.debug("Removed %d entries from disk cache", len(rows))
        return len(rows)

    def _clear(self) -> None:
        self._hot.remove_all()
        conn = self._connection()
        conn.execute("DELETE FROM images")
        conn.commit()
        self._total_bytes = 0

    def _sweep(self) -> int:
        if self._total_bytes <= self._budget_bytes:
            return 0
        conn = self._connection()
        excess = self._total_bytes - self._budget_bytes
        victims: list[tuple[str, int]] = []
        freed = 0
        rows = conn.execute(
            "SELECT key, size_bytes FROM images ORDER BY last_accessed ASC, rowid ASC"
        ).fetchall()
        for key, size in rows:
            if freed >= excess:
                break
            victims.append((key, size))
            freed += size
        conn.executemany("DELETE FROM images WHERE key = ?", [(k,) for k, _ in victims])
        conn.commit()
        self._total_bytes -= freed
        for key, _ in victims:
            self._hot.remove(key)
        logger.debug(
            "Disk cache over budget; evicted %d entries (%d bytes)", len(victims), freed
        )
        return len(victims)

    def _size(self) -> int:
        self._connection()
        return self._total_bytes

    def _count(self) -> int:
        row = self._connection().execute("SELECT COUNT(*) FROM images").fetchone()
        return row[0]

    def _list_entries(self) -> list[DiskCacheEntry]:
        rows = self._connection().execute(
            """SELECT key, size_bytes, created_at, last_accessed FROM images
               ORDER BY last_accessed ASC, rowid ASC"""
        ).fetchall()
        return [
            DiskCacheEntry(key=r[0], size_bytes=r[1], created_at=r[2], last_accessed=r[3])
            for r in rows
        ]

    def _close_connection(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None
