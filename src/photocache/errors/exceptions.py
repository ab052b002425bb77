"""Custom exception hierarchy for photocache.

A cache miss is never an exception; lookups return ``None``.
"""

from __future__ import annotations

from typing import Any


class PhotoCacheError(Exception):
    """Base exception for all photocache errors."""

    def __init__(self, message: str = "", **kwargs: Any) -> None:
        super().__init__(message)
        self.message = message


class DecodeError(PhotoCacheError):
    """Source bytes are not a decodable image.

    Surfaced to the display caller, which should render a placeholder.
    """

    def __init__(
        self,
        message: str = "",
        cache_key: str | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.cache_key = cache_key
        self.original = original


class EncodeError(PhotoCacheError):
    """No attempted quality or format produced any encoded output.

    Distinct from exceeding the byte budget, which falls back to the
    minimum quality instead of failing. The enclosing save must abort.
    """

    def __init__(
        self,
        message: str = "",
        attempts: int = 0,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.original = original


class StorageError(PhotoCacheError):
    """Disk tier I/O failure.

    Raised by ``remove_all`` and the stats queries, including on a closed
    cache. Reads degrade to a miss and writes are logged and dropped.
    """

    def __init__(
        self,
        message: str = "",
        operation: str = "unknown",
        original: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.operation = operation
        self.original = original
