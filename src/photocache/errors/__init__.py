"""Error handling: decode, encode and storage failures."""

from photocache.errors.exceptions import (
    DecodeError,
    EncodeError,
    PhotoCacheError,
    StorageError,
)

__all__ = [
    "PhotoCacheError",
    "DecodeError",
    "EncodeError",
    "StorageError",
]
