"""Image loading and inspection utilities."""

from __future__ import annotations

from pathlib import Path

from photocache.types import ImageFormat

_SUPPORTED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".heic", ".tiff", ".tif", ".gif", ".bmp", ".webp"}
_MAX_IMAGE_SIZE_BYTES = 50 * 1024 * 1024  # 50 MB

_MAGIC_BYTES: dict[int, ImageFormat] = {
    0xFF: ImageFormat.JPEG,
    0x89: ImageFormat.PNG,
    0x47: ImageFormat.GIF,
    0x49: ImageFormat.TIFF,
    0x4D: ImageFormat.TIFF,
}


def load_image(path: str | Path) -> bytes:
    """Load an image file and return raw bytes."""
    path = Path(path)
    _validate_path(path)
    return path.read_bytes()


def detect_format(image_bytes: bytes) -> ImageFormat | None:
    """Guess the container format from the first byte."""
    if not image_bytes:
        return None
    return _MAGIC_BYTES.get(image_bytes[0])


def format_file_size(num_bytes: int) -> str:
    """Human-readable size, e.g. ``"1.5 MB"``."""
    if num_bytes < 1000 * 1000:
        return f"{num_bytes / 1000:.0f} KB"
    return f"{num_bytes / (1000 * 1000):.1f} MB"


def _validate_path(path: Path) -> None:
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")
    if path.is_symlink():
        raise ValueError(f"Symlinks not allowed: {path}")
    if path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ValueError(f"Unsupported file type: {path.suffix}")
    size = path.stat().st_size
    if size > _MAX_IMAGE_SIZE_BYTES:
        raise ValueError(f"File too large ({size} bytes, max {_MAX_IMAGE_SIZE_BYTES})")
