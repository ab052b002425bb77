"""Photo write path: orientation, resizing and budgeted compression.

Used when a captured photo is saved and when previously stored photos are
re-optimised. Errors are raised, not swallowed: a save that cannot produce
an encoded photo must be aborted by the caller.
"""

from __future__ import annotations

import logging

from PIL import Image, ImageOps

from photocache.imaging.compress import compress_to_budget
from photocache.imaging.downsample import downsample
from photocache.types import CompressionResult, TargetSize
from photocache.utils.image import format_file_size

logger = logging.getLogger(__name__)

_MAX_DIMENSION = 1920
_MAX_BYTES = 2_000_000
_OPTIMIZED_THRESHOLD_BYTES = 2_500_000
_NEEDS_OPTIMIZATION_BYTES = 3_000_000


def resize_to_max_dimension(image: Image.Image, max_dimension: int = _MAX_DIMENSION) -> Image.Image:
    """Scale *image* so its longest side is at most *max_dimension*. Never upscales."""
    width, height = image.size
    if width <= max_dimension and height <= max_dimension:
        return image
    if width > height:
        new_size = (max_dimension, max(1, round(max_dimension * height / width)))
    else:
        new_size = (max(1, round(max_dimension * width / height)), max_dimension)
    return image.resize(new_size, Image.Resampling.LANCZOS)


def fix_orientation(image: Image.Image) -> Image.Image:
    """Apply the EXIF orientation tag to the pixels and drop the tag."""
    return ImageOps.exif_transpose(image)


def prepare_image_for_storage(
    image: Image.Image,
    max_bytes: int = _MAX_BYTES,
    max_dimension: int = _MAX_DIMENSION,
    **search_kwargs: float,
) -> CompressionResult:
    """Orient, resize and compress an already decoded photo."""
    optimized = resize_to_max_dimension(fix_orientation(image), max_dimension)
    return compress_to_budget(optimized, max_bytes=max_bytes, **search_kwargs)


def prepare_for_storage(
    image_bytes: bytes,
    max_bytes: int = _MAX_BYTES,
    max_dimension: int = _MAX_DIMENSION,
    **search_kwargs: float,
) -> CompressionResult:
    """Decode, orient, resize and compress encoded photo bytes.

    Decoding is bounded to *max_dimension* at the source.
    Raises DecodeError or EncodeError.
    """
    bounded = downsample(image_bytes, TargetSize(width=max_dimension, height=max_dimension))
    result = compress_to_budget(bounded, max_bytes=max_bytes, **search_kwargs)
    logger.debug(
        "Prepared photo for storage: %s -> %s (quality %.2f)",
        format_file_size(len(image_bytes)),
        format_file_size(result.size_bytes),
        result.quality,
    )
    return result


def needs_optimization(image_bytes: bytes) -> bool:
    """True for stored photos that were saved without compression."""
    return len(image_bytes) > _NEEDS_OPTIMIZATION_BYTES


def optimize_if_needed(image_bytes: bytes, **kwargs: int) -> bytes | None:
    """Re-encode an oversized stored photo.

    Returns the new bytes, or None when the photo is already small enough.
    """
    original_size = len(image_bytes)
    if original_size <= _OPTIMIZED_THRESHOLD_BYTES:
        logger.debug("Photo already optimized (%s), skipping", format_file_size(original_size))
        return None

    result = prepare_for_storage(image_bytes, **kwargs)
    logger.info(
        "Optimized photo: %s -> %s",
        format_file_size(original_size),
        format_file_size(result.size_bytes),
    )
    return result.data
