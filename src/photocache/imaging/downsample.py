"""Source-level downsampling of encoded image bytes."""

from __future__ import annotations

import io
import logging
import math

from PIL import Image, ImageOps

from photocache.errors.exceptions import DecodeError
from photocache.types import TargetSize

logger = logging.getLogger(__name__)

_DISPLAY_MODES = {"RGB", "RGBA", "L", "LA"}


def downsample(
    image_bytes: bytes,
    target: TargetSize,
    cache_key: str | None = None,
) -> Image.Image:
    """Decode *image_bytes* straight to a bitmap bounded by *target*.

    The longest side is limited to ``target.max_pixel_dimension``; aspect
    ratio is preserved and small sources are never upscaled. ``Image.open``
    only reads the header, and ``draft()`` makes the JPEG decoder emit a
    DCT-scaled image, so a large photo is never materialised at full
    resolution. EXIF orientation is applied to the result.

    Raises DecodeError if the bytes are not a readable image.
    """
    max_px = target.max_pixel_dimension
    if max_px <= 0:
        raise DecodeError(f"Target {target} has no pixels", cache_key=cache_key)

    try:
        img = Image.open(io.BytesIO(image_bytes))
        width, height = img.size
        ratio = max_px / max(width, height)
        if ratio < 1:
            img.draft(None, (math.ceil(width * ratio), math.ceil(height * ratio)))
        img.thumbnail((max_px, max_px), Image.Resampling.LANCZOS)
        img = ImageOps.exif_transpose(img)
        if img.mode not in _DISPLAY_MODES:
            img = img.convert("RGBA" if _has_alpha(img) else "RGB")
    except (OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(
            f"Cannot decode image ({len(image_bytes)} bytes): {e}",
            cache_key=cache_key,
            original=e,
        ) from e

    logger.debug(
        "Downsampled %dx%d -> %dx%d (%s)",
        width, height, img.width, img.height, cache_key or "uncached",
    )
    return img


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("PA", "RGBa", "La") or "transparency" in img.info
