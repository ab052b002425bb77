"""Encoding helpers and the byte-budget quality search."""

from __future__ import annotations

import io
import logging
from collections.abc import Callable

from PIL import Image

from photocache.errors.exceptions import EncodeError
from photocache.types import CompressionResult

logger = logging.getLogger(__name__)

Encoder = Callable[[Image.Image, float], bytes]

_MAX_PIL_JPEG_QUALITY = 95


def encode_jpeg(image: Image.Image, quality: float) -> bytes:
    """Encode *image* as JPEG; *quality* is on a 0-1 scale."""
    buf = io.BytesIO()
    _flatten(image).save(buf, format="JPEG", quality=_pil_quality(quality), optimize=True)
    return buf.getvalue()


def encode_png(image: Image.Image) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def compress_to_budget(
    image: Image.Image,
    max_bytes: int = 2_000_000,
    min_quality: float = 0.45,
    max_quality: float = 0.92,
    iterations: int = 7,
    encoder: Encoder = encode_jpeg,
) -> CompressionResult:
    """Find the highest quality whose encoding fits in *max_bytes*.

    ``max_quality`` is tried first and returned if it fits. Otherwise
    ``min_quality`` is tried; if even that is over budget it is returned
    as is (``within_budget=False``). Between the two a binary search runs
    for *iterations* steps, keeping the best fitting result.

    Encode attempts that raise are skipped. If none produced bytes a PNG
    encode is tried, and EncodeError is raised if that fails too.
    """
    attempts = 0
    last_error: Exception | None = None

    def attempt(quality: float) -> bytes | None:
        nonlocal attempts, last_error
        attempts += 1
        try:
            return encoder(image, quality)
        except (OSError, ValueError) as e:
            last_error = e
            logger.debug("Encode at quality %.3f failed: %s", quality, e)
            return None

    top = attempt(max_quality)
    if top is not None and len(top) <= max_bytes:
        return CompressionResult(data=top, quality=max_quality, attempts=attempts)

    floor = attempt(min_quality)
    if floor is not None and len(floor) > max_bytes:
        logger.info(
            "Minimum quality %.2f still over budget (%d > %d bytes)",
            min_quality, len(floor), max_bytes,
        )
        return CompressionResult(
            data=floor, quality=min_quality, within_budget=False, attempts=attempts
        )

    best: tuple[float, bytes] | None = (min_quality, floor) if floor is not None else None
    lowest_over: tuple[float, bytes] | None = (max_quality, top) if top is not None else None
    lo, hi = min_quality, max_quality
    for _ in range(iterations):
        mid = (lo + hi) / 2
        data = attempt(mid)
        if data is not None and len(data) <= max_bytes:
            best = (mid, data)
            lo = mid
        else:
            if data is not None:
                lowest_over = (mid, data)
            hi = mid

    if best is not None:
        quality, data = best
        logger.debug(
            "Compressed to %d bytes at quality %.3f after %d attempts", len(data), quality, attempts
        )
        return CompressionResult(data=data, quality=quality, attempts=attempts)

    if lowest_over is not None:
        quality, data = lowest_over
        return CompressionResult(
            data=data, quality=quality, within_budget=False, attempts=attempts
        )

    attempts += 1
    try:
        data = encode_png(image)
    except (OSError, ValueError) as e:
        raise EncodeError(
            f"No encoding succeeded after {attempts} attempts: {e}",
            attempts=attempts,
            original=e,
        ) from e
    logger.warning("JPEG encoding failed (%s); stored as PNG", last_error)
    return CompressionResult(
        data=data, quality=1.0, within_budget=len(data) <= max_bytes, attempts=attempts
    )


def _pil_quality(quality: float) -> int:
    return max(1, min(_MAX_PIL_JPEG_QUALITY, round(quality * 100)))


def _flatten(image: Image.Image) -> Image.Image:
    """JPEG has no alpha; composite transparent images onto white."""
    if image.mode in ("RGB", "L"):
        return image
    if image.mode == "P":
        image = image.convert("RGBA")
    if image.mode in ("RGBA", "LA"):
        background = Image.new("RGB", image.size, (255, 255, 255))
        background.paste(image.convert("RGBA"), mask=image.convert("RGBA").getchannel("A"))
        return background
    return image.convert("RGB")
