"""Tests for the photo write path."""

import io

import numpy as np
import pytest
from PIL import Image

from photocache.errors.exceptions import DecodeError
from photocache.imaging.storage import (
    fix_orientation,
    needs_optimization,
    optimize_if_needed,
    prepare_for_storage,
    prepare_image_for_storage,
    resize_to_max_dimension,
)


def _make_noisy_png(width: int, height: int) -> bytes:
    rng = np.random.default_rng(3)
    arr = rng.integers(0, 256, (height, width, 3), dtype=np.uint8)
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()


class TestResizeToMaxDimension:
    def test_landscape(self):
        img = resize_to_max_dimension(Image.new("RGB", (4000, 3000)))
        assert img.size == (1920, 1440)

    def test_portrait(self):
        img = resize_to_max_dimension(Image.new("RGB", (3000, 4000)))
        assert img.size == (1440, 1920)

    def test_small_image_untouched(self):
        original = Image.new("RGB", (800, 600))
        assert resize_to_max_dimension(original) is original

    def test_custom_bound(self):
        img = resize_to_max_dimension(Image.new("RGB", (1000, 500)), max_dimension=100)
        assert img.size == (100, 50)


class TestFixOrientation:
    def test_rotates_by_exif(self):
        img = Image.new("RGB", (30, 10))
        exif = img.getexif()
        exif[0x0112] = 8
        buf = io.BytesIO()
        img.save(buf, format="JPEG", exif=exif.tobytes())
        fixed = fix_orientation(Image.open(io.BytesIO(buf.getvalue())))
        assert fixed.size == (10, 30)

    def test_no_exif_unchanged(self):
        img = Image.new("RGB", (30, 10))
        assert fix_orientation(img).size == (30, 10)


class TestPrepareForStorage:
    def test_bounds_and_encodes_jpeg(self, jpeg_bytes):
        result = prepare_for_storage(jpeg_bytes, max_dimension=600)
        decoded = Image.open(io.BytesIO(result.data))
        assert decoded.format == "JPEG"
        assert decoded.size == (600, 400)
        assert result.within_budget
        assert result.quality == 0.92

    def test_undecodable_bytes_raise(self):
        with pytest.raises(DecodeError):
            prepare_for_storage(b"garbage")

    def test_decoded_image_variant(self):
        result = prepare_image_for_storage(Image.new("RGB", (3000, 1000)), max_dimension=300)
        assert Image.open(io.BytesIO(result.data)).size == (300, 100)


class TestOptimizeIfNeeded:
    def test_needs_optimization_threshold(self):
        assert needs_optimization(b"x" * 3_000_001)
        assert not needs_optimization(b"x" * 3_000_000)

    def test_small_photo_skipped(self, jpeg_bytes):
        assert optimize_if_needed(jpeg_bytes) is None

    def test_large_photo_recompressed(self):
        data = _make_noisy_png(1000, 1000)
        assert len(data) > 2_500_000
        optimized = optimize_if_needed(data)
        assert optimized is not None
        assert len(optimized) <= 2_000_000
        assert Image.open(io.BytesIO(optimized)).format == "JPEG"
