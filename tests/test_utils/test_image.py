"""Tests for image loading and inspection helpers."""

import pytest

from photocache.types import ImageFormat
from photocache.utils.image import detect_format, format_file_size, load_image


class TestDetectFormat:
    def test_png(self, sample_image_bytes):
        assert detect_format(sample_image_bytes) == ImageFormat.PNG

    def test_jpeg(self, jpeg_bytes):
        assert detect_format(jpeg_bytes) == ImageFormat.JPEG

    def test_gif(self):
        assert detect_format(b"GIF89a") == ImageFormat.GIF

    def test_tiff_both_byte_orders(self):
        assert detect_format(b"II*\x00") == ImageFormat.TIFF
        assert detect_format(b"MM\x00*") == ImageFormat.TIFF

    def test_unknown(self):
        assert detect_format(b"\x00\x01") is None

    def test_empty(self):
        assert detect_format(b"") is None


class TestFormatFileSize:
    def test_kilobytes(self):
        assert format_file_size(250_000) == "250 KB"

    def test_megabytes(self):
        assert format_file_size(1_500_000) == "1.5 MB"

    def test_boundary(self):
        assert format_file_size(1_000_000) == "1.0 MB"


class TestLoadImage:
    def test_reads_bytes(self, tmp_path, jpeg_bytes):
        path = tmp_path / "photo.jpg"
        path.write_bytes(jpeg_bytes)
        assert load_image(path) == jpeg_bytes

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_image(tmp_path / "missing.jpg")

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "notes.txt"
        path.write_text("hello")
        with pytest.raises(ValueError, match="Unsupported"):
            load_image(path)
