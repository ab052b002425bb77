import io
import os

import pytest
from PIL import Image

from photocache.cache.disk import DiskImageCache
from photocache.cache.memory import MemoryImageCache


def _make_image(width: int, height: int, color=(200, 120, 40), mode: str = "RGB") -> Image.Image:
    return Image.new(mode, (width, height), color)


def _encode(image: Image.Image, fmt: str = "JPEG", **params) -> bytes:
    buf = io.BytesIO()
    image.save(buf, format=fmt, **params)
    return buf.getvalue()


@pytest.fixture
def sample_image_bytes():
    """Minimal valid PNG for testing (1x1 white pixel)."""
    import base64
    return base64.b64decode(
        "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR4"
        "nGP4z8BQDwAEgAF/pooBPQAAAABJRU5ErkJggg=="
    )


@pytest.fixture
def jpeg_bytes():
    """A 1200x800 landscape JPEG."""
    return _encode(_make_image(1200, 800), "JPEG", quality=90)


@pytest.fixture
def png_bytes():
    return _encode(_make_image(400, 300, color=(10, 200, 30, 128), mode="RGBA"), "PNG")


@pytest.fixture
def memory_cache():
    return MemoryImageCache(count_limit=50, cost_limit_bytes=100 * 1024 * 1024)


@pytest.fixture
def disk_cache(tmp_path):
    cache = DiskImageCache(directory=tmp_path / "images")
    yield cache
    cache.close()


@pytest.fixture(autouse=True)
def _isolate_config(tmp_path, monkeypatch):
    """Keep the user's config files and PHOTOCACHE_* env vars out of tests."""
    monkeypatch.setattr(
        "photocache.config.hierarchy._GLOBAL_CONFIG_PATH", tmp_path / "home" / "config.yaml"
    )
    for name in list(os.environ):
        if name.startswith("PHOTOCACHE_"):
            monkeypatch.delenv(name)
