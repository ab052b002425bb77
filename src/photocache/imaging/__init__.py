"""Imaging: source-level downsampling and storage compression."""

from photocache.imaging.compress import compress_to_budget, encode_jpeg, encode_png
from photocache.imaging.downsample import downsample
from photocache.imaging.storage import (
    fix_orientation,
    needs_optimization,
    optimize_if_needed,
    prepare_for_storage,
    prepare_image_for_storage,
    resize_to_max_dimension,
)

__all__ = [
    "compress_to_budget",
    "downsample",
    "encode_jpeg",
    "encode_png",
    "fix_orientation",
    "needs_optimization",
    "optimize_if_needed",
    "prepare_for_storage",
    "prepare_image_for_storage",
    "resize_to_max_dimension",
]
