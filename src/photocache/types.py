"""Shared Pydantic models for photocache."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

# ── Enums ──


class ImageFormat(StrEnum):
    JPEG = "JPEG"
    PNG = "PNG"
    GIF = "GIF"
    TIFF = "TIFF"


# ── Geometry ──


class PointSize(BaseModel):
    """A display size in points, before the screen scale is applied."""

    model_config = {"frozen": True}

    width: float = Field(gt=0)
    height: float = Field(gt=0)

    def at_scale(self, scale: float) -> TargetSize:
        return TargetSize(width=self.width, height=self.height, scale=scale)


class TargetSize(BaseModel):
    """A display target: size in points plus the display scale factor."""

    model_config = {"frozen": True}

    width: float = Field(gt=0)
    height: float = Field(gt=0)
    scale: float = Field(default=1.0, gt=0)

    @property
    def pixel_width(self) -> int:
        return int(max(self.width * self.scale, 1))

    @property
    def pixel_height(self) -> int:
        return int(max(self.height * self.scale, 1))

    @property
    def max_pixel_dimension(self) -> int:
        """Longest side in pixels; the bound handed to the thumbnail decoder."""
        return int(max(self.width, self.height) * self.scale)


# ── Results ──


class CompressionResult(BaseModel):
    """Output of the storage compression search."""

    data: bytes
    quality: float
    within_budget: bool = True
    attempts: int = 0

    @property
    def size_bytes(self) -> int:
        return len(self.data)
