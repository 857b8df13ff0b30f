"""
Single-channel mask raster with paint primitives.

A MaskSurface is an off-screen "L" mode Pillow image the same size as the
source image. Alpha 0 means "not redacted", anything above 0 means
"redacted". Paint primitives always write full opacity, so in practice a
mask is binary.

Every paint method takes image-space coordinates and returns the Rect it
may have touched (before any margin), or None when nothing was painted.
Ellipse outlines include their right and bottom edge pixels, so those
rectangles extend one pixel past the given corners.

Example:
    >>> mask = MaskSurface(200, 100)
    >>> mask.paint_rectangle(10, 10, 50, 30)
    Rect(x=10, y=10, width=40, height=20)
    >>> mask.is_empty()
    False
"""

from typing import Any, Optional

import numpy as np

from BR_Libs.constants import (
    BOUNDS_SAMPLE_STRIDE,
    MASK_MODE,
    MASK_OPAQUE,
    MASK_TRANSPARENT,
)
from BR_Libs.errors import ContextUnavailableError
from BR_Libs.ImageEditingLib.region_set import Rect
from BR_Libs.pillow_compat import Image, ImageChops, ImageDraw


class MaskSurface:
    """Mutable alpha raster backed by a Pillow "L" image."""

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ContextUnavailableError(
                f"Cannot allocate a {width}x{height} mask surface"
            )
        self._image = Image.new(MASK_MODE, (int(width), int(height)), MASK_TRANSPARENT)

    @classmethod
    def from_image(cls, image: Any) -> "MaskSurface":
        """
        Build a mask from an existing image.

        RGBA and LA images contribute their alpha channel, anything else is
        converted to grayscale.
        """
        if not hasattr(image, "mode"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")

        if image.mode in ("RGBA", "LA"):
            channel = image.getchannel("A")
        else:
            channel = image.convert(MASK_MODE)

        mask = cls(channel.width, channel.height)
        mask._image = channel.copy()
        return mask

    @property
    def width(self) -> int:
        return self._image.width

    @property
    def height(self) -> int:
        return self._image.height

    @property
    def size(self):
        return self._image.size

    @property
    def image(self) -> Any:
        """The backing "L" image. Treat as read-only."""
        return self._image

    # ------------------------------------------------------------------
    # Paint primitives
    # ------------------------------------------------------------------

    def clear(self) -> None:
        self._image.paste(MASK_TRANSPARENT, (0, 0, self.width, self.height))

    def paint_dot(self, x: float, y: float, brush_diameter: float) -> Optional[Rect]:
        """Fill a circle of radius brush_diameter / 2 centred on (x, y)."""
        radius = brush_diameter / 2.0
        if radius <= 0:
            return None

        draw = ImageDraw.Draw(self._image)
        draw.ellipse([x - radius, y - radius, x + radius, y + radius], fill=MASK_OPAQUE)
        return Rect.from_corners(x - radius, y - radius, x + radius + 1, y + radius + 1)

    def paint_stroke(
        self,
        x1: float,
        y1: float,
        x2: float,
        y2: float,
        brush_diameter: float,
    ) -> Optional[Rect]:
        """Fill a round-capped line of width brush_diameter between two points."""
        radius = brush_diameter / 2.0
        if radius <= 0:
            return None

        draw = ImageDraw.Draw(self._image)
        line_width = max(1, int(round(brush_diameter)))
        draw.line([(x1, y1), (x2, y2)], fill=MASK_OPAQUE, width=line_width)

        # Round caps; they also fill the joints between consecutive segments
        for cx, cy in ((x1, y1), (x2, y2)):
            draw.ellipse([cx - radius, cy - radius, cx + radius, cy + radius], fill=MASK_OPAQUE)

        return Rect.from_corners(
            min(x1, x2) - radius,
            min(y1, y2) - radius,
            max(x1, x2) + radius + 1,
            max(y1, y2) + radius + 1,
        )

    def paint_rectangle(self, x1: float, y1: float, x2: float, y2: float) -> Optional[Rect]:
        """Fill the axis-aligned rectangle spanned by two corners."""
        if x1 == x2 or y1 == y2:
            return None

        rect = Rect.from_corners(x1, y1, x2, y2)
        draw = ImageDraw.Draw(self._image)
        draw.rectangle([rect.x, rect.y, rect.right - 1, rect.bottom - 1], fill=MASK_OPAQUE)
        return rect

    def paint_ellipse(self, x1: float, y1: float, x2: float, y2: float) -> Optional[Rect]:
        """Fill the ellipse inscribed in the box spanned by two corners."""
        if x1 == x2 or y1 == y2:
            return None

        left, right = min(x1, x2), max(x1, x2)
        top, bottom = min(y1, y2), max(y1, y2)
        draw = ImageDraw.Draw(self._image)
        draw.ellipse([left, top, right, bottom], fill=MASK_OPAQUE)
        return Rect.from_corners(left, top, right + 1, bottom + 1)

    def composite_over(self, other: "MaskSurface") -> None:
        """
        Alpha-over `other` onto this mask.

        For alpha values "screen" is exactly source-over:
        a_out = a_src + a_dst * (1 - a_src). Painted areas are never removed.
        """
        if other.size != self.size:
            raise ValueError(f"Mask size mismatch: {other.size} vs {self.size}")
        self._image = ImageChops.screen(self._image, other._image)

    def covers(self, other: "MaskSurface") -> bool:
        """True if compositing `other` over this mask would change nothing."""
        if other.size != self.size:
            raise ValueError(f"Mask size mismatch: {other.size} vs {self.size}")
        merged = ImageChops.screen(self._image, other._image)
        return ImageChops.difference(merged, self._image).getbbox() is None

    # ------------------------------------------------------------------
    # Read-back
    # ------------------------------------------------------------------

    def is_empty(self) -> bool:
        """Exact scan: True when no pixel has alpha > 0."""
        return self._image.getbbox() is None

    def visible_bounds(self, stride: int = 1) -> Optional[Rect]:
        """
        Tight rectangle around all pixels with alpha > 0.

        With stride > 1 the mask is reduced to stride x stride blocks first
        and whole blocks are reported, so the result may include up to
        stride - 1 extra pixels per side but never misses a painted pixel.

        Returns:
            Rect, or None when the mask is empty
        """
        if stride <= 1:
            box = self._image.getbbox()
            return Rect.from_box(box) if box else None

        arr = np.asarray(self._image)
        height, width = arr.shape
        pad_h = -height % stride
        pad_w = -width % stride
        if pad_h or pad_w:
            arr = np.pad(arr, ((0, pad_h), (0, pad_w)))

        blocks = arr.reshape(
            arr.shape[0] // stride, stride, arr.shape[1] // stride, stride
        ).max(axis=(1, 3))

        rows = np.flatnonzero(blocks.any(axis=1))
        cols = np.flatnonzero(blocks.any(axis=0))
        if rows.size == 0:
            return None

        top = int(rows[0]) * stride
        left = int(cols[0]) * stride
        bottom = min(height, (int(rows[-1]) + 1) * stride)
        right = min(width, (int(cols[-1]) + 1) * stride)
        return Rect(left, top, right - left, bottom - top)

    def sampled_bounds(self) -> Optional[Rect]:
        return self.visible_bounds(stride=BOUNDS_SAMPLE_STRIDE)

    def coverage(self) -> int:
        """Number of redacted pixels."""
        return int(np.count_nonzero(np.asarray(self._image)))

    def alpha_array(self) -> np.ndarray:
        """Copy of the mask as a (height, width) uint8 array."""
        return np.array(self._image, dtype=np.uint8)

    def tobytes(self) -> bytes:
        return self._image.tobytes()

    def same_content(self, other: "MaskSurface") -> bool:
        return self.size == other.size and self.tobytes() == other.tobytes()

    def copy(self) -> "MaskSurface":
        """Deep, independent copy."""
        clone = MaskSurface.__new__(MaskSurface)
        clone._image = self._image.copy()
        return clone

    def __repr__(self) -> str:
        return f"MaskSurface({self.width}x{self.height}, coverage={self.coverage()})"
