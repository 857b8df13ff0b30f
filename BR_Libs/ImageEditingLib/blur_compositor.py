"""
Blur compositing with a region-aware cache.

The compositor turns (source image, committed mask) into a "masked layer":
an RGBA raster that shows the blurred source where the mask is painted and
is fully transparent elsewhere. The layer is drawn over the sharp source to
produce the redacted view.

Two things are cached:
- the blurred source, keyed by (intensity, passes, quality, backend)
- the masked layer built from it

A mask change does not touch the blurred source. When the caller reports
which rectangles changed, only those rectangles of the layer are rebuilt;
otherwise the whole layer is re-masked. The cache is an optimization only:
`compose_layer` produces the same pixels without it.

Classes:
    BlurCompositor: Cached blur layer, viewport rendering and export
"""

from typing import Any, Optional, Tuple
import logging

from BR_Libs.constants import (
    BLUR_BACKEND_PIL,
    SCRATCH_HIGHLIGHT_ALPHA,
    SCRATCH_HIGHLIGHT_COLOR,
)
from BR_Libs.errors import ContextUnavailableError
from BR_Libs.ImageEditingLib.blur_filter import BlurSettings, apply_redaction_blur
from BR_Libs.ImageEditingLib.mask_surface import MaskSurface
from BR_Libs.ImageEditingLib.region_set import Rect, RegionSet
from BR_Libs.pillow_compat import Image

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def image_origin(
    viewport_size: Tuple[int, int],
    image_size: Tuple[int, int],
    scale: float,
    offset_x: float,
    offset_y: float,
) -> Tuple[float, float]:
    """
    Top-left corner of the scaled image inside a viewport.

    The image is centred when it is smaller than the viewport, pinned to
    the top-left edge otherwise, then shifted by the pan offset.
    """
    scaled_width = image_size[0] * scale
    scaled_height = image_size[1] * scale
    pos_x = max(0.0, (viewport_size[0] - scaled_width) / 2) + offset_x
    pos_y = max(0.0, (viewport_size[1] - scaled_height) / 2) + offset_y
    return pos_x, pos_y


def mask_layer(blurred: Any, mask: Any) -> Any:
    """Keep `blurred` where `mask` is painted, transparent elsewhere."""
    transparent = Image.new("RGBA", blurred.size, TRANSPARENT)
    return Image.composite(blurred, transparent, mask)


def draw_layer(
    target: Any,
    layer: Any,
    scale: float,
    pos_x: float,
    pos_y: float,
) -> None:
    """Alpha-composite `layer` onto `target` at the given scale and position."""
    scaled_width = max(1, int(round(layer.width * scale)))
    scaled_height = max(1, int(round(layer.height * scale)))
    if (scaled_width, scaled_height) != layer.size:
        layer = layer.resize((scaled_width, scaled_height), Image.Resampling.BILINEAR)

    left = int(round(pos_x))
    top = int(round(pos_y))

    # alpha_composite wants non-negative destinations: crop what is off-screen
    src_left = max(0, -left)
    src_top = max(0, -top)
    dst_left = max(0, left)
    dst_top = max(0, top)
    width = min(scaled_width - src_left, target.width - dst_left)
    height = min(scaled_height - src_top, target.height - dst_top)
    if width <= 0 or height <= 0:
        return

    target.alpha_composite(
        layer,
        dest=(dst_left, dst_top),
        source=(src_left, src_top, src_left + width, src_top + height),
    )


def highlight_overlay(scratch: MaskSurface) -> Any:
    """Semi-transparent solid colour in the shape of the scratch mask."""
    alpha = scratch.image.point(lambda a: int(round(a * SCRATCH_HIGHLIGHT_ALPHA)))
    overlay = Image.new("RGBA", scratch.size, SCRATCH_HIGHLIGHT_COLOR + (0,))
    overlay.putalpha(alpha)
    return overlay


class BlurCompositor:
    """
    Produces and caches the blurred, masked redaction layer.

    Attributes:
        high_quality: Multi-pass blur when True, single pass otherwise
        backend: Gaussian backend passed to the blur filter
        blur_count: Number of times the source was blurred for the cache
        recompute_count: Number of masked-layer rebuilds (full or partial)
    """

    def __init__(self, high_quality: bool = True, backend: str = BLUR_BACKEND_PIL):
        self.high_quality = high_quality
        self.backend = backend
        self.blur_count = 0
        self.recompute_count = 0
        self._blurred: Optional[Any] = None
        self._blurred_key: Optional[tuple] = None
        self._layer: Optional[Any] = None
        self._layer_key: Optional[tuple] = None
        self._full_rebuild = True
        self._pending = RegionSet()

    # ------------------------------------------------------------------
    # Cache state
    # ------------------------------------------------------------------

    @property
    def is_stale(self) -> bool:
        return self._layer is None or self._full_rebuild or bool(self._pending)

    @property
    def cached_params(self) -> Optional[Tuple[float, int]]:
        """(intensity, passes) of the current layer, or None."""
        if self._layer_key is None:
            return None
        return self._layer_key[0], self._layer_key[1]

    def invalidate(self, region: Optional[Rect] = None) -> None:
        """
        Mark the masked layer stale.

        Args:
            region: Rectangle of the mask that changed. None means the whole
                    mask may have changed.
        """
        if region is None or self._layer is None:
            self._full_rebuild = True
            self._pending.clear()
        elif not self._full_rebuild:
            self._pending.add(region)

    def reset(self) -> None:
        """Drop every cached raster (new source image)."""
        self._blurred = None
        self._blurred_key = None
        self._layer = None
        self._layer_key = None
        self._full_rebuild = True
        self._pending.clear()

    def set_high_quality(self, enabled: bool) -> None:
        """Switch blur algorithm; the next render recomputes."""
        self.high_quality = bool(enabled)
        self._blurred = None
        self._blurred_key = None
        self.invalidate()
        logger.debug(f"Blur quality set to {'high' if self.high_quality else 'standard'}")

    def settings_for(self, intensity: float, passes: int) -> BlurSettings:
        return BlurSettings(
            intensity=intensity,
            passes=passes,
            high_quality=self.high_quality,
            backend=self.backend,
        )

    # ------------------------------------------------------------------
    # Layer production
    # ------------------------------------------------------------------

    def _blur(self, source: Any, settings: BlurSettings) -> Any:
        return apply_redaction_blur(
            source,
            settings.intensity,
            settings.passes,
            settings.high_quality,
            settings.backend,
        )

    def compose_layer(self, source: Any, mask: MaskSurface, intensity: float, passes: int) -> Any:
        """Build the masked layer from scratch, bypassing the cache."""
        settings = self.settings_for(intensity, passes)
        return mask_layer(self._blur(source, settings), mask.image)

    def masked_layer(self, source: Any, mask: MaskSurface, intensity: float, passes: int) -> Any:
        """
        Cached masked layer for the given parameters.

        Recomputes the blurred source only when the parameters changed, and
        re-masks only the pending dirty rectangles when possible.
        """
        settings = self.settings_for(intensity, passes)
        key = settings.cache_key()

        if self._blurred is None or self._blurred_key != key:
            self._blurred = self._blur(source, settings)
            self._blurred_key = key
            self.blur_count += 1
            self._full_rebuild = True
            logger.debug(f"Blurred source recomputed for intensity={intensity}, passes={passes}")

        if self._layer is None or self._layer_key != key or self._full_rebuild:
            self._layer = mask_layer(self._blurred, mask.image)
            self._layer_key = key
            self.recompute_count += 1
            logger.debug("Masked blur layer rebuilt")
        elif self._pending:
            for rect in self._pending:
                box = rect.clamped(mask.width, mask.height)
                if box.is_empty():
                    continue
                patch = mask_layer(self._blurred.crop(box.as_box()), mask.image.crop(box.as_box()))
                self._layer.paste(patch, (box.x, box.y))
            self.recompute_count += 1
            logger.debug(f"Masked blur layer patched in {len(self._pending)} regions")

        self._full_rebuild = False
        self._pending.clear()
        return self._layer

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def render(
        self,
        target: Any,
        source: Any,
        mask: MaskSurface,
        scratch: Optional[MaskSurface],
        intensity: float,
        passes: int,
        scale: float = 1.0,
        offset_x: float = 0.0,
        offset_y: float = 0.0,
    ) -> Any:
        """
        Draw the redacted view into `target`.

        Args:
            target: RGBA PIL Image used as the viewport surface
            source: RGBA source image
            mask: Committed mask
            scratch: In-progress gesture mask, drawn as a highlight
            intensity: Total blur strength (>= 0)
            passes: Pass count for high quality mode (>= 1)
            scale: Zoom factor (> 0)
            offset_x, offset_y: Pan offset in viewport pixels

        Returns:
            The target image

        Raises:
            ContextUnavailableError: If target is not an RGBA image
            ValueError: If scale <= 0 or blur parameters are out of range
        """
        if target is None or getattr(target, "mode", None) != "RGBA":
            raise ContextUnavailableError("Render target must be an RGBA image")

        if scale <= 0:
            raise ValueError(f"scale must be > 0, got {scale}")

        target.paste(TRANSPARENT, (0, 0, target.width, target.height))
        pos_x, pos_y = image_origin(target.size, source.size, scale, offset_x, offset_y)

        draw_layer(target, source, scale, pos_x, pos_y)

        if not mask.is_empty():
            layer = self.masked_layer(source, mask, intensity, passes)
            draw_layer(target, layer, scale, pos_x, pos_y)

        if scratch is not None and not scratch.is_empty():
            draw_layer(target, highlight_overlay(scratch), scale, pos_x, pos_y)

        return target

    def export(self, source: Any, mask: MaskSurface, intensity: float, passes: int) -> Any:
        """Full-resolution composite with the blurred regions baked in."""
        result = source.convert("RGBA") if source.mode != "RGBA" else source.copy()
        if not mask.is_empty():
            result.alpha_composite(self.compose_layer(result, mask, intensity, passes))
        return result
