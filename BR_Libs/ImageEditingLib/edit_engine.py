"""
Edit Engine for Blur Redactor.

The EditEngine owns everything that belongs to one loaded image or page:
- the source image (RGBA)
- the committed mask (what is redacted) and the scratch mask (the gesture
  currently in progress)
- the dirty-region list of committed changes since the last render
- the BlurCompositor and its cache
- the HistoryStore of committed-mask snapshots

Paint and commit calls made before any source is loaded are ignored, so
callers never need to guard them.

Example:
    >>> engine = EditEngine()
    >>> engine.load_source(Image.new("RGBA", (200, 100), "white"))
    (200, 100)
    >>> engine.paint_rectangle(10, 10, 60, 40, target="scratch")
    Rect(x=10, y=10, width=50, height=30)
    >>> engine.commit_scratch()
    True
    >>> engine.record_history()
    0
    >>> redacted = engine.export_composite(intensity=10, passes=1)
"""

from typing import Any, Iterable, List, Optional, Tuple
import logging

from BR_Libs.constants import (
    BLUR_BACKEND_PIL,
    DEFAULT_HISTORY_CAPACITY,
    DIRTY_REGION_LIMIT,
    DIRTY_REGION_MARGIN,
    TARGET_COMMITTED,
    TARGET_SCRATCH,
    MASK_TARGETS,
    THUMBNAIL_BLUR_RADIUS,
    THUMBNAIL_HEIGHT,
    THUMBNAIL_WIDTH,
)
from BR_Libs.errors import ExportFailedError, InvalidInputError
from BR_Libs.HistoryLib.history_store import HistoryStore
from BR_Libs.ImageEditingLib.blur_compositor import BlurCompositor, mask_layer
from BR_Libs.ImageEditingLib.blur_filter import apply_gaussian_blur
from BR_Libs.ImageEditingLib.mask_surface import MaskSurface
from BR_Libs.ImageEditingLib.region_set import Rect, RegionSet
from BR_Libs.pillow_compat import Image

logger = logging.getLogger(__name__)


class EditEngine:
    """
    Mask editing, blur compositing and history for one source image.

    Attributes:
        history: HistoryStore of committed-mask snapshots
        compositor: BlurCompositor owning the blur cache
    """

    def __init__(
        self,
        history_capacity: int = DEFAULT_HISTORY_CAPACITY,
        high_quality: bool = True,
        blur_backend: str = BLUR_BACKEND_PIL,
        dirty_region_limit: int = DIRTY_REGION_LIMIT,
    ):
        self.history = HistoryStore(capacity=history_capacity)
        self.compositor = BlurCompositor(high_quality=high_quality, backend=blur_backend)
        self._source: Optional[Any] = None
        self._mask: Optional[MaskSurface] = None
        self._scratch: Optional[MaskSurface] = None
        self._dirty = RegionSet(limit=dirty_region_limit)

    # ------------------------------------------------------------------
    # Source
    # ------------------------------------------------------------------

    def load_source(self, image: Any) -> Tuple[int, int]:
        """
        Replace the source image.

        Allocates fresh committed and scratch masks, drops the blur cache
        and empties the history. Nothing is replaced if validation or
        allocation fails.

        Returns:
            (width, height)

        Raises:
            InvalidInputError: If image is missing, not an image, or zero-sized
        """
        if image is None:
            raise InvalidInputError("No image provided")

        if not hasattr(image, "convert") or not hasattr(image, "size"):
            raise InvalidInputError(f"Expected PIL Image, got {type(image)}")

        width, height = image.size
        if width <= 0 or height <= 0:
            raise InvalidInputError(f"Image has no pixels: {width}x{height}")

        source = image.convert("RGBA") if image.mode != "RGBA" else image.copy()
        mask = MaskSurface(width, height)
        scratch = MaskSurface(width, height)

        self._source = source
        self._mask = mask
        self._scratch = scratch
        self._dirty.clear()
        self.compositor.reset()
        self.history.reset()

        logger.info(f"Loaded source image {width}x{height}")
        return width, height

    def has_source(self) -> bool:
        return self._source is not None

    def dimensions(self) -> Tuple[int, int]:
        """(width, height) of the source, (0, 0) when nothing is loaded."""
        if self._source is None:
            return 0, 0
        return self._source.size

    @property
    def source(self) -> Optional[Any]:
        return self._source

    @property
    def committed_mask(self) -> Optional[MaskSurface]:
        return self._mask

    @property
    def scratch_mask(self) -> Optional[MaskSurface]:
        return self._scratch

    @property
    def dirty_regions(self) -> Tuple[Rect, ...]:
        return self._dirty.regions

    # ------------------------------------------------------------------
    # Painting
    # ------------------------------------------------------------------

    def _surface(self, target: str) -> MaskSurface:
        if target == TARGET_COMMITTED:
            return self._mask
        if target == TARGET_SCRATCH:
            return self._scratch
        raise ValueError(f"Unknown mask target: {target}. Valid targets: {', '.join(MASK_TARGETS)}")

    def _mark_dirty(self, rect: Optional[Rect], margin: int = DIRTY_REGION_MARGIN) -> None:
        """Record a committed-mask change and invalidate the blur cache."""
        if rect is None:
            return
        width, height = self.dimensions()
        region = rect.expanded(margin).clamped(width, height)
        if region.is_empty():
            return
        self._dirty.add(region)
        self.compositor.invalidate(region)

    def _paint(self, target: str, painter: str, *args: float) -> Optional[Rect]:
        if self._source is None:
            return None
        surface = self._surface(target)
        rect = getattr(surface, painter)(*args)
        if target == TARGET_COMMITTED:
            self._mark_dirty(rect)
        return rect

    def paint_dot(self, x: float, y: float, brush_diameter: float,
                  target: str = TARGET_COMMITTED) -> Optional[Rect]:
        return self._paint(target, "paint_dot", x, y, brush_diameter)

    def paint_stroke(self, x1: float, y1: float, x2: float, y2: float, brush_diameter: float,
                     target: str = TARGET_COMMITTED) -> Optional[Rect]:
        return self._paint(target, "paint_stroke", x1, y1, x2, y2, brush_diameter)

    def paint_rectangle(self, x1: float, y1: float, x2: float, y2: float,
                        target: str = TARGET_COMMITTED) -> Optional[Rect]:
        return self._paint(target, "paint_rectangle", x1, y1, x2, y2)

    def paint_ellipse(self, x1: float, y1: float, x2: float, y2: float,
                      target: str = TARGET_COMMITTED) -> Optional[Rect]:
        return self._paint(target, "paint_ellipse", x1, y1, x2, y2)

    def clear(self, target: str = TARGET_COMMITTED) -> None:
        """Erase a mask. Clearing the committed mask invalidates the whole cache."""
        if self._source is None:
            return
        self._surface(target).clear()
        if target == TARGET_COMMITTED:
            width, height = self.dimensions()
            self._dirty.add(Rect(0, 0, width, height))
            self.compositor.invalidate()

    def clear_scratch(self) -> None:
        self.clear(TARGET_SCRATCH)

    def scratch_changes_mask(self) -> bool:
        """True if committing the scratch mask now would alter the committed mask."""
        if self._source is None:
            return False
        return not self._mask.covers(self._scratch)

    def commit_scratch(self) -> bool:
        """
        Merge the scratch mask into the committed mask.

        Returns:
            True if the scratch held any paint and was committed
        """
        if self._source is None:
            return False

        bounds = self._scratch.visible_bounds()
        if bounds is None:
            return False

        self._mask.composite_over(self._scratch)
        self._scratch.clear()
        self._mark_dirty(bounds, margin=0)
        logger.debug(f"Committed scratch mask, bounds {bounds}")
        return True

    def apply_regions(self, regions: Iterable[Rect]) -> bool:
        """
        Paint detected regions into the committed mask.

        Returns:
            True if at least one region painted something
        """
        changed = False
        for region in regions:
            if self.paint_rectangle(region.x, region.y, region.right, region.bottom) is not None:
                changed = True
        return changed

    def reset(self) -> None:
        """Clear both masks and the blur cache, keeping the source."""
        if self._source is None:
            return
        self._mask.clear()
        self._scratch.clear()
        self._dirty.clear()
        self.compositor.invalidate()

    def set_high_quality(self, enabled: bool) -> None:
        self.compositor.set_high_quality(enabled)

    # ------------------------------------------------------------------
    # Rendering and export
    # ------------------------------------------------------------------

    def render(
        self,
        target: Any,
        intensity: float,
        passes: int,
        scale: float = 1.0,
        offset_x: float = 0.0,
        offset_y: float = 0.0,
    ) -> Any:
        """
        Composite the current state into a viewport image.

        Does nothing without a source. Clears the dirty-region list.
        """
        if self._source is None:
            return target

        self.compositor.render(
            target,
            self._source,
            self._mask,
            self._scratch,
            intensity,
            passes,
            scale,
            offset_x,
            offset_y,
        )
        self._dirty.clear()
        return target

    def export_composite(self, intensity: float, passes: int) -> Any:
        """
        Full-resolution redacted image, without the scratch overlay.

        Raises:
            ExportFailedError: If no source is loaded or compositing fails
        """
        if self._source is None:
            raise ExportFailedError("No source image loaded")

        try:
            return self.compositor.export(self._source, self._mask, intensity, passes)
        except (ValueError, OSError, MemoryError) as e:
            raise ExportFailedError(f"Could not build composite: {e}") from e

    def create_thumbnail(self, width: int = THUMBNAIL_WIDTH, height: int = THUMBNAIL_HEIGHT) -> Any:
        """
        Small preview of the source with the committed mask blurred in.

        The source is letterboxed into a width x height box and a lightly
        blurred copy shows through the scaled mask.
        """
        thumbnail = Image.new("RGBA", (width, height), (0, 0, 0, 0))
        if self._source is None:
            return thumbnail

        source_width, source_height = self._source.size
        scale = min(width / source_width, height / source_height)
        scaled_size = (
            max(1, int(round(source_width * scale))),
            max(1, int(round(source_height * scale))),
        )
        origin = ((width - scaled_size[0]) // 2, (height - scaled_size[1]) // 2)

        small = self._source.resize(scaled_size, Image.Resampling.BILINEAR)
        thumbnail.alpha_composite(small, dest=origin)

        if not self._mask.is_empty():
            small_mask = self._mask.image.resize(scaled_size, Image.Resampling.BILINEAR)
            blurred = apply_gaussian_blur(small, THUMBNAIL_BLUR_RADIUS)
            thumbnail.alpha_composite(mask_layer(blurred, small_mask), dest=origin)

        return thumbnail

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def snapshot(self) -> Optional[MaskSurface]:
        """Independent copy of the committed mask."""
        if self._mask is None:
            return None
        return self._mask.copy()

    def history_push(self, mask: MaskSurface, thumbnail: Optional[Any] = None) -> int:
        return self.history.push(mask, thumbnail)

    def record_history(self) -> int:
        """
        Push the current committed mask and a fresh thumbnail.

        Returns:
            New history position, or -1 when no source is loaded
        """
        if self._source is None:
            return -1
        return self.history.push(self._mask, self.create_thumbnail())

    def _adopt(self, mask: MaskSurface) -> MaskSurface:
        """Make a history snapshot the committed mask."""
        self._mask = mask
        self._scratch.clear()
        width, height = self.dimensions()
        self._dirty.add(Rect(0, 0, width, height))
        self.compositor.invalidate()
        return mask

    def history_undo(self) -> MaskSurface:
        """
        Step back one history entry and adopt its mask.

        Raises:
            NothingToUndo: At the oldest entry or with empty history
        """
        return self._adopt(self.history.undo())

    def history_redo(self) -> MaskSurface:
        """
        Step forward one history entry and adopt its mask.

        Raises:
            NothingToRedo: At the newest entry or with empty history
        """
        return self._adopt(self.history.redo())

    def history_go_to(self, index: int) -> MaskSurface:
        """
        Jump to a history entry and adopt its mask.

        Raises:
            HistoryOutOfRange: If index is not a stored entry
        """
        return self._adopt(self.history.go_to(index))

    def history_reset(self) -> None:
        self.history.reset()

    def history_thumbnails(self) -> List[Any]:
        return self.history.thumbnails
