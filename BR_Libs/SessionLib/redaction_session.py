"""
Redaction Session

Headless editor driver. The session receives input events in viewport
coordinates (pointer, wheel, keys, toolbar actions), turns them into
EditEngine calls, records history at the right moments and asks its
RenderScheduler for a redraw. A GUI only has to forward events and call
tick() from a frame timer; tests drive the same object directly.

Gestures:
- brush: a dot on press, then line segments between samples
- rectangle / ellipse: the shape from the press point to the current
  point, redrawn into the scratch mask on every move
- right button, or ctrl + left button: pan

On release the scratch mask is committed. A history entry is recorded only
if the commit changed the committed mask. Leaving the viewport mid-gesture
discards the scratch mask without touching the committed mask or history.
"""

from concurrent.futures import Executor, Future
from pathlib import Path
from typing import Any, Callable, Optional, Tuple, Union
import logging
import threading
import time

from BR_Libs.constants import (
    MAX_SCALE,
    MIN_RENDER_INTERVAL_MS,
    MIN_SCALE,
    TARGET_SCRATCH,
    TOOL_BRUSH,
    TOOL_ELLIPSE,
    TOOL_RECTANGLE,
    WHEEL_ZOOM_STEP,
    ZOOM_STEP,
)
from BR_Libs.errors import HistoryNavigationError, RedactorError
from BR_Libs.HistoryLib.history_strip import HistoryStripLayout, render_history_strip
from BR_Libs.ImageEditingLib.blur_compositor import image_origin
from BR_Libs.ImageEditingLib.edit_engine import EditEngine
from BR_Libs.ImageEditingLib.export_ops import (
    ExportConfig,
    composite_to_data_url,
    save_composite,
)
from BR_Libs.ImageEditingLib.image_loader import load_source_image, load_source_image_async
from BR_Libs.pillow_compat import Image
from BR_Libs.SessionLib.detection import RandomRegionDetector, RegionDetector
from BR_Libs.SessionLib.editor_state import EditorState
from BR_Libs.SessionLib.page_source import PageRasterizer
from BR_Libs.SessionLib.render_scheduler import RenderScheduler

logger = logging.getLogger(__name__)

BUTTON_LEFT = 0
BUTTON_MIDDLE = 1
BUTTON_RIGHT = 2


class RedactionSession:
    """
    Event-level driver for one EditEngine.

    Attributes:
        engine: The EditEngine being edited
        state: EditorState (tool, blur settings, zoom, gesture progress)
        scheduler: RenderScheduler that calls render_frame()
        strip_layout: Geometry of the history strip
        frame: Last rendered viewport image (RGBA), or None
        status: Last user-facing status message
        processing: An asynchronous load is in flight
    """

    def __init__(
        self,
        engine: Optional[EditEngine] = None,
        state: Optional[EditorState] = None,
        strip_layout: Optional[HistoryStripLayout] = None,
        min_render_interval_ms: float = MIN_RENDER_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
        executor: Optional[Executor] = None,
    ):
        self.state = state or EditorState()
        self.engine = engine or EditEngine(high_quality=self.state.high_quality)
        self.strip_layout = strip_layout or HistoryStripLayout()
        self.scheduler = RenderScheduler(self.render_frame, min_render_interval_ms, clock)
        self.frame: Optional[Any] = None
        self.status = ""
        self.processing = False
        self._executor = executor
        self._pending_load: Optional[Future] = None
        self._pending_name = ""
        self._document: Optional[PageRasterizer] = None
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def _set_status(self, message: str) -> None:
        self.status = message
        logger.debug(f"Status: {message}")

    def _start_editing(self, image: Any) -> Tuple[int, int]:
        """Load an image into the engine and seed history with its empty state."""
        size = self.engine.load_source(image)
        self.state.end_gesture()
        self.state.is_panning = False
        self.state.reset_view()
        self.engine.record_history()
        self.scheduler.request()
        return size

    def set_source(self, image: Any) -> Tuple[int, int]:
        """
        Start editing an in-memory image.

        Raises:
            InvalidInputError: If image is missing or empty
        """
        self._document = None
        self.state.page_number = 1
        self.state.page_count = 1
        return self._start_editing(image)

    def load_image(self, file_path: Union[str, Path]) -> Tuple[int, int]:
        """
        Load an image file synchronously.

        Raises:
            InvalidInputError: If the file is missing or corrupted
            UnsupportedFormatError: If the format is not accepted
        """
        image = load_source_image(file_path)
        size = self.set_source(image)
        self._set_status(f"Image loaded: {Path(file_path).name}")
        return size

    def open_image_async(self, file_path: Union[str, Path]) -> Optional[Future]:
        """
        Start loading an image on a worker thread.

        The result is applied by poll_load() (called from tick()) so the
        engine is only touched from the caller's thread.

        Returns:
            The loader Future, or None if a load is already in progress
        """
        with self._lock:
            if self.processing:
                logger.warning(f"Ignoring load of {file_path}: another load is in progress")
                return None
            self.processing = True

        self._pending_name = Path(file_path).name
        self._set_status("Loading image...")
        try:
            self._pending_load = load_source_image_async(file_path, self._executor)
        except RuntimeError as e:
            logger.error(f"Could not start loading {file_path}: {e}")
            self._set_status(f"Error loading image: {e}")
            with self._lock:
                self.processing = False
            return None
        return self._pending_load

    def poll_load(self) -> bool:
        """
        Apply a finished asynchronous load.

        Returns:
            True if a new image was loaded
        """
        future = self._pending_load
        if future is None or not future.done():
            return False

        self._pending_load = None
        try:
            image = future.result()
            self.set_source(image)
            self._set_status(f"Image loaded: {self._pending_name}")
            return True
        except RedactorError as e:
            logger.error(f"Failed to load {self._pending_name}: {e}")
            self._set_status(f"Error loading image: {e}")
            return False
        finally:
            with self._lock:
                self.processing = False

    @property
    def is_document_loaded(self) -> bool:
        return self._document is not None

    def load_document(self, rasterizer: PageRasterizer, page_number: int = 1) -> Tuple[int, int]:
        """
        Start editing a multi-page document.

        Raises:
            InvalidInputError: If page_number is not a page of the document
        """
        image = rasterizer.rasterize_page(page_number)
        self._document = rasterizer
        self.state.page_count = rasterizer.page_count
        self.state.page_number = page_number
        size = self._start_editing(image)
        self._set_status(f"Document - page {page_number}/{rasterizer.page_count}")
        return size

    def go_to_page(self, page_number: int) -> bool:
        """
        Show another page of the current document.

        Masks and history belong to one page; moving to another page starts
        over with an empty mask.
        """
        if self._document is None:
            return False
        if page_number < 1 or page_number > self._document.page_count:
            return False
        if page_number == self.state.page_number:
            return False

        image = self._document.rasterize_page(page_number)
        self._start_editing(image)
        self.state.page_number = page_number
        self._set_status(f"Document - page {page_number}/{self._document.page_count}")
        return True

    def next_page(self) -> bool:
        return self.go_to_page(self.state.page_number + 1)

    def prev_page(self) -> bool:
        return self.go_to_page(self.state.page_number - 1)

    # ------------------------------------------------------------------
    # Coordinates and view
    # ------------------------------------------------------------------

    def set_viewport_size(self, width: int, height: int) -> None:
        self.state.viewport_size = (max(1, int(width)), max(1, int(height)))
        self.scheduler.request()

    def image_origin(self) -> Tuple[float, float]:
        return image_origin(
            self.state.viewport_size,
            self.engine.dimensions(),
            self.state.scale,
            self.state.offset_x,
            self.state.offset_y,
        )

    def canvas_to_image(self, canvas_x: float, canvas_y: float) -> Tuple[float, float]:
        """
        Viewport point to image coordinates, clamped to the image.

        Returns (0, 0) when no image is loaded.
        """
        if not self.engine.has_source():
            return 0.0, 0.0

        width, height = self.engine.dimensions()
        pos_x, pos_y = self.image_origin()
        image_x = (canvas_x - pos_x) / self.state.scale
        image_y = (canvas_y - pos_y) / self.state.scale
        return (
            max(0.0, min(image_x, width - 1)),
            max(0.0, min(image_y, height - 1)),
        )

    def zoom_in(self) -> None:
        self.state.set_scale(self.state.scale * ZOOM_STEP)
        self.scheduler.request()

    def zoom_out(self) -> None:
        self.state.set_scale(self.state.scale / ZOOM_STEP)
        self.scheduler.request()

    def zoom_reset(self) -> None:
        self.state.reset_view()
        self.scheduler.request()

    @property
    def zoom_percent(self) -> int:
        return int(round(self.state.scale * 100))

    def wheel(self, canvas_x: float, canvas_y: float, delta_y: float) -> bool:
        """
        Zoom by one wheel step, keeping the image point under the cursor.

        Positive delta_y zooms out, anything else zooms in.
        """
        if not self.engine.has_source():
            return False

        before_x, before_y = self.canvas_to_image(canvas_x, canvas_y)

        if delta_y > 0:
            self.state.scale = max(self.state.scale / WHEEL_ZOOM_STEP, MIN_SCALE)
        else:
            self.state.scale = min(self.state.scale * WHEEL_ZOOM_STEP, MAX_SCALE)

        pos_x, pos_y = self.image_origin()
        after_x = (canvas_x - pos_x) / self.state.scale
        after_y = (canvas_y - pos_y) / self.state.scale
        self.state.offset_x += (after_x - before_x) * self.state.scale
        self.state.offset_y += (after_y - before_y) * self.state.scale

        self.scheduler.request()
        return True

    # ------------------------------------------------------------------
    # Pointer gestures
    # ------------------------------------------------------------------

    def pointer_down(self, canvas_x: float, canvas_y: float,
                     button: int = BUTTON_LEFT, ctrl: bool = False) -> bool:
        """
        Start a paint or pan gesture.

        Returns:
            True if a gesture started
        """
        if not self.engine.has_source():
            return False

        if button == BUTTON_RIGHT or (button == BUTTON_LEFT and ctrl):
            self.state.is_panning = True
            self.state.pan_anchor = (canvas_x, canvas_y)
            return True

        if button != BUTTON_LEFT:
            return False

        point = self.canvas_to_image(canvas_x, canvas_y)
        self.state.is_drawing = True
        self.state.last_point = point
        self.state.start_point = point

        self.engine.clear_scratch()
        if self.state.tool == TOOL_BRUSH:
            self.engine.paint_dot(point[0], point[1], self.state.brush_size, target=TARGET_SCRATCH)
        self.scheduler.request()
        return True

    def pointer_move(self, canvas_x: float, canvas_y: float) -> bool:
        """
        Continue the current gesture.

        Returns:
            True if anything changed
        """
        state = self.state
        if state.is_panning:
            anchor_x, anchor_y = state.pan_anchor
            state.offset_x += canvas_x - anchor_x
            state.offset_y += canvas_y - anchor_y
            state.pan_anchor = (canvas_x, canvas_y)
            self.scheduler.request()
            return True

        if not state.is_drawing or not self.engine.has_source():
            return False

        x, y = self.canvas_to_image(canvas_x, canvas_y)
        start_x, start_y = state.start_point

        if state.tool == TOOL_BRUSH:
            last_x, last_y = state.last_point
            self.engine.paint_stroke(last_x, last_y, x, y, state.brush_size, target=TARGET_SCRATCH)
            state.last_point = (x, y)
        elif state.tool == TOOL_RECTANGLE:
            self.engine.clear_scratch()
            self.engine.paint_rectangle(start_x, start_y, x, y, target=TARGET_SCRATCH)
        elif state.tool == TOOL_ELLIPSE:
            self.engine.clear_scratch()
            self.engine.paint_ellipse(start_x, start_y, x, y, target=TARGET_SCRATCH)

        self.scheduler.request()
        return True

    def pointer_up(self) -> bool:
        """
        Finish the current gesture.

        Returns:
            True if the gesture changed the committed mask
        """
        if self.state.is_panning:
            self.state.is_panning = False
            self.state.pan_anchor = None
            return False

        if not self.state.is_drawing or not self.engine.has_source():
            return False

        changed = self.engine.scratch_changes_mask()
        self.engine.commit_scratch()
        self.state.end_gesture()
        if changed:
            self.engine.record_history()
        self.scheduler.request()
        return changed

    def cancel_gesture(self) -> bool:
        """
        Abandon the current paint gesture.

        The scratch mask is cleared; the committed mask and history are
        left as they were.

        Returns:
            Always False (nothing was committed)
        """
        if not self.state.is_drawing:
            return False

        self.engine.clear_scratch()
        self.state.end_gesture()
        self.scheduler.request()
        logger.debug("Paint gesture cancelled")
        return False

    def pointer_leave(self) -> bool:
        """Leaving the viewport ends a pan and abandons a paint gesture."""
        if self.state.is_panning:
            return self.pointer_up()
        return self.cancel_gesture()

    # ------------------------------------------------------------------
    # Tools and settings
    # ------------------------------------------------------------------

    def set_tool(self, tool: str) -> None:
        self.state.set_tool(tool)
        self._set_status(f"Tool: {tool}")

    def set_brush_size(self, size: float) -> None:
        self.state.set_brush_size(size)

    def set_blur(self, intensity: Optional[float] = None, passes: Optional[int] = None) -> None:
        self.state.set_blur(intensity, passes)
        self.scheduler.request()

    def set_high_quality(self, enabled: bool) -> None:
        self.state.high_quality = bool(enabled)
        self.engine.set_high_quality(self.state.high_quality)
        self.scheduler.request()
        self._set_status(f"High quality blur {'enabled' if enabled else 'disabled'}")

    def set_dark_mode(self, enabled: bool) -> None:
        self.state.dark_mode = bool(enabled)
        self.scheduler.request()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def _navigate(self, move: Callable[[], Any], message: str) -> bool:
        try:
            move()
        except HistoryNavigationError as e:
            self._set_status(str(e))
            return False
        self.scheduler.request()
        self._set_status(message)
        return True

    def undo(self) -> bool:
        return self._navigate(self.engine.history_undo, "Action undone")

    def redo(self) -> bool:
        return self._navigate(self.engine.history_redo, "Action redone")

    def go_to_history(self, index: int) -> bool:
        return self._navigate(
            lambda: self.engine.history_go_to(index),
            f"History: state {index + 1}",
        )

    def history_click(self, x: float, y: float, strip_width: int) -> bool:
        """Jump to the history entry under a point of the history strip."""
        history = self.engine.history
        index = self.strip_layout.hit_test(x, y, len(history), history.position, strip_width)
        if index is None:
            return False
        return self.go_to_history(index)

    def history_strip(self, size: Tuple[int, int]) -> Any:
        return render_history_strip(self.engine.history, size, self.state.dark_mode, self.strip_layout)

    def clear_all(self) -> bool:
        """Remove every edit and restart history from the empty mask."""
        if not self.engine.has_source():
            return False

        self.engine.reset()
        self.engine.history_reset()
        self.engine.record_history()
        self.scheduler.request()
        self._set_status("All edits removed")
        return True

    def detect_sensitive(self, detector: Optional[RegionDetector] = None) -> int:
        """
        Redact the regions proposed by a detector.

        Returns:
            Number of regions applied
        """
        if not self.engine.has_source():
            self._set_status("Open an image first")
            return 0

        detector = detector or RandomRegionDetector()
        regions = detector.detect(self.engine.source)
        if not regions or not self.engine.apply_regions(regions):
            self._set_status("No sensitive information detected")
            return 0

        self.engine.record_history()
        self.scheduler.request()
        self._set_status(f"{len(regions)} sensitive regions detected and blurred")
        return len(regions)

    # ------------------------------------------------------------------
    # Keyboard
    # ------------------------------------------------------------------

    def handle_key(self, key: str, ctrl: bool = False) -> bool:
        """
        Keyboard shortcuts.

        ctrl+z undo, ctrl+y redo, b/r/e pick a tool, +/- zoom, 0 resets the
        view, left/right arrows change document page.

        Returns:
            True if the key was a shortcut
        """
        lowered = key.lower()
        if ctrl:
            if lowered == "z":
                self.undo()
                return True
            if lowered == "y":
                self.redo()
                return True
            return False

        tools = {"b": TOOL_BRUSH, "r": TOOL_RECTANGLE, "e": TOOL_ELLIPSE}
        if lowered in tools:
            self.set_tool(tools[lowered])
            return True
        if key in ("+", "="):
            self.zoom_in()
            return True
        if key in ("-", "_"):
            self.zoom_out()
            return True
        if key == "0":
            self.zoom_reset()
            return True
        if self.is_document_loaded and key in ("ArrowLeft", "Left"):
            self.prev_page()
            return True
        if self.is_document_loaded and key in ("ArrowRight", "Right"):
            self.next_page()
            return True
        return False

    # ------------------------------------------------------------------
    # Rendering and export
    # ------------------------------------------------------------------

    def render_frame(self) -> Any:
        """Render the viewport into self.frame and return it."""
        if self.frame is None or self.frame.size != self.state.viewport_size:
            self.frame = Image.new("RGBA", self.state.viewport_size, (0, 0, 0, 0))

        if not self.engine.has_source():
            self.frame.paste((0, 0, 0, 0), (0, 0, self.frame.width, self.frame.height))
            return self.frame

        return self.engine.render(
            self.frame,
            self.state.blur_intensity,
            self.state.blur_passes,
            self.state.scale,
            self.state.offset_x,
            self.state.offset_y,
        )

    def tick(self) -> bool:
        """
        Frame callback: apply finished loads, then render if requested.

        Returns:
            True if a frame was rendered
        """
        self.poll_load()
        return self.scheduler.flush(drawing=self.state.is_drawing)

    def export_image(self) -> Any:
        """
        Full-resolution redacted image.

        Raises:
            ExportFailedError: If no image is loaded
        """
        return self.engine.export_composite(self.state.blur_intensity, self.state.blur_passes)

    def export(self, output_path: Union[str, Path, None] = None,
               config: Optional[ExportConfig] = None) -> Path:
        """
        Save the redacted image.

        Raises:
            ExportFailedError: If there is nothing to export or writing fails
        """
        path = save_composite(self.export_image(), config, output_path)
        self._set_status("Image saved")
        return path

    def export_data_url(self, config: Optional[ExportConfig] = None) -> str:
        return composite_to_data_url(self.export_image(), config)
