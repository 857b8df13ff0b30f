"""
Render coalescing for the editor.

Input handlers call request() as often as they like. The host's frame tick
calls flush(), which runs the render callback at most once per tick and no
more often than min_interval_ms, except while a paint gesture is in
progress: then every flushed request renders so strokes feel immediate.
A throttled request stays pending for the next tick.
"""

from typing import Callable
import logging
import time

from BR_Libs.constants import MIN_RENDER_INTERVAL_MS

logger = logging.getLogger(__name__)

INTERVAL_TOLERANCE_MS = 1e-6


class RenderScheduler:
    """
    Coalesces render requests into frame-rate limited render calls.

    Example:
        >>> scheduler = RenderScheduler(canvas.redraw)
        >>> scheduler.request()
        >>> scheduler.request()
        >>> scheduler.flush()        # one redraw for both requests
        True
    """

    def __init__(
        self,
        render_fn: Callable[[], None],
        min_interval_ms: float = MIN_RENDER_INTERVAL_MS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._render_fn = render_fn
        self.min_interval_ms = float(min_interval_ms)
        self._clock = clock
        self._pending = False
        self._last_render = None
        self.render_count = 0

    @property
    def is_pending(self) -> bool:
        return self._pending

    def request(self) -> None:
        self._pending = True

    def cancel(self) -> None:
        self._pending = False

    def flush(self, drawing: bool = False) -> bool:
        """
        Render if a request is pending and the interval allows it.

        Args:
            drawing: A paint gesture is in progress; skips the throttle

        Returns:
            True if the render callback ran
        """
        if not self._pending:
            return False

        now = self._clock()
        if not drawing and self._last_render is not None:
            elapsed_ms = (now - self._last_render) * 1000.0
            # A frame exactly one interval later is due, despite float rounding
            if elapsed_ms < self.min_interval_ms - INTERVAL_TOLERANCE_MS:
                return False

        self._pending = False
        self._last_render = now
        self.render_count += 1
        self._render_fn()
        return True
