"""
Editor state passed to the session's input and render callbacks.

Everything the editor needs between events (current tool, brush and blur
settings, zoom and pan, gesture progress) lives in one EditorState object
instead of loose variables.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from BR_Libs.constants import (
    DEFAULT_BLUR_INTENSITY,
    DEFAULT_BLUR_PASSES,
    DEFAULT_BRUSH_SIZE,
    DEFAULT_TOOL,
    DEFAULT_VIEWPORT_HEIGHT,
    DEFAULT_VIEWPORT_WIDTH,
    MAX_BLUR_INTENSITY,
    MAX_SCALE,
    MIN_SCALE,
    TOOLS,
)

Point = Tuple[float, float]


@dataclass
class EditorState:
    """Mutable editor state.

    Attributes:
        tool: 'brush', 'rectangle' or 'ellipse'
        brush_size: Brush diameter in image pixels
        blur_intensity: Total blur strength
        blur_passes: Pass count for high quality blur
        high_quality: Multi-pass blur enabled
        scale: Zoom factor
        offset_x, offset_y: Pan offset in viewport pixels
        viewport_size: (width, height) of the display surface
        dark_mode: Dark palette for the history strip
        is_drawing: A paint gesture is in progress
        is_panning: A pan drag is in progress
        last_point: Previous gesture sample (image space)
        start_point: First gesture sample (image space)
        pan_anchor: Previous pan sample (viewport space)
        page_number: Current page of a multi-page document (1-based)
        page_count: Pages in the current document (1 for plain images)
    """
    tool: str = DEFAULT_TOOL
    brush_size: float = DEFAULT_BRUSH_SIZE
    blur_intensity: float = DEFAULT_BLUR_INTENSITY
    blur_passes: int = DEFAULT_BLUR_PASSES
    high_quality: bool = True
    scale: float = 1.0
    offset_x: float = 0.0
    offset_y: float = 0.0
    viewport_size: Tuple[int, int] = (DEFAULT_VIEWPORT_WIDTH, DEFAULT_VIEWPORT_HEIGHT)
    dark_mode: bool = False
    is_drawing: bool = False
    is_panning: bool = False
    last_point: Optional[Point] = None
    start_point: Optional[Point] = None
    pan_anchor: Optional[Point] = None
    page_number: int = 1
    page_count: int = 1
    # Not persisted: in-flight gesture bookkeeping
    _transient: Tuple[str, ...] = field(
        default=("is_drawing", "is_panning", "last_point", "start_point", "pan_anchor"),
        init=False,
        repr=False,
    )

    def set_tool(self, tool: str) -> None:
        if tool not in TOOLS:
            raise ValueError(f"Unknown tool: {tool}. Valid tools: {', '.join(TOOLS)}")
        self.tool = tool

    def set_brush_size(self, size: float) -> None:
        if size <= 0:
            raise ValueError(f"brush_size must be > 0, got {size}")
        self.brush_size = float(size)

    def set_blur(self, intensity: Optional[float] = None, passes: Optional[int] = None) -> None:
        if intensity is not None:
            if not (0 <= intensity <= MAX_BLUR_INTENSITY):
                raise ValueError(f"blur_intensity must be 0-{MAX_BLUR_INTENSITY:g}, got {intensity}")
            self.blur_intensity = float(intensity)
        if passes is not None:
            if int(passes) < 1:
                raise ValueError(f"blur_passes must be >= 1, got {passes}")
            self.blur_passes = int(passes)

    def set_scale(self, scale: float) -> None:
        self.scale = max(MIN_SCALE, min(MAX_SCALE, scale))

    def reset_view(self) -> None:
        self.scale = 1.0
        self.offset_x = 0.0
        self.offset_y = 0.0

    def end_gesture(self) -> None:
        self.is_drawing = False
        self.last_point = None
        self.start_point = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert settings to a dictionary, leaving out gesture progress."""
        return {
            name: getattr(self, name)
            for name in self.__dataclass_fields__
            if not name.startswith("_") and name not in self._transient
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EditorState":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__ and not k.startswith("_")}
        if "viewport_size" in filtered:
            filtered["viewport_size"] = tuple(filtered["viewport_size"])
        return cls(**filtered)
