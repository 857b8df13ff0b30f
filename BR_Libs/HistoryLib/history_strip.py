"""
History strip: the row of thumbnails under the editor.

Only as many thumbnails as fit in the strip are shown. When there are more,
the visible window is centred on the current entry and arrows mark the
hidden entries on either side. The same geometry is used for drawing and
for mapping a click back to a history index.

Classes:
    HistoryStripLayout: Thumbnail geometry, window and hit testing

Functions:
    render_history_strip: Draw the strip for a HistoryStore
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from BR_Libs.constants import (
    STRIP_CURRENT_BORDER_COLOR,
    STRIP_LABEL_OFFSET,
    STRIP_SPACING,
    STRIP_THUMB_HEIGHT,
    STRIP_THUMB_WIDTH,
    STRIP_TOP,
)
from BR_Libs.HistoryLib.history_store import HistoryStore
from BR_Libs.pillow_compat import Image, ImageDraw, ImageFont

EMPTY_MESSAGE = "No history available"

LIGHT_PALETTE = {
    "background": (255, 255, 255, 128),
    "text": "#333333",
    "muted": "#666666",
}
DARK_PALETTE = {
    "background": (0, 0, 0, 51),
    "text": "#ffffff",
    "muted": "#bbbbbb",
}


@dataclass
class HistoryStripLayout:
    """Geometry of the history strip.

    Attributes:
        thumb_width: Width of one thumbnail slot
        thumb_height: Height of one thumbnail slot
        spacing: Gap between slots and before the first slot
        top: Y coordinate of the thumbnail row
        label_offset: Distance from the thumbnail bottom to its label
    """
    thumb_width: int = STRIP_THUMB_WIDTH
    thumb_height: int = STRIP_THUMB_HEIGHT
    spacing: int = STRIP_SPACING
    top: int = STRIP_TOP
    label_offset: int = STRIP_LABEL_OFFSET

    def max_visible(self, strip_width: int) -> int:
        return max(0, (strip_width - self.spacing) // (self.thumb_width + self.spacing))

    def visible_range(self, count: int, position: int, strip_width: int) -> Tuple[int, int]:
        """
        Half-open range [start, end) of entries shown in the strip.

        The window is centred on `position` and kept inside 0..count.
        """
        max_visible = self.max_visible(strip_width)
        start = 0
        if count > max_visible:
            start = max(0, position - max_visible // 2)
            start = min(start, count - max_visible)
        end = min(start + max_visible, count)
        return start, end

    def slot_origin(self, index: int, start: int) -> Tuple[int, int]:
        """Top-left corner of the slot showing entry `index`."""
        x = (index - start) * (self.thumb_width + self.spacing) + self.spacing
        return x, self.top

    def hit_test(self, x: float, y: float, count: int, position: int,
                 strip_width: int) -> Optional[int]:
        """
        History index under a point of the strip.

        Returns:
            Entry index, or None if the point is not on a thumbnail
        """
        if count == 0:
            return None

        if y < self.top or y > self.top + self.thumb_height:
            return None

        start, end = self.visible_range(count, position, strip_width)
        offset = x - self.spacing
        if offset < 0:
            return None

        slot, inside = divmod(offset, self.thumb_width + self.spacing)
        if inside > self.thumb_width:
            return None

        index = start + int(slot)
        if index >= end:
            return None
        return index

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HistoryStripLayout":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)


def _draw_centered_text(draw: Any, text: str, center: Tuple[float, float],
                        fill: Any, font: Any) -> None:
    width = draw.textlength(text, font=font)
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    draw.text(
        (center[0] - width / 2, center[1] - (bottom - top) / 2 - top),
        text,
        fill=fill,
        font=font,
    )


def render_history_strip(
    history: HistoryStore,
    size: Tuple[int, int],
    dark_mode: bool = False,
    layout: Optional[HistoryStripLayout] = None,
) -> Any:
    """
    Draw the history strip.

    Args:
        history: Store whose thumbnails are shown
        size: (width, height) of the strip image
        dark_mode: Use the dark palette
        layout: Strip geometry (defaults to HistoryStripLayout())

    Returns:
        RGBA PIL Image
    """
    layout = layout or HistoryStripLayout()
    palette = DARK_PALETTE if dark_mode else LIGHT_PALETTE
    width, height = size

    strip = Image.new("RGBA", size, palette["background"])
    draw = ImageDraw.Draw(strip)
    font = ImageFont.load_default()

    thumbnails = history.thumbnails
    if not thumbnails:
        _draw_centered_text(draw, EMPTY_MESSAGE, (width / 2, height / 2), palette["muted"], font)
        return strip

    start, end = layout.visible_range(len(thumbnails), history.position, width)

    for index in range(start, end):
        x, y = layout.slot_origin(index, start)

        if index == history.position:
            draw.rectangle(
                [x - 2, y - 2, x + layout.thumb_width + 1, y + layout.thumb_height + 1],
                outline=STRIP_CURRENT_BORDER_COLOR,
                width=2,
            )

        thumbnail = thumbnails[index]
        if thumbnail is not None:
            scaled = thumbnail.convert("RGBA").resize(
                (layout.thumb_width, layout.thumb_height), Image.Resampling.BILINEAR
            )
            strip.alpha_composite(scaled, dest=(x, y))

        _draw_centered_text(
            draw,
            str(index + 1),
            (x + layout.thumb_width / 2, y + layout.thumb_height + layout.label_offset),
            palette["text"],
            font,
        )

    middle = height / 2
    if start > 0:
        draw.polygon([(5, middle - 10), (15, middle), (5, middle + 10)], fill=palette["text"])

    if end < len(thumbnails):
        draw.polygon(
            [(width - 5, middle - 10), (width - 15, middle), (width - 5, middle + 10)],
            fill=palette["text"],
        )

    return strip
