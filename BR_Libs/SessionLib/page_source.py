"""
Multi-page sources.

A PageRasterizer turns page N (1-based) of a document into an RGBA image
the EditEngine can load. Two implementations are provided:

- ImageSequenceRasterizer: frames of a multi-page TIFF or animated GIF
- PlaceholderDocumentRasterizer: blank A4 pages with grey text lines,
  used when no real document renderer is available
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, List, Union
import logging

from BR_Libs.constants import (
    MAX_SOURCE_DIMENSION,
    PLACEHOLDER_PAGE_COUNT,
    PLACEHOLDER_PAGE_HEIGHT,
    PLACEHOLDER_PAGE_WIDTH,
    SUPPORTED_PAGE_FORMATS,
)
from BR_Libs.errors import InvalidInputError, UnsupportedFormatError
from BR_Libs.ImageEditingLib.image_loader import fit_within
from BR_Libs.pillow_compat import Image, ImageDraw, ImageFont

logger = logging.getLogger(__name__)


class PageRasterizer(ABC):
    """Base class for page sources."""

    @property
    @abstractmethod
    def page_count(self) -> int:
        pass

    @abstractmethod
    def _render(self, page_number: int) -> Any:
        pass

    def rasterize_page(self, page_number: int) -> Any:
        """
        Render one page.

        Args:
            page_number: 1-based page index

        Returns:
            RGBA PIL Image

        Raises:
            InvalidInputError: If page_number is outside 1..page_count
        """
        if page_number < 1 or page_number > self.page_count:
            raise InvalidInputError(
                f"Page {page_number} out of range (1-{self.page_count})"
            )
        image = self._render(page_number)
        logger.debug(f"Rasterized page {page_number}/{self.page_count}")
        return image


class ImageSequenceRasterizer(PageRasterizer):
    """Pages of a multi-frame TIFF or GIF file."""

    def __init__(self, file_path: Union[str, Path], max_dimension: int = MAX_SOURCE_DIMENSION):
        path = Path(file_path)
        if not path.is_file():
            raise InvalidInputError(f"Document file not found: {path}")

        try:
            with Image.open(path) as img:
                image_format = (img.format or "").upper()
                if image_format not in SUPPORTED_PAGE_FORMATS:
                    raise UnsupportedFormatError(
                        f"Unsupported page format '{img.format}'. Use TIFF or GIF."
                    )
                frames = getattr(img, "n_frames", 1)
        except UnsupportedFormatError:
            raise
        except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
            raise InvalidInputError(f"Failed to open document {path}: {e}") from e

        self.path = path
        self.max_dimension = max_dimension
        self._page_count = int(frames)
        logger.info(f"Opened {path.name} with {self._page_count} pages")

    @property
    def page_count(self) -> int:
        return self._page_count

    def _render(self, page_number: int) -> Any:
        try:
            with Image.open(self.path) as img:
                img.seek(page_number - 1)
                img.load()
                page = img.convert("RGBA")
        except (OSError, EOFError, ValueError, Image.DecompressionBombError) as e:
            raise InvalidInputError(f"Failed to read page {page_number} of {self.path}: {e}") from e
        return fit_within(page, self.max_dimension)


class PlaceholderDocumentRasterizer(PageRasterizer):
    """
    Simulated document: white pages with a title and grey text lines.

    Every page has the same layout with its page number in the title, which
    is enough to exercise page navigation and redaction.
    """

    LINE_HEIGHT = 20
    LINE_COLOR = (204, 204, 204, 255)
    TEXT_COLOR = (51, 51, 51, 255)
    MARGIN = 50

    def __init__(
        self,
        page_count: int = PLACEHOLDER_PAGE_COUNT,
        width: int = PLACEHOLDER_PAGE_WIDTH,
        height: int = PLACEHOLDER_PAGE_HEIGHT,
    ):
        if page_count < 1:
            raise ValueError(f"page_count must be >= 1, got {page_count}")
        self._page_count = int(page_count)
        self.width = int(width)
        self.height = int(height)

    @property
    def page_count(self) -> int:
        return self._page_count

    def line_boxes(self) -> List[tuple]:
        """Boxes of the simulated text lines, top to bottom."""
        boxes = []
        top = self.MARGIN * 2
        # Every fourth line is short, like the end of a paragraph
        for index, y in enumerate(range(top, self.height - self.MARGIN, self.LINE_HEIGHT * 2)):
            right = self.width - self.MARGIN
            if index % 4 == 3:
                right = self.MARGIN + (self.width - 2 * self.MARGIN) // 2
            boxes.append((self.MARGIN, y, right, y + self.LINE_HEIGHT // 2))
        return boxes

    def _render(self, page_number: int) -> Any:
        page = Image.new("RGBA", (self.width, self.height), (255, 255, 255, 255))
        draw = ImageDraw.Draw(page)
        font = ImageFont.load_default()

        draw.text(
            (self.MARGIN, self.MARGIN),
            f"Page {page_number} of {self._page_count}",
            fill=self.TEXT_COLOR,
            font=font,
        )
        for box in self.line_boxes():
            draw.rectangle(box, fill=self.LINE_COLOR)

        return page
