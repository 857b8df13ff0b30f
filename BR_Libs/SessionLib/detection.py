"""
Sensitive-region detectors.

A detector looks at a source image and proposes rectangles to redact.
The session paints whatever a detector returns into the committed mask.
RandomRegionDetector is a placeholder that proposes text-line shaped
rectangles at random positions; it is seedable for reproducible tests.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Optional
import logging
import random

from BR_Libs.ImageEditingLib.region_set import Rect

logger = logging.getLogger(__name__)


class RegionDetector(ABC):
    """Base class for detectors."""

    @abstractmethod
    def detect(self, image: Any) -> List[Rect]:
        """Return rectangles (image coordinates) to redact."""
        pass


class RandomRegionDetector(RegionDetector):
    """
    Proposes one to three random text-line sized rectangles.

    Rectangles are 50-149 px wide and 10-29 px high, placed so they stay
    inside the image. Images smaller than that get rectangles shrunk to fit.
    """

    MIN_REGIONS = 1
    MAX_REGIONS = 3
    MIN_WIDTH = 50
    WIDTH_RANGE = 100
    MIN_HEIGHT = 10
    HEIGHT_RANGE = 20
    # Placement leaves room for the largest rectangle
    MARGIN_X = 100
    MARGIN_Y = 30

    def __init__(self, seed: Optional[int] = None):
        self._random = random.Random(seed)

    def detect(self, image: Any) -> List[Rect]:
        if image is None:
            return []

        width, height = image.size
        if width <= 0 or height <= 0:
            return []

        count = self._random.randint(self.MIN_REGIONS, self.MAX_REGIONS)
        regions = []
        for _ in range(count):
            x = self._random.randrange(max(1, width - self.MARGIN_X))
            y = self._random.randrange(max(1, height - self.MARGIN_Y))
            region_width = self.MIN_WIDTH + self._random.randrange(self.WIDTH_RANGE)
            region_height = self.MIN_HEIGHT + self._random.randrange(self.HEIGHT_RANGE)
            region = Rect(x, y, region_width, region_height).clamped(width, height)
            if not region.is_empty():
                regions.append(region)

        logger.info(f"Detected {len(regions)} sensitive regions")
        return regions
