"""
Axis-aligned rectangles and dirty-region bookkeeping.

Rect is an immutable integer rectangle in image space. RegionSet is the
capped list of rectangles the edit engine uses to remember which parts of
the committed mask changed since the last composite.

Classes:
    Rect: Integer rectangle with union/overlap/clamp helpers
    RegionSet: Capped list of dirty rectangles with overlap merging
"""

from dataclasses import dataclass
from typing import Iterator, List, Optional, Tuple
import logging
import math

from BR_Libs.constants import DIRTY_REGION_LIMIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Rect:
    """Rectangle covering pixels x <= px < x + width, y <= py < y + height."""
    x: int
    y: int
    width: int
    height: int

    @classmethod
    def from_corners(cls, x1: float, y1: float, x2: float, y2: float) -> "Rect":
        """Smallest integer rectangle containing both corners (order-independent)."""
        left = int(math.floor(min(x1, x2)))
        top = int(math.floor(min(y1, y2)))
        right = int(math.ceil(max(x1, x2)))
        bottom = int(math.ceil(max(y1, y2)))
        return cls(left, top, right - left, bottom - top)

    @classmethod
    def from_box(cls, box: Tuple[int, int, int, int]) -> "Rect":
        """Build from a PIL-style (left, top, right, bottom) box."""
        left, top, right, bottom = box
        return cls(left, top, right - left, bottom - top)

    @property
    def right(self) -> int:
        return self.x + self.width

    @property
    def bottom(self) -> int:
        return self.y + self.height

    @property
    def area(self) -> int:
        if self.is_empty():
            return 0
        return self.width * self.height

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0

    def as_box(self) -> Tuple[int, int, int, int]:
        """Return (left, top, right, bottom) for PIL crop/paste."""
        return (self.x, self.y, self.right, self.bottom)

    def overlaps(self, other: "Rect") -> bool:
        """True when the interiors intersect (touching edges do not count)."""
        return (
            self.x < other.right
            and self.right > other.x
            and self.y < other.bottom
            and self.bottom > other.y
        )

    def contains(self, other: "Rect") -> bool:
        return (
            self.x <= other.x
            and self.y <= other.y
            and self.right >= other.right
            and self.bottom >= other.bottom
        )

    def union(self, other: "Rect") -> "Rect":
        """Bounding box of both rectangles."""
        left = min(self.x, other.x)
        top = min(self.y, other.y)
        right = max(self.right, other.right)
        bottom = max(self.bottom, other.bottom)
        return Rect(left, top, right - left, bottom - top)

    def expanded(self, margin: int) -> "Rect":
        return Rect(
            self.x - margin,
            self.y - margin,
            self.width + 2 * margin,
            self.height + 2 * margin,
        )

    def clamped(self, width: int, height: int) -> "Rect":
        """Clip to the [0, width) x [0, height) image area."""
        left = max(0, self.x)
        top = max(0, self.y)
        right = min(width, self.right)
        bottom = min(height, self.bottom)
        return Rect(left, top, max(0, right - left), max(0, bottom - top))


class RegionSet:
    """
    Capped list of dirty rectangles.

    Adding a region past the limit merges overlapping pairs into their
    bounding box until the list is back under the limit or no pair
    overlaps. If the list is still too long after that, the pair whose
    union adds the least extra area is merged, repeatedly, so the limit
    always holds. Regions are a hint: a caller may always fall back to a
    full recompute.

    Example:
        >>> regions = RegionSet(limit=20)
        >>> regions.add(Rect(0, 0, 10, 10))
        True
        >>> regions.add(Rect(0, 0, 0, 10))
        False
    """

    def __init__(self, limit: int = DIRTY_REGION_LIMIT):
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        self.limit = limit
        self._regions: List[Rect] = []

    def __len__(self) -> int:
        return len(self._regions)

    def __iter__(self) -> Iterator[Rect]:
        return iter(list(self._regions))

    def __bool__(self) -> bool:
        return bool(self._regions)

    @property
    def regions(self) -> Tuple[Rect, ...]:
        return tuple(self._regions)

    def add(self, rect: Rect) -> bool:
        """
        Add a rectangle.

        Returns:
            False if the rectangle has zero area and was discarded
        """
        if rect.is_empty():
            return False

        self._regions.append(rect)

        if len(self._regions) > self.limit:
            self.merge_overlapping()
            self._merge_nearest()

        return True

    def extend(self, rects) -> None:
        for rect in rects:
            self.add(rect)

    def clear(self) -> None:
        self._regions = []

    def bounding_box(self) -> Optional[Rect]:
        """Union of all regions, or None when empty."""
        if not self._regions:
            return None
        box = self._regions[0]
        for rect in self._regions[1:]:
            box = box.union(rect)
        return box

    def merge_overlapping(self) -> int:
        """
        Merge overlapping pairs until under the limit or no pair overlaps.

        Returns:
            Number of merges performed
        """
        merges = 0
        while len(self._regions) > self.limit:
            pair = self._find_overlapping_pair()
            if pair is None:
                break
            i, j = pair
            self._regions[i] = self._regions[i].union(self._regions[j])
            del self._regions[j]
            merges += 1

        if merges:
            logger.debug(f"Merged {merges} overlapping dirty regions, {len(self._regions)} left")
        return merges

    def _find_overlapping_pair(self) -> Optional[Tuple[int, int]]:
        for i in range(len(self._regions)):
            for j in range(i + 1, len(self._regions)):
                if self._regions[i].overlaps(self._regions[j]):
                    return i, j
        return None

    def _merge_nearest(self) -> None:
        # Disjoint regions past the limit: merge the cheapest pair
        while len(self._regions) > self.limit:
            best = None
            best_growth = None
            for i in range(len(self._regions)):
                for j in range(i + 1, len(self._regions)):
                    a, b = self._regions[i], self._regions[j]
                    growth = a.union(b).area - a.area - b.area
                    if best_growth is None or growth < best_growth:
                        best, best_growth = (i, j), growth
            i, j = best
            self._regions[i] = self._regions[i].union(self._regions[j])
            del self._regions[j]
            logger.debug(f"Merged disjoint dirty regions {i} and {j} to respect limit {self.limit}")
