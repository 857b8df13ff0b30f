"""
Bounded undo/redo history of committed-mask snapshots.

The store keeps an ordered list of (mask snapshot, thumbnail) entries and a
cursor pointing at the current one:

- push() drops everything after the cursor, appends the new entry, discards
  the oldest entries beyond capacity, and moves the cursor to the new entry
- undo()/redo() move the cursor one step and return that entry's mask
- go_to() jumps to any stored entry
- reset() empties the store

Masks are copied on the way in and on the way out, so neither the live
mask nor a restored mask can alter a stored snapshot.

Navigation that cannot happen raises NothingToUndo, NothingToRedo or
HistoryOutOfRange instead of returning a sentinel.

Classes:
    HistoryEntry: One snapshot with its thumbnail
    HistoryStore: The bounded history itself
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, List, Optional, Tuple
import logging
import threading

from BR_Libs.constants import DEFAULT_HISTORY_CAPACITY
from BR_Libs.errors import HistoryOutOfRange, NothingToRedo, NothingToUndo

if TYPE_CHECKING:
    from BR_Libs.ImageEditingLib.mask_surface import MaskSurface

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryEntry:
    """Stored snapshot.

    Attributes:
        mask: Independent copy of the committed mask
        thumbnail: Small preview image (may be None)
    """
    mask: "MaskSurface"
    thumbnail: Optional[Any] = None


class HistoryStore:
    """
    Linear undo/redo history with a fixed capacity.

    Mutations are serialized with a lock so a store shared with a worker
    thread never interleaves two pushes.

    Example:
        >>> store = HistoryStore(capacity=20)
        >>> store.push(mask_a)
        0
        >>> store.push(mask_b)
        1
        >>> restored = store.undo()     # copy of mask_a
        >>> store.position
        0
    """

    def __init__(self, capacity: int = DEFAULT_HISTORY_CAPACITY):
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self.capacity = int(capacity)
        self._entries: List[HistoryEntry] = []
        self._position = -1
        self._lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._entries)

    @property
    def position(self) -> int:
        """Index of the current entry, -1 when empty."""
        return self._position

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    @property
    def thumbnails(self) -> List[Any]:
        return [entry.thumbnail for entry in self._entries]

    def is_empty(self) -> bool:
        return not self._entries

    def can_undo(self) -> bool:
        return self._position > 0

    def can_redo(self) -> bool:
        return self._position < len(self._entries) - 1

    def current(self) -> Optional[HistoryEntry]:
        if self._position < 0:
            return None
        return self._entries[self._position]

    def push(self, mask: "MaskSurface", thumbnail: Optional[Any] = None) -> int:
        """
        Record a new state.

        Args:
            mask: Committed mask to snapshot (copied)
            thumbnail: Preview image for the history strip

        Returns:
            The new position (always len(self) - 1)
        """
        with self._lock:
            if self._position < len(self._entries) - 1:
                discarded = len(self._entries) - self._position - 1
                del self._entries[self._position + 1:]
                logger.debug(f"Discarded {discarded} redo entries")

            self._entries.append(HistoryEntry(mask=mask.copy(), thumbnail=thumbnail))

            overflow = len(self._entries) - self.capacity
            if overflow > 0:
                del self._entries[:overflow]

            self._position = len(self._entries) - 1
            logger.debug(f"History push: position {self._position} of {len(self._entries)}")
            return self._position

    def undo(self) -> "MaskSurface":
        """
        Move back one entry.

        Returns:
            Copy of the mask at the new position

        Raises:
            NothingToUndo: If already at the oldest entry or empty
        """
        with self._lock:
            if not self.can_undo():
                raise NothingToUndo("Nothing to undo")
            self._position -= 1
            logger.debug(f"Undo to position {self._position}")
            return self._entries[self._position].mask.copy()

    def redo(self) -> "MaskSurface":
        """
        Move forward one entry.

        Returns:
            Copy of the mask at the new position

        Raises:
            NothingToRedo: If already at the newest entry or empty
        """
        with self._lock:
            if not self.can_redo():
                raise NothingToRedo("Nothing to redo")
            self._position += 1
            logger.debug(f"Redo to position {self._position}")
            return self._entries[self._position].mask.copy()

    def go_to(self, index: int) -> "MaskSurface":
        """
        Jump to a stored entry.

        Raises:
            HistoryOutOfRange: If index is outside 0..len(self) - 1
        """
        with self._lock:
            if index < 0 or index >= len(self._entries):
                raise HistoryOutOfRange(
                    f"History index {index} out of range (0-{len(self._entries) - 1})"
                )
            self._position = index
            logger.debug(f"Jumped to history position {index}")
            return self._entries[index].mask.copy()

    def reset(self) -> None:
        with self._lock:
            self._entries = []
            self._position = -1
        logger.info("History reset")
