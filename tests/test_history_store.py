"""
Tests for the history store.

Tests cover:
- Push, capacity bound and eviction order
- Undo/redo as inverses
- Branch overwrite after undo
- go_to bounds
- Snapshot independence
- Reset
"""

import threading
import unittest

from BR_Libs.errors import (
    HistoryNavigationError,
    HistoryOutOfRange,
    NothingToRedo,
    NothingToUndo,
)
from BR_Libs.HistoryLib.history_store import HistoryStore
from BR_Libs.ImageEditingLib.mask_surface import MaskSurface


def labelled_mask(label):
    """Mask whose coverage encodes `label` (label pixels painted in row 0)."""
    mask = MaskSurface(32, 4)
    if label:
        mask.paint_rectangle(0, 0, label, 1)
    return mask


def labels(store):
    return [entry.mask.coverage() for entry in store.entries]


class TestHistoryPush(unittest.TestCase):
    """Test pushing entries."""

    def test_empty_store(self):
        store = HistoryStore()
        self.assertTrue(store.is_empty())
        self.assertEqual(store.position, -1)
        self.assertIsNone(store.current())
        self.assertFalse(store.can_undo())
        self.assertFalse(store.can_redo())

    def test_push_returns_position(self):
        store = HistoryStore()
        self.assertEqual(store.push(labelled_mask(1)), 0)
        self.assertEqual(store.push(labelled_mask(2)), 1)
        self.assertEqual(len(store), 2)
        self.assertEqual(store.current().mask.coverage(), 2)

    def test_capacity_bound(self):
        """After N > capacity pushes only the most recent remain."""
        store = HistoryStore(capacity=20)
        for label in range(1, 26):
            store.push(labelled_mask(label))
        self.assertEqual(len(store), 20)
        self.assertEqual(labels(store), list(range(6, 26)))
        self.assertEqual(store.position, 19)

    def test_thumbnail_kept(self):
        store = HistoryStore()
        store.push(labelled_mask(1), thumbnail="thumb")
        self.assertEqual(store.thumbnails, ["thumb"])

    def test_invalid_capacity(self):
        with self.assertRaises(ValueError):
            HistoryStore(capacity=0)

    def test_push_copies_mask(self):
        store = HistoryStore()
        mask = labelled_mask(3)
        store.push(mask)
        mask.paint_rectangle(0, 2, 32, 4)
        self.assertEqual(store.current().mask.coverage(), 3)


class TestHistoryNavigation(unittest.TestCase):
    """Test undo/redo/go_to."""

    def setUp(self):
        self.store = HistoryStore(capacity=10)
        for label in (1, 2, 3):
            self.store.push(labelled_mask(label))

    def test_undo_redo_inverse(self):
        position = self.store.position
        current = self.store.current().mask.tobytes()

        self.store.undo()
        restored = self.store.redo()

        self.assertEqual(self.store.position, position)
        self.assertEqual(restored.tobytes(), current)

    def test_undo_returns_previous(self):
        self.assertEqual(self.store.undo().coverage(), 2)
        self.assertEqual(self.store.undo().coverage(), 1)
        with self.assertRaises(NothingToUndo):
            self.store.undo()
        self.assertEqual(self.store.position, 0)

    def test_redo_at_end(self):
        with self.assertRaises(NothingToRedo):
            self.store.redo()
        self.assertEqual(self.store.position, 2)

    def test_navigation_errors_share_base(self):
        with self.assertRaises(HistoryNavigationError):
            self.store.redo()
        with self.assertRaises(LookupError):
            self.store.go_to(-1)

    def test_branch_overwrite(self):
        """push A, B, C; undo twice; push D -> [A, D]."""
        store = HistoryStore()
        for label in (1, 2, 3):
            store.push(labelled_mask(label))
        store.undo()
        store.undo()
        store.push(labelled_mask(4))

        self.assertEqual(labels(store), [1, 4])
        self.assertEqual(store.position, 1)
        self.assertFalse(store.can_redo())

    def test_go_to(self):
        self.assertEqual(self.store.go_to(0).coverage(), 1)
        self.assertEqual(self.store.position, 0)
        self.assertEqual(self.store.go_to(2).coverage(), 3)

    def test_go_to_out_of_range(self):
        for index in (-1, 3, 100):
            with self.assertRaises(HistoryOutOfRange):
                self.store.go_to(index)
        self.assertEqual(self.store.position, 2)

    def test_returned_mask_is_independent(self):
        restored = self.store.undo()
        restored.paint_rectangle(0, 0, 32, 4)
        self.assertEqual(self.store.current().mask.coverage(), 2)
        self.assertEqual(self.store.redo().coverage(), 3)

    def test_reset(self):
        self.store.reset()
        self.assertTrue(self.store.is_empty())
        self.assertEqual(self.store.position, -1)
        with self.assertRaises(NothingToUndo):
            self.store.undo()


class TestHistoryConcurrency(unittest.TestCase):
    """Pushes from several threads never corrupt the store."""

    def test_parallel_pushes(self):
        store = HistoryStore(capacity=15)
        mask = labelled_mask(1)

        def worker():
            for _ in range(25):
                store.push(mask)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(len(store), 15)
        self.assertEqual(store.position, 14)


if __name__ == "__main__":
    unittest.main()
