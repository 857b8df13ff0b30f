"""
Tests for the EditEngine.

Tests cover:
- Source loading and validation
- Painting without a source
- Scratch commit and commit monotonicity
- Dirty region tracking
- Render caching through the engine
- Paint and export scenario
- Abandoned gestures
- History integration
- Thumbnails
"""

import unittest

import numpy as np
import pytest
from PIL import Image, ImageFilter

from BR_Libs.errors import (
    ExportFailedError,
    HistoryOutOfRange,
    InvalidInputError,
    NothingToRedo,
    NothingToUndo,
)
from BR_Libs.ImageEditingLib.edit_engine import EditEngine
from BR_Libs.ImageEditingLib.region_set import Rect
from conftest import make_checkerboard


class TestSourceLoading(unittest.TestCase):
    """Test load_source."""

    def test_load_returns_dimensions(self):
        engine = EditEngine()
        self.assertFalse(engine.has_source())
        self.assertEqual(engine.dimensions(), (0, 0))

        self.assertEqual(engine.load_source(Image.new("RGB", (30, 20))), (30, 20))
        self.assertTrue(engine.has_source())
        self.assertEqual(engine.source.mode, "RGBA")
        self.assertEqual(engine.committed_mask.size, (30, 20))
        self.assertTrue(engine.committed_mask.is_empty())

    def test_load_rejects_missing_image(self):
        with self.assertRaises(InvalidInputError):
            EditEngine().load_source(None)

    def test_load_rejects_non_image(self):
        with self.assertRaises(InvalidInputError):
            EditEngine().load_source("photo.png")

    def test_load_rejects_zero_size(self):
        with self.assertRaises(InvalidInputError):
            EditEngine().load_source(Image.new("RGBA", (0, 10)))

    def test_failed_load_keeps_previous_state(self):
        engine = EditEngine()
        engine.load_source(Image.new("RGBA", (40, 40), "white"))
        engine.paint_rectangle(0, 0, 10, 10)
        engine.record_history()

        with self.assertRaises(InvalidInputError):
            engine.load_source(Image.new("RGBA", (0, 0)))

        self.assertEqual(engine.dimensions(), (40, 40))
        self.assertEqual(engine.committed_mask.coverage(), 100)
        self.assertEqual(len(engine.history), 1)

    def test_new_load_resets_masks_and_history(self):
        engine = EditEngine()
        engine.load_source(Image.new("RGBA", (40, 40)))
        engine.paint_rectangle(0, 0, 10, 10)
        engine.record_history()

        engine.load_source(Image.new("RGBA", (20, 20)))
        self.assertTrue(engine.committed_mask.is_empty())
        self.assertEqual(len(engine.history), 0)
        self.assertEqual(engine.dirty_regions, ())

    def test_source_is_a_copy(self):
        image = Image.new("RGBA", (10, 10), "white")
        engine = EditEngine()
        engine.load_source(image)
        image.putpixel((0, 0), (0, 0, 0, 255))
        self.assertEqual(engine.source.getpixel((0, 0)), (255, 255, 255, 255))


class TestNoSource(unittest.TestCase):
    """Operations before any load are ignored."""

    def test_paint_and_commit_are_noops(self):
        engine = EditEngine()
        self.assertIsNone(engine.paint_dot(5, 5, 10))
        self.assertIsNone(engine.paint_stroke(0, 0, 5, 5, 10, target="scratch"))
        self.assertIsNone(engine.paint_rectangle(0, 0, 5, 5))
        self.assertIsNone(engine.paint_ellipse(0, 0, 5, 5))
        self.assertFalse(engine.commit_scratch())
        engine.clear()
        engine.clear_scratch()
        engine.reset()
        self.assertEqual(engine.record_history(), -1)

    def test_render_leaves_target(self):
        target = Image.new("RGBA", (10, 10), (1, 2, 3, 4))
        self.assertIs(EditEngine().render(target, 10, 1), target)
        self.assertEqual(target.getpixel((0, 0)), (1, 2, 3, 4))

    def test_export_fails(self):
        with self.assertRaises(ExportFailedError):
            EditEngine().export_composite(10, 1)


class TestPaintAndCommit:
    """Scratch/commit behaviour (pytest style)."""

    def test_unknown_target(self, engine):
        with pytest.raises(ValueError):
            engine.paint_dot(5, 5, 4, target="overlay")

    def test_scratch_paint_leaves_committed_untouched(self, engine):
        engine.paint_rectangle(10, 10, 30, 30, target="scratch")
        assert engine.committed_mask.is_empty()
        assert not engine.scratch_mask.is_empty()
        assert engine.dirty_regions == ()

    def test_commit_moves_scratch(self, engine):
        engine.paint_rectangle(10, 10, 30, 30, target="scratch")
        assert engine.commit_scratch() is True
        assert engine.scratch_mask.is_empty()
        assert engine.committed_mask.visible_bounds() == Rect(10, 10, 20, 20)
        assert engine.dirty_regions == (Rect(10, 10, 20, 20),)

    def test_empty_commit_is_noop(self, engine):
        before = engine.committed_mask.tobytes()
        assert engine.commit_scratch() is False
        assert engine.committed_mask.tobytes() == before
        assert engine.dirty_regions == ()

    def test_single_pixel_commit_detected(self, engine):
        engine.scratch_mask.image.putpixel((99, 79), 255)
        assert engine.commit_scratch() is True
        assert engine.committed_mask.image.getpixel((99, 79)) == 255

    def test_commit_monotonicity(self, engine):
        """Committing never removes previously redacted pixels."""
        engine.paint_ellipse(5, 5, 50, 40)
        before = engine.committed_mask.alpha_array() > 0

        for shape in (
            lambda: engine.paint_stroke(0, 0, 99, 79, 6, target="scratch"),
            lambda: engine.paint_rectangle(60, 10, 90, 70, target="scratch"),
            lambda: engine.paint_dot(20, 20, 8, target="scratch"),
        ):
            shape()
            engine.commit_scratch()
            after = engine.committed_mask.alpha_array() > 0
            assert np.all(after[before])
            before = after

    def test_direct_paint_marks_dirty_with_margin(self, engine):
        engine.paint_rectangle(20, 20, 30, 30)
        assert engine.dirty_regions == (Rect(15, 15, 20, 20),)

    def test_dirty_margin_clamped_to_image(self, engine):
        engine.paint_rectangle(0, 0, 3, 3)
        assert engine.dirty_regions == (Rect(0, 0, 8, 8),)

    def test_dirty_regions_capped(self, engine):
        for i in range(30):
            engine.paint_dot((i * 13) % 100, (i * 7) % 80, 2)
            assert len(engine.dirty_regions) <= 20

    def test_clear_committed_marks_everything(self, engine):
        engine.paint_rectangle(0, 0, 10, 10)
        engine.clear()
        assert engine.committed_mask.is_empty()
        assert Rect(0, 0, 100, 80) in engine.dirty_regions

    def test_abandoned_gesture_leaves_no_trace(self, engine):
        engine.paint_rectangle(0, 0, 20, 20)
        engine.record_history()
        mask_before = engine.committed_mask.tobytes()
        history_before = [entry.mask.tobytes() for entry in engine.history.entries]
        position_before = engine.history.position

        engine.paint_stroke(10, 10, 80, 60, 12, target="scratch")
        engine.clear_scratch()

        assert engine.committed_mask.tobytes() == mask_before
        assert [entry.mask.tobytes() for entry in engine.history.entries] == history_before
        assert engine.history.position == position_before
        assert engine.scratch_mask.is_empty()

    def test_apply_regions(self, engine):
        changed = engine.apply_regions([Rect(0, 0, 10, 5), Rect(50, 50, 20, 10)])
        assert changed is True
        assert engine.committed_mask.coverage() == 50 + 200
        assert len(engine.dirty_regions) == 2

    def test_apply_no_regions(self, engine):
        assert engine.apply_regions([]) is False

    def test_reset_keeps_source(self, engine):
        engine.paint_rectangle(0, 0, 10, 10)
        engine.paint_rectangle(20, 20, 30, 30, target="scratch")
        engine.reset()
        assert engine.has_source()
        assert engine.committed_mask.is_empty()
        assert engine.scratch_mask.is_empty()
        assert engine.dirty_regions == ()


class TestRendering(unittest.TestCase):
    """Render and export through the engine."""

    def setUp(self):
        self.engine = EditEngine()
        self.engine.load_source(make_checkerboard(100, 100))
        self.target = Image.new("RGBA", (100, 100))

    def test_empty_mask_render_is_sharp_source(self):
        self.engine.render(self.target, 10, 3)
        self.assertEqual(self.target.tobytes(), self.engine.source.tobytes())
        self.assertEqual(self.engine.compositor.blur_count, 0)

    def test_empty_mask_render_with_transform(self):
        target = Image.new("RGBA", (300, 300))
        self.engine.render(target, 10, 3, scale=2.0, offset_x=5, offset_y=-5)
        expected = Image.new("RGBA", (300, 300))
        expected.alpha_composite(
            self.engine.source.resize((200, 200), Image.Resampling.BILINEAR), dest=(55, 45)
        )
        self.assertEqual(target.tobytes(), expected.tobytes())
        self.assertEqual(self.engine.compositor.blur_count, 0)

    def test_render_clears_dirty_regions(self):
        self.engine.paint_rectangle(10, 10, 20, 20)
        self.assertTrue(self.engine.dirty_regions)
        self.engine.render(self.target, 10, 1)
        self.assertEqual(self.engine.dirty_regions, ())

    def test_repeat_render_uses_cache(self):
        self.engine.paint_rectangle(10, 10, 30, 30)
        self.engine.render(self.target, 10, 2)
        first = self.target.tobytes()
        self.engine.render(self.target, 10, 2)
        self.assertEqual(self.engine.compositor.blur_count, 1)
        self.assertEqual(self.engine.compositor.recompute_count, 1)
        self.assertEqual(self.target.tobytes(), first)

    def test_intensity_change_forces_recompute(self):
        self.engine.paint_rectangle(10, 10, 30, 30)
        self.engine.render(self.target, 10, 2)
        self.engine.render(self.target, 12, 2)
        self.assertEqual(self.engine.compositor.blur_count, 2)

    def test_intensity_above_slider_range(self):
        self.engine.paint_rectangle(5, 5, 20, 20)
        self.engine.render(self.target, 120, 1)
        result = self.engine.export_composite(120, 1)

        self.assertEqual(self.target.tobytes(), result.tobytes())
        self.assertNotEqual(result.getpixel((10, 10)), self.engine.source.getpixel((10, 10)))
        self.assertEqual(result.getpixel((50, 50)), self.engine.source.getpixel((50, 50)))

    def test_mask_change_reflected_in_next_render(self):
        self.engine.paint_rectangle(10, 10, 30, 30)
        self.engine.render(self.target, 10, 1)
        self.engine.paint_rectangle(60, 60, 80, 80)
        self.engine.render(self.target, 10, 1)

        self.assertEqual(self.engine.compositor.blur_count, 1)
        self.assertEqual(self.engine.compositor.recompute_count, 2)
        expected = self.engine.export_composite(10, 1)
        self.assertEqual(self.target.tobytes(), expected.tobytes())

    def test_paint_and_export_scenario(self):
        engine = EditEngine()
        source = make_checkerboard(100, 100, cell=3)
        engine.load_source(source)
        engine.paint_rectangle(10, 10, 30, 30)

        result = np.asarray(engine.export_composite(intensity=10, passes=1))
        blurred = np.asarray(source.filter(ImageFilter.GaussianBlur(10)))
        original = np.asarray(source)

        inside = np.zeros((100, 100), dtype=bool)
        inside[10:30, 10:30] = True
        self.assertTrue(np.array_equal(result[inside], blurred[inside]))
        self.assertTrue(np.array_equal(result[~inside], original[~inside]))

    def test_export_excludes_scratch(self):
        self.engine.paint_rectangle(0, 0, 50, 50, target="scratch")
        result = self.engine.export_composite(10, 1)
        self.assertEqual(result.tobytes(), self.engine.source.tobytes())

    def test_quality_toggle_through_engine(self):
        self.engine.paint_rectangle(10, 10, 30, 30)
        self.engine.render(self.target, 10, 3)
        self.engine.set_high_quality(False)
        self.engine.render(self.target, 10, 3)
        self.assertEqual(self.engine.compositor.blur_count, 2)
        self.assertFalse(self.engine.compositor.high_quality)


class TestEngineHistory(unittest.TestCase):
    """History through the engine."""

    def setUp(self):
        self.engine = EditEngine(history_capacity=5)
        self.engine.load_source(Image.new("RGBA", (50, 50), "white"))
        self.engine.record_history()

    def test_undo_adopts_previous_mask(self):
        self.engine.paint_rectangle(0, 0, 10, 10)
        self.engine.record_history()

        restored = self.engine.history_undo()
        self.assertTrue(restored.is_empty())
        self.assertTrue(self.engine.committed_mask.is_empty())
        self.assertTrue(self.engine.compositor.is_stale)

        self.engine.history_redo()
        self.assertEqual(self.engine.committed_mask.coverage(), 100)

    def test_painting_after_undo_does_not_alter_history(self):
        self.engine.paint_rectangle(0, 0, 10, 10)
        self.engine.record_history()
        self.engine.history_undo()

        self.engine.paint_rectangle(20, 20, 40, 40)
        self.assertTrue(self.engine.history.entries[0].mask.is_empty())
        self.assertEqual(self.engine.history.entries[1].mask.coverage(), 100)

    def test_boundaries_raise(self):
        with self.assertRaises(NothingToUndo):
            self.engine.history_undo()
        with self.assertRaises(NothingToRedo):
            self.engine.history_redo()
        with self.assertRaises(HistoryOutOfRange):
            self.engine.history_go_to(3)

    def test_go_to(self):
        for i in range(3):
            self.engine.paint_rectangle(i * 10, 0, i * 10 + 5, 5)
            self.engine.record_history()
        self.engine.history_go_to(1)
        self.assertEqual(self.engine.history.position, 1)
        self.assertEqual(self.engine.committed_mask.coverage(), 25)

    def test_undo_discards_scratch(self):
        self.engine.paint_rectangle(0, 0, 10, 10)
        self.engine.record_history()
        self.engine.paint_rectangle(20, 20, 30, 30, target="scratch")
        self.engine.history_undo()
        self.assertTrue(self.engine.scratch_mask.is_empty())

    def test_history_push_and_reset(self):
        snapshot = self.engine.snapshot()
        self.assertEqual(self.engine.history_push(snapshot), 1)
        self.engine.history_reset()
        self.assertEqual(len(self.engine.history), 0)
        self.assertEqual(self.engine.history_thumbnails(), [])

    def test_record_history_stores_thumbnail(self):
        thumbnails = self.engine.history_thumbnails()
        self.assertEqual(len(thumbnails), 1)
        self.assertEqual(thumbnails[0].size, (100, 75))


class TestThumbnail(unittest.TestCase):
    """Test create_thumbnail."""

    def test_letterboxed(self):
        engine = EditEngine()
        engine.load_source(Image.new("RGBA", (200, 100), (255, 255, 255, 255)))
        thumbnail = engine.create_thumbnail(100, 75)
        self.assertEqual(thumbnail.size, (100, 75))
        # 200x100 scaled by 0.5 -> 100x50, centred vertically
        self.assertEqual(thumbnail.getpixel((50, 5))[3], 0)
        self.assertEqual(thumbnail.getpixel((50, 37)), (255, 255, 255, 255))

    def test_blur_visible_in_thumbnail(self):
        engine = EditEngine()
        engine.load_source(make_checkerboard(100, 75, cell=5))
        sharp = engine.create_thumbnail()
        engine.paint_rectangle(0, 0, 100, 75)
        blurred = engine.create_thumbnail()
        self.assertNotEqual(sharp.tobytes(), blurred.tobytes())

    def test_no_source(self):
        thumbnail = EditEngine().create_thumbnail(40, 30)
        self.assertEqual(thumbnail.size, (40, 30))
        self.assertIsNone(thumbnail.getbbox())


if __name__ == "__main__":
    unittest.main()
