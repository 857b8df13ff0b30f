"""
Tests for sensitive-region detection.
"""

import unittest

from PIL import Image

from BR_Libs.SessionLib.detection import RandomRegionDetector, RegionDetector


class TestRandomRegionDetector(unittest.TestCase):
    """Test the random placeholder detector."""

    def test_region_count_and_bounds(self):
        image = Image.new("RGBA", (400, 300))
        detector = RandomRegionDetector(seed=7)
        for _ in range(25):
            regions = detector.detect(image)
            self.assertGreaterEqual(len(regions), 1)
            self.assertLessEqual(len(regions), 3)
            for region in regions:
                self.assertGreaterEqual(region.x, 0)
                self.assertGreaterEqual(region.y, 0)
                self.assertLessEqual(region.right, 400)
                self.assertLessEqual(region.bottom, 300)
                self.assertGreaterEqual(region.width, 50)
                self.assertLess(region.width, 150)
                self.assertGreaterEqual(region.height, 10)
                self.assertLess(region.height, 30)

    def test_seeded_is_reproducible(self):
        image = Image.new("RGBA", (400, 300))
        first = RandomRegionDetector(seed=3).detect(image)
        second = RandomRegionDetector(seed=3).detect(image)
        self.assertEqual(first, second)

    def test_small_image_clamped(self):
        image = Image.new("RGBA", (20, 8))
        regions = RandomRegionDetector(seed=1).detect(image)
        self.assertTrue(regions)
        for region in regions:
            self.assertEqual((region.x, region.y), (0, 0))
            self.assertEqual((region.width, region.height), (20, 8))

    def test_no_image(self):
        self.assertEqual(RandomRegionDetector().detect(None), [])

    def test_is_a_detector(self):
        self.assertIsInstance(RandomRegionDetector(), RegionDetector)
        with self.assertRaises(TypeError):
            RegionDetector()


if __name__ == "__main__":
    unittest.main()
