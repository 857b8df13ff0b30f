"""
Tests for export operations.

Tests cover:
- Export configuration and save kwargs
- Encoding to PNG/JPEG bytes
- Data URLs
- Saving to disk with overwrite protection
- Error handling
"""

import base64
import io
import unittest

import pytest
from PIL import Image

from BR_Libs.errors import ExportFailedError
from BR_Libs.ImageEditingLib.export_ops import (
    ExportConfig,
    composite_to_data_url,
    encode_composite,
    save_composite,
)


class TestExportConfig(unittest.TestCase):
    """Test export configuration."""

    def test_defaults(self):
        config = ExportConfig()
        self.assertEqual(config.output_path, "redacted-image.png")
        self.assertEqual(config.save_format, "PNG")
        self.assertEqual(config.quality, 95)
        self.assertTrue(config.overwrite)

    def test_jpg_alias(self):
        config = ExportConfig(save_format="jpg", quality=80)
        self.assertEqual(config.get_save_kwargs(), {"format": "JPEG", "quality": 80})

    def test_quality_clamped(self):
        self.assertEqual(ExportConfig(save_format="webp", quality=400).get_save_kwargs()["quality"], 100)
        self.assertEqual(ExportConfig(save_format="JPEG", quality=-3).get_save_kwargs()["quality"], 1)

    def test_png_has_no_quality(self):
        self.assertEqual(ExportConfig().get_save_kwargs(), {"format": "PNG"})

    def test_serialization(self):
        config = ExportConfig(output_path="out/x.jpg", save_format="JPEG", quality=70, overwrite=False)
        self.assertEqual(ExportConfig.from_dict(config.to_dict()), config)


class TestEncode(unittest.TestCase):
    """Test in-memory encoding."""

    def setUp(self):
        self.image = Image.new("RGBA", (20, 10), (10, 20, 30, 255))

    def test_png_round_trip_is_lossless(self):
        data = encode_composite(self.image)
        decoded = Image.open(io.BytesIO(data))
        self.assertEqual(decoded.format, "PNG")
        self.assertEqual(decoded.convert("RGBA").tobytes(), self.image.tobytes())

    def test_jpeg_flattens_alpha(self):
        transparent = Image.new("RGBA", (16, 16), (0, 0, 0, 0))
        data = encode_composite(transparent, ExportConfig(save_format="JPEG"))
        decoded = Image.open(io.BytesIO(data))
        self.assertEqual(decoded.mode, "RGB")
        r, g, b = decoded.getpixel((8, 8))
        self.assertGreater(min(r, g, b), 240)

    def test_missing_image(self):
        with self.assertRaises(ExportFailedError):
            encode_composite(None)

    def test_unknown_format(self):
        with self.assertRaises(ExportFailedError):
            encode_composite(self.image, ExportConfig(save_format="NOPE"))

    def test_data_url(self):
        url = composite_to_data_url(self.image)
        self.assertTrue(url.startswith("data:image/png;base64,"))
        payload = base64.b64decode(url.split(",", 1)[1])
        self.assertEqual(Image.open(io.BytesIO(payload)).size, (20, 10))


class TestSave:
    """Writing files (pytest style)."""

    def test_save_creates_directories(self, temp_output_dir):
        image = Image.new("RGBA", (8, 8), "red")
        path = save_composite(image, output_path=temp_output_dir / "nested" / "out.png")
        assert path.exists()
        assert Image.open(path).size == (8, 8)

    def test_save_uses_config_path(self, temp_output_dir):
        target = temp_output_dir / "configured.jpg"
        config = ExportConfig(output_path=str(target), save_format="JPG")
        path = save_composite(Image.new("RGBA", (8, 8), "blue"), config)
        assert path == target
        assert Image.open(path).format == "JPEG"

    def test_overwrite_protection(self, temp_output_dir):
        target = temp_output_dir / "exists.png"
        target.write_bytes(b"keep me")
        config = ExportConfig(overwrite=False)
        with pytest.raises(ExportFailedError):
            save_composite(Image.new("RGBA", (4, 4)), config, target)
        assert target.read_bytes() == b"keep me"

    def test_unwritable_target(self, temp_output_dir):
        blocker = temp_output_dir / "file"
        blocker.write_text("x")
        config = ExportConfig(create_directories=True)
        with pytest.raises(ExportFailedError):
            save_composite(Image.new("RGBA", (4, 4)), config, blocker / "child.png")
