"""
Pytest configuration and shared fixtures for Blur Redactor tests.

This module provides shared test fixtures and configuration
used across multiple test modules.
"""

import pytest
from PIL import Image

from BR_Libs.ImageEditingLib import EditEngine


def make_checkerboard(width, height, cell=4):
    """
    RGBA checkerboard: sharp black/white edges everywhere, so any blur
    visibly changes pixel values.
    """
    image = Image.new("RGBA", (width, height), (255, 255, 255, 255))
    pixels = image.load()
    for y in range(height):
        for x in range(width):
            if (x // cell + y // cell) % 2:
                pixels[x, y] = (0, 0, 0, 255)
    return image


@pytest.fixture
def temp_output_dir(tmp_path):
    """
    Provide a temporary directory for exported files.

    Args:
        tmp_path: Pytest's built-in temporary directory fixture

    Returns:
        Path object pointing to a temporary directory
    """
    return tmp_path


@pytest.fixture
def checkerboard():
    """100x80 RGBA checkerboard source image."""
    return make_checkerboard(100, 80)


@pytest.fixture
def engine(checkerboard):
    """EditEngine with the checkerboard loaded."""
    editor = EditEngine()
    editor.load_source(checkerboard)
    return editor


@pytest.fixture
def png_file(tmp_path, checkerboard):
    """Checkerboard written as a PNG file."""
    path = tmp_path / "source.png"
    checkerboard.save(path, format="PNG")
    return path
