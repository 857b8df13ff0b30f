"""
Single import point for the Pillow modules used by the redactor.

Re-exports `Image`, `ImageChops`, `ImageDraw`, `ImageFilter` and `ImageFont`,
plus `ImageClass` (`PIL.Image.Image`) for type hints. A missing Pillow
install fails here with an install hint.
"""
from importlib import import_module

try:
    Image = import_module("PIL.Image")
except ImportError as e:
    raise ImportError("Pillow is required: install with 'pip install Pillow'") from e

ImageChops = import_module("PIL.ImageChops")
ImageDraw = import_module("PIL.ImageDraw")
ImageFilter = import_module("PIL.ImageFilter")
ImageFont = import_module("PIL.ImageFont")

ImageClass = Image.Image
