"""
Source image loading for the redactor.

Decodes an image file, checks that its format is one the redactor accepts,
converts it to RGBA and shrinks it so neither side exceeds the maximum
source dimension. Loading can run on a worker thread through
load_source_image_async(), which returns a concurrent.futures.Future.

Functions:
    load_source_image: Decode and normalise an image file
    load_source_image_async: Same, on an executor
    fit_within: Downscale an image to a maximum dimension
    is_supported_media_type: Check a MIME type against the allow-list
"""

from concurrent.futures import Executor, Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Optional, Union
import logging

from BR_Libs.constants import (
    MAX_SOURCE_DIMENSION,
    SUPPORTED_FORMATS,
    SUPPORTED_MEDIA_TYPES,
)
from BR_Libs.errors import InvalidInputError, UnsupportedFormatError
from BR_Libs.pillow_compat import Image

logger = logging.getLogger(__name__)

_default_executor: Optional[ThreadPoolExecutor] = None


def is_supported_media_type(media_type: str) -> bool:
    return str(media_type).strip().lower() in SUPPORTED_MEDIA_TYPES


def fit_within(image: Any, max_dimension: int = MAX_SOURCE_DIMENSION) -> Any:
    """
    Downscale so that neither side exceeds max_dimension.

    The longer side becomes max_dimension and the other side is scaled
    proportionally and rounded. Images that already fit are returned as is.
    """
    width, height = image.size
    if width <= max_dimension and height <= max_dimension:
        return image

    if width > height:
        new_width = max_dimension
        new_height = max(1, int(round(height * (max_dimension / width))))
    else:
        new_height = max_dimension
        new_width = max(1, int(round(width * (max_dimension / height))))

    logger.info(f"Downscaling source from {width}x{height} to {new_width}x{new_height}")
    return image.resize((new_width, new_height), Image.Resampling.LANCZOS)


def load_source_image(
    file_path: Union[str, Path],
    max_dimension: int = MAX_SOURCE_DIMENSION,
) -> Any:
    """
    Load an image file for redaction.

    Args:
        file_path: Path to a JPEG, PNG, GIF, BMP or WebP file
        max_dimension: Longest allowed side after loading

    Returns:
        RGBA PIL Image

    Raises:
        InvalidInputError: If the file is missing, unreadable or corrupted
        UnsupportedFormatError: If the file decodes to a format not accepted
    """
    if file_path is None or str(file_path).strip() == "":
        raise InvalidInputError("No file provided")

    path = Path(file_path)
    if not path.exists():
        raise InvalidInputError(f"Image file not found: {path}")

    if not path.is_file():
        raise InvalidInputError(f"Path is not a file: {path}")

    try:
        with Image.open(path) as img:
            image_format = (img.format or "").upper()
            if image_format not in SUPPORTED_FORMATS:
                raise UnsupportedFormatError(
                    f"Unsupported image format '{img.format}'. Use JPEG, PNG, GIF, BMP or WebP."
                )
            img.load()
            image = img.convert("RGBA")
    except UnsupportedFormatError:
        raise
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError) as e:
        raise InvalidInputError(
            f"Failed to load image from {path}. The file may be corrupted: {e}"
        ) from e

    if image.width == 0 or image.height == 0:
        raise InvalidInputError(f"Image has no pixels: {path}")

    image = fit_within(image, max_dimension)
    logger.info(f"Loaded {path.name} ({image_format}, {image.width}x{image.height})")
    return image


def _get_default_executor() -> ThreadPoolExecutor:
    global _default_executor
    if _default_executor is None:
        _default_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="image-loader")
    return _default_executor


def load_source_image_async(
    file_path: Union[str, Path],
    executor: Optional[Executor] = None,
    max_dimension: int = MAX_SOURCE_DIMENSION,
) -> Future:
    """
    Load an image on a worker thread.

    Returns:
        Future resolving to the RGBA image, or raising the same errors as
        load_source_image()
    """
    executor = executor or _get_default_executor()
    return executor.submit(load_source_image, file_path, max_dimension)
