"""
Export of redacted composites.

Turns the composite produced by EditEngine.export_composite() into bytes,
a data URL or a file. Any encoding or I/O failure surfaces as
ExportFailedError.

Classes:
    ExportConfig: Output format and file options

Functions:
    encode_composite: Serialize an image to PNG/JPEG/... bytes
    composite_to_data_url: Serialize to a base64 data URL
    save_composite: Write the composite to disk
"""

from dataclasses import asdict, dataclass
from io import BytesIO
from pathlib import Path
from typing import Any, Dict, Union
import base64
import logging

from BR_Libs.constants import (
    DEFAULT_EXPORT_FILENAME,
    DEFAULT_EXPORT_FORMAT,
    DEFAULT_JPEG_QUALITY,
)
from BR_Libs.errors import ExportFailedError
from BR_Libs.pillow_compat import Image

logger = logging.getLogger(__name__)

# Formats that cannot store an alpha channel
_OPAQUE_FORMATS = {"JPEG", "BMP"}


@dataclass
class ExportConfig:
    """Configuration for exporting a composite.

    Attributes:
        output_path: Target file path
        save_format: Image format (PNG, JPG/JPEG, BMP, WEBP; default PNG)
        quality: JPEG/WebP quality 1-100 (default 95)
        overwrite: Replace an existing file (default True)
        create_directories: Create missing parent directories (default True)
    """
    output_path: str = DEFAULT_EXPORT_FILENAME
    save_format: str = DEFAULT_EXPORT_FORMAT
    quality: int = DEFAULT_JPEG_QUALITY
    overwrite: bool = True
    create_directories: bool = True

    def normalized_format(self) -> str:
        # PIL uses "JPEG" not "JPG"
        save_format = self.save_format.upper()
        if save_format == "JPG":
            save_format = "JPEG"
        return save_format

    def get_save_kwargs(self) -> Dict[str, Any]:
        """Get PIL Image.save() kwargs based on format."""
        save_format = self.normalized_format()
        kwargs: Dict[str, Any] = {"format": save_format}

        if save_format in ("JPEG", "WEBP"):
            kwargs["quality"] = max(1, min(100, self.quality))

        return kwargs

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExportConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)


def _prepare(image: Any, save_format: str) -> Any:
    """Flatten alpha onto white for formats without transparency."""
    if save_format not in _OPAQUE_FORMATS or image.mode != "RGBA":
        return image
    background = Image.new("RGBA", image.size, (255, 255, 255, 255))
    background.alpha_composite(image)
    return background.convert("RGB")


def encode_composite(image: Any, config: ExportConfig = None) -> bytes:
    """
    Serialize a composite.

    Raises:
        ExportFailedError: If image is missing or cannot be encoded
    """
    if image is None:
        raise ExportFailedError("No composite to export")

    config = config or ExportConfig()
    kwargs = config.get_save_kwargs()
    buffer = BytesIO()
    try:
        _prepare(image, kwargs["format"]).save(buffer, **kwargs)
    except (OSError, ValueError, KeyError) as e:
        raise ExportFailedError(f"Could not encode composite as {kwargs['format']}: {e}") from e
    return buffer.getvalue()


def composite_to_data_url(image: Any, config: ExportConfig = None) -> str:
    """Serialize a composite as a base64 data URL."""
    config = config or ExportConfig()
    payload = base64.b64encode(encode_composite(image, config)).decode("ascii")
    media_type = f"image/{config.normalized_format().lower()}"
    return f"data:{media_type};base64,{payload}"


def save_composite(image: Any, config: ExportConfig = None,
                   output_path: Union[str, Path, None] = None) -> Path:
    """
    Write a composite to disk.

    Args:
        image: Composite from EditEngine.export_composite()
        config: Format and file options
        output_path: Overrides config.output_path

    Returns:
        Path written

    Raises:
        ExportFailedError: If the file exists and overwrite is off, or the
                           image cannot be encoded or written
    """
    config = config or ExportConfig()
    path = Path(output_path if output_path is not None else config.output_path)

    if path.exists() and not config.overwrite:
        raise ExportFailedError(f"File exists and overwrite is disabled: {path}")

    data = encode_composite(image, config)
    try:
        if config.create_directories:
            path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    except OSError as e:
        raise ExportFailedError(f"Could not write {path}: {e}") from e

    logger.info(f"Exported composite to {path}")
    return path
