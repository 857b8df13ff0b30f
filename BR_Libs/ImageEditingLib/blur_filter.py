"""
Blur Filter Operations for redaction.

Provides the blur algorithms used to obscure masked regions:
- Gaussian blur: single pass at a given radius
- Multi-pass blur: the total intensity split into several lighter passes,
  which approximates a smoother kernel than one large pass ("high quality")

Two backends compute the Gaussian:
- 'pil': ImageFilter.GaussianBlur (default)
- 'scipy': scipy.ndimage.gaussian_filter on a NumPy array

Example:
    >>> from PIL import Image
    >>> img = Image.open("scan.png").convert("RGBA")
    >>>
    >>> # One pass at full strength
    >>> blurred = apply_gaussian_blur(img, radius=10)
    >>>
    >>> # Five passes of radius 3 each
    >>> smooth = apply_multipass_blur(img, intensity=15, passes=5)
"""

from dataclasses import dataclass
from typing import Any, Dict

import numpy as np
from scipy import ndimage

from BR_Libs.constants import (
    BLUR_BACKEND_PIL,
    BLUR_BACKEND_SCIPY,
    BLUR_BACKENDS,
    DEFAULT_BLUR_INTENSITY,
    DEFAULT_BLUR_PASSES,
)
from BR_Libs.pillow_compat import Image, ImageFilter


# ============================================================================
# Gaussian Blur
# ============================================================================

def apply_gaussian_blur(
    image: Any,
    radius: float = 5.0,
    backend: str = BLUR_BACKEND_PIL,
) -> Any:
    """
    Apply Gaussian blur to image.

    Args:
        image: PIL Image
        radius: Blur radius in pixels (>= 0). 0 returns an unblurred copy.
        backend: 'pil' or 'scipy'

    Returns:
        Blurred PIL Image (same mode as input, palette images become RGB)

    Raises:
        ValueError: If radius < 0 or backend unknown
        TypeError: If image not PIL Image
    """
    if not hasattr(image, "filter"):
        raise TypeError(f"Expected PIL Image, got {type(image)}")

    if radius < 0:
        raise ValueError(f"radius must be >= 0, got {radius}")

    if backend not in BLUR_BACKENDS:
        raise ValueError(f"Invalid backend: {backend}. Use one of {', '.join(BLUR_BACKENDS)}.")

    if image.mode == "P":
        image = image.convert("RGB")

    if radius == 0:
        return image.copy()

    if backend == BLUR_BACKEND_SCIPY:
        return _gaussian_blur_scipy(image, radius)

    return image.filter(ImageFilter.GaussianBlur(radius=radius))


def _gaussian_blur_scipy(image: Any, radius: float) -> Any:
    """
    Gaussian blur through scipy.ndimage.

    Uses the radius as the standard deviation, which is what
    ImageFilter.GaussianBlur does, and blurs each channel independently.
    """
    array = np.asarray(image, dtype=np.float32)
    if array.ndim == 3:
        sigma = (radius, radius, 0)
    else:
        sigma = radius

    blurred = ndimage.gaussian_filter(array, sigma=sigma, mode="nearest")
    blurred = np.clip(np.rint(blurred), 0, 255).astype(np.uint8)
    return Image.fromarray(blurred)


# ============================================================================
# Multi-pass Blur
# ============================================================================

def apply_multipass_blur(
    image: Any,
    intensity: float = DEFAULT_BLUR_INTENSITY,
    passes: int = DEFAULT_BLUR_PASSES,
    backend: str = BLUR_BACKEND_PIL,
) -> Any:
    """
    Blur in `passes` sequential passes of radius intensity / passes each.

    Args:
        image: PIL Image
        intensity: Total blur strength (>= 0)
        passes: Number of passes (>= 1)
        backend: 'pil' or 'scipy'

    Returns:
        Blurred PIL Image

    Raises:
        ValueError: If intensity or passes out of range
        TypeError: If image not PIL Image
    """
    passes = int(passes)
    if passes < 1:
        raise ValueError(f"passes must be >= 1, got {passes}")

    if intensity < 0:
        raise ValueError(f"intensity must be >= 0, got {intensity}")

    per_pass = intensity / passes
    result = image
    for _ in range(passes):
        result = apply_gaussian_blur(result, per_pass, backend)
    return result


def apply_redaction_blur(
    image: Any,
    intensity: float,
    passes: int,
    high_quality: bool = True,
    backend: str = BLUR_BACKEND_PIL,
) -> Any:
    """
    Blur for redaction in the selected quality mode.

    High quality splits the intensity over `passes` passes. Low quality
    runs a single pass at full intensity and ignores `passes`.
    """
    if high_quality:
        return apply_multipass_blur(image, intensity, passes, backend)
    return apply_gaussian_blur(image, intensity, backend)


# ============================================================================
# Blur Settings
# ============================================================================

@dataclass
class BlurSettings:
    """Blur parameters used by the compositor.

    Attributes:
        intensity: Total blur strength in pixels (>= 0)
        passes: Number of passes in high quality mode (>= 1)
        high_quality: Multi-pass (True) or single pass (False)
        backend: 'pil' or 'scipy'
    """
    intensity: float = DEFAULT_BLUR_INTENSITY
    passes: int = DEFAULT_BLUR_PASSES
    high_quality: bool = True
    backend: str = BLUR_BACKEND_PIL

    def __post_init__(self):
        """Validate parameters."""
        if self.intensity < 0:
            raise ValueError(f"intensity must be >= 0, got {self.intensity}")

        if int(self.passes) < 1:
            raise ValueError(f"passes must be >= 1, got {self.passes}")
        self.passes = int(self.passes)

        if self.backend not in BLUR_BACKENDS:
            raise ValueError(f"Unknown backend: {self.backend}")

    def cache_key(self):
        """Parameters that determine the blurred source."""
        return (float(self.intensity), self.passes, self.high_quality, self.backend)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "intensity": self.intensity,
            "passes": self.passes,
            "high_quality": self.high_quality,
            "backend": self.backend,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BlurSettings":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items()
                   if k in cls.__dataclass_fields__}
        return cls(**filtered)
