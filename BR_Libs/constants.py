"""
Constants and configuration values for Blur Redactor.

This module centralizes all constant values, magic numbers, and
configuration settings used throughout the application.
"""

# Mask targets
TARGET_COMMITTED = "committed"
TARGET_SCRATCH = "scratch"
MASK_TARGETS = (TARGET_COMMITTED, TARGET_SCRATCH)

# Mask values (single channel, "L" mode)
MASK_MODE = "L"
MASK_OPAQUE = 255
MASK_TRANSPARENT = 0

# Dirty region tracking
DIRTY_REGION_LIMIT = 20
DIRTY_REGION_MARGIN = 5
BOUNDS_SAMPLE_STRIDE = 4

# Blur
DEFAULT_BLUR_INTENSITY = 15.0
DEFAULT_BLUR_PASSES = 5
MAX_BLUR_INTENSITY = 100.0
BLUR_BACKEND_PIL = "pil"
BLUR_BACKEND_SCIPY = "scipy"
BLUR_BACKENDS = (BLUR_BACKEND_PIL, BLUR_BACKEND_SCIPY)

# Scratch highlight overlay (in-progress gesture)
SCRATCH_HIGHLIGHT_COLOR = (255, 0, 0)
SCRATCH_HIGHLIGHT_ALPHA = 0.5

# History
DEFAULT_HISTORY_CAPACITY = 20
THUMBNAIL_WIDTH = 100
THUMBNAIL_HEIGHT = 75
THUMBNAIL_BLUR_RADIUS = 3.0

# History strip geometry
STRIP_THUMB_WIDTH = 60
STRIP_THUMB_HEIGHT = 45
STRIP_SPACING = 10
STRIP_TOP = 10
STRIP_LABEL_OFFSET = 15
STRIP_CURRENT_BORDER_COLOR = "#ff0000"

# Source loading
MAX_SOURCE_DIMENSION = 2500
SUPPORTED_FORMATS = {"JPEG", "PNG", "GIF", "BMP", "WEBP"}
SUPPORTED_MEDIA_TYPES = {
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/bmp",
    "image/webp",
}
SUPPORTED_PAGE_FORMATS = {"TIFF", "GIF"}

# Simulated document pages (A4 at 72 dpi)
PLACEHOLDER_PAGE_WIDTH = 595
PLACEHOLDER_PAGE_HEIGHT = 842
PLACEHOLDER_PAGE_COUNT = 3

# Editor defaults
TOOL_BRUSH = "brush"
TOOL_RECTANGLE = "rectangle"
TOOL_ELLIPSE = "ellipse"
TOOLS = (TOOL_BRUSH, TOOL_RECTANGLE, TOOL_ELLIPSE)
DEFAULT_TOOL = TOOL_BRUSH
DEFAULT_BRUSH_SIZE = 20
DEFAULT_VIEWPORT_WIDTH = 800
DEFAULT_VIEWPORT_HEIGHT = 600

# Zoom
MIN_SCALE = 0.1
MAX_SCALE = 5.0
ZOOM_STEP = 1.2
WHEEL_ZOOM_STEP = 1.1

# Rendering
MIN_RENDER_INTERVAL_MS = 16.0

# Export
DEFAULT_EXPORT_FORMAT = "PNG"
DEFAULT_EXPORT_FILENAME = "redacted-image.png"
DEFAULT_JPEG_QUALITY = 95
