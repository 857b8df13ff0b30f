"""
ImageEditingLib - Core redaction functionality

This module provides masks, blur filters, the blur compositor and the
edit engine for the Blur Redactor project.
"""

from BR_Libs.ImageEditingLib.region_set import Rect, RegionSet
from BR_Libs.ImageEditingLib.mask_surface import MaskSurface
from BR_Libs.ImageEditingLib.blur_filter import (
    BlurSettings,
    apply_gaussian_blur,
    apply_multipass_blur,
    apply_redaction_blur,
)
from BR_Libs.ImageEditingLib.blur_compositor import BlurCompositor
from BR_Libs.ImageEditingLib.edit_engine import EditEngine
from BR_Libs.ImageEditingLib.image_loader import (
    load_source_image,
    load_source_image_async,
)
from BR_Libs.ImageEditingLib.export_ops import (
    ExportConfig,
    encode_composite,
    composite_to_data_url,
    save_composite,
)

__all__ = [
    "Rect",
    "RegionSet",
    "MaskSurface",
    "BlurSettings",
    "apply_gaussian_blur",
    "apply_multipass_blur",
    "apply_redaction_blur",
    "BlurCompositor",
    "EditEngine",
    "load_source_image",
    "load_source_image_async",
    "ExportConfig",
    "encode_composite",
    "composite_to_data_url",
    "save_composite",
]
