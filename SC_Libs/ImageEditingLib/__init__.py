"""
ImageEditingLib - Core pixel operations

This module provides the raster models, the color tint filter and the
look adjustment operations for the Spool Colorizer project.
"""

from SC_Libs.ImageEditingLib.raster_models import (
    AdjustmentParameters,
    ColorizedImage,
    ColorTint,
    EncodingBudget,
    Layer,
    RasterImage,
    RgbaColor,
    parse_hex_color,
)
from SC_Libs.ImageEditingLib.color_tint_filter import apply_color_tint
from SC_Libs.ImageEditingLib.adjustment_filter import (
    apply_adjustments,
    hsl_to_rgb,
    rgb_to_hsl,
)
from SC_Libs.ImageEditingLib.image_editing_ops import (
    encode_raster,
    make_thumbnail,
    resize_raster,
)

__all__ = [
    "AdjustmentParameters",
    "ColorizedImage",
    "ColorTint",
    "EncodingBudget",
    "Layer",
    "RasterImage",
    "RgbaColor",
    "parse_hex_color",
    "apply_color_tint",
    "apply_adjustments",
    "hsl_to_rgb",
    "rgb_to_hsl",
    "encode_raster",
    "make_thumbnail",
    "resize_raster",
]
