"""
Look Adjustment Operations.

Applies the user's hue/saturation/brightness/contrast/sharpness sliders to a
cached base buffer. Steps always run in this order and each one is skipped
when its slider is at zero:

1. Hue - rotate HSL hue
2. Saturation - interpolate HSL saturation toward 1 or 0
3. Brightness - interpolate HSL lightness toward 1 or 0
4. Contrast - scale RGB around the 128 midpoint
5. Sharpness - unsharp mask against a small Gaussian blur

Alpha is carried through unchanged by every step.

Example:
    >>> params = AdjustmentParameters(saturation=0.2, contrast=0.1)
    >>> adjusted = apply_adjustments(base_raster, params)
"""

from typing import Tuple

import numpy as np
from PIL import Image, ImageFilter

from SC_Libs.constants import (
    CONTRAST_MIDPOINT,
    HUE_DEGREES_PER_UNIT,
    SHARPEN_BLUR_RADIUS,
    SHARPEN_GAIN,
)
from SC_Libs.ImageEditingLib.raster_models import AdjustmentParameters, RasterImage, round_half_up


# ============================================================================
# HSL Conversion
# ============================================================================

def rgb_to_hsl(rgb: np.ndarray) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Convert RGB to HSL.

    Args:
        rgb: (..., 3) array of 0-255 channel values

    Returns:
        (hue, saturation, lightness) arrays: hue in degrees [0, 360),
        saturation and lightness in [0, 1]
    """
    rgb = rgb.astype(np.float64) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]

    max_c = rgb.max(axis=-1)
    min_c = rgb.min(axis=-1)
    delta = max_c - min_c
    lightness = (max_c + min_c) / 2.0

    chromatic = delta > 0
    safe_delta = np.where(chromatic, delta, 1.0)

    denominator = 1.0 - np.abs(2.0 * lightness - 1.0)
    saturation = np.where(
        chromatic & (denominator > 0),
        delta / np.where(denominator > 0, denominator, 1.0),
        0.0,
    )

    hue_r = ((g - b) / safe_delta) % 6.0
    hue_g = (b - r) / safe_delta + 2.0
    hue_b = (r - g) / safe_delta + 4.0
    hue = np.select([max_c == r, max_c == g], [hue_r, hue_g], default=hue_b) * 60.0
    hue = np.where(chromatic, hue, 0.0) % 360.0

    return hue, np.clip(saturation, 0.0, 1.0), lightness


def hsl_to_rgb(hue: np.ndarray, saturation: np.ndarray, lightness: np.ndarray) -> np.ndarray:
    """
    Convert HSL back to RGB.

    Returns:
        (..., 3) float array of 0-255 channel values (not yet rounded)
    """
    chroma = (1.0 - np.abs(2.0 * lightness - 1.0)) * saturation
    sector = (hue % 360.0) / 60.0
    x = chroma * (1.0 - np.abs(sector % 2.0 - 1.0))
    m = lightness - chroma / 2.0
    zero = np.zeros_like(chroma)

    index = np.floor(sector).astype(np.int64) % 6
    conditions = [index == i for i in range(6)]
    r = np.select(conditions, [chroma, x, zero, zero, x, chroma])
    g = np.select(conditions, [x, chroma, chroma, x, zero, zero])
    b = np.select(conditions, [zero, zero, x, chroma, chroma, x])

    return np.stack([r + m, g + m, b + m], axis=-1) * 255.0


def _interpolate_unit(values: np.ndarray, shift: float) -> np.ndarray:
    if shift > 0:
        values = values + (1.0 - values) * shift
    else:
        values = values * (1.0 + shift)
    return np.clip(values, 0.0, 1.0)


def _effective_hue_degrees(hue: float) -> float:
    return (hue * HUE_DEGREES_PER_UNIT) % 360.0


# ============================================================================
# Individual Steps
# ============================================================================

def apply_hsl_adjustments(
    rgb: np.ndarray,
    hue: float = 0.0,
    saturation: float = 0.0,
    brightness: float = 0.0,
) -> np.ndarray:
    """
    Apply the hue, saturation and brightness steps in one HSL round trip.

    Args:
        rgb: (..., 3) uint8 array

    Returns:
        (..., 3) uint8 array
    """
    h, s, l = rgb_to_hsl(rgb)

    degrees = _effective_hue_degrees(hue)
    if degrees != 0.0:
        h = (h + degrees) % 360.0
    if saturation != 0.0:
        s = _interpolate_unit(s, saturation)
    if brightness != 0.0:
        l = _interpolate_unit(l, brightness)

    return round_half_up(hsl_to_rgb(h, s, l))


def apply_contrast(rgb: np.ndarray, contrast: float) -> np.ndarray:
    """Scale channels around the midpoint: ``(c - 128) * (1 + contrast) + 128``."""
    scaled = (rgb.astype(np.float64) - CONTRAST_MIDPOINT) * (1.0 + contrast) + CONTRAST_MIDPOINT
    return round_half_up(scaled)


def apply_sharpness(rgb: np.ndarray, sharpness: float) -> np.ndarray:
    """
    Unsharp mask: ``orig + (orig - blur) * sharpness * 2``.

    The blur is a Gaussian of radius SHARPEN_BLUR_RADIUS over the RGB
    channels only.
    """
    blurred_image = Image.fromarray(np.ascontiguousarray(rgb, dtype=np.uint8)).filter(
        ImageFilter.GaussianBlur(radius=SHARPEN_BLUR_RADIUS)
    )
    original = rgb.astype(np.float64)
    blurred = np.asarray(blurred_image, dtype=np.float64)
    return round_half_up(original + (original - blurred) * sharpness * SHARPEN_GAIN)


# ============================================================================
# Pipeline
# ============================================================================

def apply_adjustments(raster: RasterImage, params: AdjustmentParameters) -> RasterImage:
    """
    Apply all look adjustments to a raster.

    Args:
        raster: Base (tinted, not yet composited) raster
        params: Adjustment sliders

    Returns:
        New RasterImage. With default parameters the pixels are an exact copy.

    Raises:
        TypeError: If raster or params have the wrong type
    """
    if not isinstance(raster, RasterImage):
        raise TypeError(f"Expected RasterImage, got {type(raster)}")
    if not isinstance(params, AdjustmentParameters):
        raise TypeError(f"Expected AdjustmentParameters, got {type(params)}")

    result = raster.pixels.copy()
    if params.is_default():
        return RasterImage(result)

    rgb = result[..., :3]

    if _effective_hue_degrees(params.hue) != 0.0 or params.saturation != 0.0 or params.brightness != 0.0:
        rgb = apply_hsl_adjustments(rgb, params.hue, params.saturation, params.brightness)

    if params.contrast != 0.0:
        rgb = apply_contrast(rgb, params.contrast)

    if params.sharpness != 0.0:
        rgb = apply_sharpness(rgb, params.sharpness)

    result[..., :3] = rgb
    return RasterImage(result)
