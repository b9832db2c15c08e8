"""
Color Tint Filter.

Recolors the neutral spool template toward a target color while keeping its
shading. Each pixel is blended against the boosted target color with a
luminosity-gated blend:

- Shadows (L < 0.5): multiply, ``2 * L * target``
- Highlights (L >= 0.5): screen, ``255 - 2 * (1 - L) * (255 - target)``

Fully transparent pixels are passed through so the template's cutout
survives. Alpha is never changed.

Example:
    >>> template = RasterImage.from_bytes(template_bytes)
    >>> tinted = apply_color_tint(template, "#FF6600")
"""

from typing import Union

import numpy as np

from SC_Libs.constants import LUMA_BLUE, LUMA_GREEN, LUMA_RED, TINT_BLEND_SPLIT
from SC_Libs.ImageEditingLib.raster_models import ColorTint, RasterImage, round_half_up


def compute_luminance(rgb: np.ndarray) -> np.ndarray:
    """
    Per-pixel luminance in [0, 1].

    Args:
        rgb: (..., 3) array of 0-255 channel values

    Returns:
        Array of luminance values with the channel axis removed
    """
    rgb = rgb.astype(np.float64)
    return (LUMA_RED * rgb[..., 0] + LUMA_GREEN * rgb[..., 1] + LUMA_BLUE * rgb[..., 2]) / 255.0


def blend_luminosity(luminance: np.ndarray, boosted: np.ndarray) -> np.ndarray:
    """
    Apply the two-branch multiply/screen blend.

    Args:
        luminance: (...,) source luminance in [0, 1]
        boosted: (3,) boosted target channels

    Returns:
        (..., 3) float array, unclamped
    """
    lum = luminance[..., np.newaxis]
    multiply = 2.0 * lum * boosted
    screen = 255.0 - 2.0 * (1.0 - lum) * (255.0 - boosted)
    return np.where(lum < TINT_BLEND_SPLIT, multiply, screen)


def apply_color_tint(raster: RasterImage, tint: Union[str, ColorTint]) -> RasterImage:
    """
    Tint a template raster toward a target color.

    Args:
        raster: Template raster (may carry a transparent cutout)
        tint: '#RRGGBB' string or ColorTint

    Returns:
        New RasterImage with tinted RGB and the original alpha

    Raises:
        ValueError: If the hex color is malformed
        TypeError: If raster is not a RasterImage
    """
    if not isinstance(raster, RasterImage):
        raise TypeError(f"Expected RasterImage, got {type(raster)}")

    if not isinstance(tint, ColorTint):
        tint = ColorTint.from_hex(tint)

    boosted = np.array(tint.boosted, dtype=np.float64)
    source = raster.pixels
    result = source.copy()

    luminance = compute_luminance(source[..., :3])
    tinted = round_half_up(blend_luminosity(luminance, boosted))

    # Cutout pixels keep their original values
    visible = source[..., 3] > 0
    result[..., :3][visible] = tinted[visible]

    return RasterImage(result)
