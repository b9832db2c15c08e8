"""
Color sources: turn a reference photo into a validated '#RRGGBB' string.

No network client lives here; a remote model can be plugged in by
implementing ColorSource and returning its text through
extract_hex_from_text().
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Protocol, Sequence, runtime_checkable

import numpy as np

from SC_Libs.errors import ColorExtractionError
from SC_Libs.ImageEditingLib.raster_models import RasterImage, parse_hex_color

logger = logging.getLogger(__name__)

HEX_PATTERN = re.compile(r"#[0-9A-Fa-f]{6}")


@dataclass(frozen=True)
class ColorExtractionResult:
    hex_color: str
    raw_response: Optional[str] = None


@runtime_checkable
class ColorSource(Protocol):
    def extract_color(self, image_bytes: bytes) -> ColorExtractionResult:
        ...


def extract_hex_from_text(text: Optional[str]) -> str:
    """
    Pull the first '#RRGGBB' out of free text.

    Returns:
        Upper-case hex color

    Raises:
        ColorExtractionError: If the text contains no hex color
    """
    if not text:
        raise ColorExtractionError("color extraction", "empty response")

    match = HEX_PATTERN.search(text)
    if match is None:
        raise ColorExtractionError(
            "color extraction", f"no hex color found in response: {text[:80]!r}", len(text)
        )
    return match.group(0).upper()


class StaticColorSource:
    """Returns the same color for every image."""

    def __init__(self, hex_color: str):
        red, green, blue = parse_hex_color(hex_color)
        self.hex_color = f"#{red:02X}{green:02X}{blue:02X}"

    def extract_color(self, image_bytes: bytes) -> ColorExtractionResult:
        return ColorExtractionResult(hex_color=self.hex_color)


class AverageColorSource:
    """
    Mean color of the visible pixels of a photo.

    A rough local estimate; it does not compensate for lighting.
    """

    def extract_color(self, image_bytes: bytes) -> ColorExtractionResult:
        raster = RasterImage.from_bytes(image_bytes, operation="color extraction")
        visible = raster.pixels[raster.pixels[..., 3] > 0][:, :3]
        if visible.size == 0:
            raise ColorExtractionError(
                "color extraction", "image has no visible pixels", len(image_bytes)
            )

        mean = np.floor(visible.astype(np.float64).mean(axis=0) + 0.5).astype(int)
        hex_color = "#{:02X}{:02X}{:02X}".format(*mean)
        logger.debug(f"Average color of {len(image_bytes)} bytes: {hex_color}")
        return ColorExtractionResult(hex_color=hex_color)


def extract_color_from_images(source: ColorSource, images: Sequence[bytes]) -> str:
    """
    Combine per-image results for several photos of the same spool.

    Channels are averaged across the photos that yielded a color.

    Raises:
        ColorExtractionError: If no images are given or none yields a color
    """
    if not images:
        raise ColorExtractionError("color extraction", "no images provided")

    colors: List[tuple] = []
    for index, data in enumerate(images):
        try:
            colors.append(parse_hex_color(source.extract_color(data).hex_color))
        except (ColorExtractionError, ValueError) as e:
            logger.warning(f"Color extraction failed for image {index}: {e}")

    if not colors:
        raise ColorExtractionError("color extraction", f"all {len(images)} images failed")

    mean = np.floor(np.asarray(colors, dtype=np.float64).mean(axis=0) + 0.5).astype(int)
    return "#{:02X}{:02X}{:02X}".format(*mean)
