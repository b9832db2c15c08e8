"""
Core image editing operations for Spool Colorizer.

This module provides low-level helpers shared by the pipeline stages.

Functions:
    resize_raster: Resize a raster with bicubic interpolation
    encode_raster: Encode a raster with Pillow
    make_thumbnail: Produce a small JPEG preview of imported image bytes
"""

import io
from typing import Any, Tuple

from PIL import Image

from SC_Libs.ImageEditingLib.raster_models import RasterImage

THUMBNAIL_MAX_DIMENSION = 200
THUMBNAIL_QUALITY = 80


def resize_raster(raster: RasterImage, size: Tuple[int, int]) -> RasterImage:
    """
    Resize a raster to (width, height) with bicubic interpolation.

    Returns the same pixels (copied) if the size already matches.
    """
    if raster.size == tuple(size):
        return raster.copy()

    resized = raster.to_pil().resize(tuple(size), Image.Resampling.BICUBIC)
    return RasterImage.from_pil(resized)


def encode_raster(raster: RasterImage, save_format: str, **save_kwargs: Any) -> bytes:
    """
    Encode a raster with Pillow.

    JPEG has no alpha channel, so rasters are flattened to RGB for it.

    Args:
        raster: Pixels to encode
        save_format: Pillow format name ('WEBP', 'PNG', 'JPEG', ...)
        **save_kwargs: Passed through to Image.save()

    Returns:
        Encoded bytes
    """
    image = raster.to_pil()
    if save_format.upper() in ("JPG", "JPEG"):
        save_format = "JPEG"
        image = image.convert("RGB")

    buffer = io.BytesIO()
    image.save(buffer, format=save_format, **save_kwargs)
    return buffer.getvalue()


def make_thumbnail(data: bytes) -> bytes:
    """
    Build a JPEG thumbnail whose longer side is THUMBNAIL_MAX_DIMENSION.

    Raises:
        DecodeError: If the source bytes cannot be decoded
    """
    raster = RasterImage.from_bytes(data, operation="thumbnail")
    image = raster.to_pil()
    image.thumbnail((THUMBNAIL_MAX_DIMENSION, THUMBNAIL_MAX_DIMENSION), Image.Resampling.BICUBIC)
    return encode_raster(RasterImage.from_pil(image), "JPEG", quality=THUMBNAIL_QUALITY)
