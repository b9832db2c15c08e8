"""
Raster and parameter data models for Spool Colorizer.

This module defines the core data structures passed between pipeline stages.

Classes:
    RasterImage: RGBA8 pixel buffer backed by one contiguous numpy array
    ColorTint: Target color plus its derived vibrancy boost
    AdjustmentParameters: User-tunable look adjustments
    Layer: A raster with its compositing role
    EncodingBudget: Byte ceiling, target dimensions and losslessness
    ColorizedImage: Record of one generated recolor variant

Functions:
    parse_hex_color: Parse '#RRGGBB' into an RGB tuple

Type Aliases:
    RgbaColor: A tuple of 4 integers representing RGBA color values (0-255)
"""

import io
import re
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple

import numpy as np
from PIL import Image, UnidentifiedImageError

from SC_Libs.constants import (
    BASE_BUFFER_FORMAT,
    DEFAULT_MAX_BYTES,
    DEFAULT_STARTING_QUALITY,
    DEFAULT_TARGET_SIZE,
    LUMA_BLUE,
    LUMA_GREEN,
    LUMA_RED,
    MAX_GENERATIONS,
    TINT_DARK_BOOST,
    TINT_DARK_LUMINANCE_THRESHOLD,
    TINT_LIGHT_BOOST,
)
from SC_Libs.errors import DecodeError

RgbaColor = Tuple[int, int, int, int]
RgbColor = Tuple[int, int, int]

_HEX_PATTERN = re.compile(r"^#?([0-9A-Fa-f]{6})$")


def parse_hex_color(hex_color: str) -> RgbColor:
    """
    Parse a hex color string into an RGB tuple.

    Args:
        hex_color: '#RRGGBB' or 'RRGGBB', case-insensitive

    Returns:
        (r, g, b) tuple with values 0-255

    Raises:
        ValueError: If the string is not a 6-digit hex color
    """
    match = _HEX_PATTERN.match(str(hex_color).strip())
    if match is None:
        raise ValueError(f"Invalid hex color: {hex_color!r}")

    code = match.group(1)
    return int(code[0:2], 16), int(code[2:4], 16), int(code[4:6], 16)


def round_half_up(values: np.ndarray) -> np.ndarray:
    """Round to nearest with halves going up, then clamp to [0, 255] as uint8."""
    return np.clip(np.floor(values + 0.5), 0, 255).astype(np.uint8)


class RasterImage:
    """
    RGBA8 raster held as a single contiguous (height, width, 4) uint8 array.

    A RasterImage is owned by whichever stage is transforming it. Stages
    return new rasters instead of writing into their input.
    """

    __slots__ = ("pixels",)

    def __init__(self, pixels: np.ndarray):
        if not isinstance(pixels, np.ndarray):
            raise TypeError(f"Expected numpy array, got {type(pixels)}")
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) array, got shape {pixels.shape}")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    @classmethod
    def blank(cls, width: int, height: int, fill: RgbaColor = (0, 0, 0, 0)) -> "RasterImage":
        """Create a raster filled with one color."""
        if width <= 0 or height <= 0:
            raise ValueError(f"Raster dimensions must be positive, got {width}x{height}")
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = fill
        return cls(pixels)

    @classmethod
    def from_pil(cls, image: Any) -> "RasterImage":
        """Create a raster from a Pillow image (converted to RGBA)."""
        if not hasattr(image, "convert"):
            raise TypeError(f"Expected PIL Image, got {type(image)}")
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    @classmethod
    def from_bytes(cls, data: bytes, operation: str = "decode") -> "RasterImage":
        """
        Decode encoded image bytes (PNG, JPEG, WebP, ...) into a raster.

        Raises:
            DecodeError: If the bytes are empty or not a readable image
        """
        if not data:
            raise DecodeError(operation, "no image data", 0)

        try:
            with Image.open(io.BytesIO(data)) as image:
                image.load()
                return cls.from_pil(image)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, SyntaxError) as e:
            raise DecodeError(operation, f"unreadable image data: {e}", len(data)) from e

    def to_pil(self) -> Any:
        """Return a Pillow RGBA image sharing no memory with this raster."""
        return Image.fromarray(self.pixels.copy())

    def to_png_bytes(self) -> bytes:
        """Encode the raster losslessly; used for cached base buffers."""
        buffer = io.BytesIO()
        self.to_pil().save(buffer, format=BASE_BUFFER_FORMAT)
        return buffer.getvalue()

    def copy(self) -> "RasterImage":
        return RasterImage(self.pixels.copy())

    def pixel(self, x: int, y: int) -> RgbaColor:
        r, g, b, a = (int(v) for v in self.pixels[y, x])
        return r, g, b, a

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        return f"RasterImage({self.width}x{self.height})"


@dataclass(frozen=True)
class ColorTint:
    """Target tint color with its vibrancy boost.

    Darker targets (luminance < 128) get a stronger boost so the recolored
    spool does not look muddy.
    """
    red: int
    green: int
    blue: int

    @classmethod
    def from_hex(cls, hex_color: str) -> "ColorTint":
        r, g, b = parse_hex_color(hex_color)
        return cls(r, g, b)

    @property
    def luminance(self) -> float:
        return LUMA_RED * self.red + LUMA_GREEN * self.green + LUMA_BLUE * self.blue

    @property
    def boost_factor(self) -> float:
        return TINT_DARK_BOOST if self.luminance < TINT_DARK_LUMINANCE_THRESHOLD else TINT_LIGHT_BOOST

    @property
    def boosted(self) -> Tuple[float, float, float]:
        boost = self.boost_factor
        return tuple(
            max(0.0, min(255.0, channel * boost))
            for channel in (self.red, self.green, self.blue)
        )

    @property
    def hex(self) -> str:
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}"


@dataclass
class AdjustmentParameters:
    """Look adjustments applied to the base buffer.

    Attributes:
        hue: Hue rotation, -1.0 to 1.0 (one unit is a full turn)
        saturation: -1.0 (grayscale) to 1.0 (fully saturated)
        brightness: -1.0 (black) to 1.0 (white), applied to HSL lightness
        contrast: -1.0 (flat gray) to 1.0 (double contrast)
        sharpness: 0.0 to 1.0 unsharp-mask amount
    """
    hue: float = 0.0
    saturation: float = 0.0
    brightness: float = 0.0
    contrast: float = 0.0
    sharpness: float = 0.0

    def __post_init__(self):
        for name in ("hue", "saturation", "brightness", "contrast"):
            value = float(getattr(self, name))
            if not (-1.0 <= value <= 1.0):
                raise ValueError(f"{name} must be -1.0-1.0, got {value}")
            setattr(self, name, value)

        self.sharpness = float(self.sharpness)
        if not (0.0 <= self.sharpness <= 1.0):
            raise ValueError(f"sharpness must be 0.0-1.0, got {self.sharpness}")

    def is_default(self) -> bool:
        return self == AdjustmentParameters()

    @staticmethod
    def reset() -> "AdjustmentParameters":
        return AdjustmentParameters()

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AdjustmentParameters":
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)


@dataclass
class Layer:
    """A raster in the compositing stack.

    Attributes:
        raster: Pixels for this layer
        role: 'background', 'template' or 'overlay'
    """
    raster: RasterImage
    role: str = "template"


@dataclass(frozen=True)
class EncodingBudget:
    """Constraints for one encode request.

    Attributes:
        max_bytes: Largest acceptable output in bytes
        target_size: Output (width, height) in pixels
        lossless: Alpha-preserving exports stay lossless even over budget
        starting_quality: First quality tried by the lossy search
    """
    max_bytes: int = DEFAULT_MAX_BYTES
    target_size: Tuple[int, int] = (DEFAULT_TARGET_SIZE, DEFAULT_TARGET_SIZE)
    lossless: bool = False
    starting_quality: int = DEFAULT_STARTING_QUALITY

    def __post_init__(self):
        if self.max_bytes <= 0:
            raise ValueError(f"max_bytes must be positive, got {self.max_bytes}")
        width, height = self.target_size
        if width <= 0 or height <= 0:
            raise ValueError(f"target_size must be positive, got {self.target_size}")
        if not (1 <= self.starting_quality <= 100):
            raise ValueError(f"starting_quality must be 1-100, got {self.starting_quality}")


@dataclass
class ColorizedImage:
    """One generated recolor of the template.

    Pixel data is kept in the image cache, keyed by ``id``.
    """
    source_image_id: str
    group_id: str
    applied_hex: str
    generation_index: int = 0
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self):
        if not (0 <= self.generation_index < MAX_GENERATIONS):
            raise ValueError(
                f"generation_index must be 0-{MAX_GENERATIONS - 1}, got {self.generation_index}"
            )

    @property
    def cache_key(self) -> Tuple[str, int]:
        return self.group_id, self.generation_index


def describe_raster(raster: Optional[RasterImage]) -> str:
    """Short description used in log and error messages."""
    if raster is None:
        return "<no raster>"
    return f"{raster.width}x{raster.height} RGBA ({raster.pixels.nbytes} bytes)"
