"""
Exception types raised by the Spool Colorizer pipeline.

Every message names the operation that failed and the byte lengths involved
so a batch report can be read without a debugger.
"""

from typing import Optional


class SpoolColorizerError(Exception):
    """Base class for pipeline errors."""

    def __init__(self, operation: str, message: str, byte_length: Optional[int] = None):
        self.operation = operation
        self.byte_length = byte_length
        detail = f"{operation}: {message}"
        if byte_length is not None:
            detail = f"{detail} ({byte_length} bytes)"
        super().__init__(detail)


class DecodeError(SpoolColorizerError, ValueError):
    """Input bytes could not be decoded into a raster."""


class EncodeError(SpoolColorizerError, RuntimeError):
    """An encoder attempt failed or produced no output."""


class AssetMissingError(SpoolColorizerError, KeyError):
    """A named template or overlay asset is not available."""

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return self.args[0] if self.args else ""


class ColorExtractionError(SpoolColorizerError, ValueError):
    """A color source did not yield a usable hex color."""
