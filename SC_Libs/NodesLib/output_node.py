"""
Output Node for Spool Colorizer.

Writes encoded exports to disk with filenames built from delimited tags.

Supported tags (case-insensitive):
- {PRODUCT} - Product name (default: spool)
- {VARIANT} - Variant label, usually the hex color without '#'
- {BRAND} - Brand name
- {HEX} - Applied hex color without '#'
- {BACKGROUND} - 'white' or 'transparent'
- {GENERATION} or {GENERATION:width} - 1-based generation number
- {EXT} - File extension of the encoded data
- {DATE} or {DATE:format} - Current date (default: YYYY-MM-DD)

Classes:
    OutputNodeConfig: Configuration for output node
    OutputNodeHandler: Handles tag substitution and file writing

Functions:
    execute_output_node: Pipeline executor for output nodes
    create_output_node: Helper to create output node dictionary
"""

import logging
import re
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from SC_Libs.constants import (
    DEFAULT_FILENAME_PATTERN,
    DEFAULT_PRODUCT_NAME,
    FILENAME_REPLACEMENT_CHAR,
    NODE_TYPE_OUTPUT,
    SAFE_FILENAME_CHARS,
    WEBP_EXTENSION,
)
from SC_Libs.NodesLib.encoder_node import EncodeResult

logger = logging.getLogger(__name__)


@dataclass
class OutputNodeConfig:
    """Configuration for output node execution.

    Attributes:
        output_directory: Directory exports are written into
        filename_pattern: Filename with optional tags
        product: Value for {PRODUCT}
        brand: Value for {BRAND}
        variant: Value for {VARIANT} (default: the hex color)
        create_directories: Create the output directory if missing
        overwrite: Overwrite existing files
    """
    output_directory: str = "."
    filename_pattern: str = DEFAULT_FILENAME_PATTERN
    product: str = DEFAULT_PRODUCT_NAME
    brand: str = ""
    variant: str = ""
    create_directories: bool = True
    overwrite: bool = False

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "OutputNodeConfig":
        """Create from dictionary."""
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)


def sanitize_filename_part(value: str) -> str:
    """Replace characters outside [A-Za-z0-9-_.] with '_'."""
    return "".join(
        ch if ch.isalnum() or ch in SAFE_FILENAME_CHARS else FILENAME_REPLACEMENT_CHAR
        for ch in str(value)
    )


class OutputNodeHandler:
    """Handles dynamic filename generation and file I/O for exports."""

    DATE_PATTERN = r'\{DATE(?::([^\}]*))?\}'
    GENERATION_PATTERN = r'\{GENERATION(?::([^\}]*))?\}'
    SIMPLE_TAGS = ("PRODUCT", "VARIANT", "BRAND", "HEX", "BACKGROUND", "EXT")

    DEFAULT_DATE_FORMAT = "%Y-%m-%d"

    def __init__(self, config: OutputNodeConfig):
        self.config = config
        self._base_dir = Path(config.output_directory).resolve()

    def resolve_filename(
        self,
        hex_color: str = "",
        background: str = "",
        generation_index: int = 0,
        extension: str = WEBP_EXTENSION,
    ) -> Path:
        """
        Resolve the output path for one export.

        Raises:
            ValueError: If the pattern resolves outside the output directory
        """
        hex_clean = str(hex_color).lstrip("#").upper()
        values = {
            "PRODUCT": self.config.product,
            "VARIANT": self.config.variant or hex_clean,
            "BRAND": self.config.brand,
            "HEX": hex_clean,
            "BACKGROUND": background,
            "EXT": extension.lstrip("."),
        }

        filename = self.config.filename_pattern
        filename = self._replace_date(filename)
        filename = self._replace_generation(filename, generation_index)
        for tag in self.SIMPLE_TAGS:
            value = sanitize_filename_part(values[tag])
            filename = re.sub(r'\{' + tag + r'\}', lambda _m, v=value: v, filename, flags=re.IGNORECASE)

        return self._validate_output_path(filename)

    def _validate_output_path(self, filename: str) -> Path:
        path = Path(filename)
        if path.is_absolute() or ".." in path.parts:
            raise ValueError(f"Path traversal detected in filename pattern: {filename}")

        resolved = (self._base_dir / path).resolve()
        try:
            resolved.relative_to(self._base_dir)
        except ValueError:
            raise ValueError(
                f"Security: filename '{filename}' resolves to '{resolved}' "
                f"which is outside the output directory '{self._base_dir}'"
            )
        return resolved

    def save_bytes(self, data: bytes, output_file: Path) -> Path:
        """
        Write encoded bytes to a resolved path.

        Raises:
            ValueError: If file exists and overwrite=False
            OSError: If file cannot be written
        """
        if self.config.create_directories:
            output_file.parent.mkdir(parents=True, exist_ok=True)

        if output_file.exists() and not self.config.overwrite:
            raise ValueError(
                f"Output file already exists: {output_file}. "
                f"Set overwrite=True to replace."
            )

        try:
            output_file.write_bytes(data)
        except OSError as e:
            raise OSError(f"export write: failed to save {len(data)} bytes to {output_file}: {e}") from e

        logger.info(f"Wrote {len(data)} bytes to {output_file}")
        return output_file

    def _replace_date(self, text: str) -> str:
        def replacer(match):
            fmt = match.group(1) or self.DEFAULT_DATE_FORMAT
            try:
                return datetime.now().strftime(fmt)
            except (ValueError, TypeError) as e:
                raise ValueError(
                    f"Invalid date format string '{fmt}' in {{DATE}} tag: {str(e)}"
                )

        return re.sub(self.DATE_PATTERN, replacer, text, flags=re.IGNORECASE)

    def _replace_generation(self, text: str, generation_index: int) -> str:
        def replacer(match):
            width_str = match.group(1) or "0"
            try:
                width = int(width_str)
            except ValueError:
                width = 0
            return str(generation_index + 1).zfill(width)

        return re.sub(self.GENERATION_PATTERN, replacer, text, flags=re.IGNORECASE)


def execute_output_node(node: Dict[str, Any], inputs: List[Any]) -> Path:
    """
    Pipeline executor for output nodes.

    Node dict should contain OutputNodeConfig fields plus:
        - 'hex_color': Applied hex color
        - 'background_mode': Background label for {BACKGROUND}
        - 'generation_index': 0-based generation

    Inputs:
        - [0]: EncodeResult or raw bytes

    Returns:
        Path where the export was written
    """
    if not inputs:
        raise ValueError("Output node requires 1 encoded input")

    encoded = inputs[0]
    if isinstance(encoded, EncodeResult):
        data, extension = encoded.data, encoded.extension
    elif isinstance(encoded, (bytes, bytearray)):
        data, extension = bytes(encoded), node.get("extension", WEBP_EXTENSION)
    else:
        raise TypeError(f"Expected EncodeResult or bytes, got {type(encoded)}")

    handler = OutputNodeHandler(OutputNodeConfig.from_dict(node))
    output_file = handler.resolve_filename(
        hex_color=node.get("hex_color", ""),
        background=node.get("background_mode", ""),
        generation_index=int(node.get("generation_index", 0)),
        extension=extension,
    )
    return handler.save_bytes(data, output_file)


def create_output_node(
    node_id: str,
    output_directory: str = ".",
    filename_pattern: str = DEFAULT_FILENAME_PATTERN,
    hex_color: str = "",
    background_mode: str = "",
    generation_index: int = 0,
    product: str = DEFAULT_PRODUCT_NAME,
    brand: str = "",
    variant: Optional[str] = None,
    overwrite: bool = False,
) -> Dict[str, Any]:
    """
    Helper to create an output node dictionary.

    Examples:
        >>> create_output_node("out-1", "/exports", hex_color="#FF6600", brand="Acme")
        >>> create_output_node("out-2", "/exports", "{HEX}_{BACKGROUND}.{EXT}")
    """
    return {
        "id": node_id,
        "type": NODE_TYPE_OUTPUT,
        "output_directory": output_directory,
        "filename_pattern": filename_pattern,
        "hex_color": hex_color,
        "background_mode": background_mode,
        "generation_index": generation_index,
        "product": product,
        "brand": brand,
        "variant": variant or "",
        "overwrite": overwrite,
    }
