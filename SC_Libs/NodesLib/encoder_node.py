"""
Size-Constrained Encoder Node.

Encodes the composited canvas to WebP (or JPEG) under a byte budget.

Encoders:
    - CwebpEncoder: runs the ``cwebp`` command-line tool with a timeout.
      Input and output files live in a temporary directory that is removed
      on every exit path.
    - PillowWebpEncoder: in-process encoder used when cwebp is unavailable.
    - PillowJpegEncoder: flattened JPEG exports; no alpha, no lossless mode.

Search:
    Lossless (alpha-preserving) requests are encoded once; going over the
    budget is accepted. Lossy requests walk quality down from the starting
    value (-10 above 50, -5 above 20, -2 below; JPEG uses a fixed -5 down
    to 10) and return the first result that fits. If nothing fits, the
    smallest result seen is returned with ``budget_met=False``. Only a
    request where every attempt failed raises EncodeError.

    Idle -> Attempting(Q) -> Success | Retry(Q') | Exhausted

Example:
    >>> encoder = SizeConstrainedEncoder(resolve_encoder())
    >>> result = encoder.encode(canvas, EncodingBudget(max_bytes=150 * 1024))
    >>> result.budget_met, result.quality, len(result.data)
"""

import logging
import shutil
import subprocess
import tempfile
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Protocol, Tuple, runtime_checkable

from SC_Libs.constants import (
    CWEBP_BINARY_NAME,
    DEFAULT_MAX_BYTES,
    DEFAULT_STARTING_QUALITY,
    DEFAULT_TARGET_SIZE,
    ENCODER_TIMEOUT_SECONDS,
    JPEG_EXTENSION,
    JPEG_FORMAT,
    JPEG_MIN_QUALITY,
    JPEG_QUALITY_STEP,
    LOSSLESS_QUALITY,
    MIN_QUALITY,
    NODE_TYPE_ENCODE,
    OUTPUT_FORMAT_JPEG,
    OUTPUT_FORMAT_WEBP,
    OUTPUT_FORMATS,
    WEBP_EXTENSION,
    WEBP_FORMAT,
)
from SC_Libs.errors import EncodeError
from SC_Libs.ImageEditingLib.image_editing_ops import encode_raster, resize_raster
from SC_Libs.ImageEditingLib.raster_models import EncodingBudget, RasterImage

logger = logging.getLogger(__name__)


# ============================================================================
# Encoders
# ============================================================================

@runtime_checkable
class Encoder(Protocol):
    """Something that turns a raster into encoded bytes at a quality level."""

    name: str
    extension: str

    def encode(
        self,
        raster: RasterImage,
        quality: int,
        lossless: bool,
        target_size: Tuple[int, int],
    ) -> bytes:
        ...


class PillowWebpEncoder:
    """In-process WebP encoder backed by Pillow."""

    name = "pillow-webp"
    extension = WEBP_EXTENSION

    def __init__(self, method: int = 4):
        self.method = method

    def encode(
        self,
        raster: RasterImage,
        quality: int,
        lossless: bool,
        target_size: Tuple[int, int],
    ) -> bytes:
        resized = resize_raster(raster, target_size)
        kwargs: Dict[str, Any] = {"quality": int(quality), "method": self.method}
        if lossless:
            kwargs["lossless"] = True
            kwargs["exact"] = True

        try:
            data = encode_raster(resized, WEBP_FORMAT, **kwargs)
        except (OSError, ValueError) as e:
            raise EncodeError(
                "webp encode",
                f"Pillow failed at quality {quality}: {e}",
                resized.pixels.nbytes,
            ) from e

        if not data:
            raise EncodeError("webp encode", f"Pillow produced no output at quality {quality}", 0)
        return data


class PillowJpegEncoder:
    """
    JPEG encoder backed by Pillow.

    The canvas is flattened to RGB, so transparent areas take the color of
    their RGB channels. Quality steps down by JPEG_QUALITY_STEP and stops at
    JPEG_MIN_QUALITY.
    """

    name = "pillow-jpeg"
    extension = JPEG_EXTENSION
    quality_step = JPEG_QUALITY_STEP
    min_quality = JPEG_MIN_QUALITY

    def encode(
        self,
        raster: RasterImage,
        quality: int,
        lossless: bool,
        target_size: Tuple[int, int],
    ) -> bytes:
        if lossless:
            raise EncodeError("jpeg encode", "JPEG has no lossless mode", raster.pixels.nbytes)

        resized = resize_raster(raster, target_size)
        try:
            data = encode_raster(resized, JPEG_FORMAT, quality=int(quality))
        except (OSError, ValueError) as e:
            raise EncodeError(
                "jpeg encode",
                f"Pillow failed at quality {quality}: {e}",
                resized.pixels.nbytes,
            ) from e

        if not data:
            raise EncodeError("jpeg encode", f"Pillow produced no output at quality {quality}", 0)
        return data


class CwebpEncoder:
    """WebP encoder that shells out to the cwebp binary."""

    name = "cwebp"
    extension = WEBP_EXTENSION

    def __init__(self, binary_path: str, timeout: float = ENCODER_TIMEOUT_SECONDS):
        self.binary_path = str(binary_path)
        self.timeout = float(timeout)

    def build_arguments(
        self,
        input_path: Path,
        output_path: Path,
        quality: int,
        lossless: bool,
        target_size: Tuple[int, int],
    ) -> List[str]:
        args = [self.binary_path, "-quiet"]
        if lossless:
            args += ["-lossless", "-exact", "-alpha_q", "100"]
        args += ["-q", str(int(quality))]
        width, height = target_size
        args += ["-resize", str(width), str(height)]
        args += [str(input_path), "-o", str(output_path)]
        return args

    def encode(
        self,
        raster: RasterImage,
        quality: int,
        lossless: bool,
        target_size: Tuple[int, int],
    ) -> bytes:
        png_bytes = raster.to_png_bytes()

        with tempfile.TemporaryDirectory(prefix="spool_webp_") as temp_dir:
            input_path = Path(temp_dir) / "input.png"
            output_path = Path(temp_dir) / "output.webp"
            input_path.write_bytes(png_bytes)

            args = self.build_arguments(input_path, output_path, quality, lossless, target_size)
            logger.debug(f"Running: {' '.join(args)}")

            try:
                result = subprocess.run(
                    args,
                    capture_output=True,
                    text=True,
                    timeout=self.timeout,
                )
            except subprocess.TimeoutExpired as e:
                raise EncodeError(
                    "cwebp encode",
                    f"timed out after {self.timeout:.0f}s at quality {quality}",
                    len(png_bytes),
                ) from e
            except OSError as e:
                raise EncodeError("cwebp encode", f"could not start cwebp: {e}", len(png_bytes)) from e

            if result.returncode != 0:
                raise EncodeError(
                    "cwebp encode",
                    f"cwebp failed (exit {result.returncode}): {result.stderr.strip()} {result.stdout.strip()}",
                    len(png_bytes),
                )

            if not output_path.exists():
                raise EncodeError("cwebp encode", "cwebp did not produce an output file", len(png_bytes))

            return output_path.read_bytes()


def find_cwebp(configured_path: Optional[str] = None) -> Optional[str]:
    """
    Locate the cwebp binary.

    Args:
        configured_path: Explicit path to check first

    Returns:
        Path to an existing binary, or None
    """
    if configured_path:
        candidate = Path(configured_path)
        if candidate.is_file():
            return str(candidate)
        logger.warning(f"Configured cwebp path does not exist: {configured_path}")

    return shutil.which(CWEBP_BINARY_NAME)


def resolve_encoder(
    cwebp_path: Optional[str] = None,
    timeout: float = ENCODER_TIMEOUT_SECONDS,
    output_format: str = OUTPUT_FORMAT_WEBP,
) -> Encoder:
    """
    Pick the best available encoder for an output format.

    JPEG always uses Pillow. For WebP, cwebp is used when it can be found,
    otherwise Pillow; a missing binary is logged, never raised.

    Raises:
        ValueError: If output_format is not supported
    """
    if output_format not in OUTPUT_FORMATS:
        raise ValueError(f"output_format must be one of {OUTPUT_FORMATS}, got {output_format!r}")
    if output_format == OUTPUT_FORMAT_JPEG:
        return PillowJpegEncoder()

    binary = find_cwebp(cwebp_path)
    if binary:
        logger.info(f"Using cwebp encoder at {binary}")
        return CwebpEncoder(binary, timeout=timeout)

    logger.warning("cwebp not found; falling back to in-process Pillow WebP encoder")
    return PillowWebpEncoder()


# ============================================================================
# Quality Search
# ============================================================================

class EncodeState(Enum):
    IDLE = "idle"
    ATTEMPTING = "attempting"
    SUCCESS = "success"
    RETRY = "retry"
    EXHAUSTED = "exhausted"


def next_quality(quality: int) -> int:
    """Step quality down: fast at high quality, slower at low quality."""
    if quality > 50:
        return quality - 10
    if quality > 20:
        return quality - 5
    return quality - 2


def quality_schedule(
    starting_quality: int = DEFAULT_STARTING_QUALITY,
    step: Optional[int] = None,
    min_quality: int = MIN_QUALITY,
) -> Iterator[int]:
    """
    Yield the quality values tried by a lossy search, highest first.

    With ``step`` set, quality drops by that fixed amount instead of the
    next_quality() steps.
    """
    quality = int(starting_quality)
    while quality >= min_quality:
        yield quality
        quality = quality - step if step else next_quality(quality)


def encoder_schedule(encoder: Encoder, starting_quality: int) -> Iterator[int]:
    """Quality schedule for an encoder, honoring its own step and floor."""
    return quality_schedule(
        starting_quality,
        step=getattr(encoder, "quality_step", None),
        min_quality=getattr(encoder, "min_quality", MIN_QUALITY),
    )


@dataclass
class EncodeResult:
    """Outcome of one encode request.

    Attributes:
        data: Encoded bytes
        quality: Quality of the returned attempt
        attempts: Qualities tried, in order
        budget_met: False when the smallest result still exceeds max_bytes
        lossless: True for single-shot alpha-preserving encodes
        state: Final search state (SUCCESS or EXHAUSTED)
        encoder_name: Encoder that produced the data
        extension: File extension for the data
    """
    data: bytes
    quality: int
    attempts: List[int] = field(default_factory=list)
    budget_met: bool = True
    lossless: bool = False
    state: EncodeState = EncodeState.SUCCESS
    encoder_name: str = ""
    extension: str = WEBP_EXTENSION

    @property
    def size(self) -> int:
        return len(self.data)


class SizeConstrainedEncoder:
    """
    Encodes rasters under a byte budget with a greedy quality descent.

    Args:
        encoder: Primary encoder (default: resolve_encoder())
        fallback: Encoder used when every attempt with the primary fails
                  (default: Pillow when the primary is cwebp)
    """

    def __init__(self, encoder: Optional[Encoder] = None, fallback: Optional[Encoder] = None):
        self.encoder = encoder if encoder is not None else resolve_encoder()
        if fallback is None and isinstance(self.encoder, CwebpEncoder):
            fallback = PillowWebpEncoder()
        self.fallback = fallback

    def encode(self, raster: RasterImage, budget: Optional[EncodingBudget] = None) -> EncodeResult:
        """
        Encode a raster under a budget.

        Raises:
            EncodeError: If every attempt (including the fallback) failed
        """
        budget = budget or EncodingBudget()

        try:
            return self._encode_with(self.encoder, raster, budget)
        except EncodeError as e:
            if self.fallback is None:
                raise
            logger.warning(f"{self.encoder.name} failed every attempt ({e}); retrying with {self.fallback.name}")
            return self._encode_with(self.fallback, raster, budget)

    def _encode_with(self, encoder: Encoder, raster: RasterImage, budget: EncodingBudget) -> EncodeResult:
        if budget.lossless:
            return self._encode_lossless(encoder, raster, budget)
        return self._encode_lossy(encoder, raster, budget)

    def _encode_lossless(self, encoder: Encoder, raster: RasterImage, budget: EncodingBudget) -> EncodeResult:
        data = encoder.encode(raster, LOSSLESS_QUALITY, True, budget.target_size)
        budget_met = len(data) <= budget.max_bytes
        if not budget_met:
            logger.warning(
                f"Lossless encode is {len(data)} bytes, over the {budget.max_bytes} byte budget; "
                f"keeping it to preserve alpha"
            )
        return EncodeResult(
            data=data,
            quality=LOSSLESS_QUALITY,
            attempts=[LOSSLESS_QUALITY],
            budget_met=budget_met,
            lossless=True,
            state=EncodeState.SUCCESS,
            encoder_name=encoder.name,
            extension=encoder.extension,
        )

    def _encode_lossy(self, encoder: Encoder, raster: RasterImage, budget: EncodingBudget) -> EncodeResult:
        attempts: List[int] = []
        smallest: Optional[bytes] = None
        smallest_quality = 0
        last_error: Optional[EncodeError] = None
        state = EncodeState.IDLE

        for quality in encoder_schedule(encoder, budget.starting_quality):
            state = EncodeState.ATTEMPTING
            attempts.append(quality)

            try:
                data = encoder.encode(raster, quality, False, budget.target_size)
            except EncodeError as e:
                last_error = e
                state = EncodeState.RETRY
                logger.debug(f"Attempt at quality {quality} failed: {e}")
                continue

            logger.debug(f"Quality {quality}: {len(data)} bytes (budget {budget.max_bytes})")

            if smallest is None or len(data) < len(smallest):
                smallest = data
                smallest_quality = quality

            if len(data) <= budget.max_bytes:
                return EncodeResult(
                    data=data,
                    quality=quality,
                    attempts=attempts,
                    budget_met=True,
                    state=EncodeState.SUCCESS,
                    encoder_name=encoder.name,
                    extension=encoder.extension,
                )
            state = EncodeState.RETRY

        state = EncodeState.EXHAUSTED
        if smallest is None:
            raise EncodeError(
                "size-constrained encode",
                f"all {len(attempts)} attempts failed; last error: {last_error}",
                raster.pixels.nbytes,
            )

        logger.warning(
            f"No quality fit {budget.max_bytes} bytes; returning smallest result "
            f"({len(smallest)} bytes at quality {smallest_quality})"
        )
        return EncodeResult(
            data=smallest,
            quality=smallest_quality,
            attempts=attempts,
            budget_met=False,
            state=state,
            encoder_name=encoder.name,
            extension=encoder.extension,
        )


# ============================================================================
# Node
# ============================================================================

def budget_from_node(node: Dict[str, Any]) -> EncodingBudget:
    """Build an EncodingBudget from node fields."""
    size = node.get("target_size", DEFAULT_TARGET_SIZE)
    if isinstance(size, (int, float)):
        target_size = (int(size), int(size))
    else:
        target_size = (int(size[0]), int(size[1]))

    return EncodingBudget(
        max_bytes=int(node.get("max_bytes", DEFAULT_MAX_BYTES)),
        target_size=target_size,
        lossless=bool(node.get("lossless", False)),
        starting_quality=int(node.get("starting_quality", DEFAULT_STARTING_QUALITY)),
    )


def execute_encoder_node(node: Dict[str, Any], inputs: List[Any]) -> EncodeResult:
    """
    Execute encoder node.

    Node dict should contain:
        - 'max_bytes', 'target_size', 'lossless', 'starting_quality'
        - 'encoder': Optional Encoder instance (default: resolve_encoder())
        - 'fallback_encoder': Optional Encoder instance

    Inputs:
        - [0]: Composited RasterImage

    Returns:
        EncodeResult

    Raises:
        ValueError: If no input or invalid budget
        TypeError: If input is not a RasterImage
        EncodeError: If every attempt failed
    """
    if not inputs:
        raise ValueError("Encoder node requires an image input")

    canvas = inputs[0]
    if not isinstance(canvas, RasterImage):
        raise TypeError(f"Expected RasterImage, got {type(canvas)}")

    budget = budget_from_node(node)
    encoder = SizeConstrainedEncoder(node.get("encoder"), node.get("fallback_encoder"))
    return encoder.encode(canvas, budget)


def create_encoder_node(
    node_id: str,
    max_bytes: int = DEFAULT_MAX_BYTES,
    target_size: Tuple[int, int] = (DEFAULT_TARGET_SIZE, DEFAULT_TARGET_SIZE),
    lossless: bool = False,
    starting_quality: int = DEFAULT_STARTING_QUALITY,
    encoder: Optional[Encoder] = None,
    fallback_encoder: Optional[Encoder] = None,
) -> Dict[str, Any]:
    """Create encoder node for graph."""
    return {
        "id": node_id,
        "type": NODE_TYPE_ENCODE,
        "max_bytes": max_bytes,
        "target_size": tuple(target_size),
        "lossless": lossless,
        "starting_quality": starting_quality,
        "encoder": encoder,
        "fallback_encoder": fallback_encoder,
    }
