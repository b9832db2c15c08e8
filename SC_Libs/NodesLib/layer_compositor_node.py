"""
Layer Compositor Node.

Builds the export canvas from an ordered stack of layers:

1. Background fill (opaque white or fully transparent)
2. Tinted and adjusted template
3. Optional static overlay (the carton graphic), resized to the canvas

Every layer is laid over the canvas with the "over" operator on straight
(non-premultiplied) colors:

    out_rgb = src_rgb * src_a + dst_rgb * (1 - src_a)
    out_a   = 1                           (white background)
    out_a   = dst_a + src_a * (1 - dst_a) (transparent background)

Example:
    >>> canvas = ImageLayerCompositor.composite(
    ...     template=adjusted,
    ...     background_mode="white",
    ...     overlay=carton,
    ... )
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import numpy as np

from SC_Libs.constants import (
    BACKGROUND_MODES,
    BACKGROUND_TRANSPARENT,
    BACKGROUND_WHITE,
    NODE_TYPE_COMPOSITE,
    TRANSPARENT_FILL,
    WHITE_FILL,
)
from SC_Libs.ImageEditingLib.image_editing_ops import resize_raster
from SC_Libs.ImageEditingLib.raster_models import Layer, RasterImage, round_half_up


@dataclass
class LayerCompositorConfig:
    """Configuration for the compositor node.

    Attributes:
        background_mode: 'white' or 'transparent'
        include_overlay: Composite the overlay asset when one is supplied
    """
    background_mode: str = BACKGROUND_WHITE
    include_overlay: bool = True

    def __post_init__(self):
        if self.background_mode not in BACKGROUND_MODES:
            raise ValueError(
                f"Unsupported background_mode: {self.background_mode}. "
                f"Valid modes: {', '.join(BACKGROUND_MODES)}"
            )


class ImageLayerCompositor:
    """Handles background fill and layer composition."""

    @staticmethod
    def create_background(width: int, height: int, background_mode: str) -> RasterImage:
        """Create the canvas fill for a background mode."""
        if background_mode == BACKGROUND_WHITE:
            return RasterImage.blank(width, height, WHITE_FILL)
        if background_mode == BACKGROUND_TRANSPARENT:
            return RasterImage.blank(width, height, TRANSPARENT_FILL)
        raise ValueError(f"Unsupported background_mode: {background_mode}")

    @staticmethod
    def composite_layer(
        destination: RasterImage,
        source: RasterImage,
        background_mode: str,
    ) -> RasterImage:
        """
        Lay one source raster over a destination of the same size.

        Args:
            destination: Current canvas
            source: Layer to place on top
            background_mode: Decides how the resulting alpha is computed

        Returns:
            New RasterImage; neither input is modified

        Raises:
            ValueError: If sizes differ or background_mode is unknown
        """
        if destination.size != source.size:
            raise ValueError(
                f"Layer size {source.width}x{source.height} does not match "
                f"canvas {destination.width}x{destination.height}"
            )
        if background_mode not in BACKGROUND_MODES:
            raise ValueError(f"Unsupported background_mode: {background_mode}")

        dst = destination.pixels.astype(np.float64)
        src = source.pixels.astype(np.float64)
        src_a = src[..., 3:4] / 255.0
        dst_a = dst[..., 3:4] / 255.0

        result = np.empty_like(dst)
        result[..., :3] = src[..., :3] * src_a + dst[..., :3] * (1.0 - src_a)

        if background_mode == BACKGROUND_WHITE:
            result[..., 3] = 255.0
        else:
            result[..., 3:4] = (dst_a + src_a * (1.0 - dst_a)) * 255.0

        return RasterImage(round_half_up(result))

    @staticmethod
    def composite_layers(layers: List[Layer], background_mode: str) -> RasterImage:
        """
        Composite an ordered stack onto a fresh background.

        The canvas takes the size of the first layer; later layers are
        resized with bicubic interpolation when they differ.
        """
        if not layers:
            raise ValueError("At least one layer is required")

        first = layers[0].raster
        canvas = ImageLayerCompositor.create_background(first.width, first.height, background_mode)

        for layer in layers:
            raster = layer.raster
            if raster.size != canvas.size:
                raster = resize_raster(raster, canvas.size)
            canvas = ImageLayerCompositor.composite_layer(canvas, raster, background_mode)

        return canvas

    @staticmethod
    def composite(
        template: RasterImage,
        background_mode: str = BACKGROUND_WHITE,
        overlay: Optional[RasterImage] = None,
    ) -> RasterImage:
        """Composite background, template and optional overlay."""
        layers = [Layer(template, "template")]
        if overlay is not None:
            layers.append(Layer(overlay, "overlay"))
        return ImageLayerCompositor.composite_layers(layers, background_mode)


def execute_layer_compositor_node(node: Dict[str, Any], inputs: List[Any]) -> RasterImage:
    """
    Execute layer compositor node.

    Node dict should contain:
        - 'background_mode': 'white' or 'transparent'
        - 'include_overlay': bool (default True)
        - 'overlay': Optional overlay RasterImage

    Inputs:
        - [0]: Template RasterImage (tinted and adjusted)
        - [1]: Optional overlay RasterImage (takes precedence over node['overlay'])

    Returns:
        Composited RasterImage

    Raises:
        ValueError: If no template input or invalid background mode
        TypeError: If inputs are not RasterImages
    """
    if not inputs:
        raise ValueError("Layer compositor node requires template image as first input")

    template = inputs[0]
    if not isinstance(template, RasterImage):
        raise TypeError(f"Expected RasterImage for template, got {type(template)}")

    config = LayerCompositorConfig(
        background_mode=node.get("background_mode", BACKGROUND_WHITE),
        include_overlay=bool(node.get("include_overlay", True)),
    )

    overlay = inputs[1] if len(inputs) > 1 else node.get("overlay")
    if overlay is not None and not isinstance(overlay, RasterImage):
        raise TypeError(f"Expected RasterImage for overlay, got {type(overlay)}")
    if not config.include_overlay:
        overlay = None

    return ImageLayerCompositor.composite(template, config.background_mode, overlay)


def create_layer_compositor_node(
    node_id: str,
    background_mode: str = BACKGROUND_WHITE,
    overlay: Optional[RasterImage] = None,
    include_overlay: bool = True,
) -> Dict[str, Any]:
    """
    Create layer compositor node for graph.

    Args:
        node_id: Unique node identifier
        background_mode: 'white' or 'transparent'
        overlay: Optional overlay RasterImage
        include_overlay: Set False to skip the overlay

    Returns:
        Node dict for graph
    """
    LayerCompositorConfig(background_mode=background_mode, include_overlay=include_overlay)
    return {
        "id": node_id,
        "type": NODE_TYPE_COMPOSITE,
        "background_mode": background_mode,
        "include_overlay": include_overlay,
        "overlay": overlay,
    }
