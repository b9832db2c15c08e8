"""
Color Tint Node for Spool Colorizer.

Wraps the color tint filter for use in the render pipeline.

Functions:
    execute_tint_node: Pipeline executor for tint nodes
    create_tint_node: Helper to create tint node dictionary
"""

from typing import Any, Dict, List

from SC_Libs.constants import NODE_TYPE_TINT
from SC_Libs.ImageEditingLib.color_tint_filter import apply_color_tint
from SC_Libs.ImageEditingLib.raster_models import RasterImage


def execute_tint_node(node: Dict[str, Any], inputs: List[Any]) -> RasterImage:
    """
    Execute tint node in pipeline.

    Node dict should contain:
        - 'hex_color': Target color as '#RRGGBB'
        - 'template': Template RasterImage or encoded bytes (used when
          there are no inputs)

    Inputs:
        - [0]: Optional template (RasterImage or encoded bytes)

    Returns:
        Tinted RasterImage

    Raises:
        ValueError: If no template or hex color is given
        DecodeError: If template bytes cannot be decoded
    """
    template = inputs[0] if inputs else node.get("template")
    if template is None:
        raise ValueError("Tint node requires a template image")

    if isinstance(template, (bytes, bytearray)):
        template = RasterImage.from_bytes(bytes(template), operation="tint")

    hex_color = node.get("hex_color")
    if not hex_color:
        raise ValueError("Tint node requires 'hex_color'")

    return apply_color_tint(template, hex_color)


def create_tint_node(node_id: str, hex_color: str, template: Any = None) -> Dict[str, Any]:
    """
    Create tint node for graph.

    Args:
        node_id: Unique node identifier
        hex_color: Target color as '#RRGGBB'
        template: Optional template RasterImage or encoded bytes

    Returns:
        Node dict for graph
    """
    return {
        "id": node_id,
        "type": NODE_TYPE_TINT,
        "hex_color": hex_color,
        "template": template,
    }
