"""
Adjustment Node for Spool Colorizer.

Applies look adjustments to the base buffer. This node is the usual entry
point of an update pipeline: when a slider changes only this node and its
downstream nodes are re-run, with the cached tint result as input.
"""

from typing import Any, Dict, List, Optional

from SC_Libs.constants import NODE_TYPE_ADJUST
from SC_Libs.ImageEditingLib.adjustment_filter import apply_adjustments
from SC_Libs.ImageEditingLib.raster_models import AdjustmentParameters, RasterImage


def execute_adjustment_node(node: Dict[str, Any], inputs: List[Any]) -> RasterImage:
    """
    Execute adjustment node in pipeline.

    Node dict may contain any AdjustmentParameters field
    (hue, saturation, brightness, contrast, sharpness).

    Inputs:
        - [0]: Base RasterImage

    Returns:
        Adjusted RasterImage

    Raises:
        ValueError: If no input or a parameter is out of range
        TypeError: If input is not a RasterImage
    """
    if not inputs:
        raise ValueError("Adjustment node requires a base image input")

    base = inputs[0]
    if not isinstance(base, RasterImage):
        raise TypeError(f"Expected RasterImage, got {type(base)}")

    try:
        params = AdjustmentParameters.from_dict(node)
    except ValueError as e:
        raise ValueError(f"Adjustment node error: {str(e)}") from e

    return apply_adjustments(base, params)


def create_adjustment_node(
    node_id: str,
    params: Optional[AdjustmentParameters] = None,
) -> Dict[str, Any]:
    """Create adjustment node for graph."""
    params = params or AdjustmentParameters()
    node = {
        "id": node_id,
        "type": NODE_TYPE_ADJUST,
    }
    node.update(params.to_dict())
    return node
