"""
Spool Colorizer Nodes Library.

This module contains the node implementations for the render pipeline.
Nodes are components that process data in a pipeline.

Modules:
    tint_node: Recolor the template toward a target color
    adjustment_node: Hue/saturation/brightness/contrast/sharpness sliders
    layer_compositor_node: Background, template and overlay compositing
    encoder_node: Size-constrained WebP encoding
    output_node: Write exports with templated filenames
"""

from SC_Libs.NodesLib.tint_node import (
    execute_tint_node,
    create_tint_node,
)
from SC_Libs.NodesLib.adjustment_node import (
    execute_adjustment_node,
    create_adjustment_node,
)
from SC_Libs.NodesLib.layer_compositor_node import (
    LayerCompositorConfig,
    ImageLayerCompositor,
    execute_layer_compositor_node,
    create_layer_compositor_node,
)
from SC_Libs.NodesLib.encoder_node import (
    CwebpEncoder,
    EncodeResult,
    EncodeState,
    Encoder,
    PillowJpegEncoder,
    PillowWebpEncoder,
    SizeConstrainedEncoder,
    encoder_schedule,
    quality_schedule,
    resolve_encoder,
    execute_encoder_node,
    create_encoder_node,
)
from SC_Libs.NodesLib.output_node import (
    OutputNodeConfig,
    OutputNodeHandler,
    execute_output_node,
    create_output_node,
)

__all__ = [
    "execute_tint_node",
    "create_tint_node",
    "execute_adjustment_node",
    "create_adjustment_node",
    "LayerCompositorConfig",
    "ImageLayerCompositor",
    "execute_layer_compositor_node",
    "create_layer_compositor_node",
    "CwebpEncoder",
    "EncodeResult",
    "EncodeState",
    "Encoder",
    "PillowJpegEncoder",
    "PillowWebpEncoder",
    "SizeConstrainedEncoder",
    "encoder_schedule",
    "quality_schedule",
    "resolve_encoder",
    "execute_encoder_node",
    "create_encoder_node",
    "OutputNodeConfig",
    "OutputNodeHandler",
    "execute_output_node",
    "create_output_node",
]
