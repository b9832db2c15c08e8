"""
ProjStoreLib - Render graph execution, assets and caches

This module wires the nodes into render pipelines and holds the stores
they read from: template/overlay assets, cached base buffers, and color
sources.
"""

from SC_Libs.ProjStoreLib.asset_store import AssetStore
from SC_Libs.ProjStoreLib.batch_processor import (
    BatchItemResult,
    BatchJob,
    BatchProcessor,
    build_jobs,
)
from SC_Libs.ProjStoreLib.color_source import (
    AverageColorSource,
    ColorExtractionResult,
    ColorSource,
    StaticColorSource,
    extract_hex_from_text,
)
from SC_Libs.ProjStoreLib.image_cache import ImageCache
from SC_Libs.ProjStoreLib.node_executors import (
    NodeExecutorRegistry,
    get_default_registry,
)
from SC_Libs.ProjStoreLib.pipeline_builder import (
    build_pipeline_from_graph,
    build_update_pipeline,
    execute_pipeline,
    get_pipeline_summary,
)
from SC_Libs.ProjStoreLib.render_pipeline import (
    RenderConfig,
    SpoolRenderer,
    build_render_graph,
    load_render_config,
)

__all__ = [
    "AssetStore",
    "BatchItemResult",
    "BatchJob",
    "BatchProcessor",
    "build_jobs",
    "AverageColorSource",
    "ColorExtractionResult",
    "ColorSource",
    "StaticColorSource",
    "extract_hex_from_text",
    "ImageCache",
    "NodeExecutorRegistry",
    "get_default_registry",
    "build_pipeline_from_graph",
    "build_update_pipeline",
    "execute_pipeline",
    "get_pipeline_summary",
    "RenderConfig",
    "SpoolRenderer",
    "build_render_graph",
    "load_render_config",
]
