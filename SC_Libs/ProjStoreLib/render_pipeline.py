"""
Render pipeline: Tint -> Adjust -> Composite -> Encode (-> Output).

SpoolRenderer builds a render graph per request and executes it with the
node executor registry. ``colorize`` runs the whole graph once and caches the
tint result (the base buffer); ``render`` and friends only re-run the graph
from the Adjust node onward, feeding the cached base buffer back in.

Example:
    >>> renderer = SpoolRenderer(AssetStore("assets"), RenderConfig())
    >>> image = renderer.colorize("#FF6600", source_image_id="photo-1")
    >>> exports = renderer.render_dual_background(image)
    >>> exports["white"].budget_met
"""

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from SC_Libs.constants import (
    ADJUST_NODE_ID,
    BACKGROUND_MODES,
    BACKGROUND_TRANSPARENT,
    BACKGROUND_WHITE,
    COMPOSITE_NODE_PREFIX,
    DEFAULT_MAX_BYTES,
    DEFAULT_STARTING_QUALITY,
    DEFAULT_TARGET_SIZE,
    ENCODE_NODE_PREFIX,
    ENCODER_TIMEOUT_SECONDS,
    FIELD_FROM_NODE,
    FIELD_TO_NODE,
    JPEG_STARTING_QUALITY,
    MAX_GENERATIONS,
    NODE_TYPE_OUTPUT,
    OUTPUT_FORMAT_JPEG,
    OUTPUT_FORMAT_WEBP,
    OUTPUT_FORMATS,
    OUTPUT_NODE_PREFIX,
    TEMPLATE_VARIANTS,
    TINT_NODE_ID,
    VARIANT_BASE,
)
from SC_Libs.ImageEditingLib.raster_models import (
    AdjustmentParameters,
    ColorizedImage,
    ColorTint,
    RasterImage,
    describe_raster,
)
from SC_Libs.NodesLib.adjustment_node import create_adjustment_node
from SC_Libs.NodesLib.encoder_node import (
    EncodeResult,
    Encoder,
    create_encoder_node,
    resolve_encoder,
)
from SC_Libs.NodesLib.layer_compositor_node import create_layer_compositor_node
from SC_Libs.NodesLib.output_node import OutputNodeConfig
from SC_Libs.NodesLib.tint_node import create_tint_node
from SC_Libs.ProjStoreLib.asset_store import AssetStore
from SC_Libs.ProjStoreLib.image_cache import ImageCache
from SC_Libs.ProjStoreLib.node_executors import NodeExecutorRegistry, get_default_registry
from SC_Libs.ProjStoreLib.pipeline_builder import (
    build_pipeline_from_graph,
    build_update_pipeline,
    execute_pipeline,
    get_pipeline_summary,
)

logger = logging.getLogger(__name__)

Graph = Tuple[List[Dict[str, Any]], List[Dict[str, str]]]


@dataclass
class RenderConfig:
    """Settings shared by every render.

    Attributes:
        background_mode: Background of the primary export
        include_overlay: Composite the overlay asset over the template
        template_variant: 'base', 'zoom' or 'front'
        generation_count: Generations per group (1-3)
        target_size: Export (width, height)
        max_bytes: Byte budget of lossy exports
        lossless: Encode the primary export losslessly
        starting_quality: First quality of the lossy search (default per format)
        output_format: 'webp' or 'jpeg'; JPEG exports are flattened and never lossless
        cwebp_path: Explicit cwebp binary (default: search PATH)
        encoder_timeout: Seconds before a cwebp run is abandoned
        max_workers: Thread pool size for parallel stages and batches
        use_threading: Run independent nodes concurrently
    """
    background_mode: str = BACKGROUND_WHITE
    include_overlay: bool = True
    template_variant: str = VARIANT_BASE
    generation_count: int = 1
    target_size: Tuple[int, int] = (DEFAULT_TARGET_SIZE, DEFAULT_TARGET_SIZE)
    max_bytes: int = DEFAULT_MAX_BYTES
    lossless: bool = False
    starting_quality: Optional[int] = None
    output_format: str = OUTPUT_FORMAT_WEBP
    cwebp_path: Optional[str] = None
    encoder_timeout: float = ENCODER_TIMEOUT_SECONDS
    max_workers: Optional[int] = None
    use_threading: bool = True

    def __post_init__(self):
        if self.background_mode not in BACKGROUND_MODES:
            raise ValueError(
                f"background_mode must be one of {BACKGROUND_MODES}, got {self.background_mode!r}"
            )
        if self.template_variant not in TEMPLATE_VARIANTS:
            raise ValueError(
                f"template_variant must be one of {TEMPLATE_VARIANTS}, got {self.template_variant!r}"
            )
        if not (1 <= self.generation_count <= MAX_GENERATIONS):
            raise ValueError(f"generation_count must be 1-{MAX_GENERATIONS}, got {self.generation_count}")
        if self.encoder_timeout <= 0:
            raise ValueError(f"encoder_timeout must be positive, got {self.encoder_timeout}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")
        if self.max_bytes <= 0:
            raise ValueError(f"max_bytes must be positive, got {self.max_bytes}")
        if self.output_format not in OUTPUT_FORMATS:
            raise ValueError(
                f"output_format must be one of {OUTPUT_FORMATS}, got {self.output_format!r}"
            )
        if self.lossless and self.output_format == OUTPUT_FORMAT_JPEG:
            raise ValueError("lossless exports are not possible with output_format 'jpeg'")

        if self.starting_quality is None:
            self.starting_quality = (
                JPEG_STARTING_QUALITY if self.output_format == OUTPUT_FORMAT_JPEG
                else DEFAULT_STARTING_QUALITY
            )
        if not (1 <= self.starting_quality <= 100):
            raise ValueError(f"starting_quality must be 1-100, got {self.starting_quality}")
        self.target_size = _normalize_size(self.target_size)

    @property
    def preserves_alpha(self) -> bool:
        """Whether exports can carry transparency (and be lossless)."""
        return self.output_format == OUTPUT_FORMAT_WEBP

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["target_size"] = list(self.target_size)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RenderConfig":
        filtered = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**filtered)


def _normalize_size(size: Union[int, Sequence[int]]) -> Tuple[int, int]:
    if isinstance(size, (int, float)):
        return int(size), int(size)
    width, height = size
    return int(width), int(height)


def load_render_config(path: Union[str, Path]) -> RenderConfig:
    """
    Load a RenderConfig from a JSON file. Unknown keys are ignored.

    Raises:
        FileNotFoundError: If the file does not exist
        ValueError: If the file is not a JSON object or holds invalid values
    """
    config_path = Path(path)
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid render config {config_path}: {e}") from e

    if not isinstance(payload, dict):
        raise ValueError(f"Render config {config_path} must contain a JSON object")

    logger.info(f"Loaded render config from {config_path}")
    return RenderConfig.from_dict(payload)


def composite_node_id(background_mode: str) -> str:
    return f"{COMPOSITE_NODE_PREFIX}_{background_mode}"


def encode_node_id(background_mode: str) -> str:
    return f"{ENCODE_NODE_PREFIX}_{background_mode}"


def output_node_id(background_mode: str) -> str:
    return f"{OUTPUT_NODE_PREFIX}_{background_mode}"


def _connect(from_node: str, to_node: str) -> Dict[str, str]:
    return {FIELD_FROM_NODE: from_node, FIELD_TO_NODE: to_node}


def build_render_graph(
    hex_color: str,
    config: RenderConfig,
    template: Optional[RasterImage] = None,
    overlay: Optional[RasterImage] = None,
    params: Optional[AdjustmentParameters] = None,
    backgrounds: Iterable[str] = (BACKGROUND_WHITE,),
    lossless_backgrounds: Iterable[str] = (),
    encoder: Optional[Encoder] = None,
    output_config: Optional[OutputNodeConfig] = None,
    generation_index: int = 0,
) -> Graph:
    """
    Build the node graph for one colorized image.

    One composite/encode branch is added per background; branches share the
    tint and adjust nodes and run in parallel stages. Output nodes are added
    when ``output_config`` is given.

    Returns:
        Tuple of (nodes, connections)
    """
    lossless_set = set(lossless_backgrounds)
    nodes: List[Dict[str, Any]] = [
        create_tint_node(TINT_NODE_ID, hex_color, template),
        create_adjustment_node(ADJUST_NODE_ID, params),
    ]
    connections = [_connect(TINT_NODE_ID, ADJUST_NODE_ID)]

    for background in backgrounds:
        composite_id = composite_node_id(background)
        encode_id = encode_node_id(background)
        nodes.append(create_layer_compositor_node(
            composite_id,
            background_mode=background,
            overlay=overlay,
            include_overlay=config.include_overlay,
        ))
        nodes.append(create_encoder_node(
            encode_id,
            max_bytes=config.max_bytes,
            target_size=config.target_size,
            lossless=config.lossless or background in lossless_set,
            starting_quality=config.starting_quality,
            encoder=encoder,
        ))
        connections.append(_connect(ADJUST_NODE_ID, composite_id))
        connections.append(_connect(composite_id, encode_id))

        if output_config is not None:
            output_id = output_node_id(background)
            output_node = output_config.to_dict()
            output_node.update({
                "id": output_id,
                "type": NODE_TYPE_OUTPUT,
                "hex_color": hex_color,
                "background_mode": background,
                "generation_index": generation_index,
            })
            nodes.append(output_node)
            connections.append(_connect(encode_id, output_id))

    return nodes, connections


class SpoolRenderer:
    """
    Colorizes the template and produces size-constrained exports.

    Args:
        assets: Template and overlay source
        config: Render settings
        cache: Byte cache for base buffers and exports (default: new cache)
        encoder: Encoder for every encode node (default: resolved from config)
        registry: Node executors (default: the global registry)
    """

    def __init__(
        self,
        assets: AssetStore,
        config: Optional[RenderConfig] = None,
        cache: Optional[ImageCache] = None,
        encoder: Optional[Encoder] = None,
        registry: Optional[NodeExecutorRegistry] = None,
    ):
        self.assets = assets
        self.config = config or RenderConfig()
        self.cache = cache if cache is not None else ImageCache()
        self.encoder = encoder or resolve_encoder(
            self.config.cwebp_path, self.config.encoder_timeout, self.config.output_format
        )
        self.registry = registry or get_default_registry()

    def _overlay(self) -> Optional[RasterImage]:
        variant = self.config.template_variant
        if not self.config.include_overlay or not self.assets.has_overlay(variant):
            return None
        return self.assets.get_overlay(variant)

    def _alpha_backgrounds(self) -> Tuple[str, ...]:
        return (BACKGROUND_TRANSPARENT,) if self.config.preserves_alpha else ()

    def _execute(self, pipeline: Dict[str, Any], is_valid: bool, errors: List[str],
                 cached_results: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not is_valid:
            raise ValueError(f"Invalid render pipeline: {'; '.join(errors)}")
        logger.debug(get_pipeline_summary(pipeline))
        return execute_pipeline(
            pipeline,
            self.registry.as_executor_map(),
            use_threading=self.config.use_threading,
            max_workers=self.config.max_workers,
            cached_results=cached_results,
        )

    def colorize(
        self,
        hex_color: str,
        source_image_id: str = "",
        group_id: Optional[str] = None,
        generation_index: int = 0,
    ) -> ColorizedImage:
        """
        Tint the template and produce the primary export.

        The tint result is cached as the base buffer so later renders skip
        the tint step.

        Raises:
            ValueError: If hex_color is malformed
            AssetMissingError: If the template variant is not available
            EncodeError: If every encode attempt failed
        """
        applied_hex = ColorTint.from_hex(hex_color).hex
        image = ColorizedImage(
            source_image_id=source_image_id,
            group_id=group_id if group_id is not None else source_image_id,
            applied_hex=applied_hex,
            generation_index=generation_index,
        )

        template = self.assets.get_template(self.config.template_variant)
        background = self.config.background_mode
        nodes, connections = build_render_graph(
            applied_hex,
            self.config,
            template=template,
            overlay=self._overlay(),
            params=self.cache.get_adjustments(*image.cache_key),
            backgrounds=(background,),
            encoder=self.encoder,
        )
        results = self._execute(*build_pipeline_from_graph(nodes, connections))

        base: RasterImage = results[TINT_NODE_ID]
        encoded: EncodeResult = results[encode_node_id(background)]
        self.cache.cache_colorized_image(image.id, encoded.data, base.to_png_bytes())
        logger.info(
            f"Colorized {applied_hex} (generation {generation_index + 1}) as {image.id}: "
            f"{encoded.size} bytes at quality {encoded.quality}"
        )
        return image

    def colorize_generations(
        self,
        hex_color: str,
        source_image_id: str = "",
        group_id: Optional[str] = None,
    ) -> List[ColorizedImage]:
        """Colorize ``config.generation_count`` generations of one color."""
        return [
            self.colorize(hex_color, source_image_id, group_id, generation_index)
            for generation_index in range(self.config.generation_count)
        ]

    def base_raster(self, image: ColorizedImage) -> RasterImage:
        """
        Decode the cached base buffer of a colorized image.

        Raises:
            KeyError: If the image was never colorized by this cache
        """
        data = self.cache.get_base_colorized_image(image.id)
        if data is None:
            raise KeyError(f"No base buffer cached for {image.id}; call colorize() first")
        return RasterImage.from_bytes(data, operation="base buffer decode")

    def _run_from_adjust(
        self,
        image: ColorizedImage,
        params: Optional[AdjustmentParameters],
        backgrounds: Sequence[str],
        lossless_backgrounds: Iterable[str] = (),
        output_config: Optional[OutputNodeConfig] = None,
    ) -> Dict[str, Any]:
        if params is None:
            params = self.cache.get_adjustments(*image.cache_key)
        else:
            self.cache.set_adjustments(image.group_id, image.generation_index, params)

        base = self.base_raster(image)
        logger.debug(f"Re-rendering {image.id} from base {describe_raster(base)}")
        nodes, connections = build_render_graph(
            image.applied_hex,
            self.config,
            overlay=self._overlay(),
            params=params,
            backgrounds=backgrounds,
            lossless_backgrounds=lossless_backgrounds,
            encoder=self.encoder,
            output_config=output_config,
            generation_index=image.generation_index,
        )
        pipeline, is_valid, errors = build_update_pipeline(nodes, connections, [ADJUST_NODE_ID])
        return self._execute(pipeline, is_valid, errors, cached_results={TINT_NODE_ID: base})

    def render(
        self,
        image: ColorizedImage,
        params: Optional[AdjustmentParameters] = None,
        background_mode: Optional[str] = None,
    ) -> EncodeResult:
        """
        Re-run adjust, composite and encode from the cached base buffer.

        ``params`` are stored for the image's (group, generation); when
        omitted the stored (or default) adjustments are used. Rendering the
        primary background replaces the cached export.
        """
        background = background_mode or self.config.background_mode
        if background not in BACKGROUND_MODES:
            raise ValueError(f"background_mode must be one of {BACKGROUND_MODES}, got {background!r}")

        results = self._run_from_adjust(image, params, (background,))
        encoded: EncodeResult = results[encode_node_id(background)]
        if background == self.config.background_mode:
            self.cache.update_colorized_image(image.id, encoded.data)
        return encoded

    def render_dual_background(
        self,
        image: ColorizedImage,
        params: Optional[AdjustmentParameters] = None,
    ) -> Dict[str, EncodeResult]:
        """
        Produce white and transparent exports in one pass.

        The transparent export is lossless when the output format keeps alpha.
        JPEG flattens it like any other background.
        """
        backgrounds = (BACKGROUND_WHITE, BACKGROUND_TRANSPARENT)
        results = self._run_from_adjust(
            image, params, backgrounds, lossless_backgrounds=self._alpha_backgrounds()
        )
        return {background: results[encode_node_id(background)] for background in backgrounds}

    def export(
        self,
        image: ColorizedImage,
        output_config: OutputNodeConfig,
        params: Optional[AdjustmentParameters] = None,
    ) -> Dict[str, Path]:
        """
        Render both backgrounds and write them through output nodes.

        Returns:
            Mapping background -> written path

        Raises:
            ValueError: If the filename pattern would give both exports the same name
        """
        if "{background}" not in output_config.filename_pattern.lower():
            raise ValueError(
                f"filename_pattern must contain {{BACKGROUND}} for dual exports: "
                f"{output_config.filename_pattern}"
            )
        backgrounds = (BACKGROUND_WHITE, BACKGROUND_TRANSPARENT)
        results = self._run_from_adjust(
            image,
            params,
            backgrounds,
            lossless_backgrounds=self._alpha_backgrounds(),
            output_config=output_config,
        )
        return {background: results[output_node_id(background)] for background in backgrounds}
