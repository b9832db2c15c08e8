"""
Tests for the render pipeline and SpoolRenderer.

Tests cover:
- RenderConfig validation and JSON loading
- Render graph construction
- Colorize caching the tint result as the base buffer
- Re-renders starting at the Adjust node
- Dual background and export
- JPEG output format
"""

import io
import json
from unittest.mock import Mock

import pytest
from PIL import Image

from SC_Libs.ImageEditingLib.color_tint_filter import apply_color_tint
from SC_Libs.ImageEditingLib.raster_models import (
    AdjustmentParameters,
    ColorizedImage,
    RasterImage,
)
from SC_Libs.NodesLib.encoder_node import PillowJpegEncoder, PillowWebpEncoder
from SC_Libs.NodesLib.output_node import OutputNodeConfig
from SC_Libs.NodesLib.tint_node import execute_tint_node
from SC_Libs.ProjStoreLib.node_executors import NodeExecutorRegistry, register_default_executors
from SC_Libs.ProjStoreLib.render_pipeline import (
    RenderConfig,
    SpoolRenderer,
    build_render_graph,
    load_render_config,
)


def decode(data):
    with Image.open(io.BytesIO(data)) as image:
        return RasterImage.from_pil(image)


class TestRenderConfig:

    def test_defaults(self):
        config = RenderConfig()
        assert config.background_mode == "white"
        assert config.target_size == (1080, 1080)
        assert config.max_bytes == 150 * 1024
        assert config.output_format == "webp"
        assert config.starting_quality == 90
        assert config.preserves_alpha

    def test_square_size_normalized(self):
        assert RenderConfig(target_size=512).target_size == (512, 512)

    @pytest.mark.parametrize("kwargs", [
        {"background_mode": "black"},
        {"template_variant": "side"},
        {"generation_count": 0},
        {"generation_count": 4},
        {"encoder_timeout": 0},
        {"max_workers": 0},
        {"max_bytes": 0},
        {"max_bytes": -5},
        {"starting_quality": 0},
        {"output_format": "gif"},
        {"output_format": "jpeg", "lossless": True},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RenderConfig(**kwargs)

    def test_jpeg_defaults(self):
        config = RenderConfig(output_format="jpeg")
        assert config.starting_quality == 95
        assert not config.preserves_alpha

    def test_explicit_starting_quality_kept(self):
        assert RenderConfig(output_format="jpeg", starting_quality=80).starting_quality == 80

    def test_round_trip(self):
        config = RenderConfig(template_variant="zoom", target_size=(640, 480), lossless=True)
        assert RenderConfig.from_dict(config.to_dict()) == config

    def test_load_from_json(self, tmp_path):
        path = tmp_path / "render.json"
        path.write_text(json.dumps({"max_bytes": 1000, "target_size": [32, 32], "comment": "ignored"}))

        config = load_render_config(path)

        assert config.max_bytes == 1000
        assert config.target_size == (32, 32)

    def test_load_rejects_bad_files(self, tmp_path):
        bad_json = tmp_path / "bad.json"
        bad_json.write_text("{not json")
        not_object = tmp_path / "list.json"
        not_object.write_text("[1, 2]")

        with pytest.raises(ValueError):
            load_render_config(bad_json)
        with pytest.raises(ValueError):
            load_render_config(not_object)
        with pytest.raises(FileNotFoundError):
            load_render_config(tmp_path / "missing.json")


class TestBuildRenderGraph:

    def test_dual_background_branches(self):
        nodes, connections = build_render_graph(
            "#FF6600",
            RenderConfig(),
            backgrounds=("white", "transparent"),
            lossless_backgrounds=("transparent",),
        )
        by_id = {node["id"]: node for node in nodes}

        assert set(by_id) == {
            "tint", "adjust",
            "composite_white", "encode_white",
            "composite_transparent", "encode_transparent",
        }
        assert by_id["encode_transparent"]["lossless"] is True
        assert by_id["encode_white"]["lossless"] is False
        assert {"from_node": "adjust", "to_node": "composite_transparent"} in connections

    def test_output_nodes(self, tmp_path):
        output_config = OutputNodeConfig(output_directory=str(tmp_path))
        nodes, connections = build_render_graph(
            "#FF6600", RenderConfig(), output_config=output_config, generation_index=2,
        )
        output = [node for node in nodes if node["type"] == "Output"][0]

        assert output["id"] == "output_white"
        assert output["hex_color"] == "#FF6600"
        assert output["generation_index"] == 2
        assert {"from_node": "encode_white", "to_node": "output_white"} in connections


class TestColorize:

    def test_base_buffer_is_tint_result(self, renderer, template_raster):
        image = renderer.colorize("#ff6600", source_image_id="photo-1")

        assert image.applied_hex == "#FF6600"
        assert image.group_id == "photo-1"
        assert renderer.base_raster(image) == apply_color_tint(template_raster, "#FF6600")

    def test_final_export_cached(self, renderer):
        image = renderer.colorize("#00AA55")
        data = renderer.cache.get_colorized_image(image.id)

        assert data is not None
        with Image.open(io.BytesIO(data)) as exported:
            assert exported.format == "WEBP"
            assert exported.size == (16, 16)

    def test_invalid_hex(self, renderer):
        with pytest.raises(ValueError):
            renderer.colorize("orange")

    def test_generations(self, asset_store):
        config = RenderConfig(target_size=(16, 16), generation_count=2)
        renderer = SpoolRenderer(asset_store, config, encoder=PillowWebpEncoder())

        images = renderer.colorize_generations("#123456", group_id="g1")

        assert [image.generation_index for image in images] == [0, 1]
        assert len({image.id for image in images}) == 2

    def test_base_raster_requires_colorize(self, renderer):
        with pytest.raises(KeyError):
            renderer.base_raster(ColorizedImage("src", "grp", "#000000"))


class TestRender:

    def test_render_does_not_rerun_tint(self, asset_store, render_config):
        registry = NodeExecutorRegistry()
        register_default_executors(registry)
        tint_spy = Mock(wraps=execute_tint_node)
        registry.unregister("Color Tint")
        registry.register("Color Tint", tint_spy)
        renderer = SpoolRenderer(asset_store, render_config, encoder=PillowWebpEncoder(), registry=registry)

        image = renderer.colorize("#FF6600")
        renderer.render(image, AdjustmentParameters(brightness=0.2))
        renderer.render_dual_background(image)

        assert tint_spy.call_count == 1

    def test_render_stores_params_and_updates_export(self, renderer):
        image = renderer.colorize("#FF6600", group_id="g1")
        params = AdjustmentParameters(hue=0.25, contrast=0.3)

        result = renderer.render(image, params)

        assert renderer.cache.get_adjustments("g1", 0) == params
        assert renderer.cache.get_colorized_image(image.id) == result.data
        assert result.budget_met

    def test_secondary_background_keeps_cached_export(self, renderer):
        image = renderer.colorize("#FF6600")
        primary = renderer.cache.get_colorized_image(image.id)

        renderer.render(image, background_mode="transparent")

        assert renderer.cache.get_colorized_image(image.id) == primary

    def test_invalid_background(self, renderer):
        image = renderer.colorize("#FF6600")
        with pytest.raises(ValueError):
            renderer.render(image, background_mode="black")


class TestDualBackground:

    def test_transparent_export_is_lossless_with_alpha(self, renderer):
        image = renderer.colorize("#3366CC")
        results = renderer.render_dual_background(image)

        assert set(results) == {"white", "transparent"}
        assert results["transparent"].lossless
        assert not results["white"].lossless

        transparent = decode(results["transparent"].data)
        white = decode(results["white"].data)
        assert transparent.pixel(0, 0)[3] == 0
        assert white.pixel(0, 0)[3] == 255
        assert transparent.pixel(15, 8)[3] == 255

    def test_export_writes_both_files(self, renderer, tmp_path):
        image = renderer.colorize("#3366CC")
        output_config = OutputNodeConfig(
            output_directory=str(tmp_path), filename_pattern="{HEX}_{BACKGROUND}.{EXT}"
        )

        paths = renderer.export(image, output_config)

        assert paths["white"].name == "3366CC_white.webp"
        assert paths["transparent"].name == "3366CC_transparent.webp"
        assert all(path.is_file() for path in paths.values())

    def test_export_requires_background_tag(self, renderer, tmp_path):
        image = renderer.colorize("#3366CC")
        output_config = OutputNodeConfig(output_directory=str(tmp_path), filename_pattern="{HEX}.{EXT}")

        with pytest.raises(ValueError):
            renderer.export(image, output_config)


class TestJpegExport:

    @pytest.fixture
    def jpeg_renderer(self, asset_store):
        config = RenderConfig(target_size=(16, 16), max_bytes=4 * 1024, output_format="jpeg")
        return SpoolRenderer(asset_store, config)

    def test_resolves_jpeg_encoder(self, jpeg_renderer):
        assert isinstance(jpeg_renderer.encoder, PillowJpegEncoder)

    def test_dual_background_is_lossy_jpeg(self, jpeg_renderer):
        image = jpeg_renderer.colorize("#3366CC")
        results = jpeg_renderer.render_dual_background(image)

        for result in results.values():
            assert not result.lossless
            assert result.extension == "jpg"
            assert result.budget_met
            assert result.size <= 4 * 1024
            assert result.attempts[0] == 95
            with Image.open(io.BytesIO(result.data)) as decoded:
                assert decoded.format == "JPEG"

    def test_export_writes_jpg_files_under_budget(self, jpeg_renderer, tmp_path):
        image = jpeg_renderer.colorize("#3366CC")
        output_config = OutputNodeConfig(
            output_directory=str(tmp_path), filename_pattern="{HEX}_{BACKGROUND}.{EXT}"
        )

        paths = jpeg_renderer.export(image, output_config)

        assert paths["white"].name == "3366CC_white.jpg"
        assert paths["transparent"].name == "3366CC_transparent.jpg"
        assert all(path.stat().st_size <= 4 * 1024 for path in paths.values())
