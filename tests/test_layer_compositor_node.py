"""
Unit Tests for Layer Compositor Node

Tests cover:
- Background creation
- Straight-alpha "over" compositing
- Layer stacking and overlay resizing
- Node executor and helper
"""

import unittest

import numpy as np

from SC_Libs.ImageEditingLib.raster_models import Layer, RasterImage
from SC_Libs.NodesLib.layer_compositor_node import (
    ImageLayerCompositor,
    LayerCompositorConfig,
    create_layer_compositor_node,
    execute_layer_compositor_node,
)


class TestLayerCompositorConfig(unittest.TestCase):

    def test_defaults(self):
        config = LayerCompositorConfig()
        self.assertEqual(config.background_mode, "white")
        self.assertTrue(config.include_overlay)

    def test_invalid_mode(self):
        with self.assertRaises(ValueError):
            LayerCompositorConfig(background_mode="checkerboard")


class TestCompositeLayer(unittest.TestCase):

    def test_transparent_source_leaves_destination(self):
        dst = RasterImage.blank(3, 3, (10, 20, 30, 255))
        src = RasterImage.blank(3, 3, (200, 0, 0, 0))
        result = ImageLayerCompositor.composite_layer(dst, src, "white")
        self.assertEqual(result, dst)

    def test_opaque_source_replaces(self):
        dst = RasterImage.blank(3, 3, (10, 20, 30, 255))
        src = RasterImage.blank(3, 3, (200, 100, 50, 255))
        result = ImageLayerCompositor.composite_layer(dst, src, "transparent")
        self.assertEqual(result, src)

    def test_half_alpha_blend_on_white(self):
        dst = RasterImage.blank(1, 1, (255, 255, 255, 255))
        src = RasterImage.blank(1, 1, (0, 0, 0, 128))
        result = ImageLayerCompositor.composite_layer(dst, src, "white")
        # 255 * (1 - 128/255) = 127
        self.assertEqual(result.pixel(0, 0), (127, 127, 127, 255))

    def test_transparent_alpha_accumulates(self):
        dst = RasterImage.blank(1, 1, (0, 0, 0, 0))
        src = RasterImage.blank(1, 1, (255, 0, 0, 102))
        result = ImageLayerCompositor.composite_layer(dst, src, "transparent")
        self.assertEqual(result.pixel(0, 0)[3], 102)

    def test_size_mismatch(self):
        with self.assertRaises(ValueError):
            ImageLayerCompositor.composite_layer(
                RasterImage.blank(2, 2), RasterImage.blank(3, 2), "white"
            )


class TestComposite(unittest.TestCase):

    def test_transparent_on_transparent_is_all_zero(self):
        template = RasterImage.blank(4, 4, (0, 0, 0, 0))
        result = ImageLayerCompositor.composite(template, "transparent")
        self.assertFalse(result.pixels.any())

    def test_white_background_is_opaque(self):
        template = RasterImage.blank(4, 4, (0, 0, 0, 0))
        result = ImageLayerCompositor.composite(template, "white")
        self.assertTrue((result.pixels == 255).all())

    def test_overlay_resized_to_canvas(self):
        template = RasterImage.blank(8, 8, (50, 50, 50, 255))
        overlay = RasterImage.blank(4, 4, (0, 0, 255, 255))
        result = ImageLayerCompositor.composite(template, "white", overlay)
        self.assertEqual(result.size, (8, 8))
        self.assertEqual(result.pixel(3, 3), (0, 0, 255, 255))

    def test_layers_applied_in_order(self):
        bottom = Layer(RasterImage.blank(2, 2, (255, 0, 0, 255)), "template")
        top = Layer(RasterImage.blank(2, 2, (0, 255, 0, 255)), "overlay")
        result = ImageLayerCompositor.composite_layers([bottom, top], "white")
        self.assertEqual(result.pixel(0, 0), (0, 255, 0, 255))

    def test_inputs_not_modified(self):
        template = RasterImage.blank(2, 2, (1, 2, 3, 100))
        before = template.copy()
        ImageLayerCompositor.composite(template, "white")
        self.assertEqual(template, before)

    def test_no_layers(self):
        with self.assertRaises(ValueError):
            ImageLayerCompositor.composite_layers([], "white")


class TestCompositorNode(unittest.TestCase):

    def setUp(self):
        self.template = RasterImage.blank(4, 4, (0, 0, 0, 0))
        self.overlay = RasterImage.blank(4, 4, (9, 9, 9, 255))

    def test_create_node(self):
        node = create_layer_compositor_node("comp-1", "transparent", include_overlay=False)
        self.assertEqual(node["type"], "Layer Compositor")
        self.assertEqual(node["background_mode"], "transparent")
        self.assertFalse(node["include_overlay"])

    def test_create_node_rejects_bad_mode(self):
        with self.assertRaises(ValueError):
            create_layer_compositor_node("comp-1", "grey")

    def test_overlay_from_second_input(self):
        node = create_layer_compositor_node("comp-1", "transparent")
        result = execute_layer_compositor_node(node, [self.template, self.overlay])
        self.assertEqual(result.pixel(0, 0), (9, 9, 9, 255))

    def test_overlay_skipped_when_disabled(self):
        node = create_layer_compositor_node("comp-1", "transparent", overlay=self.overlay, include_overlay=False)
        result = execute_layer_compositor_node(node, [self.template])
        self.assertFalse(result.pixels.any())

    def test_requires_template(self):
        with self.assertRaises(ValueError):
            execute_layer_compositor_node(create_layer_compositor_node("c"), [])
        with self.assertRaises(TypeError):
            execute_layer_compositor_node(create_layer_compositor_node("c"), [np.zeros((2, 2, 4))])


if __name__ == "__main__":
    unittest.main()
