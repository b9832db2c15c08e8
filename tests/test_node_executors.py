"""
Tests for Node Executors Registry.

Tests cover:
- Executor registration and lookup
- Metadata management
- Filtering by tags
- Error handling
- Default registry contents
"""

import unittest

from SC_Libs.ImageEditingLib.raster_models import RasterImage
from SC_Libs.ProjStoreLib.node_executors import (
    NodeExecutorRegistry,
    get_default_registry,
    register_default_executors,
)


def dummy_executor(node, inputs):
    return "dummy result"


class TestNodeExecutorRegistry(unittest.TestCase):
    """Test NodeExecutorRegistry basic functionality."""

    def setUp(self):
        self.registry = NodeExecutorRegistry()

    def test_registry_creation(self):
        self.assertEqual(self.registry.list_node_types(), [])

    def test_register_executor(self):
        self.registry.register("DummyNode", dummy_executor)

        self.assertTrue(self.registry.has_executor("DummyNode"))
        self.assertIn("DummyNode", self.registry.list_node_types())
        self.assertEqual(self.registry.execute("DummyNode", {}, []), "dummy result")

    def test_register_with_metadata(self):
        self.registry.register(
            "TestNode",
            dummy_executor,
            description="A test node",
            input_count=2,
            tags=["Test", "example"],
        )

        metadata = self.registry.get_metadata("TestNode")
        self.assertEqual(metadata["description"], "A test node")
        self.assertEqual(metadata["input_count"], 2)
        self.assertEqual(metadata["output_count"], 1)
        self.assertEqual(metadata["tags"], ["Test", "example"])

    def test_duplicate_registration(self):
        self.registry.register("DummyNode", dummy_executor)
        with self.assertRaises(RuntimeError):
            self.registry.register("DummyNode", dummy_executor)

    def test_invalid_registration(self):
        with self.assertRaises(ValueError):
            self.registry.register("  ", dummy_executor)
        with self.assertRaises(ValueError):
            self.registry.register("Node", "not callable")

    def test_unregister(self):
        self.registry.register("DummyNode", dummy_executor)

        self.assertTrue(self.registry.unregister("DummyNode"))
        self.assertFalse(self.registry.has_executor("DummyNode"))
        self.assertFalse(self.registry.unregister("DummyNode"))

    def test_unknown_type(self):
        with self.assertRaises(KeyError):
            self.registry.get_executor("Missing")
        with self.assertRaises(KeyError):
            self.registry.get_metadata("Missing")

    def test_filter_by_tag(self):
        self.registry.register("A", dummy_executor, tags=["Color"])
        self.registry.register("B", dummy_executor, tags=["output"])

        self.assertEqual(self.registry.filter_by_tag("color"), ["A"])
        self.assertEqual(self.registry.filter_by_tag("missing"), [])

    def test_executor_map_is_snapshot(self):
        self.registry.register("A", dummy_executor)
        snapshot = self.registry.as_executor_map()
        self.registry.unregister("A")

        self.assertIs(snapshot["A"], dummy_executor)


class TestDefaultRegistry(unittest.TestCase):

    def test_singleton(self):
        self.assertIs(get_default_registry(), get_default_registry())

    def test_builtin_types(self):
        registry = NodeExecutorRegistry()
        register_default_executors(registry)

        self.assertEqual(
            registry.list_node_types(),
            ["Adjustments", "Color Tint", "Layer Compositor", "Output", "Size-Constrained Encoder"],
        )
        self.assertEqual(registry.filter_by_tag("output"), ["Output", "Size-Constrained Encoder"])

    def test_execute_tint_through_registry(self):
        template = RasterImage.blank(2, 2, (128, 128, 128, 255))
        node = {"id": "tint", "type": "Color Tint", "hex_color": "#FF0000"}

        result = get_default_registry().execute("Color Tint", node, [template])

        self.assertIsInstance(result, RasterImage)
        self.assertEqual(result.size, (2, 2))


if __name__ == "__main__":
    unittest.main()
