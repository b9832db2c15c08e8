"""
Tests for Output Node with Templated Filenames.

Tests cover:
- Output node configuration
- Tag replacement (product, variant, brand, hex, background, generation, date)
- Path traversal protection
- File saving, directory creation and overwrite handling
- Executor function and node registration
"""

import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from SC_Libs.NodesLib.encoder_node import EncodeResult
from SC_Libs.NodesLib.output_node import (
    OutputNodeConfig,
    OutputNodeHandler,
    create_output_node,
    execute_output_node,
    sanitize_filename_part,
)
from SC_Libs.ProjStoreLib.node_executors import get_default_registry


class TestOutputNodeConfig(unittest.TestCase):
    """Test OutputNodeConfig dataclass."""

    def test_config_creation_default(self):
        config = OutputNodeConfig()

        self.assertEqual(config.output_directory, ".")
        self.assertEqual(config.filename_pattern, "{PRODUCT}-{VARIANT}-{BRAND}.{EXT}")
        self.assertEqual(config.product, "spool")
        self.assertTrue(config.create_directories)
        self.assertFalse(config.overwrite)

    def test_config_round_trip(self):
        config = OutputNodeConfig(output_directory="/exports", brand="Acme", overwrite=True)
        data = config.to_dict()
        data["unrelated"] = 1

        self.assertEqual(OutputNodeConfig.from_dict(data), config)


class TestFilenameTags(unittest.TestCase):
    """Test tag substitution."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.base = Path(self.temp_dir.name).resolve()

    def tearDown(self):
        self.temp_dir.cleanup()

    def handler(self, **kwargs):
        return OutputNodeHandler(OutputNodeConfig(output_directory=str(self.base), **kwargs))

    def test_default_pattern(self):
        path = self.handler(brand="Acme").resolve_filename(hex_color="#ff6600")
        self.assertEqual(path, self.base / "spool-FF6600-Acme.webp")

    def test_explicit_variant(self):
        path = self.handler(variant="Silk Orange", brand="Acme").resolve_filename(hex_color="#FF6600")
        self.assertEqual(path.name, "spool-Silk_Orange-Acme.webp")

    def test_hex_background_generation(self):
        handler = self.handler(filename_pattern="{hex}_{Background}_g{GENERATION:2}.{EXT}")
        path = handler.resolve_filename(hex_color="#00AA55", background="white", generation_index=1)
        self.assertEqual(path.name, "00AA55_white_g02.webp")

    def test_date_tag(self):
        handler = self.handler(filename_pattern="{DATE:%Y}_{HEX}.{EXT}")
        path = handler.resolve_filename(hex_color="#000000")
        self.assertEqual(path.name, f"{datetime.now():%Y}_000000.webp")

    def test_subdirectory_allowed(self):
        path = self.handler(filename_pattern="{BACKGROUND}/{HEX}.{EXT}").resolve_filename(
            hex_color="#123456", background="transparent"
        )
        self.assertEqual(path, self.base / "transparent" / "123456.webp")

    def test_traversal_blocked(self):
        for pattern in ("../{HEX}.{EXT}", "a/../../{HEX}.{EXT}", "/etc/{HEX}"):
            with self.assertRaises(ValueError):
                self.handler(filename_pattern=pattern).resolve_filename(hex_color="#123456")

    def test_tag_values_cannot_escape(self):
        path = self.handler(brand="../../evil").resolve_filename(hex_color="#123456")
        self.assertEqual(path.parent, self.base)

    def test_sanitize(self):
        self.assertEqual(sanitize_filename_part("a b/c.d"), "a_b_c.d")


class TestSaveBytes(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.base = Path(self.temp_dir.name)

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_creates_directories(self):
        handler = OutputNodeHandler(OutputNodeConfig(output_directory=str(self.base / "new" / "dir")))
        path = handler.save_bytes(b"data", handler.resolve_filename(hex_color="#111111"))
        self.assertEqual(path.read_bytes(), b"data")

    def test_existing_file_protected(self):
        handler = OutputNodeHandler(OutputNodeConfig(output_directory=str(self.base)))
        target = handler.resolve_filename(hex_color="#111111")
        handler.save_bytes(b"first", target)

        with self.assertRaises(ValueError):
            handler.save_bytes(b"second", target)

        handler.config.overwrite = True
        handler.save_bytes(b"second", target)
        self.assertEqual(target.read_bytes(), b"second")


class TestOutputNodeExecutor(unittest.TestCase):

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.base = Path(self.temp_dir.name).resolve()

    def tearDown(self):
        self.temp_dir.cleanup()

    def test_writes_encode_result(self):
        node = create_output_node(
            "out-1", str(self.base), "{HEX}_{BACKGROUND}.{EXT}",
            hex_color="#ABCDEF", background_mode="white",
        )
        result = EncodeResult(data=b"webp-bytes", quality=80)

        path = execute_output_node(node, [result])

        self.assertEqual(path, self.base / "ABCDEF_white.webp")
        self.assertEqual(path.read_bytes(), b"webp-bytes")

    def test_writes_raw_bytes_with_extension(self):
        node = create_output_node("out-1", str(self.base), "{HEX}.{EXT}", hex_color="#ABCDEF")
        node["extension"] = "png"
        path = execute_output_node(node, [b"png-bytes"])
        self.assertEqual(path.name, "ABCDEF.png")

    def test_requires_input(self):
        node = create_output_node("out-1", str(self.base))
        with self.assertRaises(ValueError):
            execute_output_node(node, [])
        with self.assertRaises(TypeError):
            execute_output_node(node, ["text"])

    def test_registered(self):
        registry = get_default_registry()
        self.assertTrue(registry.has_executor("Output"))
        self.assertIs(registry.get_executor("Output"), execute_output_node)


if __name__ == "__main__":
    unittest.main()
