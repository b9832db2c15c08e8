"""
Tests for the spool_colorizer command line.
"""

import json
from unittest.mock import patch

import pytest

from SC_Libs.constants import DEFAULT_ASSET_FILES
from spool_colorizer import build_config, build_parser, main

from conftest import make_overlay, make_template


@pytest.fixture
def asset_dir(tmp_path):
    directory = tmp_path / "assets"
    directory.mkdir()
    (directory / DEFAULT_ASSET_FILES["template_base"]).write_bytes(make_template().to_png_bytes())
    (directory / DEFAULT_ASSET_FILES["overlay_base"]).write_bytes(make_overlay().to_png_bytes())
    return directory


@pytest.fixture(autouse=True)
def no_cwebp():
    with patch("SC_Libs.NodesLib.encoder_node.shutil.which", return_value=None):
        yield


def write_config(tmp_path, **values):
    path = tmp_path / "render.json"
    path.write_text(json.dumps({"target_size": [16, 16], **values}))
    return path


class TestBuildConfig:

    def test_flags_override_file(self, tmp_path):
        config_path = write_config(tmp_path, max_bytes=5000, template_variant="zoom")
        args = build_parser().parse_args([
            "#FF0000", "--assets", "a", "--out", "o",
            "--config", str(config_path), "--variant", "front", "--no-overlay",
        ])

        config = build_config(args)

        assert config.max_bytes == 5000
        assert config.template_variant == "front"
        assert config.include_overlay is False
        assert config.target_size == (16, 16)


    def test_format_flag_switches_default_quality(self, tmp_path):
        args = build_parser().parse_args([
            "#FF0000", "--assets", "a", "--out", "o",
            "--config", str(write_config(tmp_path)), "--format", "jpeg",
        ])

        config = build_config(args)

        assert config.output_format == "jpeg"
        assert config.starting_quality == 95

    def test_zero_max_bytes_is_not_ignored(self, tmp_path):
        args = build_parser().parse_args([
            "#FF0000", "--assets", "a", "--out", "o", "--max-bytes", "0",
        ])
        with pytest.raises(ValueError):
            build_config(args)


class TestMain:

    def test_writes_dual_exports(self, tmp_path, asset_dir, capsys):
        out_dir = tmp_path / "out"
        exit_code = main([
            "#FF6600", "00aa55",
            "--assets", str(asset_dir),
            "--out", str(out_dir),
            "--config", str(write_config(tmp_path)),
            "--contrast", "0.2",
        ])

        assert exit_code == 0
        names = sorted(path.name for path in out_dir.iterdir())
        assert names == [
            "00AA55_transparent.webp",
            "00AA55_white.webp",
            "FF6600_transparent.webp",
            "FF6600_white.webp",
        ]
        assert "#FF6600 white:" in capsys.readouterr().out

    def test_bad_color_fails_job(self, tmp_path, asset_dir, capsys):
        exit_code = main([
            "#FF6600", "nope",
            "--assets", str(asset_dir),
            "--out", str(tmp_path / "out"),
            "--config", str(write_config(tmp_path)),
        ])

        assert exit_code == 1
        assert "nope: error" in capsys.readouterr().err
        assert (tmp_path / "out" / "FF6600_white.webp").is_file()

    def test_missing_assets(self, tmp_path):
        exit_code = main(["#FF6600", "--assets", str(tmp_path / "none"), "--out", str(tmp_path)])
        assert exit_code == 1

    def test_invalid_adjustment(self, tmp_path, asset_dir):
        exit_code = main([
            "#FF6600", "--assets", str(asset_dir), "--out", str(tmp_path), "--hue", "3",
        ])
        assert exit_code == 2

    @pytest.mark.parametrize("max_bytes", ["0", "-5"])
    def test_invalid_max_bytes(self, tmp_path, asset_dir, max_bytes):
        exit_code = main([
            "#FF6600", "--assets", str(asset_dir), "--out", str(tmp_path / "out"),
            "--max-bytes", max_bytes,
        ])
        assert exit_code == 2
        assert not (tmp_path / "out").exists()

    def test_jpeg_exports(self, tmp_path, asset_dir):
        out_dir = tmp_path / "out"
        exit_code = main([
            "#FF6600",
            "--assets", str(asset_dir),
            "--out", str(out_dir),
            "--config", str(write_config(tmp_path)),
            "--format", "jpeg",
        ])

        assert exit_code == 0
        assert sorted(path.name for path in out_dir.iterdir()) == [
            "FF6600_transparent.jpg",
            "FF6600_white.jpg",
        ]
