"""
Pytest configuration and shared fixtures for Spool Colorizer tests.

This module provides small in-memory rasters and asset stores so tests
never need the real template photographs.
"""

import numpy as np
import pytest

from SC_Libs.ImageEditingLib.raster_models import RasterImage
from SC_Libs.NodesLib.encoder_node import PillowWebpEncoder
from SC_Libs.ProjStoreLib.asset_store import AssetStore
from SC_Libs.ProjStoreLib.render_pipeline import RenderConfig, SpoolRenderer


def make_template(size=16, cutout=4):
    """Mid-gray gradient template with a transparent top-left cutout."""
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    ramp = np.linspace(60, 200, size).astype(np.uint8)
    pixels[..., 0] = ramp[np.newaxis, :]
    pixels[..., 1] = ramp[np.newaxis, :]
    pixels[..., 2] = ramp[np.newaxis, :]
    pixels[..., 3] = 255
    pixels[:cutout, :cutout] = 0
    return RasterImage(pixels)


def make_overlay(size=8):
    """Overlay with an opaque black bottom row and transparent elsewhere."""
    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[-1, :] = (0, 0, 0, 255)
    return RasterImage(pixels)


@pytest.fixture
def template_raster():
    return make_template()


@pytest.fixture
def overlay_raster():
    return make_overlay()


@pytest.fixture
def gray_2x2():
    """The 2x2 mid-gray opaque raster used in tint examples."""
    return RasterImage.blank(2, 2, (128, 128, 128, 255))


@pytest.fixture
def asset_store(template_raster, overlay_raster):
    """Store with a base template and overlay registered as PNG bytes."""
    return AssetStore.from_bytes({
        "template_base": template_raster.to_png_bytes(),
        "overlay_base": overlay_raster.to_png_bytes(),
    })


@pytest.fixture
def render_config():
    return RenderConfig(target_size=(16, 16), max_bytes=64 * 1024, use_threading=True)


@pytest.fixture
def renderer(asset_store, render_config):
    return SpoolRenderer(asset_store, render_config, encoder=PillowWebpEncoder())


@pytest.fixture
def sample_rgba_colors():
    """
    Provide a list of sample RGBA color tuples for testing.

    Returns:
        List of (R, G, B, A) tuples with common test colors
    """
    return [
        (255, 0, 0, 255),    # Red
        (0, 255, 0, 255),    # Green
        (0, 0, 255, 255),    # Blue
        (255, 255, 255, 255),  # White
        (0, 0, 0, 255),      # Black
        (128, 128, 128, 255),  # Gray
        (12, 200, 77, 255),
        (250, 128, 3, 255),
    ]
