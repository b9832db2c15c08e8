"""
Dual Export Demo

Renders a synthetic spool template in a few colors, shows how the
size-constrained encoder behaves under different budgets, and writes
white and transparent exports (WebP, then JPEG) to a temporary directory.
"""

import sys
import tempfile
import time
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import numpy as np

from SC_Libs.ImageEditingLib.raster_models import AdjustmentParameters, RasterImage
from SC_Libs.NodesLib.output_node import OutputNodeConfig
from SC_Libs.ProjStoreLib.asset_store import AssetStore
from SC_Libs.ProjStoreLib.render_pipeline import RenderConfig, SpoolRenderer


def make_demo_template(size=256):
    """Gray disc with radial shading and a transparent outside."""
    y, x = np.mgrid[0:size, 0:size]
    center = (size - 1) / 2.0
    radius = np.hypot(x - center, y - center) / center
    shade = np.clip(200 - radius * 120, 40, 220).astype(np.uint8)

    pixels = np.zeros((size, size, 4), dtype=np.uint8)
    pixels[..., 0] = shade
    pixels[..., 1] = shade
    pixels[..., 2] = shade
    pixels[..., 3] = np.where(radius <= 1.0, 255, 0).astype(np.uint8)
    return RasterImage(pixels)


def example_budgets(renderer):
    print("=" * 60)
    print("Example 1: Quality Search Under Budgets")
    print("=" * 60)

    image = renderer.colorize("#FF6600", source_image_id="demo")
    for max_bytes in (20000, 4000, 800):
        renderer.config.max_bytes = max_bytes
        start = time.perf_counter()
        result = renderer.render(image)
        elapsed = (time.perf_counter() - start) * 1000
        print(
            f"  budget {max_bytes:>6} bytes -> {result.size:>6} bytes at quality {result.quality:>3} "
            f"(met={result.budget_met}, {len(result.attempts)} attempts, {elapsed:.0f} ms)"
        )
    print()


def example_dual_exports(renderer, out_dir):
    print("=" * 60)
    print("Example 2: White and Transparent Exports")
    print("=" * 60)

    output_config = OutputNodeConfig(
        output_directory=str(out_dir),
        filename_pattern="{HEX}_{BACKGROUND}.{EXT}",
        overwrite=True,
    )
    for hex_color in ("#1E90FF", "#222222", "#F5F5DC"):
        image = renderer.colorize(hex_color, source_image_id=hex_color)
        paths = renderer.export(image, output_config, AdjustmentParameters(contrast=0.15))
        for background, path in paths.items():
            print(f"  {hex_color} {background:<11} {path.name} ({path.stat().st_size} bytes)")
    print()


def example_jpeg_exports(assets, out_dir):
    print("=" * 60)
    print("Example 3: JPEG Exports")
    print("=" * 60)

    config = RenderConfig(target_size=(256, 256), max_bytes=8000, output_format="jpeg")
    renderer = SpoolRenderer(assets, config)
    output_config = OutputNodeConfig(
        output_directory=str(out_dir),
        filename_pattern="{HEX}_{BACKGROUND}.{EXT}",
        overwrite=True,
    )
    image = renderer.colorize("#8A2BE2", source_image_id="jpeg-demo")
    for background, path in renderer.export(image, output_config).items():
        print(f"  #8A2BE2 {background:<11} {path.name} ({path.stat().st_size} bytes)")
    print()


def main():
    template = make_demo_template()
    assets = AssetStore.from_bytes({"template_base": template.to_png_bytes()})
    config = RenderConfig(target_size=(256, 256), max_bytes=20000)
    renderer = SpoolRenderer(assets, config)

    example_budgets(renderer)
    with tempfile.TemporaryDirectory() as temp_dir:
        example_dual_exports(renderer, Path(temp_dir))
        example_jpeg_exports(assets, Path(temp_dir))

    stats = renderer.cache.get_memory_stats()
    print(f"Cache holds {stats['colorized_images']} colorized images ({stats['total_bytes']} bytes)")


if __name__ == "__main__":
    main()
