"""
Spool Colorizer command line.

Renders the template in one or more colors and writes a white-background
and a transparent-background export for each (WebP by default, JPEG with
--format jpeg).

Usage:
    python spool_colorizer.py "#FF6600" --assets assets --out exports
    python spool_colorizer.py FF6600 00AA55 --assets assets --out exports --config render.json
"""

import argparse
import logging
import sys
from typing import List, Optional

from SC_Libs.constants import (
    DEFAULT_PRODUCT_NAME,
    DUAL_EXPORT_FILENAME_PATTERN,
    OUTPUT_FORMATS,
    TEMPLATE_VARIANTS,
)
from SC_Libs.errors import SpoolColorizerError
from SC_Libs.ImageEditingLib.raster_models import AdjustmentParameters
from SC_Libs.NodesLib.output_node import OutputNodeConfig
from SC_Libs.ProjStoreLib.asset_store import AssetStore
from SC_Libs.ProjStoreLib.batch_processor import BatchProcessor, build_jobs
from SC_Libs.ProjStoreLib.render_pipeline import RenderConfig, SpoolRenderer, load_render_config

logger = logging.getLogger("spool_colorizer")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Recolor the spool template and export size-constrained images")
    ap.add_argument("hex_colors", nargs="+", metavar="HEX", help="Target color(s) as #RRGGBB or RRGGBB")
    ap.add_argument("--assets", required=True, help="Directory holding template and overlay PNGs")
    ap.add_argument("--out", required=True, help="Output directory")
    ap.add_argument("--config", help="JSON render config")
    ap.add_argument("--variant", choices=TEMPLATE_VARIANTS, help="Template variant")
    ap.add_argument("--max-bytes", type=int, help="Byte budget of the white export")
    ap.add_argument("--format", choices=OUTPUT_FORMATS, help="Export format (default webp)")
    ap.add_argument("--cwebp", help="Path to the cwebp binary")
    ap.add_argument("--no-overlay", action="store_true", help="Skip the overlay layer")
    ap.add_argument("--pattern", default=DUAL_EXPORT_FILENAME_PATTERN, help="Filename pattern")
    ap.add_argument("--product", default=DEFAULT_PRODUCT_NAME)
    ap.add_argument("--brand", default="")
    ap.add_argument("--overwrite", action="store_true")
    ap.add_argument("--hue", type=float, default=0.0)
    ap.add_argument("--saturation", type=float, default=0.0)
    ap.add_argument("--brightness", type=float, default=0.0)
    ap.add_argument("--contrast", type=float, default=0.0)
    ap.add_argument("--sharpness", type=float, default=0.0)
    ap.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return ap


def build_config(args: argparse.Namespace) -> RenderConfig:
    config = load_render_config(args.config) if args.config else RenderConfig()
    overrides = config.to_dict()
    if args.variant:
        overrides["template_variant"] = args.variant
    if args.max_bytes is not None:
        overrides["max_bytes"] = args.max_bytes
    if args.format and args.format != config.output_format:
        overrides["output_format"] = args.format
        overrides["starting_quality"] = None
    if args.cwebp:
        overrides["cwebp_path"] = args.cwebp
    if args.no_overlay:
        overrides["include_overlay"] = False
    return RenderConfig.from_dict(overrides)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = build_config(args)
        params = AdjustmentParameters(
            hue=args.hue,
            saturation=args.saturation,
            brightness=args.brightness,
            contrast=args.contrast,
            sharpness=args.sharpness,
        )
    except ValueError as e:
        logger.error(str(e))
        return 2

    renderer = SpoolRenderer(AssetStore(args.assets), config)
    output_config = OutputNodeConfig(
        output_directory=args.out,
        filename_pattern=args.pattern,
        product=args.product,
        brand=args.brand,
        overwrite=args.overwrite,
    )

    jobs = build_jobs({hex_color: hex_color for hex_color in args.hex_colors})
    for job in jobs:
        renderer.cache.set_adjustments(job.group_id, job.generation_index, params)

    try:
        results = BatchProcessor(renderer, output_config=output_config).process(jobs)
    except SpoolColorizerError as e:
        logger.error(str(e))
        return 1

    for result in results:
        if result.succeeded:
            for background, path in result.exports.items():
                print(f"{result.extracted_hex} {background}: {path}")
        else:
            print(f"{result.job.hex_color}: {result.status} ({result.error_message})", file=sys.stderr)

    return 0 if all(result.succeeded for result in results) else 1


if __name__ == "__main__":
    sys.exit(main())
