"""
Command-line block art conversion.

Usage:
  blockart INPUT [OUTPUT] --block-size N --palette SLUG [--json] [--debug]

Writes <stem>_blockart.png next to INPUT when OUTPUT is omitted, then prints
the block grid and the palette usage table.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from blockart.config import settings
from blockart.errors import BlockartError
from blockart.image_io import load_image_rgba, save_png_rgba
from blockart.palettes.loader import get_palette, list_palettes
from blockart.pipeline.quantize import ConversionSummary, quantize

logger = logging.getLogger(__name__)


def parse_cli_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="blockart",
        description="Convert an image into palette block art.",
    )
    parser.add_argument("src", type=Path, help="Input image")
    parser.add_argument("dst", type=Path, nargs="?", help="Output PNG")
    parser.add_argument(
        "--block-size",
        type=int,
        default=settings.default_block_size,
        help="Block edge length in pixels (default: %(default)s)",
    )
    parser.add_argument(
        "--palette",
        default=settings.default_palette,
        help="Palette slug (default: %(default)s)",
    )
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    return parser.parse_args(argv)


def format_summary(summary: ConversionSummary) -> str:
    lines = [
        f"Original: {summary.original_width} x {summary.original_height}"
        f" ({summary.original_pixels:,} px)",
        f"Grid:     {summary.grid_width} x {summary.grid_height}"
        f" ({summary.block_count:,} blocks of {summary.block_size}px)",
        f"Colors:   {len(summary.usage)}",
    ]
    width = max((len(e.swatch.name) for e in summary.usage), default=0)
    for entry in summary.usage:
        lines.append(f"  {entry.swatch.name:<{width}}  {entry.swatch.hex}  {entry.count:>8,}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> int:
    args = parse_cli_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.debug else getattr(logging, settings.log_level.upper(), logging.INFO),
        format="%(levelname)s %(name)s: %(message)s",
    )

    palette = get_palette(args.palette)
    if palette is None:
        known = ", ".join(p["slug"] for p in list_palettes())
        print(f"Unknown palette: {args.palette} (available: {known})", file=sys.stderr)
        return 2

    dst = args.dst or args.src.with_name(f"{args.src.stem}_blockart.png")
    try:
        image = load_image_rgba(args.src)
        result = quantize(image, palette, args.block_size)
        save_png_rgba(dst, result.image)
    except (BlockartError, ValueError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    logger.info("Wrote %s", dst)

    if args.json:
        print(json.dumps(result.summary.to_dict(), indent=2))
    else:
        print(format_summary(result.summary))
    return 0


if __name__ == "__main__":
    sys.exit(main())
