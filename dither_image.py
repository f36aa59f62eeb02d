#!/usr/bin/env python3
"""
dither_image.py
Ordered-dither an image onto the colours of a palette image.

Usage:
  python dither_image.py -i INPUT -p PALETTE [-o OUTPUT] [--width W --height H | --no-resize]
                         [--order N] [--space lab|oklab] [--quantize round|truncate]
                         [--resample nearest|bilinear|bicubic|lanczos] [--workers N] [--debug]

Input:
  Any Pillow-readable image, converted to sRGB. Alpha is dropped.

Palette:
  Any Pillow-readable image. Every distinct colour in it becomes a palette
  entry (first-seen order). At least two distinct colours are required.

Output:
  PNG. Defaults to out.png. By default the input is scaled to cover 1920x1080
  and centre-cropped first; --no-resize keeps the original size.

Notes:
  Every output pixel is exactly one palette colour.
  CPU bound. Row bands run on a ThreadPoolExecutor.
"""

from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path
from typing import List, Optional, Sequence

from palette_dither.config import DitherConfig
from palette_dither.constants import (
    DEFAULT_HEIGHT,
    DEFAULT_OUTPUT,
    DEFAULT_WIDTH,
    MATRIX_ORDER,
    METRIC_SPACE,
    METRIC_SPACES,
    QUANTIZE_MODE,
    QUANTIZE_MODES,
)
from palette_dither.core_types import DitherError, InvalidImageError
from palette_dither.image_io import (
    is_image_file,
    load_image_rgb,
    load_palette_image,
    pillow_resample_from_name,
    resize_cover_crop,
    save_image_rgb,
)
from palette_dither.ordered import dither_ordered
from palette_dither.palette import build_palette
from palette_dither.utils import (
    colour_usage_report,
    debug_log,
    default_workers,
    enable_line_buffered_stdout,
    error,
    format_seconds_compact,
    format_total_duration_compact,
    key_value_pairs_to_string,
    log,
    print_banner,
    print_config_line,
)

EXIT_FAILED = 1
EXIT_BAD_INPUT = 2


def parse_cli_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """
    Parse CLI arguments.

    Returns:
      argparse.Namespace with:
        input_file, palette_file, output_file: paths
        width, height: cover-crop target; no_resize: skip it
        order: log2 threshold matrix side
        space: "lab" | "oklab"
        quantize: "round" | "truncate"
        resample: resize filter name
        workers: row-band threads
        debug: bool for verbose details
    """
    parser = argparse.ArgumentParser(
        prog="palette-dither",
        description="Ordered dithering with an arbitrary colour palette.",
    )
    parser.add_argument(
        "-i", "--input-file", type=Path, required=True, help="Image to dither"
    )
    parser.add_argument(
        "-p",
        "--palette-file",
        type=Path,
        required=True,
        help="Image whose distinct colours form the palette",
    )
    parser.add_argument(
        "-o",
        "--output-file",
        type=Path,
        default=Path(DEFAULT_OUTPUT),
        help=f"Output PNG (default {DEFAULT_OUTPUT})",
    )
    parser.add_argument("--width", type=int, default=DEFAULT_WIDTH, help="Output width")
    parser.add_argument(
        "--height", type=int, default=DEFAULT_HEIGHT, help="Output height"
    )
    parser.add_argument(
        "--no-resize",
        action="store_true",
        help="Keep the input size instead of cover-cropping to WxH",
    )
    parser.add_argument(
        "--resample",
        choices=["nearest", "bilinear", "bicubic", "lanczos"],
        default="bicubic",
        help="Scaling filter for the cover-crop.",
    )
    parser.add_argument(
        "--order",
        type=int,
        default=MATRIX_ORDER,
        help=f"Threshold matrix side is 2^ORDER (default {MATRIX_ORDER})",
    )
    parser.add_argument(
        "--space",
        choices=list(METRIC_SPACES),
        default=METRIC_SPACE,
        help="Colour space for the pair search.",
    )
    parser.add_argument(
        "--quantize",
        choices=list(QUANTIZE_MODES),
        default=QUANTIZE_MODE,
        help="8-bit output rounding.",
    )
    parser.add_argument(
        "--workers", type=int, default=default_workers(), help="Internal workers"
    )
    parser.add_argument("--debug", action="store_true", help="Verbose details")
    return parser.parse_args(argv)


def _check_inputs(args: argparse.Namespace) -> List[str]:
    problems: List[str] = []
    for label, path in (("input", args.input_file), ("palette", args.palette_file)):
        if not path.exists():
            problems.append(f"{label} not found: {path}")
        elif not is_image_file(path):
            problems.append(f"{label} is not a readable image: {path}")
    if not args.no_resize and (args.width <= 0 or args.height <= 0):
        problems.append(f"bad output size {args.width}x{args.height}")
    return problems


def run(args: argparse.Namespace) -> Path:
    """
    Process one image end-to-end:
      load palette -> load image -> optional cover-crop -> dither -> save -> report.
    """
    t_start = time.perf_counter()
    config = DitherConfig(
        order=args.order, metric_space=args.space, quantize=args.quantize
    )
    print_banner(args.input_file.name)

    palette = build_palette(load_palette_image(args.palette_file))
    if args.debug:
        debug_log(f"palette: {len(palette)} colours  {' '.join(palette.hexes())}")

    rgb = load_image_rgb(args.input_file)
    height0, width0 = rgb.shape[0], rgb.shape[1]
    if args.debug:
        debug_log(key_value_pairs_to_string([("Loaded", f"{width0}x{height0}")]))

    t_resize0 = time.perf_counter()
    if not args.no_resize and (width0, height0) != (args.width, args.height):
        rgb = resize_cover_crop(
            rgb, args.width, args.height, pillow_resample_from_name(args.resample)
        )
        if args.debug:
            debug_log(
                key_value_pairs_to_string(
                    [("Resized", f"{rgb.shape[1]}x{rgb.shape[0]}")]
                )
            )
    t_resize1 = time.perf_counter()

    print_config_line(
        "run",
        [("Workers", args.workers), ("Palette", len(palette)), *config.summary_pairs()],
        debug=False,
    )
    dither_ordered(
        rgb, palette, config=config, workers=args.workers, debug=args.debug
    )
    t_after_map = time.perf_counter()

    out_path = save_image_rgb(args.output_file, rgb)
    t_after_save = time.perf_counter()

    height, width = rgb.shape[0], rgb.shape[1]
    log(f"Wrote {out_path.name} | size={width}x{height} | palette_size={len(palette)}")
    usage = colour_usage_report(rgb)
    log("Colours used:")
    for hex_code, count in usage:
        log(f"  {hex_code}: {count:,}")
    unused = set(palette.hexes()) - {h for h, _ in usage}
    if unused and args.debug:
        debug_log(f"unused palette colours: {' '.join(sorted(unused))}")

    if args.debug:
        debug_log(
            f"Total {format_total_duration_compact(t_after_save - t_start)}  "
            f"(load={format_seconds_compact(t_resize0 - t_start)}, "
            f"resize={format_seconds_compact(t_resize1 - t_resize0)}, "
            f"dither={format_seconds_compact(t_after_map - t_resize1)}, "
            f"save={format_seconds_compact(t_after_save - t_after_map)})"
        )
    else:
        log(f"Total time {format_total_duration_compact(t_after_save - t_start)}")
    return out_path


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    enable_line_buffered_stdout()
    args = parse_cli_args(argv)

    problems = _check_inputs(args)
    if problems:
        for msg in problems:
            error(msg)
        return EXIT_BAD_INPUT

    try:
        run(args)
    except (ValueError, InvalidImageError) as exc:
        # DitherConfig validation and palette/image errors.
        error(f"dithering aborted: {exc}")
        return EXIT_BAD_INPUT
    except DitherError as exc:
        error(f"dithering aborted: {exc}")
        return EXIT_FAILED
    except OSError as exc:
        error(f"I/O failed: {exc}")
        return EXIT_FAILED
    return 0


if __name__ == "__main__":
    sys.exit(main())
