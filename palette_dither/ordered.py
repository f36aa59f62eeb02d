# palette_dither/ordered.py
from __future__ import annotations

"""
Ordered dithering onto an arbitrary palette.

Per pixel, independently of every other pixel:
  1. convert the 8-bit sRGB colour to the metric space (Lab by default)
  2. look up the threshold at (x, y) in the tiled Bayer matrix
  3. find the palette pair + blend ratio that best explains the colour
  4. threshold > ratio -> first colour of the pair, else the second
  5. write that palette colour back as 8-bit sRGB

The grid is split into row bands that run on a thread pool. Each band
writes only its own rows, so no locking is needed; the pool join is the
only barrier. Output is identical for any worker count.

Any invariant failure in any band aborts the whole pass.
"""

import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Optional, Sequence, Union

import numpy as np

from .colour_convert import Colour, Space, convert, rgb8_to_srgb, srgb_to_rgb8
from .config import DEFAULT_CONFIG, DitherConfig
from .core_types import (
    InvalidImageError,
    RGBTuple,
    U8Image,
    assert_u8_image_rgb,
    check_finite,
)
from .pair_search import PairTable, best_pair, build_pair_table, search_pairs
from .palette import Palette, ensure_palette
from .threshold import ThresholdMatrix, bayer_matrix
from .utils import (
    debug_log,
    format_seconds_compact,
    print_config_line,
    split_rows_into_parts,
)

PaletteLike = Union[Palette, Sequence[Sequence[int]], np.ndarray]


def palette_output_rgb(
    palette: Palette, config: DitherConfig = DEFAULT_CONFIG
) -> U8Image:
    """
    8-bit colour written for each palette entry: its metric-space row taken
    back to sRGB and quantised. Computed once per pass.
    """
    srgb = convert(palette.rows(config.space), config.space, Space.SRGB)
    check_finite(srgb, "palette sRGB")
    return srgb_to_rgb8(srgb, config.quantize)


def _dither_band(
    grid: U8Image,
    start: int,
    end: int,
    matrix: ThresholdMatrix,
    table: PairTable,
    out_rgb: U8Image,
    config: DitherConfig,
) -> int:
    """Dither rows [start, end) of grid in place. Returns pixels written."""
    band = grid[start:end]
    height, width, _ = band.shape
    if height == 0 or width == 0:
        return 0

    metric = convert(rgb8_to_srgb(band), Space.SRGB, config.space)
    check_finite(metric, "pixel colours")

    thresholds = matrix.tile(height, width, row_offset=start).reshape(-1)
    result = search_pairs(
        metric.reshape(-1, 3), table, chunk_elements=config.chunk_elements
    )
    chosen = np.where(thresholds > result.ratio, result.index1, result.index2)
    band[...] = out_rgb[chosen].reshape(height, width, 3)
    return height * width


def dither_ordered(
    grid: U8Image,
    palette: PaletteLike,
    *,
    config: Optional[DitherConfig] = None,
    matrix: Optional[ThresholdMatrix] = None,
    workers: int = 1,
    debug: bool = False,
) -> U8Image:
    """
    Ordered-dither an RGB grid onto the palette, in place.

    Args:
      grid    : uint8 [H,W,3], writable; overwritten with palette colours
      palette : Palette, or >= 2 RGB triples (validated before any pixel work)
      config  : DitherConfig; defaults to a 32x32 matrix searching in Lab
      matrix  : explicit threshold matrix; defaults to bayer_matrix(config.order)
      workers : thread count for row bands; <= 1 runs inline
      debug   : print a config and throughput line

    Returns:
      the same grid object.
    """
    cfg = config or DEFAULT_CONFIG
    pal = ensure_palette(palette)
    img = assert_u8_image_rgb(grid)
    if not img.flags.writeable:
        raise InvalidImageError("grid is read-only; pass a writable array")

    thresholds = matrix if matrix is not None else bayer_matrix(cfg.order)
    table = build_pair_table(
        pal.rows(cfg.space), penalty=cfg.pair_penalty, eps=cfg.degenerate_eps
    )
    out_rgb = palette_output_rgb(pal, cfg)

    height = int(img.shape[0])
    n_workers = max(1, int(workers))
    spans = split_rows_into_parts(height, n_workers)

    t0 = time.perf_counter()
    if n_workers == 1 or len(spans) <= 1:
        for start, end in spans:
            _dither_band(img, start, end, thresholds, table, out_rgb, cfg)
    else:
        with ThreadPoolExecutor(max_workers=n_workers) as ex:
            futures = [
                ex.submit(
                    _dither_band, img, start, end, thresholds, table, out_rgb, cfg
                )
                for start, end in spans
            ]
            _, pending = wait(futures, return_when=FIRST_EXCEPTION)
            for fu in pending:
                fu.cancel()
            for fu in futures:
                if not fu.cancelled():
                    fu.result()
    elapsed = time.perf_counter() - t0

    if debug:
        pixels = height * int(img.shape[1])
        print_config_line(
            "dither",
            [
                ("Workers", n_workers),
                ("Bands", len(spans)),
                ("Palette", len(pal)),
                ("Pairs", table.size),
                *cfg.summary_pairs(),
            ],
            debug=True,
        )
        rate = (pixels / elapsed / 1e6) if elapsed > 0 else float("inf")
        debug_log(
            f"dithered {pixels:,} px in {format_seconds_compact(elapsed)} ({rate:.2f} MPx/s)"
        )
    return img


def dither_image(
    grid: U8Image,
    palette: PaletteLike,
    **kwargs,
) -> U8Image:
    """Like dither_ordered but leaves the input untouched and returns a copy."""
    out = np.array(assert_u8_image_rgb(grid), dtype=np.uint8, copy=True)
    return dither_ordered(out, palette, **kwargs)


def dither_pixel(
    rgb: RGBTuple | Sequence[int],
    x: int,
    y: int,
    palette: PaletteLike,
    *,
    config: Optional[DitherConfig] = None,
    matrix: Optional[ThresholdMatrix] = None,
) -> RGBTuple:
    """
    Scalar reference for a single pixel. Follows the same five steps as the
    vectorised bands and returns the palette colour chosen for (x, y).
    """
    cfg = config or DEFAULT_CONFIG
    pal = ensure_palette(palette)
    thresholds = matrix if matrix is not None else bayer_matrix(cfg.order)
    rows = pal.rows(cfg.space)

    target = Colour.from_rgb8(rgb).to(cfg.space).as_array()
    check_finite(target, "pixel colour")
    threshold = thresholds.get(x, y)
    choice = best_pair(target, rows, penalty=cfg.pair_penalty, eps=cfg.degenerate_eps)
    index = choice.index1 if threshold > choice.ratio else choice.index2
    return Colour.of(cfg.space, rows[index]).to_rgb8(cfg.quantize)


__all__ = [
    "palette_output_rgb",
    "dither_ordered",
    "dither_image",
    "dither_pixel",
]
