# palette_dither/__init__.py
"""
palette_dither package.

Purpose:
  Ordered dithering of RGB images onto an arbitrary palette. See
  dither_image.py for the CLI.

Public API:
  dither_ordered : dither a uint8 (H,W,3) grid in place.
  dither_image   : same, returning a copy.
  build_palette  : validate RGB triples and precompute Lab / OKLab rows.
  colour_convert : sRGB / XYZ / Lab / OKLab transforms and the Colour value.
  threshold      : Bayer threshold matrix.
  pair_search    : palette pair + blend ratio search.
  core_types     : shared aliases and error types.

Quick start:
  from palette_dither import build_palette, dither_image
  out = dither_image(rgb, build_palette([(0, 0, 0), (255, 255, 255)]))
"""

__version__ = "0.1.0"

# Re-export namespaces for convenience.
from . import colour_convert
from . import constants
from . import core_types
from . import pair_search
from . import palette
from . import threshold
from . import utils

from .colour_convert import Colour, Space, convert  # noqa: E402,F401
from .config import DEFAULT_CONFIG, DitherConfig  # noqa: E402,F401
from .core_types import (  # noqa: E402,F401
    DitherError,
    DitherInvariantError,
    InvalidImageError,
    InvalidPaletteError,
    PairChoice,
)
from .ordered import dither_image, dither_ordered, dither_pixel  # noqa: E402,F401
from .palette import Palette, build_palette, palette_from_hex  # noqa: E402,F401
from .threshold import ThresholdMatrix, bayer_matrix  # noqa: E402,F401

__all__ = [
    "__version__",
    "colour_convert",
    "constants",
    "core_types",
    "pair_search",
    "palette",
    "threshold",
    "utils",
    "Colour",
    "Space",
    "convert",
    "DitherConfig",
    "DEFAULT_CONFIG",
    "DitherError",
    "DitherInvariantError",
    "InvalidImageError",
    "InvalidPaletteError",
    "PairChoice",
    "dither_image",
    "dither_ordered",
    "dither_pixel",
    "Palette",
    "build_palette",
    "palette_from_hex",
    "ThresholdMatrix",
    "bayer_matrix",
]
