# palette_dither/constants.py
"""
Global constants and tunables used across the project.

- Reference white and colour-space matrices (sRGB / XYZ / Lab / OKLab, D65)
- Pair search weights (PAIR_PENALTY, DEGENERATE_EPS)
- Threshold matrix order and output quantisation
"""
from __future__ import annotations

from typing import Final, Tuple

import numpy as np

Matrix3 = Tuple[
    Tuple[float, float, float],
    Tuple[float, float, float],
    Tuple[float, float, float],
]

# ===================
# Working space (D65)
# ===================

# D65 / 2 degree reference observer, 0..100 scale. XYZ values are kept on the
# 0..1 scale, so the white point is applied divided by 100.
XYZ_REFERENCE: Final[Tuple[float, float, float]] = (95.047, 100.00, 108.883)

# sRGB transfer function breakpoints.
SRGB_DECODE_BREAK: Final[float] = 0.04045
SRGB_ENCODE_BREAK: Final[float] = 0.0031308
SRGB_LINEAR_SLOPE: Final[float] = 12.92
SRGB_GAMMA: Final[float] = 2.4

# Linear RGB -> XYZ (D65).
RGB_TO_XYZ: Final[Matrix3] = (
    (0.4124564, 0.3575761, 0.1804375),
    (0.2126729, 0.7151522, 0.0721750),
    (0.0193339, 0.1191920, 0.9503041),
)

# XYZ -> linear RGB (D65).
XYZ_TO_RGB: Final[Matrix3] = (
    (3.2404542, -1.5371385, -0.4985314),
    (-0.9692660, 1.8760108, 0.0415560),
    (0.0556434, -0.2040259, 1.0572252),
)

# CIELAB companding.
LAB_EPSILON: Final[float] = 0.008856
LAB_KAPPA_SLOPE: Final[float] = 7.787
LAB_OFFSET: Final[float] = 16.0 / 116.0

# OKLab (Ottosson). XYZ -> LMS, then cube root, then LMS' -> Lab.
OKLAB_M1: Final[Matrix3] = (
    (0.8189330101, 0.3618667424, -0.1288597137),
    (0.0329845436, 0.9293118715, 0.0361456387),
    (0.0482003018, 0.2643662691, 0.6338517070),
)
OKLAB_M2: Final[Matrix3] = (
    (0.2104542553, 0.7936177850, -0.0040720468),
    (1.9779984951, -2.4285922050, 0.4505937099),
    (0.0259040371, 0.7827717662, -0.8086757660),
)


def _inverse(m: Matrix3) -> Matrix3:
    """Float64 inverse of a 3x3 matrix, returned as nested tuples."""
    inv = np.linalg.inv(np.asarray(m, dtype=np.float64))
    return tuple(tuple(float(v) for v in row) for row in inv)  # type: ignore[return-value]


OKLAB_M1_INV: Final[Matrix3] = _inverse(OKLAB_M1)
OKLAB_M2_INV: Final[Matrix3] = _inverse(OKLAB_M2)

# ===========
# Pair search
# ===========

# Weight of |colour2 - colour1|^2 added to every pair's error. Discourages
# widely separated pairs when a closer pair explains the target as well.
PAIR_PENALTY: Final[float] = 0.05

# Squared segment length below which two palette colours count as the same.
DEGENERATE_EPS: Final[float] = 1e-6

# Initial blend ratio for the (0, 1) pair before the scan.
INITIAL_RATIO: Final[float] = 0.5

# Pair search working memory: pixels x pairs per vectorised chunk.
CHUNK_ELEMENTS: Final[int] = 1 << 18

# ================
# Threshold matrix
# ================

# log2 of the matrix side. 5 -> 32x32.
MATRIX_ORDER: Final[int] = 5
MATRIX_ORDER_MIN: Final[int] = 1
MATRIX_ORDER_MAX: Final[int] = 8

# ======
# Output
# ======

# "round" to nearest or "truncate" toward zero when writing 8-bit channels.
QUANTIZE_MODE: Final[str] = "round"
QUANTIZE_MODES: Final[Tuple[str, ...]] = ("round", "truncate")

# Colour space the pair search runs in.
METRIC_SPACE: Final[str] = "lab"
METRIC_SPACES: Final[Tuple[str, ...]] = ("lab", "oklab")

# =====
# CLI
# =====

DEFAULT_OUTPUT: Final[str] = "out.png"
DEFAULT_WIDTH: Final[int] = 1920
DEFAULT_HEIGHT: Final[int] = 1080

__all__ = [
    "Matrix3",
    "XYZ_REFERENCE",
    "SRGB_DECODE_BREAK",
    "SRGB_ENCODE_BREAK",
    "SRGB_LINEAR_SLOPE",
    "SRGB_GAMMA",
    "RGB_TO_XYZ",
    "XYZ_TO_RGB",
    "LAB_EPSILON",
    "LAB_KAPPA_SLOPE",
    "LAB_OFFSET",
    "OKLAB_M1",
    "OKLAB_M2",
    "OKLAB_M1_INV",
    "OKLAB_M2_INV",
    "PAIR_PENALTY",
    "DEGENERATE_EPS",
    "INITIAL_RATIO",
    "CHUNK_ELEMENTS",
    "MATRIX_ORDER",
    "MATRIX_ORDER_MIN",
    "MATRIX_ORDER_MAX",
    "QUANTIZE_MODE",
    "QUANTIZE_MODES",
    "METRIC_SPACE",
    "METRIC_SPACES",
    "DEFAULT_OUTPUT",
    "DEFAULT_WIDTH",
    "DEFAULT_HEIGHT",
]
