# palette_dither/threshold.py
from __future__ import annotations

"""
Ordered-dither threshold matrix (Bayer, bit interleaved).

The matrix has side 2^order and holds every value k / side^2 exactly once.
Lookups wrap, so the tile repeats seamlessly across any image size.
"""

from dataclasses import dataclass
from functools import lru_cache

import numpy as np
from numpy.typing import NDArray

from .constants import MATRIX_ORDER, MATRIX_ORDER_MAX, MATRIX_ORDER_MIN
from .core_types import Thresholds


def bayer_levels(order: int) -> NDArray[np.int64]:
    """
    Integer Bayer levels for a 2^order square, indexed [y, x].

    For each bit p of y and of (x ^ y), y's bit lands at 2*(order-p-1) and
    the xor bit one above it, so the low bits of the coordinates become the
    high bits of the level.
    """
    if isinstance(order, bool) or not isinstance(order, int):
        raise ValueError(f"matrix order must be an int, got {order!r}")
    if not (MATRIX_ORDER_MIN <= order <= MATRIX_ORDER_MAX):
        raise ValueError(
            f"matrix order must be in [{MATRIX_ORDER_MIN}, {MATRIX_ORDER_MAX}], got {order}"
        )
    side = 1 << order
    ys, xs = np.indices((side, side), dtype=np.int64)
    xor = xs ^ ys
    levels = np.zeros((side, side), dtype=np.int64)
    for p in range(order):
        bit_idx = 2 * (order - p - 1)
        levels |= ((ys >> p) & 1) << bit_idx
        levels |= ((xor >> p) & 1) << (bit_idx + 1)
    return levels


@dataclass(frozen=True, eq=False)
class ThresholdMatrix:
    """Read-only square threshold tile. values[y, x] is in [0, 1)."""

    order: int
    values: Thresholds

    @classmethod
    def bayer(cls, order: int = MATRIX_ORDER) -> "ThresholdMatrix":
        return bayer_matrix(order)

    @property
    def side(self) -> int:
        return int(self.values.shape[0])

    def get(self, x: int, y: int) -> float:
        """Threshold at pixel (x, y); row by y, column by x, both wrapped."""
        return float(self.values[y % self.side, x % self.side])

    def tile(
        self, height: int, width: int, *, row_offset: int = 0, col_offset: int = 0
    ) -> Thresholds:
        """
        Thresholds for a height x width region whose top-left pixel sits at
        (col_offset, row_offset). Returns a new float32 array [H, W].
        """
        rows = (np.arange(height, dtype=np.int64) + row_offset) % self.side
        cols = (np.arange(width, dtype=np.int64) + col_offset) % self.side
        return self.values[np.ix_(rows, cols)]


@lru_cache(maxsize=None)
def bayer_matrix(order: int = MATRIX_ORDER) -> ThresholdMatrix:
    """Build (once per order) the normalised Bayer matrix."""
    levels = bayer_levels(order)
    side = levels.shape[0]
    # k / 2^(2*order) is exact in float32 for every supported order.
    values = (levels.astype(np.float64) / float(side * side)).astype(np.float32)
    values.setflags(write=False)
    return ThresholdMatrix(order=order, values=values)


__all__ = ["bayer_levels", "ThresholdMatrix", "bayer_matrix"]
