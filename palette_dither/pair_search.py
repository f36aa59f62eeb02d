# palette_dither/pair_search.py
from __future__ import annotations

"""
Palette pair search: which two palette colours, mixed in what ratio, best
explain a target colour.

For a pair (c1, c2) the target t is projected onto the segment c1 -> c2 and
the projection is clamped to the segment:

  ratio = clamp(((c2 - c1) . (t - c1)) / |c2 - c1|^2, 0, 1)
  error = |ratio * (c2 - c1) - (t - c1)|^2 + PAIR_PENALTY * |c2 - c1|^2

Pairs whose colours coincide (|c2 - c1|^2 < DEGENERATE_EPS) score the
squared distance |t - c1|^2 as error, and the same value clamped to [0, 1]
as ratio.

All pairs i < j are scanned in index order; only a strictly smaller error
replaces the current best, so ties keep the lexicographically first pair.

Two forms with identical per-pair arithmetic:
  best_pair(...)        scalar reference, one target
  search_pairs(...)     vectorised, many targets against a PairTable
"""

from dataclasses import dataclass
from typing import NamedTuple, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import CHUNK_ELEMENTS, DEGENERATE_EPS, INITIAL_RATIO, PAIR_PENALTY
from .core_types import (
    DitherInvariantError,
    InvalidPaletteError,
    PairChoice,
    check_finite,
)


def _vec3(values: np.ndarray | Sequence[float]) -> NDArray[np.float32]:
    arr = np.asarray(values, dtype=np.float32)
    if arr.shape != (3,):
        raise ValueError(f"expected a 3-component colour, got shape {arr.shape}")
    return arr


def _dot3(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Channel-wise dot product over the last axis, fixed summation order."""
    return a[..., 0] * b[..., 0] + a[..., 1] * b[..., 1] + a[..., 2] * b[..., 2]


def _check_pair_result(error: float, ratio: float) -> None:
    if not (np.isfinite(error) and np.isfinite(ratio)):
        raise DitherInvariantError(f"non-finite pair result error={error} ratio={ratio}")
    if error < 0.0:
        raise DitherInvariantError(f"negative pair error {error}")
    if ratio < 0.0 or ratio > 1.0:
        raise DitherInvariantError(f"pair ratio {ratio} outside [0, 1]")


# Scalar reference


def evaluate_pair(
    target: np.ndarray | Sequence[float],
    colour1: np.ndarray | Sequence[float],
    colour2: np.ndarray | Sequence[float],
    *,
    penalty: float = PAIR_PENALTY,
    eps: float = DEGENERATE_EPS,
) -> Tuple[float, float]:
    """
    Score one palette pair for one target, all in the same space.
    Returns (error, ratio).
    """
    t = _vec3(target)
    c1 = _vec3(colour1)
    c2 = _vec3(colour2)

    segment = c2 - c1
    offset = t - c1
    dot = _dot3(segment, offset)
    mag_sq = _dot3(segment, segment)

    if mag_sq < eps:
        dist_sq = _dot3(offset, offset)
        error = float(dist_sq)
        ratio = float(np.minimum(dist_sq, np.float32(1.0)))
    else:
        ratio_f = np.clip(dot / mag_sq, np.float32(0.0), np.float32(1.0))
        diff = ratio_f * segment - offset
        error = float(_dot3(diff, diff) + np.float32(penalty) * mag_sq)
        ratio = float(ratio_f)

    _check_pair_result(error, ratio)
    return error, ratio


def best_pair(
    target: np.ndarray | Sequence[float],
    rows: np.ndarray,
    *,
    penalty: float = PAIR_PENALTY,
    eps: float = DEGENERATE_EPS,
) -> PairChoice:
    """
    Scan every pair i < j of palette rows [K,3] and keep the lowest error.
    Starts from pair (0, 1) with ratio 0.5 and an infinite error.
    """
    pal = np.asarray(rows, dtype=np.float32)
    if pal.ndim != 2 or pal.shape[1] != 3:
        raise InvalidPaletteError(f"palette rows must be (K,3), got {pal.shape}")
    k = pal.shape[0]
    if k < 2:
        raise InvalidPaletteError(f"palette needs at least 2 colours, got {k}")

    best = PairChoice(0, 1, INITIAL_RATIO, float("inf"))
    for i in range(k):
        for j in range(i + 1, k):
            error, ratio = evaluate_pair(target, pal[i], pal[j], penalty=penalty, eps=eps)
            if error < best.error:
                best = PairChoice(i, j, ratio, error)
    return best


# Vectorised search


@dataclass(frozen=True, eq=False)
class PairTable:
    """Per-pair constants for a palette, in scan order (i < j, row-major)."""

    first: NDArray[np.intp]  # [P]
    second: NDArray[np.intp]  # [P]
    origin: NDArray[np.float32]  # [P,3] colour1 rows
    segment: NDArray[np.float32]  # [P,3] colour2 - colour1
    mag_sq: NDArray[np.float32]  # [P]
    divisor: NDArray[np.float32]  # [P] mag_sq, 1 where degenerate
    penalty_term: NDArray[np.float32]  # [P]
    degenerate: NDArray[np.bool_]  # [P]

    @property
    def size(self) -> int:
        return int(self.first.shape[0])


def build_pair_table(
    rows: np.ndarray,
    *,
    penalty: float = PAIR_PENALTY,
    eps: float = DEGENERATE_EPS,
) -> PairTable:
    """Precompute segments and penalties for all K*(K-1)/2 pairs."""
    pal = np.asarray(rows, dtype=np.float32)
    if pal.ndim != 2 or pal.shape[1] != 3:
        raise InvalidPaletteError(f"palette rows must be (K,3), got {pal.shape}")
    k = pal.shape[0]
    if k < 2:
        raise InvalidPaletteError(f"palette needs at least 2 colours, got {k}")

    first, second = np.triu_indices(k, 1)
    origin = pal[first]
    segment = pal[second] - origin
    mag_sq = _dot3(segment, segment)
    degenerate = mag_sq < eps
    divisor = np.where(degenerate, np.float32(1.0), mag_sq).astype(np.float32)
    penalty_term = (np.float32(penalty) * mag_sq).astype(np.float32)
    return PairTable(
        first=first,
        second=second,
        origin=origin,
        segment=segment,
        mag_sq=mag_sq,
        divisor=divisor,
        penalty_term=penalty_term,
        degenerate=degenerate,
    )


def evaluate_pairs(
    targets: np.ndarray, table: PairTable
) -> Tuple[NDArray[np.float32], NDArray[np.float32]]:
    """
    Score every pair for every target.

    Args:
      targets: float32 [N,3] in the table's space
    Returns:
      (error [N,P], ratio [N,P])
    """
    t = np.asarray(targets, dtype=np.float32)
    offset = t[:, None, :] - table.origin[None, :, :]
    segment = table.segment[None, :, :]

    dot = _dot3(segment, offset)
    ratio = np.clip(dot / table.divisor, np.float32(0.0), np.float32(1.0))
    diff = ratio[..., None] * segment - offset
    error = _dot3(diff, diff) + table.penalty_term

    if np.any(table.degenerate):
        dist_sq = _dot3(offset, offset)
        error = np.where(table.degenerate, dist_sq, error)
        ratio = np.where(table.degenerate, np.minimum(dist_sq, np.float32(1.0)), ratio)

    return error.astype(np.float32, copy=False), ratio.astype(np.float32, copy=False)


class PairSearchResult(NamedTuple):
    """Per-target winners of a vectorised search."""

    index1: NDArray[np.intp]  # [N]
    index2: NDArray[np.intp]  # [N]
    ratio: NDArray[np.float32]  # [N]
    error: NDArray[np.float32]  # [N]


def _search_block(targets: np.ndarray, table: PairTable) -> PairSearchResult:
    error, ratio = evaluate_pairs(targets, table)
    check_finite(error, "pair error")
    check_finite(ratio, "pair ratio")
    # argmin returns the first minimum: ties keep the earliest pair.
    best = np.argmin(error, axis=1)
    picks = np.arange(error.shape[0])
    best_error = error[picks, best]
    best_ratio = ratio[picks, best]
    if np.any(best_error < 0.0):
        raise DitherInvariantError(f"negative pair error {float(best_error.min())}")
    if np.any((best_ratio < 0.0) | (best_ratio > 1.0)):
        raise DitherInvariantError("pair ratio outside [0, 1]")
    return PairSearchResult(
        index1=table.first[best],
        index2=table.second[best],
        ratio=best_ratio,
        error=best_error,
    )


def search_pairs(
    targets: np.ndarray,
    table: PairTable,
    *,
    chunk_elements: int = CHUNK_ELEMENTS,
) -> PairSearchResult:
    """
    Best pair for each target row [N,3]. Works in chunks so that at most
    ~chunk_elements (target, pair) scores are held at once.
    """
    t = np.asarray(targets, dtype=np.float32).reshape(-1, 3)
    n = t.shape[0]
    step = max(1, int(chunk_elements) // max(1, table.size))
    if n <= step:
        return _search_block(t, table)

    index1 = np.empty((n,), dtype=np.intp)
    index2 = np.empty((n,), dtype=np.intp)
    ratio = np.empty((n,), dtype=np.float32)
    error = np.empty((n,), dtype=np.float32)
    for start in range(0, n, step):
        end = min(start + step, n)
        part = _search_block(t[start:end], table)
        index1[start:end] = part.index1
        index2[start:end] = part.index2
        ratio[start:end] = part.ratio
        error[start:end] = part.error
    return PairSearchResult(index1=index1, index2=index2, ratio=ratio, error=error)


__all__ = [
    "evaluate_pair",
    "best_pair",
    "PairTable",
    "build_pair_table",
    "evaluate_pairs",
    "PairSearchResult",
    "search_pairs",
]
