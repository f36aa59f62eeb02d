# palette_dither/config.py
from __future__ import annotations

"""
Per-run settings for the ordered dither. Defaults come from constants.py.
"""

from dataclasses import dataclass, replace
from typing import Any, Iterable, Tuple

from .colour_convert import Space
from .constants import (
    CHUNK_ELEMENTS,
    DEGENERATE_EPS,
    MATRIX_ORDER,
    MATRIX_ORDER_MAX,
    MATRIX_ORDER_MIN,
    METRIC_SPACE,
    METRIC_SPACES,
    PAIR_PENALTY,
    QUANTIZE_MODE,
    QUANTIZE_MODES,
)


@dataclass(frozen=True)
class DitherConfig:
    """
    order         : log2 of the threshold matrix side (5 -> 32x32)
    pair_penalty  : weight of |c2 - c1|^2 in a pair's error
    degenerate_eps: squared distance under which a pair's colours coincide
    metric_space  : "lab" or "oklab", where the pair search measures
    quantize      : "round" or "truncate" for 8-bit output
    chunk_elements: (pixel, pair) scores held at once per worker
    """

    order: int = MATRIX_ORDER
    pair_penalty: float = PAIR_PENALTY
    degenerate_eps: float = DEGENERATE_EPS
    metric_space: str = METRIC_SPACE
    quantize: str = QUANTIZE_MODE
    chunk_elements: int = CHUNK_ELEMENTS

    def __post_init__(self) -> None:
        if isinstance(self.order, bool) or not isinstance(self.order, int):
            raise ValueError(f"order must be an int, got {self.order!r}")
        if not (MATRIX_ORDER_MIN <= self.order <= MATRIX_ORDER_MAX):
            raise ValueError(
                f"order must be in [{MATRIX_ORDER_MIN}, {MATRIX_ORDER_MAX}], got {self.order}"
            )
        if self.pair_penalty < 0.0:
            raise ValueError(f"pair_penalty must be >= 0, got {self.pair_penalty}")
        if self.degenerate_eps < 0.0:
            raise ValueError(f"degenerate_eps must be >= 0, got {self.degenerate_eps}")
        if self.metric_space not in METRIC_SPACES:
            raise ValueError(
                f"metric_space must be one of {METRIC_SPACES}, got {self.metric_space!r}"
            )
        if self.quantize not in QUANTIZE_MODES:
            raise ValueError(
                f"quantize must be one of {QUANTIZE_MODES}, got {self.quantize!r}"
            )
        if self.chunk_elements < 1:
            raise ValueError(f"chunk_elements must be >= 1, got {self.chunk_elements}")

    @property
    def space(self) -> Space:
        return Space(self.metric_space)

    def with_overrides(self, **changes: Any) -> "DitherConfig":
        """Copy with the given fields replaced; None values are ignored."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})

    def summary_pairs(self) -> Iterable[Tuple[str, Any]]:
        side = 1 << self.order
        return [
            ("Matrix", f"{side}x{side}"),
            ("Space", self.metric_space),
            ("Penalty", float(self.pair_penalty)),
            ("Quantize", self.quantize),
        ]


DEFAULT_CONFIG = DitherConfig()

__all__ = ["DitherConfig", "DEFAULT_CONFIG"]
