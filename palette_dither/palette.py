# palette_dither/palette.py
from __future__ import annotations

"""
Palette container and builders.

Exports:
  Palette: uint8 RGB rows plus precomputed Lab and OKLab rows (read-only)
  build_palette(colours) -> Palette
  palette_from_hex(hex_list) -> Palette
"""

from dataclasses import dataclass
from typing import Iterable, List, Sequence, Union

import numpy as np
from numpy.typing import NDArray

from .colour_convert import Space, convert, rgb8_to_srgb
from .core_types import (
    InvalidPaletteError,
    Lab,
    OkLab,
    RGBTuple,
    U8Image,
    check_finite,
    coerce_to_rgb_tuple,
    hex_to_rgb,
    rgb_to_hex,
)


@dataclass(frozen=True, eq=False)
class Palette:
    """Ordered palette of at least two colours with precomputed rows."""

    rgb: U8Image  # uint8 [K,3]
    lab: Lab  # float32 [K,3]
    oklab: OkLab  # float32 [K,3]

    def __len__(self) -> int:
        return int(self.rgb.shape[0])

    def rows(self, space: Union[Space, str]) -> NDArray[np.float32]:
        """Palette rows in the metric space the pair search runs in."""
        target = Space(space)
        if target is Space.LAB:
            return self.lab
        if target is Space.OKLAB:
            return self.oklab
        raise ValueError(f"pair search runs in lab or oklab, not {target.value}")

    def colours(self) -> List[RGBTuple]:
        return [(int(r), int(g), int(b)) for r, g, b in self.rgb.tolist()]

    def hexes(self) -> List[str]:
        return [rgb_to_hex(c) for c in self.colours()]


def build_palette(colours: Union[Iterable[Sequence[int]], np.ndarray]) -> Palette:
    """
    Validate 8-bit RGB colours and precompute their Lab and OKLab rows.
    Raises InvalidPaletteError for fewer than two colours or bad entries.
    Order is kept; duplicates are kept too (they only cost extra pairs).
    """
    if isinstance(colours, np.ndarray):
        if colours.ndim != 2 or colours.shape[-1] != 3:
            raise InvalidPaletteError(
                f"palette array must be (K,3), got shape {colours.shape}"
            )
        entries = [colours[i] for i in range(colours.shape[0])]
    else:
        entries = list(colours)

    rgb_rows: List[RGBTuple] = []
    for i, entry in enumerate(entries):
        try:
            rgb_rows.append(coerce_to_rgb_tuple(entry))
        except (TypeError, ValueError) as exc:
            raise InvalidPaletteError(f"palette entry {i}: {exc}") from exc

    if len(rgb_rows) < 2:
        raise InvalidPaletteError(
            f"palette needs at least 2 colours, got {len(rgb_rows)}"
        )

    rgb = np.array(rgb_rows, dtype=np.uint8)
    srgb = rgb8_to_srgb(rgb)
    lab = convert(srgb, Space.SRGB, Space.LAB)
    oklab = convert(srgb, Space.SRGB, Space.OKLAB)
    check_finite(lab, "palette Lab")
    check_finite(oklab, "palette OKLab")

    for arr in (rgb, lab, oklab):
        arr.setflags(write=False)
    return Palette(rgb=rgb, lab=lab, oklab=oklab)


def palette_from_hex(hex_list: Sequence[str]) -> Palette:
    """Build a palette from '#rrggbb' / '#rgb' strings (leading '#' optional)."""
    rows: List[RGBTuple] = []
    for hx in hex_list:
        try:
            rows.append(hex_to_rgb(hx if hx.startswith("#") else f"#{hx}"))
        except ValueError as exc:
            raise InvalidPaletteError(f"bad hex colour {hx!r}: {exc}") from exc
    return build_palette(rows)


def ensure_palette(
    palette: Union[Palette, Iterable[Sequence[int]], np.ndarray],
) -> Palette:
    """Pass a Palette through, build one from anything else."""
    if isinstance(palette, Palette):
        return palette
    return build_palette(palette)


__all__ = ["Palette", "build_palette", "palette_from_hex", "ensure_palette"]
