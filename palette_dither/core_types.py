# palette_dither/core_types.py
from __future__ import annotations

"""
Core type aliases, error types, small value objects, and lightweight helpers.
"""

from typing import NamedTuple, Sequence, Tuple, Union

import numpy as np
from numpy.typing import NDArray

# Basic aliases

RGBTuple = Tuple[int, int, int]
HexStr = str

U8Image = NDArray[np.uint8]  # (H, W, 3)
Srgb = NDArray[np.float32]  # (..., 3) gamma encoded, 0..1
Xyz = NDArray[np.float32]  # (..., 3) CIE XYZ, Y of white = 1
Lab = NDArray[np.float32]  # (..., 3) CIE Lab
OkLab = NDArray[np.float32]  # (..., 3) OKLab
Thresholds = NDArray[np.float32]  # (H, W) in [0, 1)

# Errors


class DitherError(Exception):
    """Base class for everything the dithering core refuses to do."""


class InvalidPaletteError(DitherError, ValueError):
    """Palette has fewer than two colours or malformed entries."""


class InvalidImageError(DitherError, TypeError):
    """Pixel grid is not a uint8 (H, W, 3) array."""


class DitherInvariantError(DitherError, AssertionError):
    """
    Internal consistency failure: ratio outside [0, 1], negative error, or a
    non-finite colour. Indicates a defect, never bad input. Aborts the pass.
    """


# Value objects


class PairChoice(NamedTuple):
    """Best palette pair for one target colour."""

    index1: int
    index2: int
    ratio: float  # 0 -> index1, 1 -> index2
    error: float


# Small helpers


def rgb_to_hex(rgb: RGBTuple) -> HexStr:
    """RGB tuple to lowercase hex string '#rrggbb'."""
    return f"#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}"


def hex_to_rgb(hex_str: str) -> RGBTuple:
    """Parse '#rgb' or '#rrggbb' (case-insensitive) into an RGB tuple."""
    s = hex_str.strip().lower()
    if not s.startswith("#"):
        raise ValueError("hex must start with '#'")
    if len(s) == 4:
        r, g, b = s[1], s[2], s[3]
        s = f"#{r}{r}{g}{g}{b}{b}"
    if len(s) != 7:
        raise ValueError("hex must be '#rrggbb' or '#rgb'")
    return (int(s[1:3], 16), int(s[3:5], 16), int(s[5:7], 16))


def coerce_to_rgb_tuple(value: Union[Sequence[int], NDArray[np.generic]]) -> RGBTuple:
    """
    Coerce a 3-length sequence or array to an (int, int, int) RGB tuple.
    Channels must lie in 0..255.
    """
    if isinstance(value, np.ndarray):
        if value.size != 3:
            raise ValueError("expected exactly 3 channels")
        flat = value.reshape(-1)
        rgb = (int(flat[0]), int(flat[1]), int(flat[2]))
    else:
        if len(value) != 3:
            raise ValueError("expected exactly 3 channels")
        rgb = (int(value[0]), int(value[1]), int(value[2]))
    if any(c < 0 or c > 255 for c in rgb):
        raise ValueError(f"channel out of 0..255: {rgb}")
    return rgb


def assert_u8_image_rgb(image: np.ndarray) -> U8Image:
    """Validate a uint8 (H,W,3) image and return it typed as U8Image."""
    if not isinstance(image, np.ndarray):
        raise InvalidImageError("expected a numpy array")
    if image.dtype != np.uint8 or image.ndim != 3 or image.shape[-1] != 3:
        raise InvalidImageError(
            f"expected uint8 (H,W,3) image, got {image.dtype} {image.shape}"
        )
    return image  # type: ignore[return-value]


def grid_from_bytes(width: int, height: int, data: bytes | bytearray) -> U8Image:
    """
    Wrap a dense row-major RGB byte buffer as a writable (H,W,3) uint8 grid.
    The buffer is copied.
    """
    if width <= 0 or height <= 0:
        raise InvalidImageError(f"bad grid size {width}x{height}")
    expected = width * height * 3
    if len(data) != expected:
        raise InvalidImageError(
            f"expected {expected} bytes for {width}x{height} RGB, got {len(data)}"
        )
    return np.frombuffer(bytes(data), dtype=np.uint8).reshape(height, width, 3).copy()


def check_finite(values: np.ndarray, what: str) -> None:
    """Raise DitherInvariantError when any element is NaN or infinite."""
    if not np.all(np.isfinite(values)):
        bad = int(np.count_nonzero(~np.isfinite(values)))
        raise DitherInvariantError(f"{what}: {bad} non-finite value(s)")


__all__ = [
    # aliases / types
    "RGBTuple",
    "HexStr",
    "U8Image",
    "Srgb",
    "Xyz",
    "Lab",
    "OkLab",
    "Thresholds",
    # errors
    "DitherError",
    "InvalidPaletteError",
    "InvalidImageError",
    "DitherInvariantError",
    # value objects
    "PairChoice",
    # helpers
    "rgb_to_hex",
    "hex_to_rgb",
    "coerce_to_rgb_tuple",
    "assert_u8_image_rgb",
    "grid_from_bytes",
    "check_finite",
]
