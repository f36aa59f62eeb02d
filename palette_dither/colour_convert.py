# palette_dither/colour_convert.py
from __future__ import annotations

"""
Colour conversions (D65): sRGB <-> XYZ <-> Lab / OKLab.

Everything is float32 and vectorised over (..., 3). XYZ is the hub: every
space converts to XYZ and back, so any pair of spaces is two steps apart.

Exports:
  srgb_to_linear(srgb) / linear_to_srgb(linear)
  srgb_to_xyz(srgb) / xyz_to_srgb(xyz)
  xyz_to_lab(xyz)   / lab_to_xyz(lab)
  xyz_to_oklab(xyz) / oklab_to_xyz(oklab)
  rgb8_to_srgb(rgb) / srgb_to_rgb8(srgb, mode)
  convert(values, src, dst)
  Space, Colour
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from .constants import (
    LAB_EPSILON,
    LAB_KAPPA_SLOPE,
    LAB_OFFSET,
    OKLAB_M1,
    OKLAB_M1_INV,
    OKLAB_M2,
    OKLAB_M2_INV,
    QUANTIZE_MODE,
    QUANTIZE_MODES,
    RGB_TO_XYZ,
    SRGB_DECODE_BREAK,
    SRGB_ENCODE_BREAK,
    SRGB_GAMMA,
    SRGB_LINEAR_SLOPE,
    XYZ_REFERENCE,
    XYZ_TO_RGB,
    Matrix3,
)
from .core_types import Lab, OkLab, RGBTuple, Srgb, U8Image, Xyz

_WHITE = np.asarray(XYZ_REFERENCE, dtype=np.float32) / np.float32(100.0)


def _as_f32(values: np.ndarray | Sequence[float]) -> NDArray[np.float32]:
    arr = np.asarray(values, dtype=np.float32)
    if arr.shape[-1:] != (3,):
        raise ValueError(f"expected (..., 3) colour array, got shape {arr.shape}")
    return arr


def _apply_matrix(m: Matrix3, v: NDArray[np.float32]) -> NDArray[np.float32]:
    """Row-by-row 3x3 product. Written out per channel so each pixel is
    computed the same way regardless of batch size."""
    c0, c1, c2 = v[..., 0], v[..., 1], v[..., 2]
    out = np.empty(v.shape, dtype=np.float32)
    for i in range(3):
        out[..., i] = (
            np.float32(m[i][0]) * c0
            + np.float32(m[i][1]) * c1
            + np.float32(m[i][2]) * c2
        )
    return out


# sRGB transfer curve


def srgb_to_linear(srgb: np.ndarray) -> NDArray[np.float32]:
    """Gamma-encoded sRGB (0..1) to linear light. Any shape."""
    v = np.asarray(srgb, dtype=np.float32)
    with np.errstate(invalid="ignore"):
        linear = np.where(
            v <= SRGB_DECODE_BREAK,
            v / np.float32(SRGB_LINEAR_SLOPE),
            ((v + np.float32(0.055)) / np.float32(1.055)) ** np.float32(SRGB_GAMMA),
        )
    return linear.astype(np.float32, copy=False)


def linear_to_srgb(linear: np.ndarray) -> NDArray[np.float32]:
    """Linear light to gamma-encoded sRGB, clamped to [0, 1]. Any shape."""
    v = np.asarray(linear, dtype=np.float32)
    with np.errstate(invalid="ignore"):
        encoded = np.where(
            v <= SRGB_ENCODE_BREAK,
            v * np.float32(SRGB_LINEAR_SLOPE),
            np.float32(1.055) * v ** np.float32(1.0 / SRGB_GAMMA) - np.float32(0.055),
        )
    return np.clip(encoded, 0.0, 1.0).astype(np.float32, copy=False)


# sRGB <-> XYZ


def srgb_to_xyz(srgb: np.ndarray) -> Xyz:
    """sRGB[...,3] (0..1) to XYZ[...,3] on the Y=1 scale."""
    return _apply_matrix(RGB_TO_XYZ, srgb_to_linear(_as_f32(srgb)))


def xyz_to_srgb(xyz: np.ndarray) -> Srgb:
    """XYZ[...,3] to sRGB[...,3], clamped to [0, 1]."""
    return linear_to_srgb(_apply_matrix(XYZ_TO_RGB, _as_f32(xyz)))


# XYZ <-> Lab


def xyz_to_lab(xyz: np.ndarray) -> Lab:
    """XYZ[...,3] to CIE Lab[...,3] against the D65 white."""
    n = _as_f32(xyz) / _WHITE
    with np.errstate(invalid="ignore"):
        f = np.where(
            n > LAB_EPSILON,
            np.cbrt(n),
            np.float32(LAB_KAPPA_SLOPE) * n + np.float32(LAB_OFFSET),
        ).astype(np.float32, copy=False)
    fx, fy, fz = f[..., 0], f[..., 1], f[..., 2]
    out = np.empty(f.shape, dtype=np.float32)
    out[..., 0] = np.float32(116.0) * fy - np.float32(16.0)
    out[..., 1] = np.float32(500.0) * (fx - fy)
    out[..., 2] = np.float32(200.0) * (fy - fz)
    return out


def lab_to_xyz(lab: np.ndarray) -> Xyz:
    """CIE Lab[...,3] to XYZ[...,3] on the Y=1 scale."""
    arr = _as_f32(lab)
    f = np.empty(arr.shape, dtype=np.float32)
    f[..., 1] = (arr[..., 0] + np.float32(16.0)) / np.float32(116.0)
    f[..., 0] = arr[..., 1] / np.float32(500.0) + f[..., 1]
    f[..., 2] = f[..., 1] - arr[..., 2] / np.float32(200.0)
    cube = f * f * f
    n = np.where(
        cube > LAB_EPSILON,
        cube,
        (f - np.float32(LAB_OFFSET)) / np.float32(LAB_KAPPA_SLOPE),
    )
    return (n * _WHITE).astype(np.float32, copy=False)


# XYZ <-> OKLab


def xyz_to_oklab(xyz: np.ndarray) -> OkLab:
    """XYZ[...,3] to OKLab[...,3]. Cube root between the two matrices."""
    lms = _apply_matrix(OKLAB_M1, _as_f32(xyz))
    return _apply_matrix(OKLAB_M2, np.cbrt(lms).astype(np.float32, copy=False))


def oklab_to_xyz(oklab: np.ndarray) -> Xyz:
    """OKLab[...,3] to XYZ[...,3]. Cube between the two inverse matrices."""
    lms_ = _apply_matrix(OKLAB_M2_INV, _as_f32(oklab))
    return _apply_matrix(OKLAB_M1_INV, lms_ * lms_ * lms_)


# 8-bit boundary


def rgb8_to_srgb(rgb: np.ndarray | Sequence[int]) -> Srgb:
    """uint8 RGB[...,3] to float32 sRGB in 0..1."""
    arr = np.asarray(rgb)
    return arr.astype(np.float32) / np.float32(255.0)


def srgb_to_rgb8(srgb: np.ndarray, mode: str = QUANTIZE_MODE) -> U8Image:
    """
    Float sRGB (0..1) to uint8. "round" picks the nearest level, "truncate"
    drops the fraction. Input is clamped first.
    """
    if mode not in QUANTIZE_MODES:
        raise ValueError(f"unknown quantize mode {mode!r}")
    scaled = np.clip(np.asarray(srgb, dtype=np.float32), 0.0, 1.0) * np.float32(255.0)
    if mode == "round":
        scaled = np.floor(scaled + np.float32(0.5))
    else:
        scaled = np.floor(scaled)
    return scaled.astype(np.uint8)


# Space dispatch


class Space(str, Enum):
    """Tag for the four colour representations."""

    SRGB = "srgb"
    XYZ = "xyz"
    LAB = "lab"
    OKLAB = "oklab"


def _identity(values: np.ndarray) -> NDArray[np.float32]:
    return _as_f32(values).copy()


_TO_XYZ: Dict[Space, Callable[[np.ndarray], NDArray[np.float32]]] = {
    Space.SRGB: srgb_to_xyz,
    Space.XYZ: _identity,
    Space.LAB: lab_to_xyz,
    Space.OKLAB: oklab_to_xyz,
}

_FROM_XYZ: Dict[Space, Callable[[np.ndarray], NDArray[np.float32]]] = {
    Space.SRGB: xyz_to_srgb,
    Space.XYZ: _identity,
    Space.LAB: xyz_to_lab,
    Space.OKLAB: xyz_to_oklab,
}


def convert(
    values: np.ndarray | Sequence[float], src: Space | str, dst: Space | str
) -> NDArray[np.float32]:
    """Convert (..., 3) colours from one space to another. Same space copies."""
    src_space, dst_space = Space(src), Space(dst)
    if src_space is dst_space:
        return _identity(np.asarray(values))
    return _FROM_XYZ[dst_space](_TO_XYZ[src_space](np.asarray(values)))


@dataclass(frozen=True)
class Colour:
    """One colour tagged with its representation. Immutable."""

    space: Space
    c0: float
    c1: float
    c2: float

    @classmethod
    def of(
        cls, space: Space | str, values: Sequence[float] | np.ndarray
    ) -> "Colour":
        arr = _as_f32(values).reshape(3)
        return cls(Space(space), float(arr[0]), float(arr[1]), float(arr[2]))

    @classmethod
    def from_rgb8(cls, rgb: RGBTuple | Sequence[int]) -> "Colour":
        return cls.of(Space.SRGB, rgb8_to_srgb(np.asarray(rgb, dtype=np.uint8)))

    def as_array(self) -> NDArray[np.float32]:
        return np.array([self.c0, self.c1, self.c2], dtype=np.float32)

    def as_tuple(self) -> Tuple[float, float, float]:
        return (self.c0, self.c1, self.c2)

    def to(self, space: Space | str) -> "Colour":
        target = Space(space)
        if target is self.space:
            return self
        return Colour.of(target, convert(self.as_array(), self.space, target))

    def srgb(self) -> "Colour":
        return self.to(Space.SRGB)

    def xyz(self) -> "Colour":
        return self.to(Space.XYZ)

    def lab(self) -> "Colour":
        return self.to(Space.LAB)

    def oklab(self) -> "Colour":
        return self.to(Space.OKLAB)

    def to_rgb8(self, mode: str = QUANTIZE_MODE) -> RGBTuple:
        """Quantise to an 8-bit RGB tuple via sRGB."""
        out = srgb_to_rgb8(self.srgb().as_array(), mode)
        return (int(out[0]), int(out[1]), int(out[2]))


__all__ = [
    "srgb_to_linear",
    "linear_to_srgb",
    "srgb_to_xyz",
    "xyz_to_srgb",
    "xyz_to_lab",
    "lab_to_xyz",
    "xyz_to_oklab",
    "oklab_to_xyz",
    "rgb8_to_srgb",
    "srgb_to_rgb8",
    "Space",
    "convert",
    "Colour",
]
