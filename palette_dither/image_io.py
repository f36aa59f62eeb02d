# palette_dither/image_io.py
from __future__ import annotations

import io
from pathlib import Path
from typing import List

import numpy as np
from PIL import Image, ImageCms, ImageOps, UnidentifiedImageError

from .core_types import RGBTuple, U8Image, assert_u8_image_rgb
from .utils import warn

"""
Image I/O helpers (RGB in sRGB), palette image extraction, and resize utilities.
"""


def pillow_resample_from_name(name: str) -> Image.Resampling:
    """Map a string to a Pillow resampling filter enum."""
    if name == "nearest":
        return Image.Resampling.NEAREST
    if name == "bilinear":
        return Image.Resampling.BILINEAR
    if name == "bicubic":
        return Image.Resampling.BICUBIC
    if name == "lanczos":
        return Image.Resampling.LANCZOS
    raise ValueError(f"unknown resample filter {name!r}")


def _convert_to_srgb_rgb(im: Image.Image) -> Image.Image:
    im = ImageOps.exif_transpose(im)
    icc_bytes = im.info.get("icc_profile")

    if icc_bytes:
        try:
            src_prof = ImageCms.ImageCmsProfile(io.BytesIO(icc_bytes))
            dst_prof = ImageCms.createProfile("sRGB")
            im2 = ImageCms.profileToProfile(
                im.convert("RGB"),
                src_prof,
                dst_prof,
                renderingIntent=ImageCms.Intent.PERCEPTUAL,
                outputMode="RGB",
            )
            if im2 is not None:
                return im2
        except (ImageCms.PyCMSError, OSError) as exc:
            warn(f"ignoring unusable ICC profile ({exc})")

    return im.convert("RGB")


def load_image_rgb(path: Path) -> U8Image:
    """Decode any Pillow-readable image to a writable uint8 (H,W,3) sRGB array."""
    with Image.open(path) as im0:
        im = _convert_to_srgb_rgb(im0)
    return np.array(im, dtype=np.uint8)


def save_image_rgb(path: Path, rgb: U8Image) -> Path:
    """
    Save an (H,W,3) uint8 array. Lossy formats would break exact palette
    colours, so anything other than PNG is written as PNG.
    """
    img = assert_u8_image_rgb(rgb)
    if path.suffix.lower() != ".png":
        path = path.with_suffix(".png")
    Image.fromarray(np.ascontiguousarray(img)).save(path)
    return path


def unique_colours_first_seen(rgb: U8Image) -> List[RGBTuple]:
    """Distinct RGB colours in row-major first-occurrence order."""
    flat = rgb.reshape(-1, 3)
    if flat.shape[0] == 0:
        return []
    uniques, first_idx = np.unique(flat, axis=0, return_index=True)
    order = np.argsort(first_idx, kind="stable")
    return [(int(r), int(g), int(b)) for r, g, b in uniques[order].tolist()]


def load_palette_image(path: Path) -> List[RGBTuple]:
    """
    Read a palette image (swatches, strip, any layout) and return its
    distinct colours, deduplicated, in first-seen order.
    """
    return unique_colours_first_seen(load_image_rgb(path))


def resize_cover_crop(
    rgb: U8Image,
    width: int,
    height: int,
    resample: Image.Resampling = Image.Resampling.BICUBIC,
) -> U8Image:
    """
    Scale so the image covers width x height with its aspect ratio kept,
    then centre-crop to exactly width x height.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"target size must be positive, got {width}x{height}")
    h0, w0, _ = assert_u8_image_rgb(rgb).shape
    in_aspect = w0 / float(h0)
    out_aspect = width / float(height)

    if in_aspect < out_aspect:
        # width is the limiting side
        cover_w, cover_h = width, max(height, int(width / in_aspect))
    else:
        cover_w, cover_h = max(width, int(height * in_aspect)), height

    im = Image.fromarray(np.ascontiguousarray(rgb))
    if (cover_w, cover_h) != (w0, h0):
        im = im.resize((cover_w, cover_h), resample=resample)
    left = (cover_w - width) // 2
    top = (cover_h - height) // 2
    im = im.crop((left, top, left + width, top + height))
    return np.array(im, dtype=np.uint8)


def is_image_file(path: Path) -> bool:
    try:
        with Image.open(path) as im:
            im.seek(0)
            im.load()
        return True
    except (UnidentifiedImageError, OSError):
        return False


__all__ = [
    "pillow_resample_from_name",
    "load_image_rgb",
    "save_image_rgb",
    "unique_colours_first_seen",
    "load_palette_image",
    "resize_cover_crop",
    "is_image_file",
]
