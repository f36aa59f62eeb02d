"""Tests for palette_dither.image_io: load/save, palette images, cover-crop."""
import numpy as np
import pytest
from PIL import Image

from palette_dither.image_io import (
    is_image_file,
    load_image_rgb,
    load_palette_image,
    pillow_resample_from_name,
    resize_cover_crop,
    save_image_rgb,
    unique_colours_first_seen,
)

RED = [255, 0, 0]
BLUE = [0, 0, 255]
GREEN = [0, 255, 0]


# ============================================================================
# Load / save
# ============================================================================

class TestLoadSave:
    def test_png_roundtrip(self, tmp_path):
        rgb = np.random.default_rng(3).integers(0, 256, size=(9, 7, 3), dtype=np.uint8)
        path = save_image_rgb(tmp_path / "a.png", rgb)
        assert path == tmp_path / "a.png"
        assert np.array_equal(load_image_rgb(path), rgb)

    def test_non_png_suffix_written_as_png(self, tmp_path):
        rgb = np.zeros((3, 3, 3), dtype=np.uint8)
        path = save_image_rgb(tmp_path / "b.jpg", rgb)
        assert path.suffix == ".png"
        assert path.exists()
        with Image.open(path) as im:
            assert im.format == "PNG"

    def test_alpha_dropped(self, tmp_path):
        Image.new("RGBA", (4, 2), (10, 20, 30, 0)).save(tmp_path / "c.png")
        rgb = load_image_rgb(tmp_path / "c.png")
        assert rgb.shape == (2, 4, 3)
        assert rgb[0, 0].tolist() == [10, 20, 30]

    def test_loaded_grid_is_writable(self, tmp_path):
        Image.new("RGB", (2, 2)).save(tmp_path / "d.png")
        assert load_image_rgb(tmp_path / "d.png").flags.writeable

    def test_is_image_file(self, tmp_path):
        Image.new("RGB", (2, 2)).save(tmp_path / "ok.png")
        (tmp_path / "bad.png").write_bytes(b"not an image")
        assert is_image_file(tmp_path / "ok.png")
        assert not is_image_file(tmp_path / "bad.png")
        assert not is_image_file(tmp_path / "missing.png")


# ============================================================================
# Palette images
# ============================================================================

class TestPaletteImage:
    def test_first_seen_order(self):
        rgb = np.array([[BLUE, RED], [BLUE, GREEN]], dtype=np.uint8)
        assert unique_colours_first_seen(rgb) == [(0, 0, 255), (255, 0, 0), (0, 255, 0)]

    def test_empty(self):
        assert unique_colours_first_seen(np.zeros((0, 0, 3), dtype=np.uint8)) == []

    def test_load_palette_image(self, tmp_path):
        strip = np.array([[RED, RED, GREEN, BLUE, GREEN]], dtype=np.uint8)
        Image.fromarray(strip).save(tmp_path / "pal.png")
        assert load_palette_image(tmp_path / "pal.png") == [
            (255, 0, 0),
            (0, 255, 0),
            (0, 0, 255),
        ]


# ============================================================================
# Cover-crop
# ============================================================================

class TestResizeCoverCrop:
    def test_wide_source(self):
        rgb = np.zeros((50, 100, 3), dtype=np.uint8)
        assert resize_cover_crop(rgb, 40, 40).shape == (40, 40, 3)

    def test_tall_source(self):
        rgb = np.zeros((100, 50, 3), dtype=np.uint8)
        assert resize_cover_crop(rgb, 30, 20).shape == (20, 30, 3)

    def test_same_size_is_untouched(self):
        rgb = np.random.default_rng(5).integers(0, 256, size=(6, 8, 3), dtype=np.uint8)
        assert np.array_equal(resize_cover_crop(rgb, 8, 6), rgb)

    def test_crop_is_centred(self):
        # blue side bands, red middle; the square crop keeps only red
        rgb = np.zeros((50, 100, 3), dtype=np.uint8)
        rgb[:, :] = BLUE
        rgb[:, 20:80] = RED
        out = resize_cover_crop(rgb, 40, 40)
        assert (out[..., 0] > 240).all()
        assert (out[..., 2] < 15).all()

    def test_bad_size(self):
        with pytest.raises(ValueError):
            resize_cover_crop(np.zeros((4, 4, 3), dtype=np.uint8), 0, 4)

    def test_resample_names(self):
        assert pillow_resample_from_name("bicubic") == Image.Resampling.BICUBIC
        assert pillow_resample_from_name("nearest") == Image.Resampling.NEAREST
        with pytest.raises(ValueError):
            pillow_resample_from_name("sinc")
