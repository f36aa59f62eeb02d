"""Tests for palette_dither.ordered: the dither engine end to end."""
import numpy as np
import pytest

import palette_dither.ordered as ordered
from palette_dither.config import DitherConfig
from palette_dither.core_types import (
    DitherInvariantError,
    InvalidImageError,
    InvalidPaletteError,
)
from palette_dither.ordered import (
    dither_image,
    dither_ordered,
    dither_pixel,
    palette_output_rgb,
)
from palette_dither.palette import build_palette
from palette_dither.threshold import bayer_matrix

BLACK = (0, 0, 0)
WHITE = (255, 255, 255)


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def rng():
    return np.random.default_rng(42)


@pytest.fixture
def random_grid(rng):
    return rng.integers(0, 256, size=(17, 13, 3), dtype=np.uint8)


@pytest.fixture
def six_colours():
    return build_palette(
        [BLACK, WHITE, (200, 30, 40), (20, 160, 60), (40, 60, 220), (240, 220, 40)]
    )


def _palette_set(palette):
    return {tuple(c) for c in palette.colours()}


def _pixel_set(grid):
    return {tuple(p) for p in grid.reshape(-1, 3).tolist()}


# ============================================================================
# Worked example
# ============================================================================

class TestGrayOnBlackWhite:
    """Mid-gray on a black/white palette with a 2x2 matrix."""

    def test_pattern(self):
        grid = np.full((2, 2, 3), 128, dtype=np.uint8)
        out = dither_ordered(grid, [BLACK, WHITE], config=DitherConfig(order=1))
        assert out[0, 0].tolist() == list(WHITE)
        assert out[0, 1].tolist() == list(WHITE)
        assert out[1, 0].tolist() == list(BLACK)
        assert out[1, 1].tolist() == list(WHITE)

    def test_dark_gray_mostly_black(self):
        grid = np.full((32, 32, 3), 40, dtype=np.uint8)
        out = dither_image(grid, [BLACK, WHITE])
        black = int(np.count_nonzero(out[..., 0] == 0))
        assert black > out.shape[0] * out.shape[1] // 2

    def test_second_colour_passes_through(self):
        # ratio is exactly 1 and no threshold exceeds it
        grid = np.full((8, 8, 3), 255, dtype=np.uint8)
        out = dither_image(grid, [BLACK, WHITE], config=DitherConfig(order=3))
        assert np.array_equal(out, grid)

    def test_first_colour_only_yields_at_zero_threshold(self):
        # ratio is exactly 0, so only the 0 threshold picks the second colour
        grid = np.zeros((4, 4, 3), dtype=np.uint8)
        out = dither_image(grid, [BLACK, WHITE], config=DitherConfig(order=2))
        white = np.argwhere(out[..., 0] == 255).tolist()
        assert white == [[0, 0]]


# ============================================================================
# Engine guarantees
# ============================================================================

class TestEngine:
    def test_output_uses_palette_colours_only(self, random_grid, six_colours):
        out = dither_image(random_grid, six_colours)
        assert _pixel_set(out) <= _palette_set(six_colours)

    def test_oklab_output_uses_palette_colours_only(self, random_grid, six_colours):
        cfg = DitherConfig(metric_space="oklab")
        out = dither_image(random_grid, six_colours, config=cfg)
        assert _pixel_set(out) <= _palette_set(six_colours)

    def test_truncate_mode(self, random_grid, six_colours):
        cfg = DitherConfig(quantize="truncate")
        out = dither_image(random_grid, six_colours, config=cfg)
        assert _pixel_set(out) <= {
            tuple(c) for c in palette_output_rgb(six_colours, cfg).tolist()
        }

    def test_deterministic(self, random_grid, six_colours):
        a = dither_image(random_grid, six_colours)
        b = dither_image(random_grid, six_colours)
        assert np.array_equal(a, b)

    @pytest.mark.parametrize("workers", [2, 3, 8, 40])
    def test_worker_count_does_not_matter(self, random_grid, six_colours, workers):
        serial = dither_image(random_grid, six_colours, workers=1)
        parallel = dither_image(random_grid, six_colours, workers=workers)
        assert np.array_equal(serial, parallel)

    def test_matches_pixel_reference(self, rng, six_colours):
        grid = rng.integers(0, 256, size=(6, 5, 3), dtype=np.uint8)
        cfg = DitherConfig(order=2)
        out = dither_image(grid, six_colours, config=cfg)
        for y in range(grid.shape[0]):
            for x in range(grid.shape[1]):
                expected = dither_pixel(grid[y, x], x, y, six_colours, config=cfg)
                assert tuple(out[y, x].tolist()) == expected

    def test_explicit_matrix(self):
        grid = np.full((2, 2, 3), 128, dtype=np.uint8)
        out = dither_image(
            grid, [BLACK, WHITE], matrix=bayer_matrix(1), config=DitherConfig(order=4)
        )
        assert out[1, 0].tolist() == list(BLACK)

    def test_in_place(self, random_grid, six_colours):
        out = dither_ordered(random_grid, six_colours)
        assert out is random_grid

    def test_copy_leaves_input(self, random_grid, six_colours):
        before = random_grid.copy()
        out = dither_image(random_grid, six_colours)
        assert out is not random_grid
        assert np.array_equal(random_grid, before)

    def test_empty_grid(self, six_colours):
        grid = np.zeros((0, 5, 3), dtype=np.uint8)
        assert dither_ordered(grid, six_colours).shape == (0, 5, 3)

    def test_debug_line(self, random_grid, six_colours, capsys):
        dither_image(random_grid, six_colours, debug=True)
        out = capsys.readouterr().out
        assert "[debug] [dither]" in out
        assert "Pairs: 15" in out


# ============================================================================
# Failures
# ============================================================================

class TestFailures:
    def test_single_colour_palette_leaves_grid(self, random_grid):
        before = random_grid.copy()
        with pytest.raises(InvalidPaletteError):
            dither_ordered(random_grid, [BLACK])
        assert np.array_equal(random_grid, before)

    def test_empty_palette(self, random_grid):
        with pytest.raises(InvalidPaletteError):
            dither_ordered(random_grid, [])

    @pytest.mark.parametrize(
        "grid",
        [
            np.zeros((4, 4, 3), dtype=np.float32),
            np.zeros((4, 4), dtype=np.uint8),
            np.zeros((4, 4, 4), dtype=np.uint8),
        ],
    )
    def test_bad_grid(self, grid):
        with pytest.raises(InvalidImageError):
            dither_ordered(grid, [BLACK, WHITE])

    def test_read_only_grid(self):
        grid = np.zeros((4, 4, 3), dtype=np.uint8)
        grid.setflags(write=False)
        with pytest.raises(InvalidImageError):
            dither_ordered(grid, [BLACK, WHITE])

    def test_worker_failure_aborts_pass(self, random_grid, six_colours, monkeypatch):
        def broken(*args, **kwargs):
            raise DitherInvariantError("pair ratio outside [0, 1]")

        monkeypatch.setattr(ordered, "search_pairs", broken)
        with pytest.raises(DitherInvariantError):
            dither_ordered(random_grid, six_colours, workers=4)
