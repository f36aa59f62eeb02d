"""Tests for the dither_image command line entry point."""
import numpy as np
import pytest
from PIL import Image

import dither_image
from dither_image import EXIT_BAD_INPUT, main, parse_cli_args


@pytest.fixture
def inputs(tmp_path):
    rng = np.random.default_rng(7)
    src = tmp_path / "in.png"
    pal = tmp_path / "pal.png"
    Image.fromarray(rng.integers(0, 256, size=(12, 20, 3), dtype=np.uint8)).save(src)
    Image.fromarray(
        np.array([[[0, 0, 0], [255, 255, 255], [255, 0, 0]]], dtype=np.uint8)
    ).save(pal)
    return src, pal


class TestParseArgs:
    def test_defaults(self):
        args = parse_cli_args(["-i", "a.png", "-p", "b.png"])
        assert str(args.output_file) == "out.png"
        assert (args.width, args.height) == (1920, 1080)
        assert args.order == 5
        assert args.space == "lab"
        assert args.quantize == "round"
        assert not args.no_resize

    def test_requires_input_and_palette(self):
        with pytest.raises(SystemExit):
            parse_cli_args(["-i", "a.png"])


class TestMain:
    def test_writes_dithered_output(self, inputs, tmp_path, capsys):
        src, pal = inputs
        out = tmp_path / "out.png"
        code = main(
            ["-i", str(src), "-p", str(pal), "-o", str(out),
             "--width", "8", "--height", "6", "--workers", "2"]
        )
        assert code == 0
        rgb = np.array(Image.open(out).convert("RGB"))
        assert rgb.shape == (6, 8, 3)
        pixels = {tuple(p) for p in rgb.reshape(-1, 3).tolist()}
        assert pixels <= {(0, 0, 0), (255, 255, 255), (255, 0, 0)}
        assert "Colours used:" in capsys.readouterr().out

    def test_no_resize_keeps_size(self, inputs, tmp_path):
        src, pal = inputs
        out = tmp_path / "same.png"
        assert main(["-i", str(src), "-p", str(pal), "-o", str(out), "--no-resize"]) == 0
        assert Image.open(out).size == (20, 12)

    def test_oklab_debug(self, inputs, tmp_path, capsys):
        src, pal = inputs
        out = tmp_path / "ok.png"
        code = main(
            ["-i", str(src), "-p", str(pal), "-o", str(out), "--no-resize",
             "--space", "oklab", "--order", "3", "--debug"]
        )
        assert code == 0
        assert "Space: oklab" in capsys.readouterr().out

    def test_missing_input(self, inputs, tmp_path, capsys):
        _, pal = inputs
        code = main(["-i", str(tmp_path / "nope.png"), "-p", str(pal)])
        assert code == EXIT_BAD_INPUT
        assert "input not found" in capsys.readouterr().err

    def test_single_colour_palette(self, inputs, tmp_path, capsys):
        src, _ = inputs
        flat = tmp_path / "flat.png"
        Image.new("RGB", (4, 4), (9, 9, 9)).save(flat)
        out = tmp_path / "never.png"
        code = main(["-i", str(src), "-p", str(flat), "-o", str(out), "--no-resize"])
        assert code == EXIT_BAD_INPUT
        assert not out.exists()
        assert "at least 2 colours" in capsys.readouterr().err

    def test_bad_order(self, inputs, tmp_path):
        src, pal = inputs
        code = main(
            ["-i", str(src), "-p", str(pal), "-o", str(tmp_path / "x.png"),
             "--order", "12"]
        )
        assert code == EXIT_BAD_INPUT

    def test_dither_failure(self, inputs, tmp_path, monkeypatch):
        from palette_dither.core_types import DitherInvariantError

        def broken(*args, **kwargs):
            raise DitherInvariantError("non-finite")

        monkeypatch.setattr(dither_image, "dither_ordered", broken)
        src, pal = inputs
        code = main(
            ["-i", str(src), "-p", str(pal), "-o", str(tmp_path / "y.png"), "--no-resize"]
        )
        assert code == dither_image.EXIT_FAILED

    def test_bad_grid_is_bad_input(self, inputs, tmp_path, monkeypatch):
        monkeypatch.setattr(
            dither_image,
            "load_image_rgb",
            lambda path: np.zeros((4, 4, 3), dtype=np.float32),
        )
        src, pal = inputs
        out = tmp_path / "z.png"
        code = main(["-i", str(src), "-p", str(pal), "-o", str(out), "--no-resize"])
        assert code == EXIT_BAD_INPUT
        assert not out.exists()
