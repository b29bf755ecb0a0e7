"""Tests for per-pixel filter scripts."""

from __future__ import annotations

import numpy as np
import pytest

from tilelut.core.types import CancelToken
from tilelut.errors import Cancelled, FilterRuntimeError, ScriptCompileError
from tilelut.pipeline.filter import (
    apply_pixel_filter,
    clamp_channel,
    compile_pixel_filter,
    filter_image,
    load_script,
    pack_rgb,
    save_script,
    test_pixel_filter as run_single_pixel,
    unpack_rgb,
)


class TestPacking:
    """Tests for packed RGB helpers."""

    def test_pack_unpack(self):
        assert pack_rgb(0x12, 0x34, 0x56) == 0x123456
        assert unpack_rgb(0x123456) == (0x12, 0x34, 0x56)

    def test_clamp_channel(self):
        assert clamp_channel(999, 7) == 255
        assert clamp_channel(-50, 7) == 0
        assert clamp_channel(127.5, 7) == 128
        assert clamp_channel(127.49, 7) == 127
        assert clamp_channel(float("nan"), 7) == 7
        assert clamp_channel(float("inf"), 7) == 7


class TestCompile:
    """Tests for compile_pixel_filter."""

    def test_empty_is_pass_through(self):
        fn = compile_pixel_filter("")
        assert unpack_rgb(fn(10, 20, 30, 0, 0, 1, 1)) == (10, 20, 30)

    def test_comment_only_is_pass_through(self):
        fn = compile_pixel_filter("# nothing to do\n")
        assert unpack_rgb(fn(1, 2, 3, 0, 0, 1, 1)) == (1, 2, 3)

    def test_invert(self):
        fn = compile_pixel_filter("R = 255 - R\nG = 255 - G\nB = 255 - B")
        assert unpack_rgb(fn(0, 100, 255, 0, 0, 1, 1)) == (255, 155, 0)

    def test_clamps(self):
        """R = 999 gives 255, R = -50 gives 0."""
        assert unpack_rgb(compile_pixel_filter("R = 999")(1, 2, 3, 0, 0, 1, 1)) == (255, 2, 3)
        assert unpack_rgb(compile_pixel_filter("R = -50")(1, 2, 3, 0, 0, 1, 1)) == (0, 2, 3)

    def test_non_finite_falls_back(self):
        fn = compile_pixel_filter("R = float('nan')\nG = math.inf\nB = B / 2")
        assert unpack_rgb(fn(10, 20, 30, 0, 0, 1, 1)) == (10, 20, 15)

    def test_early_return_keeps_assignments(self):
        """A bare return keeps values assigned before it."""
        source = "R = 0\nif X == 0:\n    return\nG = 0\n"
        fn = compile_pixel_filter(source)
        assert unpack_rgb(fn(50, 60, 70, 0, 0, 2, 1)) == (0, 60, 70)
        assert unpack_rgb(fn(50, 60, 70, 1, 0, 2, 1)) == (0, 0, 70)

    def test_coordinates_and_size(self):
        fn = compile_pixel_filter("R = X\nG = Y\nB = W + H")
        assert unpack_rgb(fn(0, 0, 0, 3, 4, 10, 20)) == (3, 4, 30)

    def test_math_available(self):
        fn = compile_pixel_filter("R = math.sqrt(R / 255) * 255")
        assert unpack_rgb(fn(64, 0, 0, 0, 0, 1, 1))[0] == 128

    def test_indented_source(self):
        """Uniformly indented scripts are dedented."""
        fn = compile_pixel_filter("    R = 1\n    G = 2\n")
        assert unpack_rgb(fn(9, 9, 9, 0, 0, 1, 1)) == (1, 2, 9)

    def test_syntax_error(self):
        with pytest.raises(ScriptCompileError) as exc_info:
            compile_pixel_filter("R = 1\nG = (")
        assert "compile error" in str(exc_info.value)

    def test_syntax_error_line_number(self):
        """Line numbers refer to the user's script."""
        with pytest.raises(ScriptCompileError) as exc_info:
            compile_pixel_filter("R = 1\nG = 2\nB = = 3\n")
        assert exc_info.value.lineno == 3


class TestApplyFilter:
    """Tests for apply_pixel_filter."""

    def test_pass_through(self, random_rgba):
        """A script that assigns nothing leaves every pixel unchanged."""
        original = random_rgba.copy()
        apply_pixel_filter(random_rgba, compile_pixel_filter(""))
        np.testing.assert_array_equal(random_rgba, original)

    def test_in_place_and_alpha_untouched(self, random_rgba):
        original = random_rgba.copy()
        result = apply_pixel_filter(random_rgba, compile_pixel_filter("R = 0\nG = 255"))
        assert result is random_rgba
        assert (result[..., 0] == 0).all()
        assert (result[..., 1] == 255).all()
        np.testing.assert_array_equal(result[..., 2], original[..., 2])
        np.testing.assert_array_equal(result[..., 3], original[..., 3])

    def test_row_major_coordinates(self):
        pixels = np.zeros((2, 3, 3), dtype=np.uint8)
        apply_pixel_filter(pixels, compile_pixel_filter("R = X\nG = Y\nB = X + Y * W"))
        np.testing.assert_array_equal(pixels[..., 2], [[0, 1, 2], [3, 4, 5]])
        np.testing.assert_array_equal(pixels[1, :, 1], [1, 1, 1])

    def test_inputs_are_python_ints(self):
        """255 + 1 must not wrap around like uint8 arithmetic."""
        pixels = np.full((1, 1, 3), 255, dtype=np.uint8)
        apply_pixel_filter(pixels, compile_pixel_filter("R = R + 1\nG = G - 256"))
        assert pixels[0, 0].tolist() == [255, 0, 255]

    def test_runtime_error_reports_pixel(self):
        pixels = np.zeros((3, 4, 3), dtype=np.uint8)
        fn = compile_pixel_filter("if X == 2 and Y == 1:\n    R = 1 / 0")
        with pytest.raises(FilterRuntimeError) as exc_info:
            apply_pixel_filter(pixels, fn)
        err = exc_info.value
        assert (err.x, err.y) == (2, 1)
        assert "ZeroDivisionError" in str(err)
        assert "(x=2, y=1)" in str(err)

    def test_coordinates_can_be_normalized(self):
        """Reassigning X or Y inside the script does not leak to other pixels."""
        pixels = np.zeros((1, 2, 3), dtype=np.uint8)
        apply_pixel_filter(pixels, compile_pixel_filter("X = X / W\nY = Y + 7\nR = X * 255\nG = Y"))
        assert pixels[0, 0].tolist() == [0, 7, 0]
        assert pixels[0, 1].tolist() == [128, 7, 0]

    def test_cancel_before_start(self, random_rgba):
        token = CancelToken()
        token.cancel()
        with pytest.raises(Cancelled):
            apply_pixel_filter(random_rgba, compile_pixel_filter(""), cancel_check=token)

    def test_checkpoint_cadence(self):
        """Progress is reported after every 150,000 pixels."""
        pixels = np.zeros((600, 600, 3), dtype=np.uint8)
        seen = []
        apply_pixel_filter(
            pixels, compile_pixel_filter(""),
            progress_callback=lambda s, f, m: seen.append(f),
        )
        # 360,000 pixels: start, 150k, 300k, end
        assert seen == [0.0, pytest.approx(150_000 / 360_000), pytest.approx(300_000 / 360_000), 1.0]

    def test_cancel_after_yield(self):
        """Cancellation set during progress is seen right after the yield."""
        pixels = np.zeros((600, 600, 3), dtype=np.uint8)
        token = CancelToken()

        def on_progress(stage, fraction, message):
            if fraction > 0:
                token.cancel()

        with pytest.raises(Cancelled):
            apply_pixel_filter(
                pixels, compile_pixel_filter("R = 9"),
                progress_callback=on_progress, cancel_check=token,
            )

    def test_filter_image_copies(self, random_rgba):
        original = random_rgba.copy()
        out = filter_image(random_rgba, "B = 0")
        np.testing.assert_array_equal(random_rgba, original)
        assert (out[..., 2] == 0).all()


class TestSinglePixel:
    """Tests for the single-color test mode."""

    def test_uses_unit_image(self):
        fn = compile_pixel_filter("R = X + 10\nG = W * 20\nB = H * 30")
        assert run_single_pixel(fn, 1, 2, 3) == (10, 20, 30)

    def test_runtime_error(self):
        fn = compile_pixel_filter("R = undefined_name")
        with pytest.raises(FilterRuntimeError, match="NameError"):
            run_single_pixel(fn, 1, 2, 3)


class TestScriptFiles:
    """Tests for loading and saving scripts."""

    def test_roundtrip(self, tmp_path):
        path = save_script(tmp_path / "invert.py", "R = 255 - R\n")
        assert load_script(path) == "R = 255 - R\n"

    def test_missing(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_script(tmp_path / "nope.py")
