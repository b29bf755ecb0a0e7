"""Security tests for filter sandboxing and input validation."""

from __future__ import annotations

import pytest

from tilelut.errors import (
    FilterRuntimeError,
    ImageError,
    ImageFormatError,
    ScriptCompileError,
    ValidationError,
)
from tilelut.pipeline.filter import compile_pixel_filter, load_script, test_pixel_filter as run_single_pixel


class TestScriptSandbox:
    """Forbidden constructs are rejected at compile time."""

    @pytest.mark.parametrize("source", [
        "import os",
        "from os import path",
        "global R",
        "nonlocal R",
        "R = __import__('os')",
        "R = _x",
        "R = (1).__class__",
        "R = '{0.__class__}'.format(R)",
        "R = math.__loader__",
        "def f():\n    yield 1",
        "f = lambda _a: _a",
    ])
    def test_rejected(self, source):
        with pytest.raises(ScriptCompileError):
            compile_pixel_filter(source)

    def test_open_not_available(self):
        """Builtins outside the whitelist are not defined."""
        fn = compile_pixel_filter("open('x')")
        with pytest.raises(FilterRuntimeError, match="NameError"):
            run_single_pixel(fn, 0, 0, 0)

    def test_eval_not_available(self):
        fn = compile_pixel_filter("R = eval('1')")
        with pytest.raises(FilterRuntimeError, match="NameError"):
            run_single_pixel(fn, 0, 0, 0)

    def test_allowed_builtins(self):
        fn = compile_pixel_filter("R = max(0, min(255, abs(-R)))\nG = int(round(G / 2))")
        assert run_single_pixel(fn, 10, 20, 30) == (10, 10, 30)


class TestInputPathValidation:
    """Tests for input path security."""

    def test_nonexistent_path(self):
        from tilelut.io.image import validate_input_path
        with pytest.raises(FileNotFoundError):
            validate_input_path("/completely/bogus/path.png")

    def test_invalid_extension(self, tmp_path):
        from tilelut.io.image import validate_input_path
        p = tmp_path / "malicious.exe"
        p.write_text("not an image")
        with pytest.raises(ImageFormatError):
            validate_input_path(p)

    def test_lossy_format_rejected(self, tmp_path):
        """Only lossless PNG is accepted."""
        from tilelut.io.image import validate_input_path
        p = tmp_path / "photo.jpg"
        p.write_bytes(b"\xff\xd8\xff")
        with pytest.raises(ImageFormatError):
            validate_input_path(p)

    def test_directory_rejected(self, tmp_path):
        from tilelut.io.image import validate_input_path
        d = tmp_path / "dir.png"
        d.mkdir()
        with pytest.raises(ImageError):
            validate_input_path(d)

    def test_script_extension(self, tmp_path):
        p = tmp_path / "filter.sh"
        p.write_text("R = 0")
        with pytest.raises(ValidationError):
            load_script(p)


class TestOutputPathValidation:
    """Tests for output path security."""

    def test_parent_must_exist(self):
        from tilelut.io.image import validate_output_path
        with pytest.raises(FileNotFoundError):
            validate_output_path("/nonexistent/directory/output.png")
