"""Per-pixel filter scripts.

A filter script is a block of Python statements run once per pixel with
these bindings:

    R, G, B     current channel values (0-255); assign to change them
    X, Y        pixel coordinates
    W, H        image width and height

Reassigning X, Y, W or H (for example ``X = X / W``) only changes the
script's own copy for the rest of that pixel.

Channels that are never assigned pass through unchanged, and a bare
``return`` ends the script early, keeping whatever was assigned so far.
Results are rounded half-up and clamped to [0, 255]; a non-finite
result (NaN, inf) falls back to that channel's input value. Alpha is
never touched.

Scripts run with a restricted namespace: the ``math`` module plus a
small set of numeric builtins. Imports, ``global``/``nonlocal``,
generators, names starting with an underscore, and attribute access on
anything except ``math`` are rejected at compile time.
"""

from __future__ import annotations

import ast
import logging
import math
import textwrap
from pathlib import Path
from typing import Callable, Optional

import numpy as np

from tilelut.config import FILTER_YIELD_EVERY, SCRIPT_EXTENSIONS
from tilelut.core.types import CancelCheck, ProgressCallback
from tilelut.errors import FilterRuntimeError, ScriptCompileError, ValidationError
from tilelut.pipeline.control import check_cancel, checkpoint, emit_progress

logger = logging.getLogger(__name__)

PixelFilter = Callable[[int, int, int, int, int, int, int], int]
"""Compiled filter: (R, G, B, X, Y, W, H) -> packed 0xRRGGBB."""

_STAGE = "filter"

_ENTRY = "__tilelut_filter__"
_BODY = "__tilelut_body__"
_PROLOGUE = (
    f"def {_ENTRY}(R, G, B, X, Y, W, H):\n"
    f"    def {_BODY}():\n"
    f"        nonlocal R, G, B, X, Y, W, H\n"
)
_EPILOGUE = (
    f"    {_BODY}()\n"
    f"    return R, G, B\n"
)
_PROLOGUE_LINES = _PROLOGUE.count("\n")

_SAFE_BUILTINS = {
    "abs": abs,
    "bool": bool,
    "divmod": divmod,
    "float": float,
    "int": int,
    "len": len,
    "max": max,
    "min": min,
    "pow": pow,
    "range": range,
    "round": round,
    "sum": sum,
    "ArithmeticError": ArithmeticError,
    "Exception": Exception,
    "ValueError": ValueError,
    "ZeroDivisionError": ZeroDivisionError,
}
_MODULES = {"math": math}


# ---------------------------------------------------------------------------
# Packing helpers
# ---------------------------------------------------------------------------

def pack_rgb(r: int, g: int, b: int) -> int:
    return (r << 16) | (g << 8) | b


def unpack_rgb(packed: int) -> tuple[int, int, int]:
    return (packed >> 16) & 255, (packed >> 8) & 255, packed & 255


def clamp_channel(value, fallback: int) -> int:
    """Round half-up and clamp to a byte; non-finite values use fallback."""
    value = float(value)
    if not math.isfinite(value):
        return fallback
    return min(255, max(0, math.floor(value + 0.5)))


# ---------------------------------------------------------------------------
# Compilation
# ---------------------------------------------------------------------------

def _user_lineno(node_or_lineno) -> Optional[int]:
    lineno = getattr(node_or_lineno, "lineno", node_or_lineno)
    if lineno is None:
        return None
    return max(1, lineno - _PROLOGUE_LINES)


def _reject(message: str, node: ast.AST) -> ScriptCompileError:
    lineno = _user_lineno(node)
    return ScriptCompileError(f"Script compile error: {message} (line {lineno})", lineno)


def _check_script_tree(statements: list[ast.stmt]) -> None:
    """Reject constructs that escape the filter's numeric sandbox."""
    for stmt in statements:
        for node in ast.walk(stmt):
            if isinstance(node, (ast.Import, ast.ImportFrom)):
                raise _reject("imports are not allowed", node)
            if isinstance(node, (ast.Global, ast.Nonlocal)):
                raise _reject("global/nonlocal declarations are not allowed", node)
            if isinstance(node, (ast.Yield, ast.YieldFrom, ast.Await)):
                raise _reject("yield/await are not allowed", node)
            if isinstance(node, ast.Name) and node.id.startswith("_"):
                raise _reject(f"name {node.id!r} is not allowed", node)
            if isinstance(node, ast.arg) and node.arg.startswith("_"):
                raise _reject(f"name {node.arg!r} is not allowed", node)
            if isinstance(node, ast.Attribute):
                if not (isinstance(node.value, ast.Name) and node.value.id in _MODULES):
                    raise _reject("attribute access is only allowed on math", node)
                if node.attr.startswith("_"):
                    raise _reject(f"attribute {node.attr!r} is not allowed", node)


def _wrap(source: str) -> str:
    body = textwrap.dedent(source.replace("\r\n", "\n").replace("\r", "\n"))
    return _PROLOGUE + textwrap.indent(body, " " * 8) + "\n" + _EPILOGUE


def compile_pixel_filter(source: str) -> PixelFilter:
    """Compile filter script text into a per-pixel callable.

    Args:
        source: Python statements operating on R, G, B, X, Y, W, H.

    Returns:
        Callable (R, G, B, X, Y, W, H) -> packed 0xRRGGBB int.

    Raises:
        ScriptCompileError: On syntax errors or forbidden constructs.
            Raised before any pixel is processed.
    """
    wrapped = _wrap(source)
    try:
        tree = ast.parse(wrapped, filename="<filter>", mode="exec")
    except (SyntaxError, ValueError) as e:
        lineno = _user_lineno(getattr(e, "lineno", None))
        msg = getattr(e, "msg", None) or str(e)
        raise ScriptCompileError(
            f"Script compile error: {msg}" + (f" (line {lineno})" if lineno else ""),
            lineno,
        ) from e

    entry = tree.body[0]
    body_fn = entry.body[0]
    # Skip the injected nonlocal declaration
    _check_script_tree(body_fn.body[1:])

    try:
        code = compile(tree, filename="<filter>", mode="exec")
    except SyntaxError as e:
        lineno = _user_lineno(e.lineno)
        raise ScriptCompileError(f"Script compile error: {e.msg} (line {lineno})", lineno) from e

    namespace = {"__builtins__": dict(_SAFE_BUILTINS), **_MODULES}
    exec(code, namespace)
    raw = namespace[_ENTRY]

    def pixel_filter(R: int, G: int, B: int, X: int, Y: int, W: int, H: int) -> int:
        r, g, b = raw(R, G, B, X, Y, W, H)
        return pack_rgb(clamp_channel(r, R), clamp_channel(g, G), clamp_channel(b, B))

    logger.debug("Compiled filter script (%d lines)", source.count("\n") + 1)
    return pixel_filter


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------

def _describe(exc: Exception) -> str:
    text = str(exc)
    return f"{type(exc).__name__}: {text}" if text else type(exc).__name__


def apply_pixel_filter(
    pixels: np.ndarray,
    pixel_filter: PixelFilter,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> np.ndarray:
    """Run a compiled filter over every pixel, in place, row-major.

    Args:
        pixels: (H, W, 3|4) uint8 array. Modified in place; the alpha
            channel, if present, is left alone.
        pixel_filter: Callable from compile_pixel_filter.
        progress_callback: (stage, fraction, message) callback.
        cancel_check: Returns True if filtering should stop.

    Returns:
        The same array.

    Raises:
        FilterRuntimeError: The script raised on some pixel. The whole
            pass is aborted and the buffer is left partially modified.
        Cancelled: Cancellation observed; the buffer must be discarded.
    """
    if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise ValidationError(f"Expected (H, W, 3|4) uint8 pixels, got {pixels.shape} {pixels.dtype}")

    height, width = pixels.shape[:2]
    total = width * height
    processed = 0

    emit_progress(progress_callback, _STAGE, 0.0, "Processing...")

    for y in range(height):
        check_cancel(cancel_check)

        row = pixels[y, :, :3].tolist()
        for x, (r, g, b) in enumerate(row):
            try:
                packed = pixel_filter(r, g, b, x, y, width, height)
            except Exception as e:
                raise FilterRuntimeError(_describe(e), x, y) from e
            row[x] = unpack_rgb(packed)

            processed += 1
            if processed % FILTER_YIELD_EVERY == 0:
                checkpoint(progress_callback, cancel_check, _STAGE, processed / total)

        pixels[y, :, :3] = row

    emit_progress(progress_callback, _STAGE, 1.0, "Filter complete")
    logger.info("Filtered %dx%d image (%d pixels)", width, height, total)
    return pixels


def filter_image(
    pixels: np.ndarray,
    source: str,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> np.ndarray:
    """Compile a script and apply it to a copy of pixels."""
    pixel_filter = compile_pixel_filter(source)
    return apply_pixel_filter(
        pixels.copy(), pixel_filter,
        progress_callback=progress_callback,
        cancel_check=cancel_check,
    )


def test_pixel_filter(pixel_filter: PixelFilter, r: int, g: int, b: int) -> tuple[int, int, int]:
    """Run a filter on one color as a 1x1 image at (0, 0)."""
    try:
        packed = pixel_filter(r, g, b, 0, 0, 1, 1)
    except Exception as e:
        raise FilterRuntimeError(_describe(e), 0, 0) from e
    return unpack_rgb(packed)


# pytest would otherwise try to collect it
test_pixel_filter.__test__ = False


# ---------------------------------------------------------------------------
# Script files
# ---------------------------------------------------------------------------

def load_script(path: str | Path) -> str:
    """Read filter script text from a file."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Script file not found: {path}")
    if path.suffix.lower() not in SCRIPT_EXTENSIONS:
        raise ValidationError(
            f"Unsupported script extension: {path.suffix}. "
            f"Supported: {', '.join(sorted(SCRIPT_EXTENSIONS))}"
        )
    return path.read_text(encoding="utf-8")


def save_script(path: str | Path, source: str) -> Path:
    """Write filter script text to a file."""
    path = Path(path)
    path.write_text(source, encoding="utf-8")
    logger.info("Saved script: %s", path)
    return path
