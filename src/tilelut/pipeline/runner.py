"""Job runners: generate a pattern, filter an image, extract a LUT.

These are the entry points used by the CLI. Each one validates its
inputs, runs the cooperative stages, writes its artifact only after
every stage succeeded, and returns a small result record.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np

from tilelut.config import DEFAULT_MAX_DIMENSION
from tilelut.core.detect import detect_geometry
from tilelut.core.geometry import compute_dims, validate_lattice_size, validate_tile_size
from tilelut.core.types import CancelCheck, Geometry, Layout, ProgressCallback
from tilelut.io.image import load_png, save_png, validate_output_path
from tilelut.pipeline.control import check_cancel, emit_progress
from tilelut.pipeline.filter import apply_pixel_filter, compile_pixel_filter
from tilelut.pipeline.pattern import generate_pattern_png, pattern_warnings
from tilelut.pipeline.sampling import generate_cube_lut

logger = logging.getLogger(__name__)


@dataclass
class JobResult:
    """Outcome of a runner job."""
    output_path: Path
    geometry: Optional[Geometry] = None
    width: int = 0
    height: int = 0
    warnings: list[str] = field(default_factory=list)
    elapsed: float = 0.0


# ---------------------------------------------------------------------------
# Output naming
# ---------------------------------------------------------------------------

def pattern_filename(N: int, M: int, layout: Layout) -> str:
    return f"tile_lut_identity_N{N}_M{M}_{layout.value}.png"


def filtered_filename(source: str | Path) -> str:
    return f"{Path(source).stem}_filtered.png"


def cube_filename(source: str | Path, N: int) -> str:
    return f"{Path(source).stem}_N{N}.cube"


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

def run_generate(
    N: int,
    M: int,
    layout: Layout,
    output_path: Optional[Path] = None,
    max_dimension: int = DEFAULT_MAX_DIMENSION,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> JobResult:
    """Generate the identity pattern PNG for (N, M, layout)."""
    t_start = time.perf_counter()

    validate_lattice_size(N)
    warnings = validate_tile_size(M)
    warnings += pattern_warnings(N, M, layout, max_dimension)
    for w in warnings:
        logger.warning(w)

    if output_path is None:
        output_path = Path(pattern_filename(N, M, layout))
    output_path = validate_output_path(output_path)

    blob = generate_pattern_png(
        N, M, layout, max_dimension,
        progress_callback=progress_callback,
        cancel_check=cancel_check,
    )
    save_png(blob, output_path)

    dims = compute_dims(N, M, layout)
    return JobResult(
        output_path=output_path,
        geometry=Geometry(N=N, M=M, layout=layout),
        width=dims.width,
        height=dims.height,
        warnings=warnings,
        elapsed=time.perf_counter() - t_start,
    )


def run_filter(
    input_path: Path,
    script: str,
    output_path: Optional[Path] = None,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> JobResult:
    """Apply a filter script to a PNG and save the result."""
    t_start = time.perf_counter()

    # Compile first so script errors surface before any I/O
    pixel_filter = compile_pixel_filter(script)

    if output_path is None:
        output_path = Path(input_path).with_name(filtered_filename(input_path))
    output_path = validate_output_path(output_path)

    emit_progress(progress_callback, "load", 0.0, "Loading image...")
    loaded = load_png(input_path)
    emit_progress(progress_callback, "load", 1.0, "Image loaded")
    check_cancel(cancel_check)

    pixels = apply_pixel_filter(
        loaded.copy(), pixel_filter,
        progress_callback=progress_callback,
        cancel_check=cancel_check,
    )

    emit_progress(progress_callback, "encode", 0.0, "Encoding PNG...")
    save_png(pixels, output_path)
    emit_progress(progress_callback, "encode", 1.0, "PNG encoded")

    return JobResult(
        output_path=output_path,
        width=pixels.shape[1],
        height=pixels.shape[0],
        elapsed=time.perf_counter() - t_start,
    )


def detect_image_geometry(pixels: np.ndarray) -> Geometry:
    """Detect the pattern geometry of a loaded image."""
    height, width = pixels.shape[:2]
    return detect_geometry(width, height)


def run_extract(
    input_path: Path,
    output_path: Optional[Path] = None,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> JobResult:
    """Detect geometry of a processed pattern PNG and write a .cube LUT."""
    t_start = time.perf_counter()

    emit_progress(progress_callback, "load", 0.0, "Loading image...")
    pixels = load_png(input_path)
    emit_progress(progress_callback, "load", 1.0, "Image loaded")

    geometry = detect_image_geometry(pixels)

    if output_path is None:
        output_path = Path(input_path).with_name(cube_filename(input_path, geometry.N))
    output_path = validate_output_path(output_path)

    text = generate_cube_lut(
        pixels, geometry,
        progress_callback=progress_callback,
        cancel_check=cancel_check,
    )
    output_path.write_text(text, encoding="utf-8")
    logger.info("Wrote LUT: %s", output_path)

    return JobResult(
        output_path=output_path,
        geometry=geometry,
        width=pixels.shape[1],
        height=pixels.shape[0],
        elapsed=time.perf_counter() - t_start,
    )
