"""Recover a 3D LUT by sampling the tiles of a processed pattern image.

Each lattice cell is read back from its tile by averaging a small grid
of points inside an inset region, which keeps resize or compression
bleed from neighbouring tiles out of the estimate.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from tilelut.config import (
    CUBE_GENERATOR_COMMENT,
    MAX_SAMPLES_PER_AXIS,
    SAMPLE_INSET_FRACTION,
    SAMPLE_YIELD_EVERY,
)
from tilelut.core.geometry import compute_dims, lattice_tile_coords, tile_count
from tilelut.core.types import CancelCheck, Geometry, ProgressCallback
from tilelut.errors import ImageDimensionError
from tilelut.io.cube import format_cube
from tilelut.pipeline.control import check_cancel, checkpoint, emit_progress

logger = logging.getLogger(__name__)

_STAGE = "sampling"


def sample_offsets(M: int) -> np.ndarray:
    """Pixel offsets within a tile at which to sample, per axis.

    The inset margin is 20% of the tile (at least 1 px), shrunk to M // 4
    when it would leave nothing. The remaining region is split into
    s = clamp(region, 1, 8) equal steps and each step's midpoint is used.
    """
    margin = max(1, int(M * SAMPLE_INSET_FRACTION))
    if margin * 2 >= M:
        margin = max(0, M // 4)

    region = M - margin * 2
    s = max(1, min(MAX_SAMPLES_PER_AXIS, region))
    step = region / s
    return np.floor(margin + (np.arange(s) + 0.5) * step).astype(np.int64)


def sample_tile_color(
    pixels: np.ndarray,
    tile_x: int,
    tile_y: int,
    M: int,
    offsets: Optional[np.ndarray] = None,
) -> np.ndarray:
    """Average color of one tile.

    Args:
        pixels: (H, W, 3|4) image array.
        tile_x: Tile column.
        tile_y: Tile row.
        M: Tile size in pixels.
        offsets: Precomputed sample_offsets(M).

    Returns:
        (3,) float64 mean RGB in byte units, not rounded.
    """
    if offsets is None:
        offsets = sample_offsets(M)
    height, width = pixels.shape[:2]

    ys = np.clip(tile_y * M + offsets, 0, height - 1)
    xs = np.clip(tile_x * M + offsets, 0, width - 1)
    block = pixels[np.ix_(ys, xs)][..., :3].astype(np.float64)
    return block.reshape(-1, 3).mean(axis=0)


def sample_lattice(
    pixels: np.ndarray,
    geometry: Geometry,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> np.ndarray:
    """Sample every lattice cell from a processed pattern image.

    Args:
        pixels: (H, W, 3|4) uint8 image.
        geometry: N, M and layout of the pattern.
        progress_callback: (stage, fraction, message) callback.
        cancel_check: Returns True if sampling should stop.

    Returns:
        (N, N, N, 3) float64 LUT indexed [r, g, b, ch]. Each value is
        the tile mean rounded half-up to a byte, divided by 255.
    """
    N, M, layout = geometry.N, geometry.M, geometry.layout

    dims = compute_dims(N, M, layout)
    height, width = pixels.shape[:2]
    if width < dims.width or height < dims.height:
        raise ImageDimensionError(
            f"Image is {width}x{height}, expected at least "
            f"{dims.width}x{dims.height} for N={N} M={M} {layout.value}"
        )

    offsets = sample_offsets(M)
    lut = np.zeros((N, N, N, 3), dtype=np.float64)
    total = tile_count(N)
    done = 0

    emit_progress(progress_callback, _STAGE, 0.0, "Generating LUT...")

    # .cube order: R fastest, then G, then B
    for b in range(N):
        for g in range(N):
            for r in range(N):
                check_cancel(cancel_check)

                x_tile, y_tile = lattice_tile_coords(r, g, b, N, layout)
                color = sample_tile_color(pixels, x_tile, y_tile, M, offsets)
                lut[r, g, b] = np.clip(np.floor(color + 0.5), 0.0, 255.0) / 255.0

                done += 1
                if done % SAMPLE_YIELD_EVERY == 0:
                    checkpoint(progress_callback, cancel_check, _STAGE, done / total)

    emit_progress(progress_callback, _STAGE, 1.0, "Sampling complete")
    logger.info("Sampled %d^3 LUT from %dx%d image", N, width, height)
    return lut


def lut_title(geometry: Geometry) -> str:
    """Title embedding the pattern geometry."""
    return f"TileLUT_N{geometry.N}_M{geometry.M}_{geometry.layout.value}"


def generate_cube_lut(
    pixels: np.ndarray,
    geometry: Geometry,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> str:
    """Sample a processed pattern image and serialize it as .cube text."""
    lut = sample_lattice(
        pixels, geometry,
        progress_callback=progress_callback,
        cancel_check=cancel_check,
    )
    return format_cube(lut, title=lut_title(geometry), comment=CUBE_GENERATOR_COMMENT)
