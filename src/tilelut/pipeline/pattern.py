"""Identity pattern generation.

Every lattice cell (r, g, b) becomes a solid M x M tile filled with
(quantize(r), quantize(g), quantize(b)). Tiles have no borders or
blending; any seam would leak into the sampled colors later.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

from tilelut.config import (
    LARGE_IMAGE_PIXELS,
    PATTERN_YIELD_EVERY,
    PREVIEW_MAX_SCALE,
    PREVIEW_TARGET_PX,
)
from tilelut.core.geometry import (
    compute_dims,
    max_tile_size,
    quantize,
    tile_coords,
    tile_count,
    tile_index_to_rgb,
)
from tilelut.core.types import CancelCheck, Layout, ProgressCallback
from tilelut.errors import DimensionLimitExceeded
from tilelut.io.image import encode_png
from tilelut.pipeline.control import check_cancel, checkpoint, emit_progress

logger = logging.getLogger(__name__)

_STAGE = "pattern"


def quantized_levels(N: int) -> list[int]:
    """Byte value of every lattice index, v(0..N-1)."""
    return [quantize(i, N) for i in range(N)]


def fit_hint(N: int, max_dimension: int) -> str:
    """Largest tile size that fits the host, as advice text."""
    m_max = max_tile_size(N, max_dimension)
    if m_max >= 1:
        return f"For N={N}, use M <= {m_max} (one dimension is always N^2*M)."
    return f"N={N} does not fit even with M=1 (N^2 = {N * N:,} px)."


def check_dimension_limit(N: int, M: int, layout: Layout, max_dimension: int) -> None:
    """Raise DimensionLimitExceeded if the pattern will not fit the host."""
    dims = compute_dims(N, M, layout)
    if dims.width <= max_dimension and dims.height <= max_dimension:
        return

    m_max = max_tile_size(N, max_dimension)
    hint = fit_hint(N, max_dimension)
    raise DimensionLimitExceeded(
        f"Requested image is {dims.width:,}x{dims.height:,} px. "
        f"The host supports up to ~{max_dimension:,} px per dimension. {hint}",
        width=dims.width,
        height=dims.height,
        max_dimension=max_dimension,
        suggested_tile_size=m_max,
    )


def pattern_warnings(N: int, M: int, layout: Layout, max_dimension: int) -> list[str]:
    """Advisory messages for a requested pattern, without raising."""
    dims = compute_dims(N, M, layout)
    if dims.width > max_dimension or dims.height > max_dimension:
        return [
            f"May exceed the host image limit (~{max_dimension:,} px per dimension). "
            + fit_hint(N, max_dimension)
        ]
    if dims.pixels > LARGE_IMAGE_PIXELS:
        return [f"Large image (~{dims.pixels:,} pixels). Generation/processing may be slow."]
    return []


def generate_pattern(
    N: int,
    M: int,
    layout: Layout,
    max_dimension: int,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> np.ndarray:
    """Rasterize the identity pattern.

    Args:
        N: Lattice resolution per channel.
        M: Tile edge length in pixels.
        layout: Tile grid orientation.
        max_dimension: Largest image side the host supports.
        progress_callback: (stage, fraction, message) callback.
        cancel_check: Returns True if generation should stop.

    Returns:
        (height, width, 3) uint8 array.

    Raises:
        DimensionLimitExceeded: If either side exceeds max_dimension.
        Cancelled: If cancel_check fires; no partial image is returned.
    """
    check_dimension_limit(N, M, layout, max_dimension)

    dims = compute_dims(N, M, layout)
    pixels = np.zeros((dims.height, dims.width, 3), dtype=np.uint8)
    levels = quantized_levels(N)
    total = tile_count(N)

    emit_progress(progress_callback, _STAGE, 0.0, "Generating pattern...")

    for t in range(total):
        check_cancel(cancel_check)

        r, g, b = tile_index_to_rgb(t, N)
        x_tile, y_tile = tile_coords(t, N, layout)
        y0, x0 = y_tile * M, x_tile * M
        pixels[y0:y0 + M, x0:x0 + M] = (levels[r], levels[g], levels[b])

        if (t + 1) % PATTERN_YIELD_EVERY == 0:
            checkpoint(progress_callback, cancel_check, _STAGE, (t + 1) / total)

    emit_progress(progress_callback, _STAGE, 1.0, "Pattern complete")
    logger.info(
        "Generated N=%d M=%d %s pattern (%dx%d, %d tiles)",
        N, M, layout.value, dims.width, dims.height, total,
    )
    return pixels


def generate_pattern_png(
    N: int,
    M: int,
    layout: Layout,
    max_dimension: int,
    progress_callback: Optional[ProgressCallback] = None,
    cancel_check: Optional[CancelCheck] = None,
) -> bytes:
    """Generate the identity pattern and encode it as PNG bytes."""
    pixels = generate_pattern(
        N, M, layout, max_dimension,
        progress_callback=progress_callback,
        cancel_check=cancel_check,
    )
    emit_progress(progress_callback, "encode", 0.0, "Encoding PNG...")
    check_cancel(cancel_check)
    blob = encode_png(pixels)
    emit_progress(progress_callback, "encode", 1.0, "PNG encoded")
    return blob


def preview_scale(N: int, layout: Layout) -> int:
    """Pixels per tile for the on-screen preview."""
    dims = compute_dims(N, 1, layout)
    max_tiles = max(dims.tiles_w, dims.tiles_h)
    return max(1, min(PREVIEW_MAX_SCALE, PREVIEW_TARGET_PX // max_tiles))


def render_preview(N: int, layout: Layout) -> np.ndarray:
    """Small preview of the pattern: one scaled block per tile.

    Returns:
        (tiles_h * scale, tiles_w * scale, 3) uint8 array.
    """
    scale = preview_scale(N, layout)
    dims = compute_dims(N, 1, layout)
    levels = np.asarray(quantized_levels(N), dtype=np.uint8)

    # One pixel per tile, built in tile-index order, then scaled up.
    t = np.arange(tile_count(N))
    r, g, b = t % N, (t // N) % N, t // (N * N)
    if layout == Layout.WIDE:
        xs, ys = r + g * N, b
    else:
        xs, ys = r, g + b * N

    tiles = np.zeros((dims.tiles_h, dims.tiles_w, 3), dtype=np.uint8)
    tiles[ys, xs] = np.stack([levels[r], levels[g], levels[b]], axis=-1)
    return np.repeat(np.repeat(tiles, scale, axis=0), scale, axis=1)
