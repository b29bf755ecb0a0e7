"""Tile addressing: lattice index <-> (r, g, b) <-> tile-grid position.

A pattern holds one solid M x M tile per lattice cell. With
t in [0, N^3):

    r = t % N
    g = (t // N) % N
    b = t // N^2

Wide layout (N^2 x N tiles):  x_tile = r + g*N,  y_tile = b
Tall layout (N x N^2 tiles):  x_tile = r,        y_tile = g + b*N

Every function here is pure.
"""

from __future__ import annotations

from tilelut.config import LARGE_TILE_SIZE, MAX_GENERATE_N, MIN_N
from tilelut.core.types import Layout, TileDims
from tilelut.errors import ValidationError


def tile_index_to_rgb(t: int, N: int) -> tuple[int, int, int]:
    """Convert a tile index to (r, g, b) lattice indices. R varies fastest."""
    r = t % N
    g = (t // N) % N
    b = t // (N * N)
    return r, g, b


def rgb_to_tile_index(r: int, g: int, b: int, N: int) -> int:
    """Inverse of tile_index_to_rgb."""
    return b * N * N + g * N + r


def lattice_tile_coords(r: int, g: int, b: int, N: int, layout: Layout) -> tuple[int, int]:
    """Tile-grid position of lattice cell (r, g, b)."""
    if layout == Layout.WIDE:
        return r + g * N, b
    return r, g + b * N


def tile_coords(t: int, N: int, layout: Layout) -> tuple[int, int]:
    """Tile-grid position (x_tile, y_tile) of tile index t."""
    r, g, b = tile_index_to_rgb(t, N)
    return lattice_tile_coords(r, g, b, N, layout)


def compute_dims(N: int, M: int, layout: Layout) -> TileDims:
    """Tile-grid and pixel dimensions for a pattern."""
    if layout == Layout.WIDE:
        tiles_w, tiles_h = N * N, N
    else:
        tiles_w, tiles_h = N, N * N
    return TileDims(
        tiles_w=tiles_w,
        tiles_h=tiles_h,
        width=tiles_w * M,
        height=tiles_h * M,
    )


def quantize(i: int, N: int) -> int:
    """Map lattice index i in [0, N) to a byte, 0 and 255 inclusive.

    Rounds half up, so the mapping is symmetric about mid-gray.
    """
    if N <= 1:
        return 0
    return (i * 255 * 2 + (N - 1)) // (2 * (N - 1))


def tile_count(N: int) -> int:
    """Number of tiles (lattice cells) in a pattern."""
    return N * N * N


def max_tile_size(N: int, max_dimension: int) -> int:
    """Largest M whose pattern fits within max_dimension on both axes.

    One axis is always N^2 * M, which is the binding constraint.
    """
    return max_dimension // (N * N)


def validate_lattice_size(N: int) -> None:
    """Check a lattice size requested for pattern generation."""
    if isinstance(N, bool) or not isinstance(N, int):
        raise ValidationError("N must be an integer.")
    if N < MIN_N:
        raise ValidationError(f"N must be at least {MIN_N}.")
    if N > MAX_GENERATE_N:
        raise ValidationError(
            f"N above {MAX_GENERATE_N} is uncommon and creates very large images "
            f"(this tool caps N at {MAX_GENERATE_N})."
        )


def validate_tile_size(M: int) -> list[str]:
    """Check a tile size; returns advisory warnings for valid but large M."""
    if isinstance(M, bool) or not isinstance(M, int):
        raise ValidationError("M must be an integer.")
    if M < 1:
        raise ValidationError("M must be at least 1.")
    if M > LARGE_TILE_SIZE:
        return ["M is very large and may exceed image size limits."]
    return []
