"""Recover (N, M, layout) from the pixel dimensions of a pattern image.

Wide patterns are W = N^2 * M, H = N * M, so W / H = N.
Tall patterns are W = N * M, H = N^2 * M, so H / W = N.

Dimensions alone can be ambiguous, so the wide hypothesis is tried
first and the first one that reconstructs both dimensions exactly wins.
That order is relied on by downstream file naming; keep it.
"""

from __future__ import annotations

import logging
from typing import Optional

from tilelut.config import MAX_DETECT_N, MIN_N
from tilelut.core.geometry import compute_dims
from tilelut.core.types import Geometry, Layout
from tilelut.errors import GeometryUndetectable

logger = logging.getLogger(__name__)

_UNDETECTABLE_MESSAGE = (
    "Could not infer N/M/layout from dimensions {width}x{height}. "
    "The image may have been resized, cropped, padded, or otherwise changed."
)


def _try_layout(long_side: int, short_side: int, layout: Layout) -> Optional[Geometry]:
    """Test one layout hypothesis; long_side = N^2 * M, short_side = N * M."""
    if short_side <= 0 or long_side % short_side != 0:
        return None

    N = long_side // short_side
    if N < MIN_N or N > MAX_DETECT_N:
        return None
    if short_side % N != 0:
        return None

    M = short_side // N
    if M < 1:
        return None

    dims = compute_dims(N, M, layout)
    width, height = (long_side, short_side) if layout == Layout.WIDE else (short_side, long_side)
    if dims.width != width or dims.height != height:
        return None

    return Geometry(N=N, M=M, layout=layout)


def try_detect_geometry(width: int, height: int) -> Optional[Geometry]:
    """Like detect_geometry, but returns None instead of raising."""
    geom = _try_layout(width, height, Layout.WIDE)
    if geom is None:
        geom = _try_layout(height, width, Layout.TALL)
    return geom


def detect_geometry(width: int, height: int) -> Geometry:
    """Solve for the pattern geometry that produced a width x height image.

    Args:
        width: Image width in pixels.
        height: Image height in pixels.

    Returns:
        Geometry with N, M and layout.

    Raises:
        GeometryUndetectable: If neither layout reconstructs the
            dimensions exactly.
    """
    geom = try_detect_geometry(width, height)
    if geom is None:
        raise GeometryUndetectable(
            _UNDETECTABLE_MESSAGE.format(width=width, height=height)
        )

    logger.info(
        "Detected N=%d, M=%d, layout=%s from %dx%d",
        geom.N, geom.M, geom.layout.value, width, height,
    )
    return geom
