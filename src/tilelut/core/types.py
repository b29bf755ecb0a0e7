"""Core data types, enums, and callback signatures for TileLUT.

CRITICAL CONVENTION:
    Tile index t enumerates the lattice with R fastest:
        r = t % N,  g = (t // N) % N,  b = t // (N * N)
    LUT arrays have shape (N, N, N, 3) indexed as lut[r, g, b, channel],
    and .cube rows are emitted in the same R-fastest order.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Layout(str, Enum):
    """Arrangement of the tile grid inside the pattern image."""
    TALL = "tall"  # N tiles wide, N^2 tiles tall
    WIDE = "wide"  # N^2 tiles wide, N tiles tall


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Geometry:
    """Lattice resolution, tile size, and layout of a pattern image."""
    N: int
    M: int
    layout: Layout


@dataclass(frozen=True)
class TileDims:
    """Tile-grid and pixel dimensions of a pattern image."""
    tiles_w: int
    tiles_h: int
    width: int
    height: int

    @property
    def pixels(self) -> int:
        return self.width * self.height


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class CancelToken:
    """Shared cancellation flag for one in-flight operation.

    The token is callable, so it can be passed anywhere a CancelCheck
    is expected.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __call__(self) -> bool:
        return self._event.is_set()


# ---------------------------------------------------------------------------
# Progress callback type
# ---------------------------------------------------------------------------

ProgressCallback = Callable[[str, float, str], None]
"""Callback signature: (stage_name, fraction_complete, message)."""

CancelCheck = Callable[[], bool]
"""Returns True if the operation should be cancelled."""
