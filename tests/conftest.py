"""Shared fixtures for TileLUT tests."""

from __future__ import annotations

import numpy as np
import pytest

from tilelut.core.types import Geometry, Layout


@pytest.fixture
def small_geometry():
    """N=4, M=2 wide: a 32x8 pattern."""
    return Geometry(N=4, M=2, layout=Layout.WIDE)


@pytest.fixture
def identity_pattern_4x2_wide(small_geometry):
    """Identity pattern pixels for the small wide geometry."""
    from tilelut.pipeline.pattern import generate_pattern
    g = small_geometry
    return generate_pattern(g.N, g.M, g.layout, max_dimension=4096)


@pytest.fixture
def random_rgba():
    """Random (6, 5, 4) uint8 RGBA image."""
    rng = np.random.default_rng(42)
    return rng.integers(0, 256, size=(6, 5, 4), dtype=np.uint8)


@pytest.fixture
def tmp_cube_path(tmp_path):
    """Temporary .cube output path."""
    return tmp_path / "test_output.cube"


@pytest.fixture
def pattern_png(tmp_path):
    """Identity pattern N=5, M=3, tall written to disk."""
    from tilelut.io.image import save_png
    from tilelut.pipeline.pattern import generate_pattern

    pixels = generate_pattern(5, 3, Layout.TALL, max_dimension=4096)
    path = tmp_path / "pattern.png"
    save_png(pixels, path)
    return path


class CancelAfter:
    """Cancel check that starts returning True after `n` polls."""

    def __init__(self, n: int):
        self.n = n
        self.calls = 0

    def __call__(self) -> bool:
        self.calls += 1
        return self.calls > self.n


@pytest.fixture
def cancel_after():
    return CancelAfter
