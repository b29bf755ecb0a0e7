"""TileLUT: capture a 3D LUT by round-tripping a tiled identity pattern image."""

__version__ = "0.1.0"
