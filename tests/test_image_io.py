"""Tests for PNG encode/decode."""

from __future__ import annotations

import numpy as np
import pytest

from tilelut.errors import EncodingFailure, ImageFormatError
from tilelut.io.image import (
    decode_png,
    encode_png,
    get_image_dimensions,
    load_png,
    save_png,
    to_rgba8,
)


class TestEncodeDecode:
    """Tests for lossless PNG round-trips."""

    def test_rgb_roundtrip(self):
        rng = np.random.default_rng(7)
        pixels = rng.integers(0, 256, size=(9, 13, 3), dtype=np.uint8)
        decoded = decode_png(encode_png(pixels))
        assert decoded.shape == (9, 13, 4)
        np.testing.assert_array_equal(decoded[..., :3], pixels)
        assert (decoded[..., 3] == 255).all()

    def test_rgba_preserves_alpha(self, random_rgba):
        decoded = decode_png(encode_png(random_rgba))
        np.testing.assert_array_equal(decoded, random_rgba)

    def test_encode_rejects_float(self):
        with pytest.raises(EncodingFailure):
            encode_png(np.zeros((2, 2, 3), dtype=np.float32))

    def test_decode_garbage(self):
        with pytest.raises(ImageFormatError):
            decode_png(b"definitely not a png")


class TestToRgba8:
    """Tests for decoded-array normalization."""

    def test_gray(self):
        out = to_rgba8(np.full((2, 2), 7, dtype=np.uint8))
        assert out.shape == (2, 2, 4)
        assert out[0, 0].tolist() == [7, 7, 7, 255]

    def test_gray_alpha(self):
        raw = np.zeros((1, 1, 2), dtype=np.uint8)
        raw[0, 0] = (9, 100)
        assert to_rgba8(raw)[0, 0].tolist() == [9, 9, 9, 100]

    def test_sixteen_bit(self):
        raw = np.full((1, 1, 3), 0xABCD, dtype=np.uint16)
        assert to_rgba8(raw)[0, 0].tolist() == [0xAB, 0xAB, 0xAB, 255]

    def test_unsupported_channels(self):
        with pytest.raises(ImageFormatError):
            to_rgba8(np.zeros((1, 1, 5), dtype=np.uint8))


class TestFiles:
    """Tests for file-based helpers."""

    def test_save_load(self, tmp_path, random_rgba):
        path = save_png(random_rgba, tmp_path / "img.png")
        np.testing.assert_array_equal(load_png(path), random_rgba)
        assert get_image_dimensions(path) == (5, 6)

    def test_save_bytes(self, tmp_path):
        blob = encode_png(np.zeros((3, 4, 3), dtype=np.uint8))
        path = save_png(blob, tmp_path / "blob.png")
        assert path.read_bytes() == blob
        assert get_image_dimensions(path) == (4, 3)
