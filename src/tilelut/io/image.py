"""PNG I/O for pattern images.

Decoded images are (H, W, 4) uint8 RGBA arrays. Pattern images are
compared pixel-exact, so only lossless PNG is accepted.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import imageio.v3 as iio
import numpy as np

from tilelut.config import IMAGE_EXTENSIONS, MAX_IMAGE_DIMENSION, MAX_IMAGE_PIXELS
from tilelut.errors import EncodingFailure, ImageDimensionError, ImageFormatError

logger = logging.getLogger(__name__)


def validate_input_path(filepath: str | Path) -> Path:
    """Validate an input file path for security.

    Args:
        filepath: Path to validate.

    Returns:
        Resolved Path object.

    Raises:
        FileNotFoundError: If file does not exist.
        ImageFormatError: If extension is not allowed.
    """
    path = Path(filepath).resolve()

    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")

    if not path.is_file():
        raise ImageFormatError(f"Not a regular file: {path}")

    if path.suffix.lower() not in IMAGE_EXTENSIONS:
        raise ImageFormatError(
            f"Unsupported image format: {path.suffix}. "
            f"Supported: {', '.join(sorted(IMAGE_EXTENSIONS))}"
        )

    return path


def validate_output_path(filepath: str | Path) -> Path:
    """Validate an output file path.

    Raises:
        FileNotFoundError: If parent directory does not exist.
        PermissionError: If the parent directory is not writable.
    """
    path = Path(filepath).resolve()

    if not path.parent.exists():
        raise FileNotFoundError(f"Output directory does not exist: {path.parent}")

    if not os.access(path.parent, os.W_OK):
        raise PermissionError(f"Cannot write to directory: {path.parent}")

    return path


def _validate_dimensions(width: int, height: int) -> None:
    """Check image dimensions before further processing."""
    if width <= 0 or height <= 0:
        raise ImageDimensionError(f"Invalid image dimensions: {width}x{height}")
    if width > MAX_IMAGE_DIMENSION or height > MAX_IMAGE_DIMENSION:
        raise ImageDimensionError(
            f"Image dimension {max(width, height)} exceeds "
            f"maximum allowed {MAX_IMAGE_DIMENSION}"
        )
    if width * height > MAX_IMAGE_PIXELS:
        raise ImageDimensionError(
            f"Image has {width * height:,} pixels, exceeds "
            f"maximum allowed {MAX_IMAGE_PIXELS:,}"
        )


def to_rgba8(raw: np.ndarray) -> np.ndarray:
    """Normalize a decoded image to an (H, W, 4) uint8 RGBA array."""
    if raw.dtype == np.uint8:
        data = raw
    elif raw.dtype == np.uint16:
        data = (raw >> 8).astype(np.uint8)
    elif np.issubdtype(raw.dtype, np.floating):
        data = (np.clip(raw, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)
    elif raw.dtype == np.bool_:
        data = raw.astype(np.uint8) * 255
    else:
        raise ImageFormatError(f"Unsupported pixel type: {raw.dtype}")

    if data.ndim == 2:
        data = np.repeat(data[:, :, np.newaxis], 3, axis=2)
    elif data.ndim == 3 and data.shape[2] == 1:
        data = np.repeat(data, 3, axis=2)
    elif data.ndim == 3 and data.shape[2] == 2:
        # gray + alpha
        data = np.concatenate([np.repeat(data[:, :, :1], 3, axis=2), data[:, :, 1:]], axis=2)

    if data.ndim != 3 or data.shape[2] not in (3, 4):
        raise ImageFormatError(f"Unsupported image shape: {raw.shape}")

    if data.shape[2] == 3:
        alpha = np.full(data.shape[:2] + (1,), 255, dtype=np.uint8)
        data = np.concatenate([data, alpha], axis=2)

    return np.ascontiguousarray(data)


def decode_png(blob: bytes) -> np.ndarray:
    """Decode PNG bytes into an (H, W, 4) uint8 RGBA array."""
    try:
        raw = iio.imread(blob, extension=".png")
    except Exception as e:
        raise ImageFormatError(f"Could not decode PNG: {e}") from e

    if raw.ndim == 4:
        # Animated PNG: keep the first frame
        raw = raw[0]

    _validate_dimensions(raw.shape[1], raw.shape[0])
    return to_rgba8(raw)


def load_png(filepath: str | Path) -> np.ndarray:
    """Load a PNG file as an (H, W, 4) uint8 RGBA array."""
    path = validate_input_path(filepath)
    logger.debug("Loading PNG: %s", path)
    data = decode_png(path.read_bytes())
    logger.info("Loaded %s (%dx%d)", path.name, data.shape[1], data.shape[0])
    return data


def encode_png(pixels: np.ndarray) -> bytes:
    """Encode an (H, W, 3|4) uint8 array as PNG bytes.

    Raises:
        EncodingFailure: If the encoder fails or returns nothing.
    """
    if pixels.dtype != np.uint8 or pixels.ndim != 3 or pixels.shape[2] not in (3, 4):
        raise EncodingFailure(
            f"Expected (H, W, 3|4) uint8 pixels, got {pixels.shape} {pixels.dtype}"
        )
    try:
        blob = iio.imwrite("<bytes>", pixels, extension=".png")
    except Exception as e:
        raise EncodingFailure(f"Failed to create PNG: {e}") from e
    if not blob:
        raise EncodingFailure("Failed to create PNG: encoder returned no data.")
    return blob


def save_png(pixels_or_blob: np.ndarray | bytes, filepath: str | Path) -> Path:
    """Write a pixel array or already-encoded PNG bytes to file.

    Returns:
        Resolved output path.
    """
    path = validate_output_path(filepath)
    if isinstance(pixels_or_blob, (bytes, bytearray)):
        blob = bytes(pixels_or_blob)
    else:
        blob = encode_png(pixels_or_blob)
    path.write_bytes(blob)
    logger.info("Saved image: %s (%s bytes)", path, f"{len(blob):,}")
    return path


def get_image_dimensions(filepath: str | Path) -> tuple[int, int]:
    """Get image dimensions without decoding pixel data.

    Returns:
        (width, height) tuple.
    """
    path = validate_input_path(filepath)
    props = iio.improps(path)
    shape = props.shape
    if props.is_batch:
        shape = shape[1:]
    return shape[1], shape[0]
