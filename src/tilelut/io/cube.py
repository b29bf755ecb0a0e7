"""Reading and writing .cube 3D LUT files.

Data rows are ordered R fastest, then G, then B, matching lut[r, g, b].
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, Optional

import numpy as np

from tilelut.config import CUBE_DECIMALS, LUT_EXTENSIONS, MAX_CUBE_FILE_LINES, MAX_CUBE_SIZE
from tilelut.errors import LUTFormatError, ValidationError

logger = logging.getLogger(__name__)


def format_cube_header(
    N: int,
    title: str,
    comment: Optional[str] = None,
    domain_min: tuple[float, float, float] = (0.0, 0.0, 0.0),
    domain_max: tuple[float, float, float] = (1.0, 1.0, 1.0),
) -> list[str]:
    """Header lines for a .cube file."""
    lines = []
    if comment:
        lines.append(f"# {comment}")
    lines.append(f'TITLE "{title}"')
    lines.append(f"LUT_3D_SIZE {N}")
    lines.append("DOMAIN_MIN " + " ".join(f"{v:.1f}" for v in domain_min))
    lines.append("DOMAIN_MAX " + " ".join(f"{v:.1f}" for v in domain_max))
    return lines


def format_cube_row(rgb: Iterable[float], decimals: int = CUBE_DECIMALS) -> str:
    """One data row: three space-separated values."""
    return " ".join(f"{float(v):.{decimals}f}" for v in rgb)


def format_cube(
    lut: np.ndarray,
    title: str,
    comment: Optional[str] = None,
) -> str:
    """Serialize an (N, N, N, 3) LUT to .cube text."""
    N = lut.shape[0]
    if lut.shape != (N, N, N, 3):
        raise LUTFormatError(f"Expected (N, N, N, 3) LUT, got {lut.shape}")

    lines = format_cube_header(N, title, comment)
    # [r, g, b, ch] -> [b, g, r, ch] so that ravel order is R fastest
    rows = np.transpose(lut, (2, 1, 0, 3)).reshape(-1, 3)
    lines.extend(format_cube_row(row) for row in rows)
    return "\n".join(lines) + "\n"


def write_cube(
    path: str | Path,
    lut: np.ndarray,
    title: str = "TileLUT",
    comment: Optional[str] = None,
) -> Path:
    """Write an (N, N, N, 3) LUT to a .cube file."""
    path = Path(path)
    path.write_text(format_cube(lut, title, comment), encoding="utf-8")
    logger.info("Wrote %d^3 LUT: %s", lut.shape[0], path)
    return path


def _parse_triplet(parts: list[str], lineno: int) -> list[float]:
    if len(parts) != 3:
        raise LUTFormatError(f"Line {lineno}: expected 3 values, got {len(parts)}")
    try:
        return [float(p) for p in parts]
    except ValueError as e:
        raise LUTFormatError(f"Line {lineno}: {e}") from e


def parse_cube(text: str) -> tuple[np.ndarray, dict]:
    """Parse .cube text.

    Returns:
        (lut, meta): (N, N, N, 3) float32 array indexed [r, g, b, ch]
        and a dict with title, size, domain_min, domain_max, comments.
    """
    meta = {
        "title": "",
        "size": None,
        "domain_min": [0.0, 0.0, 0.0],
        "domain_max": [1.0, 1.0, 1.0],
        "comments": [],
    }
    rows: list[list[float]] = []

    for lineno, raw in enumerate(text.splitlines(), start=1):
        if lineno > MAX_CUBE_FILE_LINES:
            raise LUTFormatError(f"File exceeds {MAX_CUBE_FILE_LINES:,} lines")

        line = raw.strip()
        if not line:
            continue
        if line.startswith("#"):
            meta["comments"].append(line[1:].strip())
            continue

        parts = line.split()
        key = parts[0].upper()
        if key == "TITLE":
            meta["title"] = line[len(parts[0]):].strip().strip('"')
        elif key == "LUT_3D_SIZE":
            try:
                size = int(parts[1])
            except (IndexError, ValueError) as e:
                raise LUTFormatError(f"Line {lineno}: invalid LUT_3D_SIZE") from e
            if size < 2 or size > MAX_CUBE_SIZE:
                raise LUTFormatError(f"LUT_3D_SIZE {size} out of range [2, {MAX_CUBE_SIZE}]")
            meta["size"] = size
        elif key == "DOMAIN_MIN":
            meta["domain_min"] = _parse_triplet(parts[1:], lineno)
        elif key == "DOMAIN_MAX":
            meta["domain_max"] = _parse_triplet(parts[1:], lineno)
        elif key == "LUT_1D_SIZE":
            raise LUTFormatError("1D LUT files are not supported")
        elif key[0].isalpha():
            logger.debug("Ignoring unknown .cube keyword: %s", key)
        else:
            rows.append(_parse_triplet(parts, lineno))

    N = meta["size"]
    if N is None:
        raise LUTFormatError("Missing LUT_3D_SIZE")
    if len(rows) != N ** 3:
        raise LUTFormatError(f"Expected {N ** 3} data rows, got {len(rows)}")

    flat = np.asarray(rows, dtype=np.float32)
    # Rows are R fastest: reshape to [b, g, r, ch] then swap to [r, g, b, ch]
    lut = np.transpose(flat.reshape(N, N, N, 3), (2, 1, 0, 3)).copy()
    return lut, meta


def read_cube(path: str | Path) -> tuple[np.ndarray, dict]:
    """Read a .cube file. See parse_cube for the return value."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"LUT file not found: {path}")
    if path.suffix.lower() not in LUT_EXTENSIONS:
        raise ValidationError(
            f"Unsupported LUT extension: {path.suffix}. "
            f"Supported: {', '.join(sorted(LUT_EXTENSIONS))}"
        )
    return parse_cube(path.read_text(encoding="utf-8"))
