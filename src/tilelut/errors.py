"""Custom exception hierarchy for TileLUT."""


class TileLutError(Exception):
    """Base exception for all TileLUT errors."""


class ImageError(TileLutError):
    """Errors related to image loading or processing."""


class ImageFormatError(ImageError):
    """Unsupported or corrupted image format."""


class ImageDimensionError(ImageError):
    """Image dimensions exceed limits or are mismatched."""


class DimensionLimitExceeded(ImageDimensionError):
    """Requested pattern is larger than the host can rasterize."""

    def __init__(
        self,
        message: str,
        width: int,
        height: int,
        max_dimension: int,
        suggested_tile_size: int,
    ):
        super().__init__(message)
        self.width = width
        self.height = height
        self.max_dimension = max_dimension
        self.suggested_tile_size = suggested_tile_size


class GeometryUndetectable(ImageDimensionError):
    """No (N, M, layout) reproduces the image dimensions exactly."""


class EncodingFailure(ImageError):
    """The PNG encoder did not produce output."""


class ScriptError(TileLutError):
    """Errors raised by user-supplied pixel filter scripts."""


class ScriptCompileError(ScriptError):
    """Filter source failed to compile or uses a forbidden construct."""

    def __init__(self, message: str, lineno: int | None = None):
        super().__init__(message)
        self.lineno = lineno


class FilterRuntimeError(ScriptError):
    """Filter script raised while processing a pixel."""

    def __init__(self, message: str, x: int, y: int):
        super().__init__(f"Filter error at (x={x}, y={y}): {message}")
        self.x = x
        self.y = y


class ExportError(TileLutError):
    """Errors during LUT export."""


class LUTFormatError(ExportError):
    """Invalid or corrupted LUT file format."""


class ValidationError(TileLutError):
    """Input validation failures."""


class PipelineError(TileLutError):
    """Errors during pipeline execution."""


class Cancelled(PipelineError):
    """Operation was cancelled at a cooperative checkpoint."""
