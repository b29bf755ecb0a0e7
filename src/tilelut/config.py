"""Default configuration, constants, and limits for TileLUT."""

# --- Lattice limits ---
MIN_N = 2
MAX_DETECT_N = 256  # Largest N the geometry detector will accept
MAX_GENERATE_N = 65  # UI-sanity cap for pattern generation
LARGE_TILE_SIZE = 512  # Tile sizes above this draw a warning

# --- Host capability ---
DEFAULT_MAX_DIMENSION = 16384  # Used when the host supplies no capability value

# --- Security limits for loaded images ---
MAX_IMAGE_DIMENSION = 65536  # N=256, M=1 wide pattern is 65536 px wide
MAX_IMAGE_PIXELS = 100_000_000  # 100 megapixels
MAX_CUBE_SIZE = 256
MAX_CUBE_FILE_LINES = MAX_CUBE_SIZE ** 3 + 200  # Safety limit for .cube parsing

# --- Allowed file extensions ---
IMAGE_EXTENSIONS = frozenset({".png"})
LUT_EXTENSIONS = frozenset({".cube"})
SCRIPT_EXTENSIONS = frozenset({".py", ".txt"})

# --- Cooperative checkpoint cadence ---
PATTERN_YIELD_EVERY = 5000  # tiles
FILTER_YIELD_EVERY = 150_000  # pixels
SAMPLE_YIELD_EVERY = 5000  # lattice cells

# --- Tile sampling ---
SAMPLE_INSET_FRACTION = 0.2
MAX_SAMPLES_PER_AXIS = 8

# --- Advisory thresholds ---
LARGE_IMAGE_PIXELS = 12_000_000

# --- Preview rendering ---
PREVIEW_TARGET_PX = 500
PREVIEW_MAX_SCALE = 6

# --- Output ---
CUBE_GENERATOR_COMMENT = "Generated by TileLUT"
CUBE_DECIMALS = 6

# --- Filter scripts ---
DEFAULT_FILTER_SCRIPT = """\
# Bindings: R, G, B (0-255), X, Y, W, H (read-only).
# Assign R, G, B to change the pixel; leave them alone to pass through.
# A bare `return` stops the script and keeps what was assigned so far.
"""
