"""Central configuration for OCR preprocessing.

All tunable parameters are defined here with descriptive names.
ImageMagick-style argument strings are kept in the same notation the
command line accepts, so a value can be copied between the two.
"""

# =============================================================================
# PRESETS AND OUTPUT
# =============================================================================

# Processing preset used when none is given
DEFAULT_PRESET = "clahe"

# Single-pass presets run one fixed filter chain; "hard" generates variants
SINGLE_PASS_PRESETS = ("clahe", "bgfix", "bw")
PRESETS = SINGLE_PASS_PRESETS + ("hard",)

# Output file format (extension, lower case)
DEFAULT_FORMAT = "png"
OUTPUT_FORMATS = ("png", "jpg", "jpeg", "tif", "tiff")

# Force every written image to 8-bit (1-bit PNGs upset some OCR services)
FORCE_8BIT = True

# Suffix appended to the input stem for the final output file
OUTPUT_SUFFIX = "_ocr"

# =============================================================================
# BASE NORMALIZATION
# =============================================================================

GRAYSCALE = True

# Resize width in pixels (None = keep source size)
TARGET_WIDTH = None

# Widths above this are rejected before any allocation
MAX_TARGET_WIDTH = 20000

# Deskew is off by default; when on, pixels darker than this percentage of
# full intensity count as text for skew estimation
DESKEW = False
DESKEW_THRESHOLD_PERCENT = 40.0

# Largest skew (degrees, either direction) the estimator searches
DESKEW_MAX_ANGLE = 10.0
DESKEW_ANGLE_STEP = 0.5

# Longest side used while estimating skew (the image itself is not shrunk)
DESKEW_ANALYSIS_SIZE = 800

# Border trim for single-pass presets
TRIM = False

# =============================================================================
# CONTRAST ENHANCEMENT
# =============================================================================

# CLAHE: tile width x tile height (pixels) + histogram bins + clip limit
CLAHE_ARG = "25x25+128+3"

# Unsharp mask: radius x sigma + gain + threshold
UNSHARP_ARG = "0x1.2+1.0+0.02"

# Contrast stretch: black point x white point (percent of pixels clipped)
STRETCH_ARG = "0.2%x0.2%"

# Sigma of the final sharpen pass in hard mode
SHARPEN_SIGMA = 1.0

# Percent of pixels clipped by normalize (black, white)
NORMALIZE_PERCENTS = (2.0, 1.0)

# =============================================================================
# SINGLE-PASS PRESET PARAMETERS
# =============================================================================

# bgfix: background blur radius for divide normalization
BGFIX_BLUR_RADIUS = 40.0

# bw: local adaptive threshold (width x height +/- offset)
ADAPTIVE_ARG = "35x35+10%"

# =============================================================================
# HARD MODE
# =============================================================================

# Background blur radius for divide normalization
HARD_BLUR_RADIUS = 30.0

# Local adaptive threshold used for the adaptive/local-threshold variants
HARD_LAT_ARG = "25x25-5%"

# Trim uniform borders right after base normalization
HARD_CROP = True

# Tile edge length for splitting the final output (0 = no tiling)
TILE_SIZE = 0

# Zero padding of tile indices in tile file names
TILE_INDEX_WIDTH = 3

# Keep every intermediate image next to the final output
KEEP_INTERMEDIATES = False

# Top-hat structuring element (disk) radius
TOPHAT_RADIUS = 15

# Canny edge detector: radius x sigma + lower% + upper%
CANNY_ARG = "0x1+10%+30%"

# =============================================================================
# VARIANT SELECTION
# =============================================================================

# How the best variant is chosen: stats | stats2 | tesseract | none
SELECT_MODE = "stats"
SELECT_MODES = ("stats", "stats2", "tesseract", "none")

# stats = ENTROPY_WEIGHT * entropy + STDDEV_WEIGHT * stddev
STATS_ENTROPY_WEIGHT = 0.7
STATS_STDDEV_WEIGHT = 0.3

# stats2 = STATS_WEIGHT * stats + EDGE_WEIGHT * edge density
STATS2_STATS_WEIGHT = 0.55
STATS2_EDGE_WEIGHT = 0.45

# Score every candidate starts below; all real scores are >= 0
SCORE_SENTINEL = -1.0

# Threads used to score variants (1 = sequential)
SCORING_WORKERS = 1

# =============================================================================
# OCR ENGINE
# =============================================================================

OCR_ENGINE = "tesseract"

# Tesseract languages ("eng", "eng+jpn", ...) and page segmentation mode
TESS_LANG = "eng"
TESS_PSM = 6

# Seconds before a single Tesseract call is abandoned (0 = no limit)
TESS_TIMEOUT = 0.0
