"""
Configuration for the preprocessing pipelines.

Every option of a run is carried by one immutable PipelineConfig, built once
(usually from the command line) and passed to each stage. Nothing reads
module globals after that.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Literal, Optional

import numpy as np

from config import (
    ADAPTIVE_ARG,
    BGFIX_BLUR_RADIUS,
    CANNY_ARG,
    CLAHE_ARG,
    DEFAULT_FORMAT,
    DEFAULT_PRESET,
    DESKEW,
    DESKEW_THRESHOLD_PERCENT,
    FORCE_8BIT,
    GRAYSCALE,
    HARD_BLUR_RADIUS,
    HARD_CROP,
    HARD_LAT_ARG,
    KEEP_INTERMEDIATES,
    MAX_TARGET_WIDTH,
    OUTPUT_FORMATS,
    PRESETS,
    SCORING_WORKERS,
    SELECT_MODE,
    SELECT_MODES,
    SHARPEN_SIGMA,
    STRETCH_ARG,
    TARGET_WIDTH,
    TESS_LANG,
    TESS_PSM,
    TESS_TIMEOUT,
    TILE_SIZE,
    TOPHAT_RADIUS,
    TRIM,
    UNSHARP_ARG,
)
from .arguments import (
    CannyArgs,
    ClaheArgs,
    LatArgs,
    StretchArgs,
    UnsharpArgs,
    parse_canny_args,
    parse_clahe_args,
    parse_lat_args,
    parse_stretch_args,
    parse_unsharp_args,
)
from .errors import ConfigError

Preset = Literal["clahe", "bgfix", "bw", "hard"]
SelectionMode = Literal["stats", "stats2", "tesseract", "none"]

_TESS_LANG_RE = re.compile(r"^[A-Za-z_]+(?:\+[A-Za-z_]+)*$")


@dataclass(frozen=True)
class PipelineConfig:
    """Configuration for one preprocessing run.

    Attributes:
        preset: Processing preset: clahe | bgfix | bw | hard.
        output_format: Extension of written images (png, jpg, tif, ...).
        grayscale: Convert to grayscale first.
        target_width: Resize to this width keeping aspect. None skips resizing.
        deskew: Straighten skewed pages.
        deskew_threshold: Percent intensity below which pixels count as text
                          when estimating skew.
        trim: Trim uniform borders (single-pass presets only).
        clahe: CLAHE argument, ``WxH+bins+clip``.
        unsharp: Unsharp mask argument, ``RxS+gain+threshold``.
        stretch: Contrast stretch argument, ``B%xW%``.
        blur_radius: Background blur radius for the bgfix preset.
        adaptive: Local threshold argument for the bw preset.
        hard_blur_radius: Background blur radius for hard mode.
        hard_lat: Local threshold argument for hard-mode variants.
        hard_crop: Trim borders early in hard mode.
        sharpen_sigma: Sigma of the final hard-mode sharpen pass.
        tophat_radius: Disk radius of the top-hat variant.
        canny: Edge detector argument for stats2 scoring.
        select_mode: How the best variant is chosen.
        tess_lang: Tesseract language(s), e.g. ``eng+jpn``.
        tess_psm: Tesseract page segmentation mode (0-13).
        tess_timeout: Seconds before one OCR call is abandoned (0 = never).
        tile_size: Tile edge length for the final output (0 = no tiling).
        keep_intermediates: Keep all intermediate images and variants.
        force_8bit: Write every image as 8-bit.
        workers: Threads used to score variants (1 = sequential).
    """

    preset: Preset = DEFAULT_PRESET
    output_format: str = DEFAULT_FORMAT

    # Base normalization
    grayscale: bool = GRAYSCALE
    target_width: Optional[int] = TARGET_WIDTH
    deskew: bool = DESKEW
    deskew_threshold: float = DESKEW_THRESHOLD_PERCENT
    trim: bool = TRIM

    # Contrast enhancement
    clahe: str = CLAHE_ARG
    unsharp: str = UNSHARP_ARG
    stretch: str = STRETCH_ARG

    # Single-pass presets
    blur_radius: float = BGFIX_BLUR_RADIUS
    adaptive: str = ADAPTIVE_ARG

    # Hard mode
    hard_blur_radius: float = HARD_BLUR_RADIUS
    hard_lat: str = HARD_LAT_ARG
    hard_crop: bool = HARD_CROP
    sharpen_sigma: float = SHARPEN_SIGMA
    tophat_radius: int = TOPHAT_RADIUS
    canny: str = CANNY_ARG
    select_mode: SelectionMode = SELECT_MODE
    tess_lang: str = TESS_LANG
    tess_psm: int = TESS_PSM
    tess_timeout: float = TESS_TIMEOUT
    tile_size: int = TILE_SIZE
    keep_intermediates: bool = KEEP_INTERMEDIATES

    # Output
    force_8bit: bool = FORCE_8BIT
    workers: int = SCORING_WORKERS

    # Pixel type of every intermediate image
    dtype: np.dtype = field(default_factory=lambda: np.dtype(np.uint8), repr=False)

    def validate(self) -> None:
        """Validate configuration parameters.

        Raises:
            ConfigError: If any parameter is invalid.
        """
        if self.preset not in PRESETS:
            raise ConfigError(
                f"Unknown preset {self.preset!r} (use {'|'.join(PRESETS)})"
            )

        if self.select_mode not in SELECT_MODES:
            raise ConfigError(
                f"Unknown selection mode {self.select_mode!r} (use {'|'.join(SELECT_MODES)})"
            )

        if self.output_format.lower() not in OUTPUT_FORMATS:
            raise ConfigError(
                f"Unsupported output format {self.output_format!r} "
                f"(use {'|'.join(OUTPUT_FORMATS)})"
            )

        if self.target_width is not None:
            if self.target_width <= 0:
                raise ConfigError(f"target_width must be positive, got {self.target_width}")
            if self.target_width > MAX_TARGET_WIDTH:
                raise ConfigError(
                    f"target_width={self.target_width} is very large. "
                    f"Maximum is {MAX_TARGET_WIDTH}."
                )

        if not (0.0 < self.deskew_threshold < 100.0):
            raise ConfigError(
                f"deskew_threshold must be a percentage in (0, 100), got {self.deskew_threshold}"
            )

        for name in ("blur_radius", "hard_blur_radius", "sharpen_sigma"):
            value = getattr(self, name)
            if value <= 0:
                raise ConfigError(f"{name} must be positive, got {value}")

        if self.tophat_radius < 1:
            raise ConfigError(f"tophat_radius must be at least 1, got {self.tophat_radius}")

        if self.tile_size < 0:
            raise ConfigError(f"tile_size must be 0 (off) or positive, got {self.tile_size}")

        if not _TESS_LANG_RE.match(self.tess_lang):
            raise ConfigError(f"Invalid Tesseract language list: {self.tess_lang!r}")

        if not (0 <= self.tess_psm <= 13):
            raise ConfigError(f"tess_psm must be between 0 and 13, got {self.tess_psm}")

        if self.tess_timeout < 0:
            raise ConfigError(f"tess_timeout must be non-negative, got {self.tess_timeout}")

        if self.workers < 1:
            raise ConfigError(f"workers must be at least 1, got {self.workers}")

        # Parse every filter argument so malformed strings fail up front
        parse_clahe_args(self.clahe)
        parse_unsharp_args(self.unsharp)
        parse_stretch_args(self.stretch)
        parse_lat_args(self.adaptive)
        parse_lat_args(self.hard_lat)
        parse_canny_args(self.canny)

    @property
    def clahe_args(self) -> ClaheArgs:
        return parse_clahe_args(self.clahe)

    @property
    def unsharp_args(self) -> UnsharpArgs:
        return parse_unsharp_args(self.unsharp)

    @property
    def stretch_args(self) -> StretchArgs:
        return parse_stretch_args(self.stretch)

    @property
    def adaptive_args(self) -> LatArgs:
        return parse_lat_args(self.adaptive)

    @property
    def hard_lat_args(self) -> LatArgs:
        return parse_lat_args(self.hard_lat)

    @property
    def canny_args(self) -> CannyArgs:
        return parse_canny_args(self.canny)

    @property
    def format(self) -> str:
        """Normalized output extension."""
        return self.output_format.lower()


@dataclass
class PreprocessResult:
    """Result of a single-pass preset run.

    Attributes:
        original: Source image as loaded.
        processed: Final image, before 8-bit normalization on write.
        scale_factor: Ratio of original width to processed width.
        config: The configuration used.
        output_path: Where the image was written (None when kept in memory).
        metadata: Aggregated metadata from all steps (e.g. deskew angle).
    """

    original: np.ndarray
    processed: np.ndarray
    scale_factor: float
    config: PipelineConfig
    output_path: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def dimensions(self) -> tuple[int, int]:
        """Get (width, height) of the processed image."""
        h, w = self.processed.shape[:2]
        return w, h
