"""
Pipeline builders for every preprocessing stage.

The same building blocks serve both modes:

- Single-pass presets (clahe, bgfix, bw) run one fixed chain from source to
  output via run_pipeline() / run_preset().
- Hard mode (see the selection package) runs the base, background and
  enhancement pipelines separately, because it keeps each stage's output.

Stage order for hard mode:
    base (grayscale → resize → deskew) → early crop → background divide
    → CLAHE → unsharp → stretch → sharpen
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np

from .config import PipelineConfig, PreprocessResult
from .errors import ConfigError
from .io import load_image, write_image
from .steps import (
    AutoLevelStep,
    BackgroundDivideStep,
    CLAHEStep,
    ContrastStretchStep,
    DeskewStep,
    GrayscaleStep,
    LocalThresholdStep,
    NormalizeStep,
    Pipeline,
    PreprocessStep,
    ResizeStep,
    SharpenStep,
    TrimStep,
    UnsharpStep,
)

logger = logging.getLogger(__name__)


def _validate_input(img: np.ndarray) -> None:
    """Validate input image array.

    Raises:
        TypeError: If img is not a numpy array.
        ValueError: If img has invalid dimensions or is empty.
    """
    if not isinstance(img, np.ndarray):
        raise TypeError(f"Expected numpy.ndarray, got {type(img).__name__}")

    if img.ndim < 2 or img.ndim > 3:
        raise ValueError(
            f"Image must be 2D or 3D array, got {img.ndim}D array with shape {img.shape}"
        )

    if img.size == 0:
        raise ValueError("Image array is empty")


def _normalization_steps(config: PipelineConfig) -> list[PreprocessStep]:
    steps: list[PreprocessStep] = []
    if config.grayscale:
        steps.append(GrayscaleStep(dtype=config.dtype))
    if config.target_width is not None:
        steps.append(ResizeStep(target_width=config.target_width))
    return steps


def build_base_pipeline(config: PipelineConfig, hard: bool = True) -> Pipeline:
    """Build the base normalizer shared by all hard-mode stages.

    Steps, in order:
    1. GrayscaleStep - if grayscale is enabled
    2. ResizeStep - if a target width is set
    3. DeskewStep - if deskew is enabled
    4. GrayscaleStep - hard mode only, when step 1 was skipped; the
       variant filters work on a single 8-bit channel

    Border trimming is not part of this pipeline; hard mode gates it with
    ``hard_crop`` (see build_crop_pipeline).
    """
    steps = _normalization_steps(config)
    if config.deskew:
        steps.append(DeskewStep(threshold_percent=config.deskew_threshold))
    if hard and not config.grayscale:
        steps.append(GrayscaleStep(dtype=config.dtype))
    return Pipeline(steps=steps)


def build_crop_pipeline(config: PipelineConfig) -> Pipeline:
    """Early border trim for hard mode (empty when hard_crop is off)."""
    return Pipeline(steps=[TrimStep()] if config.hard_crop else [])


def build_background_pipeline(radius: float, normalize: bool = True) -> Pipeline:
    """Build the background normalizer.

    Divides the image by a Gaussian-blurred copy of itself (radius
    ``radius``), then re-spreads the levels over the full range.
    """
    steps: list[PreprocessStep] = [
        BackgroundDivideStep(radius=radius),
        AutoLevelStep(),
    ]
    if normalize:
        steps.append(NormalizeStep())
    return Pipeline(steps=steps)


def build_enhance_pipeline(config: PipelineConfig) -> Pipeline:
    """Build the contrast enhancer: CLAHE → unsharp → stretch → sharpen.

    The image before the final sharpen is kept as the ``clahe`` intermediate
    in hard mode; the sharpened result is the ``enhanced`` variant.
    """
    return Pipeline(steps=[
        CLAHEStep(args=config.clahe_args),
        UnsharpStep(args=config.unsharp_args),
        ContrastStretchStep(args=config.stretch_args),
        SharpenStep(sigma=config.sharpen_sigma),
    ])


def build_preset_pipeline(config: PipelineConfig) -> Pipeline:
    """Build the fixed chain for a single-pass preset.

    clahe: CLAHE → unsharp → stretch
    bgfix: divide by blurred background → auto-level → unsharp
    bw:    CLAHE → unsharp → local adaptive threshold

    Each is preceded by grayscale/resize and followed by deskew and trim
    when those are enabled.

    Raises:
        ConfigError: For the hard preset or an unknown preset.
    """
    steps = _normalization_steps(config)

    if config.preset == "clahe":
        steps += [
            CLAHEStep(args=config.clahe_args),
            UnsharpStep(args=config.unsharp_args),
            ContrastStretchStep(args=config.stretch_args),
        ]
    elif config.preset == "bgfix":
        steps += build_background_pipeline(config.blur_radius, normalize=False).steps
        steps.append(UnsharpStep(args=config.unsharp_args))
    elif config.preset == "bw":
        steps += [
            CLAHEStep(args=config.clahe_args),
            UnsharpStep(args=config.unsharp_args),
            LocalThresholdStep(args=config.adaptive_args),
        ]
    else:
        raise ConfigError(
            f"Preset {config.preset!r} has no single-pass pipeline (use clahe|bgfix|bw)"
        )

    if config.deskew:
        steps.append(DeskewStep(threshold_percent=config.deskew_threshold))
    if config.trim:
        steps.append(TrimStep())
    return Pipeline(steps=steps)


def run_pipeline(
    img: np.ndarray,
    config: PipelineConfig | None = None,
) -> PreprocessResult:
    """Apply a single-pass preset to an image in memory.

    Args:
        img: Input image as numpy array (RGB or grayscale, uint8).
        config: Preprocessing configuration. If None, uses default settings.

    Returns:
        PreprocessResult containing original and processed images with metadata.

    Raises:
        ConfigError: If configuration is invalid.
        TypeError: If img is not a numpy array.
        ValueError: If img cannot be processed.
    """
    if config is None:
        config = PipelineConfig()

    config.validate()
    _validate_input(img)

    original = img.copy()
    pipeline = build_preset_pipeline(config)
    pipeline_result = pipeline.run(original)

    return PreprocessResult(
        original=original,
        processed=pipeline_result.final,
        scale_factor=pipeline_result.scale_factor,
        config=config,
        metadata=pipeline_result.all_metadata,
    )


def run_preset(
    source: str | Path,
    output_path: str | Path,
    config: PipelineConfig,
) -> PreprocessResult:
    """Load ``source``, run its single-pass preset and write ``output_path``.

    Raises:
        ConfigError: If configuration is invalid.
        ImageIOError: If the source cannot be read or the output written.
    """
    config.validate()
    img = load_image(source)
    logger.info("Preset %s: %s", config.preset, " → ".join(build_preset_pipeline(config).describe()))

    result = run_pipeline(img, config)
    write_image(result.processed, output_path, force_8bit_output=config.force_8bit)
    result.output_path = str(output_path)
    logger.info("Wrote %s", output_path)
    return result
