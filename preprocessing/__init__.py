"""
Image preprocessing for OCR of faint historical documents.

This module provides pure, deterministic functions for enhancing images
before OCR. All functions follow the pattern: input -> output with no mutation
of the original arrays.

Key components:
- config: PipelineConfig dataclass carrying every option of a run
- arguments: parsers for the ``WxH+...`` style filter arguments
- filters: the image operations (CLAHE, divide normalization, thresholds, ...)
- steps: Class-based preprocessing steps with common PreprocessStep interface
- pipeline: builders for the base/background/enhance stages and the presets
- io: loading, writing and copying image files

Two APIs are available:
1. Function-based: run_pipeline(img, config) -> PreprocessResult
2. Class-based: Pipeline(steps=[...]).run(img) -> PipelineStepResults
"""

from .config import PipelineConfig, PreprocessResult
from .errors import (
    ConfigError,
    EmptySelectionError,
    ImageIOError,
    MissingDependencyError,
    PreprocessError,
    VariantGenerationError,
)
from .filters import ImageStats, measure_stats, resize_to_width, to_grayscale
from .io import copy_image, load_image, write_image
from .paths import OutputPaths, resolve_output_paths
from .pipeline import (
    build_background_pipeline,
    build_base_pipeline,
    build_enhance_pipeline,
    build_preset_pipeline,
    run_pipeline,
    run_preset,
)
from .steps import (
    PreprocessStep,
    GrayscaleStep,
    ResizeStep,
    CLAHEStep,
    Pipeline,
    PipelineStepResults,
    StepResult,
)

__all__ = [
    # Config and results
    "PipelineConfig",
    "PreprocessResult",
    "OutputPaths",
    "resolve_output_paths",
    # Errors
    "PreprocessError",
    "ConfigError",
    "ImageIOError",
    "MissingDependencyError",
    "VariantGenerationError",
    "EmptySelectionError",
    # Function API
    "run_pipeline",
    "run_preset",
    "build_base_pipeline",
    "build_background_pipeline",
    "build_enhance_pipeline",
    "build_preset_pipeline",
    "to_grayscale",
    "resize_to_width",
    "measure_stats",
    "ImageStats",
    "load_image",
    "write_image",
    "copy_image",
    # Class-based API
    "PreprocessStep",
    "GrayscaleStep",
    "ResizeStep",
    "CLAHEStep",
    "Pipeline",
    "PipelineStepResults",
    "StepResult",
]
