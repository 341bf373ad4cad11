"""
Preprocessing step classes with a common interface.

Each step is a dataclass that implements the PreprocessStep interface.
Steps are pure: they take an input and return a new output without mutating
the original array.

Usage:
    from preprocessing.steps import GrayscaleStep, CLAHEStep, Pipeline

    pipeline = Pipeline(steps=[
        GrayscaleStep(),
        CLAHEStep(args=parse_clahe_args("25x25+128+3")),
    ])
    result = pipeline.run(image)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import cv2
import numpy as np

from .arguments import ClaheArgs, LatArgs, StretchArgs, UnsharpArgs
from .filters import (
    auto_level,
    clahe,
    contrast_stretch,
    deskew,
    divide_by_background,
    gaussian_blur,
    local_adaptive_threshold,
    negate,
    normalize,
    resize_to_width,
    sharpen,
    to_grayscale,
    tophat,
    trim_borders,
    unsharp_mask,
)


class PreprocessStep(ABC):
    """Base class for preprocessing steps.

    All preprocessing steps must implement this interface. Steps should be
    pure functions: they take an input image and return a new output without
    mutating the original.

    Steps can optionally produce metadata (like scale factors or the deskew
    angle) that is kept alongside the output.
    """

    @abstractmethod
    def apply(self, img: np.ndarray) -> np.ndarray:
        """Apply this preprocessing step to an image.

        Must be pure: never mutates the input image.

        Args:
            img: Input image as numpy array.

        Returns:
            Processed image as a new numpy array.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name for logging and debugging."""

    def get_metadata(self) -> dict[str, Any]:
        """Return any metadata produced by the last apply().

        Returns:
            Dictionary of metadata. Empty by default.
        """
        return {}


@dataclass(frozen=True)
class GrayscaleStep(PreprocessStep):
    """Convert image to grayscale.

    Handles RGB, RGBA, and already-grayscale images.
    """

    dtype: np.dtype = field(default_factory=lambda: np.dtype(np.uint8))

    def apply(self, img: np.ndarray) -> np.ndarray:
        return to_grayscale(img, self.dtype)

    @property
    def name(self) -> str:
        return "grayscale"


@dataclass
class ResizeStep(PreprocessStep):
    """Resize image to a target width, preserving aspect ratio.

    Tracks the scale factor as metadata.
    """

    target_width: int
    interpolation: int = cv2.INTER_AREA
    _scale_factor: float = field(default=1.0, init=False, repr=False)

    def apply(self, img: np.ndarray) -> np.ndarray:
        resized, scale_factor = resize_to_width(
            img, self.target_width, self.interpolation
        )
        self._scale_factor = scale_factor
        return resized

    @property
    def name(self) -> str:
        return f"resize({self.target_width})"

    def get_metadata(self) -> dict[str, Any]:
        return {"scale_factor": self._scale_factor}


@dataclass
class DeskewStep(PreprocessStep):
    """Straighten text lines.

    Attributes:
        threshold_percent: Pixels darker than this percentage of full
                           intensity count as text when estimating skew.
    """

    threshold_percent: float = 40.0
    _angle: float = field(default=0.0, init=False, repr=False)

    def apply(self, img: np.ndarray) -> np.ndarray:
        result, angle = deskew(img, self.threshold_percent)
        self._angle = angle
        return result

    @property
    def name(self) -> str:
        return f"deskew({self.threshold_percent:g}%)"

    def get_metadata(self) -> dict[str, Any]:
        return {"deskew_angle": self._angle}


@dataclass(frozen=True)
class TrimStep(PreprocessStep):
    """Crop away uniform borders."""

    def apply(self, img: np.ndarray) -> np.ndarray:
        return trim_borders(img)

    @property
    def name(self) -> str:
        return "trim"


@dataclass(frozen=True)
class BackgroundDivideStep(PreprocessStep):
    """Flatten uneven illumination by dividing by a blurred copy.

    The heavy blur keeps only slow-varying background (shadows, vignetting);
    character strokes are much smaller than the blur radius and survive
    the division.

    Attributes:
        radius: Gaussian blur sigma used for the background estimate.
    """

    radius: float

    def apply(self, img: np.ndarray) -> np.ndarray:
        background = gaussian_blur(img, self.radius)
        return divide_by_background(img, background)

    @property
    def name(self) -> str:
        return f"divide(blur={self.radius:g})"


@dataclass(frozen=True)
class AutoLevelStep(PreprocessStep):
    """Stretch the intensity range to the full 0-255."""

    def apply(self, img: np.ndarray) -> np.ndarray:
        return auto_level(img)

    @property
    def name(self) -> str:
        return "auto_level"


@dataclass(frozen=True)
class NormalizeStep(PreprocessStep):
    """Contrast stretch with 2% black and 1% white clipping."""

    def apply(self, img: np.ndarray) -> np.ndarray:
        return normalize(img)

    @property
    def name(self) -> str:
        return "normalize"


@dataclass(frozen=True)
class CLAHEStep(PreprocessStep):
    """Apply Contrast Limited Adaptive Histogram Equalization.

    Boosts contrast region by region, so faint strokes in a dim part of
    the page are lifted without blowing out bright parts.
    """

    args: ClaheArgs

    def apply(self, img: np.ndarray) -> np.ndarray:
        return clahe(img, self.args)

    @property
    def name(self) -> str:
        return f"clahe(clip={self.args.clip_limit:g})"


@dataclass(frozen=True)
class UnsharpStep(PreprocessStep):
    args: UnsharpArgs

    def apply(self, img: np.ndarray) -> np.ndarray:
        return unsharp_mask(img, self.args)

    @property
    def name(self) -> str:
        return f"unsharp(sigma={self.args.sigma:g})"


@dataclass(frozen=True)
class ContrastStretchStep(PreprocessStep):
    args: StretchArgs

    def apply(self, img: np.ndarray) -> np.ndarray:
        return contrast_stretch(img, self.args)

    @property
    def name(self) -> str:
        return "contrast_stretch"


@dataclass(frozen=True)
class SharpenStep(PreprocessStep):
    sigma: float = 1.0

    def apply(self, img: np.ndarray) -> np.ndarray:
        return sharpen(img, self.sigma)

    @property
    def name(self) -> str:
        return f"sharpen(sigma={self.sigma:g})"


@dataclass(frozen=True)
class LocalThresholdStep(PreprocessStep):
    """Binarize against the local neighborhood mean."""

    args: LatArgs

    def apply(self, img: np.ndarray) -> np.ndarray:
        return local_adaptive_threshold(img, self.args)

    @property
    def name(self) -> str:
        return f"local_threshold({self.args.width}x{self.args.height})"


@dataclass(frozen=True)
class NegateStep(PreprocessStep):
    def apply(self, img: np.ndarray) -> np.ndarray:
        return negate(img)

    @property
    def name(self) -> str:
        return "negate"


@dataclass(frozen=True)
class TopHatStep(PreprocessStep):
    """Isolate small bright structures with a disk-shaped top-hat."""

    radius: int

    def apply(self, img: np.ndarray) -> np.ndarray:
        return tophat(img, self.radius)

    @property
    def name(self) -> str:
        return f"tophat(disk={self.radius})"


@dataclass
class StepResult:
    """Result of applying a single preprocessing step.

    Attributes:
        name: Name of the step that produced this result.
        image: Output image from the step.
        metadata: Any metadata produced by the step (e.g., scale_factor).
    """

    name: str
    image: np.ndarray
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class PipelineStepResults:
    """Results from running a preprocessing pipeline.

    Provides access to all intermediate images and aggregated metadata.

    Attributes:
        original: The original input image.
        steps: List of StepResult for each step in order.
    """

    original: np.ndarray
    steps: list[StepResult] = field(default_factory=list)

    @property
    def final(self) -> np.ndarray:
        """Get the final processed image."""
        if not self.steps:
            return self.original
        return self.steps[-1].image

    def get_intermediate(self, step_name: str) -> np.ndarray | None:
        """Get intermediate image by step name.

        Args:
            step_name: Name of the step (e.g., "grayscale", "resize(1600)").

        Returns:
            The image produced by that step, or None if not found.
        """
        for step in self.steps:
            if step.name == step_name:
                return step.image
        return None

    def get_metadata(self, key: str) -> Any | None:
        """Get metadata value from any step (first match wins)."""
        for step in self.steps:
            if key in step.metadata:
                return step.metadata[key]
        return None

    @property
    def scale_factor(self) -> float:
        """Convenience property for the common scale_factor metadata."""
        return self.get_metadata("scale_factor") or 1.0

    @property
    def all_metadata(self) -> dict[str, Any]:
        """Get all metadata from all steps, merged into one dict.

        Later steps override earlier ones if keys conflict.
        """
        result = {}
        for step in self.steps:
            result.update(step.metadata)
        return result


@dataclass
class Pipeline:
    """A sequence of preprocessing steps to apply to images.

    The pipeline runs each step in order, passing the output of one step
    as the input to the next. All intermediate results are preserved.

    Attributes:
        steps: List of PreprocessStep instances to apply in order.
    """

    steps: list[PreprocessStep]

    def run(self, img: np.ndarray) -> PipelineStepResults:
        """Run the pipeline on an image.

        Args:
            img: Input image as numpy array.

        Returns:
            PipelineStepResults containing all intermediate images and metadata.
        """
        result = PipelineStepResults(original=img.copy())
        current = result.original

        for step in self.steps:
            output = step.apply(current)
            result.steps.append(
                StepResult(
                    name=step.name,
                    image=output,
                    metadata=step.get_metadata(),
                )
            )
            current = output

        return result

    def describe(self) -> list[str]:
        """Names of the steps, in the order they run."""
        return [step.name for step in self.steps]

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)
