"""
Quality scoring of hard-mode variants.

One scorer is chosen per run from the selection mode:

- stats:     0.7 * entropy + 0.3 * standard deviation. Entropy rewards
             information-dense (non-blank) images, standard deviation
             rewards strong contrast.
- stats2:    0.55 * stats + 0.45 * edge density (mean Canny response),
             which adds a preference for crisp character edges.
- tesseract: number of non-whitespace characters Tesseract reads.
- none:      every variant scores the same; selection takes the first.

Scores are non-negative and computed once per variant. Scoring has no side
effects, so variants can be scored concurrently.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

import numpy as np
import pytesseract

import config
from ocr import OcrEngine, count_text_chars, get_ocr_engine
from preprocessing.arguments import CannyArgs, parse_canny_args
from preprocessing.config import PipelineConfig
from preprocessing.errors import ConfigError, MissingDependencyError
from preprocessing.filters import ImageStats, edge_detect, measure_stats

logger = logging.getLogger(__name__)


class QualityScorer(Protocol):
    """Interface for variant scorers."""

    name: str

    def score(self, image: np.ndarray) -> float:
        """Return a non-negative quality score (higher is better)."""


def stats_score(stats: ImageStats) -> float:
    """Weighted entropy/standard-deviation score."""
    return (
        config.STATS_ENTROPY_WEIGHT * stats.entropy
        + config.STATS_STDDEV_WEIGHT * stats.stddev
    )


def edge_score(image: np.ndarray, canny: CannyArgs) -> float:
    """Mean response of the Canny edge map (0-255 scale)."""
    return float(np.mean(edge_detect(image, canny)))


@dataclass
class StatsScorer:
    measure: Callable[[np.ndarray], ImageStats] = measure_stats
    name: str = field(default="stats", init=False)

    def score(self, image: np.ndarray) -> float:
        return stats_score(self.measure(image))


@dataclass
class Stats2Scorer:
    """Stats score blended with edge density."""

    canny: CannyArgs = field(default_factory=lambda: parse_canny_args(config.CANNY_ARG))
    measure: Callable[[np.ndarray], ImageStats] = measure_stats
    edges: Callable[[np.ndarray, CannyArgs], float] = edge_score
    name: str = field(default="stats2", init=False)

    def score(self, image: np.ndarray) -> float:
        return (
            config.STATS2_STATS_WEIGHT * stats_score(self.measure(image))
            + config.STATS2_EDGE_WEIGHT * self.edges(image, self.canny)
        )


@dataclass
class OcrFeedbackScorer:
    """Scores a variant by how much text the OCR engine recovers from it.

    A failed OCR call scores 0.0 rather than aborting the run.
    """

    engine: OcrEngine
    lang: str = config.TESS_LANG
    psm: int = config.TESS_PSM
    name: str = field(default="tesseract", init=False)

    def score(self, image: np.ndarray) -> float:
        try:
            text = self.engine.recognize(image, self.lang, self.psm)
        except (pytesseract.TesseractError, RuntimeError, OSError) as exc:
            logger.warning("OCR failed while scoring, counting 0 characters: %s", exc)
            return 0.0
        return float(count_text_chars(text))


@dataclass
class UniformScorer:
    """Gives every variant the same score."""

    value: float = 1.0
    name: str = field(default="none", init=False)

    def score(self, image: np.ndarray) -> float:
        return self.value


def build_scorer(
    pipeline_config: PipelineConfig,
    engine_factory: Callable[..., OcrEngine] | None = None,
) -> QualityScorer:
    """Choose the scorer for a run.

    When the tesseract mode is requested but the OCR engine is unavailable,
    logs a warning and falls back to stats scoring instead of failing.

    Args:
        pipeline_config: Run configuration (select_mode, canny, tess_*).
        engine_factory: Builds the OCR engine; defaults to get_ocr_engine.
                        Must raise MissingDependencyError when unavailable.

    Raises:
        ConfigError: If the selection mode is unknown.
    """
    mode = pipeline_config.select_mode

    if mode == "stats":
        return StatsScorer()
    if mode == "stats2":
        return Stats2Scorer(canny=pipeline_config.canny_args)
    if mode == "none":
        return UniformScorer()
    if mode == "tesseract":
        factory = engine_factory if engine_factory is not None else get_ocr_engine
        try:
            engine = factory(timeout=pipeline_config.tess_timeout)
        except MissingDependencyError as exc:
            logger.warning("%s; falling back to stats selection", exc)
            return StatsScorer()
        return OcrFeedbackScorer(
            engine=engine,
            lang=pipeline_config.tess_lang,
            psm=pipeline_config.tess_psm,
        )

    raise ConfigError(f"Unknown selection mode: {mode!r}")
