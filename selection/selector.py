"""
Best-variant selection.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

from preprocessing.errors import EmptySelectionError
from preprocessing.io import copy_image
import config
from .scoring import QualityScorer
from .types import SelectionResult, Variant

logger = logging.getLogger(__name__)


def score_variants(
    variants: list[Variant],
    scorer: QualityScorer,
    workers: int = 1,
) -> list[float]:
    """Score every variant, returning scores in the same order.

    With more than one worker, variants are scored on a thread pool. The
    result order never depends on completion order.
    """
    if workers <= 1 or len(variants) <= 1:
        return [scorer.score(variant.image) for variant in variants]

    with ThreadPoolExecutor(max_workers=min(workers, len(variants))) as executor:
        return list(executor.map(lambda variant: scorer.score(variant.image), variants))


def select_variant(
    variants: list[Variant],
    scorer: QualityScorer,
    workers: int = 1,
) -> SelectionResult:
    """Pick the highest-scoring variant.

    Rules:
        - The best score starts at a sentinel below any real score, so the
          first scored variant always replaces it.
        - A variant replaces the current best only with a strictly greater
          score; on ties the earlier variant stays.
        - In none mode every variant carries the same nominal score, so the
          first variant is taken without scoring the rest.
        - A NaN score never wins. If no variant could be chosen, the
          ``enhanced`` variant is used when present.

    Args:
        variants: Candidates in generation order.
        scorer: Scorer for the run.
        workers: Threads to score with.

    Returns:
        SelectionResult without an output path (see publish_selection).

    Raises:
        EmptySelectionError: If no variant can be selected.
    """
    if not variants:
        raise EmptySelectionError("No variants available to select from")

    if scorer.name == "none":
        logger.info("Selection disabled, using first variant: %s", variants[0].tag)
        return SelectionResult(variant=variants[0], score=scorer.score(variants[0].image))

    scores = score_variants(variants, scorer, workers=workers)

    best: Variant | None = None
    best_score = config.SCORE_SENTINEL
    for variant, score in zip(variants, scores):
        logger.debug("Score %-18s %.4f", variant.tag, score)
        if math.isnan(score):
            logger.warning("Variant %s produced a NaN score; ignoring it", variant.tag)
            continue
        if score > best_score:
            best, best_score = variant, score

    all_scores = {variant.tag: score for variant, score in zip(variants, scores)}

    if best is None:
        fallback = next((v for v in variants if v.tag == "enhanced"), None)
        if fallback is None:
            raise EmptySelectionError("No variant could be scored and 'enhanced' is unavailable")
        logger.warning("No variant could be scored; falling back to 'enhanced'")
        return SelectionResult(variant=fallback, score=None, scores=all_scores)

    logger.info("Selected variant %s (score %.4f, mode %s)", best.tag, best_score, scorer.name)
    return SelectionResult(variant=best, score=best_score, scores=all_scores)


def publish_selection(result: SelectionResult, final_path: Path) -> SelectionResult:
    """Copy the chosen variant's staged file, byte for byte, to ``final_path``."""
    if result.variant.path is None:
        raise EmptySelectionError(f"Variant {result.tag} was never written to disk")
    copy_image(result.variant.path, final_path)
    logger.debug("Copied %s -> %s", result.variant.path, final_path)
    return SelectionResult(
        variant=result.variant,
        score=result.score,
        output_path=final_path,
        scores=result.scores,
    )
