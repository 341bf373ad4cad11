"""
Variant generation for hard mode.

Each variant is a short step pipeline applied to either the enhanced image,
the background-normalized image, or another variant. Recipes are built
parents first; the resulting list is returned in VARIANT_ORDER, which the
selector also uses to break ties.

A variant that cannot be produced is dropped (and so is anything derived
from it); the run carries on with the rest.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import cv2
import numpy as np

from preprocessing.config import PipelineConfig
from preprocessing.errors import VariantGenerationError
from preprocessing.steps import (
    ContrastStretchStep,
    LocalThresholdStep,
    NegateStep,
    Pipeline,
    PreprocessStep,
    TopHatStep,
)
from .artifacts import ArtifactStore
from .types import VARIANT_ORDER, Variant, VariantTag

logger = logging.getLogger(__name__)

# Names of the two base images every recipe ultimately derives from
ENHANCED_SOURCE = "enhanced-image"
BACKGROUND_SOURCE = "background-image"


@dataclass(frozen=True)
class VariantRecipe:
    """How to derive one variant.

    Attributes:
        tag: Variant produced.
        source: A base image name or the tag of another variant.
        steps: Steps applied to the source, in order.
    """

    tag: VariantTag
    source: str
    steps: tuple[PreprocessStep, ...] = ()


def build_recipes(config: PipelineConfig) -> list[VariantRecipe]:
    """Recipes for every variant, parents before children.

    ``adaptive`` and ``local-threshold`` intentionally share the same
    threshold and parameters.
    """
    threshold = LocalThresholdStep(args=config.hard_lat_args)
    return [
        VariantRecipe("background-fixed", BACKGROUND_SOURCE),
        VariantRecipe("enhanced", ENHANCED_SOURCE),
        VariantRecipe("local-threshold", ENHANCED_SOURCE, (threshold,)),
        VariantRecipe("adaptive", ENHANCED_SOURCE, (threshold,)),
        VariantRecipe("adaptive-inverted", "adaptive", (NegateStep(),)),
        VariantRecipe(
            "tophat",
            ENHANCED_SOURCE,
            (
                TopHatStep(radius=config.tophat_radius),
                ContrastStretchStep(args=config.stretch_args),
            ),
        ),
        VariantRecipe("tophat-inverted", "tophat", (NegateStep(),)),
    ]


def _build_variant(
    recipe: VariantRecipe,
    images: dict[str, np.ndarray],
    store: ArtifactStore | None,
) -> Variant:
    source = images.get(recipe.source)
    if source is None:
        raise VariantGenerationError(recipe.tag, f"source {recipe.source!r} is unavailable")

    try:
        image = Pipeline(steps=list(recipe.steps)).run(source).final
        if image.size == 0:
            raise VariantGenerationError(recipe.tag, "produced an empty image")
        if store is None:
            return Variant(tag=recipe.tag, image=image)
        written, path = store.stage_variant(recipe.tag, image)
    except (cv2.error, ValueError, OSError) as exc:
        raise VariantGenerationError(recipe.tag, str(exc)) from exc
    return Variant(tag=recipe.tag, image=written, path=path)


def generate_variants(
    background: np.ndarray,
    enhanced: np.ndarray,
    config: PipelineConfig,
    store: ArtifactStore | None = None,
    recipes: list[VariantRecipe] | None = None,
) -> tuple[list[Variant], list[VariantTag]]:
    """Generate all candidate variants.

    Args:
        background: Background-normalized image.
        enhanced: Contrast-enhanced image.
        config: Run configuration.
        store: Where to stage variant files. None keeps them in memory only.
        recipes: Override the recipe list (defaults to build_recipes()).

    Returns:
        Tuple of (variants in VARIANT_ORDER, tags of dropped variants).
    """
    if recipes is None:
        recipes = build_recipes(config)

    images: dict[str, np.ndarray] = {
        ENHANCED_SOURCE: enhanced,
        BACKGROUND_SOURCE: background,
    }
    built: dict[str, Variant] = {}
    dropped: list[VariantTag] = []

    for recipe in recipes:
        try:
            variant = _build_variant(recipe, images, store)
        except VariantGenerationError as exc:
            logger.warning("Dropping variant %s", exc)
            dropped.append(recipe.tag)
            continue
        built[recipe.tag] = variant
        images[recipe.tag] = variant.image
        logger.debug("Generated variant %s", recipe.tag)

    variants = [built[tag] for tag in VARIANT_ORDER if tag in built]
    return variants, dropped
