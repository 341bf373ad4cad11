"""
Hard mode: generate competing variants, keep the best one.

Stage order:
    base → early crop → background divide → CLAHE/unsharp/stretch → sharpen
    → variants → score → select → copy to final output → tiles → cleanup

Every intermediate is staged through an ArtifactStore, so a run that fails
part-way leaves nothing behind unless intermediates are to be kept.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from ocr import OcrEngine
from preprocessing.config import PipelineConfig
from preprocessing.errors import EmptySelectionError
from preprocessing.io import load_image
from preprocessing.paths import OutputPaths
from preprocessing.pipeline import (
    build_background_pipeline,
    build_base_pipeline,
    build_crop_pipeline,
    build_enhance_pipeline,
)
from .artifacts import ArtifactStore
from .scoring import build_scorer
from .selector import publish_selection, select_variant
from .tiling import write_tiles
from .types import SelectionResult, TileSet, VariantTag
from .variants import generate_variants

logger = logging.getLogger(__name__)


@dataclass
class HardResult:
    """Outcome of one hard-mode run.

    Attributes:
        selection: Chosen variant, its score and the final output path.
        tiles: Tiles of the final output (empty when tiling is off).
        requested_mode: Selection mode asked for.
        effective_mode: Selection mode actually used (differs after a fallback).
        dropped_variants: Variants that could not be generated.
        intermediates: Kept artifacts by stage or tag (empty unless kept).
        timings: Seconds spent per stage.
    """

    selection: SelectionResult
    tiles: TileSet
    requested_mode: str
    effective_mode: str
    dropped_variants: list[VariantTag] = field(default_factory=list)
    intermediates: dict[str, Path] = field(default_factory=dict)
    timings: dict[str, float] = field(default_factory=dict)

    @property
    def degraded(self) -> bool:
        return self.requested_mode != self.effective_mode

    @property
    def output_path(self) -> Path | None:
        return self.selection.output_path


def run_hard(
    source: str | Path,
    paths: OutputPaths,
    config: PipelineConfig,
    engine_factory: Callable[..., OcrEngine] | None = None,
) -> HardResult:
    """Run hard mode on one image.

    Args:
        source: Input image.
        paths: Output locations (see preprocessing.paths.resolve_output_paths).
        config: Run configuration.
        engine_factory: OCR engine factory for tesseract selection.

    Returns:
        HardResult describing the run.

    Raises:
        ConfigError: If configuration is invalid (before anything is read).
        ImageIOError: If the source cannot be read or an output written.
        EmptySelectionError: If no variant could be produced.
    """
    config.validate()
    timings: dict[str, float] = {}

    scorer = build_scorer(config, engine_factory=engine_factory)
    if scorer.name != config.select_mode:
        logger.info("Selection mode %s unavailable, using %s", config.select_mode, scorer.name)

    img = load_image(source)
    logger.info("Hard mode: %s (%dx%d)", source, img.shape[1], img.shape[0])

    with ArtifactStore(
        output_dir=paths.output_dir,
        stem=paths.stem,
        fmt=paths.fmt,
        keep=config.keep_intermediates,
        force_8bit=config.force_8bit,
    ) as store:
        start = time.perf_counter()
        base_result = build_base_pipeline(config, hard=True).run(img)
        base = store.stage_intermediate("base", base_result.final)
        if "deskew_angle" in base_result.all_metadata:
            logger.info("Deskewed by %.2f°", base_result.all_metadata["deskew_angle"])

        crop = store.stage_intermediate("crop", build_crop_pipeline(config).run(base).final)
        if crop.shape != base.shape:
            logger.debug("Early crop %s -> %s", base.shape, crop.shape)
        timings["base"] = time.perf_counter() - start

        start = time.perf_counter()
        background = store.stage_intermediate(
            "bgfix",
            build_background_pipeline(config.hard_blur_radius).run(crop).final,
        )
        timings["background"] = time.perf_counter() - start

        start = time.perf_counter()
        enhance_result = build_enhance_pipeline(config).run(background)
        store.stage_intermediate("clahe", enhance_result.get_intermediate("contrast_stretch"))
        enhanced = store.stage_intermediate("enh", enhance_result.final)
        timings["enhance"] = time.perf_counter() - start

        start = time.perf_counter()
        variants, dropped = generate_variants(background, enhanced, config, store=store)
        timings["variants"] = time.perf_counter() - start
        if not variants:
            raise EmptySelectionError("Every variant failed to generate")

        start = time.perf_counter()
        selection = select_variant(variants, scorer, workers=config.workers)
        selection = publish_selection(selection, paths.final)
        timings["select"] = time.perf_counter() - start
        logger.info("Chosen: %s -> %s", selection.variant.path.name, paths.final)

        tiles = TileSet()
        if config.tile_size > 0:
            start = time.perf_counter()
            tiles = write_tiles(
                load_image(paths.final),
                paths.tile_dir,
                paths.fmt,
                config.tile_size,
                force_8bit_output=config.force_8bit,
            )
            timings["tiles"] = time.perf_counter() - start

        intermediates = store.artifacts if config.keep_intermediates else {}

    logger.debug("Stage timings: %s", {k: round(v, 3) for k, v in timings.items()})

    return HardResult(
        selection=selection,
        tiles=tiles,
        requested_mode=config.select_mode,
        effective_mode=scorer.name,
        dropped_variants=dropped,
        intermediates=intermediates,
        timings=timings,
    )
