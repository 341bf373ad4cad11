"""Preprocess command CLI parsing and control flow."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path

import config
from preprocessing.config import PipelineConfig
from preprocessing.errors import ImageIOError, PreprocessError
from preprocessing.paths import OutputPaths, resolve_output_paths
from preprocessing.pipeline import (
    build_background_pipeline,
    build_base_pipeline,
    build_crop_pipeline,
    build_enhance_pipeline,
    build_preset_pipeline,
    run_preset,
)
from selection import build_recipes, run_hard

logger = logging.getLogger(__name__)


def add_preprocess_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "input_image",
        help="Image to preprocess (any format Pillow can read)",
    )
    parser.add_argument(
        "-p", "--preset",
        default=config.DEFAULT_PRESET,
        help=f"Processing preset: {' | '.join(config.PRESETS)} (default: %(default)s)",
    )
    parser.add_argument(
        "-o", "--out",
        help="Output file path (for preset 'hard', the single final output)",
    )
    parser.add_argument(
        "-O", "--outdir",
        help="Output directory (default: same directory as the input)",
    )
    parser.add_argument(
        "-f", "--format",
        dest="output_format",
        default=config.DEFAULT_FORMAT,
        help=f"Output format: {' | '.join(config.OUTPUT_FORMATS)} (default: %(default)s)",
    )
    parser.add_argument(
        "--gray",
        dest="grayscale",
        action="store_true",
        help="Convert to grayscale first (default)",
    )
    parser.add_argument(
        "--no-gray",
        dest="grayscale",
        action="store_false",
        help="Keep color in the base image",
    )
    parser.add_argument(
        "-w", "--width",
        type=int,
        default=config.TARGET_WIDTH,
        metavar="PX",
        help="Resize to this width, keeping aspect ratio (default: no resize)",
    )
    parser.add_argument(
        "--clahe",
        default=config.CLAHE_ARG,
        metavar="ARG",
        help="CLAHE args WxH+bins+clip (default: %(default)s)",
    )
    parser.add_argument(
        "--unsharp",
        default=config.UNSHARP_ARG,
        metavar="ARG",
        help="Unsharp mask args RxS+gain+threshold (default: %(default)s)",
    )
    parser.add_argument(
        "--stretch",
        default=config.STRETCH_ARG,
        metavar="ARG",
        help="Contrast stretch black%%xwhite%% (default: %(default)s)",
    )
    parser.add_argument(
        "-b", "--blur",
        dest="blur_radius",
        type=float,
        default=config.BGFIX_BLUR_RADIUS,
        metavar="RADIUS",
        help="(bgfix) background blur radius (default: %(default)s)",
    )
    parser.add_argument(
        "-A", "--adaptive",
        default=config.ADAPTIVE_ARG,
        metavar="ARG",
        help="(bw) local adaptive threshold WxH+offset%% (default: %(default)s)",
    )

    hard = parser.add_argument_group("hard preset")
    hard.add_argument(
        "--hard-blur",
        dest="hard_blur_radius",
        type=float,
        default=config.HARD_BLUR_RADIUS,
        metavar="RADIUS",
        help="Background blur radius for divide normalization (default: %(default)s)",
    )
    hard.add_argument(
        "--lat",
        dest="hard_lat",
        default=config.HARD_LAT_ARG,
        metavar="ARG",
        help="Local adaptive threshold args (default: %(default)s)",
    )
    hard.add_argument(
        "--hard-crop",
        dest="hard_crop",
        action="store_true",
        help="Trim borders early (default)",
    )
    hard.add_argument(
        "--no-hard-crop",
        dest="hard_crop",
        action="store_false",
        help="Disable the early border trim",
    )
    hard.add_argument(
        "-T", "--tile",
        dest="tile_size",
        type=int,
        default=config.TILE_SIZE,
        metavar="PX",
        help="Tile size for the final output, 0 = no tiling (default: %(default)s)",
    )
    hard.add_argument(
        "--keep-variants",
        dest="keep_intermediates",
        action="store_true",
        help="Keep all intermediate images and variants",
    )
    hard.add_argument(
        "--select",
        dest="select_mode",
        default=config.SELECT_MODE,
        metavar="MODE",
        help=f"Choose the best variant by: {' | '.join(config.SELECT_MODES)} (default: %(default)s)",
    )
    hard.add_argument(
        "--tess-lang",
        default=config.TESS_LANG,
        metavar="LANGS",
        help="Tesseract languages, e.g. 'eng+jpn' (default: %(default)s)",
    )
    hard.add_argument(
        "--tess-psm",
        type=int,
        default=config.TESS_PSM,
        metavar="N",
        help="Tesseract page segmentation mode (default: %(default)s)",
    )
    hard.add_argument(
        "--tess-timeout",
        type=float,
        default=config.TESS_TIMEOUT,
        metavar="SECONDS",
        help="Abandon a Tesseract call after this long, 0 = never (default: %(default)s)",
    )
    hard.add_argument(
        "--tophat",
        dest="tophat_radius",
        type=int,
        default=config.TOPHAT_RADIUS,
        metavar="RADIUS",
        help="Top-hat disk radius (default: %(default)s)",
    )
    hard.add_argument(
        "--canny",
        default=config.CANNY_ARG,
        metavar="ARG",
        help="Canny args for stats2 scoring (default: %(default)s)",
    )
    hard.add_argument(
        "--workers",
        type=int,
        default=config.SCORING_WORKERS,
        help="Threads used to score variants (default: %(default)s)",
    )

    parser.add_argument(
        "--no-force-8bit",
        dest="force_8bit",
        action="store_false",
        help="Do not force 8-bit output",
    )
    parser.add_argument(
        "-d", "--deskew",
        action="store_true",
        help="Straighten skewed pages",
    )
    parser.add_argument(
        "-t", "--trim",
        action="store_true",
        help="Trim borders (single-pass presets; for hard use --hard-crop)",
    )
    parser.add_argument(
        "-n", "--dry-run",
        action="store_true",
        help="Show what would be done without writing anything",
    )
    parser.set_defaults(
        grayscale=config.GRAYSCALE,
        hard_crop=config.HARD_CROP,
        force_8bit=config.FORCE_8BIT,
        _cmd=cmd_preprocess,
    )


def config_from_args(args: argparse.Namespace) -> PipelineConfig:
    """Build the run configuration from parsed arguments (not yet validated)."""
    return PipelineConfig(
        preset=args.preset,
        output_format=args.output_format.lower(),
        grayscale=args.grayscale,
        target_width=args.width,
        deskew=args.deskew,
        trim=args.trim,
        clahe=args.clahe,
        unsharp=args.unsharp,
        stretch=args.stretch,
        blur_radius=args.blur_radius,
        adaptive=args.adaptive,
        hard_blur_radius=args.hard_blur_radius,
        hard_lat=args.hard_lat,
        hard_crop=args.hard_crop,
        tophat_radius=args.tophat_radius,
        canny=args.canny,
        select_mode=args.select_mode,
        tess_lang=args.tess_lang,
        tess_psm=args.tess_psm,
        tess_timeout=args.tess_timeout,
        tile_size=args.tile_size,
        keep_intermediates=args.keep_intermediates,
        force_8bit=args.force_8bit,
        workers=args.workers,
    )


def log_plan(pipeline_config: PipelineConfig, paths: OutputPaths) -> None:
    """Log the steps and outputs a run would produce."""
    logger.info("Preset : %s", pipeline_config.preset)
    logger.info("Input  : %s", paths.source)
    logger.info("Outdir : %s", paths.output_dir)
    logger.info("Format : %s", paths.fmt)
    logger.info("Force8 : %s", pipeline_config.force_8bit)

    if pipeline_config.preset != "hard":
        steps = build_preset_pipeline(pipeline_config).describe()
        logger.info("Steps  : %s", " → ".join(steps))
        logger.info("Output : %s", paths.final)
        return

    logger.info(
        "Select : %s (keep_variants=%s)",
        pipeline_config.select_mode,
        pipeline_config.keep_intermediates,
    )
    stages = [
        ("base", build_base_pipeline(pipeline_config, hard=True)),
        ("crop", build_crop_pipeline(pipeline_config)),
        ("bgfix", build_background_pipeline(pipeline_config.hard_blur_radius)),
        ("enh", build_enhance_pipeline(pipeline_config)),
    ]
    for stage, pipeline in stages:
        logger.info("  %-6s %s", stage, " → ".join(pipeline.describe()) or "(copy)")
    for recipe in build_recipes(pipeline_config):
        steps = " → ".join(step.name for step in recipe.steps) or "(as is)"
        logger.info("  variant %-18s from %s: %s", recipe.tag, recipe.source, steps)
    logger.info("Final  : %s", paths.final)
    if pipeline_config.tile_size > 0:
        logger.info("Tiles  : %s/tile_*.%s", paths.tile_dir, paths.fmt)


def cmd_preprocess(args: argparse.Namespace) -> int:
    pipeline_config = config_from_args(args)
    paths = resolve_output_paths(
        args.input_image,
        pipeline_config.format,
        out=args.out,
        outdir=args.outdir,
    )

    try:
        pipeline_config.validate()

        if args.dry_run:
            log_plan(pipeline_config, paths)
            logger.info("Dry run: nothing written")
            return 0

        try:
            paths.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise ImageIOError(f"Cannot create output directory {paths.output_dir}: {exc}") from exc

        if pipeline_config.preset == "hard":
            log_plan(pipeline_config, paths)
            result = run_hard(paths.source, paths, pipeline_config)
            final_path = result.selection.output_path
            logger.info("Final  : %s", final_path)
            logger.info("Chosen : %s (%s)", result.selection.tag, result.effective_mode)
            if result.tiles:
                logger.info("Tiles  : %d in %s", len(result.tiles), result.tiles.directory)
        else:
            result = run_preset(paths.source, paths.final, pipeline_config)
            final_path = Path(result.output_path)
            logger.info("Output : %s", final_path)
    except PreprocessError as exc:
        logger.error("%s", exc)
        return 1

    if args.quiet:
        print(final_path)
    return 0
