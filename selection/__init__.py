"""
Hard-mode variant generation and selection.

Public API:
    - run_hard: full hard-mode run for one image
    - generate_variants: candidate images in fixed priority order
    - build_scorer / select_variant: quality scoring and best-variant choice
    - write_tiles: grid tiling of the final output
    - ArtifactStore: staging and cleanup of intermediates
"""

from .artifacts import INTERMEDIATE_STAGES, ArtifactStore
from .hard import HardResult, run_hard
from .scoring import (
    OcrFeedbackScorer,
    QualityScorer,
    Stats2Scorer,
    StatsScorer,
    UniformScorer,
    build_scorer,
    edge_score,
    stats_score,
)
from .selector import publish_selection, score_variants, select_variant
from .tiling import tile_boxes, tile_count, write_tiles
from .types import (
    VARIANT_ORDER,
    VARIANT_SUFFIXES,
    SelectionResult,
    Tile,
    TileSet,
    Variant,
    VariantTag,
)
from .variants import VariantRecipe, build_recipes, generate_variants

__all__ = [
    "ArtifactStore",
    "INTERMEDIATE_STAGES",
    "HardResult",
    "run_hard",
    "QualityScorer",
    "StatsScorer",
    "Stats2Scorer",
    "OcrFeedbackScorer",
    "UniformScorer",
    "build_scorer",
    "stats_score",
    "edge_score",
    "score_variants",
    "select_variant",
    "publish_selection",
    "tile_boxes",
    "tile_count",
    "write_tiles",
    "VARIANT_ORDER",
    "VARIANT_SUFFIXES",
    "SelectionResult",
    "Tile",
    "TileSet",
    "Variant",
    "VariantTag",
    "VariantRecipe",
    "build_recipes",
    "generate_variants",
]
