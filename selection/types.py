"""
Type definitions for hard-mode variant selection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

import numpy as np

VariantTag = Literal[
    "enhanced",
    "tophat",
    "tophat-inverted",
    "adaptive-inverted",
    "adaptive",
    "local-threshold",
    "background-fixed",
]

# Generation order. Also the tie-break priority: on equal scores the
# variant listed first wins.
VARIANT_ORDER: tuple[VariantTag, ...] = (
    "enhanced",
    "tophat",
    "tophat-inverted",
    "adaptive-inverted",
    "adaptive",
    "local-threshold",
    "background-fixed",
)

# File name suffix of each variant when it is kept on disk
VARIANT_SUFFIXES: dict[VariantTag, str] = {
    "enhanced": "enh",
    "tophat": "tophat",
    "tophat-inverted": "tophat_inv",
    "adaptive-inverted": "ath_inv",
    "adaptive": "ath",
    "local-threshold": "lat",
    "background-fixed": "bgfix",
}


@dataclass(frozen=True)
class Variant:
    """A named candidate image derived from the enhanced/background images.

    Attributes:
        tag: Identity of the variant (see VARIANT_ORDER).
        image: Pixels of the staged file as read back from disk.
        path: Where the staged file lives.
    """

    tag: VariantTag
    image: np.ndarray = field(repr=False)
    path: Path | None = None


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of variant selection.

    Attributes:
        variant: The chosen variant.
        score: Its score (None only when every score was NaN and the
            enhanced fallback was used).
        output_path: Final output path the variant was copied to.
        scores: Score of every scored variant, by tag, in generation order.
    """

    variant: Variant
    score: float | None
    output_path: Path | None = None
    scores: dict[str, float] = field(default_factory=dict)

    @property
    def tag(self) -> VariantTag:
        return self.variant.tag


@dataclass(frozen=True)
class Tile:
    """One tile cropped from the final output.

    Attributes:
        index: Sequential row-major index, starting at 0.
        x: Left edge in the source image.
        y: Top edge in the source image.
        width: Tile width (smaller than the tile size on the right edge).
        height: Tile height (smaller than the tile size on the bottom edge).
        path: File the tile was written to.
    """

    index: int
    x: int
    y: int
    width: int
    height: int
    path: Path | None = None


@dataclass
class TileSet:
    """Ordered tiles of the final output. Empty when tiling is off."""

    tiles: list[Tile] = field(default_factory=list)
    directory: Path | None = None

    @property
    def paths(self) -> list[Path]:
        return [tile.path for tile in self.tiles if tile.path is not None]

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self):
        return iter(self.tiles)
