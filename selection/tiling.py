"""Grid tiling of the final output."""

from __future__ import annotations

import logging
import math
from pathlib import Path

import numpy as np

import config
from preprocessing.filters import crop_grid
from preprocessing.io import write_image
from .types import Tile, TileSet

logger = logging.getLogger(__name__)


def tile_count(width: int, height: int, tile_size: int) -> int:
    """Number of tiles for a ``width`` x ``height`` image (0 when tiling is off)."""
    if tile_size <= 0:
        return 0
    return math.ceil(width / tile_size) * math.ceil(height / tile_size)


def tile_boxes(width: int, height: int, tile_size: int) -> list[Tile]:
    """Tile layout in row-major order (left to right, then top to bottom).

    Edge tiles are clipped to the image; tiles never overlap and are never
    padded. Returns an empty list when ``tile_size`` is 0.
    """
    if tile_size < 0:
        raise ValueError(f"tile_size must be >= 0, got {tile_size}")
    if tile_size == 0:
        return []

    boxes = []
    for y in range(0, height, tile_size):
        for x in range(0, width, tile_size):
            boxes.append(Tile(
                index=len(boxes),
                x=x,
                y=y,
                width=min(tile_size, width - x),
                height=min(tile_size, height - y),
            ))
    return boxes


def tile_name(index: int, fmt: str) -> str:
    return f"tile_{index:0{config.TILE_INDEX_WIDTH}d}.{fmt}"


def write_tiles(
    img: np.ndarray,
    tile_dir: Path,
    fmt: str,
    tile_size: int,
    force_8bit_output: bool = True,
) -> TileSet:
    """Crop ``img`` into tiles and write them to ``tile_dir``.

    Raises:
        ImageIOError: If a tile cannot be written.
    """
    if tile_size <= 0:
        return TileSet()

    height, width = img.shape[:2]
    boxes = tile_boxes(width, height, tile_size)
    crops = crop_grid(img, tile_size)

    tiles = []
    for box, (x, y, crop) in zip(boxes, crops):
        path = tile_dir / tile_name(box.index, fmt)
        write_image(crop, path, force_8bit_output=force_8bit_output)
        tiles.append(Tile(
            index=box.index,
            x=x,
            y=y,
            width=crop.shape[1],
            height=crop.shape[0],
            path=path,
        ))

    logger.info("Wrote %d tiles (%dpx) to %s", len(tiles), tile_size, tile_dir)
    return TileSet(tiles=tiles, directory=tile_dir)
