"""
Reading and writing images on disk.

Images are decoded with Pillow (which understands far more input formats
than OpenCV) and written with OpenCV. Decoding into a numpy array drops all
non-pixel metadata (EXIF, ICC profiles, comments), so nothing else is needed
to strip it.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import cv2
import numpy as np
from PIL import Image, UnidentifiedImageError

from .errors import ImageIOError
from .filters import force_8bit, to_uint8

logger = logging.getLogger(__name__)


def load_image(path: str | Path) -> np.ndarray:
    """Load an image as a uint8 numpy array.

    Grayscale and bilevel sources load as 2D arrays, everything else as RGB.
    16-bit sources are scaled down to 8 bits.

    Raises:
        ImageIOError: If the file is missing or cannot be decoded.
    """
    path = Path(path)
    if not path.is_file():
        raise ImageIOError(f"Input image not found: {path}")

    try:
        with Image.open(path) as image:
            image.load()
            if image.mode in ("I;16", "I;16B", "I;16L", "I", "F"):
                array = np.array(image)
                if array.dtype != np.uint16 and array.max() > 255:
                    array = np.clip(array, 0, 65535).astype(np.uint16)
                return to_uint8(array)
            if image.mode in ("1", "L", "LA"):
                return np.array(image.convert("L"))
            return np.array(image.convert("RGB"))
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise ImageIOError(f"Cannot read image {path}: {exc}") from exc


def write_image(
    img: np.ndarray,
    path: str | Path,
    force_8bit_output: bool = True,
) -> np.ndarray:
    """Write an image, creating parent directories as needed.

    The format follows the file extension. With ``force_8bit_output`` the
    image is first normalized by ``filters.force_8bit``.

    Returns:
        The array as written (after any 8-bit normalization).

    Raises:
        ImageIOError: If the file cannot be written.
    """
    path = Path(path)
    fmt = path.suffix.lstrip(".").lower()
    data = force_8bit(img, fmt) if force_8bit_output else img

    encoded = data
    if data.ndim == 3 and data.shape[2] == 3:
        encoded = cv2.cvtColor(data, cv2.COLOR_RGB2BGR)
    elif data.ndim == 3 and data.shape[2] == 4:
        encoded = cv2.cvtColor(data, cv2.COLOR_RGBA2BGRA)

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        written = cv2.imwrite(str(path), encoded)
    except (cv2.error, OSError) as exc:
        raise ImageIOError(f"Cannot write image {path}: {exc}") from exc
    if not written:
        raise ImageIOError(f"Cannot write image {path}")

    logger.debug("Wrote %s (%dx%d)", path, data.shape[1], data.shape[0])
    return data


def copy_image(source: str | Path, destination: str | Path) -> Path:
    """Copy an image file byte for byte.

    Raises:
        ImageIOError: If the source is missing or the destination is not writable.
    """
    source, destination = Path(source), Path(destination)
    try:
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)
    except OSError as exc:
        raise ImageIOError(f"Cannot copy {source} to {destination}: {exc}") from exc
    return destination
