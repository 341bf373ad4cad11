"""
Image filters used by every preprocessing pipeline.

All functions are pure: they take an input and return a new output without
mutating the original array. Images are numpy arrays, either 2D grayscale
or 3D RGB, with uint8 pixels unless stated otherwise. Filters that only
make sense on one channel are applied channel by channel to color input.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import cv2
import numpy as np

from config import (
    DESKEW_ANALYSIS_SIZE,
    DESKEW_ANGLE_STEP,
    DESKEW_MAX_ANGLE,
    NORMALIZE_PERCENTS,
)
from .arguments import CannyArgs, ClaheArgs, LatArgs, StretchArgs, UnsharpArgs


@dataclass(frozen=True)
class ImageStats:
    """Intensity statistics of an image.

    Attributes:
        entropy: Shannon entropy of the 256-bin histogram, in bits (0-8).
        stddev: Standard deviation of pixel intensities (0-255 scale).
        mean: Mean pixel intensity (0-255 scale).
    """

    entropy: float
    stddev: float
    mean: float


def _validate_image(img: np.ndarray) -> None:
    if not isinstance(img, np.ndarray):
        raise TypeError(f"Expected numpy.ndarray, got {type(img).__name__}")

    if img.ndim < 2 or img.ndim > 3:
        raise ValueError(
            f"Image must be 2D or 3D array, got {img.ndim}D array with shape {img.shape}"
        )

    if img.size == 0:
        raise ValueError("Image array is empty")


def _per_channel(img: np.ndarray, func: Callable[[np.ndarray], np.ndarray]) -> np.ndarray:
    if img.ndim == 2:
        return func(img)
    channels = [func(np.ascontiguousarray(img[:, :, c])) for c in range(img.shape[2])]
    return np.stack(channels, axis=2)


def _to_uint8_range(values: np.ndarray) -> np.ndarray:
    return np.clip(np.rint(values), 0, 255).astype(np.uint8)


def to_uint8(img: np.ndarray) -> np.ndarray:
    """Convert an image to uint8, rescaling 16-bit and float data.

    16-bit images are scaled by 1/257 (65535 -> 255). Float images are
    assumed to be in 0-1 when their maximum is at most 1.0, otherwise in
    0-255; either way they are clipped.
    """
    _validate_image(img)

    if img.dtype == np.uint8:
        return img.copy()
    if img.dtype == np.uint16:
        return _to_uint8_range(img.astype(np.float64) / 257.0)
    if img.dtype == np.bool_:
        return img.astype(np.uint8) * 255
    if np.issubdtype(img.dtype, np.floating):
        values = img.astype(np.float64)
        if np.nanmax(values) <= 1.0:
            values = values * 255.0
        return _to_uint8_range(np.nan_to_num(values))
    return np.clip(img, 0, 255).astype(np.uint8)


def to_grayscale(img: np.ndarray, dtype: np.dtype = np.uint8) -> np.ndarray:
    """Convert an image to grayscale.

    Args:
        img: Input image. Can be:
             - RGB (3 channels): Converted with ITU-R BT.601 weights
             - RGBA (4 channels): Alpha channel is dropped, then converted
             - Grayscale (1 channel or 2D): Returns a copy
        dtype: Output dtype. Default is uint8.

    Returns:
        Grayscale image as 2D numpy array with the specified dtype.

    Raises:
        ValueError: If input is not a valid image array.
        TypeError: If img is not a numpy array.

    Examples:
        >>> rgb = np.zeros((100, 200, 3), dtype=np.uint8)
        >>> to_grayscale(rgb).shape
        (100, 200)
    """
    _validate_image(img)

    if img.ndim == 2:
        result = img.copy()
    else:
        channels = img.shape[2]
        if channels == 1:
            result = img[:, :, 0].copy()
        elif channels in (3, 4):
            rgb = np.ascontiguousarray(img[:, :, :3])
            if rgb.dtype not in (np.uint8, np.uint16, np.float32):
                rgb = rgb.astype(np.float32)
            result = cv2.cvtColor(rgb, cv2.COLOR_RGB2GRAY)
        else:
            raise ValueError(
                f"Unsupported number of channels: {channels}. "
                "Expected 1, 3 (RGB), or 4 (RGBA)."
            )

    if np.dtype(dtype) == np.uint8 and result.dtype != np.uint8:
        return to_uint8(result)
    if result.dtype != dtype:
        if np.issubdtype(dtype, np.integer):
            info = np.iinfo(dtype)
            result = np.clip(result, info.min, info.max).astype(dtype)
        else:
            result = result.astype(dtype)
    return result


def resize_to_width(
    img: np.ndarray,
    target_width: int,
    interpolation: int = cv2.INTER_AREA,
) -> tuple[np.ndarray, float]:
    """Resize image to a target width, preserving aspect ratio.

    Args:
        img: Input image (2D grayscale or 3D color).
        target_width: Desired width in pixels.
        interpolation: OpenCV interpolation used for downscaling. Upscaling
                      always uses INTER_CUBIC, which keeps strokes sharper.

    Returns:
        Tuple of:
        - Resized image with same dtype as input
        - Scale factor (original_width / target_width)

    Raises:
        ValueError: If target_width is not positive or image is invalid.
        TypeError: If img is not a numpy array or target_width not an int.

    Examples:
        >>> img = np.zeros((1000, 2000), dtype=np.uint8)
        >>> resized, scale = resize_to_width(img, 1000)
        >>> resized.shape, scale
        ((500, 1000), 2.0)
    """
    _validate_image(img)

    if not isinstance(target_width, int) or isinstance(target_width, bool):
        raise TypeError(f"target_width must be int, got {type(target_width).__name__}")

    if target_width <= 0:
        raise ValueError(f"target_width must be positive, got {target_width}")

    original_height, original_width = img.shape[:2]
    if original_width == target_width:
        return img.copy(), 1.0

    scale_factor = original_width / target_width
    new_height = max(1, int(round(original_height / scale_factor)))

    if target_width > original_width:
        actual_interpolation = cv2.INTER_CUBIC
    else:
        actual_interpolation = interpolation

    resized = cv2.resize(
        img,
        (target_width, new_height),
        interpolation=actual_interpolation,
    )
    return resized, scale_factor


def _rotate(img: np.ndarray, angle: float, border: int = cv2.BORDER_REPLICATE) -> np.ndarray:
    height, width = img.shape[:2]
    matrix = cv2.getRotationMatrix2D((width / 2.0, height / 2.0), angle, 1.0)
    return cv2.warpAffine(
        img,
        matrix,
        (width, height),
        flags=cv2.INTER_LINEAR,
        borderMode=border,
    )


def estimate_skew(
    img: np.ndarray,
    threshold_percent: float,
    max_angle: float = DESKEW_MAX_ANGLE,
    step: float = DESKEW_ANGLE_STEP,
) -> float:
    """Estimate the rotation (degrees) that makes text lines horizontal.

    Pixels darker than ``threshold_percent`` of full intensity are treated
    as text. Candidate rotations are scored by the variance of the row
    profile of the rotated text mask; level text lines give the sharpest
    profile.

    Returns:
        Angle to pass to a rotation to straighten the image. 0.0 when the
        image has no text pixels.
    """
    _validate_image(img)
    gray = to_grayscale(img)

    longest = max(gray.shape)
    if longest > DESKEW_ANALYSIS_SIZE:
        factor = DESKEW_ANALYSIS_SIZE / longest
        gray = cv2.resize(
            gray,
            (max(1, int(gray.shape[1] * factor)), max(1, int(gray.shape[0] * factor))),
            interpolation=cv2.INTER_AREA,
        )

    mask = (gray < 255.0 * threshold_percent / 100.0).astype(np.uint8)
    if not mask.any():
        return 0.0

    best_angle = 0.0
    best_score = -1.0
    for angle in np.arange(-max_angle, max_angle + step / 2.0, step):
        rotated = _rotate(mask, float(angle), border=cv2.BORDER_CONSTANT)
        score = float(np.var(rotated.sum(axis=1, dtype=np.float64)))
        if score > best_score or (score == best_score and abs(angle) < abs(best_angle)):
            best_score = score
            best_angle = float(angle)
    return best_angle


def deskew(img: np.ndarray, threshold_percent: float) -> tuple[np.ndarray, float]:
    """Straighten a skewed page.

    Returns:
        Tuple of (deskewed image with the original size, applied angle).
    """
    angle = estimate_skew(img, threshold_percent)
    if angle == 0.0:
        return img.copy(), 0.0
    return _rotate(img, angle), angle


def trim_borders(img: np.ndarray, fuzz: int = 0) -> np.ndarray:
    """Crop to the bounding box of pixels that differ from the corner color.

    The top-left pixel is taken as the border color; rows and columns that
    match it (within ``fuzz`` intensity levels) on every edge are removed.
    A uniform image is returned unchanged.
    """
    _validate_image(img)

    signed = img.astype(np.int16)
    diff = np.abs(signed - signed[0, 0])
    if diff.ndim == 3:
        diff = diff.max(axis=2)
    content = diff > fuzz
    if not content.any():
        return img.copy()

    rows = np.flatnonzero(content.any(axis=1))
    cols = np.flatnonzero(content.any(axis=0))
    return img[rows[0]:rows[-1] + 1, cols[0]:cols[-1] + 1].copy()


def gaussian_blur(img: np.ndarray, sigma: float) -> np.ndarray:
    """Gaussian blur with the kernel size derived from ``sigma``."""
    _validate_image(img)
    if sigma <= 0:
        return img.copy()
    return cv2.GaussianBlur(img, (0, 0), sigmaX=float(sigma), borderType=cv2.BORDER_REPLICATE)


def divide_by_background(img: np.ndarray, background: np.ndarray) -> np.ndarray:
    """Divide an image by its background estimate, pixel-wise.

    Pixels equal to their background come out white; darker strokes keep
    their contrast relative to the local background.
    """
    _validate_image(img)
    if background.shape != img.shape:
        raise ValueError(
            f"Background shape {background.shape} does not match image shape {img.shape}"
        )
    numerator = img.astype(np.float32)
    denominator = np.maximum(background.astype(np.float32), 1.0)
    return _to_uint8_range(numerator / denominator * 255.0)


def auto_level(img: np.ndarray) -> np.ndarray:
    """Stretch the darkest pixel to 0 and the brightest to 255."""
    _validate_image(img)
    low, high = float(img.min()), float(img.max())
    if high <= low:
        return img.copy()
    return _to_uint8_range((img.astype(np.float32) - low) * (255.0 / (high - low)))


def _stretch_between(img: np.ndarray, low: float, high: float) -> np.ndarray:
    if high <= low:
        return img.copy()
    return _to_uint8_range((img.astype(np.float32) - low) * (255.0 / (high - low)))


def contrast_stretch(img: np.ndarray, args: StretchArgs) -> np.ndarray:
    """Clip the darkest/brightest fraction of pixels and stretch the rest."""
    _validate_image(img)
    black, white = args.fractions(img.size)
    low = float(np.percentile(img, black * 100.0))
    high = float(np.percentile(img, 100.0 - white * 100.0))
    return _stretch_between(img, low, high)


def normalize(img: np.ndarray) -> np.ndarray:
    """Contrast stretch clipping 2% of pixels to black and 1% to white."""
    black, white = NORMALIZE_PERCENTS
    return contrast_stretch(img, StretchArgs(black=black, white=white, percent=True))


def clahe(img: np.ndarray, args: ClaheArgs) -> np.ndarray:
    """Contrast Limited Adaptive Histogram Equalization."""
    _validate_image(img)
    source = to_uint8(img)
    grid = args.grid_for(source.shape)
    equalizer = cv2.createCLAHE(clipLimit=float(args.clip_limit), tileGridSize=grid)
    return _per_channel(source, equalizer.apply)


def unsharp_mask(img: np.ndarray, args: UnsharpArgs) -> np.ndarray:
    """Sharpen by adding back the difference from a Gaussian blur.

    Differences smaller than ``args.threshold`` (fraction of full
    intensity) are ignored, so flat paper texture is not amplified.
    """
    _validate_image(img)
    values = img.astype(np.float32)
    ksize = (0, 0)
    if args.radius > 0:
        side = int(2 * round(args.radius) + 1)
        ksize = (side, side)
    blurred = cv2.GaussianBlur(values, ksize, sigmaX=float(args.sigma))
    detail = values - blurred
    if args.threshold > 0:
        detail = np.where(np.abs(detail) >= args.threshold * 255.0, detail, 0.0)
    return _to_uint8_range(values + args.gain * detail)


def sharpen(img: np.ndarray, sigma: float) -> np.ndarray:
    """Plain sharpen: unsharp mask with unit gain and no threshold."""
    return unsharp_mask(img, UnsharpArgs(radius=0, sigma=sigma, gain=1.0, threshold=0.0))


def local_adaptive_threshold(img: np.ndarray, args: LatArgs) -> np.ndarray:
    """Binarize each pixel against the mean of its neighborhood.

    Pixels brighter than ``local mean + offset`` become 255, the rest 0.
    """
    _validate_image(img)
    offset = args.offset_value

    def threshold(channel: np.ndarray) -> np.ndarray:
        values = channel.astype(np.float32)
        local_mean = cv2.blur(values, (args.width, args.height), borderType=cv2.BORDER_REPLICATE)
        return np.where(values > local_mean + offset, 255, 0).astype(np.uint8)

    return _per_channel(img, threshold)


def negate(img: np.ndarray) -> np.ndarray:
    """Photometric negation."""
    _validate_image(img)
    return cv2.bitwise_not(to_uint8(img))


def tophat(img: np.ndarray, radius: int) -> np.ndarray:
    """White top-hat with a disk structuring element of ``radius``.

    Keeps bright structures narrower than the disk and removes the broader
    background they sit on.
    """
    _validate_image(img)
    if radius < 1:
        raise ValueError(f"Top-hat radius must be at least 1, got {radius}")
    kernel = cv2.getStructuringElement(cv2.MORPH_ELLIPSE, (2 * radius + 1, 2 * radius + 1))
    return _per_channel(
        to_uint8(img),
        lambda channel: cv2.morphologyEx(channel, cv2.MORPH_TOPHAT, kernel),
    )


def edge_detect(img: np.ndarray, args: CannyArgs) -> np.ndarray:
    """Canny edge map (0 or 255) of the grayscale image."""
    gray = to_grayscale(img)
    if args.sigma > 0:
        ksize = (0, 0)
        if args.radius > 0:
            side = int(2 * round(args.radius) + 1)
            ksize = (side, side)
        gray = cv2.GaussianBlur(gray, ksize, sigmaX=float(args.sigma))
    return cv2.Canny(gray, args.lower * 255.0, args.upper * 255.0)


def measure_stats(img: np.ndarray) -> ImageStats:
    """Histogram entropy, standard deviation and mean of an image."""
    _validate_image(img)
    pixels = to_uint8(img).ravel()
    histogram = np.bincount(pixels, minlength=256).astype(np.float64)
    probabilities = histogram[histogram > 0] / pixels.size
    entropy = float(-np.sum(probabilities * np.log2(probabilities)))
    return ImageStats(
        entropy=max(entropy, 0.0),
        stddev=float(pixels.std()),
        mean=float(pixels.mean()),
    )


def crop_grid(img: np.ndarray, tile_size: int) -> list[tuple[int, int, np.ndarray]]:
    """Split an image into tiles in row-major order.

    Edge tiles are smaller when the image size is not a multiple of
    ``tile_size``; tiles never overlap and are never padded.

    Returns:
        List of (x, y, tile) with (x, y) the tile's top-left corner.
    """
    _validate_image(img)
    if tile_size <= 0:
        raise ValueError(f"tile_size must be positive, got {tile_size}")
    height, width = img.shape[:2]
    return [
        (x, y, img[y:y + tile_size, x:x + tile_size].copy())
        for y in range(0, height, tile_size)
        for x in range(0, width, tile_size)
    ]


def force_8bit(img: np.ndarray, fmt: str) -> np.ndarray:
    """Normalize bit depth and color type for broad reader compatibility.

    Every format gets 8-bit samples. PNG output is additionally written as
    plain grayscale and JPEG output loses any alpha channel.
    """
    result = to_uint8(img)
    fmt = fmt.lower()
    if fmt == "png":
        return to_grayscale(result)
    if fmt in ("jpg", "jpeg") and result.ndim == 3 and result.shape[2] == 4:
        return np.ascontiguousarray(result[:, :, :3])
    return result
