"""
Parsers for ImageMagick-style filter arguments.

The command line (and config.py) describe filter parameters in the compact
geometry notation ImageMagick uses, e.g. ``25x25+128+3`` for CLAHE or
``25x25-5%`` for a local adaptive threshold. Each parser turns one such
string into a small frozen dataclass and raises ConfigError when the string
is malformed, so bad parameters are rejected before any image is touched.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

from .errors import ConfigError

_NUM = r"(?:\d+(?:\.\d*)?|\.\d+)"
_SIGNED = r"[+-]" + _NUM

_CLAHE_RE = re.compile(
    rf"^(?P<w>{_NUM})x(?P<h>{_NUM})(?P<pct>%?)"
    rf"(?:\+(?P<bins>\d+))?(?:\+(?P<clip>{_NUM}))?$"
)
_UNSHARP_RE = re.compile(
    rf"^(?P<radius>{_NUM})x(?P<sigma>{_NUM})"
    rf"(?:\+(?P<gain>{_NUM}))?(?:\+(?P<threshold>{_NUM}))?$"
)
_STRETCH_RE = re.compile(rf"^(?P<black>{_NUM})(?:x(?P<white>{_NUM}))?$")
_LAT_RE = re.compile(
    rf"^(?P<w>\d+)x(?P<h>\d+)(?:(?P<offset>{_SIGNED})(?P<pct>%?))?$"
)
_CANNY_RE = re.compile(
    rf"^(?P<radius>{_NUM})x(?P<sigma>{_NUM})"
    rf"(?:\+(?P<lower>{_NUM})%?)?(?:\+(?P<upper>{_NUM})%?)?$"
)


@dataclass(frozen=True)
class ClaheArgs:
    """CLAHE parameters.

    Attributes:
        tile_width: Tile width in pixels, or percent of image width.
        tile_height: Tile height in pixels, or percent of image height.
        percent: Whether tile sizes are percentages.
        bins: Histogram bins. OpenCV always uses 256 for 8-bit images, so
              this is carried for round-tripping only.
        clip_limit: Contrast limit.
    """

    tile_width: float
    tile_height: float
    percent: bool = False
    bins: int = 128
    clip_limit: float = 3.0

    def grid_for(self, shape: tuple[int, ...]) -> tuple[int, int]:
        """Return the OpenCV tile grid (columns, rows) for an image shape."""
        height, width = shape[:2]
        if self.percent:
            tile_w = width * self.tile_width / 100.0
            tile_h = height * self.tile_height / 100.0
        else:
            tile_w, tile_h = self.tile_width, self.tile_height
        cols = max(1, round(width / tile_w)) if tile_w > 0 else 8
        rows = max(1, round(height / tile_h)) if tile_h > 0 else 8
        return int(cols), int(rows)


@dataclass(frozen=True)
class UnsharpArgs:
    """Unsharp mask parameters (radius x sigma + gain + threshold).

    ``threshold`` is a fraction of full intensity below which differences
    are left alone.
    """

    radius: float
    sigma: float
    gain: float = 1.0
    threshold: float = 0.05


@dataclass(frozen=True)
class StretchArgs:
    """Contrast stretch black/white points.

    When ``percent`` is False the points are pixel counts.
    """

    black: float
    white: float
    percent: bool = True

    def fractions(self, pixel_count: int) -> tuple[float, float]:
        """Return (black, white) as fractions of ``pixel_count``."""
        if self.percent:
            return self.black / 100.0, self.white / 100.0
        if pixel_count <= 0:
            return 0.0, 0.0
        return self.black / pixel_count, self.white / pixel_count


@dataclass(frozen=True)
class LatArgs:
    """Local adaptive threshold window and offset.

    A pixel becomes white when it is brighter than the mean of its
    ``width`` x ``height`` neighborhood plus ``offset``.
    """

    width: int
    height: int
    offset: float = 0.0
    percent: bool = False

    @property
    def offset_value(self) -> float:
        """Offset in 8-bit intensity units."""
        if self.percent:
            return self.offset * 255.0 / 100.0
        return self.offset


@dataclass(frozen=True)
class CannyArgs:
    """Canny edge detector parameters.

    ``lower`` and ``upper`` are fractions (0-1) of full intensity.
    """

    radius: float
    sigma: float
    lower: float = 0.10
    upper: float = 0.30


def _finite(value: str, what: str, text: str) -> float:
    number = float(value)
    if not math.isfinite(number):
        raise ConfigError(f"Invalid {what} in {text!r}")
    return number


def parse_clahe_args(text: str) -> ClaheArgs:
    """Parse ``WxH{%}{+bins}{+clip}``, e.g. ``25x25+128+3``."""
    match = _CLAHE_RE.match(str(text).strip())
    if not match:
        raise ConfigError(f"Malformed CLAHE argument: {text!r} (expected WxH+bins+clip)")
    tile_w = _finite(match["w"], "tile width", text)
    tile_h = _finite(match["h"], "tile height", text)
    if tile_w <= 0 or tile_h <= 0:
        raise ConfigError(f"CLAHE tile size must be positive, got {text!r}")
    bins = int(match["bins"]) if match["bins"] else ClaheArgs.bins
    if bins < 2:
        raise ConfigError(f"CLAHE needs at least 2 bins, got {bins}")
    clip = _finite(match["clip"], "clip limit", text) if match["clip"] else ClaheArgs.clip_limit
    return ClaheArgs(
        tile_width=tile_w,
        tile_height=tile_h,
        percent=bool(match["pct"]),
        bins=bins,
        clip_limit=clip,
    )


def parse_unsharp_args(text: str) -> UnsharpArgs:
    """Parse ``RxS{+gain}{+threshold}``, e.g. ``0x1.2+1.0+0.02``."""
    match = _UNSHARP_RE.match(str(text).strip())
    if not match:
        raise ConfigError(
            f"Malformed unsharp argument: {text!r} (expected RxS+gain+threshold)"
        )
    args = UnsharpArgs(
        radius=_finite(match["radius"], "radius", text),
        sigma=_finite(match["sigma"], "sigma", text),
        gain=_finite(match["gain"], "gain", text) if match["gain"] else UnsharpArgs.gain,
        threshold=(
            _finite(match["threshold"], "threshold", text)
            if match["threshold"]
            else UnsharpArgs.threshold
        ),
    )
    if args.sigma <= 0:
        raise ConfigError(f"Unsharp sigma must be positive, got {text!r}")
    if args.threshold > 1.0:
        raise ConfigError(f"Unsharp threshold is a fraction (0-1), got {text!r}")
    return args


def parse_stretch_args(text: str) -> StretchArgs:
    """Parse ``B{%}{xW{%}}``, e.g. ``0.2%x0.2%``.

    A single value applies to both ends. A ``%`` anywhere makes both
    values percentages; otherwise they are pixel counts.
    """
    raw = str(text).strip()
    percent = "%" in raw
    match = _STRETCH_RE.match(raw.replace("%", ""))
    if not match:
        raise ConfigError(f"Malformed contrast-stretch argument: {text!r} (expected B%xW%)")
    black = _finite(match["black"], "black point", text)
    white = _finite(match["white"], "white point", text) if match["white"] else black
    if percent and black + white >= 100.0:
        raise ConfigError(f"Contrast-stretch points clip the whole image: {text!r}")
    return StretchArgs(black=black, white=white, percent=percent)


def parse_lat_args(text: str) -> LatArgs:
    """Parse ``WxH{+-offset}{%}``, e.g. ``25x25-5%``."""
    match = _LAT_RE.match(str(text).strip())
    if not match:
        raise ConfigError(
            f"Malformed local threshold argument: {text!r} (expected WxH+offset%)"
        )
    width, height = int(match["w"]), int(match["h"])
    if width <= 0 or height <= 0:
        raise ConfigError(f"Local threshold window must be positive, got {text!r}")
    offset = _finite(match["offset"], "offset", text) if match["offset"] else 0.0
    return LatArgs(width=width, height=height, offset=offset, percent=bool(match["pct"]))


def parse_canny_args(text: str) -> CannyArgs:
    """Parse ``RxS{+lower%}{+upper%}``, e.g. ``0x1+10%+30%``."""
    match = _CANNY_RE.match(str(text).strip())
    if not match:
        raise ConfigError(
            f"Malformed canny argument: {text!r} (expected RxS+lower%+upper%)"
        )
    lower = _finite(match["lower"], "lower threshold", text) if match["lower"] else 10.0
    upper = _finite(match["upper"], "upper threshold", text) if match["upper"] else 30.0
    if not (0.0 <= lower <= upper <= 100.0):
        raise ConfigError(
            f"Canny thresholds must satisfy 0 <= lower <= upper <= 100, got {text!r}"
        )
    return CannyArgs(
        radius=_finite(match["radius"], "radius", text),
        sigma=_finite(match["sigma"], "sigma", text),
        lower=lower / 100.0,
        upper=upper / 100.0,
    )
