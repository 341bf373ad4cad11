#!/usr/bin/env python3
"""
OCR preprocessing for scanned and photographed historical documents.

Usage:
    ocrprep in.jpg                              # clahe preset -> in_ocr.png
    ocrprep -p bgfix -w 2000 in.jpg             # flatten uneven lighting
    ocrprep -p bw -A 35x35+10% -d -t in.jpg     # binarize, deskew, trim
    ocrprep -p hard in.jpg                      # pick the best of several variants
    ocrprep -p hard -w 2000 -T 1024 --select stats2 in.jpg
    ocrprep -p hard --select tesseract --tess-lang eng+jpn --tess-psm 6 in.jpg

Presets:
    clahe : CLAHE + unsharp + contrast stretch
    bgfix : divide by blurred background + auto-level + unsharp
    bw    : CLAHE + unsharp + local adaptive threshold
    hard  : background divide + CLAHE + sharpen, then threshold/top-hat
            variants; the best one becomes the single *_ocr output
"""

import argparse
import logging
import sys

from logging_utils import configure_logging, add_logging_args
from cli.preprocess import add_preprocess_arguments

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ocrprep",
        description="Enhance document images so OCR engines extract more text",
    )
    add_logging_args(parser)
    add_preprocess_arguments(parser)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.verbose, args.quiet)

    cmd = getattr(args, "_cmd", None)
    if cmd is None:
        parser.print_help()
        return 1
    return cmd(args)


if __name__ == "__main__":
    sys.exit(main())
