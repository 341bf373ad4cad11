"""
OCR engine interface and local implementations.

The preprocessing core only needs "image in, text out". Engines implement
the OcrEngine protocol and are looked up by name, so another engine can be
added without touching the selection code.
"""

from .engine import OcrEngine, TesseractEngine, get_ocr_engine, count_text_chars

__all__ = [
    "OcrEngine",
    "TesseractEngine",
    "get_ocr_engine",
    "count_text_chars",
]
