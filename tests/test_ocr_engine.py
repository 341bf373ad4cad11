"""Tests for the OCR engine binding."""

import shutil
from unittest.mock import patch

import cv2
import numpy as np
import pytest
import pytesseract

from ocr import TesseractEngine, count_text_chars, get_ocr_engine
from preprocessing.errors import ConfigError, MissingDependencyError


class TestCountTextChars:
    def test_ignores_whitespace_and_form_feeds(self):
        assert count_text_chars(" a b\n\tc\r\f") == 3

    def test_empty(self):
        assert count_text_chars("") == 0

    def test_counts_non_latin_characters(self):
        assert count_text_chars("ภาษา ไทย") == 7


class TestTesseractEngine:
    def test_missing_binary_raises_missing_dependency(self):
        with patch(
            "pytesseract.get_tesseract_version",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            with pytest.raises(MissingDependencyError, match="tesseract"):
                TesseractEngine()

    def test_recognize_passes_language_and_psm(self):
        image = np.zeros((10, 10), dtype=np.uint8)
        with patch("pytesseract.get_tesseract_version", return_value="5.3.0"), \
                patch("pytesseract.image_to_string", return_value="text") as to_string:
            engine = TesseractEngine(timeout=2.5)
            assert engine.recognize(image, "eng+jpn", 6) == "text"

        args, kwargs = to_string.call_args
        assert args[0] is image
        assert kwargs == {"lang": "eng+jpn", "config": "--psm 6", "timeout": 2.5}


class TestGetOcrEngine:
    def test_unknown_engine_raises(self):
        with pytest.raises(ConfigError, match="Unknown OCR engine"):
            get_ocr_engine("paddle")

    def test_unknown_option_raises(self):
        with pytest.raises(ConfigError, match="Unknown options"):
            get_ocr_engine("tesseract", gpu=True)

    def test_default_engine_is_tesseract(self):
        with patch("pytesseract.get_tesseract_version", return_value="5.3.0"):
            engine = get_ocr_engine(timeout=1.0)
        assert isinstance(engine, TesseractEngine)
        assert engine.timeout == 1.0


@pytest.mark.slow
@pytest.mark.skipif(shutil.which("tesseract") is None, reason="tesseract not installed")
class TestRealTesseract:
    def test_reads_rendered_text(self):
        image = np.full((80, 400), 255, dtype=np.uint8)
        cv2.putText(image, "HELLO WORLD", (10, 55), cv2.FONT_HERSHEY_SIMPLEX, 1.5, 0, 3)
        text = get_ocr_engine().recognize(image, "eng", 7)
        assert count_text_chars(text) >= 5
