"""
OCR engine interface and the Tesseract implementation.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
import logging
from typing import Protocol

import numpy as np
import pytesseract

import config
from preprocessing.errors import ConfigError, MissingDependencyError

logger = logging.getLogger(__name__)


class OcrEngine(Protocol):
    """Interface for OCR engines."""

    def recognize(self, image: np.ndarray, lang: str, psm: int) -> str:
        """Return the text found in a grayscale or RGB image."""


@dataclass
class TesseractEngine:
    """OCR engine backed by the Tesseract binary (through pytesseract).

    Attributes:
        timeout: Seconds before a call is abandoned. 0 means no limit.
    """

    timeout: float = 0.0

    def __post_init__(self) -> None:
        try:
            version = pytesseract.get_tesseract_version()
        except pytesseract.TesseractNotFoundError as exc:
            raise MissingDependencyError(
                "tesseract binary not found; install Tesseract OCR or use another selection mode"
            ) from exc
        logger.debug("Using tesseract %s", version)

    def recognize(self, image: np.ndarray, lang: str, psm: int) -> str:
        return pytesseract.image_to_string(
            image,
            lang=lang,
            config=f"--psm {int(psm)}",
            timeout=self.timeout,
        )


def count_text_chars(text: str) -> int:
    """Number of characters in ``text`` that are not whitespace (or form feeds)."""
    return sum(1 for char in text if not char.isspace())


_ENGINES: dict[str, type] = {
    "tesseract": TesseractEngine,
}


def get_ocr_engine(engine_name: str | None = None, **kwargs) -> OcrEngine:
    """Instantiate an OCR engine by name.

    Args:
        engine_name: Engine name. Defaults to ``config.OCR_ENGINE``.
        **kwargs: Constructor overrides; must be fields of the engine class.

    Raises:
        ConfigError: If the engine name or an override is unknown.
        MissingDependencyError: If the engine is not installed on this machine.
    """
    name = engine_name if engine_name is not None else config.OCR_ENGINE
    engine_cls = _ENGINES.get(name)
    if engine_cls is None:
        raise ConfigError(f"Unknown OCR engine: {name!r}")
    valid_fields = {f.name for f in dataclasses.fields(engine_cls)}
    unknown = set(kwargs) - valid_fields
    if unknown:
        raise ConfigError(f"Unknown options for OCR engine {name!r}: {sorted(unknown)}")
    return engine_cls(**kwargs)
