"""Staging and cleanup of hard-mode intermediate images."""

from __future__ import annotations

import logging
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np

from preprocessing.io import load_image, write_image
from .types import VARIANT_SUFFIXES, VariantTag

logger = logging.getLogger(__name__)

# Intermediate stage outputs, in the order they are produced
INTERMEDIATE_STAGES = ("base", "crop", "bgfix", "clahe", "enh")


@dataclass
class ArtifactStore:
    """Scoped storage for every intermediate image of one hard-mode run.

    Use as a context manager. Without ``keep`` the artifacts are staged in a
    private temporary directory that is removed when the block exits, on
    success and on failure alike. With ``keep`` they are written next to the
    final output and left in place.

    Attributes:
        output_dir: Directory of the final output.
        stem: Input file name without extension, used to name artifacts.
        fmt: Extension for variant files.
        keep: Keep artifacts after the run.
        force_8bit: Normalize variants to 8-bit when writing them.
    """

    output_dir: Path
    stem: str
    fmt: str = "png"
    keep: bool = False
    force_8bit: bool = True
    staging_dir: Path | None = field(default=None, init=False)
    _paths: dict[str, Path] = field(default_factory=dict, init=False, repr=False)

    def __enter__(self) -> "ArtifactStore":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cleanup()

    def open(self) -> Path:
        """Create the staging directory."""
        if self.keep:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.staging_dir = self.output_dir
        else:
            self.staging_dir = Path(tempfile.mkdtemp(prefix=f"ocrprep-{self.stem}-"))
        logger.debug("Staging artifacts in %s", self.staging_dir)
        return self.staging_dir

    def _require_open(self) -> Path:
        if self.staging_dir is None:
            raise RuntimeError("ArtifactStore is not open")
        return self.staging_dir

    def intermediate_path(self, stage: str) -> Path:
        if stage not in INTERMEDIATE_STAGES:
            raise ValueError(f"Unknown intermediate stage: {stage!r}")
        return self._require_open() / f"{self.stem}__hard_{stage}.png"

    def variant_path(self, tag: VariantTag) -> Path:
        return self._require_open() / f"{self.stem}_{VARIANT_SUFFIXES[tag]}.{self.fmt}"

    def stage_intermediate(self, stage: str, img: np.ndarray) -> np.ndarray:
        """Write a stage output as 8-bit grayscale PNG and return it as written."""
        path = self.intermediate_path(stage)
        written = write_image(img, path, force_8bit_output=True)
        self._paths[stage] = path
        return written

    def stage_variant(self, tag: VariantTag, img: np.ndarray) -> tuple[np.ndarray, Path]:
        """Write a variant and return (image as read back from disk, path).

        Lossy formats change pixels on encode; reading the file back keeps
        scoring and derived variants on exactly what gets published.
        """
        path = self.variant_path(tag)
        write_image(img, path, force_8bit_output=self.force_8bit)
        self._paths[tag] = path
        return load_image(path), path

    @property
    def artifacts(self) -> dict[str, Path]:
        """Staged files by stage name or variant tag."""
        return dict(self._paths)

    def _is_staged(self, path: Path) -> bool:
        if self.staging_dir is None:
            return False
        try:
            path.resolve().relative_to(self.staging_dir.resolve())
            return True
        except ValueError:
            return False

    def cleanup(self) -> dict:
        """Delete staged artifacts unless they are to be kept.

        Only files this store wrote are removed; the final output and tiles
        are never touched.

        Returns:
            Counts of deleted, missing and skipped files.
        """
        counts = {"deleted": 0, "missing": 0, "skipped": 0}
        if self.staging_dir is None:
            return counts
        if self.keep:
            logger.info("Kept %d intermediate files in %s", len(self._paths), self.staging_dir)
            return counts

        for path in self._paths.values():
            if not self._is_staged(path):
                logger.warning("Skip non-staged path: %s", path)
                counts["skipped"] += 1
                continue
            if not path.exists():
                counts["missing"] += 1
                continue
            path.unlink()
            counts["deleted"] += 1

        shutil.rmtree(self.staging_dir, ignore_errors=True)
        logger.debug("Removed staging directory %s (%s)", self.staging_dir, counts)
        self.staging_dir = None
        self._paths.clear()
        return counts
