"""Output locations derived from the input file name."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from config import OUTPUT_SUFFIX


@dataclass(frozen=True)
class OutputPaths:
    """Where one run writes its results.

    Attributes:
        source: Input image.
        output_dir: Directory for outputs (and kept intermediates).
        final: Path of the single final output.
        tile_dir: Directory tiles are written to.
        fmt: Extension of written images.
    """

    source: Path
    output_dir: Path
    final: Path
    tile_dir: Path
    fmt: str

    @property
    def stem(self) -> str:
        return self.source.stem


def get_final_path(output_dir: Path, stem: str, fmt: str) -> Path:
    return output_dir / f"{stem}{OUTPUT_SUFFIX}.{fmt}"


def get_tile_dir(output_dir: Path, stem: str) -> Path:
    return output_dir / f"tiles_{stem}{OUTPUT_SUFFIX}"


def resolve_output_paths(
    source: str | Path,
    fmt: str,
    out: str | Path | None = None,
    outdir: str | Path | None = None,
) -> OutputPaths:
    """Derive output locations for ``source``.

    The output directory is ``outdir`` or the input's own directory. The
    final output is ``out`` when given, else ``{outdir}/{stem}_ocr.{fmt}``.
    Nothing is created on disk.
    """
    source = Path(source)
    fmt = fmt.lower()
    output_dir = Path(outdir) if outdir else source.resolve().parent
    final = Path(out) if out else get_final_path(output_dir, source.stem, fmt)
    return OutputPaths(
        source=source,
        output_dir=output_dir,
        final=final,
        tile_dir=get_tile_dir(output_dir, source.stem),
        fmt=fmt,
    )
