"""
Exceptions raised by the preprocessing and selection pipelines.

Configuration and I/O problems are fatal and surface to the caller.
Per-variant problems are recovered where they happen and never abort a run.
"""


class PreprocessError(Exception):
    """Base class for all preprocessing errors."""


class ConfigError(PreprocessError, ValueError):
    """Unknown option value or malformed filter argument."""


class ImageIOError(PreprocessError, OSError):
    """Source image unreadable, or output location not writable."""


class MissingDependencyError(PreprocessError):
    """An optional external collaborator (e.g. the OCR engine) is unavailable."""


class VariantGenerationError(PreprocessError):
    """A single hard-mode variant could not be produced.

    Attributes:
        tag: Tag of the variant that failed.
    """

    def __init__(self, tag: str, message: str):
        super().__init__(f"{tag}: {message}")
        self.tag = tag


class EmptySelectionError(PreprocessError):
    """No candidate variant exists to select from."""
