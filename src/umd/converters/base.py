"""Conversion strategy contract."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable


def sidecar_path(path: Path) -> Path:
    """Return the markdown sidecar location for a source file."""
    return path.with_name(path.name + ".md")


@runtime_checkable
class ConversionStrategy(Protocol):
    """Format-specific extractor.

    Implementations write the ``<file>.md`` sidecar next to the source file
    as a side effect and raise ConversionError on failure.
    """

    def extract_text(self, path: Path) -> None:
        """Convert path to markdown and write its sidecar file."""
        ...
