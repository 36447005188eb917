"""Conversion strategy backed by MarkItDown."""

from __future__ import annotations

import logging
from functools import cached_property
from pathlib import Path

from markitdown import MarkItDown

from umd.converters.base import sidecar_path
from umd.converters.exceptions import ConversionError

logger = logging.getLogger(__name__)


class MarkItDownStrategy:
    """Extracts markdown from documents and images with MarkItDown."""

    def __init__(self, *, enable_plugins: bool = False) -> None:
        self._enable_plugins = enable_plugins

    @cached_property
    def _md(self) -> MarkItDown:
        return MarkItDown(enable_plugins=self._enable_plugins)

    def extract_text(self, path: Path) -> None:
        """Convert path and write the sidecar file.

        Raises:
            ConversionError: If MarkItDown fails or extracts no text.
        """
        try:
            result = self._md.convert(str(path))
        except Exception as e:
            # MarkItDown surfaces parser failures as assorted exception types
            raise ConversionError(f"Failed to convert {path}: {e}") from e

        text = (result.text_content or "").strip()
        if not text:
            raise ConversionError(f"No text could be extracted from {path}")

        output = sidecar_path(path)
        try:
            output.write_text(text + "\n", encoding="utf-8")
        except OSError as e:
            raise ConversionError(f"Cannot write {output}: {e}") from e
        logger.info("Wrote %s (%d characters)", output, len(text))
