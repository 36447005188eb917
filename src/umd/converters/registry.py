"""Strategy table keyed by file type.

The strategy for a file is resolved once, from its extension, when the
file is dispatched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from umd.converters.base import ConversionStrategy, sidecar_path
from umd.converters.exceptions import UnsupportedFileTypeError
from umd.converters.markitdown_strategy import MarkItDownStrategy
from umd.core.file_types import FileType, get_file_type

logger = logging.getLogger(__name__)

StrategyFactory = Callable[[], ConversionStrategy]

STRATEGIES: dict[FileType, StrategyFactory] = {
    FileType.IMAGE: MarkItDownStrategy,
    FileType.PDF: MarkItDownStrategy,
    FileType.DOCX: MarkItDownStrategy,
    FileType.PPTX: MarkItDownStrategy,
}


def get_strategy(
    path: Path, strategies: dict[FileType, StrategyFactory] | None = None
) -> ConversionStrategy:
    """Resolve the strategy for a file.

    Raises:
        UnsupportedFileTypeError: If the extension has no strategy.
    """
    table = STRATEGIES if strategies is None else strategies
    file_type = get_file_type(path.suffix)
    if file_type is None or file_type not in table:
        raise UnsupportedFileTypeError(str(path))
    return table[file_type]()


def convert_file(
    path: Path, strategies: dict[FileType, StrategyFactory] | None = None
) -> Path:
    """Convert one file in-process and return the sidecar path.

    Raises:
        FileNotFoundError: If path is not an existing file.
        ConversionError: If the strategy fails.
    """
    if not path.is_file():
        raise FileNotFoundError(f"File not found: {path}")
    strategy = get_strategy(path, strategies)
    logger.debug("Converting %s with %s", path, type(strategy).__name__)
    strategy.extract_text(path)
    return sidecar_path(path)
