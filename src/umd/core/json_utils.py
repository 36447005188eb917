"""JSON file persistence with consistent error handling.

Loading returns a result object instead of raising, so stores can log the
failure and fall back to empty state. Writing is atomic: data goes to a
temporary file in the same directory which then replaces the target.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JsonLoadResult(Generic[T]):
    """Result of loading a JSON file.

    Attributes:
        success: True if the file was read and parsed (or did not exist).
        value: The parsed value, or None when missing or failed.
        error: Error message if loading failed, None otherwise.
    """

    success: bool
    value: T | None
    error: str | None = None


def load_json_file(path: Path, *, context: str = "") -> JsonLoadResult[Any]:
    """Load and parse a JSON file.

    A missing file is not an error: it yields a successful result with a
    None value.

    Args:
        path: File to read.
        context: Context string for error messages (e.g., "scan cache").

    Returns:
        JsonLoadResult with the parsed value or error information.
    """
    context_prefix = f"{context}: " if context else ""
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return JsonLoadResult(success=True, value=None)
    except (OSError, UnicodeDecodeError) as e:
        return JsonLoadResult(
            success=False, value=None, error=f"{context_prefix}Cannot read {path}: {e}"
        )

    try:
        return JsonLoadResult(success=True, value=json.loads(raw))
    except json.JSONDecodeError as e:
        return JsonLoadResult(
            success=False,
            value=None,
            error=(
                f"{context_prefix}Invalid JSON in {path} at position {e.pos}: {e.msg}"
            ),
        )


def write_json_file(path: Path, data: Any) -> None:
    """Atomically write data to a JSON file.

    Creates the parent directory if needed.

    Args:
        path: Destination file.
        data: JSON-serializable data.

    Raises:
        OSError: If the file cannot be written.
        TypeError: If data is not JSON-serializable.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(data, indent=2)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except OSError:
            logger.debug("Could not remove temp file %s", tmp_name)
        raise
