"""Path normalization helpers.

Cache keys, exclusion patterns and containment checks all compare paths in
a single canonical form: absolute, normalized, with ``/`` separators.
"""

from __future__ import annotations

import os
from collections.abc import Iterable

_QUOTE_CHARS = ("'", '"')


def normalize_input_path(value: str) -> str:
    """Clean up a path typed or pasted by a user.

    Trims surrounding whitespace and repeatedly unwraps matching single or
    double quotes around the whole string (as produced by "Copy as path"
    in file managers).

    Args:
        value: Raw user input.

    Returns:
        The cleaned path string (may be empty).
    """
    normalized = value.strip()
    while (
        len(normalized) >= 2
        and normalized[0] == normalized[-1]
        and normalized[0] in _QUOTE_CHARS
    ):
        normalized = normalized[1:-1].strip()
    return normalized


def normalize_separators(path: str) -> str:
    """Replace backslashes with forward slashes."""
    return path.replace("\\", "/")


def normalize_root_key(path: str) -> str:
    """Return the canonical form of a path for use as a lookup key.

    Equivalent spellings (trailing slash, ``..`` segments, backslashes)
    collapse to the same absolute ``/``-separated string.
    """
    absolute = os.path.abspath(normalize_separators(path))
    return normalize_separators(os.path.normpath(absolute))


def is_within_root(file_path: str, root: str) -> bool:
    """Check whether ``file_path`` equals ``root`` or lies underneath it.

    Both arguments are canonicalized first. The comparison is separator
    aware, so ``/data`` does not contain ``/database/file.pdf``.
    """
    file_key = normalize_root_key(file_path)
    root_key = normalize_root_key(root)
    if file_key == root_key:
        return True
    return file_key.startswith(root_key.rstrip("/") + "/")


def common_parent(paths: Iterable[str]) -> str | None:
    """Return the deepest directory containing every given file path.

    Returns None for an empty input. Paths on different drives fall back
    to the parent of the first path.
    """
    parents = [os.path.dirname(os.path.abspath(p)) for p in paths]
    if not parents:
        return None
    try:
        return os.path.commonpath(parents)
    except ValueError:
        return parents[0]
