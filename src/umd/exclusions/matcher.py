"""Path matching against exclusion rules.

Three pattern semantics are supported, all case-insensitive and applied to
``/``-separated paths:

- file: exact equality.
- directory: the path equals the pattern or lies underneath it.
- pattern: glob compiled to an anchored regular expression, where ``*``
  stays within one segment, ``**/`` matches zero or more leading segments,
  any other ``**`` matches the rest of the path and ``?`` matches one
  non-separator character. Every other character, brackets included, is
  literal.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable, Iterable, Sequence
from functools import lru_cache

from umd.core.paths import normalize_separators
from umd.exclusions.models import (
    ExclusionMatch,
    ExclusionRule,
    ExclusionType,
    MatchedRule,
    PathKind,
)

DEFAULT_EXCLUDE_DIRS: tuple[str, ...] = (
    "node_modules",
    ".git",
    ".svn",
    "__pycache__",
    ".venv",
    "venv",
    ".idea",
    ".vscode",
    "$RECYCLE.BIN",
    "$Recycle.Bin",
    "System Volume Information",
)

# Windows chkdsk recovery directories: FOUND.000, found.001, ...
RECOVERY_DIR_PATTERN = re.compile(r"^found\.\d+$", re.IGNORECASE)

CustomMatcher = Callable[[str, PathKind], "ExclusionMatch | None"]
"""Callback consulted before the built-in and user rules."""


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> re.Pattern[str]:
    """Compile a glob pattern to an anchored, case-insensitive regex.

    Args:
        pattern: Glob pattern; backslashes are treated as separators.

    Returns:
        Compiled regular expression.
    """
    glob = normalize_separators(pattern)
    parts: list[str] = []
    i = 0
    length = len(glob)
    while i < length:
        if glob.startswith("**/", i):
            parts.append("(?:.*/)?")
            i += 3
        elif glob.startswith("**", i):
            parts.append(".*")
            i += 2
        elif glob[i] == "*":
            parts.append("[^/]*")
            i += 1
        elif glob[i] == "?":
            parts.append("[^/]")
            i += 1
        else:
            parts.append(re.escape(glob[i]))
            i += 1
    return re.compile("^" + "".join(parts) + "$", re.IGNORECASE)


def _normalize_pattern(pattern: str) -> str:
    normalized = normalize_separators(pattern)
    if len(normalized) > 1:
        normalized = normalized.rstrip("/")
    return normalized


def matches_rule(path: str, rule_type: ExclusionType, pattern: str) -> bool:
    """Check a single path against one rule.

    Args:
        path: Path to test (any separator style).
        rule_type: How to interpret the pattern.
        pattern: The rule's pattern.

    Returns:
        True if the path is matched by the rule.
    """
    normalized_path = normalize_separators(path)

    if rule_type is ExclusionType.FILE:
        return normalized_path.casefold() == _normalize_pattern(pattern).casefold()

    if rule_type is ExclusionType.DIRECTORY:
        lower_path = normalized_path.casefold()
        lower_pattern = _normalize_pattern(pattern).casefold()
        if lower_path == lower_pattern:
            return True
        return lower_path.startswith(lower_pattern.rstrip("/") + "/")

    return glob_to_regex(pattern).match(normalized_path) is not None


def match_rules(path: str, rules: Iterable[ExclusionRule]) -> ExclusionRule | None:
    """Return the first rule (in order) that matches path, if any."""
    for rule in rules:
        if matches_rule(path, rule.type, rule.pattern):
            return rule
    return None


class ExclusionMatcher:
    """Evaluates paths against built-in, callback and user rules.

    Evaluation order, first match wins:

    1. the custom callback, when supplied;
    2. for directories, the built-in directory names and the ``found.NNN``
       recovery directory pattern;
    3. user rules in insertion order.
    """

    def __init__(
        self,
        *,
        exclude_dirs: Iterable[str] | None = None,
        rules: Sequence[ExclusionRule] = (),
        custom: CustomMatcher | None = None,
    ) -> None:
        """Create a matcher.

        Args:
            exclude_dirs: Directory names skipped wherever they appear.
                Defaults to DEFAULT_EXCLUDE_DIRS.
            rules: User rules already narrowed to the relevant scope.
            custom: Optional callback consulted before everything else.
        """
        dirs = DEFAULT_EXCLUDE_DIRS if exclude_dirs is None else exclude_dirs
        self._exclude_dirs = frozenset(dirs)
        self._rules = tuple(rules)
        self._custom = custom

    @property
    def rules(self) -> tuple[ExclusionRule, ...]:
        return self._rules

    def match(self, path: str, kind: PathKind) -> ExclusionMatch | None:
        """Find the rule that excludes path.

        Args:
            path: Absolute path of the entry.
            kind: Whether the entry is a file or a directory.

        Returns:
            The first match, or None if the path is not excluded.
        """
        if self._custom is not None:
            custom_match = self._custom(path, kind)
            if custom_match is not None:
                return custom_match

        if kind is PathKind.DIRECTORY:
            default_match = self._match_default_dir(path)
            if default_match is not None:
                return default_match

        rule = match_rules(path, self._rules)
        if rule is not None:
            return ExclusionMatch.for_custom_rule(rule)
        return None

    def _match_default_dir(self, path: str) -> ExclusionMatch | None:
        name = os.path.basename(normalize_separators(path).rstrip("/"))
        if name in self._exclude_dirs:
            return ExclusionMatch(
                rule=MatchedRule(
                    source="default", type=ExclusionType.DIRECTORY.value, pattern=name
                ),
                reason=f"Default excluded directory: {name}",
            )
        if RECOVERY_DIR_PATTERN.match(name):
            return ExclusionMatch(
                rule=MatchedRule(
                    source="default",
                    type=ExclusionType.PATTERN.value,
                    pattern=RECOVERY_DIR_PATTERN.pattern,
                ),
                reason=f"Default excluded recovery directory: {name}",
            )
        return None
