"""Exclusion rules: models, path matching and persistent storage."""

from umd.exclusions.exceptions import (
    ExclusionError,
    ExclusionRuleNotFoundError,
    InvalidExclusionRuleError,
)
from umd.exclusions.matcher import (
    DEFAULT_EXCLUDE_DIRS,
    CustomMatcher,
    ExclusionMatcher,
    glob_to_regex,
    matches_rule,
)
from umd.exclusions.models import (
    GLOBAL_SCOPE,
    ExclusionMatch,
    ExclusionRule,
    ExclusionType,
    MatchedRule,
    PathKind,
)
from umd.exclusions.service import ExclusionService

__all__ = [
    "DEFAULT_EXCLUDE_DIRS",
    "GLOBAL_SCOPE",
    "CustomMatcher",
    "ExclusionError",
    "ExclusionMatch",
    "ExclusionMatcher",
    "ExclusionRule",
    "ExclusionRuleNotFoundError",
    "ExclusionService",
    "ExclusionType",
    "InvalidExclusionRuleError",
    "MatchedRule",
    "PathKind",
    "glob_to_regex",
    "matches_rule",
]
