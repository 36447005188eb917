"""Exclusion rule data model.

Rules are immutable values: an update replaces the rule with a modified
copy. Serialized field names use camelCase to match the persisted
``exclusions.json`` layout consumed by the web UI.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from umd.core.datetime_utils import parse_iso_timestamp, utc_now
from umd.exclusions.exceptions import InvalidExclusionRuleError

GLOBAL_SCOPE = "global"


class ExclusionType(Enum):
    """How a rule's pattern is interpreted."""

    FILE = "file"
    """Case-insensitive exact path equality."""

    DIRECTORY = "directory"
    """Case-insensitive path prefix on segment boundaries."""

    PATTERN = "pattern"
    """Glob pattern matched against the full path."""


class PathKind(Enum):
    """Kind of filesystem entry being checked against the rules."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True)
class ExclusionRule:
    """A user-defined exclusion rule."""

    id: str
    pattern: str
    type: ExclusionType
    scope: str = GLOBAL_SCOPE
    created_at: datetime = field(default_factory=utc_now)

    @property
    def is_global(self) -> bool:
        return self.scope == GLOBAL_SCOPE

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "type": self.type.value,
            "scope": self.scope,
            "createdAt": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExclusionRule:
        """Build a rule from its serialized form.

        Raises:
            InvalidExclusionRuleError: If id, pattern or type is missing or
                invalid.
        """
        if not isinstance(data, dict):
            raise InvalidExclusionRuleError("Exclusion rule must be an object")
        rule_id = data.get("id")
        pattern = data.get("pattern")
        if not rule_id or not isinstance(rule_id, str):
            raise InvalidExclusionRuleError("Exclusion rule requires an id")
        if not pattern or not isinstance(pattern, str):
            raise InvalidExclusionRuleError("Exclusion rule requires a pattern")
        rule_type = parse_exclusion_type(data.get("type"))

        created_raw = data.get("createdAt")
        try:
            created_at = parse_iso_timestamp(created_raw) if created_raw else utc_now()
        except (TypeError, ValueError):
            created_at = utc_now()

        return cls(
            id=rule_id,
            pattern=pattern,
            type=rule_type,
            scope=data.get("scope") or GLOBAL_SCOPE,
            created_at=created_at,
        )


def parse_exclusion_type(value: Any) -> ExclusionType:
    """Convert a raw type string to ExclusionType.

    Raises:
        InvalidExclusionRuleError: If value is not a known type.
    """
    try:
        return ExclusionType(value)
    except ValueError as e:
        valid = ", ".join(t.value for t in ExclusionType)
        raise InvalidExclusionRuleError(
            f"Invalid exclusion type {value!r} (expected one of: {valid})"
        ) from e


@dataclass(frozen=True)
class MatchedRule:
    """Description of the rule that excluded a path."""

    source: str
    """'default' for built-in rules, 'custom' for user rules."""

    type: str
    pattern: str
    scope: str | None = None
    id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "source": self.source,
            "type": self.type,
            "pattern": self.pattern,
        }
        if self.scope is not None:
            data["scope"] = self.scope
        if self.id is not None:
            data["id"] = self.id
        return data


@dataclass(frozen=True)
class ExclusionMatch:
    """A matched rule paired with a human-readable reason."""

    rule: MatchedRule
    reason: str

    def to_dict(self) -> dict[str, Any]:
        return {"rule": self.rule.to_dict(), "reason": self.reason}

    @classmethod
    def for_custom_rule(cls, rule: ExclusionRule) -> ExclusionMatch:
        scope_suffix = "" if rule.is_global else f" (scope: {rule.scope})"
        return cls(
            rule=MatchedRule(
                source="custom",
                type=rule.type.value,
                pattern=rule.pattern,
                scope=rule.scope,
                id=rule.id,
            ),
            reason=(
                f"Matched custom {rule.type.value} rule: {rule.pattern}{scope_suffix}"
            ),
        )
