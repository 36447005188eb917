"""Persistent exclusion rule store.

Rules live in ``exclusions.json`` under the data directory and are
rewritten after every mutation. The in-memory rule list is copy-on-write:
mutations build a new tuple under a lock and swap it in, so readers (scan
threads, request handlers) never lock and never observe a half-applied
change.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import uuid
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from umd.core.json_utils import load_json_file, write_json_file
from umd.core.paths import normalize_root_key
from umd.exclusions.exceptions import (
    ExclusionRuleNotFoundError,
    InvalidExclusionRuleError,
)
from umd.exclusions.matcher import match_rules
from umd.exclusions.models import (
    GLOBAL_SCOPE,
    ExclusionMatch,
    ExclusionRule,
    ExclusionType,
    parse_exclusion_type,
)

logger = logging.getLogger(__name__)


def _validate(pattern: str) -> str:
    pattern = pattern.strip() if isinstance(pattern, str) else ""
    if not pattern:
        raise InvalidExclusionRuleError("Exclusion rule requires a pattern")
    return pattern


def _normalize_scope(scope: str | None) -> str:
    if not scope or scope == GLOBAL_SCOPE:
        return GLOBAL_SCOPE
    return normalize_root_key(scope)


class ExclusionService:
    """CRUD and matching over the user's exclusion rules."""

    def __init__(self, path: Path) -> None:
        """Load rules from path.

        A missing file starts an empty rule set. An unreadable or corrupt
        file is logged and also starts empty.

        Args:
            path: Location of exclusions.json.
        """
        self._path = path
        self._write_lock = threading.Lock()
        self._rules: tuple[ExclusionRule, ...] = self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> tuple[ExclusionRule, ...]:
        result = load_json_file(self._path, context="exclusions")
        if not result.success:
            logger.error("Failed to load exclusion rules: %s", result.error)
            return ()
        if result.value is None:
            return ()
        if not isinstance(result.value, list):
            logger.error(
                "Failed to load exclusion rules: %s does not hold a list", self._path
            )
            return ()

        rules: list[ExclusionRule] = []
        for entry in result.value:
            try:
                rules.append(ExclusionRule.from_dict(entry))
            except InvalidExclusionRuleError as e:
                logger.warning("Skipping invalid exclusion rule in %s: %s", self._path, e)
        logger.debug("Loaded %d exclusion rules from %s", len(rules), self._path)
        return tuple(rules)

    def _commit(self, rules: tuple[ExclusionRule, ...]) -> None:
        """Swap in a new rule tuple and persist it. Caller holds the lock."""
        self._rules = rules
        try:
            write_json_file(self._path, [rule.to_dict() for rule in rules])
        except OSError as e:
            logger.error("Failed to save exclusion rules to %s: %s", self._path, e)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_all_rules(self) -> list[ExclusionRule]:
        return list(self._rules)

    def get_rules_for_scope(self, scope: str | None) -> list[ExclusionRule]:
        """Return global rules plus rules scoped to the given root.

        Insertion order is preserved. A scope of None or "global" selects
        only global rules.
        """
        target = _normalize_scope(scope)
        return [
            rule
            for rule in self._rules
            if rule.is_global or (target != GLOBAL_SCOPE and rule.scope == target)
        ]

    def get_rule(self, rule_id: str) -> ExclusionRule | None:
        for rule in self._rules:
            if rule.id == rule_id:
                return rule
        return None

    def get_matching_rule(
        self, path: str, scope: str | None = None
    ) -> ExclusionRule | None:
        """Return the first rule in the scope chain that matches path."""
        return match_rules(path, self.get_rules_for_scope(scope))

    def get_match(self, path: str, scope: str | None = None) -> ExclusionMatch | None:
        """Like get_matching_rule, wrapped with a human-readable reason."""
        rule = self.get_matching_rule(path, scope)
        if rule is None:
            return None
        return ExclusionMatch.for_custom_rule(rule)

    def is_excluded(self, path: str, scope: str | None = None) -> bool:
        return self.get_matching_rule(path, scope) is not None

    def filter_excluded(
        self, paths: Iterable[str], scope: str | None = None
    ) -> list[str]:
        """Return only the paths that no rule excludes."""
        rules = self.get_rules_for_scope(scope)
        return [p for p in paths if match_rules(p, rules) is None]

    def export_rules(self) -> list[dict[str, Any]]:
        return [rule.to_dict() for rule in self._rules]

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def add_rule(
        self,
        pattern: str,
        rule_type: ExclusionType | str,
        scope: str | None = GLOBAL_SCOPE,
    ) -> ExclusionRule:
        """Create and persist a new rule.

        Raises:
            InvalidExclusionRuleError: If the pattern is empty or the type is
                unknown.
        """
        if not isinstance(rule_type, ExclusionType):
            rule_type = parse_exclusion_type(rule_type)
        rule = ExclusionRule(
            id=str(uuid.uuid4()),
            pattern=_validate(pattern),
            type=rule_type,
            scope=_normalize_scope(scope),
        )
        with self._write_lock:
            self._commit((*self._rules, rule))
        logger.info(
            "Added exclusion rule %s (%s: %s, scope=%s)",
            rule.id,
            rule.type.value,
            rule.pattern,
            rule.scope,
        )
        return rule

    def update_rule(
        self,
        rule_id: str,
        *,
        pattern: str | None = None,
        rule_type: ExclusionType | str | None = None,
        scope: str | None = None,
    ) -> ExclusionRule:
        """Replace fields of an existing rule; None leaves a field unchanged.

        Raises:
            ExclusionRuleNotFoundError: If rule_id is unknown.
            InvalidExclusionRuleError: If the new values are invalid.
        """
        if rule_type is not None and not isinstance(rule_type, ExclusionType):
            rule_type = parse_exclusion_type(rule_type)

        with self._write_lock:
            rules = list(self._rules)
            for index, existing in enumerate(rules):
                if existing.id == rule_id:
                    break
            else:
                raise ExclusionRuleNotFoundError(rule_id, "update")

            new_type = rule_type if rule_type is not None else existing.type
            new_pattern = pattern if pattern is not None else existing.pattern
            updated = dataclasses.replace(
                existing,
                pattern=_validate(new_pattern),
                type=new_type,
                scope=_normalize_scope(scope) if scope is not None else existing.scope,
            )
            rules[index] = updated
            self._commit(tuple(rules))

        logger.info("Updated exclusion rule %s", rule_id)
        return updated

    def remove_rule(self, rule_id: str) -> bool:
        """Delete a rule. Returns False if it did not exist."""
        with self._write_lock:
            remaining = tuple(r for r in self._rules if r.id != rule_id)
            if len(remaining) == len(self._rules):
                return False
            self._commit(remaining)
        logger.info("Removed exclusion rule %s", rule_id)
        return True

    def clear_all(self) -> int:
        """Delete every rule. Returns the number removed."""
        with self._write_lock:
            count = len(self._rules)
            self._commit(())
        logger.info("Cleared %d exclusion rules", count)
        return count

    def import_rules(
        self, entries: Iterable[Any], *, replace: bool = False
    ) -> tuple[int, int]:
        """Import serialized rules.

        Entries lacking id, pattern or a valid type are skipped, as are
        entries whose id already exists (unless replace is True, in which
        case the existing rule set is discarded first).

        Returns:
            Tuple of (imported, skipped) counts.
        """
        imported = 0
        skipped = 0
        with self._write_lock:
            rules = [] if replace else list(self._rules)
            known_ids = {rule.id for rule in rules}
            for entry in entries:
                try:
                    rule = ExclusionRule.from_dict(entry)
                    _validate(rule.pattern)
                except InvalidExclusionRuleError as e:
                    logger.warning("Skipping invalid imported rule: %s", e)
                    skipped += 1
                    continue
                if rule.id in known_ids:
                    skipped += 1
                    continue
                rule = dataclasses.replace(rule, scope=_normalize_scope(rule.scope))
                rules.append(rule)
                known_ids.add(rule.id)
                imported += 1
            self._commit(tuple(rules))

        logger.info("Imported %d exclusion rules (%d skipped)", imported, skipped)
        return imported, skipped
