"""Tests for the persistent exclusion rule store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from umd.exclusions import (
    GLOBAL_SCOPE,
    ExclusionRuleNotFoundError,
    ExclusionService,
    ExclusionType,
    InvalidExclusionRuleError,
)


@pytest.fixture
def rules_path(tmp_path: Path) -> Path:
    return tmp_path / "exclusions.json"


@pytest.fixture
def service(rules_path: Path) -> ExclusionService:
    return ExclusionService(rules_path)


class TestLoading:
    """Tests for loading exclusions.json."""

    def test_missing_file_starts_empty(self, service):
        assert service.get_all_rules() == []

    def test_corrupt_file_starts_empty(self, rules_path, caplog):
        """A corrupt file is logged and ignored."""
        rules_path.write_text("{broken")
        service = ExclusionService(rules_path)
        assert service.get_all_rules() == []
        assert "Failed to load exclusion rules" in caplog.text

    def test_invalid_entries_skipped(self, rules_path):
        rules_path.write_text(
            json.dumps(
                [
                    {"id": "a", "pattern": "*.tmp", "type": "pattern"},
                    {"id": "b", "pattern": "x", "type": "bogus"},
                    {"pattern": "no-id", "type": "file"},
                ]
            )
        )
        service = ExclusionService(rules_path)
        assert [r.id for r in service.get_all_rules()] == ["a"]


class TestMutations:
    """Tests for add, update, remove and clear."""

    def test_add_persists(self, service, rules_path):
        """Adding a rule writes it to disk immediately."""
        rule = service.add_rule("*.tmp", "pattern")
        assert rule.scope == GLOBAL_SCOPE
        assert rule.type is ExclusionType.PATTERN

        saved = json.loads(rules_path.read_text())
        assert saved[0]["id"] == rule.id
        assert saved[0]["pattern"] == "*.tmp"
        assert "createdAt" in saved[0]

        reloaded = ExclusionService(rules_path)
        assert reloaded.get_rule(rule.id) == rule

    def test_add_rejects_empty_pattern(self, service):
        with pytest.raises(InvalidExclusionRuleError):
            service.add_rule("   ", "file")

    def test_add_rejects_unknown_type(self, service):
        with pytest.raises(InvalidExclusionRuleError, match="Invalid exclusion type"):
            service.add_rule("x", "folder")

    def test_add_accepts_bracketed_pattern(self, service):
        rule = service.add_rule("**/scan[2].png", "pattern")
        assert service.is_excluded("/data/scan[2].png")
        assert not service.is_excluded("/data/scan2.png")
        assert rule.pattern == "**/scan[2].png"

    def test_scope_normalized(self, service):
        rule = service.add_rule("*.tmp", "pattern", "/data/docs/")
        assert rule.scope == "/data/docs"

    def test_update_rule(self, service):
        rule = service.add_rule("*.tmp", "pattern")
        updated = service.update_rule(rule.id, pattern="*.bak")
        assert updated.id == rule.id
        assert updated.pattern == "*.bak"
        assert updated.created_at == rule.created_at
        assert service.get_rule(rule.id).pattern == "*.bak"

    def test_update_unknown(self, service):
        with pytest.raises(ExclusionRuleNotFoundError):
            service.update_rule("missing", pattern="x")

    def test_update_invalid_leaves_rule(self, service):
        rule = service.add_rule("*.tmp", "pattern")
        with pytest.raises(InvalidExclusionRuleError):
            service.update_rule(rule.id, pattern="  ")
        assert service.get_rule(rule.id).pattern == "*.tmp"

    def test_remove_rule(self, service):
        rule = service.add_rule("*.tmp", "pattern")
        assert service.remove_rule(rule.id) is True
        assert service.remove_rule(rule.id) is False
        assert service.get_all_rules() == []

    def test_clear_all(self, service, rules_path):
        service.add_rule("a", "file")
        service.add_rule("b", "file")
        assert service.clear_all() == 2
        assert json.loads(rules_path.read_text()) == []


class TestScopes:
    """Tests for scope chains and matching."""

    def test_rules_for_scope(self, service):
        """A scope sees global rules plus its own, in insertion order."""
        g = service.add_rule("*.tmp", "pattern")
        a = service.add_rule("/data/a/skip", "directory", "/data/a")
        service.add_rule("/data/b/skip", "directory", "/data/b")

        assert service.get_rules_for_scope("/data/a") == [g, a]
        assert service.get_rules_for_scope(None) == [g]
        assert service.get_rules_for_scope("global") == [g]

    def test_scoped_rule_ignored_elsewhere(self, service):
        service.add_rule("/data/a/skip", "directory", "/data/a")
        assert service.is_excluded("/data/a/skip/x.pdf", "/data/a")
        assert not service.is_excluded("/data/a/skip/x.pdf")

    def test_get_match_reason(self, service):
        service.add_rule("*.tmp", "pattern")
        match = service.get_match("report.tmp")
        assert match is not None
        assert match.reason == "Matched custom pattern rule: *.tmp"

    def test_filter_excluded(self, service):
        service.add_rule("**/*.tmp", "pattern")
        kept = service.filter_excluded(["/d/a.pdf", "/d/b.tmp", "/d/c.png"])
        assert kept == ["/d/a.pdf", "/d/c.png"]


class TestImportExport:
    """Tests for import_rules and export_rules."""

    def test_export_import_preserves_ids(self, service, tmp_path):
        rule = service.add_rule("*.tmp", "pattern")
        exported = service.export_rules()

        other = ExclusionService(tmp_path / "other.json")
        imported, skipped = other.import_rules(exported)
        assert (imported, skipped) == (1, 0)
        assert other.get_rule(rule.id).pattern == "*.tmp"

    def test_import_skips_duplicates_and_invalid(self, service):
        rule = service.add_rule("*.tmp", "pattern")
        entries = [
            rule.to_dict(),
            {"id": "new", "pattern": "*.bak", "type": "pattern"},
            {"id": "bad", "pattern": "*.bak", "type": "regex"},
            "not an object",
        ]
        assert service.import_rules(entries) == (1, 3)
        assert len(service.get_all_rules()) == 2

    def test_import_replace(self, service):
        service.add_rule("*.tmp", "pattern")
        entries = [{"id": "only", "pattern": "*.bak", "type": "pattern"}]
        assert service.import_rules(entries, replace=True) == (1, 0)
        assert [r.id for r in service.get_all_rules()] == ["only"]
