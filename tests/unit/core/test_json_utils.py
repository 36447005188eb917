"""Tests for umd.core.json_utils module."""

import json

import pytest

from umd.core.json_utils import JsonLoadResult, load_json_file, write_json_file


class TestJsonLoadResult:
    """Tests for JsonLoadResult dataclass."""

    def test_frozen(self):
        """Result is immutable (frozen dataclass)."""
        result = JsonLoadResult(success=True, value={})
        with pytest.raises(AttributeError):
            result.success = False  # type: ignore[misc]


class TestLoadJsonFile:
    """Tests for load_json_file function."""

    def test_missing_file_is_success(self, tmp_path):
        """A missing file is not an error and yields None."""
        result = load_json_file(tmp_path / "absent.json")
        assert result.success is True
        assert result.value is None

    def test_valid_file(self, tmp_path):
        """Valid JSON is parsed."""
        path = tmp_path / "data.json"
        path.write_text('{"a": [1, 2]}')
        result = load_json_file(path)
        assert result.success is True
        assert result.value == {"a": [1, 2]}

    def test_corrupt_file(self, tmp_path):
        """Corrupt JSON fails with a message naming the context."""
        path = tmp_path / "data.json"
        path.write_text("{not json")
        result = load_json_file(path, context="scan cache")
        assert result.success is False
        assert result.value is None
        assert result.error.startswith("scan cache: Invalid JSON")


class TestWriteJsonFile:
    """Tests for write_json_file function."""

    def test_creates_parent_directories(self, tmp_path):
        """Missing parent directories are created."""
        path = tmp_path / "nested" / "dir" / "state.json"
        write_json_file(path, {"ok": True})
        assert json.loads(path.read_text()) == {"ok": True}

    def test_replaces_existing_file(self, tmp_path):
        """Existing content is replaced and no temp files are left."""
        path = tmp_path / "state.json"
        path.write_text("[]")
        write_json_file(path, [1])
        assert json.loads(path.read_text()) == [1]
        assert [p.name for p in tmp_path.iterdir()] == ["state.json"]

    def test_unserializable_leaves_target(self, tmp_path):
        """A serialization error leaves the previous file intact."""
        path = tmp_path / "state.json"
        path.write_text("[]")
        with pytest.raises(TypeError):
            write_json_file(path, {"bad": object()})
        assert path.read_text() == "[]"
