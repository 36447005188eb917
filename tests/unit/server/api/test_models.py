"""Tests for API request body models."""

import pytest
from pydantic import ValidationError

from umd.server.api.models import (
    ConvertRequest,
    EmitEventRequest,
    ExclusionCreate,
    ExclusionUpdate,
    ScanRequest,
    format_validation_errors,
)


class TestScanRequest:
    """Tests for ScanRequest."""

    def test_camel_case_fields(self):
        body = ScanRequest.model_validate(
            {"rootPath": "/docs", "maxDepth": 2, "excludeDirs": ["build"]}
        )
        assert body.root_path == "/docs"
        assert body.max_depth == 2
        assert body.exclude_dirs == ["build"]
        assert body.recursive is True
        assert body.extensions is None

    def test_quoted_path_unwrapped(self):
        body = ScanRequest.model_validate({"rootPath": '  "/my docs"  '})
        assert body.root_path == "/my docs"

    @pytest.mark.parametrize("root", ["", "   ", "''"])
    def test_blank_root_rejected(self, root):
        with pytest.raises(ValidationError, match="rootPath is required"):
            ScanRequest.model_validate({"rootPath": root})

    def test_negative_depth_rejected(self):
        with pytest.raises(ValidationError):
            ScanRequest.model_validate({"rootPath": "/docs", "maxDepth": -1})

    def test_unknown_field_rejected(self):
        with pytest.raises(ValidationError):
            ScanRequest.model_validate({"rootPath": "/docs", "follow": True})


class TestConvertRequest:
    """Tests for ConvertRequest."""

    def test_defaults(self):
        body = ConvertRequest.model_validate({"files": ["/docs/a.pdf"]})
        assert body.concurrency is None
        assert body.skip_converted is True

    def test_paths_normalized(self):
        body = ConvertRequest.model_validate({"files": ["'/docs/a.pdf'", " /docs/b.png "]})
        assert body.files == ["/docs/a.pdf", "/docs/b.png"]

    def test_empty_list_rejected(self):
        with pytest.raises(ValidationError):
            ConvertRequest.model_validate({"files": []})

    @pytest.mark.parametrize("concurrency", [0, 65])
    def test_concurrency_bounds(self, concurrency):
        with pytest.raises(ValidationError):
            ConvertRequest.model_validate(
                {"files": ["/docs/a.pdf"], "concurrency": concurrency}
            )

    def test_snake_case_accepted(self):
        body = ConvertRequest.model_validate(
            {"files": ["/docs/a.pdf"], "skip_converted": False}
        )
        assert body.skip_converted is False


class TestExclusionModels:
    """Tests for exclusion rule bodies."""

    def test_create(self):
        body = ExclusionCreate.model_validate({"pattern": "*.tmp", "type": "pattern"})
        assert body.scope is None

    def test_create_bad_type(self):
        with pytest.raises(ValidationError):
            ExclusionCreate.model_validate({"pattern": "*.tmp", "type": "regex"})

    def test_update_all_optional(self):
        body = ExclusionUpdate.model_validate({})
        assert body.pattern is None
        assert body.type is None


class TestEmitEventRequest:
    def test_defaults(self):
        body = EmitEventRequest.model_validate({})
        assert body.type == "test"
        assert body.data == {"message": "Test event"}


class TestFormatValidationErrors:
    """Tests for format_validation_errors."""

    def test_list_index_folded_into_field(self):
        with pytest.raises(ValidationError) as exc_info:
            ConvertRequest.model_validate({"files": ["/a.pdf", 3]})
        items = format_validation_errors(exc_info.value)
        assert items[0]["field"] == "files[1]"
        assert items[0]["message"]

    def test_missing_field(self):
        with pytest.raises(ValidationError) as exc_info:
            ScanRequest.model_validate({})
        assert format_validation_errors(exc_info.value)[0]["field"] == "rootPath"
