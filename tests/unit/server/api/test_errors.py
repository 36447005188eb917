"""Tests for API error responses and domain error mapping."""

import json

from umd.exclusions.exceptions import (
    ExclusionRuleNotFoundError,
    InvalidExclusionRuleError,
)
from umd.jobs.exceptions import BatchNotFoundError, FileNotInBatchError
from umd.scanner.exceptions import (
    ScanError,
    ScanPathNotDirectoryError,
    ScanPathNotFoundError,
)
from umd.server.api.errors import (
    NOT_FOUND,
    VALIDATION_FAILED,
    api_error,
    domain_error,
    job_not_found,
    rule_not_found,
)


def _body(response):
    return json.loads(response.body)


class TestApiError:
    """Tests for api_error."""

    def test_default_status(self):
        response = api_error("bad input", code=VALIDATION_FAILED)
        assert response.status == 400
        assert response.content_type == "application/json"
        assert _body(response) == {"error": "bad input", "code": "VALIDATION_FAILED"}

    def test_details_and_extra_fields(self):
        response = api_error(
            "File index out of range",
            code=NOT_FOUND,
            status=404,
            details=["a"],
            totalFiles=3,
        )
        assert response.status == 404
        assert _body(response) == {
            "error": "File index out of range",
            "code": "NOT_FOUND",
            "details": ["a"],
            "totalFiles": 3,
        }

    def test_details_omitted_when_none(self):
        assert "details" not in _body(api_error("x", code=NOT_FOUND))


class TestDomainError:
    """Tests for mapping scan, exclusion and batch exceptions."""

    def test_missing_scan_root(self):
        response = domain_error(ScanPathNotFoundError("/nope"))
        assert response.status == 404
        assert _body(response) == {
            "error": "Path does not exist: /nope",
            "code": "NOT_FOUND",
        }

    def test_scan_root_is_file(self):
        response = domain_error(ScanPathNotDirectoryError("/docs/a.pdf"))
        assert response.status == 400
        assert _body(response)["code"] == "INVALID_PARAMETER"

    def test_invalid_rule(self):
        response = domain_error(InvalidExclusionRuleError("Pattern is required"))
        assert response.status == 400
        assert _body(response) == {
            "error": "Pattern is required",
            "code": "VALIDATION_FAILED",
        }

    def test_missing_rule_and_batch(self):
        for exc in (
            ExclusionRuleNotFoundError("rule-1", "update"),
            BatchNotFoundError("job-1", "add file to"),
            FileNotInBatchError("job-1", "/docs/a.pdf"),
        ):
            response = domain_error(exc)
            assert response.status == 404
            assert _body(response)["code"] == "NOT_FOUND"

    def test_unmapped_is_internal(self):
        response = domain_error(ScanError("/docs", "Permission denied"))
        assert response.status == 500
        assert _body(response) == {
            "error": "Permission denied",
            "code": "INTERNAL_ERROR",
        }


class TestNotFoundHelpers:
    """Tests for the job and rule 404 helpers."""

    def test_job_not_found(self):
        response = job_not_found("job-1a2b")
        assert response.status == 404
        assert _body(response) == {
            "error": "Job not found",
            "code": "NOT_FOUND",
            "jobId": "job-1a2b",
        }

    def test_rule_not_found(self):
        response = rule_not_found("rule-9")
        assert response.status == 404
        assert _body(response)["ruleId"] == "rule-9"
