"""Request body models for the JSON API.

Bodies use camelCase keys on the wire; the models expose snake_case
attributes.
"""

from __future__ import annotations

from typing import Any, Literal, TypeVar

from aiohttp import web
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from umd.core.paths import normalize_input_path
from umd.server.api.errors import INVALID_JSON, VALIDATION_FAILED, api_error

ModelT = TypeVar("ModelT", bound="RequestModel")

RuleTypeName = Literal["file", "directory", "pattern"]


class RequestModel(BaseModel):
    """Base for request bodies."""

    model_config = ConfigDict(
        extra="forbid", alias_generator=to_camel, populate_by_name=True
    )


class ScanRequest(RequestModel):
    root_path: str
    recursive: bool = True
    max_depth: int | None = Field(default=None, ge=0)
    extensions: list[str] | None = None
    exclude_dirs: list[str] | None = None

    @field_validator("root_path")
    @classmethod
    def normalize_root_path(cls, v: str) -> str:
        """Strip whitespace and wrapping quotes from pasted paths."""
        normalized = normalize_input_path(v)
        if not normalized:
            raise ValueError("rootPath is required")
        return normalized


class ConvertRequest(RequestModel):
    files: list[str] = Field(min_length=1)
    concurrency: int | None = Field(default=None, ge=1, le=64)
    skip_converted: bool = True

    @field_validator("files")
    @classmethod
    def normalize_files(cls, v: list[str]) -> list[str]:
        return [normalize_input_path(p) for p in v]


class ExclusionCreate(RequestModel):
    pattern: str = Field(min_length=1)
    type: RuleTypeName
    scope: str | None = None


class ExclusionUpdate(RequestModel):
    pattern: str | None = Field(default=None, min_length=1)
    type: RuleTypeName | None = None
    scope: str | None = None


class ExclusionCheck(RequestModel):
    path: str = Field(min_length=1)
    scope: str | None = None


class ExclusionImport(RequestModel):
    rules: list[dict[str, Any]]
    replace: bool = False


class EmitEventRequest(RequestModel):
    type: str = "test"
    data: dict[str, Any] = Field(default_factory=lambda: {"message": "Test event"})


def format_validation_errors(error: ValidationError) -> list[dict[str, str]]:
    """Flatten a pydantic ValidationError into field/message pairs."""
    items = []
    for err in error.errors():
        parts: list[str] = []
        for part in err.get("loc", ()):
            if isinstance(part, int) and parts:
                parts[-1] = f"{parts[-1]}[{part}]"
            else:
                parts.append(str(part))
        items.append(
            {
                "field": ".".join(parts) if parts else "body",
                "message": err.get("msg", "Validation error"),
            }
        )
    return items


async def parse_body(
    request: web.Request, model: type[ModelT], *, allow_empty: bool = False
) -> ModelT | web.Response:
    """Read and validate a JSON body.

    Returns:
        The validated model, or an error response to return as-is.
    """
    if allow_empty and not request.can_read_body:
        data: Any = {}
    else:
        try:
            data = await request.json()
        except ValueError:
            return api_error("Invalid JSON body", code=INVALID_JSON)
    if not isinstance(data, dict):
        return api_error("Request body must be a JSON object", code=INVALID_JSON)

    try:
        return model.model_validate(data)
    except ValidationError as e:
        details = format_validation_errors(e)
        first = details[0]
        return api_error(
            f"Invalid request: {first['field']}: {first['message']}",
            code=VALIDATION_FAILED,
            details=details,
        )
