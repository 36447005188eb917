"""Data models for directory scans.

All models are immutable once built. ``to_dict`` produces the camelCase
JSON shape used by the HTTP API and the persisted scan cache;
``from_dict`` reverses it.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from umd.core.datetime_utils import parse_iso_timestamp, utc_now
from umd.exclusions.matcher import CustomMatcher
from umd.exclusions.models import ExclusionMatch, ExclusionRule, MatchedRule, PathKind

ScanProgressCallback = Callable[[int, int], None]
"""Called with (directories_scanned, files_found) while a scan runs."""


@dataclass(frozen=True)
class DiscoveredFile:
    """A convertible file found during a scan."""

    path: str
    """Absolute path to the file."""

    extension: str
    """Lowercase extension without the dot."""

    size: int
    """Size in bytes."""

    modified_at: datetime
    """Last modification time (UTC)."""

    has_markdown: bool
    """Whether the sidecar markdown file existed at scan time."""

    @property
    def markdown_path(self) -> str:
        """Path of the sidecar markdown file."""
        return self.path + ".md"

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "extension": self.extension,
            "size": self.size,
            "modifiedAt": self.modified_at.isoformat(),
            "hasMarkdown": self.has_markdown,
            "markdownPath": self.markdown_path,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DiscoveredFile:
        return cls(
            path=data["path"],
            extension=data["extension"],
            size=int(data["size"]),
            modified_at=parse_iso_timestamp(data["modifiedAt"]),
            has_markdown=bool(data["hasMarkdown"]),
        )


@dataclass(frozen=True)
class ExcludedItem:
    """A path skipped by an exclusion rule."""

    path: str
    kind: PathKind
    match: ExclusionMatch

    @property
    def reason(self) -> str:
        return self.match.reason

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "type": self.kind.value,
            "rule": self.match.rule.to_dict(),
            "reason": self.match.reason,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExcludedItem:
        rule = data.get("rule", {})
        return cls(
            path=data["path"],
            kind=PathKind(data.get("type", PathKind.FILE.value)),
            match=ExclusionMatch(
                rule=MatchedRule(
                    source=rule.get("source", "custom"),
                    type=rule.get("type", ""),
                    pattern=rule.get("pattern", ""),
                    scope=rule.get("scope"),
                    id=rule.get("id"),
                ),
                reason=data.get("reason", ""),
            ),
        )


@dataclass(frozen=True)
class ScanResult:
    """Aggregate of a single directory walk.

    ``files`` is partitioned exactly into ``pending`` (no sidecar) and
    ``converted`` (sidecar present).
    """

    root_path: str
    files: tuple[DiscoveredFile, ...] = ()
    pending: tuple[DiscoveredFile, ...] = ()
    converted: tuple[DiscoveredFile, ...] = ()
    total_scanned: int = 0
    directories_scanned: int = 0
    errors: tuple[str, ...] = ()
    excluded: tuple[ExcludedItem, ...] = ()
    exclusions_applied: int = 0

    @classmethod
    def from_files(
        cls,
        root_path: str,
        files: Sequence[DiscoveredFile],
        **kwargs: Any,
    ) -> ScanResult:
        """Build a result, deriving the pending/converted partition."""
        return cls(
            root_path=root_path,
            files=tuple(files),
            pending=tuple(f for f in files if not f.has_markdown),
            converted=tuple(f for f in files if f.has_markdown),
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "rootPath": self.root_path,
            "files": [f.to_dict() for f in self.files],
            "pending": [f.to_dict() for f in self.pending],
            "converted": [f.to_dict() for f in self.converted],
            "totalScanned": self.total_scanned,
            "directoriesScanned": self.directories_scanned,
            "errors": list(self.errors),
            "excluded": [item.to_dict() for item in self.excluded],
            "exclusionsApplied": self.exclusions_applied,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanResult:
        return cls.from_files(
            data["rootPath"],
            [DiscoveredFile.from_dict(f) for f in data.get("files", [])],
            total_scanned=int(data.get("totalScanned", 0)),
            directories_scanned=int(data.get("directoriesScanned", 0)),
            errors=tuple(data.get("errors", [])),
            excluded=tuple(
                ExcludedItem.from_dict(item) for item in data.get("excluded", [])
            ),
            exclusions_applied=int(data.get("exclusionsApplied", 0)),
        )


@dataclass
class ScanOptions:
    """Options controlling a directory scan."""

    recursive: bool = True
    """Descend into subdirectories."""

    extensions: Sequence[str] | None = None
    """Allowed extensions (None = every supported type)."""

    max_depth: int | None = None
    """Deepest directory level to visit; the root is depth 0 (None = unbounded)."""

    exclude_dirs: Sequence[str] | None = None
    """Directory names always skipped (None = built-in list)."""

    rules: Sequence[ExclusionRule] = field(default_factory=tuple)
    """User exclusion rules for this root, in evaluation order."""

    exclusion_matcher: CustomMatcher | None = None
    """Callback consulted before the built-in and user rules."""

    progress: ScanProgressCallback | None = None
    """Periodic progress callback."""

    def __post_init__(self) -> None:
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative, got {self.max_depth}")


@dataclass(frozen=True)
class CachedScan:
    """A ScanResult stored in the scan cache."""

    root_path: str
    result: ScanResult
    scanned_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utc_now()) >= self.expires_at

    def summary(self) -> dict[str, Any]:
        """Compact description for cache listings."""
        return {
            "rootPath": self.root_path,
            "fileCount": len(self.result.files),
            "pendingCount": len(self.result.pending),
            "convertedCount": len(self.result.converted),
            "scannedAt": self.scanned_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "rootPath": self.root_path,
            "result": self.result.to_dict(),
            "scannedAt": self.scanned_at.isoformat(),
            "expiresAt": self.expires_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CachedScan:
        return cls(
            root_path=data["rootPath"],
            result=ScanResult.from_dict(data["result"]),
            scanned_at=parse_iso_timestamp(data["scannedAt"]),
            expires_at=parse_iso_timestamp(data["expiresAt"]),
        )
