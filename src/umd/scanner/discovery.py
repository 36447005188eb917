"""File discovery engine.

Walks a directory tree depth-first, applying the extension allow-list and
exclusion rules, and classifies every convertible file as pending or
already converted (a ``<file>.md`` sidecar exists next to it).

The walk uses an explicit stack of directory iterators rather than
recursion, so pathological nesting cannot exhaust the call stack, while
still visiting entries in the same order a recursive walk would.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime, timezone

from umd.core.file_types import ALL_SUPPORTED_EXTENSIONS
from umd.exclusions.matcher import ExclusionMatcher
from umd.exclusions.models import PathKind
from umd.scanner.exceptions import ScanPathNotDirectoryError, ScanPathNotFoundError
from umd.scanner.models import DiscoveredFile, ExcludedItem, ScanOptions, ScanResult

logger = logging.getLogger(__name__)

OFFICE_LOCK_PREFIX = "~$"
MARKDOWN_EXTENSION = "md"

# Progress callback cadence, in directories visited
PROGRESS_INTERVAL = 25


@dataclass
class _Frame:
    path: str
    depth: int
    entries: Iterator[os.DirEntry[str]]


class FileDiscovery:
    """Scans directory trees for convertible files."""

    def __init__(self, options: ScanOptions | None = None) -> None:
        self._options = options or ScanOptions()
        if self._options.extensions is None:
            self._extensions = ALL_SUPPORTED_EXTENSIONS
        else:
            self._extensions = frozenset(
                ext.lower().lstrip(".") for ext in self._options.extensions
            )
        self._matcher = ExclusionMatcher(
            exclude_dirs=self._options.exclude_dirs,
            rules=self._options.rules,
            custom=self._options.exclusion_matcher,
        )

    @property
    def options(self) -> ScanOptions:
        return self._options

    def scan(self, root_path: str) -> ScanResult:
        """Scan a directory for convertible files.

        Args:
            root_path: Directory to scan; made absolute before use.

        Returns:
            ScanResult with every discovered file, the pending/converted
            partition, visit counters, excluded items and non-fatal errors.

        Raises:
            ScanPathNotFoundError: If root_path does not exist.
            ScanPathNotDirectoryError: If root_path is not a directory.
        """
        root = os.path.abspath(root_path)
        if not os.path.exists(root):
            raise ScanPathNotFoundError(root)
        if not os.path.isdir(root):
            raise ScanPathNotDirectoryError(root)

        logger.info("Scanning directory: %s", root)

        files: list[DiscoveredFile] = []
        excluded: list[ExcludedItem] = []
        errors: list[str] = []
        directories_scanned = 0
        total_scanned = 0

        stack: list[_Frame] = []
        opened = self._open_directory(root, 0, errors)
        if opened is not None:
            stack.append(opened)
            directories_scanned += 1

        while stack:
            frame = stack[-1]
            entry = next(frame.entries, None)
            if entry is None:
                stack.pop()
                continue

            try:
                if entry.is_dir(follow_symlinks=False):
                    child = self._visit_directory(entry, frame.depth, excluded, errors)
                    if child is not None:
                        stack.append(child)
                        directories_scanned += 1
                        self._report_progress(directories_scanned, len(files))
                elif entry.is_file():
                    total_scanned += 1
                    discovered = self._visit_file(entry, excluded)
                    if discovered is not None:
                        files.append(discovered)
            except OSError as e:
                message = f"Error processing {entry.path}: {e}"
                errors.append(message)
                logger.error(message)

        result = ScanResult.from_files(
            root,
            files,
            total_scanned=total_scanned,
            directories_scanned=directories_scanned,
            errors=tuple(errors),
            excluded=tuple(excluded),
            exclusions_applied=len(self._options.rules),
        )
        logger.info(
            "Scan complete: %d files found, %d pending conversion, %d excluded",
            len(result.files),
            len(result.pending),
            len(result.excluded),
        )
        return result

    def _open_directory(
        self, path: str, depth: int, errors: list[str]
    ) -> _Frame | None:
        """List a directory, recording a non-fatal error if unreadable."""
        try:
            with os.scandir(path) as it:
                entries = sorted(it, key=lambda e: e.name)
        except OSError as e:
            message = f"Failed to read directory {path}: {e}"
            errors.append(message)
            logger.error(message)
            return None
        return _Frame(path=path, depth=depth, entries=iter(entries))

    def _visit_directory(
        self,
        entry: os.DirEntry[str],
        parent_depth: int,
        excluded: list[ExcludedItem],
        errors: list[str],
    ) -> _Frame | None:
        match = self._matcher.match(entry.path, PathKind.DIRECTORY)
        if match is not None:
            logger.debug("Excluded directory %s: %s", entry.path, match.reason)
            excluded.append(
                ExcludedItem(path=entry.path, kind=PathKind.DIRECTORY, match=match)
            )
            return None

        if not self._options.recursive:
            return None
        depth = parent_depth + 1
        max_depth = self._options.max_depth
        if max_depth is not None and depth > max_depth:
            return None
        return self._open_directory(entry.path, depth, errors)

    def _visit_file(
        self, entry: os.DirEntry[str], excluded: list[ExcludedItem]
    ) -> DiscoveredFile | None:
        name = entry.name
        if name.startswith(OFFICE_LOCK_PREFIX):
            return None

        extension = os.path.splitext(name)[1].lower().lstrip(".")
        if extension == MARKDOWN_EXTENSION:
            return None
        if extension not in self._extensions or extension not in ALL_SUPPORTED_EXTENSIONS:
            return None

        match = self._matcher.match(entry.path, PathKind.FILE)
        if match is not None:
            logger.debug("Excluded file %s: %s", entry.path, match.reason)
            excluded.append(ExcludedItem(path=entry.path, kind=PathKind.FILE, match=match))
            return None

        return build_discovered_file(entry.path, entry.stat())

    def _report_progress(self, directories: int, files: int) -> None:
        if self._options.progress is not None and directories % PROGRESS_INTERVAL == 0:
            self._options.progress(directories, files)


def build_discovered_file(path: str, stat: os.stat_result | None = None) -> DiscoveredFile:
    """Create a DiscoveredFile for path, checking for its sidecar now.

    Args:
        path: Absolute file path.
        stat: Stat result if already available.

    Raises:
        OSError: If the file cannot be stat'ed.
    """
    if stat is None:
        stat = os.stat(path)
    return DiscoveredFile(
        path=path,
        extension=os.path.splitext(path)[1].lower().lstrip("."),
        size=stat.st_size,
        modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        has_markdown=os.path.exists(path + ".md"),
    )


def is_converted(path: str) -> bool:
    """Check whether a file already has a sidecar markdown file."""
    return os.path.exists(path + ".md")
