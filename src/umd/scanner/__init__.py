"""Directory scanning: discovery engine, result models and scan cache."""

from umd.scanner.cache import DEFAULT_CACHE_TTL, ScanCache
from umd.scanner.discovery import FileDiscovery, build_discovered_file, is_converted
from umd.scanner.exceptions import (
    ScanError,
    ScanPathNotDirectoryError,
    ScanPathNotFoundError,
)
from umd.scanner.models import (
    CachedScan,
    DiscoveredFile,
    ExcludedItem,
    ScanOptions,
    ScanProgressCallback,
    ScanResult,
)

__all__ = [
    "DEFAULT_CACHE_TTL",
    "CachedScan",
    "DiscoveredFile",
    "ExcludedItem",
    "FileDiscovery",
    "ScanCache",
    "ScanError",
    "ScanOptions",
    "ScanPathNotDirectoryError",
    "ScanPathNotFoundError",
    "ScanProgressCallback",
    "ScanResult",
    "build_discovered_file",
    "is_converted",
]
