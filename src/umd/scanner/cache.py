"""Time-bounded cache of scan results.

Entries are keyed by the canonical form of the scanned root, expire a
fixed time after they are stored, and are mirrored to ``scan-cache.json``
after every mutation. Expired entries are evicted lazily on access and
dropped when the file is loaded.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from pathlib import Path
from typing import Any

from umd.core.datetime_utils import utc_now
from umd.core.json_utils import load_json_file, write_json_file
from umd.core.paths import is_within_root, normalize_root_key
from umd.scanner.models import CachedScan, ScanResult

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL = 300.0  # seconds


class ScanCache:
    """Scan result cache backed by a JSON file."""

    def __init__(
        self,
        path: Path,
        *,
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Load persisted entries from path.

        Args:
            path: Location of scan-cache.json.
            ttl: Default entry lifetime in seconds.
            clock: Source of the current time (injectable for tests).
        """
        self._path = path
        self._ttl = ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, CachedScan] = self._load()

    @property
    def ttl(self) -> float:
        return self._ttl

    def _load(self) -> dict[str, CachedScan]:
        result = load_json_file(self._path, context="scan cache")
        if not result.success:
            logger.error("Failed to load scan cache: %s", result.error)
            return {}
        if result.value is None:
            return {}
        if not isinstance(result.value, list):
            logger.error("Failed to load scan cache: %s does not hold a list", self._path)
            return {}

        now = self._clock()
        entries: dict[str, CachedScan] = {}
        for raw in result.value:
            try:
                cached = CachedScan.from_dict(raw)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping malformed scan cache entry: %s", e)
                continue
            if cached.is_expired(now):
                continue
            entries[normalize_root_key(cached.root_path)] = cached
        logger.debug("Loaded %d cached scans from %s", len(entries), self._path)
        return entries

    def _save(self) -> None:
        """Persist all entries. Caller holds the lock."""
        payload: list[dict[str, Any]] = [c.to_dict() for c in self._entries.values()]
        try:
            write_json_file(self._path, payload)
        except OSError as e:
            logger.error("Failed to save scan cache to %s: %s", self._path, e)

    def get(self, root_path: str) -> CachedScan | None:
        """Return the cached scan for root_path, or None if absent or expired.

        An expired entry is evicted as a side effect.
        """
        key = normalize_root_key(root_path)
        with self._lock:
            cached = self._entries.get(key)
            if cached is None:
                return None
            if cached.is_expired(self._clock()):
                del self._entries[key]
                self._save()
                logger.debug("Evicted expired scan cache entry for %s", key)
                return None
            return cached

    def set(
        self, root_path: str, result: ScanResult, ttl: float | None = None
    ) -> CachedScan:
        """Store a scan result, replacing any existing entry for the root."""
        key = normalize_root_key(root_path)
        now = self._clock()
        cached = CachedScan(
            root_path=key,
            result=result,
            scanned_at=now,
            expires_at=now + timedelta(seconds=ttl if ttl is not None else self._ttl),
        )
        with self._lock:
            self._entries[key] = cached
            self._save()
        logger.debug("Cached scan for %s until %s", key, cached.expires_at.isoformat())
        return cached

    def invalidate(self, root_path: str) -> bool:
        """Remove the entry for root_path. Returns True if one existed."""
        key = normalize_root_key(root_path)
        with self._lock:
            if self._entries.pop(key, None) is None:
                return False
            self._save()
        logger.debug("Invalidated scan cache for %s", key)
        return True

    def invalidate_for_file(self, file_path: str) -> int:
        """Remove every entry whose root contains file_path.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            stale = [key for key in self._entries if is_within_root(file_path, key)]
            for key in stale:
                del self._entries[key]
            if stale:
                self._save()
        if stale:
            logger.debug(
                "Invalidated %d cached scan(s) containing %s", len(stale), file_path
            )
        return len(stale)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()
            self._save()
        logger.debug("Cleared scan cache")

    def clean_expired(self) -> int:
        """Evict every expired entry. Returns the number removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, c in self._entries.items() if c.is_expired(now)]
            for key in expired:
                del self._entries[key]
            if expired:
                self._save()
        return len(expired)

    def get_all_cached(self) -> list[CachedScan]:
        """Return every non-expired entry."""
        now = self._clock()
        with self._lock:
            return [c for c in self._entries.values() if not c.is_expired(now)]

    def get_stats(self) -> dict[str, int]:
        now = self._clock()
        with self._lock:
            entries = list(self._entries.values())
        return {
            "totalEntries": len(entries),
            "expiredEntries": sum(1 for c in entries if c.is_expired(now)),
            "totalFiles": sum(len(c.result.files) for c in entries),
        }
