"""
Get-or-compute cache with per-entry time-to-live.

Expiration is pull-based: stale entries are dropped when they are next
looked at (get, has) or by an explicit clear_expired() sweep. There is no
background timer.

Concurrent misses for the same key are not deduplicated: every caller that
misses awaits its own fetcher and the last write wins.
"""

import hashlib
import json
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

V = TypeVar("V")

DEFAULT_CACHE_TTL = 24 * 60 * 60

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_PREFIX_LENGTH = 48
_DIGEST_LENGTH = 16


def storage_key(key: str) -> str:
    """
    Map a logical key to a filesystem-safe storage key.

    The readable prefix alone would alias keys such as 'key/one' and
    'key:one', so a digest of the exact key is always appended.
    """
    prefix = _UNSAFE_CHARS.sub("_", key)[:_PREFIX_LENGTH]
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:_DIGEST_LENGTH]
    return f"{prefix}-{digest}"


@dataclass(frozen=True)
class CacheEntry:
    """A stored value and its expiry metadata."""

    key: str
    value: Any
    created_at: float
    ttl: float

    @property
    def expires_at(self) -> float:
        return self.created_at + self.ttl

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "value": self.value, "created_at": self.created_at, "ttl": self.ttl}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry":
        return cls(
            key=data["key"],
            value=data["value"],
            created_at=float(data["created_at"]),
            ttl=float(data["ttl"]),
        )


@dataclass
class CacheEntryStats:
    """Per-entry diagnostic information."""

    key: str
    age: float
    ttl: float
    expired: bool
    size_bytes: int


@dataclass
class CacheStats:
    """Cache-wide diagnostic information."""

    total_entries: int = 0
    expired_entries: int = 0
    total_size_bytes: int = 0
    cache_dir: str | None = None
    entries: list[CacheEntryStats] = field(default_factory=list)


def _encoded_size(value: Any) -> int:
    return len(json.dumps(value, default=str).encode("utf-8"))


class TTLCache:
    """
    Keyed cache with expiration, optionally persisted to a directory.

    Example:
        cache = TTLCache(default_ttl=300)
        projects = await cache.get("projects_list", fetch_projects)

    Note:
        has() is not a pure predicate. Checking a stale key evicts it.

    """

    def __init__(
        self,
        default_ttl: float = DEFAULT_CACHE_TTL,
        cache_dir: Path | str | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the cache.

        Args:
            default_ttl: TTL in seconds when get()/set() are not given one
            cache_dir: Directory for write-through JSON files (memory only if None)
            clock: Time source returning epoch seconds

        """
        self.default_ttl = default_ttl
        self.cache_dir = Path(cache_dir).expanduser() if cache_dir else None
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}

    # =========================================================================
    # Storage
    # =========================================================================

    def _file_path(self, skey: str) -> Path | None:
        if self.cache_dir is None:
            return None
        return self.cache_dir / f"{skey}.json"

    def _read(self, key: str) -> CacheEntry | None:
        skey = storage_key(key)
        entry = self._entries.get(skey)
        if entry is not None:
            return entry

        path = self._file_path(skey)
        if path is None or not path.exists():
            return None

        try:
            entry = CacheEntry.from_dict(json.loads(path.read_text(encoding="utf-8")))
        except (OSError, ValueError, KeyError, TypeError):
            logger.debug("Discarding unreadable cache file %s", path)
            path.unlink(missing_ok=True)
            return None

        if entry.key != key:
            return None
        self._entries[skey] = entry
        return entry

    def _write(self, entry: CacheEntry) -> None:
        skey = storage_key(entry.key)
        self._entries[skey] = entry

        path = self._file_path(skey)
        if path is None:
            return

        try:
            path.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
            tmp_path = path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(entry.to_dict(), default=str), encoding="utf-8")
            tmp_path.replace(path)
        except OSError as e:
            # The in-memory entry still serves this process.
            logger.warning("Failed to persist cache entry %r: %s", entry.key, e)

    def _remove(self, skey: str) -> bool:
        removed = self._entries.pop(skey, None) is not None
        path = self._file_path(skey)
        if path is not None and path.exists():
            path.unlink(missing_ok=True)
            removed = True
        return removed

    def _all_entries(self) -> dict[str, CacheEntry | None]:
        """Every known entry by storage key; None marks an unreadable file."""
        entries: dict[str, CacheEntry | None] = dict(self._entries)
        if self.cache_dir is None or not self.cache_dir.is_dir():
            return entries

        for path in self.cache_dir.glob("*.json"):
            if path.stem in entries:
                continue
            try:
                entries[path.stem] = CacheEntry.from_dict(json.loads(path.read_text(encoding="utf-8")))
            except (OSError, ValueError, KeyError, TypeError):
                entries[path.stem] = None
        return entries

    # =========================================================================
    # Public API
    # =========================================================================

    async def get(
        self,
        key: str,
        fetcher: Callable[[], Awaitable[V]],
        ttl: float | None = None,
    ) -> V:
        """
        Return the cached value for key, or await fetcher() and store it.

        Args:
            key: Logical cache key
            fetcher: Coroutine factory called on a miss or expired entry
            ttl: Seconds to keep the fetched value (default_ttl if None)

        Returns:
            Cached or freshly fetched value

        """
        entry = self._read(key)
        if entry is not None and not entry.is_expired(self._clock()):
            logger.debug("Cache hit: %s", key)
            return entry.value

        logger.debug("Cache miss: %s", key)
        value = await fetcher()
        self.set(key, value, ttl)
        return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        """Store value under key, replacing any previous entry."""
        self._write(
            CacheEntry(
                key=key,
                value=value,
                created_at=self._clock(),
                ttl=self.default_ttl if ttl is None else ttl,
            )
        )

    def has(self, key: str) -> bool:
        """True only for a present, unexpired entry. Evicts the entry if stale."""
        entry = self._read(key)
        if entry is None:
            return False
        if entry.is_expired(self._clock()):
            self._remove(storage_key(key))
            return False
        return True

    def delete(self, key: str) -> None:
        """Remove one entry. Missing keys are ignored."""
        self._remove(storage_key(key))

    def clear(self) -> None:
        """Remove every entry."""
        self._entries.clear()
        if self.cache_dir is not None and self.cache_dir.is_dir():
            for path in self.cache_dir.glob("*.json"):
                path.unlink(missing_ok=True)

    def clear_expired(self) -> int:
        """Evict all stale (or unreadable) entries and return how many went."""
        now = self._clock()
        cleared = 0
        for skey, entry in self._all_entries().items():
            if entry is None or entry.is_expired(now):
                if self._remove(skey):
                    cleared += 1
        if cleared:
            logger.debug("Cleared %d expired cache entries", cleared)
        return cleared

    def get_stats(self) -> CacheStats:
        """Snapshot of cache contents. Does not evict anything."""
        now = self._clock()
        stats = CacheStats(cache_dir=str(self.cache_dir) if self.cache_dir else None)

        for skey, entry in self._all_entries().items():
            stats.total_entries += 1
            if entry is None:
                stats.expired_entries += 1
                stats.entries.append(CacheEntryStats(key=skey, age=0.0, ttl=0.0, expired=True, size_bytes=0))
                continue

            size = _encoded_size(entry.value)
            expired = entry.is_expired(now)
            stats.total_size_bytes += size
            if expired:
                stats.expired_entries += 1
            stats.entries.append(
                CacheEntryStats(
                    key=entry.key,
                    age=max(0.0, now - entry.created_at),
                    ttl=entry.ttl,
                    expired=expired,
                    size_bytes=size,
                )
            )

        return stats

    def __len__(self) -> int:
        return len(self._all_entries())
