"""
Donation cache with TTL records and stale-read support.

Features:
- Two record families per identifier: scraped data (short TTL) and
  resolved subdomain (long TTL), under separate namespaced keys
- Lazy TTL expiry: an expired record is removed on the next fresh read
- Stale reads that ignore TTL (stale-while-revalidate)
- Pluggable key-value stores: in-memory or JSON files on disk
- Storage failures and malformed records degrade to cache misses
"""

import hashlib
import json
import threading
import time
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel

from ..constants import CACHE_KEY_NAMESPACE, STALE_RETENTION_SECONDS, PageType
from ..validators.scraped_result import DataCacheEntry, ScrapedResult, SubdomainCacheEntry
from .error_tracking import ErrorCategory, ErrorSeverity, ErrorTracker


def epoch_ms() -> int:
    return int(time.time() * 1000)


class CacheKind(str, Enum):
    DATA = "data"
    SUBDOMAIN = "subdomain"


CacheEntry = Union[DataCacheEntry, SubdomainCacheEntry]

_ENTRY_MODELS: Dict[CacheKind, Type[BaseModel]] = {
    CacheKind.DATA: DataCacheEntry,
    CacheKind.SUBDOMAIN: SubdomainCacheEntry,
}


# ============================================================================
# Key-value stores
# ============================================================================


class KeyValueStore(ABC):
    """Opaque get/set/delete store with optional physical expiry."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def set(self, key: str, value: str, expire_after: Optional[float] = None) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...


class MemoryStore(KeyValueStore):
    """Thread-safe in-process store."""

    def __init__(self):
        self._items: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            item = self._items.get(key)
            if item is None:
                return None
            value, expires_at = item
            if expires_at is not None and time.monotonic() >= expires_at:
                del self._items[key]
                return None
            return value

    def set(self, key: str, value: str, expire_after: Optional[float] = None) -> None:
        expires_at = time.monotonic() + expire_after if expire_after is not None else None
        with self._lock:
            self._items[key] = (value, expires_at)

    def delete(self, key: str) -> None:
        with self._lock:
            self._items.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


class FileStore(KeyValueStore):
    """
    One JSON file per key under a cache directory.

    Files are named by the md5 of the key and hold
    {"key": ..., "value": ..., "expires_at": epoch seconds | null}.
    """

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{hashlib.md5(key.encode()).hexdigest()}.json"

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None

        with open(path, "r", encoding="utf-8") as f:
            stored = json.load(f)

        expires_at = stored.get("expires_at")
        if expires_at is not None and time.time() >= expires_at:
            path.unlink(missing_ok=True)
            return None
        return stored["value"]

    def set(self, key: str, value: str, expire_after: Optional[float] = None) -> None:
        stored = {
            "key": key,
            "value": value,
            "expires_at": time.time() + expire_after if expire_after is not None else None,
        }
        # Write-then-rename so concurrent readers never see half a file
        path = self._path(key)
        tmp_path = path.with_suffix(f".{threading.get_ident()}.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(stored, f)
        tmp_path.replace(path)

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


# ============================================================================
# Donation cache
# ============================================================================


class DonationCache:
    """
    TTL cache for scraped results and subdomain resolutions.

    Records are stored as JSON: data records as
    {"data": ScrapedResult, "cachedAt": ms, "ttl": ms} and subdomain records
    as {"subdomain": str, "cachedAt": ms, "ttl": ms}. Every store call is
    wrapped so that a broken store behaves like an empty one.
    """

    def __init__(
        self,
        store: KeyValueStore,
        clock: Callable[[], int] = epoch_ms,
        logger=None,
        error_tracker: Optional[ErrorTracker] = None,
    ):
        """
        Initialize donation cache.

        Args:
            store: Backing key-value store
            clock: Returns the current time in epoch milliseconds
            logger: Logger instance
            error_tracker: Optional tracker for storage failures
        """
        self.store = store
        self.clock = clock
        self.logger = logger
        self.error_tracker = error_tracker

    @staticmethod
    def make_key(kind: CacheKind, identifier: str, page_type: PageType = PageType.MEMBER) -> str:
        """Namespaced key, e.g. movember:subdomain:member:14810348."""
        return f"{CACHE_KEY_NAMESPACE}:{CacheKind(kind).value}:{PageType(page_type).value}:{identifier}"

    def _storage_failure(self, action: str, key: str, error: Exception):
        if self.logger:
            self.logger.warning(f"Failed to {action} cache record {key}: {error}")
        if self.error_tracker:
            self.error_tracker.track(error, ErrorCategory.CACHE, ErrorSeverity.LOW, action=action)

    def _load(self, kind: CacheKind, key: str) -> Optional[CacheEntry]:
        try:
            raw = self.store.get(key)
            if raw is None:
                return None
            return _ENTRY_MODELS[kind].model_validate_json(raw)
        except Exception as e:
            self._storage_failure("read", key, e)
            return None

    def get(self, kind: CacheKind, identifier: str, page_type: PageType = PageType.MEMBER) -> Optional[CacheEntry]:
        """
        Fresh record, or None.

        An expired record is deleted and reported as missing.
        """
        key = self.make_key(kind, identifier, page_type)
        entry = self._load(kind, key)
        if entry is None:
            return None

        if entry.is_expired(self.clock()):
            if self.logger:
                self.logger.debug(f"Cache expired for {key} (age: {entry.age_seconds(self.clock()):.0f}s)")
            self.delete(kind, identifier, page_type)
            return None
        return entry

    def get_stale(self, kind: CacheKind, identifier: str, page_type: PageType = PageType.MEMBER) -> Optional[CacheEntry]:
        """Record regardless of TTL, or None if absent or unreadable."""
        return self._load(kind, self.make_key(kind, identifier, page_type))

    def is_stale(self, kind: CacheKind, identifier: str, page_type: PageType = PageType.MEMBER) -> bool:
        """True only when a record exists and its TTL has elapsed."""
        entry = self.get_stale(kind, identifier, page_type)
        return entry is not None and entry.is_expired(self.clock())

    def put(
        self,
        kind: CacheKind,
        identifier: str,
        value: Union[ScrapedResult, str],
        ttl_seconds: float,
        page_type: PageType = PageType.MEMBER,
    ) -> bool:
        """
        Write a record stamped with the current time.

        Data records outlive their TTL in the store so stale reads can still
        serve them; subdomain records are physically dropped at their TTL.

        Returns:
            True if the store accepted the write
        """
        key = self.make_key(kind, identifier, page_type)
        ttl_ms = int(ttl_seconds * 1000)
        try:
            if kind == CacheKind.DATA:
                entry = DataCacheEntry(data=value, cached_at=self.clock(), ttl=ttl_ms)
                expire_after = ttl_seconds + STALE_RETENTION_SECONDS
            else:
                entry = SubdomainCacheEntry(subdomain=value, cached_at=self.clock(), ttl=ttl_ms)
                expire_after = ttl_seconds
            self.store.set(key, entry.model_dump_json(by_alias=True), expire_after=expire_after)
        except Exception as e:
            self._storage_failure("write", key, e)
            return False

        if self.logger:
            self.logger.debug(f"Cached {key} (ttl: {ttl_seconds:.0f}s)")
        return True

    def delete(self, kind: CacheKind, identifier: str, page_type: PageType = PageType.MEMBER) -> None:
        key = self.make_key(kind, identifier, page_type)
        try:
            self.store.delete(key)
        except Exception as e:
            self._storage_failure("delete", key, e)

    def invalidate(self, identifier: str, page_type: PageType = PageType.MEMBER) -> None:
        """Drop both the data and subdomain records for an identifier."""
        self.delete(CacheKind.DATA, identifier, page_type)
        self.delete(CacheKind.SUBDOMAIN, identifier, page_type)
