"""In-memory namespace store.

NamespaceStore keeps the cached entries of one namespace in an insertion
ordered dict keyed by call digest, bounded by an entry-count limit.

Thread Safety:
    Every public operation holds the store's lock for that one step only.
    The lock is never held while a wrapped operation is being awaited, so
    concurrent call-throughs for one namespace are not serialized. Purge
    events are emitted after the lock is released, which lets an event
    delegate call back into the cache (e.g. ``size()``) without deadlocking.

Expiry:
    Expired entries are not removed on read; ``get`` simply treats them as
    absent. They are purged when an insert pushes the store over its limit,
    when ``purge_expired`` is called, or overwritten by the next load of the
    same key. Until then they occupy a slot.
"""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, List, Optional, Set, Tuple

from .common import CacheEntry, Clock, TTLManager, default_clock
from .eviction import select_expired, select_expiry_victim

logger = logging.getLogger(__name__)


class NamespaceStore:
    """Size-bounded, TTL-aware entry store for a single namespace.

    Attributes:
        namespace: Name of the namespace this store belongs to
        limit: Maximum number of entries kept after any public operation
    """

    def __init__(
        self,
        namespace: str,
        limit: int,
        telemetry: Optional[Any] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize an empty store.

        Args:
            namespace: Namespace name (used in events and logs)
            limit: Maximum entry count, must be positive
            telemetry: Optional CacheTelemetry receiving purge/evict records
            clock: Time source returning Unix seconds (defaults to time.time)
        """
        if limit < 1:
            raise ValueError(f"limit must be a positive integer, got {limit}")
        self.namespace = namespace
        self.limit = limit
        self._telemetry = telemetry
        self._clock = clock or default_clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = Lock()

        logger.debug(f"Initialized NamespaceStore for {namespace} with limit={limit}")

    def get(self, key: str) -> Optional[CacheEntry]:
        """Look up a fresh entry.

        Args:
            key: Call digest

        Returns:
            The entry if present and not expired, None otherwise.
        """
        with self._lock:
            entry = self._entries.get(key)
            if entry is None or entry.is_expired(self._clock()):
                return None
            return entry

    def put(self, key: str, value: Any, ttl: Optional[float]) -> CacheEntry:
        """Insert or overwrite an entry, then enforce the limit.

        The key moves to the end of the insertion order on overwrite. If the
        store is over its limit afterwards, expired entries are purged and
        then earliest-expiry entries are evicted until it fits.

        Args:
            key: Call digest
            value: Value to cache; must not be None
            ttl: Lifetime in seconds, or None for no expiry

        Returns:
            The stored entry.

        Raises:
            ValueError: If value is None
        """
        if value is None:
            raise ValueError(f"refusing to cache None for {self.namespace}:{key}")

        with self._lock:
            now = self._clock()
            entry = CacheEntry(
                value=value,
                expires_at=TTLManager.expires_at(ttl, now),
                created_at=now,
            )
            self._entries.pop(key, None)
            self._entries[key] = entry

            purged: List[Tuple[str, CacheEntry]] = []
            evicted: List[str] = []
            if len(self._entries) > self.limit:
                purged = self._purge_locked(now)
                while len(self._entries) > self.limit:
                    victim = self._evict_one_locked()
                    if victim is None:
                        break
                    evicted.append(victim)

        self._report(purged, evicted)
        return entry

    def purge_expired(self) -> int:
        """Remove every expired entry.

        Emits one ``purge`` event per removed entry.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            purged = self._purge_locked(self._clock())
        self._report(purged, [])
        return len(purged)

    def evict_one_if_over_capacity(self) -> bool:
        """Evict the earliest-expiring entry if the store exceeds its limit.

        Returns:
            True if an entry was evicted.
        """
        with self._lock:
            victim = None
            if len(self._entries) > self.limit:
                victim = self._evict_one_locked()
        if victim is None:
            return False
        self._report([], [victim])
        return True

    def clear(self) -> int:
        """Remove all entries (no per-entry events).

        Returns:
            Number of entries removed.
        """
        with self._lock:
            count = len(self._entries)
            self._entries.clear()
        if count:
            logger.debug(f"Cleared {count} entries from {self.namespace}")
        return count

    def size(self) -> int:
        """Current entry count, expired-but-unpurged entries included."""
        with self._lock:
            return len(self._entries)

    def keys(self) -> Set[str]:
        """Snapshot of all stored digests."""
        with self._lock:
            return set(self._entries)

    def _purge_locked(self, now: float) -> List[Tuple[str, CacheEntry]]:
        purged = []
        for key in select_expired(self._entries, now):
            purged.append((key, self._entries.pop(key)))
        return purged

    def _evict_one_locked(self) -> Optional[str]:
        victim = select_expiry_victim(self._entries)
        if victim is not None:
            del self._entries[victim]
        return victim

    def _report(self, purged: List[Tuple[str, CacheEntry]], evicted: List[str]) -> None:
        for key, entry in purged:
            logger.debug(f"Purged expired entry {self.namespace}:{key}")
            if self._telemetry is not None:
                self._telemetry.record(
                    "purge",
                    {"namespace": self.namespace, "hash": key, "expires_at": entry.expires_at},
                )
        for key in evicted:
            logger.debug(f"Evicted {self.namespace}:{key} (limit={self.limit})")
            if self._telemetry is not None:
                self._telemetry.count_eviction()

    def __len__(self) -> int:
        return self.size()

    def __repr__(self) -> str:
        return f"NamespaceStore(namespace={self.namespace!r}, limit={self.limit}, size={self.size()})"
