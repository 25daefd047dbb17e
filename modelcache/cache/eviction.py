"""Victim selection helpers for namespace stores.

These are pure functions over a mapping of key -> CacheEntry, kept separate
from the store so they can be tested without locking concerns. The store calls
them while holding its own lock.

Policy:
    The store is bounded by entry count. When an insert pushes it over its
    limit, expired entries are purged first; if the store is still too large,
    the surviving entry with the earliest ``expires_at`` is evicted. Entries
    that never expire sort after every finite expiry and are only evicted when
    no finite-expiry entry remains.

    This approximates LRU by expiry rather than by recency: with a single TTL
    per namespace, the earliest expiry is the oldest insert. Reads do not
    refresh an entry's position. Ties among equal earliest expiries go to the
    first entry in insertion order, which is deterministic for a given
    sequence of inserts but not otherwise meaningful.
"""
from __future__ import annotations

from typing import List, Mapping, Optional

from .common import CacheEntry


def select_expired(entries: Mapping[str, CacheEntry], now: float) -> List[str]:
    """Collect the keys of every entry that is stale at ``now``.

    Args:
        entries: Store contents in insertion order
        now: Reference time (Unix seconds)

    Returns:
        Expired keys in insertion order; empty if none.
    """
    return [key for key, entry in entries.items() if entry.is_expired(now)]


def select_expiry_victim(entries: Mapping[str, CacheEntry]) -> Optional[str]:
    """Select the entry with the earliest expiry as eviction victim.

    Single pass over the mapping; only a strictly earlier expiry replaces the
    current candidate, so ties resolve to the first-inserted entry.

    Args:
        entries: Store contents in insertion order

    Returns:
        Key of the victim, or None if ``entries`` is empty.
    """
    victim_key = None
    victim_expiry = None

    for key, entry in entries.items():
        expiry = entry.sort_expiry()
        if victim_key is None or expiry < victim_expiry:
            victim_key = key
            victim_expiry = expiry

    return victim_key
