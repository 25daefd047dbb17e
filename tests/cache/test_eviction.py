"""Unit tests for expiry-based victim selection.

The selection helpers are pure functions over key -> CacheEntry mappings, so
these tests build the mappings directly without a store.
"""
from __future__ import annotations

from modelcache.cache.common import NEVER, CacheEntry, TTLManager
from modelcache.cache.eviction import select_expired, select_expiry_victim


def entry(expires_at, value="v"):
    return CacheEntry(value=value, expires_at=expires_at, created_at=0.0)


class TestSelectExpiryVictim:
    """Tests for earliest-expiry eviction."""

    def test_selects_earliest_expiry(self):
        entries = {"a": entry(300.0), "b": entry(100.0), "c": entry(200.0)}
        assert select_expiry_victim(entries) == "b"

    def test_ties_go_to_first_inserted(self):
        entries = {"late": entry(500.0), "first": entry(100.0), "second": entry(100.0)}
        assert select_expiry_victim(entries) == "first"

    def test_never_expiring_entries_sort_last(self):
        entries = {"forever": entry(NEVER), "finite": entry(10_000.0)}
        assert select_expiry_victim(entries) == "finite"

    def test_only_never_expiring_entries_picks_first_inserted(self):
        entries = {"x": entry(NEVER), "y": entry(NEVER)}
        assert select_expiry_victim(entries) == "x"

    def test_empty_mapping_has_no_victim(self):
        assert select_expiry_victim({}) is None


class TestSelectExpired:
    """Tests for collecting stale entries."""

    def test_collects_expired_in_insertion_order(self):
        entries = {"c": entry(5.0), "a": entry(50.0), "b": entry(1.0), "n": entry(NEVER)}
        assert select_expired(entries, now=10.0) == ["c", "b"]

    def test_expiry_boundary_counts_as_expired(self):
        assert select_expired({"k": entry(10.0)}, now=10.0) == ["k"]

    def test_nothing_expired(self):
        assert select_expired({"k": entry(11.0), "n": entry(NEVER)}, now=10.0) == []


class TestCacheEntry:
    """Tests for entry expiry helpers."""

    def test_never_expires(self):
        forever = entry(NEVER)
        assert forever.never_expires
        assert not forever.is_expired(float("inf"))
        assert forever.sort_expiry() == float("inf")

    def test_ttl_manager(self):
        assert TTLManager.expires_at(None, 100.0) is NEVER
        assert TTLManager.expires_at(300, 100.0) == 400.0
        assert TTLManager.time_until_expiry(entry(400.0), 100.0) == 300.0
        assert TTLManager.time_until_expiry(entry(400.0), 500.0) == 0.0
        assert TTLManager.time_until_expiry(entry(NEVER), 100.0) is None

    def test_to_dict(self):
        data = CacheEntry(value={"id": 1}, expires_at=5.0, created_at=1.0).to_dict()
        assert data == {"expires_at": 5.0, "created_at": 1.0, "value_type": "dict"}
