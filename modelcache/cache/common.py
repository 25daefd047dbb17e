"""
Common cache types and expiry helpers.

Components:
    - CacheEntry: Immutable container for a cached value and its expiry
    - NEVER: Sentinel ``expires_at`` for entries without time-based expiry
    - TTLManager: Expiry computation and freshness checks
    - Clock: Type of the injectable time source used by stores

All timestamps are Unix seconds (float) produced by the store's clock.
"""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

# ``expires_at`` value meaning "never expires"
NEVER: Optional[float] = None


def default_clock() -> float:
    """Wall clock used when no clock is injected."""
    return time.time()


@dataclass(frozen=True)
class CacheEntry:
    """Cached result of one call-through.

    Entries are never mutated; an overwrite replaces the entry wholesale.

    Attributes:
        value: The resolved (non-None) result of the wrapped operation
        expires_at: Unix timestamp after which the entry is stale, or NEVER
        created_at: Unix timestamp of insertion
    """

    value: Any
    expires_at: Optional[float] = NEVER
    created_at: float = field(default_factory=default_clock)

    @property
    def never_expires(self) -> bool:
        return self.expires_at is NEVER

    def is_expired(self, now: float) -> bool:
        """Check whether the entry is stale at ``now``.

        An entry whose expiry instant equals ``now`` counts as expired, so a
        stale value is never served on the boundary.
        """
        if self.expires_at is NEVER:
            return False
        return self.expires_at <= now

    def sort_expiry(self) -> float:
        """Expiry used for eviction ordering (NEVER sorts last)."""
        return math.inf if self.expires_at is NEVER else self.expires_at

    def to_dict(self) -> dict:
        return {
            "expires_at": self.expires_at,
            "created_at": self.created_at,
            "value_type": type(self.value).__name__,
        }


class TTLManager:
    """Utilities for converting TTL settings into expiry instants."""

    @staticmethod
    def expires_at(ttl: Optional[float], now: float) -> Optional[float]:
        """Compute the expiry instant for an entry stored at ``now``.

        Args:
            ttl: Lifetime in seconds, or None for no expiry
            now: Insertion time

        Returns:
            ``now + ttl``, or NEVER when ttl is None.
        """
        if ttl is None:
            return NEVER
        return now + ttl

    @staticmethod
    def time_until_expiry(entry: CacheEntry, now: float) -> Optional[float]:
        """Remaining lifetime in seconds (never negative), None for NEVER."""
        if entry.expires_at is NEVER:
            return None
        return max(0.0, entry.expires_at - now)
