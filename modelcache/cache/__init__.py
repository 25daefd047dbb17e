"""Read-through caching engine.

Components:
    Keys:
        - canonicalize / hash_key: Deterministic call descriptors and digests
        - CacheKey: Canonical form plus digest of one intercepted call

    Storage:
        - NamespaceStore: Bounded, TTL-aware entry store of one namespace
        - CacheEntry: Cached value with its expiry

    Interception:
        - CachedModel: Caching view of a data-access object
        - ModelCache: Facade owning configs, stores, stats and heartbeat

    Telemetry:
        - CacheStats / CacheTelemetry: Counters and event forwarding
        - Heartbeat: Periodic ``ops`` snapshots
"""

from .backends import NamespaceStore
from .common import NEVER, CacheEntry
from .exceptions import ContractViolationError, ModelCacheConfigError, ModelCacheError
from .interceptor import CachedModel, CachedOperation, InvalidatingOperation, has_transaction
from .keys import CacheKey, canonical_form, canonicalize, hash_key
from .model_cache import ModelCache
from .telemetry import CacheStats, CacheTelemetry, Heartbeat

__all__ = [
    "CacheEntry",
    "CacheKey",
    "CacheStats",
    "CacheTelemetry",
    "CachedModel",
    "CachedOperation",
    "ContractViolationError",
    "Heartbeat",
    "InvalidatingOperation",
    "ModelCache",
    "ModelCacheConfigError",
    "ModelCacheError",
    "NEVER",
    "NamespaceStore",
    "canonical_form",
    "canonicalize",
    "has_transaction",
    "hash_key",
]
