"""Transparent read-through cache for asynchronous data-access objects.

Wrap a model (any object with asynchronous read operations) and repeated
identical reads within the TTL are served from memory, the number of entries
per model is bounded, and configured write operations invalidate the
model's entries:

    from modelcache import ModelCache

    cache = ModelCache({"User": {"ttl": 300}})
    User = cache.wrap(user_model)
    await User.find_one({"where": {"username": "janedoe"}})
"""

from .cache import (
    CachedModel,
    CacheKey,
    ContractViolationError,
    ModelCache,
    ModelCacheConfigError,
    ModelCacheError,
)
from .config import CacheOptions, NamespaceConfig

__version__ = "1.0.0"

__all__ = [
    "CacheKey",
    "CacheOptions",
    "CachedModel",
    "ContractViolationError",
    "ModelCache",
    "ModelCacheConfigError",
    "ModelCacheError",
    "NamespaceConfig",
]
