"""Process-wide cache facade.

ModelCache owns the configuration of every namespace, one NamespaceStore per
cached namespace, the statistics and the optional ops heartbeat. Data-access
objects are wrapped with ``wrap``; the returned CachedModel behaves like the
original object with its configured read operations served from cache.

Example:
    ```python
    cache = ModelCache(
        {"User": {"ttl": 300}, "Page": {"ttl": False, "limit": 200}},
        {"debug": True, "ops": 60},
    )
    User = cache.wrap(user_repository)

    user = await User.find_one({"where": {"username": "janedoe"}})  # miss, load
    user = await User.find_one({"where": {"username": "janedoe"}})  # hit

    await User.create({"username": "jim"})  # clears the User namespace
    cache.close()
    ```
"""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, Iterable, Mapping, Optional, Set, Union

from ..config.settings import CacheSettings
from ..config.validation import (
    CacheOptions,
    NamespaceConfig,
    parse_cache_config,
    parse_cache_options,
    parse_namespace_config,
)
from .backends import NamespaceStore
from .common import Clock
from .exceptions import ModelCacheError
from .interceptor import CachedModel
from .telemetry import CacheTelemetry, Delegate, Heartbeat

logger = logging.getLogger(__name__)

ConfigInput = Union[NamespaceConfig, Mapping[str, Any]]


def namespace_of(target: Any) -> str:
    """Derive a namespace name from a data-access object."""
    name = getattr(target, "name", None)
    if isinstance(name, str) and name:
        return name
    name = getattr(target, "__name__", None)
    if isinstance(name, str) and name:
        return name
    return type(target).__name__


class ModelCache:
    """Read-through cache for data-access objects grouped by namespace.

    Thread Safety:
        The namespace maps are guarded by a lock; each store has its own.
        Administrative calls may run concurrently with in-flight reads.

    Attributes:
        options: Validated facade options
        telemetry: Event counter and forwarder shared by all namespaces
        heartbeat: The ops heartbeat, or None when ``ops`` is disabled
    """

    def __init__(
        self,
        config: Optional[Mapping[str, ConfigInput]] = None,
        options: Optional[Union[CacheOptions, Mapping[str, Any]]] = None,
        *,
        clock: Optional[Clock] = None,
    ):
        """Initialize the cache.

        Args:
            config: Mapping of namespace name to its configuration
            options: ``{debug, ops, delegate}``
            clock: Time source for entry expiry (defaults to time.time)

        Raises:
            ModelCacheConfigError: If config or options are invalid
        """
        self._configs: Dict[str, NamespaceConfig] = parse_cache_config(config)
        self.options = parse_cache_options(options)
        self._clock = clock
        self._stores: Dict[str, NamespaceStore] = {}
        self._disabled: Set[str] = set()
        self._lock = Lock()
        self._closed = False

        self.telemetry = CacheTelemetry(
            delegate=self.options.delegate,
            debug=self.options.debug,
            sizes=self.sizes,
        )

        self.heartbeat: Optional[Heartbeat] = None
        if self.options.ops > 0:
            self.heartbeat = Heartbeat(self.telemetry, self.options.ops)
            self.heartbeat.start()

        logger.info(
            f"Initialized ModelCache with {len(self._configs)} namespace(s), "
            f"debug={self.options.debug}, ops={self.options.ops}"
        )

    @classmethod
    def from_env(
        cls,
        config: Optional[Mapping[str, ConfigInput]] = None,
        delegate: Optional[Delegate] = None,
        *,
        clock: Optional[Clock] = None,
    ) -> "ModelCache":
        """Build a cache whose options come from ``MODELCACHE_*`` variables.

        Example:
            MODELCACHE_DEBUG=true MODELCACHE_OPS=60 -> debug events plus a
            heartbeat every minute
        """
        return cls(config, CacheSettings().to_options(delegate), clock=clock)

    @property
    def namespaces(self) -> Set[str]:
        """Names of all configured namespaces."""
        with self._lock:
            return set(self._configs)

    def config(self, namespace: str) -> Optional[NamespaceConfig]:
        with self._lock:
            return self._configs.get(namespace)

    def register(self, namespace: str, config: Optional[ConfigInput] = None) -> NamespaceConfig:
        """Add a namespace configuration after construction.

        Args:
            namespace: Namespace name
            config: Config mapping or NamespaceConfig (defaults apply)

        Returns:
            The validated configuration.

        Raises:
            ModelCacheError: If the namespace is already configured
            ModelCacheConfigError: If the configuration is invalid
        """
        parsed = parse_namespace_config(namespace, config)
        with self._lock:
            if namespace in self._configs:
                raise ModelCacheError(f"Namespace {namespace!r} is already configured")
            self._configs[namespace] = parsed
        logger.info(f"Registered cache namespace {namespace}")
        return parsed

    def wrap(self, target: Any, name: Optional[str] = None, config: Optional[ConfigInput] = None) -> CachedModel:
        """Wrap a data-access object.

        The namespace is ``name``, else ``target.name``, else
        ``target.__name__``, else the target's class name. Passing ``config``
        registers the namespace first. A namespace without configuration is
        wrapped as a pass-through that only adds the control operations.

        Args:
            target: Object exposing the namespace's operations
            name: Explicit namespace name
            config: Configuration to register for the namespace

        Returns:
            The caching view of ``target``.
        """
        namespace = name or namespace_of(target)
        if config is not None:
            self.register(namespace, config)

        namespace_config = self.config(namespace)
        if namespace_config is None:
            logger.debug(f"No cache config for {namespace}, wrapping without caching")
            return CachedModel(target, self, namespace, None)

        self.store(namespace)
        self.telemetry.record(
            "init",
            {
                "namespace": namespace,
                "ttl": namespace_config.ttl,
                "methods": list(namespace_config.methods),
                "methods_update": list(namespace_config.methods_update),
                "limit": namespace_config.limit,
                "clear_on_update": namespace_config.clear_on_update,
            },
        )
        return CachedModel(target, self, namespace, namespace_config)

    def store(self, namespace: str) -> NamespaceStore:
        """Get (creating on first use) the store of a configured namespace.

        Raises:
            KeyError: If the namespace is not configured
        """
        with self._lock:
            store = self._stores.get(namespace)
            if store is None:
                config = self._configs[namespace]
                store = NamespaceStore(namespace, config.limit, telemetry=self.telemetry, clock=self._clock)
                self._stores[namespace] = store
            return store

    def clear(self, *namespaces: str) -> int:
        """Remove cached entries.

        Args:
            *namespaces: Namespaces to clear; none means all. Unknown names
                are ignored.

        Returns:
            Number of entries removed.
        """
        count = sum(store.clear() for store in self._select(namespaces))
        if count:
            scope = ", ".join(namespaces) if namespaces else "all namespaces"
            logger.info(f"Cleared {count} cache entries ({scope})")
        return count

    def disable(self, *namespaces: str) -> None:
        """Turn caching off for namespaces (none = all configured).

        Their entries are cleared; their configuration is kept. Reads on a
        disabled namespace call straight through without events.
        """
        names = set(namespaces) if namespaces else self.namespaces
        with self._lock:
            self._disabled.update(names)
        self.clear(*names)
        logger.info(f"Disabled caching for {', '.join(sorted(names))}")

    def enable(self, *namespaces: str) -> None:
        """Turn caching back on for namespaces (none = all)."""
        with self._lock:
            if namespaces:
                self._disabled.difference_update(namespaces)
            else:
                self._disabled.clear()
        logger.info(f"Enabled caching for {', '.join(sorted(namespaces)) if namespaces else 'all namespaces'}")

    def is_enabled(self, namespace: str) -> bool:
        with self._lock:
            return namespace in self._configs and namespace not in self._disabled

    def size(self, *namespaces: str) -> int:
        """Total entry count of the given namespaces (none = all)."""
        return sum(store.size() for store in self._select(namespaces))

    def sizes(self) -> Dict[str, int]:
        """Entry count per namespace that has a store."""
        with self._lock:
            stores = list(self._stores.values())
        return {store.namespace: store.size() for store in stores}

    def stats(self) -> Dict[str, Any]:
        """Snapshot of the counters plus hit ratio and total size."""
        snapshot = self.telemetry.snapshot()
        snapshot["size"] = self.size()
        return snapshot

    def purge(self, *namespaces: str) -> int:
        """Remove expired entries now (none = all namespaces)."""
        return sum(store.purge_expired() for store in self._select(namespaces))

    def close(self) -> None:
        """Stop the heartbeat. Entries and statistics are kept."""
        if self._closed:
            return
        self._closed = True
        if self.heartbeat is not None:
            self.heartbeat.stop()
        logger.info("Closed ModelCache")

    def __enter__(self) -> "ModelCache":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _select(self, namespaces: Iterable[str]) -> list:
        with self._lock:
            if not namespaces:
                return list(self._stores.values())
            return [self._stores[name] for name in namespaces if name in self._stores]
