"""Transparent interception of a target's read and write operations.

``CachedModel`` is built once per wrapped target. At construction it creates
one wrapper per configured operation name:

    - read names (``methods``) get a CachedOperation that serves fresh
      entries from the namespace store and loads misses through the target
    - write names (``methods_update``) get an InvalidatingOperation that
      clears the namespace store before delegating

Every other attribute is forwarded to the target unchanged, both for reading
and for assignment, so test doubles patched through the wrapper end up on
the target and are still intercepted.

Control operations on every wrapper:
    - ``no_cache()``: the raw target, every operation goes straight through
    - ``clear_cache()``: clear this namespace
    - ``clear_cache_all()``: clear every namespace

Read call flow (synchronous up to the returned awaitable):

    transaction marker or namespace disabled -> call through, no events
    fresh entry                               -> "hit", awaitable of the value
    otherwise                                 -> "miss", call target
        non-awaitable result                  -> ContractViolationError now
        awaited value is not None             -> put + "load"
        awaited failure                       -> propagates, nothing cached
"""
from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Awaitable, Dict, Optional

from .exceptions import ContractViolationError
from .keys import CacheKey

if TYPE_CHECKING:
    from ..config.validation import NamespaceConfig
    from .model_cache import ModelCache

logger = logging.getLogger(__name__)

TRANSACTION_KEY = "transaction"

_OWN_ATTRIBUTES = frozenset(
    {"_target", "_cache", "_namespace", "_config", "_operations", "_shadowed", "__wrapped__"}
)


def has_transaction(args: tuple, kwargs: Dict[str, Any]) -> bool:
    """Check whether a call runs inside an active transaction.

    A call is transactional if it has a truthy ``transaction`` keyword, or if
    any positional argument or keyword value is a mapping with a truthy
    ``transaction`` entry, or an options object whose instance attributes
    hold a truthy ``transaction``. Attributes provided dynamically (e.g. by
    ``__getattr__``) are not consulted.
    """
    if kwargs.get(TRANSACTION_KEY):
        return True
    for value in (*args, *kwargs.values()):
        if isinstance(value, Mapping):
            if value.get(TRANSACTION_KEY):
                return True
            continue
        attrs = getattr(value, "__dict__", None)
        if isinstance(attrs, dict) and attrs.get(TRANSACTION_KEY):
            return True
    return False


async def _resolved(value: Any) -> Any:
    return value


class _OperationProxy:
    """Common base: forwards attribute access to the underlying operation.

    The underlying operation is looked up on the target at use time, so
    replacing it on the target (``patch.object``) is picked up.
    """

    def __init__(self, model: "CachedModel", name: str):
        self._model = model
        self._name = name

    @property
    def __wrapped__(self) -> Any:
        return getattr(self._model._target, self._name)

    @property
    def __name__(self) -> str:
        return self._name

    def __getattr__(self, attr: str) -> Any:
        return getattr(getattr(self._model._target, self._name), attr)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self._model._namespace}.{self._name}>"


class CachedOperation(_OperationProxy):
    """Caching wrapper of one watched read operation."""

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        model = self._model
        operation = getattr(model._target, self._name)

        if has_transaction(args, kwargs) or not model._cache.is_enabled(model._namespace):
            return operation(*args, **kwargs)

        namespace = model._namespace
        cache = model._cache
        store = cache.store(namespace)
        key = CacheKey.build(namespace, self._name, args, kwargs)

        entry = store.get(key.digest)
        if entry is not None:
            cache.telemetry.record(
                "hit",
                {
                    "namespace": namespace,
                    "method": self._name,
                    "key": key.canonical,
                    "hash": key.digest,
                    "expires_at": entry.expires_at,
                    "data": entry.value,
                },
            )
            return _resolved(entry.value)

        cache.telemetry.record(
            "miss",
            {"namespace": namespace, "method": self._name, "key": key.canonical, "hash": key.digest},
        )
        pending = operation(*args, **kwargs)
        if not inspect.isawaitable(pending):
            raise ContractViolationError(namespace, self._name, type(pending).__name__)
        return self._load(key, pending)

    async def _load(self, key: CacheKey, pending: Awaitable[Any]) -> Any:
        value = await pending
        model = self._model
        # disabled while in flight: keep the namespace empty
        if value is None or not model._cache.is_enabled(key.namespace):
            return value

        entry = model._cache.store(key.namespace).put(key.digest, value, model._config.ttl)
        model._cache.telemetry.record(
            "load",
            {
                "namespace": key.namespace,
                "method": key.operation,
                "key": key.canonical,
                "hash": key.digest,
                "expires_at": entry.expires_at,
                "data": value,
            },
        )
        return value


class InvalidatingOperation(_OperationProxy):
    """Wrapper of one watched write operation.

    Clears the namespace before delegating when ``clear_on_update`` is set.
    The target's result (plain value or awaitable) is returned unchanged.
    """

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        model = self._model
        operation = getattr(model._target, self._name)
        if model._config.clear_on_update:
            cleared = model._cache.clear(model._namespace)
            if cleared:
                logger.debug(f"{model._namespace}.{self._name}() invalidated {cleared} entries")
        return operation(*args, **kwargs)


class CachedModel:
    """Caching view of a data-access object.

    Args:
        target: The object being wrapped
        cache: Owning ModelCache
        namespace: Namespace name
        config: Namespace configuration, or None for a pass-through wrapper
    """

    def __init__(
        self,
        target: Any,
        cache: "ModelCache",
        namespace: str,
        config: Optional["NamespaceConfig"] = None,
    ):
        object.__setattr__(self, "_target", target)
        object.__setattr__(self, "_cache", cache)
        object.__setattr__(self, "_namespace", namespace)
        object.__setattr__(self, "_config", config)

        operations: Dict[str, _OperationProxy] = {}
        if config is not None:
            for name in config.methods:
                operations[name] = CachedOperation(self, name)
            for name in config.methods_update:
                operations[name] = InvalidatingOperation(self, name)
        object.__setattr__(self, "_operations", operations)
        # watched operations of the target's own __dict__ replaced through
        # this wrapper, restored when the replacement is deleted again
        object.__setattr__(self, "_shadowed", {})

    @property
    def __wrapped__(self) -> Any:
        return self._target

    @property
    def namespace(self) -> str:
        return self._namespace

    def no_cache(self) -> Any:
        """Bypass view: the unwrapped target."""
        return self._target

    def clear_cache(self) -> int:
        """Clear this namespace's entries."""
        return self._cache.clear(self._namespace)

    def clear_cache_all(self) -> int:
        """Clear the entries of every namespace."""
        return self._cache.clear()

    def __getattr__(self, name: str) -> Any:
        operations = object.__getattribute__(self, "_operations")
        target = object.__getattribute__(self, "_target")
        if name in operations and hasattr(target, name):
            return operations[name]
        return getattr(target, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _OWN_ATTRIBUTES:
            raise AttributeError(f"{name} is read-only on a cached model")
        if name in self._operations and value is self._operations[name]:
            # restoring this wrapper's own proxy; the target keeps its operation
            return
        target = self._target
        own = getattr(target, "__dict__", None)
        if name in self._operations and name not in self._shadowed and isinstance(own, dict) and name in own:
            self._shadowed[name] = own[name]
        setattr(target, name, value)

    def __delattr__(self, name: str) -> None:
        delattr(self._target, name)
        if name in self._shadowed:
            setattr(self._target, name, self._shadowed.pop(name))

    def __dir__(self):
        return sorted(set(dir(self._target)) | {"no_cache", "clear_cache", "clear_cache_all", "namespace"})

    def __repr__(self) -> str:
        state = "cached" if self._config is not None else "uncached"
        return f"<CachedModel {self._namespace} ({state}) of {self._target!r}>"
