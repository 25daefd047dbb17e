"""Deterministic cache keys for intercepted calls.

A call descriptor ``(namespace, operation, args, kwargs)`` is first rendered
into a canonical text form and then reduced to a fixed-size digest:

    canonical = canonicalize("User", "find_one", ({"where": {"id": 1}},))
    digest = hash_key(canonical)

The canonical form is an order-preserving rendering of the whole argument
graph with no depth or length limit. Truncating it would make distinct queries
share a key, which is the one failure this module exists to prevent. The
renderer is iterative (an explicit stack of generators), so deeply nested
arguments do not hit the interpreter's recursion limit.

Rendering by value kind:
    - None, bool, int, float, complex, str, bytes: ``repr``
    - Enum members: ``<symbol Cls.NAME>``
    - dates, times, Decimal, UUID, paths: ``repr`` (value based)
    - functions, builtins, methods, classes: ``<function mod.qualname:line>``
      style tags, never identity, so an equivalent predicate rebuilt on every
      call maps to the same key
    - closures and functions with defaults: the tag plus the captured cell
      values and defaults, so ``older_than(18)`` and ``older_than(65)``
      differ while two ``older_than(18)`` built separately are equal
    - bound methods: the function plus the state of the bound instance
    - functools.partial: tag of the wrapped callable plus its bound arguments
    - modules: ``<module name>``
    - list / tuple / namedtuple / other sequences: elements in order
    - dict and other mappings: items in insertion order
    - set / frozenset: elements sorted by their canonical form
    - dataclasses and plain objects: class tag plus attribute values
    - anything reached again while still being rendered: ``<Circular>``
    - objects exposing no state at all: class tag

Digests are 128-bit xxh3 hex strings. Collisions are not detected: a
collision would return another call's cached value. At 128 bits the
probability is negligible for an in-process cache, and detecting collisions
would require retaining every argument graph.
"""
from __future__ import annotations

import dataclasses
import functools
import inspect
import uuid
from collections.abc import Mapping, Sequence, Set
from datetime import date, time, timedelta
from decimal import Decimal
from enum import Enum
from fractions import Fraction
from pathlib import PurePath
from typing import Any, Dict, Generator, Iterable, List, Optional, Tuple

import xxhash

_SCALAR_TYPES = (type(None), bool, int, float, complex, str, bytes, bytearray)
_VALUE_REPR_TYPES = (date, time, timedelta, Decimal, Fraction, uuid.UUID, PurePath, range)

CIRCULAR = "<Circular>"

_Render = Generator[Any, str, str]


def _type_tag(tp: type) -> str:
    module = getattr(tp, "__module__", None)
    qualname = getattr(tp, "__qualname__", None) or getattr(tp, "__name__", "?")
    if module in (None, "builtins"):
        return qualname
    return f"{module}.{qualname}"


def _callable_tag(value: Any) -> Optional[str]:
    """Stable tag for callables that carry no data of their own."""
    if isinstance(value, type):
        return f"<class {_type_tag(value)}>"
    if inspect.ismethod(value):
        func = value.__func__
        owner = value.__self__
        owner_tag = _type_tag(owner) if isinstance(owner, type) else _type_tag(type(owner))
        return f"<method {owner_tag}.{func.__name__}>"
    if inspect.isfunction(value):
        code = value.__code__
        return f"<function {_type_tag(value)}:{code.co_firstlineno}>"
    if inspect.isbuiltin(value) or inspect.ismethoddescriptor(value):
        return f"<builtin {_type_tag(value)}>"
    return None


def _carries_state(value: Any) -> bool:
    """Whether a callable holds data beyond its definition site.

    Closure cells, argument defaults and the instance a method is bound to
    all change what a call does, so such callables are rendered with that
    data rather than by tag alone.
    """
    if inspect.isfunction(value):
        return bool(value.__closure__ or value.__defaults__ or value.__kwdefaults__)
    if inspect.ismethod(value):
        return not isinstance(value.__self__, type)
    if inspect.isbuiltin(value):
        owner = getattr(value, "__self__", None)
        return owner is not None and not inspect.ismodule(owner) and not isinstance(owner, type)
    return False


class _Renderer:
    """Single-use iterative renderer for one argument graph."""

    def __init__(self) -> None:
        self._active: set = set()

    def render(self, root: Any) -> str:
        leaf = self._leaf(root)
        if leaf is not None:
            return leaf

        stack: List[Tuple[_Render, int]] = [(self._enter(root), id(root))]
        sent: Optional[str] = None
        while True:
            gen, obj_id = stack[-1]
            try:
                child = gen.send(sent)
            except StopIteration as done:
                stack.pop()
                self._active.discard(obj_id)
                if not stack:
                    return done.value
                sent = done.value
                continue

            leaf = self._leaf(child)
            if leaf is not None:
                sent = leaf
            elif id(child) in self._active:
                sent = CIRCULAR
            else:
                stack.append((self._enter(child), id(child)))
                sent = None

    def _leaf(self, value: Any) -> Optional[str]:
        # Enum before scalars: IntEnum/StrEnum members are ints/strs too
        if isinstance(value, Enum):
            return f"<symbol {_type_tag(type(value))}.{value.name}>"
        if isinstance(value, _SCALAR_TYPES):
            return repr(value)
        if isinstance(value, _VALUE_REPR_TYPES):
            return repr(value)
        if inspect.ismodule(value):
            return f"<module {value.__name__}>"
        if isinstance(value, functools.partial) or _carries_state(value):
            return None
        return _callable_tag(value)

    def _enter(self, value: Any) -> _Render:
        self._active.add(id(value))

        if isinstance(value, functools.partial):
            return self._partial(value)
        if inspect.isfunction(value):
            return self._function(value)
        if inspect.ismethod(value) or inspect.isbuiltin(value):
            return self._bound(value)
        if isinstance(value, tuple) and hasattr(type(value), "_fields"):
            return self._fields(_type_tag(type(value)), zip(value._fields, value))
        if isinstance(value, list):
            return self._sequence(value, "[", "]")
        if isinstance(value, tuple):
            return self._sequence(value, "(", ")")
        if isinstance(value, Mapping):
            prefix = "" if type(value) is dict else _type_tag(type(value))
            return self._mapping(value.items(), prefix)
        if isinstance(value, Set):
            return self._set(value, _type_tag(type(value)))
        if isinstance(value, Sequence):
            return self._sequence(value, f"{_type_tag(type(value))}[", "]")
        if dataclasses.is_dataclass(value):
            pairs = ((f.name, getattr(value, f.name)) for f in dataclasses.fields(value))
            return self._fields(_type_tag(type(value)), pairs)
        return self._object(value)

    def _sequence(self, items: Iterable[Any], open_: str, close: str) -> _Render:
        parts = []
        for item in items:
            parts.append((yield item))
        return open_ + ", ".join(parts) + close

    def _mapping(self, items: Iterable[Tuple[Any, Any]], prefix: str) -> _Render:
        parts = []
        for key, item in items:
            rendered_key = yield key
            rendered_value = yield item
            parts.append(f"{rendered_key}: {rendered_value}")
        return prefix + "{" + ", ".join(parts) + "}"

    def _set(self, items: Iterable[Any], tag: str) -> _Render:
        parts = []
        for item in items:
            parts.append((yield item))
        return tag + "{" + ", ".join(sorted(parts)) + "}"

    def _fields(self, tag: str, pairs: Iterable[Tuple[str, Any]]) -> _Render:
        parts = []
        for name, item in pairs:
            rendered = yield item
            parts.append(f"{name}={rendered}")
        return f"{tag}(" + ", ".join(parts) + ")"

    def _partial(self, value: functools.partial) -> _Render:
        func = yield value.func
        args = yield value.args
        keywords = yield dict(sorted(value.keywords.items()))
        return f"<partial {func} {args} {keywords}>"

    def _function(self, value: Any) -> _Render:
        parts = []
        if value.__closure__:
            cells = []
            for name, cell in zip(value.__code__.co_freevars, value.__closure__):
                try:
                    contents = cell.cell_contents
                except ValueError:
                    # free variable not assigned yet
                    cells.append(f"{name}=<empty>")
                    continue
                rendered = yield contents
                cells.append(f"{name}={rendered}")
            parts.append("closure(" + ", ".join(cells) + ")")
        if value.__defaults__:
            defaults = yield value.__defaults__
            parts.append(f"defaults{defaults}")
        if value.__kwdefaults__:
            kwdefaults = yield dict(sorted(value.__kwdefaults__.items()))
            parts.append(f"kwdefaults{kwdefaults}")
        return _callable_tag(value)[:-1] + " " + " ".join(parts) + ">"

    def _bound(self, value: Any) -> _Render:
        if inspect.ismethod(value):
            func = yield value.__func__
            tag = f"<method {func}"
        else:
            tag = f"<builtin {_type_tag(value)}"
        owner = yield value.__self__
        return f"{tag} of {owner}>"

    def _object(self, value: Any) -> _Render:
        tag = _type_tag(type(value))
        state = _object_state(value)
        if state is None:
            return f"<{tag}>"
        parts = []
        for name, item in state:
            rendered = yield item
            parts.append(f"{name}: {rendered}")
        return f"<{tag} " + "{" + ", ".join(parts) + "}>"


def _object_state(value: Any) -> Optional[List[Tuple[str, Any]]]:
    """Attribute pairs of a plain object, or None if it exposes no state."""
    pairs: List[Tuple[str, Any]] = []
    found = False
    attrs = getattr(value, "__dict__", None)
    if isinstance(attrs, dict):
        found = True
        pairs.extend(attrs.items())
    for klass in type(value).__mro__:
        slots = klass.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for slot in slots:
            if slot in ("__dict__", "__weakref__"):
                continue
            found = True
            if hasattr(value, slot):
                pairs.append((slot, getattr(value, slot)))
    return pairs if found else None


def canonical_form(value: Any) -> str:
    """Render any value into its canonical text form."""
    return _Renderer().render(value)


def canonicalize(
    namespace: str,
    operation: str,
    args: Sequence[Any] = (),
    kwargs: Optional[Mapping[str, Any]] = None,
) -> str:
    """Build the canonical form of a call descriptor.

    Keyword arguments are rendered sorted by name since their order does not
    change the call. Positional arguments keep their order.

    Args:
        namespace: Namespace (model) name
        operation: Operation (method) name
        args: Positional arguments of the call
        kwargs: Keyword arguments of the call

    Returns:
        Canonical text form of the call.
    """
    keywords: Dict[str, Any] = dict(sorted((kwargs or {}).items()))
    return canonical_form((namespace, operation, list(args), keywords))


def hash_key(canonical: str) -> str:
    """Reduce a canonical form to a 32 character xxh3-128 hex digest."""
    return xxhash.xxh3_128_hexdigest(canonical.encode("utf-8", "surrogatepass"))


@dataclasses.dataclass(frozen=True)
class CacheKey:
    """Key of one intercepted call.

    Attributes:
        namespace: Namespace the call belongs to
        operation: Name of the intercepted operation
        canonical: Canonical text form of the full call descriptor
        digest: Fixed-size hash of ``canonical``, used as the store key
    """

    namespace: str
    operation: str
    canonical: str
    digest: str

    def __str__(self) -> str:
        return self.digest

    @classmethod
    def build(
        cls,
        namespace: str,
        operation: str,
        args: Sequence[Any] = (),
        kwargs: Optional[Mapping[str, Any]] = None,
    ) -> "CacheKey":
        canonical = canonicalize(namespace, operation, args, kwargs)
        return cls(
            namespace=namespace,
            operation=operation,
            canonical=canonical,
            digest=hash_key(canonical),
        )
