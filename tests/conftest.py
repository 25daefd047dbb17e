"""Global pytest fixtures.

Fixtures:
    - clock: Controllable time source for TTL tests
    - recorder: Delegate collecting forwarded cache events
    - make_cache: Factory for ModelCache instances wired to clock/recorder
    - make_model: Factory for fake data-access objects
"""
from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, Iterator, List, Tuple

import pytest

from modelcache import ModelCache


class FakeClock:
    """Manually advanced clock returning Unix seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class EventRecorder:
    """Delegate storing every forwarded (event, details) pair."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, Dict[str, Any]]] = []

    def __call__(self, event: str, details: Dict[str, Any]) -> None:
        self.calls.append((event, details))

    @property
    def events(self) -> List[str]:
        return [event for event, _ in self.calls]

    def of(self, event: str) -> List[Dict[str, Any]]:
        return [details for name, details in self.calls if name == event]

    def reset(self) -> None:
        self.calls.clear()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recorder() -> EventRecorder:
    return EventRecorder()


@pytest.fixture
def make_cache(clock: FakeClock, recorder: EventRecorder) -> Iterator:
    """Build caches with debug events going to ``recorder``; closed after the test."""
    caches: List[ModelCache] = []

    def factory(config=None, **options) -> ModelCache:
        options.setdefault("debug", True)
        options.setdefault("ops", 0)
        options.setdefault("delegate", recorder)
        cache = ModelCache(config or {}, options, clock=clock)
        caches.append(cache)
        return cache

    yield factory

    for cache in caches:
        cache.close()


@pytest.fixture
def make_model():
    """Build a fake model: ``make_model("User", find_one=AsyncMock(...))``."""

    def factory(name: str = "User", **operations: Any) -> SimpleNamespace:
        return SimpleNamespace(name=name, **operations)

    return factory
