"""Cache statistics, event forwarding and the ops heartbeat.

Every cache event goes through ``CacheTelemetry.record``. Counting always
happens; forwarding to the delegate depends on the event kind and the
``debug`` option:

    ======  =====================  =====================
    event   debug=False            debug=True
    ======  =====================  =====================
    init    dropped                forwarded
    hit     counted, dropped       counted, forwarded
    miss    counted, dropped       counted, forwarded
    load    counted, dropped       counted, forwarded
    purge   counted, dropped       counted, forwarded
    ops     forwarded              forwarded
    ======  =====================  =====================

Forwarded details always carry ``stats`` (a snapshot dict). In debug mode they
also carry ``sizes`` (entry count per namespace).

The default delegate writes one DEBUG record per event to the ``modelcache``
logger, pretty-printing the details with rich.

The Heartbeat is a daemon thread owned by the cache facade. It only reads
counters and store sizes, each under its own short lock, so it never waits on
an in-flight call-through.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from threading import Event, Lock, Thread, current_thread
from typing import Any, Callable, Dict, Optional

from rich.pretty import pretty_repr

logger = logging.getLogger(__name__)

events_logger = logging.getLogger("modelcache")

Delegate = Callable[[str, Dict[str, Any]], None]
SizesProvider = Callable[[], Dict[str, int]]

COUNTED_EVENTS = ("hit", "miss", "load", "purge")
DEBUG_ONLY_EVENTS = ("init", "hit", "miss", "load", "purge")
EVENT_KINDS = DEBUG_ONLY_EVENTS + ("ops",)


@dataclass
class CacheStats:
    """Process-wide cache counters.

    ``evict`` counts capacity evictions; it has no event of its own.
    """

    hit: int = 0
    miss: int = 0
    load: int = 0
    purge: int = 0
    evict: int = 0

    @property
    def hit_ratio(self) -> float:
        """Share of watched reads served from cache.

        Returns:
            ``hit / (hit + miss)``, or 0.0 before the first cached read.
        """
        total = self.hit + self.miss
        if total == 0:
            return 0.0
        return self.hit / total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hit": self.hit,
            "miss": self.miss,
            "load": self.load,
            "purge": self.purge,
            "evict": self.evict,
            "hit_ratio": self.hit_ratio,
        }


def log_delegate(event: str, details: Dict[str, Any]) -> None:
    """Default delegate: one DEBUG record per forwarded event."""
    if events_logger.isEnabledFor(logging.DEBUG):
        events_logger.debug(f">>> CACHE {event.upper()} >>> {pretty_repr(details)}")


class CacheTelemetry:
    """Counts cache events and forwards them to a delegate."""

    def __init__(
        self,
        delegate: Optional[Delegate] = None,
        debug: bool = False,
        sizes: Optional[SizesProvider] = None,
    ):
        """Initialize telemetry.

        Args:
            delegate: Event sink ``(event, details) -> None``; defaults to
                log_delegate
            debug: Forward per-call events and attach namespace sizes
            sizes: Callable returning entry counts per namespace
        """
        self.delegate = delegate or log_delegate
        self.debug = debug
        self._sizes = sizes
        self._stats = CacheStats()
        self._lock = Lock()

    def record(self, event: str, details: Optional[Dict[str, Any]] = None) -> None:
        """Count an event and forward it according to the filtering policy.

        Args:
            event: One of init, hit, miss, load, purge, ops
            details: Event specific fields; copied, never mutated

        Raises:
            ValueError: For an unknown event kind
        """
        if event not in EVENT_KINDS:
            raise ValueError(f"Unknown cache event: {event}")

        with self._lock:
            if event in COUNTED_EVENTS:
                setattr(self._stats, event, getattr(self._stats, event) + 1)
            snapshot = self._stats.to_dict()

        if not self.debug and event in DEBUG_ONLY_EVENTS:
            return

        out = dict(details or {})
        out["stats"] = snapshot
        if self.debug and self._sizes is not None:
            out["sizes"] = self._sizes()
        self.delegate(event, out)

    def count_eviction(self) -> None:
        with self._lock:
            self._stats.evict += 1

    def snapshot(self) -> Dict[str, Any]:
        """Current counters plus hit ratio."""
        with self._lock:
            return self._stats.to_dict()

    def ops_snapshot(self) -> Dict[str, Any]:
        """Details of a heartbeat ``ops`` event."""
        sizes = self._sizes() if self._sizes is not None else {}
        return {"sizes": sizes, "size": sum(sizes.values())}


class Heartbeat:
    """Periodic ``ops`` event emitter running on a daemon thread.

    Stoppable on its own (``stop()``) as well as through the facade's
    ``close()``.
    """

    def __init__(self, telemetry: CacheTelemetry, interval: float):
        if interval <= 0:
            raise ValueError(f"Heartbeat interval must be positive, got {interval}")
        self.telemetry = telemetry
        self.interval = interval
        self._stopped = Event()
        self._thread: Optional[Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.is_running:
            return
        self._stopped.clear()
        self._thread = Thread(target=self._run, name="modelcache-heartbeat", daemon=True)
        self._thread.start()
        logger.info(f"Started cache heartbeat every {self.interval}s")

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop emitting; waits for the thread unless called from it."""
        self._stopped.set()
        thread = self._thread
        if thread is not None and thread.is_alive():
            if thread is not current_thread():
                thread.join(timeout)
        self._thread = None

    def beat(self) -> None:
        """Emit a single ``ops`` event now."""
        self.telemetry.record("ops", self.telemetry.ops_snapshot())

    def _run(self) -> None:
        while not self._stopped.wait(self.interval):
            try:
                self.beat()
            except Exception:
                # delegate errors are logged, the heartbeat keeps running
                logger.exception("Cache heartbeat delegate failed")
