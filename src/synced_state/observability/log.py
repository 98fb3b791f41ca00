"""Dispatch log: the last N dispatch events, newest kept.

``EventLog`` keeps a fixed-size window of the events a SyncCollector
records.  Once the window is full each append evicts the oldest event.
Readers get list snapshots, so no lock is held while they iterate.

A single ``threading.Lock`` guards the window; writers on several
threads may share one log.
"""

import threading
from collections import Counter, deque
from collections.abc import Callable
from itertools import islice
from typing import Any

from synced_state.observability.events import DispatchEvent


class EventLog:
    """Fixed-size window of dispatch events.

    Args:
        max_events: How many events the window holds.

    """

    __slots__ = ("_capacity", "_lock", "_window")

    def __init__(self, max_events: int = 10_000) -> None:
        self._capacity = max_events
        self._window: deque[DispatchEvent] = deque(maxlen=max_events)
        self._lock = threading.Lock()

    @property
    def max_events(self) -> int:
        return self._capacity

    def append(self, event: DispatchEvent) -> None:
        with self._lock:
            self._window.append(event)

    def _snapshot(self) -> list[DispatchEvent]:
        with self._lock:
            return list(self._window)

    def query(
        self,
        *,
        event_type: type | None = None,
        since_ns: int = 0,
        event_name: str | None = None,
        limit: int = 100,
    ) -> list[DispatchEvent]:
        """Events passing every given filter, newest first, at most *limit*.

        *since_ns* keeps events stamped at or after that ``time.time_ns()``
        value; *event_name* compares against the synced event name.
        """
        checks: list[Callable[[DispatchEvent], bool]] = []
        if event_type is not None:
            checks.append(lambda e: isinstance(e, event_type))
        if since_ns:
            checks.append(lambda e: e.timestamp_ns >= since_ns)
        if event_name is not None:
            checks.append(lambda e: e.event == event_name)

        newest_first = reversed(self._snapshot())
        hits = (e for e in newest_first if all(check(e) for check in checks))
        return list(islice(hits, limit))

    def recent(self, n: int = 20) -> list[DispatchEvent]:
        """The *n* latest events, oldest of them first."""
        return self._snapshot()[-n:] if n > 0 else []

    def clear(self) -> int:
        """Empty the window; returns how many events were dropped."""
        with self._lock:
            dropped = len(self._window)
            self._window.clear()
        return dropped

    def __len__(self) -> int:
        with self._lock:
            return len(self._window)

    def stats(self) -> dict[str, Any]:
        """Counts per event class and per synced event name."""
        events = self._snapshot()
        return {
            "total": len(events),
            "max_events": self._capacity,
            "by_type": dict(Counter(type(e).__name__ for e in events)),
            "by_event": dict(Counter(e.event for e in events)),
        }
