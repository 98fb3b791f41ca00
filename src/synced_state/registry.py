"""Synced event registry: event name to local/sync handler pair.

Each registration pairs a *local* function, run in the session that raised
the event, with a *sync* function, run in every session subscribed to the
consumer's topic when the local result is broadcast::

    table = SyncedEventTable()

    def add_item(payload, session):
        session = {**session, "items": [*session["items"], payload]}
        return "noreply", session, payload

    def sync_items(item, session):
        return "noreply", {**session, "last_added": item}

    register_synced_event(table, "add-item", add_item, sync_items)

Registration normally happens at import time, but the table is locked so
threads may register concurrently.
"""

import threading
from collections.abc import Iterator
from dataclasses import dataclass

from synced_state._errors import RegistrationError
from synced_state._types import EventName, LocalFunc, SyncFunc


@dataclass(frozen=True, slots=True)
class SyncedEvent:
    """One registered local/sync handler pair.

    Attributes:
        name: Event name both handlers answer to.
        local: ``(payload, session) -> (disposition, session, result)``.
        sync: ``(result, session) -> (disposition, session)``.

    """

    name: EventName
    local: LocalFunc
    sync: SyncFunc


class SyncedEventTable:
    """Dispatch table of SyncedEvent pairs keyed by event name.

    Iteration and ``events`` follow registration order.  Lookups return
    the pair registered last under a name when ``replace=True`` was used.

    """

    __slots__ = ("_events", "_lock")

    def __init__(self) -> None:
        self._events: dict[EventName, SyncedEvent] = {}
        self._lock = threading.Lock()

    def register(
        self,
        name: EventName,
        local: LocalFunc,
        sync: SyncFunc,
        *,
        replace: bool = False,
    ) -> SyncedEvent:
        """Register a local/sync pair under *name*.

        Raises:
            RegistrationError: If *name* is not a non-empty string, either
                handler is not callable, or *name* is already registered
                and *replace* is false.

        """
        if not isinstance(name, str) or not name:
            msg = f"Event name must be a non-empty string, got {name!r}"
            raise RegistrationError(msg)
        if not callable(local):
            msg = f"Local handler for {name!r} is not callable: {local!r}"
            raise RegistrationError(msg)
        if not callable(sync):
            msg = f"Sync handler for {name!r} is not callable: {sync!r}"
            raise RegistrationError(msg)

        pair = SyncedEvent(name=name, local=local, sync=sync)
        with self._lock:
            if name in self._events and not replace:
                msg = (
                    f"Duplicate synced event {name!r}: "
                    f"already handled by {_describe(self._events[name].local)}"
                )
                raise RegistrationError(msg)
            self._events[name] = pair
        return pair

    def get(self, name: EventName) -> SyncedEvent | None:
        """Return the pair registered under *name*, or None."""
        with self._lock:
            return self._events.get(name)

    @property
    def events(self) -> tuple[EventName, ...]:
        """Registered event names, in registration order."""
        with self._lock:
            return tuple(self._events)

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._events

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def __iter__(self) -> Iterator[SyncedEvent]:
        with self._lock:
            pairs = tuple(self._events.values())
        return iter(pairs)


def register_synced_event(
    table: SyncedEventTable,
    event_name: EventName,
    local_fn: LocalFunc,
    sync_fn: SyncFunc,
    *,
    replace: bool = False,
) -> SyncedEvent:
    """Register *local_fn* and *sync_fn* together under *event_name*.

    Functional form of ``SyncedEventTable.register``.
    """
    return table.register(event_name, local_fn, sync_fn, replace=replace)


def _describe(func: object) -> str:
    module = getattr(func, "__module__", None)
    qualname = getattr(func, "__qualname__", None) or repr(func)
    return f"{module}.{qualname}" if module else qualname
