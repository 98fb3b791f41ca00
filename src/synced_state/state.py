"""SyncedState: define local and sync handlers together.

A SyncedState consumer owns one topic and one broadcast target.  Each
registered event gets two handlers:

- ``handle_event`` runs the local function in the session that raised the
  event, broadcasts the local result on the topic, and returns
  ``(disposition, session)`` to the runtime.
- ``handle_info`` runs the sync function in every session that receives the
  broadcast (the originating session included) and returns its result.

Example::

    room = SyncedState("room:lobby", pubsub)

    def apply_message(text, session):
        return NOREPLY, {**session, "messages": [*session["messages"], text]}

    @room.sync_state("post", after=apply_message)
    def post(text, session):
        return NOREPLY, {**session, "draft": ""}, text

    disposition, session = room.handle_event("post", "hi", session)
    # ... later, in every subscribed session:
    disposition, session = room.handle_info(message, session)

"""

from __future__ import annotations

import time
from typing import TYPE_CHECKING, Any

from synced_state._errors import (
    ConfigError,
    LocalResultError,
    SyncResultError,
    UnhandledMessageError,
    UnknownEventError,
)
from synced_state.config import SyncedStateConfig
from synced_state.message import MISSING, read_field
from synced_state.registry import SyncedEvent, SyncedEventTable

if TYPE_CHECKING:
    from synced_state._types import (
        BroadcastTarget,
        EventName,
        FallbackFunc,
        LocalFunc,
        SyncFunc,
        Topic,
        UnmatchedResolution,
    )
    from synced_state.observability.collector import SyncCollector

# Conventional disposition tag: nothing to send back to the client
NOREPLY = "noreply"


class SyncedState:
    """Dispatcher for the local/sync handler pairs of one topic.

    Args:
        topic: Broadcast channel for every pair of this consumer.  May be
            omitted when *config* carries it.
        target: Broadcast target, called as
            ``target.broadcast(topic, event, result)``.
        config: Full configuration; built from *topic* when omitted.
        table: Dispatch table to use (a fresh one by default).
        fallback: Called as ``fallback(message, session)`` for sync messages
            no pair claims; its return value is returned by ``handle_info``.
        collector: Records one observability event per dispatch step.

    Raises:
        ConfigError: If neither *topic* nor *config* is given, or both are
            given with different topics.

    """

    __slots__ = ("_collector", "_config", "_fallback", "_table", "_target")

    def __init__(
        self,
        topic: Topic | None = None,
        target: BroadcastTarget | None = None,
        *,
        config: SyncedStateConfig | None = None,
        table: SyncedEventTable | None = None,
        fallback: FallbackFunc | None = None,
        collector: SyncCollector | None = None,
    ) -> None:
        if config is None:
            if topic is None:
                msg = "SyncedState requires a topic or a config"
                raise ConfigError(msg)
            config = SyncedStateConfig(topic=topic)
        elif topic is not None and topic != config.topic:
            msg = f"topic {topic!r} conflicts with config topic {config.topic!r}"
            raise ConfigError(msg)
        if target is None or not callable(getattr(target, "broadcast", None)):
            msg = f"target must provide broadcast(topic, event, payload), got {target!r}"
            raise ConfigError(msg)

        self._config = config
        self._target = target
        self._table = table if table is not None else SyncedEventTable()
        self._fallback = fallback
        self._collector = collector

    @classmethod
    def for_module(
        cls,
        module_name: str,
        target: BroadcastTarget,
        **kwargs: Any,
    ) -> SyncedState:
        """Build a consumer whose topic is the dotted module name.

        Typical use is ``SyncedState.for_module(__name__, pubsub)`` at the
        top of the module that registers the pairs.
        """
        return cls(module_name, target, **kwargs)

    @property
    def topic(self) -> Topic:
        """The topic every pair of this consumer broadcasts on."""
        return self._config.topic

    @property
    def config(self) -> SyncedStateConfig:
        return self._config

    @property
    def target(self) -> BroadcastTarget:
        return self._target

    @property
    def table(self) -> SyncedEventTable:
        return self._table

    @property
    def events(self) -> tuple[EventName, ...]:
        """Registered event names, in registration order."""
        return self._table.events

    # ----- Registration -----

    def sync_state(
        self,
        event: EventName,
        local: LocalFunc | None = None,
        *,
        after: SyncFunc,
        replace: bool = False,
    ) -> Any:
        """Register a local function and its sync function under *event*.

        Called with *local*, registers immediately and returns the
        SyncedEvent.  Called without it, returns a decorator that registers
        the decorated function as the local handler and returns the function
        unchanged.

        Raises:
            RegistrationError: On invalid handlers or a duplicate *event*
                (unless *replace* is true).

        """
        if local is not None:
            return self._table.register(event, local, after, replace=replace)

        def decorator(func: LocalFunc) -> LocalFunc:
            self._table.register(event, func, after, replace=replace)
            return func

        return decorator

    # ----- Dispatch -----

    def handle_event(self, event: EventName, payload: Any, session: Any) -> tuple[Any, Any]:
        """Run the local handler for *event* and broadcast its result.

        The local function is called as ``local(payload, session)`` and must
        return ``(disposition, session, result)``.  ``result`` is broadcast
        exactly once, after the local function returns and before this
        method does; it is not part of the return value.

        Raises:
            UnknownEventError: If no pair is registered under *event*.
            LocalResultError: If the local result is not a 3-tuple.  Nothing
                is broadcast in that case.

        """
        pair = self._table.get(event)
        if pair is None:
            msg = f"No synced event {event!r} registered on topic {self.topic!r}"
            raise UnknownEventError(msg)

        t0 = time.perf_counter()
        disposition, session, result = _unpack_local(pair, pair.local(payload, session))

        self._target.broadcast(self.topic, event, result)

        if self._collector is not None:
            self._collector.record_broadcast(self.topic, event)
            self._collector.record_event_handled(
                self.topic, event, duration_ms=(time.perf_counter() - t0) * 1000
            )
        return disposition, session

    def handle_info(self, message: Any, session: Any) -> Any:
        """Run the sync handler matching *message* and return its result.

        A message matches when its ``topic`` equals this consumer's topic
        and its ``event`` is registered.  The sync function is called as
        ``sync(payload, session)``; its ``(disposition, session)`` result is
        returned unchanged.

        Unmatched messages go to the fallback when one is configured,
        otherwise they are ignored or raise according to
        ``config.on_unmatched``.

        Raises:
            UnhandledMessageError: For an unmatched message under the
                ``"raise"`` policy with no fallback.
            SyncResultError: If the sync result is not a 2-tuple.  The sync
                function has already run; nothing is rolled back.

        """
        pair = self._match(message)
        if pair is None:
            return self._handle_unmatched(message, session)

        t0 = time.perf_counter()
        result = pair.sync(read_field(message, "payload"), session)
        _check_sync(pair, result)

        if self._collector is not None:
            self._collector.record_sync_applied(
                self.topic, pair.name, duration_ms=(time.perf_counter() - t0) * 1000
            )
        return result

    def matches(self, message: Any) -> bool:
        """Whether ``handle_info`` would run a sync handler for *message*."""
        return self._match(message) is not None

    def _match(self, message: Any) -> SyncedEvent | None:
        if read_field(message, "topic") != self.topic:
            return None
        if read_field(message, "payload") is MISSING:
            return None
        event = read_field(message, "event")
        if not isinstance(event, str):
            return None
        return self._table.get(event)

    def _handle_unmatched(self, message: Any, session: Any) -> Any:
        topic = _field_text(message, "topic")
        event = _field_text(message, "event")

        if self._fallback is not None:
            self._record_unmatched(topic, event, "fallback")
            return self._fallback(message, session)

        if self._config.on_unmatched == "ignore":
            self._record_unmatched(topic, event, "ignored")
            return NOREPLY, session

        self._record_unmatched(topic, event, "raised")
        msg = (
            f"Unhandled message topic={topic!r} event={event!r} "
            f"on consumer {self.topic!r}"
        )
        raise UnhandledMessageError(msg)

    def _record_unmatched(
        self, topic: str, event: str, resolution: UnmatchedResolution
    ) -> None:
        if self._collector is not None:
            self._collector.record_unmatched(topic, event, resolution=resolution)

    def __repr__(self) -> str:
        return f"SyncedState(topic={self.topic!r}, events={list(self.events)!r})"


def is_sync_result(result: Any) -> bool:
    """Whether *result* has the ``(disposition, session)`` shape."""
    return isinstance(result, (tuple, list)) and len(result) == 2


def _unpack_local(pair: SyncedEvent, result: Any) -> tuple[Any, Any, Any]:
    if not isinstance(result, (tuple, list)) or len(result) != 3:
        msg = (
            f"Local handler for {pair.name!r} must return "
            f"(disposition, session, result), got {result!r}"
        )
        raise LocalResultError(msg)
    disposition, session, payload = result
    return disposition, session, payload


def _check_sync(pair: SyncedEvent, result: Any) -> None:
    if not is_sync_result(result):
        msg = (
            f"Sync handler for {pair.name!r} must return "
            f"(disposition, session), got {result!r}"
        )
        raise SyncResultError(msg)


def _field_text(message: Any, name: str) -> str:
    value = read_field(message, name)
    return "" if value is MISSING else str(value)
