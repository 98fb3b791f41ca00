"""Live session: one session value kept in sync through a SyncedState.

A LiveSession plays the role of the per-session process of a real-time
UI runtime.  It holds the session value, raises events through the
consumer's local handlers, and applies every broadcast it receives
through the consumer's sync handlers::

    pubsub = PubSub()
    counter = SyncedState("counter", pubsub)
    ...
    a = LiveSession(counter, pubsub, {"count": 0})
    b = LiveSession(counter, pubsub, {"count": 0})
    a.start()
    b.start()

    a.push_event("increment", 1)
    a.drain()
    b.drain()        # both sessions now see count == 1

Sessions never share their value; the broadcast is the only channel
between them.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from synced_state._errors import TransportError
from synced_state.state import is_sync_result

if TYPE_CHECKING:
    from synced_state.state import SyncedState
    from synced_state.transport.pubsub import PubSub, Subscription


class LiveSession:
    """A single subscribed session of a SyncedState consumer.

    Args:
        state: Consumer whose handlers drive this session.
        pubsub: Transport the consumer broadcasts on.
        session: Initial session value.
        on_change: Called with the new session value after every applied
            sync.

    """

    __slots__ = ("_closed", "_on_change", "_pubsub", "_session", "_state", "_sub")

    def __init__(
        self,
        state: SyncedState,
        pubsub: PubSub,
        session: Any = None,
        *,
        on_change: Callable[[Any], None] | None = None,
    ) -> None:
        self._state = state
        self._pubsub = pubsub
        self._session = session
        self._on_change = on_change
        self._sub: Subscription | None = None
        self._closed = False

    @property
    def session(self) -> Any:
        """Current session value."""
        return self._session

    @property
    def subscription(self) -> Subscription | None:
        return self._sub

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> Subscription:
        """Subscribe to the consumer's topic.  Idempotent while open.

        Raises:
            TransportError: If the session was closed.

        """
        if self._closed:
            msg = f"Session on topic {self._state.topic!r} is closed"
            raise TransportError(msg)
        if self._sub is None:
            self._sub = self._pubsub.subscribe(
                self._state.topic, maxsize=self._state.config.queue_size
            )
        return self._sub

    def push_event(self, event: str, payload: Any = None) -> Any:
        """Raise *event* in this session and return the disposition tag.

        Runs the local handler, stores the new session value and broadcasts
        the local result to every subscriber, this session included.
        """
        disposition, self._session = self._state.handle_event(event, payload, self._session)
        return disposition

    def apply(self, message: Any) -> Any:
        """Run the sync handler for *message* and return its result.

        The session value is replaced when the result has the
        ``(disposition, session)`` shape (a fallback may return anything).
        """
        result = self._state.handle_info(message, self._session)
        if is_sync_result(result):
            self._session = result[1]
            if self._on_change is not None:
                self._on_change(self._session)
        return result

    def drain(self) -> int:
        """Apply queued messages until the queue is empty or the session closes.

        Returns how many were applied.
        """
        sub = self.start()
        count = 0
        while not self._closed and not sub.queue.empty():
            self.apply(sub.queue.get_nowait())
            count += 1
        return count

    async def run(self) -> None:
        """Apply incoming messages until closed.

        Dispatch errors and cancellation propagate, ending the session; the
        subscription is removed either way.
        """
        sub = self.start()
        try:
            async for message in self._pubsub.messages(sub):
                self.apply(message)
                if self._closed:
                    break
        finally:
            self.close()

    def close(self) -> None:
        """Unsubscribe, which ends ``run()``.  Safe to call more than once."""
        self._closed = True
        if self._sub is not None:
            self._pubsub.unsubscribe(self._sub)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"LiveSession(topic={self._state.topic!r}, {state})"
