"""Chirp integration: stream synced session state to browsers over SSE.

Each browser connection to the sync endpoint becomes a LiveSession of the
consumer.  The connection first receives a ``synced:connected`` event
carrying its client id and a ``synced:state`` event with the initial
session, then one ``synced:state`` event with the JSON-encoded session
after every applied sync.

Application routes raise events on behalf of a connection through
``SyncEndpoint.push_event(client_id, event, payload)``.

Requires the ``web`` extra (Chirp).
"""

from __future__ import annotations

import copy
import json
import threading
import uuid
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from synced_state._errors import TransportError
from synced_state.state import is_sync_result
from synced_state.transport.session import LiveSession

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from chirp import App, Request

    from synced_state.state import SyncedState
    from synced_state.transport.pubsub import PubSub

# SSE endpoint path for synced state updates
SYNC_ENDPOINT = "/__synced_state/events"

CONNECTED_EVENT = "synced:connected"
STATE_EVENT = "synced:state"


class SyncEndpoint:
    """Live sessions of one consumer, keyed by browser client id.

    Args:
        state: Consumer whose handlers drive every connection.
        pubsub: Transport the consumer broadcasts on.
        initial: Initial session value, or a zero-argument factory.  Plain
            values are deep-copied per connection.
        encode: Serializer for session values sent to the browser.

    """

    def __init__(
        self,
        state: SyncedState,
        pubsub: PubSub,
        *,
        initial: Any = None,
        encode: Callable[[Any], str] | None = None,
    ) -> None:
        self._state = state
        self._pubsub = pubsub
        self._initial = initial
        self._encode = encode or _json_encode
        self._sessions: dict[str, LiveSession] = {}
        self._lock = threading.Lock()

    @property
    def connection_count(self) -> int:
        with self._lock:
            return len(self._sessions)

    def connect(self, client_id: str | None = None) -> tuple[str, LiveSession]:
        """Open and subscribe a LiveSession for *client_id* (generated if None).

        Raises:
            TransportError: If *client_id* is already connected.

        """
        client_id = client_id or str(uuid.uuid4())
        session = LiveSession(self._state, self._pubsub, self._new_session())
        with self._lock:
            if client_id in self._sessions:
                msg = f"Client {client_id!r} is already connected"
                raise TransportError(msg)
            self._sessions[client_id] = session
        session.start()
        return client_id, session

    def disconnect(self, client_id: str) -> None:
        """Close and forget the session of *client_id*, if any."""
        with self._lock:
            session = self._sessions.pop(client_id, None)
        if session is not None:
            session.close()

    def get_session(self, client_id: str) -> LiveSession | None:
        with self._lock:
            return self._sessions.get(client_id)

    def push_event(self, client_id: str, event: str, payload: Any = None) -> Any:
        """Raise *event* in the session of *client_id*; returns the disposition.

        Raises:
            TransportError: If *client_id* is not connected.

        """
        session = self.get_session(client_id)
        if session is None:
            msg = f"Client {client_id!r} is not connected"
            raise TransportError(msg)
        return session.push_event(event, payload)

    async def stream(self, client_id: str | None = None) -> AsyncIterator[Any]:
        """Yield Chirp ``SSEEvent`` objects for one browser connection.

        Applies each incoming broadcast to the connection's session and
        yields the new state.  The session is removed whenever the
        generator stops, and ``disconnect(client_id)`` ends the stream.
        """
        from chirp import SSEEvent

        client_id, session = self.connect(client_id)
        sub = session.start()
        try:
            yield SSEEvent(data=json.dumps({"client_id": client_id}), event=CONNECTED_EVENT)
            yield SSEEvent(data=self._encode(session.session), event=STATE_EVENT)
            async for message in self._pubsub.messages(sub):
                result = session.apply(message)
                if is_sync_result(result):
                    yield SSEEvent(data=self._encode(session.session), event=STATE_EVENT)
        finally:
            with self._lock:
                if self._sessions.get(client_id) is session:
                    del self._sessions[client_id]
            session.close()

    def _new_session(self) -> Any:
        if callable(self._initial):
            return self._initial()
        return copy.deepcopy(self._initial)


def register_sync_endpoint(
    app: App,
    endpoint: SyncEndpoint,
    *,
    path: str = SYNC_ENDPOINT,
    name: str = "synced_state:events",
) -> None:
    """Register the SSE route serving *endpoint* on a Chirp app.

    Clients may pass a ``client`` query parameter to choose their id;
    otherwise one is generated and announced in the connected event.
    Must be called before the Chirp app is frozen (before first request).
    """
    from chirp import EventStream

    async def sync_handler(request: Request) -> Any:
        client_id = request.query.get("client") or None

        async def generate():  # type: ignore[return]
            async for event in endpoint.stream(client_id):
                yield event

        return EventStream(generate())

    sync_handler.__name__ = "synced_state_events"
    sync_handler.__qualname__ = "register_sync_endpoint.synced_state_events"

    app.route(path, name=name)(sync_handler)


def _json_encode(value: Any) -> str:
    return json.dumps(value, default=str)
