"""In-process pub/sub: fans broadcasts out to subscribed sessions.

PubSub implements the broadcast target protocol used by SyncedState.
Each subscribed session owns a Subscription whose queue receives one
SyncMessage per broadcast on its topic.  The originating session is a
subscriber like any other, so it receives its own broadcast too.

Broadcasts may come from any thread.  A subscription remembers the event
loop it is consumed on, and messages from other threads are handed to
that loop with ``call_soon_threadsafe``.
"""

from __future__ import annotations

import asyncio
import threading
import uuid
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Final

from synced_state.message import SyncMessage

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

# Queued on unsubscribe; ends ``PubSub.messages`` for that subscription
CLOSED: Final = object()


@dataclass(frozen=True, slots=True)
class Subscription:
    """A session's subscription to one topic.

    Attributes:
        topic: Topic the session listens on.
        subscriber_id: Unique identifier for this subscription.
        queue: SyncMessage items for the session, then ``CLOSED`` once the
            subscription is removed.

    """

    topic: str
    subscriber_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    queue: asyncio.Queue[Any] = field(default_factory=asyncio.Queue, compare=False, hash=False)

    @classmethod
    def bounded(cls, topic: str, maxsize: int) -> Subscription:
        """Create a subscription whose queue holds at most *maxsize* messages."""
        return cls(topic=topic, queue=asyncio.Queue(maxsize=maxsize))


class PubSub:
    """Topic-keyed subscriber map with synchronous fan-out.

    ``broadcast`` never blocks: each message is put on every subscriber's
    queue with ``put_nowait`` and dropped for subscribers whose queue is
    full.

    Thread-safe: subscriber map protected by a lock, cross-thread
    delivery goes through the subscriber's event loop.

    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[Subscription]] = defaultdict(set)
        self._loops: dict[str, asyncio.AbstractEventLoop] = {}
        self._lock = threading.Lock()

    @property
    def subscriber_count(self) -> int:
        """Total number of subscriptions across all topics."""
        with self._lock:
            return sum(len(subs) for subs in self._subscribers.values())

    def subscribe(self, topic: str, *, maxsize: int = 0) -> Subscription:
        """Create and register a subscription for *topic*.

        Called inside a running event loop, the subscription is bound to
        that loop.
        """
        sub = Subscription.bounded(topic, maxsize) if maxsize else Subscription(topic=topic)
        loop = _running_loop()
        with self._lock:
            self._subscribers[topic].add(sub)
            if loop is not None:
                self._loops[sub.subscriber_id] = loop
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Remove a subscription and end its ``messages()`` iterator.

        Unknown or already removed subscriptions are ignored.
        """
        with self._lock:
            subs = self._subscribers.get(sub.topic)
            if subs is None or sub not in subs:
                return
            subs.discard(sub)
            if not subs:
                del self._subscribers[sub.topic]
            loop = self._loops.pop(sub.subscriber_id, None)
        _deliver(loop, _put_closed, sub.queue, CLOSED)

    def get_subscribers(self, topic: str) -> frozenset[Subscription]:
        """Get all subscriptions for a topic (snapshot, no lock held on return)."""
        with self._lock:
            return frozenset(self._subscribers.get(topic, set()))

    def topics(self) -> frozenset[str]:
        """Get all topics that have at least one subscriber."""
        with self._lock:
            return frozenset(self._subscribers.keys())

    def broadcast(self, topic: str, event: str, payload: Any) -> int:
        """Deliver ``SyncMessage(topic, event, payload)`` to every subscriber.

        Returns:
            Number of subscribers the message was handed to.  Off-loop
            deliveries count once scheduled; a full queue still drops them.

        """
        message = SyncMessage(topic=topic, event=event, payload=payload)
        with self._lock:
            targets = [
                (sub, self._loops.get(sub.subscriber_id))
                for sub in self._subscribers.get(topic, ())
            ]
        return sum(_deliver(loop, _put_message, sub.queue, message) for sub, loop in targets)

    async def messages(self, sub: Subscription) -> AsyncIterator[SyncMessage]:
        """Async generator that yields messages from a subscription's queue.

        Binds *sub* to the running loop if it is still registered, and
        finishes once the subscription is removed.  Cancellation
        propagates to the caller.
        """
        loop = asyncio.get_running_loop()
        with self._lock:
            if sub in self._subscribers.get(sub.topic, ()):
                self._loops.setdefault(sub.subscriber_id, loop)

        while True:
            item = await sub.queue.get()
            if item is CLOSED:
                return
            yield item


def _running_loop() -> asyncio.AbstractEventLoop | None:
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def _deliver(
    loop: asyncio.AbstractEventLoop | None,
    put: Callable[[asyncio.Queue[Any], Any], bool],
    queue: asyncio.Queue[Any],
    item: Any,
) -> bool:
    if loop is None or loop is _running_loop():
        return put(queue, item)
    try:
        loop.call_soon_threadsafe(put, queue, item)
    except RuntimeError:
        return False  # Subscriber's loop is closed
    return True


def _put_message(queue: asyncio.Queue[Any], item: Any) -> bool:
    try:
        queue.put_nowait(item)
    except asyncio.QueueFull:
        return False  # Drop if subscriber queue is full
    return True


def _put_closed(queue: asyncio.Queue[Any], item: Any) -> bool:
    # Pending messages make way for the end marker
    while True:
        try:
            queue.put_nowait(item)
        except asyncio.QueueFull:
            queue.get_nowait()
        else:
            return True
