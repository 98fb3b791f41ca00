"""Tests for synced_state.transport.session: sessions kept in sync."""

from __future__ import annotations

import asyncio
import threading
from typing import Any

import pytest

from synced_state._errors import SyncResultError, TransportError
from synced_state.config import SyncedStateConfig
from synced_state.message import SyncMessage
from synced_state.state import NOREPLY, SyncedState
from synced_state.transport.pubsub import PubSub
from synced_state.transport.session import LiveSession


class TestLiveSessionSync:
    """Driving sessions synchronously with push_event and drain."""

    def test_originator_and_peer_converge(self, counter: SyncedState, pubsub: PubSub) -> None:
        a = LiveSession(counter, pubsub, {"count": 0, "name": "a"})
        b = LiveSession(counter, pubsub, {"count": 0, "name": "b"})
        a.start()
        b.start()

        assert a.push_event("increment", 2) == NOREPLY
        assert a.session == {"count": 2, "name": "a"}
        assert b.session == {"count": 0, "name": "b"}

        assert a.drain() == 1
        assert b.drain() == 1
        assert a.session == {"count": 2, "name": "a"}
        assert b.session == {"count": 2, "name": "b"}

    def test_unsubscribed_session_not_reached(self, counter: SyncedState, pubsub: PubSub) -> None:
        a = LiveSession(counter, pubsub, {"count": 0})
        outsider = LiveSession(counter, PubSub(), {"count": 0})
        a.start()
        outsider.start()

        a.push_event("increment", 5)

        assert outsider.drain() == 0
        assert outsider.session == {"count": 0}

    def test_start_is_idempotent(self, counter: SyncedState, pubsub: PubSub) -> None:
        session = LiveSession(counter, pubsub, {"count": 0})
        assert session.start() is session.start()
        assert pubsub.subscriber_count == 1

    def test_queue_size_from_config(self, pubsub: PubSub) -> None:
        state = SyncedState(target=pubsub, config=SyncedStateConfig(topic="t", queue_size=3))
        sub = LiveSession(state, pubsub).start()
        assert sub.queue.maxsize == 3

    def test_on_change_called_per_sync(self, counter: SyncedState, pubsub: PubSub) -> None:
        changes: list[Any] = []
        a = LiveSession(counter, pubsub, {"count": 0}, on_change=changes.append)
        a.start()

        a.push_event("increment", 1)
        a.push_event("increment", 1)
        a.drain()

        assert changes == [{"count": 1}, {"count": 2}]

    def test_apply_keeps_session_for_non_pair_fallback(self, pubsub: PubSub) -> None:
        state = SyncedState("t", pubsub, fallback=lambda message, session: None)
        session = LiveSession(state, pubsub, {"x": 1})

        assert session.apply(SyncMessage("other", "e", 1)) is None
        assert session.session == {"x": 1}

    def test_closed_session_cannot_start(self, counter: SyncedState, pubsub: PubSub) -> None:
        session = LiveSession(counter, pubsub, {"count": 0})
        session.start()
        session.close()

        assert session.closed
        assert pubsub.subscriber_count == 0
        with pytest.raises(TransportError, match="closed"):
            session.start()

    def test_close_twice_is_safe(self, counter: SyncedState, pubsub: PubSub) -> None:
        session = LiveSession(counter, pubsub, {"count": 0})
        session.start()
        session.close()
        session.close()
        assert pubsub.subscriber_count == 0


class TestLiveSessionRun:
    """The async run loop."""

    @pytest.mark.asyncio
    async def test_run_applies_broadcasts(self, counter: SyncedState, pubsub: PubSub) -> None:
        peer = LiveSession(counter, pubsub, {"count": 0})
        origin = LiveSession(counter, pubsub, {"count": 0})
        origin.start()
        task = asyncio.create_task(peer.run())
        await asyncio.sleep(0)

        origin.push_event("increment", 3)
        await asyncio.sleep(0.01)

        assert peer.session == {"count": 3}
        peer.close()
        await task
        assert pubsub.get_subscribers("counter") == frozenset({origin.subscription})

    @pytest.mark.asyncio
    async def test_dispatch_error_ends_session(self, pubsub: PubSub) -> None:
        state = SyncedState("t", pubsub)
        state.sync_state(
            "e",
            lambda payload, session: (NOREPLY, session, payload),
            after=lambda result, session: "not a pair",
        )
        session = LiveSession(state, pubsub, {})
        task = asyncio.create_task(session.run())
        await asyncio.sleep(0)

        pubsub.broadcast("t", "e", 1)

        with pytest.raises(SyncResultError):
            await asyncio.wait_for(task, timeout=1)
        assert session.closed
        assert pubsub.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, counter: SyncedState, pubsub: PubSub) -> None:
        peer = LiveSession(counter, pubsub, {"count": 0})

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.05):
                await peer.run()

        assert peer.closed
        assert pubsub.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_close_from_thread_ends_run(self, counter: SyncedState, pubsub: PubSub) -> None:
        peer = LiveSession(counter, pubsub, {"count": 0})
        task = asyncio.create_task(peer.run())
        await asyncio.sleep(0.01)

        worker = threading.Thread(target=peer.close)
        worker.start()
        await asyncio.wait_for(task, timeout=1)
        worker.join()

        assert pubsub.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_broadcast_from_thread_reaches_run(
        self, counter: SyncedState, pubsub: PubSub
    ) -> None:
        changed = asyncio.Event()
        peer = LiveSession(counter, pubsub, {"count": 0}, on_change=lambda _: changed.set())
        origin = LiveSession(counter, pubsub, {"count": 0})
        task = asyncio.create_task(peer.run())
        await asyncio.sleep(0.01)

        worker = threading.Thread(target=origin.push_event, args=("increment", 3))
        worker.start()
        await asyncio.wait_for(changed.wait(), timeout=1)
        worker.join()

        assert peer.session == {"count": 3}
        peer.close()
        await task

    def test_drain_stops_when_closed_mid_drain(self, counter: SyncedState, pubsub: PubSub) -> None:
        def close_on_change(_: Any) -> None:
            session.close()

        session = LiveSession(counter, pubsub, {"count": 0}, on_change=close_on_change)
        session.start()
        pubsub.broadcast("counter", "increment", 1)
        pubsub.broadcast("counter", "increment", 1)

        assert session.drain() == 1
        assert session.session == {"count": 1}
