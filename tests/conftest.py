"""Shared test fixtures for synced_state."""

from __future__ import annotations

from typing import Any

import pytest

from synced_state.state import NOREPLY, SyncedState
from synced_state.transport.pubsub import PubSub


class RecordingTarget:
    """Broadcast target that records every call in order."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, Any]] = []

    def broadcast(self, topic: str, event: str, payload: Any) -> None:
        self.calls.append((topic, event, payload))


@pytest.fixture
def target() -> RecordingTarget:
    return RecordingTarget()


@pytest.fixture
def pubsub() -> PubSub:
    return PubSub()


@pytest.fixture
def counter(pubsub: PubSub) -> SyncedState:
    """A counter consumer broadcasting on ``counter`` through *pubsub*.

    ``increment`` adds the payload locally and broadcasts the new total;
    every subscriber adopts the broadcast total.
    """
    state = SyncedState("counter", pubsub)

    def adopt_total(total: int, session: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        return NOREPLY, {**session, "count": total}

    @state.sync_state("increment", after=adopt_total)
    def increment(amount: int, session: dict[str, Any]) -> tuple[str, dict[str, Any], int]:
        total = session["count"] + amount
        return NOREPLY, {**session, "count": total}, total

    return state
