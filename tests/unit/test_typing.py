from __future__ import annotations

import asyncio

import pytest

from chat_sync.services.typing import TypingEmitter
from chat_sync.state.typing import TypingTracker
from tests.conftest import FakeClock


def test_tracker_flips_on_first_and_last_user():
    tracker = TypingTracker(ttl=6.0, clock=FakeClock())

    assert tracker.apply("c1", "u1", True) is True
    assert tracker.apply("c1", "u2", True) is False
    assert tracker.apply("c1", "u1", False) is False
    assert tracker.apply("c1", "u2", False) is True
    assert tracker.is_anyone_typing("c1") is False


def test_tracker_expires_without_refresh():
    clock = FakeClock()
    tracker = TypingTracker(ttl=6.0, clock=clock)
    tracker.apply("c1", "u1", True)

    clock.advance(5)
    assert tracker.is_anyone_typing("c1") is True

    clock.advance(2)
    assert tracker.is_anyone_typing("c1") is False
    assert tracker.prune() == ["c1"]
    assert tracker.prune() == []


def test_heartbeat_refresh_keeps_indicator_alive():
    clock = FakeClock()
    tracker = TypingTracker(ttl=6.0, clock=clock)
    tracker.apply("c1", "u1", True)
    for _ in range(4):
        clock.advance(3)
        tracker.apply("c1", "u1", True)
    assert tracker.is_anyone_typing("c1") is True


def test_zero_ttl_disables_expiry():
    clock = FakeClock()
    tracker = TypingTracker(ttl=0, clock=clock)
    tracker.apply("c1", "u1", True)
    clock.advance(3600)
    assert tracker.is_anyone_typing("c1") is True


class _Recorder:
    def __init__(self) -> None:
        self.signals: list[tuple[str, bool]] = []

    async def __call__(self, conversation_id: str, is_typing: bool) -> None:
        self.signals.append((conversation_id, is_typing))


@pytest.mark.asyncio
async def test_emitter_start_once_and_stop_on_empty():
    rec = _Recorder()
    emitter = TypingEmitter(rec, interval=3600)

    await emitter.on_input("c1", "h")
    await emitter.on_input("c1", "he")
    await emitter.on_input("c1", "hel")
    await emitter.on_input("c1", "")

    assert rec.signals == [("c1", True), ("c1", False)]
    assert emitter.is_typing is False


@pytest.mark.asyncio
async def test_emitter_heartbeat_repeats_while_typing():
    rec = _Recorder()
    emitter = TypingEmitter(rec, interval=0.01)

    await emitter.on_input("c1", "hi")
    await asyncio.sleep(0.05)
    await emitter.stop()

    starts = [s for s in rec.signals if s == ("c1", True)]
    assert len(starts) >= 2
    assert rec.signals[-1] == ("c1", False)


@pytest.mark.asyncio
async def test_emitter_stop_without_typing_is_silent():
    rec = _Recorder()
    emitter = TypingEmitter(rec, interval=3600)
    await emitter.stop()
    assert rec.signals == []


@pytest.mark.asyncio
async def test_emitter_swallows_transport_failure():
    async def broken(conversation_id: str, is_typing: bool) -> None:
        raise ConnectionError("socket closed")

    emitter = TypingEmitter(broken, interval=3600)
    await emitter.on_input("c1", "x")
    await emitter.stop()
    assert emitter.is_typing is False
