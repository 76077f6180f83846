from __future__ import annotations

import asyncio

import pytest

from dosharness.errors import NotReadyError
from dosharness.input.sequencer import InputSequencer


class RecordingSurface:
    def __init__(self, clock) -> None:
        self._clock = clock
        self.events: list[tuple[str, int, float]] = []

    def inject_key_event(self, code: int, is_down: bool) -> None:
        self.events.append(("down" if is_down else "up", code, self._clock.time()))


def test_send_emits_down_up_pairs_in_order(fake_clock) -> None:
    surface = RecordingSurface(fake_clock)
    sequencer = InputSequencer(lambda: surface, settle_ms=100, sleep=fake_clock.sleep)

    asyncio.run(sequencer.send([65, 66]))

    assert [(kind, code) for kind, code, _ in surface.events] == [
        ("down", 65),
        ("up", 65),
        ("down", 66),
        ("up", 66),
    ]
    timestamps = [at for _, _, at in surface.events]
    gaps = [later - earlier for earlier, later in zip(timestamps, timestamps[1:])]
    assert all(gap == pytest.approx(0.1) for gap in gaps)
    assert fake_clock.sleeps == [0.1] * 4


def test_single_code_waits_before_release(fake_clock) -> None:
    surface = RecordingSurface(fake_clock)
    sequencer = InputSequencer(lambda: surface, sleep=fake_clock.sleep)

    asyncio.run(sequencer.send([65]))

    (down, _, down_at), (up, _, up_at) = surface.events
    assert (down, up) == ("down", "up")
    assert up_at - down_at >= 0.1
    assert fake_clock.now == pytest.approx(0.2)


def test_settle_interval_is_configurable(fake_clock) -> None:
    surface = RecordingSurface(fake_clock)
    sequencer = InputSequencer(lambda: surface, settle_ms=25, sleep=fake_clock.sleep)

    asyncio.run(sequencer.send([13]))

    assert sequencer.settle_ms == 25
    assert fake_clock.sleeps == [0.025, 0.025]


def test_send_without_surface_is_not_ready(fake_clock) -> None:
    sequencer = InputSequencer(lambda: None, sleep=fake_clock.sleep)

    with pytest.raises(NotReadyError):
        asyncio.run(sequencer.send([65]))
    assert fake_clock.sleeps == []


def test_send_nothing_emits_nothing(fake_clock) -> None:
    surface = RecordingSurface(fake_clock)
    sequencer = InputSequencer(lambda: surface, sleep=fake_clock.sleep)

    asyncio.run(sequencer.send([]))

    assert surface.events == []


def test_negative_settle_rejected() -> None:
    with pytest.raises(ValueError):
        InputSequencer(lambda: None, settle_ms=-1)
