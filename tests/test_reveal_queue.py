"""Tests for the paced reveal queue."""

from __future__ import annotations

from dataclasses import replace

from conftest import block, success
from result_finder.reveal import RevealQueue


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _queue(config, cadence_ms: int = 100) -> tuple[RevealQueue, FakeClock]:
    clock = FakeClock()
    queue = RevealQueue(replace(config, reveal_cadence_ms=cadence_ms), clock=clock, sleep=clock.sleep)
    return queue, clock


def test_tick_reveals_one_record_in_order(config) -> None:
    queue, _ = _queue(config)
    queue.enqueue([success(identifier) for identifier in block(3, 2)])

    first = queue.tick([])
    second = queue.tick(first.roster)

    assert first.record.identifier.endswith("003")
    assert [record.identifier[-3:] for record in second.roster] == ["003", "004"]
    assert queue.tick(second.roster) is None


def test_progress_is_bounded_and_reaches_100(config) -> None:
    queue, _ = _queue(config)
    queue.enqueue([success(identifier) for identifier in block(1, 3)])
    roster: list = []
    seen = []
    while len(queue):
        roster = queue.tick(roster).roster
        seen.append(queue.progress.percent)
        # A new stage arriving mid-drain recomputes the total.
        if len(seen) == 1:
            queue.enqueue([success(identifier) for identifier in block(10, 2)])

    assert all(percent <= 100 for percent in seen)
    assert all(percent < 100 for percent in seen[:-1])
    assert seen[-1] == 100
    assert queue.progress.revealed == queue.progress.total == 5


def test_progress_is_zero_before_anything_is_enqueued(config) -> None:
    queue, _ = _queue(config)

    assert queue.progress.percent == 0


def test_pump_reveals_only_due_records(config) -> None:
    queue, clock = _queue(config, cadence_ms=100)
    queue.enqueue([success(identifier) for identifier in block(1, 4)])

    assert queue.pump([]) == []
    clock.now = 0.25
    roster = queue.pump([])

    assert len(roster) == 2
    assert len(queue) == 2
    assert clock.sleeps == []


def test_paced_drain_matches_eager_drain(config) -> None:
    records = [success(identifier) for identifier in block(1, 4)]
    paced, clock = _queue(config, cadence_ms=100)
    eager, _ = _queue(config, cadence_ms=100)
    paced.enqueue(records)
    eager.enqueue(records)

    paced_roster = paced.drain([], paced=True)
    eager_roster = eager.drain([], paced=False)

    assert paced_roster == eager_roster
    assert paced.progress == eager.progress
    assert len(clock.sleeps) == 4
    assert all(abs(seconds - 0.1) < 1e-9 for seconds in clock.sleeps)


def test_drain_stops_when_told_to(config) -> None:
    queue, _ = _queue(config)
    queue.enqueue([success(identifier) for identifier in block(1, 4)])
    revealed = []

    queue.drain([], paced=False, on_reveal=revealed.append, should_continue=lambda: len(revealed) < 2)

    assert len(revealed) == 2
    assert len(queue) == 2


def test_reset_discards_backlog_without_revealing(config) -> None:
    queue, _ = _queue(config)
    queue.enqueue([success(identifier) for identifier in block(1, 3)])
    revealed = []

    queue.reset()
    queue.drain([], paced=False, on_reveal=revealed.append)

    assert revealed == []
    assert queue.pending == ()
    assert queue.progress.total == 0
