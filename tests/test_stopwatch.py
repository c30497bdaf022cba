import json

import pytest

from pieceout.errors import ValidationError
from pieceout.stopwatch import Stopwatch, TimerState, TimerStateStore


class Ticker:
    def __init__(self, now=1_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def ticker():
    return Ticker()


@pytest.fixture
def states(tmp_path):
    return TimerStateStore(tmp_path / "timer_state.json")


def test_runs_and_pauses(ticker):
    watch = Stopwatch(1, clock=ticker)
    watch.start()
    ticker.now += 90
    assert watch.elapsed == 90

    watch.pause()
    ticker.now += 1000
    assert watch.elapsed == 90
    assert not watch.is_running

    watch.toggle()
    ticker.now += 10
    assert watch.elapsed == 100


def test_suspend_and_resume_count_background_time(ticker, states):
    watch = Stopwatch(1, states, clock=ticker)
    watch.start()
    ticker.now += 30
    state = watch.suspend()
    assert state.elapsed_seconds == 30
    assert state.is_running

    ticker.now += 120
    assert watch.resume() == 150
    assert watch.elapsed == 150


def test_paused_watch_ignores_background_time(ticker):
    watch = Stopwatch(1, clock=ticker)
    watch.start()
    ticker.now += 15
    watch.pause()
    watch.suspend()
    ticker.now += 500
    assert watch.resume() == 15


def test_take_returns_the_run_and_resets(ticker, states):
    watch = Stopwatch(1, states, clock=ticker)
    watch.start()
    ticker.now += 1800
    assert watch.take() == 1800
    assert watch.elapsed == 0
    assert not watch.is_running
    assert states.load() is None


def test_take_without_time_is_rejected(ticker):
    with pytest.raises(ValidationError, match="Timer must be running"):
        Stopwatch(1, clock=ticker).take()


def test_restore_running_timer_adds_the_gap(ticker, states):
    states.save(TimerState(elapsed_seconds=100, puzzle_id=7, is_running=True, wall_clock=ticker.now))
    ticker.now += 60

    watch = Stopwatch.restore(7, states, clock=ticker)
    assert watch.is_running
    assert watch.elapsed == 160
    ticker.now += 5
    assert watch.elapsed == 165


def test_restore_paused_timer(ticker, states):
    states.save(TimerState(elapsed_seconds=42, puzzle_id=7, is_running=False, wall_clock=ticker.now))
    ticker.now += 600

    watch = Stopwatch.restore(7, states, clock=ticker)
    assert not watch.is_running
    assert watch.elapsed == 42


def test_state_of_another_puzzle_is_discarded(ticker, states):
    states.save(TimerState(elapsed_seconds=42, puzzle_id=3, is_running=True, wall_clock=ticker.now))

    watch = Stopwatch.restore(7, states, clock=ticker)
    assert watch.elapsed == 0
    assert states.load() is None


def test_unreadable_state_is_ignored(states):
    states.path.write_text("{not json")
    assert states.load() is None


def test_transitions_are_persisted(ticker, states):
    watch = Stopwatch(9, states, clock=ticker)
    watch.start()
    saved = states.load()
    assert saved.puzzle_id == 9
    assert saved.is_running


def test_state_document_uses_camel_case_keys(ticker, states):
    Stopwatch(9, states, clock=ticker).start()
    document = json.loads(states.path.read_text())
    assert document == {"elapsedSeconds": 0, "puzzleId": 9, "isRunning": True, "wallClockTimestamp": ticker.now}
