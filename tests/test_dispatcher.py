import threading
import time

import pytest

from image_sieve.scanning.dispatcher import BoundedDispatcher


class Recorder:
    """Task that records peak concurrency."""

    def __init__(self, delay=0.01, fail=False):
        self.delay = delay
        self.fail = fail
        self.lock = threading.Lock()
        self.running = 0
        self.peak = 0
        self.seen = []

    def __call__(self, item):
        with self.lock:
            self.running += 1
            self.peak = max(self.peak, self.running)
            self.seen.append(item)
        try:
            time.sleep(self.delay)
            if self.fail:
                raise RuntimeError(f"boom {item}")
        finally:
            with self.lock:
                self.running -= 1


@pytest.mark.parametrize("capacity", [1, 3, 10])
def test_every_item_runs_once_within_capacity(capacity):
    recorder = Recorder()
    outcome = BoundedDispatcher(capacity=capacity).run(range(30), recorder)

    assert sorted(recorder.seen) == list(range(30))
    assert recorder.peak <= capacity
    assert outcome.launched == 30
    assert outcome.completed == 30
    assert not outcome.partial


def test_failing_tasks_do_not_leak_slots():
    recorder = Recorder(delay=0, fail=True)
    outcome = BoundedDispatcher(capacity=1).run(range(10), recorder)

    assert len(recorder.seen) == 10
    assert outcome.completed == 10


def test_stop_event_ends_launching_without_partial():
    stop = threading.Event()

    def task(item):
        stop.set()

    outcome = BoundedDispatcher(capacity=1).run(range(50), task, stop=stop)

    assert outcome.launched < 50
    assert not outcome.partial


def test_deadline_returns_partial():
    recorder = Recorder(delay=0.2)
    t0 = time.monotonic()
    outcome = BoundedDispatcher(capacity=1, deadline=0.3).run(range(20), recorder)

    assert outcome.partial
    assert outcome.launched < 20
    assert time.monotonic() - t0 < 2.0


def test_zero_deadline_launches_nothing():
    recorder = Recorder()
    outcome = BoundedDispatcher(capacity=4, deadline=0).run(range(5), recorder)
    assert outcome.launched == 0
    assert outcome.partial


def test_empty_input():
    outcome = BoundedDispatcher(capacity=4).run([], lambda item: None)
    assert outcome.launched == 0
    assert not outcome.partial


def test_invalid_arguments():
    with pytest.raises(ValueError):
        BoundedDispatcher(capacity=0)
    with pytest.raises(ValueError):
        BoundedDispatcher(deadline=-1)


def test_stop_set_while_blocked_on_slot_launches_nothing_more():
    stop = threading.Event()
    seen = []

    def task(item):
        seen.append(item)
        time.sleep(0.05)
        stop.set()

    # With one slot the loop is blocked until the first task returns, by which
    # time the stop event is already set
    outcome = BoundedDispatcher(capacity=1).run(range(10), task, stop=stop)

    assert outcome.launched == 1
    assert seen == [0]
    assert not outcome.partial
