import threading

import pytest

from app.utils.config import EXIT_OK, EXIT_STALLED
from domains.file_snapshot.liveness import (
    ACTIVITY_COUNTER_MAX,
    ActivityCounter,
    LivenessWatchdog,
)


def test_counter_increments():
    counter = ActivityCounter()

    assert counter.increment() == 1
    assert counter.increment() == 2
    assert counter.value == 2


def test_counter_resets_past_maximum():
    counter = ActivityCounter(initial=ACTIVITY_COUNTER_MAX - 1)

    assert counter.increment() == ACTIVITY_COUNTER_MAX
    assert counter.increment() == 0
    assert counter.increment() == 1


def test_counter_is_thread_safe():
    counter = ActivityCounter()

    def bump():
        for _ in range(1000):
            counter.increment()

    threads = [threading.Thread(target=bump) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert counter.value == 8000


def test_progress_is_healthy_and_standstill_is_a_stall():
    counter = ActivityCounter()
    watchdog = LivenessWatchdog(counter, interval=1)

    assert watchdog.check() is True
    counter.increment()
    assert watchdog.check() is True
    assert watchdog.check() is False


def test_wrap_is_not_a_stall():
    counter = ActivityCounter(initial=ACTIVITY_COUNTER_MAX - 1)
    watchdog = LivenessWatchdog(counter, interval=1)
    watchdog.check()

    counter.increment()
    counter.increment()  # wraps to 0

    assert counter.value == 0
    assert watchdog.check() is True

    # Detection continues from the reset baseline
    counter.increment()
    assert watchdog.check() is True
    assert watchdog.check() is False


def test_small_decrease_is_a_stall():
    counter = ActivityCounter(initial=100)
    watchdog = LivenessWatchdog(counter, interval=1)
    watchdog.check()

    counter._value = 90

    assert watchdog.check() is False


def test_run_returns_stalled_exit_code():
    watchdog = LivenessWatchdog(ActivityCounter(), interval=0.05)

    assert watchdog.run(threading.Event()) == EXIT_STALLED


def test_run_keeps_going_while_counter_moves():
    counter = ActivityCounter()
    stop_event = threading.Event()
    watchdog = LivenessWatchdog(counter, interval=0.05)

    def heartbeat():
        while not stop_event.wait(0.01):
            counter.increment()

    beat = threading.Thread(target=heartbeat)
    beat.start()
    timer = threading.Timer(0.4, stop_event.set)
    timer.start()
    try:
        assert watchdog.run(stop_event) == EXIT_OK
    finally:
        stop_event.set()
        timer.cancel()
        beat.join()


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        LivenessWatchdog(ActivityCounter(), interval=0)


if __name__ == "__main__":  # pragma: no cover
    pytest.main([__file__])
