"""
Tests for the autosave controller and schedulers.

Everything runs on ManualScheduler; virtual time only moves when a test
calls advance().
"""

import threading

import pytest

from quicklog.autosave import AutosaveController
from quicklog.scheduler import ManualScheduler, Scheduler, ThreadingScheduler


class Buffer:
    """Live content plus a record of every dispatched write."""

    def __init__(self, content=""):
        self.content = content
        self.writes = []

    def read(self):
        return self.content

    def write(self, content):
        self.writes.append(content)


@pytest.fixture
def buffer():
    return Buffer()


@pytest.fixture
def controller(scheduler, buffer):
    return AutosaveController(scheduler, buffer.read, buffer.write, interval=2.0, debounce=0.35)


# -----------------------------------------------------------------------------
# Manual scheduler
# -----------------------------------------------------------------------------

class TestManualScheduler:

    def test_satisfies_protocol(self):
        assert isinstance(ManualScheduler(), Scheduler)
        assert isinstance(ThreadingScheduler(), Scheduler)

    def test_one_shot_runs_once_when_due(self, scheduler):
        calls = []
        scheduler.call_later(1.0, lambda: calls.append(scheduler.now))
        assert scheduler.advance(0.5) == 0
        assert scheduler.advance(0.5) == 1
        assert calls == [1.0]
        assert scheduler.advance(10) == 0

    def test_repeating_runs_every_interval(self, scheduler):
        calls = []
        scheduler.call_every(2.0, lambda: calls.append(scheduler.now))
        scheduler.advance(7)
        assert calls == [2.0, 4.0, 6.0]

    def test_cancel(self, scheduler):
        calls = []
        handle = scheduler.call_later(1.0, lambda: calls.append(1))
        handle.cancel()
        scheduler.advance(5)
        assert calls == []
        assert scheduler.pending() == 0

    def test_failing_callback_does_not_stop_others(self, scheduler, caplog):
        calls = []

        def boom():
            raise RuntimeError("boom")

        scheduler.call_later(1.0, boom)
        scheduler.call_later(2.0, lambda: calls.append("ok"))
        scheduler.advance(3)
        assert calls == ["ok"]
        assert "Scheduled callback failed" in caplog.text


class TestThreadingScheduler:

    def test_call_later_fires(self):
        fired = threading.Event()
        ThreadingScheduler().call_later(0.01, fired.set)
        assert fired.wait(5)

    def test_call_every_cancel(self):
        ticks = threading.Event()
        handle = ThreadingScheduler().call_every(0.01, ticks.set)
        assert ticks.wait(5)
        handle.cancel()


# -----------------------------------------------------------------------------
# Flush
# -----------------------------------------------------------------------------

class TestFlush:

    def test_unchanged_content_is_not_written(self, controller, buffer):
        assert controller.flush() is False
        assert buffer.writes == []

    def test_changed_content_written_once(self, controller, buffer):
        buffer.content = "hello"
        assert controller.flush() is True
        assert controller.flush() is False
        assert buffer.writes == ["hello"]
        assert controller.write_count == 1

    def test_snapshot_suppresses_write(self, controller, buffer):
        buffer.content = "restored"
        controller.snapshot("restored")
        assert controller.flush() is False

    def test_failed_write_not_retried_until_change(self, scheduler, buffer, caplog):
        attempts = []

        def failing(content):
            attempts.append(content)
            raise OSError("disk full")

        ctl = AutosaveController(scheduler, buffer.read, failing)
        buffer.content = "x"
        assert ctl.flush() is True
        assert ctl.last_flushed == "x"
        assert ctl.flush() is False
        buffer.content = "xy"
        ctl.flush()
        assert attempts == ["x", "xy"]
        assert "Autosave write failed" in caplog.text


# -----------------------------------------------------------------------------
# Timers
# -----------------------------------------------------------------------------

class TestTicker:

    def test_ticker_flushes_changes(self, controller, buffer, scheduler):
        controller.start()
        buffer.content = "a"
        scheduler.advance(2.0)
        assert buffer.writes == ["a"]
        scheduler.advance(2.0)
        assert buffer.writes == ["a"]
        buffer.content = "ab"
        scheduler.advance(2.0)
        assert buffer.writes == ["a", "ab"]

    def test_stop(self, controller, buffer, scheduler):
        controller.start()
        controller.stop()
        assert not controller.running
        buffer.content = "a"
        scheduler.advance(10)
        assert buffer.writes == []

    def test_start_is_idempotent(self, controller, scheduler):
        controller.start()
        controller.start()
        assert scheduler.pending() == 1

    def test_configure_restarts_ticker(self, controller, buffer, scheduler):
        controller.start()
        controller.configure(interval=5.0)
        buffer.content = "a"
        scheduler.advance(4.0)
        assert buffer.writes == []
        scheduler.advance(1.0)
        assert buffer.writes == ["a"]
        assert scheduler.pending() == 1


class TestDebounce:

    def test_flushes_after_quiet_period(self, controller, buffer, scheduler):
        buffer.content = "e"
        controller.touch()
        scheduler.advance(0.3)
        assert buffer.writes == []
        scheduler.advance(0.1)
        assert buffer.writes == ["e"]
        assert not controller.debounce_pending

    def test_each_touch_restarts_window(self, controller, buffer, scheduler):
        for text in ["e", "eg", "egg", "eggs"]:
            buffer.content = text
            controller.touch()
            scheduler.advance(0.2)
        assert buffer.writes == []
        scheduler.advance(0.2)
        assert buffer.writes == ["eggs"]

    def test_configure_debounce(self, controller, buffer, scheduler):
        controller.configure(debounce=1.0)
        buffer.content = "x"
        controller.touch()
        scheduler.advance(0.5)
        assert buffer.writes == []
        scheduler.advance(0.5)
        assert buffer.writes == ["x"]

    def test_lock_held_during_timer_flush(self, scheduler, buffer):
        lock = threading.RLock()
        held = []

        def write(content):
            # Probe from another thread: the flush must run under the lock
            result = []
            t = threading.Thread(target=lambda: result.append(lock.acquire(blocking=False)))
            t.start()
            t.join()
            held.append(not result[0])

        ctl = AutosaveController(scheduler, buffer.read, write, lock=lock)
        buffer.content = "x"
        ctl.touch()
        scheduler.advance(1.0)
        assert held == [True]
