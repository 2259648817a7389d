"""
Deferred-work scheduling for autosave.

The session core never touches wall-clock timers directly. It is handed a
Scheduler that can run a callback once after a delay or repeatedly at an
interval, and every scheduled call returns a handle that can be cancelled.

- ThreadingScheduler runs callbacks on daemon timer threads.
- ManualScheduler runs callbacks synchronously when virtual time is
  advanced, for deterministic tests and for embedding in an external loop.
"""

import heapq
import itertools
import logging
import threading
from typing import Callable, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

Callback = Callable[[], None]


@runtime_checkable
class Cancellable(Protocol):
    def cancel(self) -> None: ...


@runtime_checkable
class Scheduler(Protocol):
    """Source of one-shot and repeating deferred calls."""

    def call_later(self, delay: float, callback: Callback) -> Cancellable: ...

    def call_every(self, interval: float, callback: Callback) -> Cancellable: ...


def _run_logged(callback: Callback) -> None:
    try:
        callback()
    except Exception:
        logger.exception("Scheduled callback failed")


# -----------------------------------------------------------------------------
# Threaded
# -----------------------------------------------------------------------------

class _RepeatingTimer:
    """Daemon thread calling `callback` every `interval` seconds until cancelled."""

    def __init__(self, interval: float, callback: Callback):
        self._interval = interval
        self._callback = callback
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name="quicklog-ticker", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            _run_logged(self._callback)

    def cancel(self) -> None:
        self._stopped.set()


class ThreadingScheduler:
    """Scheduler backed by threading.Timer and a ticker thread."""

    def call_later(self, delay: float, callback: Callback) -> Cancellable:
        timer = threading.Timer(delay, _run_logged, args=(callback,))
        timer.daemon = True
        timer.start()
        return timer

    def call_every(self, interval: float, callback: Callback) -> Cancellable:
        return _RepeatingTimer(interval, callback)


# -----------------------------------------------------------------------------
# Manual (virtual time)
# -----------------------------------------------------------------------------

class _ManualHandle:
    def __init__(self, due: float, interval: Optional[float], callback: Callback):
        self.due = due
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler driven by explicit calls to advance().

    Callbacks run synchronously on the calling thread, in due-time order,
    with `now` set to each callback's due time while it runs.
    """

    def __init__(self):
        self.now = 0.0
        self._queue: list[tuple[float, int, _ManualHandle]] = []
        self._seq = itertools.count()

    def _push(self, handle: _ManualHandle) -> None:
        heapq.heappush(self._queue, (handle.due, next(self._seq), handle))

    def call_later(self, delay: float, callback: Callback) -> Cancellable:
        handle = _ManualHandle(self.now + delay, None, callback)
        self._push(handle)
        return handle

    def call_every(self, interval: float, callback: Callback) -> Cancellable:
        handle = _ManualHandle(self.now + interval, interval, callback)
        self._push(handle)
        return handle

    def pending(self) -> int:
        """Number of live (uncancelled) scheduled calls."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        """
        Move virtual time forward, running everything that falls due.

        Returns:
            Number of callbacks run
        """
        target = self.now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            if handle.cancelled:
                continue
            self.now = due
            _run_logged(handle.callback)
            ran += 1
            if handle.interval is not None and not handle.cancelled:
                handle.due = due + handle.interval
                self._push(handle)
        self.now = target
        return ran
