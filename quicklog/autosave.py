"""
Debounced, content-diff-aware autosave.

The controller keeps a snapshot of the content it last handed to storage.
A flush compares the live content to that snapshot by value and does
nothing when they match, so unchanged text never causes a write or bumps
an updated time.

The snapshot is advanced before the write is dispatched. A failed write is
logged and not retried until the content changes again.

Two timers drive flushes: a steady ticker (default every 2 s) and a short
quiet-period debounce (default 350 ms) that the session restarts on every
keystroke while a note is open.
"""

import contextlib
import logging
from typing import Callable, ContextManager, Optional

from .scheduler import Cancellable, Scheduler

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 2.0
DEFAULT_DEBOUNCE = 0.35


class AutosaveController:
    """Flush scheduler bound to whatever the session's current context is."""

    def __init__(
        self,
        scheduler: Scheduler,
        read_content: Callable[[], str],
        dispatch: Callable[[str], None],
        *,
        interval: float = DEFAULT_INTERVAL,
        debounce: float = DEFAULT_DEBOUNCE,
        lock: Optional[ContextManager] = None,
    ):
        """
        Args:
            scheduler: Source of deferred calls
            read_content: Returns the live draft content
            dispatch: Writes content to the current context's destination
            interval: Seconds between ticker flushes
            debounce: Quiet period before a debounced flush
            lock: Held around timer-driven flushes
        """
        self._scheduler = scheduler
        self._read_content = read_content
        self._dispatch = dispatch
        self.interval = interval
        self.debounce = debounce
        self.last_flushed = ""
        self.write_count = 0
        self._lock = lock if lock is not None else contextlib.nullcontext()
        self._ticker: Optional[Cancellable] = None
        self._debounce_timer: Optional[Cancellable] = None

    @property
    def running(self) -> bool:
        return self._ticker is not None

    @property
    def debounce_pending(self) -> bool:
        return self._debounce_timer is not None

    def start(self) -> None:
        if self._ticker is None:
            self._ticker = self._scheduler.call_every(self.interval, self._on_tick)

    def stop(self) -> None:
        if self._ticker is not None:
            self._ticker.cancel()
            self._ticker = None
        self.cancel_debounce()

    def configure(self, *, interval: Optional[float] = None, debounce: Optional[float] = None) -> None:
        """Apply changed timings. A running ticker is restarted."""
        if debounce is not None:
            self.debounce = debounce
        if interval is not None and interval != self.interval:
            self.interval = interval
            if self._ticker is not None:
                self._ticker.cancel()
                self._ticker = None
                self.start()

    def snapshot(self, content: str) -> None:
        """Record `content` as already durable without writing it."""
        self.last_flushed = content

    def flush(self) -> bool:
        """
        Write the live content if it differs from the last flushed value.

        Returns:
            True if a write was dispatched
        """
        content = self._read_content()
        if content == self.last_flushed:
            return False
        self.last_flushed = content
        self.write_count += 1
        try:
            self._dispatch(content)
        except Exception:
            logger.exception("Autosave write failed")
        return True

    def touch(self) -> None:
        """Restart the debounce window; flush once the content has been quiet."""
        self.cancel_debounce()
        handle = None

        def fire() -> None:
            self._on_debounce(handle)

        handle = self._scheduler.call_later(self.debounce, fire)
        self._debounce_timer = handle

    def cancel_debounce(self) -> None:
        if self._debounce_timer is not None:
            self._debounce_timer.cancel()
            self._debounce_timer = None

    def _on_tick(self) -> None:
        with self._lock:
            self.flush()

    def _on_debounce(self, handle: Optional[Cancellable]) -> None:
        with self._lock:
            # A timer that fired just as it was replaced is stale
            if handle is not self._debounce_timer:
                return
            self._debounce_timer = None
            self.flush()
