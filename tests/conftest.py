"""
Shared pytest fixtures for quicklog tests.

Time is fully controlled: a FakeClock stands in for wall-clock time and a
ManualScheduler stands in for timers, so no test sleeps.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from quicklog.backend import create_stores
from quicklog.config import QuickLogConfig
from quicklog.scheduler import ManualScheduler
from quicklog.session import CaptureSession


class FakeClock:
    """
    Deterministic clock.

    Every call returns a strictly later time (by `step`) so that records
    written in sequence never tie on their timestamps.
    """

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        now = self.current
        self.current = self.current + self.step
        return now

    def advance(self, **kwargs) -> None:
        self.current = self.current + timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    """Clock starting at 2024-01-01 09:00 UTC."""
    return FakeClock(datetime(2024, 1, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def config(tmp_path: Path) -> QuickLogConfig:
    """Default configuration for a fresh store directory."""
    return QuickLogConfig(path=tmp_path / "store")


@pytest.fixture
def stores(config, clock):
    bundle = create_stores(config, clock=clock)
    yield bundle
    bundle.notes.close()


@pytest.fixture
def session(stores, config, scheduler, clock):
    """Capture session on a manual scheduler with the ticker running."""
    s = CaptureSession(stores, config, scheduler=scheduler, clock=clock)
    yield s
    s.close()
