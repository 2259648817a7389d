"""
Daily log files and the capture block format.

One markdown file per calendar day, ``logs/YYYY-MM-DD.md``, starting with a
``# YYYY-MM-DD`` header. Each capture is appended as a block::

    <blank>
    ---
    **HH:MM**
    <blank>
    trimmed content

Notes use the same block format.
"""

import logging
import os
import re
from datetime import date, datetime
from pathlib import Path
from typing import Optional

from .types import Clock, local_now

logger = logging.getLogger(__name__)

_LOG_NAME_RE = re.compile(r'^(\d{4}-\d{2}-\d{2})\.md$')


def format_block(content: str, when: datetime) -> str:
    """Capture block for `content`, or empty string if it trims to nothing."""
    trimmed = content.strip()
    if not trimmed:
        return ""
    return f"\n---\n**{when.strftime('%H:%M')}**\n\n{trimmed}\n"


def log_header(day: date) -> str:
    return f"# {day.isoformat()}\n\n"


class DailyLog:
    """Append-only daily log files in a directory."""

    def __init__(self, logs_dir: Path, clock: Clock = local_now):
        self._dir = Path(logs_dir)
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, day: date) -> Path:
        return self._dir / f"{day.isoformat()}.md"

    def today(self) -> date:
        return self._clock().date()

    def append(self, content: str) -> bool:
        """
        Append a timestamped block to today's log.

        Creates the file with its header first if needed. Empty content is a
        no-op that reports success.
        """
        now = self._clock()
        block = format_block(content, now)
        if not block:
            return True
        path = self.path_for(now.date())
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            # O_EXCL: only the first writer of the day lays down the header
            try:
                fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o644)
            except FileExistsError:
                pass
            else:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(log_header(now.date()))
            fd = os.open(path, os.O_WRONLY | os.O_APPEND)
            with os.fdopen(fd, "a", encoding="utf-8") as f:
                f.write(block)
        except OSError as e:
            logger.error("Failed to append to daily log %s: %s", path, e)
            return False
        logger.info("Appended %d chars to %s", len(block), path.name)
        return True

    def load(self, day: Optional[date] = None) -> str:
        """Contents of a day's log (default today); empty if none."""
        path = self.path_for(day or self.today())
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read %s: %s", path, e)
            return ""

    def updated_at(self, day: Optional[date] = None) -> Optional[datetime]:
        path = self.path_for(day or self.today())
        try:
            return datetime.fromtimestamp(path.stat().st_mtime).astimezone()
        except OSError:
            return None

    def days(self) -> list[date]:
        """Days that have a log file, newest first."""
        if not self._dir.is_dir():
            return []
        days = []
        for entry in self._dir.iterdir():
            m = _LOG_NAME_RE.match(entry.name)
            if m:
                try:
                    days.append(date.fromisoformat(m.group(1)))
                except ValueError:
                    continue
        return sorted(days, reverse=True)
