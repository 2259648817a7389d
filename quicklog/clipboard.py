"""
In-memory clipboard history.

A true history: repeated copies of the same text each get their own row.
Pinned items survive truncation ahead of unpinned ones.
"""

import logging
from typing import Optional

from .config import CLIPBOARD_HISTORY_MAX, CLIPBOARD_HISTORY_MIN
from .types import ClipboardItem, Clock, local_now

logger = logging.getLogger(__name__)


class ClipboardHistory:
    """Capped, most-recent-first list of clipboard items."""

    def __init__(self, max_size: int = 50, clock: Clock = local_now):
        self._items: list[ClipboardItem] = []
        self._clock = clock
        self.max_size = max_size

    @property
    def max_size(self) -> int:
        return self._max_size

    @max_size.setter
    def max_size(self, value: int) -> None:
        self._max_size = min(max(value, CLIPBOARD_HISTORY_MIN), CLIPBOARD_HISTORY_MAX)
        self._truncate()

    def _truncate(self) -> None:
        if len(self._items) <= self._max_size:
            return
        pinned = [item for item in self._items if item.pinned]
        keep = set(id(item) for item in pinned[:self._max_size])
        room = self._max_size - len(keep)
        for item in self._items:
            if room <= 0:
                break
            if id(item) not in keep:
                keep.add(id(item))
                room -= 1
        self._items = [item for item in self._items if id(item) in keep]

    def add(self, text: str) -> Optional[ClipboardItem]:
        """Record a clipboard text. Blank text is ignored."""
        if not text.strip():
            return None
        item = ClipboardItem(text=text, timestamp=self._clock())
        self._items.insert(0, item)
        self._truncate()
        logger.debug("clipboard add count=%d/%d preview=%s",
                     len(self._items), self._max_size, item.preview)
        return item

    def items(self) -> list[ClipboardItem]:
        return list(self._items)

    def get(self, item_id: str) -> Optional[ClipboardItem]:
        return next((item for item in self._items if item.id == item_id), None)

    def set_pinned(self, item_id: str, pinned: bool = True) -> bool:
        item = self.get(item_id)
        if item is None:
            return False
        item.pinned = pinned
        return True

    def remove(self, item_id: str) -> bool:
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        return len(self._items) != before

    def clear(self, keep_pinned: bool = True) -> None:
        self._items = [item for item in self._items if keep_pinned and item.pinned]

    def __len__(self) -> int:
        return len(self._items)
