"""
History ledger of saved captures.

The ledger is a single JSON document (``entries.json``) holding a capped
list of entries. Every mutation is a whole-document read-modify-write,
which is fine at the default cap of a few hundred entries. Ordering is
computed at read time from ``updated_at``, so editing an old entry
promotes it on the next listing without moving it on disk.

Eviction happens only when inserting; reads never drop entries.
"""

import logging
from pathlib import Path
from typing import Optional

from .jsonfile import read_records, write_json
from .types import Clock, Entry, local_now

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 300


class EntryLedger:
    """Capped, most-recent-first ledger of Entry records."""

    def __init__(self, path: Path, max_count: int = DEFAULT_MAX_ENTRIES, clock: Clock = local_now):
        """
        Args:
            path: Path to the ledger JSON file
            max_count: Cap applied on insert
            clock: Source of the current time
        """
        self._path = Path(path)
        self.max_count = max_count
        self._clock = clock

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> list[Entry]:
        """Entries in stored order."""
        entries = []
        for record in read_records(self._path, "entries"):
            try:
                entries.append(Entry.from_dict(record))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning("Skipping malformed entry in %s: %s", self._path, e)
        return entries

    def _save(self, entries: list[Entry]) -> bool:
        return write_json(self._path, {"entries": [e.to_dict() for e in entries]})

    def list(self) -> list[Entry]:
        """
        All entries, newest ``updated_at`` first.

        Ties keep stored order (sorted() is stable).
        """
        return sorted(self._load(), key=lambda e: e.updated_at, reverse=True)

    def get(self, id: str) -> Optional[Entry]:
        for entry in self._load():
            if entry.id == id:
                return entry
        return None

    def add(self, entry: Entry, max_count: Optional[int] = None) -> bool:
        """
        Insert an entry as the most recent and truncate to the cap.

        Args:
            entry: The entry to record
            max_count: Override for the configured cap

        Returns:
            True if the ledger was written
        """
        cap = max_count if max_count is not None else self.max_count
        entries = [entry] + self.list()
        evicted = len(entries) - cap
        if evicted > 0:
            entries = entries[:cap]
            logger.debug("Ledger cap %d reached, evicted %d", cap, evicted)
        return self._save(entries)

    def update(self, id: str, content: str) -> Optional[Entry]:
        """
        Rewrite an entry's content in place.

        Recomputes the preview and bumps ``updated_at``. Unknown ids are a
        silent no-op (the entry may have been deleted under us).

        Returns:
            The updated entry, or None if not found or not written
        """
        entries = self._load()
        for i, entry in enumerate(entries):
            if entry.id == id:
                updated = entry.with_content(content, self._clock())
                entries[i] = updated
                return updated if self._save(entries) else None
        logger.debug("update: entry not found: %s", id)
        return None

    def delete(self, id: str) -> bool:
        """Remove an entry. Returns True if it existed and the ledger was written."""
        entries = self._load()
        remaining = [e for e in entries if e.id != id]
        if len(remaining) == len(entries):
            return False
        return self._save(remaining)

    def clear(self) -> bool:
        return self._save([])
