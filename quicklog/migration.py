"""
One-time migration from the flat-file note store to SQLite.

Runs once per process start, before any other content store access. If the
SQLite store already holds a note the migration is skipped entirely, which
both prevents double imports and keeps deleted notes deleted. Legacy files
are left on disk untouched.
"""

import logging
from dataclasses import dataclass, field

from .document_store import SqliteContentStore
from .file_store import FileContentStore

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    """Outcome of a migration run."""
    skipped: bool = False
    migrated: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)
    empty_bodies: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.migrated)


def migrate_file_store(source: FileContentStore, target: SqliteContentStore) -> MigrationResult:
    """
    Copy every legacy note into the SQLite store, metadata verbatim.

    A missing or malformed legacy index means nothing to migrate. A missing
    or unreadable body file migrates as an empty body.
    """
    if target.count() > 0:
        logger.debug("Migration skipped: target already has notes")
        return MigrationResult(skipped=True)

    result = MigrationResult()
    notes = source.list()
    if not notes:
        return result

    for note in notes:
        content = source.load(note.id)
        if not content:
            result.empty_bodies.append(note.id)
        if target.insert(note, content):
            result.migrated.append(note.id)
        else:
            result.failed.append(note.id)

    logger.info(
        "Migrated %d notes from %s (%d failed, %d empty bodies)",
        result.count, source.index_path, len(result.failed), len(result.empty_bodies),
    )
    return result
