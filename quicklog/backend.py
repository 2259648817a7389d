"""
Storage backend factory.

Creates the stores a capture session needs from configuration. The note
content store is selected by ``backend`` in the config:

- ``sqlite`` (default): SqliteContentStore, after a one-time migration of
  any legacy flat-file notes
- ``file``: FileContentStore over the notes directory
"""

import logging
from typing import NamedTuple, Optional

from .config import QuickLogConfig
from .daily_log import DailyLog
from .document_store import SqliteContentStore
from .drafts import DraftStore
from .file_store import FileContentStore
from .ledger import EntryLedger
from .migration import MigrationResult, migrate_file_store
from .protocol import ContentStoreProtocol
from .types import Clock, local_now

logger = logging.getLogger(__name__)


class StoreBundle(NamedTuple):
    """Collection of stores returned by the factory."""
    notes: ContentStoreProtocol
    ledger: EntryLedger
    daily_log: DailyLog
    drafts: DraftStore
    migration: Optional[MigrationResult]


def create_content_store(
    config: QuickLogConfig,
    clock: Clock = local_now,
) -> tuple[ContentStoreProtocol, Optional[MigrationResult]]:
    """
    Create the configured note content store.

    For the SQLite backend the legacy file store is migrated first, before
    the store is handed to any caller.
    """
    if config.backend == "file":
        return FileContentStore(config.notes_dir, clock=clock), None
    if config.backend != "sqlite":
        raise ValueError(f"Unknown backend: {config.backend!r}. Available: ['sqlite', 'file']")

    store = SqliteContentStore(config.database_path, clock=clock)
    if not store.is_open:
        logger.error("Note database unavailable, skipping migration: %s", config.database_path)
        return store, None
    legacy = FileContentStore(config.notes_dir, clock=clock)
    result = migrate_file_store(legacy, store)
    return store, result


def create_stores(config: QuickLogConfig, clock: Clock = local_now) -> StoreBundle:
    """Create every store for a quicklog directory."""
    config.path.mkdir(parents=True, exist_ok=True)
    notes, migration = create_content_store(config, clock=clock)
    return StoreBundle(
        notes=notes,
        ledger=EntryLedger(config.entries_path, max_count=config.max_entries, clock=clock),
        daily_log=DailyLog(config.logs_dir, clock=clock),
        drafts=DraftStore(config.draft_path),
        migration=migration,
    )
