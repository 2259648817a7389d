"""
QuickLog

A local capture tool. Freeform text goes to a rolling daily log, to notes,
or into a history of saved snippets, while the in-progress draft is
autosaved continuously.

Quick Start:
    from quicklog import CaptureSession

    with CaptureSession.open() as session:   # uses ~/.quicklog/
        session.set_draft_content("buy milk")
        session.commit_and_new()              # appended to logs/<today>.md

CLI Usage:
    quicklog capture "buy milk"
    quicklog note new "Groceries"
    quicklog history list

Default Store:
    ~/.quicklog/ (created automatically).
    Override with QUICKLOG_STORE_PATH or --store.

Environment Variables:
    QUICKLOG_STORE_PATH  - Override default store location
    QUICKLOG_DEBUG       - Set to 1 for debug logging on stderr

Configuration is persisted in quicklog.toml within the store directory.
"""

from .config import QuickLogConfig, load_or_create_config
from .session import (
    CaptureSession, DailyLogContext, DraftContext, HistoryEntryContext, NoteContext,
)
from .types import (
    DailyLogTarget, Draft, EditorMode, Entry, Note, NoteFormat, NoteTarget, make_preview,
)

__version__ = "0.1.0"
__all__ = [
    "CaptureSession",
    "DraftContext",
    "DailyLogContext",
    "NoteContext",
    "HistoryEntryContext",
    "QuickLogConfig",
    "load_or_create_config",
    "Draft",
    "EditorMode",
    "Entry",
    "Note",
    "NoteFormat",
    "DailyLogTarget",
    "NoteTarget",
    "make_preview",
]
