"""
Capture session: the editor-context state machine.

The session owns the draft buffer and knows which destination that buffer
is currently bound to:

- DraftContext: a fresh capture, autosaved to draft.json
- DailyLogContext: the buffer is a scratchpad for today's log; the log
  itself is append-only and never loaded into the buffer
- NoteContext(note_id): the buffer is the note body, saved in place
- HistoryEntryContext(entry_id): the buffer is a saved entry, saved in place

Every context switch flushes the current context synchronously first, so a
pending write can never land on the wrong destination. Committing from a
draft appends a timestamped block to the daily log and records a ledger
entry.

While a fresh draft has text, a pending entry is synthesized for listings.
It is never persisted.

All public methods hold a re-entrant lock; timer callbacks take the same
lock before flushing.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from .autosave import AutosaveController
from .backend import StoreBundle, create_stores
from .clipboard import ClipboardHistory
from .config import QuickLogConfig, get_default_store_path, load_or_create_config
from .daily_log import format_block
from .scheduler import Scheduler, ThreadingScheduler
from .types import (
    DAILY_LOG, ClipboardItem, Clock, Draft, EditorMode, Entry, EntryTarget,
    Note, NoteFormat, NoteTarget, local_now, make_preview, new_id,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Contexts
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DraftContext:
    display_name = "Draft"


@dataclass(frozen=True)
class DailyLogContext:
    display_name = "Today's Log"


@dataclass(frozen=True)
class NoteContext:
    note_id: str
    display_name = "Note"


@dataclass(frozen=True)
class HistoryEntryContext:
    entry_id: str
    display_name = "History"


EditorContext = Union[DraftContext, DailyLogContext, NoteContext, HistoryEntryContext]

DRAFT = DraftContext()
DAILY_LOG_CONTEXT = DailyLogContext()


class CaptureSession:
    """
    The capture core the UI and CLI drive.

    Readers: context, draft_content, pending_entry, entries(), notes(),
    merged_entries(), clipboard_history().
    Writers: the transition methods below. The UI never writes storage
    directly.
    """

    def __init__(
        self,
        stores: StoreBundle,
        config: QuickLogConfig,
        *,
        scheduler: Optional[Scheduler] = None,
        clock: Clock = local_now,
        autostart: bool = True,
    ):
        """
        Args:
            stores: Storage backends (see backend.create_stores)
            config: Settings; ledger cap, timings, editor mode, clipboard size
            scheduler: Timer source; defaults to a ThreadingScheduler
            clock: Source of the current time
            autostart: Start the autosave ticker immediately
        """
        self._lock = threading.RLock()
        self._stores = stores
        self._config = config
        self._clock = clock

        self._context: EditorContext = DRAFT
        self._draft_content = ""
        self._editor_mode = config.default_editor_mode
        self._session_id = new_id()
        self._pending_created_at = None
        self._pending_entry: Optional[Entry] = None
        self._save_target_note_id: Optional[str] = None

        self.clipboard = ClipboardHistory(config.clipboard_history_size, clock=clock)
        self._autosave = AutosaveController(
            scheduler if scheduler is not None else ThreadingScheduler(),
            read_content=lambda: self._draft_content,
            dispatch=self._write_current,
            interval=config.autosave_interval,
            debounce=config.note_debounce,
            lock=self._lock,
        )
        if autostart:
            self._autosave.start()

    @classmethod
    def open(
        cls,
        store_path: Optional[Path] = None,
        *,
        scheduler: Optional[Scheduler] = None,
        clock: Clock = local_now,
        autostart: bool = True,
    ) -> "CaptureSession":
        """Open (creating if needed) a store directory and restore its draft."""
        path = Path(store_path) if store_path is not None else get_default_store_path()
        config = load_or_create_config(path)
        stores = create_stores(config, clock=clock)
        session = cls(stores, config, scheduler=scheduler, clock=clock, autostart=autostart)
        session.restore_draft()
        return session

    # -------------------------------------------------------------------------
    # Read side
    # -------------------------------------------------------------------------

    @property
    def config(self) -> QuickLogConfig:
        return self._config

    @property
    def stores(self) -> StoreBundle:
        return self._stores

    @property
    def autosave(self) -> AutosaveController:
        return self._autosave

    @property
    def context(self) -> EditorContext:
        return self._context

    @property
    def draft_content(self) -> str:
        return self._draft_content

    @property
    def editor_mode(self) -> EditorMode:
        return self._editor_mode

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def pending_entry(self) -> Optional[Entry]:
        return self._pending_entry

    @property
    def save_target(self) -> EntryTarget:
        """Where save_only()/save_and_next() append."""
        with self._lock:
            note = self._selected_note()
            if note is None:
                return DAILY_LOG
            return NoteTarget(id=note.id, title=note.title)

    @property
    def save_target_name(self) -> str:
        return self.save_target.display_name

    def entries(self) -> list[Entry]:
        """Saved entries, newest first."""
        return self._stores.ledger.list()

    def merged_entries(self) -> list[Entry]:
        """
        Saved entries with the pending entry (if any) on top.

        The pending entry is left out when the newest saved entry already
        has the same text, e.g. straight after save_only().
        """
        with self._lock:
            entries = self._stores.ledger.list()
            pending = self._pending_entry
            if pending is None:
                return entries
            if entries and entries[0].content.strip() == pending.content:
                return entries
            return [pending] + entries

    def notes(self) -> list[Note]:
        """Notes, most recently updated first."""
        return self._stores.notes.list()

    def note_content(self, note_id: str) -> str:
        return self._stores.notes.load(note_id)

    def clipboard_history(self) -> list[ClipboardItem]:
        return self.clipboard.items()

    # -------------------------------------------------------------------------
    # Buffer edits
    # -------------------------------------------------------------------------

    def set_draft_content(self, text: str) -> None:
        """
        Replace the buffer (a keystroke).

        In a note, each edit restarts the debounce; the note is written once
        the text has been quiet for the debounce window.
        """
        with self._lock:
            self._draft_content = text
            self._refresh_pending()
            if isinstance(self._context, NoteContext):
                self._autosave.touch()

    def insert_text(self, text: str) -> None:
        """Append text to the buffer. Written by the regular autosave tick."""
        with self._lock:
            self._draft_content += text
            self._refresh_pending()

    def on_capture_text_available(self, text: str) -> None:
        """Input-source hook: captured text goes into the draft buffer."""
        self.insert_text(text)

    def record_clipboard(self, text: str) -> Optional[ClipboardItem]:
        """Clipboard-watcher hook: remember a copied text."""
        with self._lock:
            return self.clipboard.add(text)

    def set_editor_mode(self, mode: EditorMode) -> None:
        with self._lock:
            if mode == self._editor_mode:
                return
            self._editor_mode = mode
            if isinstance(self._context, (DraftContext, DailyLogContext)):
                self._save_draft()

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def force_autosave_now(self) -> bool:
        """Flush the current context now if its content changed."""
        with self._lock:
            return self._autosave.flush()

    def new_draft(self) -> None:
        """Flush the current context, then start an empty draft session."""
        with self._lock:
            self._leave_context()
            self._reset_draft()

    def open_note(self, note_id: str) -> bool:
        """
        Flush the current context and load a note into the buffer.

        Returns:
            False (and nothing changes) if the note does not exist
        """
        with self._lock:
            self._leave_context()
            if self._stores.notes.get(note_id) is None:
                logger.debug("open_note: note not found: %s", note_id)
                return False
            self._enter(NoteContext(note_id), self._stores.notes.load(note_id))
            return True

    def open_history_entry(self, entry_id: str) -> bool:
        """
        Flush the current context and load a saved entry into the buffer.

        Returns:
            False (and nothing changes) if the entry does not exist
        """
        with self._lock:
            self._leave_context()
            entry = self._stores.ledger.get(entry_id)
            if entry is None:
                logger.debug("open_history_entry: entry not found: %s", entry_id)
                return False
            self._enter(HistoryEntryContext(entry_id), entry.content)
            return True

    def open_daily_log(self) -> None:
        """Flush and switch to the daily log. The buffer is kept as-is."""
        with self._lock:
            self._leave_context()
            self._context = DAILY_LOG_CONTEXT
            self._refresh_pending()

    def commit_and_new(self) -> Optional[Entry]:
        """
        Commit the buffer to today's log and start a fresh draft session.

        From a draft or the daily log: blank text is a no-op; otherwise the
        trimmed text is appended to the log, recorded in the ledger, and the
        buffer is cleared (the context is kept). From a note or history
        entry this is new_draft().

        Returns:
            The recorded entry, or None if nothing was committed
        """
        with self._lock:
            self._autosave.flush()
            if not isinstance(self._context, (DraftContext, DailyLogContext)):
                self.new_draft()
                return None

            content = self._draft_content
            if not content.strip():
                return None
            entry = self._capture(DAILY_LOG, content)
            if entry is None:
                return None
            self._clear_buffer()
            return entry

    def save_only(self) -> Optional[Entry]:
        """Append the buffer to the save target and record it; keep the buffer."""
        with self._lock:
            self._autosave.flush()
            entry = self._save_to_target()
            if entry is not None:
                self._save_draft()
                self._refresh_pending()
            return entry

    def save_and_next(self) -> Optional[Entry]:
        """Append the buffer to the save target, record it, and clear the buffer."""
        with self._lock:
            self._autosave.flush()
            entry = self._save_to_target()
            if entry is not None:
                self._clear_buffer()
            return entry

    def capture_text(self, text: str, note_id: Optional[str] = None) -> Optional[Entry]:
        """
        Capture text directly, leaving the buffer and context alone.

        Appends to the given note (or today's log) and records an entry.
        Blank text and unknown notes capture nothing.
        """
        with self._lock:
            if not text.strip():
                return None
            target: EntryTarget = DAILY_LOG
            if note_id is not None:
                note = self._stores.notes.get(note_id)
                if note is None:
                    return None
                target = NoteTarget(id=note.id, title=note.title)
            return self._capture(target, text)

    def select_save_target(self, note_id: Optional[str]) -> bool:
        """
        Choose the note save_only()/save_and_next() append to.

        None selects the daily log. Unknown note ids are rejected.
        """
        with self._lock:
            if note_id is not None and self._stores.notes.get(note_id) is None:
                return False
            self._save_target_note_id = note_id
            return True

    # -------------------------------------------------------------------------
    # Note and entry lifecycle
    # -------------------------------------------------------------------------

    def create_note(self, title: str, format: NoteFormat = NoteFormat.MARKDOWN) -> Optional[Note]:
        with self._lock:
            return self._stores.notes.create(new_id(), title, format=format)

    def rename_note(self, note_id: str, title: str) -> bool:
        with self._lock:
            return self._stores.notes.rename(note_id, title)

    def replace_note(self, note_id: str, text: str) -> bool:
        """
        Overwrite a note's whole body.

        The current context is flushed first. If the note is open, the
        buffer takes the new body without writing it again.
        """
        with self._lock:
            self._autosave.flush()
            if not self._stores.notes.replace(note_id, text):
                return False
            if self._context == NoteContext(note_id):
                self._autosave.cancel_debounce()
                self._enter(self._context, text)
            return True

    def edit_entry(self, entry_id: str, text: str) -> Optional[Entry]:
        """
        Rewrite a saved entry's content; it moves to the top of the history.

        The current context is flushed first. If the entry is open, the
        buffer takes the new content.

        Returns:
            The updated entry, or None if it does not exist
        """
        with self._lock:
            self._autosave.flush()
            entry = self._stores.ledger.update(entry_id, text)
            if entry is not None and self._context == HistoryEntryContext(entry_id):
                self._enter(self._context, entry.content)
            return entry

    def delete_note(self, note_id: str) -> bool:
        """Delete a note. If it is open, the session moves to a fresh draft."""
        with self._lock:
            if self._context == NoteContext(note_id):
                self._autosave.cancel_debounce()
                self._reset_draft()
            if self._save_target_note_id == note_id:
                self._save_target_note_id = None
            return self._stores.notes.delete(note_id)

    def delete_entry(self, entry_id: str) -> bool:
        """Delete a saved entry. If it is open, the session moves to a fresh draft."""
        with self._lock:
            if self._context == HistoryEntryContext(entry_id):
                self._reset_draft()
            return self._stores.ledger.delete(entry_id)

    # -------------------------------------------------------------------------
    # Settings and lifecycle
    # -------------------------------------------------------------------------

    def apply_settings(self, config: QuickLogConfig) -> None:
        """Pick up changed settings. The current buffer's mode is kept."""
        with self._lock:
            self._config = config.normalize()
            self._stores.ledger.max_count = config.max_entries
            self.clipboard.max_size = config.clipboard_history_size
            self._autosave.configure(
                interval=config.autosave_interval,
                debounce=config.note_debounce,
            )

    def restore_draft(self) -> bool:
        """Load the persisted draft into the buffer without rewriting it."""
        with self._lock:
            draft = self._stores.drafts.load()
            if draft is None:
                return False
            self._draft_content = draft.content
            self._editor_mode = draft.mode
            self._autosave.snapshot(draft.content)
            self._refresh_pending()
            return True

    def close(self) -> None:
        """Flush, stop timers and close the stores."""
        with self._lock:
            self._autosave.flush()
            self._autosave.stop()
            self._stores.notes.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    # -------------------------------------------------------------------------
    # Internals (lock held)
    # -------------------------------------------------------------------------

    def _write_current(self, content: str) -> None:
        """Autosave dispatch: write `content` to the current context's home."""
        context = self._context
        if isinstance(context, NoteContext):
            if not self._stores.notes.replace(context.note_id, content):
                logger.warning("Autosave to note %s did not write", context.note_id)
        elif isinstance(context, HistoryEntryContext):
            if self._stores.ledger.update(context.entry_id, content) is None:
                logger.warning("Autosave to entry %s did not write", context.entry_id)
        else:
            self._save_draft()
        self._refresh_pending()

    def _save_draft(self) -> bool:
        draft = Draft(content=self._draft_content, mode=self._editor_mode,
                      last_modified=self._clock())
        return self._stores.drafts.save(draft)

    def _leave_context(self) -> None:
        self._autosave.flush()
        self._autosave.cancel_debounce()

    def _enter(self, context: EditorContext, content: str) -> None:
        self._context = context
        self._draft_content = content
        self._autosave.snapshot(content)
        self._refresh_pending()

    def _reset_draft(self) -> None:
        self._context = DRAFT
        self._clear_buffer()

    def _clear_buffer(self) -> None:
        """Empty the buffer and start a new draft session."""
        self._draft_content = ""
        self._autosave.snapshot("")
        self._session_id = new_id()
        self._pending_created_at = None
        self._pending_entry = None
        self._save_draft()

    def _selected_note(self) -> Optional[Note]:
        if self._save_target_note_id is None:
            return None
        return self._stores.notes.get(self._save_target_note_id)

    def _save_to_target(self) -> Optional[Entry]:
        if not isinstance(self._context, (DraftContext, DailyLogContext)):
            logger.debug("save ignored in context %s", self._context)
            return None
        content = self._draft_content
        if not content.strip():
            return None
        return self._capture(self.save_target, content)

    def _capture(self, target: EntryTarget, content: str) -> Optional[Entry]:
        """Append `content` as a block to `target` and record an entry."""
        now = self._clock()
        if isinstance(target, NoteTarget):
            ok = self._stores.notes.append(target.id, format_block(content, now))
        else:
            ok = self._stores.daily_log.append(content)
        if not ok:
            logger.warning("Capture to %s failed; buffer kept", target.display_name)
            return None

        entry = Entry.create(content.strip(), target, now)
        if not self._stores.ledger.add(entry, self._config.max_entries):
            logger.warning("Capture appended but ledger write failed: %s", entry.id)
        logger.info("Captured %s to %s", entry.id, target.display_name)
        return entry

    def _refresh_pending(self) -> None:
        """Recompute the pending entry for a fresh, non-empty draft."""
        trimmed = self._draft_content.strip()
        if not isinstance(self._context, DraftContext) or not trimmed:
            self._pending_entry = None
            self._pending_created_at = None
            return

        now = self._clock()
        if self._pending_created_at is None:
            self._pending_created_at = now
        self._pending_entry = Entry(
            id=self._session_id,
            created_at=self._pending_created_at,
            updated_at=now,
            target=DAILY_LOG,
            preview=make_preview(trimmed),
            content=trimmed,
        )
