"""
Flat-file content store.

Each note body is a physical file in the notes directory, named by note id
with an extension taken from its format. A sidecar ``notes.json`` holds the
metadata list and is the source of truth for ordering: it is re-sorted by
updated time and rewritten wholesale on every mutation.

This was the original storage layout. New stores use SQLite; this backend
remains for the ``file`` backend setting and as the migration source.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from .jsonfile import read_records, write_json
from .protocol import default_header
from .types import Clock, Note, NoteFormat, local_now

logger = logging.getLogger(__name__)

INDEX_FILENAME = "notes.json"


class FileContentStore:
    """
    File-backed content store.

    Body appends open the file in append mode, but the index update that
    follows is a separate read-modify-write; callers must not write to the
    same store from several threads without their own serialization.
    """

    def __init__(self, notes_dir: Path, clock: Clock = local_now):
        """
        Args:
            notes_dir: Directory holding note files and the index
            clock: Source of the current time
        """
        self._dir = Path(notes_dir)
        self._clock = clock

    @property
    def index_path(self) -> Path:
        return self._dir / INDEX_FILENAME

    def note_path(self, key: str, format: NoteFormat = NoteFormat.MARKDOWN) -> Path:
        return self._dir / f"{key}.{format.extension}"

    # -------------------------------------------------------------------------
    # Index
    # -------------------------------------------------------------------------

    def _load_index(self) -> list[Note]:
        notes = []
        for record in read_records(self.index_path, "notes"):
            try:
                notes.append(Note.from_dict(record))
            except (KeyError, ValueError) as e:
                logger.warning("Skipping malformed note record in %s: %s", self.index_path, e)
        notes.sort(key=lambda n: n.updated_at, reverse=True)
        return notes

    def _save_index(self, notes: list[Note]) -> bool:
        # Keep the on-disk order identical to the listing order
        ordered = sorted(notes, key=lambda n: n.updated_at, reverse=True)
        return write_json(self.index_path, {"notes": [n.to_dict() for n in ordered]})

    def _find(self, notes: list[Note], key: str) -> Optional[int]:
        for i, note in enumerate(notes):
            if note.id == key:
                return i
        return None

    def _ensure_body(self, note: Note, header: Optional[str] = None) -> bool:
        path = self.note_path(note.id, note.format)
        if path.exists():
            return True
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            path.write_text(header if header is not None else default_header(note.title),
                            encoding="utf-8")
            return True
        except OSError as e:
            logger.error("Failed to create note file %s: %s", path, e)
            return False

    # -------------------------------------------------------------------------
    # Write Operations
    # -------------------------------------------------------------------------

    def create(
        self,
        key: str,
        title: str,
        header: Optional[str] = None,
        format: NoteFormat = NoteFormat.MARKDOWN,
    ) -> Optional[Note]:
        """
        Create a note if absent.

        Returns:
            The new note, the existing note if the key was already present,
            or None if storage failed
        """
        notes = self._load_index()
        i = self._find(notes, key)
        if i is not None:
            return notes[i]

        note = Note(id=key, title=title, updated_at=self._clock(), format=format)
        if not self._ensure_body(note, header):
            return None
        notes.insert(0, note)
        if not self._save_index(notes):
            return None
        logger.info("Created note %s (%s)", key, title)
        return note

    def append(self, key: str, text: str) -> bool:
        """Append text to a note body and bump its updated time."""
        if not text:
            return True
        notes = self._load_index()
        i = self._find(notes, key)
        if i is None:
            logger.debug("append: note not found: %s", key)
            return False

        note = notes[i]
        if not self._ensure_body(note):
            return False
        path = self.note_path(key, note.format)
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_APPEND, 0o644)
            with os.fdopen(fd, "a", encoding="utf-8") as f:
                f.write(text)
        except OSError as e:
            logger.error("append failed for %s: %s", path, e)
            return False

        note.updated_at = self._clock()
        return self._save_index(notes)

    def replace(self, key: str, text: str) -> bool:
        """Overwrite a note body and bump its updated time."""
        notes = self._load_index()
        i = self._find(notes, key)
        if i is None:
            logger.debug("replace: note not found: %s", key)
            return False

        note = notes[i]
        path = self.note_path(key, note.format)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            tmp = path.with_name(f".{path.name}.tmp")
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            logger.error("replace failed for %s: %s", path, e)
            return False

        note.updated_at = self._clock()
        logger.debug("replace wrote %d bytes -> %s", len(text.encode("utf-8")), path)
        return self._save_index(notes)

    def rename(self, key: str, title: str) -> bool:
        notes = self._load_index()
        i = self._find(notes, key)
        if i is None:
            return False
        notes[i].title = title
        notes[i].updated_at = self._clock()
        return self._save_index(notes)

    def delete(self, key: str) -> bool:
        """Remove a note's metadata and body file."""
        notes = self._load_index()
        i = self._find(notes, key)
        if i is None:
            return False
        note = notes.pop(i)
        if not self._save_index(notes):
            return False
        try:
            self.note_path(key, note.format).unlink(missing_ok=True)
        except OSError as e:
            logger.warning("Failed to remove note file for %s: %s", key, e)
        return True

    def insert(self, note: Note, content: str) -> bool:
        """Insert or replace a note with explicit metadata and body."""
        notes = self._load_index()
        i = self._find(notes, note.id)
        path = self.note_path(note.id, note.format)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            logger.error("insert failed for %s: %s", path, e)
            return False
        if i is None:
            notes.append(note)
        else:
            notes[i] = note
        return self._save_index(notes)

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def load(self, key: str) -> str:
        """Note body, or empty string if the note or its file is missing."""
        note = self.get(key)
        path = self.note_path(key, note.format if note else NoteFormat.MARKDOWN)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Failed to read %s: %s", path, e)
            return ""

    def get(self, key: str) -> Optional[Note]:
        notes = self._load_index()
        i = self._find(notes, key)
        return notes[i] if i is not None else None

    def list(self) -> list[Note]:
        """Notes, most recently updated first."""
        return self._load_index()

    def count(self) -> int:
        return len(self._load_index())

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
