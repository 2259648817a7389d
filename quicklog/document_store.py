"""
Note store using SQLite.

Single table, single connection. The note body lives beside its metadata,
so an append is one UPDATE expressing ``content = content || ?`` rather
than the read-body/concatenate/write-body sequence the file store needs.

The connection is shared across threads (timer callbacks) and every
statement runs under a lock.
"""

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

from .protocol import default_header
from .types import Clock, Note, NoteFormat, format_timestamp, local_now, parse_timestamp

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class SqliteContentStore:
    """
    SQLite-backed store for note metadata and bodies.
    """

    def __init__(self, store_path: Path, clock: Clock = local_now):
        """
        Args:
            store_path: Path to SQLite database file
            clock: Source of the current time
        """
        self._db_path = Path(store_path)
        self._clock = clock
        self._conn: Optional[sqlite3.Connection] = None
        self._lock = threading.Lock()
        try:
            self._init_db()
        except sqlite3.Error as e:
            logger.error("Cannot open note database %s: %s", self._db_path, e)
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    @property
    def is_open(self) -> bool:
        """False once closed, or if the database could not be opened."""
        return self._conn is not None

    def _init_db(self) -> None:
        """Initialize the SQLite database."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), check_same_thread=False)
        self._conn.row_factory = sqlite3.Row

        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA busy_timeout=5000")

        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS notes (
                id TEXT PRIMARY KEY,
                title TEXT NOT NULL,
                updated_at TEXT NOT NULL,
                format TEXT NOT NULL,
                content TEXT NOT NULL
            )
        """)

        self._conn.execute("""
            CREATE INDEX IF NOT EXISTS idx_notes_updated
            ON notes(updated_at DESC)
        """)

        self._conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
        self._conn.commit()

    def _now(self) -> str:
        return format_timestamp(self._clock())

    def _row_to_note(self, row: sqlite3.Row) -> Note:
        try:
            fmt = NoteFormat(row["format"])
        except ValueError:
            fmt = NoteFormat.MARKDOWN
        return Note(
            id=row["id"],
            title=row["title"],
            updated_at=parse_timestamp(row["updated_at"]),
            format=fmt,
        )

    def _execute(self, sql: str, params: tuple = ()) -> Optional[sqlite3.Cursor]:
        """Run one write statement and commit. Returns None on failure."""
        if self._conn is None:
            logger.error("SQLite store is closed: %s", self._db_path)
            return None
        with self._lock:
            try:
                cursor = self._conn.execute(sql, params)
                self._conn.commit()
                return cursor
            except sqlite3.Error as e:
                logger.error("SQLite write failed: %s", e)
                try:
                    self._conn.rollback()
                except sqlite3.Error:
                    pass
                return None

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        if self._conn is None:
            logger.error("SQLite store is closed: %s", self._db_path)
            return []
        with self._lock:
            try:
                return self._conn.execute(sql, params).fetchall()
            except sqlite3.Error as e:
                logger.error("SQLite read failed: %s", e)
                return []

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
        now = self._clock()
        body = header if header is not None else default_header(title)
        cursor = self._execute("""
            INSERT OR IGNORE INTO notes (id, title, updated_at, format, content)
            VALUES (?, ?, ?, ?, ?)
        """, (key, title, format_timestamp(now), format.value, body))
        if cursor is None:
            return None
        if cursor.rowcount == 0:
            return self.get(key)
        logger.info("Created note %s (%s)", key, title)
        return Note(id=key, title=title, updated_at=now, format=format)

    def insert(self, note: Note, content: str) -> bool:
        """
        Insert or replace a note with explicit metadata and body.

        Timestamps are stored as given; used by migration.
        """
        cursor = self._execute("""
            INSERT OR REPLACE INTO notes (id, title, updated_at, format, content)
            VALUES (?, ?, ?, ?, ?)
        """, (note.id, note.title, format_timestamp(note.updated_at), note.format.value, content))
        return cursor is not None

    def append(self, key: str, text: str) -> bool:
        """
        Append text to a note body and bump its updated time.

        Single statement: no window between reading and writing the body.
        """
        if not text:
            return True
        cursor = self._execute("""
            UPDATE notes SET content = content || ?, updated_at = ?
            WHERE id = ?
        """, (text, self._now(), key))
        if cursor is None:
            return False
        logger.debug("append note=%s changes=%d", key, cursor.rowcount)
        return cursor.rowcount > 0

    def replace(self, key: str, text: str) -> bool:
        """Overwrite a note body and bump its updated time."""
        cursor = self._execute("""
            UPDATE notes SET content = ?, updated_at = ?
            WHERE id = ?
        """, (text, self._now(), key))
        if cursor is None:
            return False
        logger.debug("replace note=%s changes=%d", key, cursor.rowcount)
        return cursor.rowcount > 0

    def rename(self, key: str, title: str) -> bool:
        cursor = self._execute("""
            UPDATE notes SET title = ?, updated_at = ?
            WHERE id = ?
        """, (title, self._now(), key))
        return cursor is not None and cursor.rowcount > 0

    def delete(self, key: str) -> bool:
        """
        Delete a note and its body.

        Returns:
            True if the note existed and was deleted
        """
        cursor = self._execute("DELETE FROM notes WHERE id = ?", (key,))
        return cursor is not None and cursor.rowcount > 0

    # -------------------------------------------------------------------------
    # Read Operations
    # -------------------------------------------------------------------------

    def load(self, key: str) -> str:
        """Note body, or empty string if the note does not exist."""
        rows = self._query("SELECT content FROM notes WHERE id = ? LIMIT 1", (key,))
        return rows[0]["content"] if rows else ""

    def get(self, key: str) -> Optional[Note]:
        rows = self._query("""
            SELECT id, title, updated_at, format FROM notes
            WHERE id = ?
        """, (key,))
        return self._row_to_note(rows[0]) if rows else None

    def count(self) -> int:
        """Count notes. Returns 0 if the table cannot be read."""
        rows = self._query("SELECT COUNT(*) AS n FROM notes")
        return rows[0]["n"] if rows else 0

    def list(self) -> list[Note]:
        """Notes, most recently updated first."""
        rows = self._query("""
            SELECT id, title, updated_at, format FROM notes
            ORDER BY updated_at DESC
        """)
        return [self._row_to_note(row) for row in rows]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Close the database connection."""
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def __del__(self):
        try:
            self.close()
        except Exception:
            pass
