"""
Protocol definitions for quicklog content stores.

A content store holds note bodies keyed by note id, along with the note
metadata used for listings. Implemented by:
- FileContentStore (one file per note plus a notes.json index)
- SqliteContentStore (single notes table)

Storage failures never raise out of these methods. Writers report success
as a bool (or None for create), readers degrade to empty results.
"""

from typing import Optional, Protocol, runtime_checkable

from .types import Note, NoteFormat


@runtime_checkable
class ContentStoreProtocol(Protocol):
    """Durable key → document storage for notes."""

    # -- Write operations --

    def create(
        self,
        key: str,
        title: str,
        header: Optional[str] = None,
        format: NoteFormat = NoteFormat.MARKDOWN,
    ) -> Optional[Note]: ...

    def append(self, key: str, text: str) -> bool: ...

    def replace(self, key: str, text: str) -> bool: ...

    def rename(self, key: str, title: str) -> bool: ...

    def delete(self, key: str) -> bool: ...

    def insert(self, note: Note, content: str) -> bool: ...

    # -- Read operations --

    def load(self, key: str) -> str: ...

    def get(self, key: str) -> Optional[Note]: ...

    def list(self) -> list[Note]: ...

    def count(self) -> int: ...

    # -- Lifecycle --

    def close(self) -> None: ...


def default_header(title: str) -> str:
    """Initial body for a new note."""
    return f"# {title}\n\n"
