"""
Data types for quicklog captures.
"""

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Optional, Union


# Maximum preview length before ellipsizing
PREVIEW_LENGTH = 100

# Legacy index files stored dates as seconds since this reference
_REFERENCE_EPOCH = datetime(2001, 1, 1, tzinfo=timezone.utc)

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"

Clock = Callable[[], datetime]


def local_now() -> datetime:
    """Current local time as an aware datetime.

    This is the default clock. Daily log names and block times use the
    clock's own timezone; stored timestamps are always normalized to UTC.
    """
    return datetime.now().astimezone()


def format_timestamp(dt: datetime) -> str:
    """Serialize a datetime in canonical form: UTC, microseconds, no suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored timestamp to an aware UTC datetime.

    Accepts the canonical string form, other ISO 8601 variants ('Z' or
    offsets), and legacy numeric values (seconds since 2001-01-01 UTC).

    Raises:
        ValueError: If the value cannot be interpreted
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return _REFERENCE_EPOCH + timedelta(seconds=value)
    if not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def new_id() -> str:
    """New record identifier (uppercase UUID string)."""
    return str(uuid.uuid4()).upper()


def make_preview(content: str, limit: int = PREVIEW_LENGTH) -> str:
    """First non-empty line of the trimmed content, ellipsized past `limit`."""
    trimmed = content.strip()
    first = next((line for line in trimmed.split("\n") if line), "")
    if len(first) > limit:
        return first[:limit] + "..."
    return first


class EditorMode(str, Enum):
    """Editing mode for the draft buffer."""
    MARKDOWN = "Markdown"
    RICH_TEXT = "Rich Text"


class NoteFormat(str, Enum):
    """Physical format of a note body."""
    MARKDOWN = "markdown"
    RICH_TEXT = "richText"

    @property
    def extension(self) -> str:
        return "rtf" if self is NoteFormat.RICH_TEXT else "md"


@dataclass
class Draft:
    """The single in-progress draft. Overwritten wholesale on save."""
    content: str = ""
    mode: EditorMode = EditorMode.MARKDOWN
    last_modified: datetime = field(default_factory=local_now)

    def to_dict(self) -> dict:
        return {
            "content": self.content,
            "editorMode": self.mode.value,
            "lastModified": format_timestamp(self.last_modified),
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Draft":
        return cls(
            content=str(d.get("content", "")),
            mode=EditorMode(d.get("editorMode", EditorMode.MARKDOWN.value)),
            last_modified=parse_timestamp(d["lastModified"]),
        )


@dataclass
class Note:
    """Note metadata. The body lives in a content store keyed by `id`."""
    id: str
    title: str
    updated_at: datetime
    format: NoteFormat = NoteFormat.MARKDOWN

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "updatedAt": format_timestamp(self.updated_at),
            "format": self.format.value,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Note":
        return cls(
            id=str(d["id"]),
            title=str(d["title"]),
            updated_at=parse_timestamp(d["updatedAt"]),
            format=NoteFormat(d.get("format", NoteFormat.MARKDOWN.value)),
        )


# ---------------------------------------------------------------------------
# Entry targets
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DailyLogTarget:
    """The rolling daily log."""

    @property
    def display_name(self) -> str:
        return "Today's Log"


@dataclass(frozen=True)
class NoteTarget:
    """A specific note, as it was titled at capture time."""
    id: str
    title: str

    @property
    def display_name(self) -> str:
        return self.title


EntryTarget = Union[DailyLogTarget, NoteTarget]

DAILY_LOG = DailyLogTarget()


def target_to_dict(target: EntryTarget) -> dict:
    if isinstance(target, NoteTarget):
        return {"kind": "note", "id": target.id, "title": target.title}
    return {"kind": "todaysLog"}


def target_from_dict(d: dict) -> EntryTarget:
    if not isinstance(d, dict):
        raise ValueError(f"Entry target is not an object: {d!r}")
    kind = d.get("kind")
    if kind == "note":
        return NoteTarget(id=str(d["id"]), title=str(d["title"]))
    if kind == "todaysLog":
        return DAILY_LOG
    raise ValueError(f"Unknown entry target kind: {kind!r}")


@dataclass(frozen=True)
class Entry:
    """A saved capture in the history ledger."""
    id: str
    created_at: datetime
    updated_at: datetime
    target: EntryTarget
    preview: str
    content: str

    @classmethod
    def create(
        cls,
        content: str,
        target: EntryTarget,
        now: datetime,
        id: Optional[str] = None,
    ) -> "Entry":
        """Build an entry from content; preview is derived, never passed in."""
        return cls(
            id=id or new_id(),
            created_at=now,
            updated_at=now,
            target=target,
            preview=make_preview(content),
            content=content,
        )

    def with_content(self, content: str, now: datetime) -> "Entry":
        """Copy with new content, fresh preview and bumped updated_at."""
        return replace(self, content=content, preview=make_preview(content), updated_at=now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "target": target_to_dict(self.target),
            "preview": self.preview,
            "content": self.content,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "Entry":
        created = parse_timestamp(d["createdAt"])
        # Older ledgers carried no updatedAt or content
        updated = parse_timestamp(d["updatedAt"]) if "updatedAt" in d else created
        content = str(d.get("content", d.get("preview", "")))
        return cls(
            id=str(d["id"]),
            created_at=created,
            updated_at=updated,
            target=target_from_dict(d.get("target", {"kind": "todaysLog"})),
            preview=make_preview(content),
            content=content,
        )


@dataclass
class ClipboardItem:
    """A text snippet observed on the clipboard."""
    text: str
    timestamp: datetime = field(default_factory=local_now)
    id: str = field(default_factory=new_id)
    pinned: bool = False

    @property
    def preview(self) -> str:
        trimmed = self.text.strip()
        if len(trimmed) > PREVIEW_LENGTH:
            return trimmed[:PREVIEW_LENGTH] + "..."
        return trimmed
