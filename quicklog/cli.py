"""
CLI interface for quicklog.

Usage:
    quicklog capture "buy milk"
    quicklog today
    quicklog history list
    quicklog note new "Groceries"
"""

import json
import select
import sys
from datetime import date
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from .config import get_default_store_path, load_or_create_config
from .logging_config import (
    configure_ops_log, configure_quiet_mode, debug_requested, enable_debug_mode,
    remove_ops_log,
)
from .session import CaptureSession
from .types import Entry, Note


def _has_stdin_data() -> bool:
    """Check if stdin has data available without blocking.

    Returns True only when stdin is a pipe with data ready to read.
    """
    if sys.stdin.isatty():
        return False
    try:
        ready, _, _ = select.select([sys.stdin], [], [], 0)
        return bool(ready)
    except (ValueError, OSError):
        return False


# Quiet by default; QUICKLOG_DEBUG=1 turns on debug output
if debug_requested():
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _version_callback(value: bool):
    if value:
        from . import __version__
        print(f"quicklog {__version__}")
        raise typer.Exit()


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_store_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _store_callback(value: Optional[Path]):
    global _store_override
    _store_override = value


def _get_store_override() -> Optional[Path]:
    return _store_override


app = typer.Typer(
    name="quicklog",
    help="Capture text to a daily log, notes, or history.",
    no_args_is_help=True,
    rich_markup_mode=None,
)
note_app = typer.Typer(help="Create, show and edit notes.", no_args_is_help=True)
history_app = typer.Typer(help="Browse and edit saved captures.", no_args_is_help=True)
draft_app = typer.Typer(help="Inspect and commit the autosaved draft.", no_args_is_help=True)
app.add_typer(note_app, name="note")
app.add_typer(history_app, name="history")
app.add_typer(draft_app, name="draft")


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    version: Annotated[Optional[bool], typer.Option(
        "--version",
        help="Show version and exit",
        callback=_version_callback,
        is_eager=True,
    )] = None,
    store: Annotated[Optional[Path], typer.Option(
        "--store", "-s",
        envvar="QUICKLOG_STORE_PATH",
        help="Path to the store directory",
        callback=_store_callback,
        is_eager=True,
    )] = None,
):
    """Capture text to a daily log, notes, or history."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

def _store_path() -> Path:
    override = _get_store_override()
    return override if override is not None else get_default_store_path()


def _get_session(ctx: typer.Context) -> CaptureSession:
    """Open the store, handling errors gracefully.

    The CLI is one-shot, so no autosave ticker is started; commands flush
    explicitly and close() flushes anything left when the command ends.
    """
    store_path = _store_path()
    try:
        handler = configure_ops_log(store_path)
        session = CaptureSession.open(store_path, autostart=False)
    except Exception as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    def _shutdown():
        session.close()
        remove_ops_log(handler)

    ctx.call_on_close(_shutdown)
    migration = session.stores.migration
    if not getattr(session.stores.notes, "is_open", True):
        typer.echo(f"Warning: note database {session.config.database_path} could not be opened; "
                   "notes are unavailable", err=True)
    if migration is not None and migration.count:
        typer.echo(f"Migrated {migration.count} notes to SQLite", err=True)
    return session


def _read_text(text: Optional[str]) -> str:
    """Text argument, or stdin when the argument is '-' or missing."""
    if text is not None and text != "-":
        return text
    if text == "-" or _has_stdin_data():
        return sys.stdin.read()
    typer.echo("Error: no text given (pass TEXT or pipe it on stdin)", err=True)
    raise typer.Exit(1)


def _resolve(prefix: str, ids: list[str], kind: str) -> str:
    """Match a full id or a unique, case-insensitive prefix."""
    wanted = prefix.upper()
    if wanted in ids:
        return wanted
    matches = [i for i in ids if i.startswith(wanted)]
    if len(matches) == 1:
        return matches[0]
    if not matches:
        typer.echo(f"Not found: {kind} {prefix}", err=True)
    else:
        typer.echo(f"Ambiguous {kind} id {prefix!r}: {len(matches)} matches", err=True)
    raise typer.Exit(1)


def _format_entry_line(entry: Entry, pending: bool = False) -> str:
    when = entry.updated_at.astimezone().strftime("%Y-%m-%d %H:%M")
    marker = "*" if pending else " "
    return f"{entry.id[:8]}{marker} {when}  [{entry.target.display_name}]  {entry.preview}"


def _format_note_line(note: Note) -> str:
    when = note.updated_at.astimezone().strftime("%Y-%m-%d %H:%M")
    return f"{note.id[:8]}  {when}  {note.title}"


def _echo_json(data) -> None:
    typer.echo(json.dumps(data, indent=2, ensure_ascii=False))


def _echo_entry(entry: Optional[Entry]) -> None:
    if entry is None:
        typer.echo("Nothing captured", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        _echo_json(entry.to_dict())
    else:
        typer.echo(_format_entry_line(entry))


# -----------------------------------------------------------------------------
# Capture and daily log
# -----------------------------------------------------------------------------

@app.command()
def capture(
    ctx: typer.Context,
    text: Annotated[Optional[str], typer.Argument(help="Text to capture ('-' reads stdin)")] = None,
    note: Annotated[Optional[str], typer.Option(
        "--note", "-n",
        help="Append to this note (id or prefix) instead of today's log",
    )] = None,
):
    """
    Capture text to today's log (or a note) and record it in history.

    \b
    Examples:
        quicklog capture "buy milk"
        echo "from a pipe" | quicklog capture
        quicklog capture -n 3F2A "eggs"
    """
    body = _read_text(text)
    session = _get_session(ctx)
    note_id = None
    if note is not None:
        note_id = _resolve(note, [n.id for n in session.notes()], "note")
    _echo_entry(session.capture_text(body, note_id=note_id))


@app.command()
def today(ctx: typer.Context):
    """Show today's log."""
    session = _get_session(ctx)
    typer.echo(session.stores.daily_log.load(), nl=False)


@app.command("log")
def log_cmd(
    ctx: typer.Context,
    day: Annotated[Optional[str], typer.Argument(help="Date (YYYY-MM-DD); default today")] = None,
    list_days: Annotated[bool, typer.Option("--list", "-l", help="List days that have a log")] = False,
):
    """Show a day's log, or list logged days."""
    session = _get_session(ctx)
    daily_log = session.stores.daily_log
    if list_days:
        days = [d.isoformat() for d in daily_log.days()]
        if _get_json_output():
            _echo_json(days)
        else:
            for d in days:
                typer.echo(d)
        return
    try:
        when = date.fromisoformat(day) if day else None
    except ValueError:
        typer.echo(f"Invalid date: {day} (use YYYY-MM-DD)", err=True)
        raise typer.Exit(1)
    content = daily_log.load(when)
    if not content:
        typer.echo("No log for that day", err=True)
        raise typer.Exit(1)
    typer.echo(content, nl=False)


# -----------------------------------------------------------------------------
# History
# -----------------------------------------------------------------------------

@history_app.command("list")
def history_list(
    ctx: typer.Context,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum entries to show")] = 20,
):
    """List saved captures, newest first (a pending draft is marked with *)."""
    session = _get_session(ctx)
    entries = session.merged_entries()[:limit]
    pending = session.pending_entry
    if _get_json_output():
        _echo_json([e.to_dict() for e in entries])
        return
    for entry in entries:
        typer.echo(_format_entry_line(entry, pending=pending is not None and entry.id == pending.id))


@history_app.command("show")
def history_show(ctx: typer.Context, id: Annotated[str, typer.Argument(help="Entry id or prefix")]):
    """Show a saved capture in full."""
    session = _get_session(ctx)
    entry_id = _resolve(id, [e.id for e in session.entries()], "entry")
    entry = session.stores.ledger.get(entry_id)
    if _get_json_output():
        _echo_json(entry.to_dict())
    else:
        typer.echo(entry.content)


@history_app.command("edit")
def history_edit(
    ctx: typer.Context,
    id: Annotated[str, typer.Argument(help="Entry id or prefix")],
    text: Annotated[Optional[str], typer.Argument(help="New content ('-' reads stdin)")] = None,
):
    """Replace a saved capture's content. It moves to the top of the history."""
    body = _read_text(text)
    session = _get_session(ctx)
    entry_id = _resolve(id, [e.id for e in session.entries()], "entry")
    _echo_entry(session.edit_entry(entry_id, body))


@history_app.command("delete")
def history_delete(ctx: typer.Context, ids: Annotated[list[str], typer.Argument(help="Entry id(s) or prefixes")]):
    """Delete saved captures."""
    session = _get_session(ctx)
    known = [e.id for e in session.entries()]
    for one in ids:
        entry_id = _resolve(one, known, "entry")
        session.delete_entry(entry_id)
        typer.echo(f"Deleted {entry_id}")


# -----------------------------------------------------------------------------
# Notes
# -----------------------------------------------------------------------------

@note_app.command("new")
def note_new(ctx: typer.Context, title: Annotated[str, typer.Argument(help="Note title")]):
    """Create a note."""
    session = _get_session(ctx)
    note = session.create_note(title)
    if note is None:
        typer.echo("Error: could not create note", err=True)
        raise typer.Exit(1)
    if _get_json_output():
        _echo_json(note.to_dict())
    else:
        typer.echo(note.id)


@note_app.command("list")
def note_list(ctx: typer.Context):
    """List notes, most recently updated first."""
    session = _get_session(ctx)
    notes = session.notes()
    if _get_json_output():
        _echo_json([n.to_dict() for n in notes])
        return
    for note in notes:
        typer.echo(_format_note_line(note))


@note_app.command("show")
def note_show(ctx: typer.Context, id: Annotated[str, typer.Argument(help="Note id or prefix")]):
    """Print a note's body."""
    session = _get_session(ctx)
    note_id = _resolve(id, [n.id for n in session.notes()], "note")
    typer.echo(session.note_content(note_id), nl=False)


@note_app.command("append")
def note_append(
    ctx: typer.Context,
    id: Annotated[str, typer.Argument(help="Note id or prefix")],
    text: Annotated[Optional[str], typer.Argument(help="Text to append ('-' reads stdin)")] = None,
):
    """Append a timestamped block to a note and record it in history."""
    body = _read_text(text)
    session = _get_session(ctx)
    note_id = _resolve(id, [n.id for n in session.notes()], "note")
    _echo_entry(session.capture_text(body, note_id=note_id))


@note_app.command("edit")
def note_edit(
    ctx: typer.Context,
    id: Annotated[str, typer.Argument(help="Note id or prefix")],
    text: Annotated[Optional[str], typer.Argument(help="New body ('-' reads stdin)")] = None,
):
    """Replace a note's whole body."""
    body = _read_text(text)
    session = _get_session(ctx)
    note_id = _resolve(id, [n.id for n in session.notes()], "note")
    if not session.replace_note(note_id, body):
        typer.echo("Error: note was not written", err=True)
        raise typer.Exit(1)
    typer.echo(note_id)


@note_app.command("rename")
def note_rename(
    ctx: typer.Context,
    id: Annotated[str, typer.Argument(help="Note id or prefix")],
    title: Annotated[str, typer.Argument(help="New title")],
):
    """Rename a note. Past history entries keep the old title."""
    session = _get_session(ctx)
    note_id = _resolve(id, [n.id for n in session.notes()], "note")
    if not session.rename_note(note_id, title):
        typer.echo("Error: note was not renamed", err=True)
        raise typer.Exit(1)
    typer.echo(f"Renamed {note_id}")


@note_app.command("delete")
def note_delete(ctx: typer.Context, ids: Annotated[list[str], typer.Argument(help="Note id(s) or prefixes")]):
    """Delete notes and their bodies."""
    session = _get_session(ctx)
    known = [n.id for n in session.notes()]
    for one in ids:
        note_id = _resolve(one, known, "note")
        session.delete_note(note_id)
        typer.echo(f"Deleted {note_id}")


# -----------------------------------------------------------------------------
# Draft
# -----------------------------------------------------------------------------

@draft_app.command("show")
def draft_show(ctx: typer.Context):
    """Print the autosaved draft."""
    session = _get_session(ctx)
    if _get_json_output():
        draft = session.stores.drafts.load()
        _echo_json(draft.to_dict() if draft else None)
        return
    typer.echo(session.draft_content, nl=False)


@draft_app.command("set")
def draft_set(ctx: typer.Context, text: Annotated[Optional[str], typer.Argument(help="Draft text ('-' reads stdin)")] = None):
    """Replace the draft text."""
    body = _read_text(text)
    session = _get_session(ctx)
    session.set_draft_content(body)
    session.force_autosave_now()


@draft_app.command("commit")
def draft_commit(ctx: typer.Context):
    """Commit the draft to today's log and clear it."""
    session = _get_session(ctx)
    _echo_entry(session.commit_and_new())


# -----------------------------------------------------------------------------
# Maintenance
# -----------------------------------------------------------------------------

@app.command()
def migrate(ctx: typer.Context):
    """Import legacy file notes into SQLite (runs automatically on open)."""
    session = _get_session(ctx)
    result = session.stores.migration
    if result is None:
        typer.echo("File backend configured; nothing to migrate")
    elif result.skipped:
        typer.echo("SQLite store already has notes; migration skipped")
    else:
        typer.echo(f"Migrated {result.count} notes ({len(result.failed)} failed)")


@app.command()
def config():
    """Show the store configuration."""
    cfg = load_or_create_config(_store_path())
    data = {
        "path": str(cfg.path),
        "backend": cfg.backend,
        "max_entries": cfg.max_entries,
        "autosave_interval": cfg.autosave_interval,
        "note_debounce": cfg.note_debounce,
        "default_editor_mode": cfg.default_editor_mode.value,
        "markdown_preview": cfg.markdown_preview,
        "clipboard_history_size": cfg.clipboard_history_size,
        "created": cfg.created,
    }
    if _get_json_output():
        _echo_json(data)
        return
    for key, value in data.items():
        typer.echo(f"{key}: {value}")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="quicklog CLI", store_path=_store_path())
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
