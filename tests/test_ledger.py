"""
Tests for the history ledger and the draft file.
"""

import json
from datetime import timedelta

import pytest

from quicklog.drafts import DraftStore
from quicklog.ledger import EntryLedger
from quicklog.types import DAILY_LOG, Draft, EditorMode, Entry, NoteTarget


@pytest.fixture
def ledger(tmp_path, clock):
    return EntryLedger(tmp_path / "entries.json", max_count=10, clock=clock)


def add_entries(ledger, clock, n, prefix="e"):
    ids = []
    for i in range(n):
        entry = Entry.create(f"{prefix}{i}", DAILY_LOG, clock())
        ledger.add(entry)
        ids.append(entry.id)
    return ids


# -----------------------------------------------------------------------------
# Ordering and cap
# -----------------------------------------------------------------------------

class TestLedgerOrdering:

    def test_empty_when_missing(self, ledger):
        assert ledger.list() == []

    def test_newest_first(self, ledger, clock):
        ids = add_entries(ledger, clock, 3)
        assert [e.id for e in ledger.list()] == list(reversed(ids))

    def test_cap_evicts_oldest(self, ledger, clock):
        ids = add_entries(ledger, clock, ledger.max_count + 5)
        listed = [e.id for e in ledger.list()]
        assert len(listed) == ledger.max_count
        assert set(ids[:5]).isdisjoint(listed)
        assert listed[0] == ids[-1]

    def test_cap_override(self, ledger, clock):
        add_entries(ledger, clock, 4)
        ledger.add(Entry.create("last", DAILY_LOG, clock()), max_count=2)
        assert [e.content for e in ledger.list()] == ["last", "e3"]

    def test_update_promotes_entry(self, ledger, clock):
        ids = add_entries(ledger, clock, 3)
        updated = ledger.update(ids[0], "edited\nsecond line")
        assert updated.preview == "edited"
        assert updated.updated_at > updated.created_at
        assert ledger.list()[0].id == ids[0]
        assert ledger.get(ids[0]).content == "edited\nsecond line"

    def test_update_does_not_move_on_disk(self, ledger, clock, tmp_path):
        ids = add_entries(ledger, clock, 3)
        ledger.update(ids[0], "edited")
        stored = json.loads((tmp_path / "entries.json").read_text())["entries"]
        assert [e["id"] for e in stored] == list(reversed(ids))

    def test_update_unknown_is_noop(self, ledger, clock):
        add_entries(ledger, clock, 2)
        before = ledger.list()
        assert ledger.update("missing", "x") is None
        assert ledger.list() == before

    def test_delete(self, ledger, clock):
        ids = add_entries(ledger, clock, 3)
        assert ledger.delete(ids[1])
        assert ids[1] not in [e.id for e in ledger.list()]
        assert ledger.delete(ids[1]) is False

    def test_clear(self, ledger, clock):
        add_entries(ledger, clock, 3)
        assert ledger.clear()
        assert ledger.list() == []

    def test_note_target_persists(self, ledger, clock):
        target = NoteTarget(id="N1", title="Groceries")
        ledger.add(Entry.create("eggs", target, clock()))
        assert ledger.list()[0].target == target


# -----------------------------------------------------------------------------
# Damaged files
# -----------------------------------------------------------------------------

class TestLedgerRecovery:

    def test_corrupt_file_reads_empty_and_is_backed_up(self, ledger, clock, tmp_path):
        path = tmp_path / "entries.json"
        path.write_text("not json at all")
        assert ledger.list() == []
        backups = list(tmp_path.glob("entries.json.corrupt-*"))
        assert len(backups) == 1

        # Next write replaces the damaged file; the backup survives
        ledger.add(Entry.create("fresh", DAILY_LOG, clock()))
        assert [e.content for e in ledger.list()] == ["fresh"]
        assert backups[0].read_text() == "not json at all"

    def test_repeated_reads_reuse_backup(self, ledger, tmp_path):
        (tmp_path / "entries.json").write_text("[broken")
        ledger.list()
        ledger.list()
        assert len(list(tmp_path.glob("entries.json.corrupt-*"))) == 1

    def test_malformed_records_skipped(self, ledger, clock, tmp_path):
        good = Entry.create("good", DAILY_LOG, clock()).to_dict()
        bad = {"id": "X", "createdAt": "never"}
        (tmp_path / "entries.json").write_text(json.dumps({"entries": [good, bad, 42]}))
        assert [e.content for e in ledger.list()] == ["good"]

    def test_records_with_non_object_target_skipped(self, ledger, clock, tmp_path):
        good = Entry.create("good", DAILY_LOG, clock()).to_dict()
        as_string = dict(Entry.create("s", DAILY_LOG, clock()).to_dict(), target="todaysLog")
        as_null = dict(Entry.create("n", DAILY_LOG, clock()).to_dict(), target=None)
        (tmp_path / "entries.json").write_text(
            json.dumps({"entries": [good, as_string, as_null]})
        )
        assert [e.content for e in ledger.list()] == ["good"]

        # The ledger stays usable
        added = Entry.create("added", DAILY_LOG, clock())
        assert ledger.add(added)
        assert ledger.update(good["id"], "good, edited") is not None
        assert [e.content for e in ledger.list()] == ["good, edited", "added"]
        assert ledger.get(added.id).content == "added"

    def test_legacy_entry_without_content(self, ledger, tmp_path):
        legacy = {
            "id": "OLD",
            "createdAt": 700000000,
            "target": {"kind": "todaysLog"},
            "preview": "remembered preview",
        }
        (tmp_path / "entries.json").write_text(json.dumps({"entries": [legacy]}))
        entry = ledger.get("OLD")
        assert entry.content == "remembered preview"
        assert entry.updated_at == entry.created_at


# -----------------------------------------------------------------------------
# Draft
# -----------------------------------------------------------------------------

class TestDraftStore:

    def test_missing_draft(self, tmp_path):
        assert DraftStore(tmp_path / "draft.json").load() is None

    def test_round_trip(self, tmp_path, clock):
        store = DraftStore(tmp_path / "draft.json")
        draft = Draft(content="wip", mode=EditorMode.RICH_TEXT, last_modified=clock())
        assert store.save(draft)
        assert store.load() == draft

    def test_overwritten_wholesale(self, tmp_path, clock):
        store = DraftStore(tmp_path / "draft.json")
        store.save(Draft(content="first", last_modified=clock()))
        store.save(Draft(content="second", last_modified=clock() + timedelta(minutes=1)))
        assert store.load().content == "second"

    def test_malformed_draft_ignored(self, tmp_path):
        path = tmp_path / "draft.json"
        path.write_text(json.dumps({"content": "x", "editorMode": "Vim"}))
        assert DraftStore(path).load() is None
