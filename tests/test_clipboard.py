"""
Tests for the in-memory clipboard history.
"""

from quicklog.clipboard import ClipboardHistory


class TestClipboardHistory:

    def test_most_recent_first(self, clock):
        history = ClipboardHistory(clock=clock)
        history.add("one")
        history.add("two")
        assert [item.text for item in history.items()] == ["two", "one"]

    def test_duplicates_are_separate_rows(self, clock):
        history = ClipboardHistory(clock=clock)
        a = history.add("same")
        b = history.add("same")
        assert len(history) == 2
        assert a.id != b.id

    def test_blank_ignored(self, clock):
        history = ClipboardHistory(clock=clock)
        assert history.add("  \n") is None
        assert len(history) == 0

    def test_capped_at_max_size(self, clock):
        history = ClipboardHistory(max_size=10, clock=clock)
        for i in range(15):
            history.add(f"item {i}")
        texts = [item.text for item in history.items()]
        assert len(texts) == 10
        assert texts[0] == "item 14"
        assert "item 4" not in texts

    def test_size_clamped(self, clock):
        assert ClipboardHistory(max_size=1, clock=clock).max_size == 10
        assert ClipboardHistory(max_size=1000, clock=clock).max_size == 200

    def test_pinned_survive_truncation(self, clock):
        history = ClipboardHistory(max_size=10, clock=clock)
        keeper = history.add("keep me")
        history.set_pinned(keeper.id)
        for i in range(20):
            history.add(f"filler {i}")
        assert history.get(keeper.id) is not None
        assert len(history) == 10

    def test_shrinking_truncates(self, clock):
        history = ClipboardHistory(max_size=50, clock=clock)
        for i in range(30):
            history.add(f"item {i}")
        history.max_size = 12
        assert len(history) == 12

    def test_remove_and_clear(self, clock):
        history = ClipboardHistory(clock=clock)
        pinned = history.add("pinned")
        history.set_pinned(pinned.id)
        other = history.add("other")
        assert history.remove(other.id)
        assert history.remove(other.id) is False
        history.add("again")
        history.clear()
        assert [item.text for item in history.items()] == ["pinned"]
        history.clear(keep_pinned=False)
        assert len(history) == 0

    def test_pin_unknown(self, clock):
        assert ClipboardHistory(clock=clock).set_pinned("nope") is False
