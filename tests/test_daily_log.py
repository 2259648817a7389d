"""
Tests for daily log files and the capture block format.
"""

from datetime import date, datetime, timezone

from quicklog.daily_log import DailyLog, format_block, log_header


class TestFormatBlock:

    def test_block_layout(self):
        when = datetime(2024, 1, 1, 9, 5, tzinfo=timezone.utc)
        assert format_block("  buy milk\n\n", when) == "\n---\n**09:05**\n\nbuy milk\n"

    def test_blank_content_gives_no_block(self):
        when = datetime(2024, 1, 1, 9, 5, tzinfo=timezone.utc)
        assert format_block(" \n\t ", when) == ""

    def test_header(self):
        assert log_header(date(2024, 1, 1)) == "# 2024-01-01\n\n"


class TestDailyLog:

    def test_first_append_writes_header(self, tmp_path, clock):
        log = DailyLog(tmp_path / "logs", clock=clock)
        assert log.append("buy milk")
        text = (tmp_path / "logs" / "2024-01-01.md").read_text()
        assert text == "# 2024-01-01\n\n\n---\n**09:00**\n\nbuy milk\n"

    def test_appends_accumulate_in_order(self, tmp_path, clock):
        log = DailyLog(tmp_path / "logs", clock=clock)
        log.append("first")
        log.append("second")
        text = log.load(date(2024, 1, 1))
        assert text.count("# 2024-01-01") == 1
        assert text.index("first") < text.index("second")

    def test_empty_append_creates_nothing(self, tmp_path, clock):
        log = DailyLog(tmp_path / "logs", clock=clock)
        assert log.append("   ")
        assert not (tmp_path / "logs" / "2024-01-01.md").exists()

    def test_existing_file_keeps_its_content(self, tmp_path, clock):
        logs = tmp_path / "logs"
        logs.mkdir()
        (logs / "2024-01-01.md").write_text("# 2024-01-01\n\nhand written\n")
        DailyLog(logs, clock=clock).append("captured")
        text = (logs / "2024-01-01.md").read_text()
        assert text.startswith("# 2024-01-01\n\nhand written\n")
        assert text.endswith("captured\n")

    def test_new_day_new_file(self, tmp_path, clock):
        log = DailyLog(tmp_path / "logs", clock=clock)
        log.append("monday")
        clock.advance(days=1)
        log.append("tuesday")
        assert "monday" in log.load(date(2024, 1, 1))
        assert "tuesday" in log.load(date(2024, 1, 2))
        assert log.days() == [date(2024, 1, 2), date(2024, 1, 1)]

    def test_load_missing_day(self, tmp_path, clock):
        assert DailyLog(tmp_path / "logs", clock=clock).load(date(1999, 1, 1)) == ""

    def test_days_ignores_other_files(self, tmp_path, clock):
        logs = tmp_path / "logs"
        logs.mkdir()
        (logs / "2024-02-30.md").write_text("")
        (logs / "notes.txt").write_text("")
        (logs / "2024-01-03.md").write_text("")
        assert DailyLog(logs, clock=clock).days() == [date(2024, 1, 3)]

    def test_updated_at(self, tmp_path, clock):
        log = DailyLog(tmp_path / "logs", clock=clock)
        assert log.updated_at(date(2024, 1, 1)) is None
        log.append("x")
        assert log.updated_at(date(2024, 1, 1)) is not None

    def test_unwritable_location_reports_failure(self, tmp_path, clock):
        blocker = tmp_path / "logs"
        blocker.write_text("not a directory")
        assert DailyLog(blocker, clock=clock).append("lost?") is False
