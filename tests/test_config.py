"""
Tests for store configuration.
"""

import pytest

from quicklog.config import (
    CONFIG_FILENAME, QuickLogConfig, get_default_store_path, load_config,
    load_or_create_config, save_config,
)
from quicklog.types import EditorMode


class TestStorePath:

    def test_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("QUICKLOG_STORE_PATH", str(tmp_path / "elsewhere"))
        assert get_default_store_path() == tmp_path / "elsewhere"

    def test_default_in_home(self, monkeypatch):
        monkeypatch.delenv("QUICKLOG_STORE_PATH", raising=False)
        assert get_default_store_path().name == ".quicklog"


class TestLoadOrCreate:

    def test_creates_defaults(self, tmp_path):
        config = load_or_create_config(tmp_path)
        assert (tmp_path / CONFIG_FILENAME).exists()
        assert config.backend == "sqlite"
        assert config.max_entries == 300
        assert config.autosave_interval == 2.0
        assert config.note_debounce == 0.35
        assert config.default_editor_mode is EditorMode.MARKDOWN
        assert config.clipboard_history_size == 50

    def test_round_trip(self, tmp_path):
        config = QuickLogConfig(
            path=tmp_path,
            backend="file",
            max_entries=42,
            autosave_interval=5.0,
            note_debounce=0.5,
            default_editor_mode=EditorMode.RICH_TEXT,
            markdown_preview=True,
            clipboard_history_size=120,
        )
        save_config(config)
        loaded = load_config(tmp_path)
        assert loaded.backend == "file"
        assert loaded.max_entries == 42
        assert loaded.autosave_interval == 5.0
        assert loaded.note_debounce == 0.5
        assert loaded.default_editor_mode is EditorMode.RICH_TEXT
        assert loaded.markdown_preview is True
        assert loaded.clipboard_history_size == 120
        assert loaded.created == config.created

    def test_partial_file_uses_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('[history]\nmax_entries = 7\n')
        config = load_or_create_config(tmp_path)
        assert config.max_entries == 7
        assert config.autosave_interval == 2.0

    def test_missing_file_raises_on_strict_load(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path)


class TestNormalization:

    @pytest.mark.parametrize("raw,expected", [(0, 10), (5, 10), (10, 10), (75, 75), (500, 200)])
    def test_clipboard_size_clamped(self, tmp_path, raw, expected):
        (tmp_path / CONFIG_FILENAME).write_text(f"[clipboard]\nhistory_size = {raw}\n")
        assert load_config(tmp_path).clipboard_history_size == expected

    def test_unknown_backend_falls_back(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('[store]\nbackend = "mongo"\n')
        assert load_config(tmp_path).backend == "sqlite"

    def test_intervals_floored(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[autosave]\ninterval = 0\nnote_debounce = -1\n")
        config = load_config(tmp_path)
        assert config.autosave_interval > 0
        assert config.note_debounce > 0

    def test_normalized_values_written_back(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[clipboard]\nhistory_size = 1\n")
        load_or_create_config(tmp_path)
        assert load_config(tmp_path).clipboard_history_size == 10


class TestInvalidConfig:

    def test_newer_version_rejected(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("[store]\nversion = 99\n")
        with pytest.raises(ValueError, match="newer"):
            load_config(tmp_path)

    def test_bad_editor_mode_rejected(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text('[editor]\ndefault_mode = "Vim"\n')
        with pytest.raises(ValueError, match="editor mode"):
            load_config(tmp_path)
