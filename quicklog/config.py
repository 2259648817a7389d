"""
Configuration management for quicklog stores.

The configuration is stored as a TOML file in the store directory.
It holds the capture settings the session core reads at startup and
whenever they are explicitly changed.
"""

import logging
import os
import tomllib
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

import tomli_w

from .types import EditorMode

logger = logging.getLogger(__name__)


CONFIG_FILENAME = "quicklog.toml"
CONFIG_VERSION = 1

STORE_ENV_VAR = "QUICKLOG_STORE_PATH"

BACKENDS = ("sqlite", "file")

# Bounds applied when loading; out-of-range values are clamped
CLIPBOARD_HISTORY_MIN = 10
CLIPBOARD_HISTORY_MAX = 200
MIN_INTERVAL_SECONDS = 0.05


def get_default_store_path() -> Path:
    """Store directory: $QUICKLOG_STORE_PATH, else ~/.quicklog."""
    env = os.environ.get(STORE_ENV_VAR)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".quicklog"


@dataclass
class QuickLogConfig:
    """Complete store configuration."""
    path: Path
    version: int = CONFIG_VERSION
    created: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    backend: str = "sqlite"

    # History ledger
    max_entries: int = 300

    # Autosave timing (seconds)
    autosave_interval: float = 2.0
    note_debounce: float = 0.35

    # Editor
    default_editor_mode: EditorMode = EditorMode.MARKDOWN
    markdown_preview: bool = False

    # Clipboard
    clipboard_history_size: int = 50

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    @property
    def logs_dir(self) -> Path:
        return self.path / "logs"

    @property
    def notes_dir(self) -> Path:
        return self.path / "notes"

    @property
    def database_path(self) -> Path:
        return self.path / "notes.sqlite3"

    @property
    def entries_path(self) -> Path:
        return self.path / "entries.json"

    @property
    def draft_path(self) -> Path:
        return self.path / "draft.json"

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    def normalize(self) -> "QuickLogConfig":
        """Clamp legacy or bad values in place. Returns self."""
        if self.backend not in BACKENDS:
            logger.warning("Unknown backend %r, using sqlite", self.backend)
            self.backend = "sqlite"
        self.clipboard_history_size = min(
            max(self.clipboard_history_size, CLIPBOARD_HISTORY_MIN),
            CLIPBOARD_HISTORY_MAX,
        )
        self.max_entries = max(self.max_entries, 1)
        self.autosave_interval = max(self.autosave_interval, MIN_INTERVAL_SECONDS)
        self.note_debounce = max(self.note_debounce, MIN_INTERVAL_SECONDS)
        return self


def load_config(store_path: Path) -> QuickLogConfig:
    """
    Load configuration from a store directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = store_path / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    store = data.get("store", {})
    version = store.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    history = data.get("history", {})
    autosave = data.get("autosave", {})
    editor = data.get("editor", {})
    clipboard = data.get("clipboard", {})

    try:
        mode = EditorMode(editor.get("default_mode", EditorMode.MARKDOWN.value))
    except ValueError:
        raise ValueError(f"Invalid editor mode: {editor.get('default_mode')!r}")

    config = QuickLogConfig(
        path=store_path,
        version=version,
        created=store.get("created", ""),
        backend=store.get("backend", "sqlite"),
        max_entries=int(history.get("max_entries", 300)),
        autosave_interval=float(autosave.get("interval", 2.0)),
        note_debounce=float(autosave.get("note_debounce", 0.35)),
        default_editor_mode=mode,
        markdown_preview=bool(editor.get("markdown_preview", False)),
        clipboard_history_size=int(clipboard.get("history_size", 50)),
    )
    return config.normalize()


def save_config(config: QuickLogConfig) -> None:
    """
    Save configuration to the store directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "store": {
            "version": config.version,
            "created": config.created,
            "backend": config.backend,
        },
        "history": {
            "max_entries": config.max_entries,
        },
        "autosave": {
            "interval": config.autosave_interval,
            "note_debounce": config.note_debounce,
        },
        "editor": {
            "default_mode": config.default_editor_mode.value,
            "markdown_preview": config.markdown_preview,
        },
        "clipboard": {
            "history_size": config.clipboard_history_size,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(store_path: Path) -> QuickLogConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management. Normalized values
    are written back so behavior is stable across runs.
    """
    config_path = store_path / CONFIG_FILENAME

    if config_path.exists():
        config = load_config(store_path)
    else:
        config = QuickLogConfig(path=store_path)
    save_config(config)
    return config
