"""
Whole-document JSON persistence for small aggregates.

The history ledger, the legacy notes index and the draft are each a single
JSON document, read and rewritten wholesale. Writes go through a temp file
and an atomic rename. A document that exists but cannot be decoded is
copied aside (``<name>.corrupt-<stamp>``) and treated as absent, so the
next write cannot destroy the only copy.
"""

import json
import logging
import os
import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


def preserve_corrupt(path: Path) -> Optional[Path]:
    """Copy an undecodable file aside. Returns the backup path, or None.

    Repeated reads of the same bad file reuse the existing backup.
    """
    try:
        raw = path.read_bytes()
        for existing in sorted(path.parent.glob(f"{path.name}.corrupt-*")):
            if existing.read_bytes() == raw:
                return existing
    except OSError:
        pass
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    backup = path.with_name(f"{path.name}.corrupt-{stamp}")
    try:
        shutil.copy2(path, backup)
    except OSError as e:
        logger.warning("Could not back up unreadable %s: %s", path, e)
        return None
    return backup


def read_json(path: Path) -> Optional[Any]:
    """
    Read a JSON document.

    Returns None when the file is missing, unreadable, or undecodable.
    Undecodable files are preserved with preserve_corrupt() first.
    """
    try:
        raw = path.read_bytes()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Failed to read %s: %s", path, e)
        return None

    try:
        return json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        backup = preserve_corrupt(path)
        logger.warning("Unreadable %s (%s); treating as empty, backup at %s", path, e, backup)
        return None


def write_json(path: Path, data: Any) -> bool:
    """Atomically replace `path` with the JSON encoding of `data`."""
    tmp_name = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.write("\n")
        os.replace(tmp_name, path)
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error("Failed to write %s: %s", path, e)
        if tmp_name is not None:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
        return False


def read_records(path: Path, key: str) -> list[dict]:
    """Read the list stored under `key` in a ``{key: [...]}`` document."""
    data = read_json(path)
    if data is None:
        return []
    if not isinstance(data, dict) or not isinstance(data.get(key, []), list):
        backup = preserve_corrupt(path)
        logger.warning("Unexpected layout in %s; treating as empty, backup at %s", path, backup)
        return []
    return [r for r in data.get(key, []) if isinstance(r, dict)]
