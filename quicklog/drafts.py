"""Persistence for the single in-progress draft."""

import logging
from pathlib import Path
from typing import Optional

from .jsonfile import read_json, write_json
from .types import Draft

logger = logging.getLogger(__name__)


class DraftStore:
    """Reads and writes ``draft.json``. One draft, overwritten on every save."""

    def __init__(self, path: Path):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[Draft]:
        data = read_json(self._path)
        if not isinstance(data, dict):
            return None
        try:
            return Draft.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.warning("Ignoring malformed draft %s: %s", self._path, e)
            return None

    def save(self, draft: Draft) -> bool:
        return write_json(self._path, draft.to_dict())
