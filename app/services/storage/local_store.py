from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


class LocalStore:
    """
    JSON key-value store: one ``<key>.json`` file per key under ``data_path``.

    Reads never persist anything. Writes are atomic per key (temp file +
    rename); there is no transaction spanning keys. A failed write is logged
    and reported through the return value, the caller's in-memory value stays
    authoritative for the session.
    """

    def __init__(self, data_path: str):
        self.base_path = Path(data_path)
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.base_path / f"{key}.json"

    def load(self, key: str, default: T) -> Any:
        path = self._path_for(key)
        if not path.exists():
            logger.debug(f"No stored value for '{key}', using default")
            return default

        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read stored value for '{key}': {e}")
            return default

    def save(self, key: str, value: Any) -> bool:
        path = self._path_for(key)
        temp_path = path.with_suffix(".tmp")

        try:
            payload = json.dumps(value, indent=2, ensure_ascii=False)
            with open(temp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            temp_path.replace(path)
            logger.debug(f"Saved '{key}' ({len(payload)} bytes)")
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save '{key}': {e}")
            if temp_path.exists():
                try:
                    temp_path.unlink()
                except OSError:
                    logger.warning(f"Could not remove temporary file {temp_path}")
            return False

