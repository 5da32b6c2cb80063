"""File-backed key-value cache.

Each key is one JSON document under the cache directory, the same model
as browser local storage: whole-value reads and writes, last writer wins.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

logger = logging.getLogger(__name__)


class KeyValueCache:
    """JSON documents stored one file per key."""

    def __init__(self, cache_dir: Path):
        """Initialize the cache.

        Args:
            cache_dir: Directory holding the cached documents.
        """
        self.cache_dir = Path(cache_dir)
        self.cache_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.cache_dir / f"{key}.json"

    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when missing or unreadable."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable cache key %s: %s", key, e)
            return None

    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value under key."""
        path = self._path(key)
        tmp_path = path.with_suffix(".tmp")
        tmp_path.write_text(json.dumps(value), encoding="utf-8")
        os.replace(tmp_path, path)

    def remove(self, key: str) -> None:
        """Delete a key if present."""
        self._path(key).unlink(missing_ok=True)

    def keys(self) -> list[str]:
        """List stored keys."""
        return sorted(path.stem for path in self.cache_dir.glob("*.json"))
