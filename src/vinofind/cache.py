"""
File-based JSON cache with a time-to-live.

Holds catalog snapshots between sessions and memoizes generated commentary.
One file per entry, named after the sha256 of (namespace, key).
"""

import hashlib
import json
import time
from pathlib import Path
from typing import Any, Optional, Union

from vinofind.config import CACHE_DIR, CACHE_TTL_HOURS
from vinofind.utils import logger


class JsonFileCache:
    """TTL cache for JSON-serializable values, partitioned by namespace."""

    def __init__(self, cache_dir: Optional[Union[str, Path]] = None, ttl_hours: float = CACHE_TTL_HOURS):
        """
        Args:
            cache_dir: Directory for entry files (default: CACHE_DIR)
            ttl_hours: Entries at least this old are treated as missing
        """
        self.cache_dir = Path(cache_dir if cache_dir is not None else CACHE_DIR)
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.ttl_seconds = ttl_hours * 3600

        logger.info(f"Cache initialized at {self.cache_dir} (ttl {ttl_hours}h)")

    def _entry_path(self, key: str, namespace: str) -> Path:
        digest = hashlib.sha256(json.dumps([namespace, key]).encode()).hexdigest()
        return self.cache_dir / f"{digest}.json"

    def get(self, key: str, namespace: str = "default") -> Optional[Any]:
        """
        Return the cached value, or None when absent, expired or unreadable.

        Expired entries are deleted on read.
        """
        path = self._entry_path(key, namespace)
        if not path.exists():
            return None

        try:
            entry = json.loads(path.read_text(encoding="utf-8"))
            age = time.time() - float(entry["stored_at"])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Unreadable cache entry {path.name}: {e}")
            return None

        if age >= self.ttl_seconds:
            logger.debug(f"Cache expired for {namespace}:{key[:40]}")
            path.unlink(missing_ok=True)
            return None

        logger.debug(f"Cache HIT for {namespace}:{key[:40]}")
        return entry.get("value")

    def set(self, key: str, value: Any, namespace: str = "default") -> None:
        """Store a value; unserializable values are logged and skipped."""
        entry = {
            "namespace": namespace,
            "key": key[:200],
            "stored_at": time.time(),
            "value": value,
        }
        try:
            serialized = json.dumps(entry)
            self._entry_path(key, namespace).write_text(serialized, encoding="utf-8")
        except (OSError, TypeError, ValueError) as e:
            logger.warning(f"Could not cache {namespace}:{key[:40]}: {e}")
            return

        logger.debug(f"Cache SET for {namespace}:{key[:40]}")

    def clear(self) -> None:
        """Delete every entry in the cache directory."""
        removed = 0
        for path in self.cache_dir.glob("*.json"):
            path.unlink(missing_ok=True)
            removed += 1
        logger.info(f"Cache cleared ({removed} entries)")
