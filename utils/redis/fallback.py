"""
Key-value storage fallback when Redis is unavailable.
"""

import fnmatch
import json
import logging
import os
import tempfile
import threading
from typing import Dict, Tuple, List, Optional

logger = logging.getLogger(__name__)


class FileKV:
    """
    Key-value store with a Redis-like interface, persisted to a JSON file.

    Without a path the store lives in memory only.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._store: Dict[str, str] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self):
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict):
                self._store = {str(k): str(v) for k, v in data.items()}
                logger.info(f"Loaded {len(self._store)} keys from {self.path}")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading key-value store from {self.path}: {e}")

    def _flush(self):
        """Write the store to disk. Caller must hold the lock."""
        if not self.path:
            return
        directory = os.path.dirname(os.path.abspath(self.path))
        fd, tmp_path = tempfile.mkstemp(dir=directory, prefix='.kv-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(self._store, f)
            os.replace(tmp_path, self.path)
        except OSError:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        """Get value by key."""
        return self._store.get(key)

    def set(self, key: str, value: str) -> bool:
        """Set key-value pair."""
        with self._lock:
            self._store[key] = value
            self._flush()
        return True

    def delete(self, *keys: str) -> int:
        """Delete keys, return number of keys deleted."""
        with self._lock:
            deleted = 0
            for key in keys:
                if self._store.pop(key, None) is not None:
                    deleted += 1
            if deleted:
                self._flush()
        return deleted

    def exists(self, key: str) -> int:
        """Check if key exists."""
        return 1 if key in self._store else 0

    def scan(self, cursor: int = 0, match: Optional[str] = None, count: int = 100) -> Tuple[int, List[str]]:
        """Scan keys with pattern matching."""
        keys = list(self._store.keys())
        if match:
            keys = [k for k in keys if fnmatch.fnmatch(k, match)]
        # Everything fits in one batch
        return 0, keys

    def flushdb(self) -> bool:
        """Clear all keys."""
        with self._lock:
            self._store.clear()
            self._flush()
        return True

    def ping(self) -> bool:
        """Health check - always returns True for the local store."""
        return True
