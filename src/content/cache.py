"""
In-memory cache of validated configuration content.

Keys are canonical absolute file paths; callers canonicalize with
canonical_path() before every lookup so that different spellings of the same
file never produce duplicate entries. Values are the last successfully
validated content for that path together with the schema key it was
validated against.

The cache performs no I/O. It is guarded by a lock because watch-triggered
reloads run on debounce timer threads while callers read from their own.
"""
import os
import threading
from collections import OrderedDict
from dataclasses import dataclass
from typing import Any, Dict, List, Optional


def canonical_path(path: str) -> str:
    """Resolve a path to the absolute, symlink-free form used as a key.

    Example:
        >>> canonical_path("data/../data/branding.json")
        '/srv/kiosk/data/branding.json'
    """
    return os.path.realpath(os.path.abspath(os.path.expanduser(str(path))))


@dataclass
class CacheEntry:
    content: Any
    schema_key: Optional[str] = None


class ConfigurationCache:
    """Path-keyed store of last-known-good configuration content."""

    def __init__(self):
        self._entries: "OrderedDict[str, CacheEntry]" = OrderedDict()
        self._lock = threading.Lock()

    def get(self, path: str) -> Optional[Any]:
        """Return cached content for a path, or None if absent."""
        entry = self.get_entry(path)
        return entry.content if entry is not None else None

    def get_entry(self, path: str) -> Optional[CacheEntry]:
        with self._lock:
            return self._entries.get(path)

    def set(self, path: str, content: Any, schema_key: Optional[str] = None) -> None:
        """Insert or replace the entry for a path."""
        with self._lock:
            self._entries[path] = CacheEntry(content=content, schema_key=schema_key)

    def invalidate(self, path: str) -> bool:
        """Remove the entry for a path.

        Returns:
            True if an entry was removed
        """
        with self._lock:
            return self._entries.pop(path, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> Dict[str, Any]:
        """Return cache statistics.

        Returns:
            Dictionary with ``size`` (entry count) and ``keys`` (cached paths
            in insertion order)
        """
        with self._lock:
            keys: List[str] = list(self._entries.keys())
        return {"size": len(keys), "keys": keys}

    def __contains__(self, path: str) -> bool:
        with self._lock:
            return path in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
