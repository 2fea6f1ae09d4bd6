"""JSON file cache with explicit TTL, owned by a planner instance."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass
class _CacheEntry:
    value: Any
    loaded_at: float
    mtime: float


class FileCache:
    """Caches parsed JSON documents by path.

    An entry is reused while it is younger than ``ttl`` seconds and the file's
    mtime has not changed. ``ttl=0`` disables caching.
    """

    def __init__(self, ttl: float = 30.0, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Path, _CacheEntry] = {}
        self.hits = 0
        self.misses = 0

    def load_json(self, path: str | Path) -> Any | None:
        """Return parsed JSON, or None when the file does not exist."""
        p = Path(path)
        if not p.exists():
            self._entries.pop(p, None)
            return None

        mtime = p.stat().st_mtime
        entry = self._entries.get(p)
        now = self._clock()
        if entry and entry.mtime == mtime and now - entry.loaded_at < self.ttl:
            self.hits += 1
            return entry.value

        self.misses += 1
        value = json.loads(p.read_text(encoding="utf-8"))
        self._entries[p] = _CacheEntry(value=value, loaded_at=now, mtime=mtime)
        logger.debug("Loaded %s into cache", p)
        return value

    def invalidate(self, path: str | Path | None = None) -> None:
        if path is None:
            self._entries.clear()
        else:
            self._entries.pop(Path(path), None)
