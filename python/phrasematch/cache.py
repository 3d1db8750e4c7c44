"""
Time-boxed cache for document ID lookups.

Entries are keyed by phrase plus document filters and expire after a TTL.
Any write to the corpus must call `invalidate()` so that later scans see
documents whose text changed.
"""

import hashlib
import time
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import structlog

logger = structlog.get_logger(__name__)


class MatchCache:
    """Maps (phrase, doc types, statuses) to the matching document IDs."""

    DEFAULT_TTL = 3600  # 1 hour in seconds

    def __init__(self, ttl: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl = self.DEFAULT_TTL if ttl is None else ttl
        self._clock = clock
        self._entries: Dict[str, Tuple[float, List[int]]] = {}
        self._hits = 0
        self._misses = 0

    @staticmethod
    def make_key(phrase: str, doc_types: Sequence[str], statuses: Sequence[str]) -> str:
        raw = f"{phrase}|{','.join(doc_types)}|{','.join(statuses)}"
        return hashlib.md5(raw.encode("utf-8")).hexdigest()

    def get(self, key: str) -> Optional[List[int]]:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None

        expires_at, ids = entry
        if self._clock() >= expires_at:
            logger.debug(f"Match cache expired: {key}")
            del self._entries[key]
            self._misses += 1
            return None

        self._hits += 1
        return list(ids)

    def set(self, key: str, ids: Sequence[int]) -> None:
        self._entries[key] = (self._clock() + self.ttl, list(ids))

    def invalidate(self, key: Optional[str] = None) -> int:
        """
        Drops one entry, or every entry when no key is given.

        Returns:
            Number of entries removed.
        """
        if key is not None:
            return 1 if self._entries.pop(key, None) is not None else 0
        count = len(self._entries)
        self._entries.clear()
        if count:
            logger.debug(f"Match cache cleared ({count} entries)")
        return count

    def stats(self) -> Dict[str, float]:
        total = self._hits + self._misses
        return {
            "entries": len(self._entries),
            "hits": self._hits,
            "misses": self._misses,
            "hit_rate": (self._hits / total) if total else 0.0,
        }
