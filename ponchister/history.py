import json
import math
import re
from typing import Iterable, List, Optional

from .logging import get_logger, with_context

RECENT_SONG_HISTORY_KEY = 'ponchister_recent_song_ids_v1'
RECENT_SONG_HISTORY_LIMIT = 120

log, _ = with_context(get_logger(__name__), sid='history')

# Leading integer of a stored string, so "12abc" reads as 12 and "2.9" as 2
_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')


def normalize_ids(candidates: Iterable) -> List[int]:
    """Coerce stored values to positive ints, dropping junk and duplicates.

    Order is preserved, so the first occurrence of an id wins.
    """
    seen = set()
    normalized: List[int] = []
    for value in candidates:
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            parsed = value
        elif isinstance(value, float):
            if not math.isfinite(value):
                continue
            parsed = int(value)
        else:
            match = _LEADING_INT.match(str(value))
            if not match:
                continue
            parsed = int(match.group(1))
        if parsed <= 0 or parsed in seen:
            continue
        seen.add(parsed)
        normalized.append(parsed)
    return normalized


class RecentSongHistory:
    """Bounded most-recent-first record of served song ids.

    ``store`` is anything exposing ``get_kv(key)`` and ``set_kv(key, value)``
    (``DB`` or ``MemoryStore``). A ``None`` store behaves as unavailable
    storage: loads are empty and writes are dropped. Nothing here raises;
    the history only biases queue order, so losing it is acceptable.
    """

    def __init__(self, store, limit: int = RECENT_SONG_HISTORY_LIMIT, key: str = RECENT_SONG_HISTORY_KEY):
        self.store = store
        self.limit = self._resolve_limit(limit, RECENT_SONG_HISTORY_LIMIT)
        self.key = key

    @staticmethod
    def _resolve_limit(limit, fallback: int) -> int:
        if isinstance(limit, bool) or not isinstance(limit, (int, float)):
            return fallback
        if not math.isfinite(limit) or limit <= 0:
            return fallback
        return max(1, int(limit))

    def load(self, limit: Optional[int] = None) -> List[int]:
        if self.store is None:
            return []
        limit = self._resolve_limit(limit, self.limit)
        try:
            raw = self.store.get_kv(self.key)
            if not raw:
                return []
            parsed = json.loads(raw)
        except Exception as e:
            log.debug(f"recent history unreadable: {e}")
            return []
        if not isinstance(parsed, list):
            return []
        return normalize_ids(parsed)[:limit]

    def remember(self, song_ids: Iterable[int], limit: Optional[int] = None):
        ids = list(song_ids or [])
        if self.store is None or not ids:
            return
        limit = self._resolve_limit(limit, self.limit)
        try:
            existing = self.load(limit=limit)
            merged = normalize_ids(ids + existing)[:limit]
            self.store.set_kv(self.key, json.dumps(merged))
        except Exception as e:
            # Best-effort: the game proceeds without history
            log.debug(f"recent history write failed: {e}")

    def clear(self):
        if self.store is None:
            return
        try:
            self.store.set_kv(self.key, json.dumps([]))
        except Exception as e:
            log.debug(f"recent history clear failed: {e}")
