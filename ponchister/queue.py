import random
from typing import Dict, Iterable, List, Optional, Sequence

from .logging import get_logger, queue_event, with_context
from .models import Song
from .utils.media import extract_youtube_id
from .utils.shuffle import shuffle_songs

UNKNOWN_YEAR_KEY = '__unknown_year__'
YEAR_SOFT_USAGE_LIMIT = 3

log, _ = with_context(get_logger(__name__), sid='queue')


def playable_key(song: Song) -> Optional[str]:
    return extract_youtube_id(song.youtube_url)


def year_key(song: Song) -> str:
    return str(song.year) if song.year is not None else UNKNOWN_YEAR_KEY


def dedupe_playable_songs(songs: Iterable[Song], rng: Optional[random.Random] = None) -> List[Song]:
    """Keep one song per distinct video, drop unplayable ones, then shuffle."""
    unique: Dict[str, Song] = {}
    for song in songs:
        key = playable_key(song)
        if not key:
            log.info(queue_event(songId=song.id, status="skipped", reason="invalid_video"))
            continue
        if key not in unique:
            unique[key] = song
    return shuffle_songs(list(unique.values()), rng)


class _Bucket:
    __slots__ = ('fresh', 'stale', 'usage')

    def __init__(self):
        self.fresh: List[Song] = []
        self.stale: List[Song] = []
        self.usage = 0

    def __bool__(self) -> bool:
        return bool(self.fresh or self.stale)

    def pop(self) -> Song:
        return self.fresh.pop() if self.fresh else self.stale.pop()


def build_balanced_queue(
    songs: Sequence[Song],
    recent_ids: Iterable[int] = (),
    rng: Optional[random.Random] = None,
    soft_usage_limit: int = YEAR_SOFT_USAGE_LIMIT,
) -> List[Song]:
    """Order every song exactly once, spreading picks across year buckets.

    Each round draws from a bucket that still holds songs the player has not
    heard recently when one exists; among those, buckets used fewer than
    ``soft_usage_limit`` times are preferred, falling back to the least used
    ones. Within a bucket, fresh songs are drained before recently played
    ones.
    """
    if soft_usage_limit < 1:
        raise ValueError("soft_usage_limit must be at least 1")
    if not songs:
        return []
    rng = rng or random.Random()
    recent = set(recent_ids or ())

    buckets: Dict[str, _Bucket] = {}
    for song in songs:
        bucket = buckets.setdefault(year_key(song), _Bucket())
        if song.id in recent:
            bucket.stale.append(song)
        else:
            bucket.fresh.append(song)

    for bucket in buckets.values():
        bucket.fresh = shuffle_songs(bucket.fresh, rng)
        bucket.stale = shuffle_songs(bucket.stale, rng)

    queue: List[Song] = []
    total = len(songs)
    while len(queue) < total:
        active = [b for b in buckets.values() if b]
        if not active:
            break

        with_fresh = [b for b in active if b.fresh]
        candidates = with_fresh or active

        under_limit = [b for b in candidates if b.usage < soft_usage_limit]
        if under_limit:
            pool = under_limit
        else:
            min_usage = min(b.usage for b in candidates)
            pool = [b for b in candidates if b.usage == min_usage]

        selected = rng.choice(pool)
        queue.append(selected.pop())
        selected.usage += 1

    return queue
