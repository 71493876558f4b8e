import random
import threading
from typing import Callable, Dict, List, Optional, Set

from .history import RecentSongHistory
from .logging import get_logger, queue_event, with_context
from .models import Song
from .queue import YEAR_SOFT_USAGE_LIMIT, build_balanced_queue, dedupe_playable_songs

IDLE = 'idle'
LOADING = 'loading'
READY = 'ready'
EXHAUSTED = 'exhausted'
ERROR = 'error'

NO_PLAYABLE_SONGS = "No playable songs are available in the catalog."
NO_STARTING_SONG = "Could not find a song to start the automatic game."
START_FAILED = "Could not prepare the automatic game."
QUEUE_EXHAUSTED = "All available songs have been played in this session. Reset to play again."


class AutoGameQueue:
    """Session wrapper that serves a balanced queue one song at a time.

    ``fetch_songs`` is called on every ``start_queue`` and is the only call
    made without holding the state lock. Completions from a fetch that was
    overtaken by a newer ``start_queue`` or ``reset_queue`` are discarded.
    """

    def __init__(
        self,
        fetch_songs: Callable[[], List[Song]],
        history: RecentSongHistory,
        rng: Optional[random.Random] = None,
        soft_usage_limit: int = YEAR_SOFT_USAGE_LIMIT,
    ):
        self.fetch_songs = fetch_songs
        self.history = history
        self.rng = rng or random.Random()
        self.soft_usage_limit = soft_usage_limit
        self.logger = get_logger(__name__)
        self._lock = threading.Lock()
        self._generation = 0
        self._status = IDLE
        self._error: Optional[str] = None
        self._current: Optional[Song] = None
        self._queue: List[Song] = []
        self._position = 0
        self._served: Set[int] = set()
        self._log, self._sid = with_context(self.logger)

    @property
    def status(self) -> str:
        return self._status

    @property
    def error(self) -> Optional[str]:
        return self._error

    @property
    def current_song(self) -> Optional[Song]:
        return self._current

    @property
    def queue_size(self) -> int:
        return len(self._queue)

    @property
    def position(self) -> int:
        return self._position

    @property
    def has_more_songs(self) -> bool:
        with self._lock:
            return bool(self._queue) and self._position < len(self._queue)

    def snapshot(self) -> Dict:
        with self._lock:
            return {
                'status': self._status,
                'error': self._error,
                'current_song': self._current.to_dict() if self._current else None,
                'has_more_songs': bool(self._queue) and self._position < len(self._queue),
                'queue_size': len(self._queue),
                'position': self._position,
            }

    def _clear_session(self):
        self._queue = []
        self._position = 0
        self._served = set()
        self._current = None
        self._error = None

    def _select_next_song(self) -> Optional[Song]:
        while self._position < len(self._queue):
            candidate = self._queue[self._position]
            self._position += 1
            if candidate.id not in self._served:
                return candidate
        return None

    def _serve(self, song: Song):
        self._served.add(song.id)
        self.history.remember([song.id])
        self._current = song
        self._error = None
        self._status = READY

    def _fail(self, message: str):
        self._current = None
        self._error = message
        self._status = ERROR

    def start_queue(self) -> Optional[Song]:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._log, self._sid = with_context(self.logger)
            self._clear_session()
            self._status = LOADING

        try:
            songs = self.fetch_songs() or []
        except Exception as e:
            with self._lock:
                if generation != self._generation:
                    return None
                self._log.warning(queue_event(action="start", status=ERROR, reason="fetch_failed", error=e))
                self._fail(str(e) or START_FAILED)
            return None

        with self._lock:
            if generation != self._generation:
                self._log.info(queue_event(action="start", status="discarded", reason="superseded"))
                return None
            try:
                playable = dedupe_playable_songs(songs, self.rng)
                recent_ids = self.history.load()
                queue = build_balanced_queue(
                    playable,
                    recent_ids,
                    rng=self.rng,
                    soft_usage_limit=self.soft_usage_limit,
                )
            except Exception as e:
                self._log.error(queue_event(action="start", status=ERROR, reason="build_failed", error=e))
                self._fail(str(e) or START_FAILED)
                return None

            if not queue:
                self._log.warning(queue_event(action="start", status=ERROR, reason="empty_catalog", fetched=len(songs)))
                self._fail(NO_PLAYABLE_SONGS)
                return None

            self._queue = queue
            self._position = 0
            song = self._select_next_song()
            if song is None:
                self._fail(NO_STARTING_SONG)
                return None

            self._serve(song)
            self._log.info(queue_event(songId=song.id, action="start", position=1, total=len(queue)))
            return song

    def advance_queue(self) -> Optional[Song]:
        with self._lock:
            song = self._select_next_song() if self._queue else None
            if song is None:
                self._status = EXHAUSTED
                self._current = None
                self._error = QUEUE_EXHAUSTED
                self._log.info(queue_event(action="advance", status=EXHAUSTED, total=len(self._queue)))
                return None

            self._serve(song)
            self._log.info(queue_event(songId=song.id, action="advance", position=self._position, total=len(self._queue)))
            return song

    def reset_queue(self):
        with self._lock:
            self._generation += 1
            self._clear_session()
            self._status = IDLE
            self._log.info(queue_event(action="reset"))
