import math
import time
from datetime import date
from typing import Callable, Dict, List, Optional

import requests

from .logging import get_logger, with_context
from .models import Song, YearRange
from .utils.backoff import exp_backoff_with_jitter

DEFAULT_MIN_YEAR = 1950
GENERIC_FAILURE = "Could not complete the request to the catalog server."
EMPTY_YEAR_RANGE = "No songs within the selected year range. Adjust the settings to continue."


class CatalogError(Exception):
    pass


def _coerce_bound(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return int(value)
        except (OverflowError, ValueError):
            return None
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


class CatalogClient:
    def __init__(
        self,
        base_url: str,
        timeout: float = 15,
        max_attempts: int = 3,
        session: Optional[requests.Session] = None,
        sleep_fn: Callable[[float], None] = time.sleep,
    ):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.max_attempts = max(1, int(max_attempts))
        self.http = session or requests.Session()
        self.sleep_fn = sleep_fn
        self.logger = get_logger(__name__)

    def configure(self, base_url: Optional[str] = None, max_attempts: Optional[int] = None):
        """Point a live client at new settings; the next request uses them."""
        if base_url is not None:
            self.base_url = base_url.rstrip('/')
        if max_attempts is not None:
            self.max_attempts = max(1, int(max_attempts))

    def _request(self, method: str, path: str, **kwargs):
        if not self.base_url:
            raise CatalogError("catalog URL is not configured")
        url = f"{self.base_url}{path}"
        log, _ = with_context(self.logger)
        last_error = GENERIC_FAILURE
        for attempt in range(1, self.max_attempts + 1):
            try:
                resp = self.http.request(method, url, timeout=self.timeout, **kwargs)
            except requests.RequestException as e:
                log.warning(f"catalog {method} {path} failed attempt={attempt}: {e}")
                last_error = GENERIC_FAILURE
            else:
                if resp.ok:
                    try:
                        return resp.json()
                    except ValueError:
                        raise CatalogError(f"catalog returned invalid JSON for {path}")
                last_error = (resp.text or '').strip() or GENERIC_FAILURE
                log.warning(f"catalog {method} {path} status={resp.status_code} attempt={attempt}")
                if resp.status_code < 500:
                    raise CatalogError(last_error)
            if attempt < self.max_attempts:
                self.sleep_fn(exp_backoff_with_jitter(attempt))
        raise CatalogError(last_error)

    def fetch_all_songs(
        self,
        min_year: Optional[int] = None,
        max_year: Optional[int] = None,
        only_spanish: bool = False,
    ) -> List[Song]:
        params: Dict[str, str] = {}
        if isinstance(min_year, (int, float)):
            params['minYear'] = str(math.floor(min_year))
        if isinstance(max_year, (int, float)):
            params['maxYear'] = str(math.floor(max_year))
        if only_spanish is True:
            params['onlySpanish'] = 'true'

        data = self._request('GET', '/api/songs', params=params)
        if not isinstance(data, list):
            raise CatalogError("catalog returned an unexpected song list")

        songs: List[Song] = []
        for raw in data:
            try:
                songs.append(Song.from_raw(raw))
            except (TypeError, ValueError, AttributeError):
                # rows without a usable id cannot be tracked in history
                continue

        if not songs and ('minYear' in params or 'maxYear' in params):
            raise CatalogError(EMPTY_YEAR_RANGE)
        return songs

    def fetch_year_bounds(self) -> YearRange:
        data = self._request('GET', '/api/songs/year-bounds')
        if not isinstance(data, dict):
            data = {}
        min_year = _coerce_bound(data.get('min'))
        max_year = _coerce_bound(data.get('max'))

        if min_year is None and max_year is not None:
            min_year = max_year
        elif max_year is None and min_year is not None:
            max_year = min_year

        if min_year is None or max_year is None:
            min_year, max_year = DEFAULT_MIN_YEAR, date.today().year

        if min_year > max_year:
            min_year, max_year = max_year, min_year
        return YearRange(min=min_year, max=max_year)

    def get_song_count(self) -> int:
        data = self._request('GET', '/api/songs/count')
        count = data.get('count') if isinstance(data, dict) else None
        return count if isinstance(count, int) and not isinstance(count, bool) else 0

    def create_game_session(
        self,
        mode: str = 'auto',
        year_min: Optional[int] = None,
        year_max: Optional[int] = None,
        only_spanish: bool = False,
        timer_enabled: bool = False,
    ):
        payload = {
            'mode': mode or 'auto',
            'yearMin': _coerce_bound(year_min),
            'yearMax': _coerce_bound(year_max),
            'onlySpanish': only_spanish is True,
            'timerEnabled': timer_enabled is True,
        }
        return self._request('POST', '/api/game-sessions', json=payload)


class CachedCatalog:
    """Catalog source that mirrors successful fetches into the local DB and
    serves the mirror when the server cannot be reached."""

    def __init__(self, client: CatalogClient, db):
        self.client = client
        self.db = db
        self.logger = get_logger(__name__)

    def fetch_songs(
        self,
        min_year: Optional[int] = None,
        max_year: Optional[int] = None,
        only_spanish: bool = False,
    ) -> List[Song]:
        try:
            songs = self.client.fetch_all_songs(min_year=min_year, max_year=max_year, only_spanish=only_spanish)
        except CatalogError as e:
            cached = self.db.fetch_songs(min_year=min_year, max_year=max_year, only_spanish=only_spanish) if self.db else []
            if not cached:
                raise
            with_context(self.logger)[0].warning(f"catalog unavailable ({e}); serving {len(cached)} cached songs")
            return cached
        if self.db and songs:
            try:
                self.db.upsert_songs(songs)
            except Exception as db_err:
                with_context(self.logger)[0].warning(f"failed to cache catalog: {db_err}")
        return songs
