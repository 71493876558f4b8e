from typing import Dict, Optional

from .history import RECENT_SONG_HISTORY_LIMIT
from .queue import YEAR_SOFT_USAGE_LIMIT

VALID_SOFT_USAGE_LIMITS = set(range(1, 11))
VALID_FETCH_ATTEMPTS = set(range(1, 6))
MIN_HISTORY_LIMIT = 1
MAX_HISTORY_LIMIT = 1000
MIN_YEAR = 1900
MAX_YEAR = 2100


def _optional_int(raw) -> Optional[int]:
    if raw is None:
        return None
    if isinstance(raw, str):
        raw = raw.strip()
        if not raw:
            return None
    return int(raw)


def load_config(db) -> Dict:
    return {
        'catalog_url': db.get_setting('catalog_url') or '',
        'min_year': _optional_int(db.get_setting('min_year')),
        'max_year': _optional_int(db.get_setting('max_year')),
        'only_spanish': (db.get_setting('only_spanish') or '') == 'true',
        'soft_usage_limit': int(db.get_setting('soft_usage_limit') or YEAR_SOFT_USAGE_LIMIT),
        'history_limit': int(db.get_setting('history_limit') or RECENT_SONG_HISTORY_LIMIT),
        'fetch_attempts': int(db.get_setting('fetch_attempts') or 3),
    }


def validate_config(cfg: Dict) -> Dict:
    """Coerce and check a settings payload, raising ValueError on the first bad field."""
    out: Dict = {}
    url = (cfg.get('catalog_url') or '').strip()
    if url and not (url.startswith('http://') or url.startswith('https://')):
        raise ValueError("catalog_url must be an http(s) URL")
    out['catalog_url'] = url.rstrip('/')

    for field in ('min_year', 'max_year'):
        try:
            value = _optional_int(cfg.get(field))
        except (TypeError, ValueError):
            raise ValueError(f"invalid {field}")
        if value is not None and not (MIN_YEAR <= value <= MAX_YEAR):
            raise ValueError(f"invalid {field}")
        out[field] = value
    if out['min_year'] is not None and out['max_year'] is not None and out['min_year'] > out['max_year']:
        raise ValueError("min_year must not exceed max_year")

    out['only_spanish'] = cfg.get('only_spanish') is True

    try:
        out['soft_usage_limit'] = int(cfg.get('soft_usage_limit', YEAR_SOFT_USAGE_LIMIT))
        out['history_limit'] = int(cfg.get('history_limit', RECENT_SONG_HISTORY_LIMIT))
        out['fetch_attempts'] = int(cfg.get('fetch_attempts', 3))
    except (TypeError, ValueError):
        raise ValueError("numeric settings must be integers")
    if out['soft_usage_limit'] not in VALID_SOFT_USAGE_LIMITS:
        raise ValueError("invalid soft_usage_limit")
    if not (MIN_HISTORY_LIMIT <= out['history_limit'] <= MAX_HISTORY_LIMIT):
        raise ValueError("invalid history_limit")
    if out['fetch_attempts'] not in VALID_FETCH_ATTEMPTS:
        raise ValueError("invalid fetch_attempts")
    return out


def save_config(db, cfg: Dict):
    db.set_setting('catalog_url', cfg.get('catalog_url') or '')
    db.set_setting('min_year', '' if cfg.get('min_year') is None else str(int(cfg['min_year'])))
    db.set_setting('max_year', '' if cfg.get('max_year') is None else str(int(cfg['max_year'])))
    db.set_setting('only_spanish', 'true' if cfg.get('only_spanish') else 'false')
    db.set_setting('soft_usage_limit', str(int(cfg.get('soft_usage_limit', YEAR_SOFT_USAGE_LIMIT))))
    db.set_setting('history_limit', str(int(cfg.get('history_limit', RECENT_SONG_HISTORY_LIMIT))))
    db.set_setting('fetch_attempts', str(int(cfg.get('fetch_attempts', 3))))


def catalog_filters(cfg: Dict) -> Dict:
    return {
        'min_year': cfg.get('min_year'),
        'max_year': cfg.get('max_year'),
        'only_spanish': bool(cfg.get('only_spanish')),
    }
