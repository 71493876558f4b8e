import math
from dataclasses import dataclass, asdict
from typing import Dict, Optional


def _coerce_year(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None


@dataclass(frozen=True)
class Song:
    id: int
    artist: str
    title: str
    year: Optional[int]
    youtube_url: str
    is_spanish: bool = False

    @classmethod
    def from_raw(cls, raw: Dict) -> 'Song':
        """Build a Song from a catalog row, tolerating loose JSON types."""
        url = raw.get('youtube_url')
        if url is None:
            url = raw.get('youtubeUrl')
        spanish = any(raw.get(k) is True for k in ('isspanish', 'isSpanish', 'is_spanish'))
        return cls(
            id=int(raw.get('id')),
            artist=str(raw.get('artist') or ''),
            title=str(raw.get('title') or ''),
            year=_coerce_year(raw.get('year')),
            youtube_url=str(url or ''),
            is_spanish=spanish,
        )

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass(frozen=True)
class YearRange:
    min: int
    max: int
