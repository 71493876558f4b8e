import sqlite3
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from .models import Song, YearRange


class MemoryStore:
    """Dict-backed key-value store with the same surface as DB's kvstore."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get_kv(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def set_kv(self, key: str, value: str):
        with self._lock:
            self._data[key] = value


class DB:
    def __init__(self, path: Path):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        # Use thread-local connections to prevent deadlocks
        self._local = threading.local()
        self._global_lock = threading.Lock()
        with self._global_lock:
            conn = sqlite3.connect(str(self.path))
            conn.execute("PRAGMA journal_mode=WAL;")
            self._migrate(conn)
            conn.close()

    def _get_connection(self):
        """Get thread-local database connection"""
        if not hasattr(self._local, 'conn') or self._local.conn is None:
            self._local.conn = sqlite3.connect(str(self.path))
            self._local.conn.execute("PRAGMA journal_mode=WAL;")
        return self._local.conn

    def _migrate(self, conn):
        cur = conn.cursor()
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS kvstore (
                key TEXT PRIMARY KEY,
                value TEXT
            );
            """
        )
        cur.execute(
            """
            CREATE TABLE IF NOT EXISTS songs (
                id INTEGER PRIMARY KEY,
                artist TEXT NOT NULL,
                title TEXT NOT NULL,
                year INTEGER,
                youtube_url TEXT NOT NULL UNIQUE,
                is_spanish INTEGER NOT NULL DEFAULT 0
            );
            """
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_songs_year ON songs(year)")
        conn.commit()

    def set_setting(self, key: str, value: str):
        conn = self._get_connection()
        conn.execute(
            "INSERT INTO settings(key,value) VALUES(?,?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )
        conn.commit()

    def get_setting(self, key: str) -> Optional[str]:
        conn = self._get_connection()
        cur = conn.execute("SELECT value FROM settings WHERE key=?", (key,))
        row = cur.fetchone()
        return row[0] if row else None

    def set_kv(self, key: str, value: str):
        conn = self._get_connection()
        conn.execute(
            "INSERT INTO kvstore(key,value) VALUES(?,?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
            (key, value),
        )
        conn.commit()

    def get_kv(self, key: str) -> Optional[str]:
        conn = self._get_connection()
        cur = conn.execute("SELECT value FROM kvstore WHERE key=?", (key,))
        row = cur.fetchone()
        return row[0] if row else None

    # Song cache helpers
    def upsert_songs(self, songs: Iterable[Song]) -> int:
        """Upsert catalog songs keyed by id. A row whose URL collides with
        another id replaces that row."""
        conn = self._get_connection()
        rows: List[Tuple] = []
        for song in songs:
            url = (song.youtube_url or '').strip()
            if not url:
                continue
            rows.append((
                int(song.id),
                song.artist,
                song.title,
                song.year,
                url,
                1 if song.is_spanish else 0,
            ))

        if not rows:
            return 0

        conn.executemany(
            """
            INSERT OR REPLACE INTO songs (id, artist, title, year, youtube_url, is_spanish)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
        conn.commit()
        return len(rows)

    def fetch_songs(
        self,
        min_year: Optional[int] = None,
        max_year: Optional[int] = None,
        only_spanish: bool = False,
    ) -> List[Song]:
        conn = self._get_connection()
        sql = "SELECT id, artist, title, year, youtube_url, is_spanish FROM songs"
        clauses: List[str] = []
        params: List = []
        if min_year is not None:
            clauses.append("year >= ?")
            params.append(int(min_year))
        if max_year is not None:
            clauses.append("year <= ?")
            params.append(int(max_year))
        if only_spanish:
            clauses.append("is_spanish = 1")
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY id"
        rows = conn.execute(sql, params).fetchall()
        return [
            Song(
                id=row[0],
                artist=row[1],
                title=row[2],
                year=row[3],
                youtube_url=row[4],
                is_spanish=bool(row[5]),
            )
            for row in rows
        ]

    def count_songs(self) -> int:
        conn = self._get_connection()
        return conn.execute("SELECT COUNT(*) FROM songs").fetchone()[0] or 0

    def get_year_bounds(self) -> Optional[YearRange]:
        conn = self._get_connection()
        row = conn.execute("SELECT MIN(year), MAX(year) FROM songs WHERE year IS NOT NULL").fetchone()
        if not row or row[0] is None:
            return None
        return YearRange(min=int(row[0]), max=int(row[1]))
