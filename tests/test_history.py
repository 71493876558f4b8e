import json

from ponchister.history import (
    RECENT_SONG_HISTORY_KEY,
    RECENT_SONG_HISTORY_LIMIT,
    RecentSongHistory,
    normalize_ids,
)
from ponchister.storage import MemoryStore


class BrokenStore:
    def get_kv(self, key):
        raise OSError("storage unavailable")

    def set_kv(self, key, value):
        raise OSError("storage unavailable")


def test_load_empty_when_nothing_stored():
    assert RecentSongHistory(MemoryStore()).load() == []


def test_remember_puts_most_recent_first_and_moves_duplicates():
    history = RecentSongHistory(MemoryStore())
    history.remember([1])
    history.remember([2])
    history.remember([3, 4])
    assert history.load() == [3, 4, 2, 1]
    history.remember([1])
    assert history.load() == [1, 3, 4, 2]


def test_capacity_bounds_and_dedupes_across_batches():
    store = MemoryStore()
    history = RecentSongHistory(store)
    for start in range(1, 201, 20):
        history.remember(list(range(start, start + 20)))
    history.remember([150, 5, 150])
    ids = history.load()
    assert len(ids) == RECENT_SONG_HISTORY_LIMIT
    assert len(set(ids)) == len(ids)
    assert ids[:2] == [150, 5]
    assert ids[2] == 181
    assert json.loads(store.get_kv(RECENT_SONG_HISTORY_KEY)) == ids


def test_load_respects_explicit_limit():
    history = RecentSongHistory(MemoryStore())
    history.remember([5, 4, 3, 2, 1])
    assert history.load(limit=2) == [5, 4]
    assert history.load(limit=0) == [5, 4, 3, 2, 1]


def test_remember_with_smaller_limit_truncates():
    history = RecentSongHistory(MemoryStore(), limit=3)
    history.remember([1, 2, 3, 4, 5])
    assert history.load() == [1, 2, 3]


def test_corrupt_or_unexpected_contents_degrade_to_empty():
    for raw in ('{not json', '{"a": 1}', '"text"', '42'):
        store = MemoryStore({RECENT_SONG_HISTORY_KEY: raw})
        assert RecentSongHistory(store).load() == []


def test_junk_entries_are_filtered():
    store = MemoryStore({RECENT_SONG_HISTORY_KEY: json.dumps([3, "7", -1, 0, "x", 3, 2.9, None, True])})
    assert RecentSongHistory(store).load() == [3, 7, 2]


def test_unavailable_storage_never_raises():
    history = RecentSongHistory(BrokenStore())
    history.remember([1, 2])
    history.clear()
    assert history.load() == []
    none_history = RecentSongHistory(None)
    none_history.remember([1])
    assert none_history.load() == []


def test_empty_remember_is_noop():
    store = MemoryStore()
    RecentSongHistory(store).remember([])
    assert store.get_kv(RECENT_SONG_HISTORY_KEY) is None


def test_clear_forgets_everything():
    history = RecentSongHistory(MemoryStore())
    history.remember([1, 2])
    history.clear()
    assert history.load() == []


def test_normalize_ids_keeps_first_occurrence():
    assert normalize_ids([4, 4, "4", 1, 4]) == [4, 1]


def test_normalize_ids_reads_leading_integer_of_strings():
    assert normalize_ids(["2.9", "12abc", " 5 ", "-4", "abc12", ""]) == [2, 12, 5]
