from datetime import datetime, timedelta

import pytest

from src.domain.entities.task import Task
from src.infrastructure.cache.record_cache import RecordCache, RecordSnapshot
from src.infrastructure.storage.api_key_store import API_KEY_STORAGE_KEY, ApiKeyStore


class _Clock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


T0 = datetime(2024, 6, 15, 12, 0).astimezone()


def test_cache_is_stale_until_first_store():
    cache = RecordCache(clock=_Clock(T0))

    assert cache.is_stale
    assert not cache.is_loaded
    assert cache.snapshot.tasks == []


def test_cache_fresh_at_four_minutes_and_stale_at_six():
    clock = _Clock(T0)
    cache = RecordCache(expiry_minutes=5, clock=clock)
    cache.store(RecordSnapshot(tasks=[Task(name="T1")]))

    clock.now = T0 + timedelta(minutes=4)
    assert not cache.is_stale

    clock.now = T0 + timedelta(minutes=6)
    assert cache.is_stale
    assert cache.last_fetch_time == T0


def test_invalidate_clears_snapshot_and_timestamp():
    cache = RecordCache(clock=_Clock(T0))
    cache.store(RecordSnapshot(tasks=[Task(name="T1")]))

    cache.invalidate()

    assert cache.is_stale
    assert cache.last_fetch_time is None
    assert cache.snapshot.counts()["tasks"] == 0


def test_set_expiry_rejects_negative_values():
    cache = RecordCache()
    cache.set_expiry(10)

    assert cache.expiry_minutes == 10
    with pytest.raises(ValueError):
        cache.set_expiry(-1)


def test_api_key_store_round_trip(tmp_path):
    store = ApiKeyStore(tmp_path / "nested" / "credentials.json")

    assert store.get() is None

    store.set(API_KEY_STORAGE_KEY, "abc:def")
    assert store.get() == "abc:def"
    assert ApiKeyStore(tmp_path / "nested" / "credentials.json").get() == "abc:def"

    store.clear(API_KEY_STORAGE_KEY)
    assert store.get() is None


def test_api_key_store_ignores_corrupt_file(tmp_path):
    path = tmp_path / "credentials.json"
    path.write_text("{not json", encoding="utf-8")

    assert ApiKeyStore(path).get() is None
