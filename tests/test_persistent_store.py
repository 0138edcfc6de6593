"""Tests for the durable slow tier and its backends."""

import fnmatch
import json

import pytest
import redis

from answer_cache.exceptions import DurableStoreError
from answer_cache.repositories import JsonFileDurableStore, PersistentBoundedStore, RedisDurableStore


class FakeRedis:
    """Dict-backed stand-in for the handful of redis.Redis calls used."""

    def __init__(self) -> None:
        self.data: dict[str, str] = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value):
        self.data[key] = value
        return True

    def mget(self, keys):
        return [self.data.get(key) for key in keys]

    def delete(self, *keys):
        return sum(1 for key in keys if self.data.pop(key, None) is not None)

    def scan_iter(self, match="*"):
        return iter([key for key in list(self.data) if fnmatch.fnmatchcase(key, match)])

    def ping(self):
        return True


class BrokenRedis(FakeRedis):
    def get(self, key):
        raise redis.ConnectionError("connection refused")

    def set(self, key, value):
        raise redis.ConnectionError("connection refused")

    def ping(self):
        raise redis.ConnectionError("connection refused")


class FailingDurable:
    """DurableStore whose every operation fails."""

    def read(self, key):
        raise DurableStoreError("disk on fire")

    def write(self, key, value):
        raise DurableStoreError("disk full")

    def delete(self, key):
        raise DurableStoreError("permission denied")

    def items(self):
        raise DurableStoreError("permission denied")

    def clear(self):
        raise DurableStoreError("permission denied")

    def health_check(self):
        return False


@pytest.fixture
def cache_file(tmp_path):
    return tmp_path / "cache.json"


def test_file_store_round_trip_and_persistence(cache_file, make_entry, clock):
    store = PersistentBoundedStore(JsonFileDurableStore(cache_file), max_size=10, clock=clock)
    store.set("k", make_entry("persisted"))

    reopened = PersistentBoundedStore(JsonFileDurableStore(cache_file), max_size=10, clock=clock)
    entry = reopened.get("k")

    assert entry is not None
    assert entry.answer == "persisted"
    assert entry.metadata == {"model": "fake-model", "output_tokens": 34}
    assert reopened.stats()["hits"] == 1


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", "\xff\xfe garbage"])
def test_corrupt_file_at_startup_is_an_empty_cache(cache_file, make_entry, content):
    cache_file.write_text(content, encoding="latin-1")

    store = PersistentBoundedStore(JsonFileDurableStore(cache_file), max_size=10)

    assert store.get("anything") is None
    assert store.size() == 0
    store.set("k", make_entry())
    assert json.loads(cache_file.read_text())["k"]["answer"] == "cached answer"


def test_missing_file_is_an_empty_cache(tmp_path):
    store = JsonFileDurableStore(tmp_path / "nested" / "cache.json")
    assert store.items() == []
    store.write("k", {"answer": "x"})
    assert (tmp_path / "nested" / "cache.json").exists()


def test_cleanup_removes_oldest_by_timestamp(cache_file, make_entry, clock):
    store = PersistentBoundedStore(JsonFileDurableStore(cache_file), max_size=2, clock=clock)
    store.set("k2", make_entry("second", created_at=clock() + 2))
    store.set("k1", make_entry("first", created_at=clock() + 1))
    store.set("k3", make_entry("third", created_at=clock() + 3))

    assert store.size() == 2
    assert store.get("k1") is None
    assert store.get("k2").answer == "second"
    assert store.get("k3").answer == "third"


def test_cleanup_runs_at_a_coarser_cadence(cache_file, make_entry, clock):
    store = PersistentBoundedStore(
        JsonFileDurableStore(cache_file), max_size=2, cleanup_every=4, clock=clock
    )
    for i in range(3):
        store.set(f"k{i}", make_entry(str(i), created_at=clock() + i))
    assert store.size() == 3

    store.set("k3", make_entry("3", created_at=clock() + 3))
    assert store.size() == 2
    assert sorted(key for key, _ in store.durable.items()) == ["k2", "k3"]


def test_explicit_cleanup(cache_file, make_entry, clock):
    store = PersistentBoundedStore(
        JsonFileDurableStore(cache_file), max_size=1, cleanup_every=100, clock=clock
    )
    store.set("old", make_entry(created_at=clock()))
    store.set("new", make_entry(created_at=clock() + 1))

    assert store.cleanup() == 1
    assert store.get("new") is not None
    assert store.cleanup() == 0


def test_cleanup_ties_are_first_in_first_out(cache_file, make_entry, clock):
    store = PersistentBoundedStore(
        JsonFileDurableStore(cache_file), max_size=1, cleanup_every=100, clock=clock
    )
    store.set("b", make_entry("inserted first", created_at=clock()))
    store.set("a", make_entry("inserted second", created_at=clock()))

    assert store.cleanup() == 1
    assert store.get("b") is None
    assert store.get("a").answer == "inserted second"


def test_backend_failures_degrade_to_misses(make_entry):
    store = PersistentBoundedStore(FailingDurable(), max_size=5)

    store.set("k", make_entry())
    assert store.get("k") is None
    assert store.find_similar("what is a window function", 0.75) is None
    assert store.delete("k") is False
    assert store.clear() == 0
    assert store.cleanup() == 0
    assert store.size() == 0
    assert store.health_check() is False

    stats = store.stats()
    assert stats["misses"] == 1
    assert stats["failures"] >= 6


def test_corrupt_entry_is_a_miss_and_is_dropped(cache_file, make_entry):
    durable = JsonFileDurableStore(cache_file)
    durable.write("bad", {"answer": "no timestamp"})
    store = PersistentBoundedStore(durable, max_size=5)

    assert store.get("bad") is None
    assert durable.read("bad") is None


def test_ttl_expiry_in_durable_tier(cache_file, make_entry, clock):
    store = PersistentBoundedStore(JsonFileDurableStore(cache_file), max_size=5, ttl=1.0, clock=clock)
    store.set("k", make_entry())

    clock.advance(1.1)

    assert store.get("k") is None
    assert store.durable.read("k") is None


def test_find_similar_scans_oldest_first(cache_file, make_entry, clock):
    store = PersistentBoundedStore(JsonFileDurableStore(cache_file), max_size=5, clock=clock)
    store.set("newer", make_entry("newer", question="explain cap theorem", created_at=clock() + 5))
    store.set("older", make_entry("older", question="explain cap theorem", created_at=clock()))

    key, entry = store.find_similar("explain the cap theorem", 0.75)

    assert (key, entry.answer) == ("older", "older")


def test_redis_store_round_trip(make_entry, clock):
    client = FakeRedis()
    durable = RedisDurableStore(redis_client=client, prefix="test:")
    store = PersistentBoundedStore(durable, max_size=2, clock=clock)

    store.set("k1", make_entry("one", created_at=clock()))
    store.set("k2", make_entry("two", created_at=clock() + 1))
    store.set("k3", make_entry("three", created_at=clock() + 2))

    assert sorted(client.data) == ["test:k2", "test:k3"]
    assert store.get("k3").answer == "three"
    assert durable.health_check() is True
    assert durable.clear() == 2
    assert client.data == {}


def test_redis_store_ignores_other_prefixes():
    client = FakeRedis()
    client.set("other:k", json.dumps({"answer": "not ours"}))
    durable = RedisDurableStore(redis_client=client, prefix="test:")
    durable.write("k", {"answer": "ours"})

    assert durable.items() == [("k", {"answer": "ours"})]


def test_redis_store_reports_corrupt_values():
    client = FakeRedis()
    client.set("test:bad", "{nope")
    durable = RedisDurableStore(redis_client=client, prefix="test:")

    with pytest.raises(DurableStoreError):
        durable.read("bad")
    assert durable.items() == [("bad", None)]


def test_redis_outage_never_reaches_the_caller(make_entry):
    durable = RedisDurableStore(redis_client=BrokenRedis(), prefix="test:")
    with pytest.raises(DurableStoreError):
        durable.read("k")

    store = PersistentBoundedStore(durable, max_size=5)
    store.set("k", make_entry())
    assert store.get("k") is None
    assert durable.health_check() is False
