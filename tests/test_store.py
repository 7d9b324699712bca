"""Tests for chatkarma.store.sqlite."""

import pytest

from chatkarma.store.base import NEG_INF
from chatkarma.store.sqlite import SQLiteScoreStore


class TestSortedSets:
    def test_zincrby_creates_and_accumulates(self, store):
        assert store.zincrby("terms", 1, "foo") == 1
        assert store.zincrby("terms", 2, "foo") == 3
        assert store.zincrby("terms", -5, "foo") == -2

    def test_zscore_missing(self, store):
        assert store.zscore("terms", "nope") is None

    def test_zadd_reports_new_members(self, store):
        assert store.zadd("terms", 5, "foo") is True
        assert store.zadd("terms", 7, "foo") is False
        assert store.zscore("terms", "foo") == 7

    def test_zrange_ascending_and_descending(self, store):
        for member, score in [("a", 3), ("b", 1), ("c", 2)]:
            store.zadd("z", score, member)
        assert store.zrange("z", 0, -1) == [("b", 1), ("c", 2), ("a", 3)]
        assert store.zrange("z", 0, 1, desc=True) == [("a", 3), ("c", 2)]

    def test_zrange_out_of_bounds(self, store):
        store.zadd("z", 1, "a")
        assert store.zrange("z", 0, 10) == [("a", 1)]
        assert store.zrange("z", 5, 10) == []
        assert store.zrange("empty", 0, -1) == []

    def test_zrange_ties_order_by_member(self, store):
        store.zadd("z", 1, "b")
        store.zadd("z", 1, "a")
        assert [m for m, _ in store.zrange("z", 0, -1)] == ["a", "b"]

    def test_zrangebyscore_inclusive(self, store):
        for i in range(5):
            store.zadd("z", i, f"m{i}")
        assert [m for m, _ in store.zrangebyscore("z", 1, 3)] == ["m1", "m2", "m3"]
        assert [m for m, _ in store.zrangebyscore("z", NEG_INF, 1)] == ["m0", "m1"]

    def test_zremrangebyscore(self, store):
        for i in range(5):
            store.zadd("z", i, f"m{i}")
        assert store.zremrangebyscore("z", NEG_INF, 2) == 3
        assert store.zcard("z") == 2

    def test_zremrangebyrank(self, store):
        for i in range(5):
            store.zadd("z", i, f"m{i}")
        assert store.zremrangebyrank("z", 0, 1) == 2
        assert [m for m, _ in store.zrange("z", 0, -1)] == ["m2", "m3", "m4"]

    def test_zrem_many(self, store):
        store.zadd("z", 1, "a")
        store.zadd("z", 2, "b")
        assert store.zrem("z", "a", "b", "c") == 2
        assert store.zcard("z") == 0


class TestSets:
    def test_sadd_srem(self, store):
        assert store.sadd("links:foo", "bar") is True
        assert store.sadd("links:foo", "bar") is False
        assert store.sismember("links:foo", "bar")
        assert store.srem("links:foo", "bar") is True
        assert store.srem("links:foo", "bar") is False

    def test_smembers(self, store):
        store.sadd("s", "a")
        store.sadd("s", "b")
        assert store.smembers("s") == {"a", "b"}
        assert store.smembers("missing") == set()


class TestKeys:
    def test_setex_and_ttl(self, store, clock):
        store.setex("cooldown:1:foo", 10, "1")
        assert store.ttl("cooldown:1:foo") == 10
        clock.advance(4)
        assert store.ttl("cooldown:1:foo") == 6

    def test_expired_key_disappears(self, store, clock):
        store.setex("k", 5, "1")
        clock.advance(5)
        assert store.ttl("k") == -2
        assert store.get("k") is None
        assert not store.exists("k")

    def test_ttl_without_expiry(self, store):
        store.set("k", "v")
        store.zadd("z", 1, "a")
        assert store.ttl("k") == -1
        assert store.ttl("z") == -1
        assert store.ttl("missing") == -2

    def test_setex_rejects_non_positive(self, store):
        with pytest.raises(ValueError):
            store.setex("k", 0, "1")

    def test_type(self, store):
        store.set("s", "1")
        store.zadd("z", 1, "a")
        store.sadd("set", "a")
        assert store.type("s") == "string"
        assert store.type("z") == "zset"
        assert store.type("set") == "set"
        assert store.type("none") == "none"

    def test_keys_glob(self, store):
        store.sadd("links:foo", "bar")
        store.sadd("links:baz", "bar")
        store.sadd("linked_to:bar", "foo")
        assert store.keys("links:*") == ["links:baz", "links:foo"]

    def test_delete(self, store):
        store.sadd("a", "x")
        store.zadd("b", 1, "x")
        assert store.delete("a", "b", "c") == 2
        assert not store.exists("a")
        assert not store.exists("b")


class TestBatch:
    def test_batch_rolls_back_on_error(self, store):
        with pytest.raises(RuntimeError):
            with store.batch():
                store.zadd("z", 1, "a")
                raise RuntimeError("boom")
        assert store.zcard("z") == 0

    def test_batch_commits(self, config, store, clock):
        with store.batch():
            store.zadd("z", 1, "a")
            store.sadd("s", "b")
        reopened = SQLiteScoreStore(config.db_path, clock=clock)
        try:
            assert reopened.zscore("z", "a") == 1
            assert reopened.sismember("s", "b")
        finally:
            reopened.close()

    def test_in_memory(self):
        with SQLiteScoreStore() as mem:
            mem.zincrby("terms", 1, "foo")
            assert mem.zscore("terms", "foo") == 1
