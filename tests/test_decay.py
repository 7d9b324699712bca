"""Tests for chatkarma.decay — recording actions and reversing expired ones."""

import pytest

DAY = 24 * 60 * 60


@pytest.fixture
def seeded(store, decay_config, decay, clock):
    """foo at 8: bar 2 mods, baz 3 mods, 4 anonymous, one per day back in time."""

    def _seed(offsets=None):
        offsets = offsets or {}
        mods = {"bar": 2, "baz": 3, None: 4}
        store.zadd("terms", 8, "foo")
        for user, count in mods.items():
            if user is not None:
                store.zadd("modified:foo", count, user)
            for i in range(count):
                age = (i + offsets.get(user, 0)) * DAY
                decay.record("foo", user, 1, at=clock() - age)

    return _seed


class TestRecord:
    def test_disabled_records_nothing(self, decay, store):
        assert decay.record("foo", "1", 1) is None
        assert store.zcard("actions") == 0

    def test_record_uses_clock(self, decay_config, decay, clock):
        action = decay.record("foo", "1", -1)
        assert action.time == int(clock())
        assert decay.actions() == [action]

    def test_actions_for_term(self, decay_config, decay):
        decay.record("foo", "1", 1)
        decay.record("bar", "1", 1)
        assert [a.term for a in decay.actions("bar")] == ["bar"]


class TestProcess:
    def test_disabled_is_noop(self, decay, store):
        store.zadd("actions", 0, '{"term":"foo","user_id":null,"delta":1,"time":0}')
        assert decay.process() == []
        assert store.zcard("actions") == 1

    def test_decrements_scores(self, seeded, decay, store):
        seeded()
        decay.process()
        assert store.zscore("terms", "foo") == 2

    def test_removes_decayed_actions(self, seeded, decay, store):
        seeded()
        assert len(decay.process()) == 6
        assert store.zcard("actions") == 3

    def test_decrements_modifier_counts(self, seeded, decay, store):
        seeded()
        decay.process()
        assert store.zscore("modified:foo", "bar") == 1
        assert store.zscore("modified:foo", "baz") == 1

    def test_removes_decayed_modifiers(self, seeded, decay, store):
        seeded(offsets={"baz": 1})
        decay.process()
        assert store.zcard("modified:foo") == 1
        assert store.zscore("modified:foo", "baz") is None

    def test_second_pass_is_noop(self, seeded, decay, store):
        seeded()
        decay.process()
        assert decay.process() == []
        assert store.zscore("terms", "foo") == 2
        assert store.zcard("actions") == 3

    def test_reversal_is_exact(self, decay_config, decay, make_term, clock):
        foo = make_term("foo")
        for delta in (1, 1, -1, 1):
            foo.modify("1", delta)
            clock.advance(60)
        clock.advance(DAY - 150)
        # the first two actions are now a day old
        reversed_actions = decay.process()
        assert [a.delta for a in reversed_actions] == [1, 1]
        assert foo.own_score() == 0
        clock.advance(DAY)
        decay.process()
        assert foo.own_score() == 0
        assert foo.modified() == []

    def test_unreadable_action_is_dropped(self, decay_config, decay, store, clock):
        store.zadd("actions", clock() - 2 * DAY, "garbage")
        decay.record("foo", "1", 1, at=clock() - 2 * DAY)
        store.zadd("terms", 1, "foo")
        assert len(decay.process()) == 1
        assert store.zcard("actions") == 0
        assert store.zscore("terms", "foo") == 0
