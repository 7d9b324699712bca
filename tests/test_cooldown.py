"""Tests for chatkarma.cooldown."""


class TestCooldownGate:
    def test_disabled_always_allows(self, gate, store):
        assert gate.check_and_set("1", "foo").allowed
        assert gate.check_and_set("1", "foo").allowed
        assert store.keys("cooldown:*") == []

    def test_zero_is_disabled(self, gate, config):
        config.cooldown = 0
        assert gate.check_and_set("1", "foo").allowed
        assert gate.check_and_set("1", "foo").allowed

    def test_second_modification_rejected(self, gate, config):
        config.cooldown = 10
        assert gate.check_and_set("1", "foo").allowed
        verdict = gate.check_and_set("1", "foo")
        assert not verdict.allowed
        assert 0 < verdict.remaining <= 10

    def test_remaining_counts_down(self, gate, config, clock):
        config.cooldown = 10
        gate.check_and_set("1", "foo")
        clock.advance(7)
        assert gate.check_and_set("1", "foo").remaining == 3
        assert gate.remaining("1", "foo") == 3

    def test_allowed_after_expiry(self, gate, config, clock):
        config.cooldown = 10
        gate.check_and_set("1", "foo")
        clock.advance(10)
        assert gate.remaining("1", "foo") is None
        assert gate.check_and_set("1", "foo").allowed

    def test_scoped_per_user_and_term(self, gate, config):
        config.cooldown = 10
        gate.check_and_set("1", "foo")
        assert gate.check_and_set("2", "foo").allowed
        assert gate.check_and_set("1", "bar").allowed

    def test_rejection_does_not_extend(self, gate, config, clock):
        config.cooldown = 10
        gate.check_and_set("1", "foo")
        clock.advance(5)
        gate.check_and_set("1", "foo")
        assert gate.remaining("1", "foo") == 5
