"""Tests for chatkarma.action."""

import json

import pytest

from chatkarma.action import Action


class TestAction:
    def test_serialize_is_compact_json(self):
        action = Action("foo", "1", 1, 1000, id="abc")
        payload = action.serialize()
        assert " " not in payload
        assert json.loads(payload) == {
            "term": "foo",
            "user_id": "1",
            "delta": 1,
            "time": 1000,
            "id": "abc",
        }

    def test_deserialize(self):
        action = Action.deserialize(
            '{"term":"foo","user_id":null,"delta":-1,"time":5,"id":"x"}'
        )
        assert action.term == "foo"
        assert action.user_id is None
        assert action.delta == -1
        assert action.time == 5

    def test_deserialize_without_id(self):
        action = Action.deserialize('{"term":"foo","user_id":"2","delta":1,"time":5}')
        assert action.user_id == "2"
        assert len(action.id) == 12

    def test_identical_events_stay_distinct(self):
        a = Action("foo", "1", 1, 1000)
        b = Action("foo", "1", 1, 1000)
        assert a == b
        assert a.serialize() != b.serialize()

    def test_frozen(self):
        action = Action("foo", "1", 1, 1000)
        with pytest.raises(AttributeError):
            action.delta = 5

    @pytest.mark.parametrize(
        "payload", ["not json", '{"term":"foo"}', "[1, 2]", '{"term":"f","delta":"x","time":1}']
    )
    def test_malformed(self, payload):
        with pytest.raises(ValueError):
            Action.deserialize(payload)
