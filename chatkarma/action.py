"""
chatkarma.action — Timestamped record of a single score change.

Actions are what make decay possible: each one is stored as a member
of the ``actions`` sorted set, scored by its unix timestamp, so the
decay engine can pull everything older than the cutoff in one range
query.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Optional

from chatkarma.core.types import generate_id


@dataclass(frozen=True)
class Action:
    """One score change: ``delta`` applied to ``term`` by ``user_id`` at ``time``.

    ``user_id`` is None for anonymous changes (attribution unknown).
    ``id`` keeps two otherwise identical actions distinct in the set.
    """

    term: str
    user_id: Optional[str]
    delta: int
    time: int
    id: str = field(default_factory=generate_id, compare=False)

    def serialize(self) -> str:
        return json.dumps(
            {
                "term": self.term,
                "user_id": self.user_id,
                "delta": self.delta,
                "time": self.time,
                "id": self.id,
            },
            separators=(",", ":"),
            sort_keys=True,
        )

    @classmethod
    def deserialize(cls, payload: str) -> "Action":
        try:
            data = json.loads(payload)
            return cls(
                term=str(data["term"]),
                user_id=None if data.get("user_id") is None else str(data["user_id"]),
                delta=int(data["delta"]),
                time=int(data["time"]),
                id=str(data.get("id") or generate_id()),
            )
        except (TypeError, KeyError, json.JSONDecodeError) as exc:
            raise ValueError(f"Malformed action payload: {payload!r}") from exc
