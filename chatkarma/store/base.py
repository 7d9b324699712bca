"""
chatkarma.store.base — The ordered-score store interface.

Everything the engine persists goes through these primitives: sorted
sets (scores, modifier counts, actions), plain sets (links and the
reverse-link index) and expiring string keys (cooldowns, migration
markers).  The semantics follow the familiar Redis commands of the
same names.
"""

from __future__ import annotations

from typing import ContextManager, List, Optional, Protocol, Set, Tuple

#: ``(member, score)`` pair returned by range queries.
ScoredMember = Tuple[str, float]

NEG_INF = float("-inf")
POS_INF = float("inf")


class ScoreStore(Protocol):
    # -- sorted sets --------------------------------------------------------

    def zincrby(self, key: str, delta: float, member: str) -> float:
        """Add ``delta`` to ``member``'s score (creating it at 0); return the new score."""
        ...

    def zscore(self, key: str, member: str) -> Optional[float]: ...

    def zadd(self, key: str, score: float, member: str) -> bool:
        """Set ``member``'s score.  True when the member is new."""
        ...

    def zrem(self, key: str, *members: str) -> int: ...

    def zcard(self, key: str) -> int: ...

    def zrange(
        self, key: str, start: int, stop: int, desc: bool = False
    ) -> List[ScoredMember]:
        """Members by rank, inclusive, negative indices count from the end."""
        ...

    def zrangebyscore(
        self, key: str, min_score: float = NEG_INF, max_score: float = POS_INF
    ) -> List[ScoredMember]: ...

    def zremrangebyscore(
        self, key: str, min_score: float = NEG_INF, max_score: float = POS_INF
    ) -> int: ...

    def zremrangebyrank(self, key: str, start: int, stop: int) -> int: ...

    # -- sets ---------------------------------------------------------------

    def sadd(self, key: str, member: str) -> bool:
        """True when the member was not already present."""
        ...

    def srem(self, key: str, member: str) -> bool:
        """True when the member was present."""
        ...

    def smembers(self, key: str) -> Set[str]: ...

    def sismember(self, key: str, member: str) -> bool: ...

    # -- strings & keys -----------------------------------------------------

    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def setex(self, key: str, seconds: int, value: str) -> None: ...

    def ttl(self, key: str) -> int:
        """Remaining seconds; -1 for no expiry, -2 for a missing key."""
        ...

    def exists(self, key: str) -> bool: ...

    def delete(self, *keys: str) -> int: ...

    def type(self, key: str) -> str:
        """``"string"``, ``"zset"``, ``"set"`` or ``"none"``."""
        ...

    def keys(self, pattern: str = "*") -> List[str]:
        """Glob-style key enumeration."""
        ...

    # -- lifecycle ----------------------------------------------------------

    def batch(self) -> ContextManager["ScoreStore"]: ...

    def close(self) -> None: ...
