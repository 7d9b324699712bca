"""
chatkarma.decay — Time-windowed score decay.

When decay is enabled every score change is recorded as an Action.
Once an action is older than ``decay_interval`` it is reversed, as if
it had never happened:

  1. ``cutoff = now - decay_interval``
  2. every action stamped at or before the cutoff is fetched
  3. its delta is subtracted from the term's own score, and the
     modifying user's count for that term drops by one
  4. the fetched actions are removed
  5. modifier entries that reached zero are purged

Deltas are integers, so reversal is exact.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, List, Optional, Tuple

from chatkarma import keys
from chatkarma.action import Action
from chatkarma.store.base import NEG_INF

if TYPE_CHECKING:
    from chatkarma.core.config import Config
    from chatkarma.core.types import Clock
    from chatkarma.store.base import ScoreStore

log = logging.getLogger(__name__)


class DecayEngine:
    """
    Records actions and reverses the ones that have aged out.

    Parameters
    ----------
    store : ScoreStore
        Where scores, modifier counts and actions live.
    config : Config
        Supplies ``decay`` and ``decay_interval``.
    clock : callable
        Returns the current unix time (default ``time.time``).
    """

    def __init__(
        self,
        store: "ScoreStore",
        config: "Config",
        clock: "Clock" = time.time,
    ) -> None:
        self.store = store
        self.config = config
        self.clock = clock

    @property
    def enabled(self) -> bool:
        return bool(self.config.decay)

    def now(self) -> int:
        return int(self.clock())

    def cutoff(self) -> int:
        return self.now() - int(self.config.decay_interval)

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record(
        self,
        term: str,
        user_id: Optional[str],
        delta: int = 1,
        at: Optional[int] = None,
    ) -> Optional[Action]:
        """Persist an action for a score change.  No-op when decay is off."""
        if not self.enabled:
            return None
        action = Action(
            term=term,
            user_id=user_id,
            delta=int(delta),
            time=self.now() if at is None else int(at),
        )
        self.store.zadd(keys.ACTIONS, action.time, action.serialize())
        return action

    def _pending(self, term: Optional[str] = None) -> List[Tuple[str, Action]]:
        found = []
        for payload, _ in self.store.zrange(keys.ACTIONS, 0, -1):
            try:
                action = Action.deserialize(payload)
            except ValueError:
                log.warning("Skipping unreadable action %r", payload)
                continue
            if term is None or action.term == term:
                found.append((payload, action))
        return found

    def actions(self, term: Optional[str] = None) -> List[Action]:
        """All pending actions, oldest first, optionally for one term."""
        return [action for _, action in self._pending(term)]

    def forget_term(self, term: str) -> int:
        """Drop every pending action for ``term`` without reversing it."""
        payloads = [payload for payload, _ in self._pending(term)]
        return self.store.zrem(keys.ACTIONS, *payloads) if payloads else 0

    # ------------------------------------------------------------------
    # Decay pass
    # ------------------------------------------------------------------

    def process(self) -> List[Action]:
        """Reverse and remove every action at or before the cutoff.

        Returns the reversed actions.  Running it again with no new
        actions is a no-op.
        """
        if not self.enabled:
            return []

        cutoff = self.cutoff()
        expired = self.store.zrangebyscore(keys.ACTIONS, NEG_INF, cutoff)
        if not expired:
            return []

        reversed_actions: List[Action] = []
        touched = set()
        with self.store.batch():
            for payload, _ in expired:
                try:
                    action = Action.deserialize(payload)
                except ValueError:
                    log.warning("Dropping unreadable action %r", payload)
                    continue
                self.store.zincrby(keys.TERMS, -action.delta, action.term)
                if action.user_id is not None:
                    self.store.zincrby(keys.modified(action.term), -1, action.user_id)
                touched.add(action.term)
                reversed_actions.append(action)

            self.store.zrem(keys.ACTIONS, *[payload for payload, _ in expired])

            for term in touched:
                self.store.zremrangebyscore(keys.modified(term), NEG_INF, 0)

        log.debug(
            "Decay pass reversed %d action(s) across %d term(s), cutoff=%d",
            len(reversed_actions),
            len(touched),
            cutoff,
            extra={"count": len(reversed_actions), "cutoff": cutoff},
        )
        return reversed_actions
