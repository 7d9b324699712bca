"""
chatkarma.migrate — One-time upgrades of older stored data.

Three independent steps, each guarded by its own ``support:*`` marker
so repeated runs are no-ops:

  1. **reverse links**: build ``linked_to:<b>`` entries for every
     existing ``links:<a>`` -> ``b`` so deletes can cascade without
     scanning every term.
  2. **modified counts**: older data kept modifiers as a plain set
     (each user once).  Convert to a sorted set of counts, splitting
     the term's score with the ``upgrade_modified`` strategy.
  3. **decay backfill**: when decay is switched on over existing
     data, synthesise the missing actions so that decay will later
     unwind the current scores.  One action per unit of score, spread
     back in time by the ``decay_distributor``.  Known modifiers claim
     units largest count first until the score is used up; whatever
     remains becomes anonymous actions.

Steps only add missing data or convert representations.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from chatkarma import keys

if TYPE_CHECKING:
    from chatkarma.core.config import Config
    from chatkarma.decay import DecayEngine
    from chatkarma.store.base import ScoreStore

log = logging.getLogger(__name__)


class MigrationRunner:
    def __init__(
        self,
        store: "ScoreStore",
        config: "Config",
        decay: "DecayEngine",
    ) -> None:
        self.store = store
        self.config = config
        self.decay = decay

    def run(self) -> Dict[str, bool]:
        """Run every step.  Returns ``{step: did_work}``."""
        return {
            "reverse_links": self.upgrade_reverse_links(),
            "modified_counts": self.upgrade_modified_counts(),
            "decay": self.upgrade_decay(),
        }

    def _done(self, marker: str) -> bool:
        return self.store.get(marker) is not None

    def _terms(self) -> List[Tuple[str, int]]:
        return [
            (term, int(score))
            for term, score in self.store.zrange(keys.TERMS, 0, -1)
        ]

    # ------------------------------------------------------------------
    # 1. Reverse links
    # ------------------------------------------------------------------

    def upgrade_reverse_links(self) -> bool:
        if self._done(keys.REVERSE_LINKS_MARKER):
            return False

        log.debug("Upgrading data to include reverse links")
        prefix = keys.links("")
        added = 0
        with self.store.batch():
            for key in self.store.keys(keys.links("*")):
                source = key[len(prefix):]
                for target in self.store.smembers(key):
                    added += self.store.sadd(keys.linked_to(target), source)
            self.store.set(keys.REVERSE_LINKS_MARKER, "1")

        log.info(
            "Reverse link upgrade complete (%d entries added)",
            added,
            extra={"step": "reverse_links", "count": added},
        )
        return True

    # ------------------------------------------------------------------
    # 2. Modifier counts
    # ------------------------------------------------------------------

    def upgrade_modified_counts(self) -> bool:
        if self._done(keys.MODIFIED_COUNTS_MARKER):
            return False

        log.debug("Upgrading data to include modifier counts")
        distribute = self.config.get_modifier_distributor()
        converted = 0
        with self.store.batch():
            for term, score in self._terms():
                key = keys.modified(term)
                user_ids = sorted(self.store.smembers(key))
                if not user_ids:
                    continue
                weights = list(distribute(score, list(user_ids)))
                # drop the legacy set; counts already written live are kept
                existing = {
                    uid: count for uid, count in self.store.zrange(key, 0, -1)
                }
                self.store.delete(key)
                for uid, count in existing.items():
                    self.store.zadd(key, count, uid)
                for uid, weight in weights:
                    if str(uid) not in existing:
                        self.store.zadd(key, weight, str(uid))
                converted += 1
            self.store.set(keys.MODIFIED_COUNTS_MARKER, "1")

        log.info(
            "Modifier count upgrade complete (%d terms converted)",
            converted,
            extra={"step": "modified_counts", "count": converted},
        )
        return True

    # ------------------------------------------------------------------
    # 3. Decay backfill
    # ------------------------------------------------------------------

    def upgrade_decay(self) -> bool:
        if not self.decay.enabled:
            return False
        if self._done(keys.DECAY_MARKER):
            return False

        log.debug("Upgrading data to include karma decay")
        distribute = self.config.get_decay_distributor()
        now = self.decay.now()

        existing: Counter = Counter(
            (action.term, action.user_id) for action in self.decay.actions()
        )

        created = 0
        with self.store.batch():
            for term, score in self._terms():
                delta = 1 if score >= 0 else -1
                # one action per unit of score; modifiers claim units first
                budget = abs(score)
                for uid, count in self._modifiers(term):
                    share = min(count, budget)
                    budget -= share
                    missing = share - existing[(term, uid)]
                    created += self._backfill(term, uid, delta, missing, now, distribute)

                anonymous = budget - existing[(term, None)]
                created += self._backfill(term, None, delta, anonymous, now, distribute)

            self.store.set(keys.DECAY_MARKER, "1")

        log.info(
            "Decay upgrade complete (%d actions created)",
            created,
            extra={"step": "decay", "count": created},
        )
        return True

    def _modifiers(self, term: str) -> List[Tuple[str, int]]:
        """Modifier counts for ``term``, largest first."""
        key = keys.modified(term)
        if self.store.type(key) == "set":
            # not yet converted: each listed user counts once
            return [(uid, 1) for uid in sorted(self.store.smembers(key))]
        return [
            (uid, int(count))
            for uid, count in self.store.zrange(key, 0, -1, desc=True)
            if uid
        ]

    def _backfill(
        self,
        term: str,
        user_id: Optional[str],
        delta: int,
        count: int,
        now: int,
        distribute,
    ) -> int:
        for i in range(max(count, 0)):
            self.decay.record(term, user_id, delta, at=now - int(distribute(i, count)))
        return max(count, 0)
