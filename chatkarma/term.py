"""
chatkarma.term — One tracked term and everything that hangs off it.

A Term is a transient view over the store: nothing is cached between
calls, so a linked term's new score shows up in the very next
``total_score()``.

Store layout for a term ``foo``:

  - ``terms``            sorted set, ``foo`` -> own score
  - ``modified:foo``     sorted set, user id -> modification count
  - ``links:foo``        set of terms whose scores add into foo's total
  - ``linked_to:foo``    set of terms that link to foo (reverse index)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from chatkarma import keys
from chatkarma.core.types import LinkResult, LinkStatus
from chatkarma.messages import t

if TYPE_CHECKING:
    from chatkarma.core.config import Config
    from chatkarma.decay import DecayEngine
    from chatkarma.store.base import ScoreStore
    from chatkarma.users import UserLookup

log = logging.getLogger(__name__)


class Term:
    """
    A karma term.

    Parameters
    ----------
    store, config:
        Shared store and configuration.
    term:
        Raw term text.  Normalized with the configured normalizer unless
        ``normalize=False`` (``karma delete`` matches terms exactly).
    users:
        Resolves user ids to display names for ``modified()``.
    decay:
        Records an action per modification when decay is enabled.
    """

    def __init__(
        self,
        store: "ScoreStore",
        config: "Config",
        term: str,
        normalize: bool = True,
        users: Optional["UserLookup"] = None,
        decay: Optional["DecayEngine"] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.users = users
        self.decay = decay
        self.term = config.get_term_normalizer()(term) if normalize else str(term)

    def _other(self, term: str) -> "Term":
        return Term(
            self.store,
            self.config,
            term,
            normalize=False,
            users=self.users,
            decay=self.decay,
        )

    # -- identity -----------------------------------------------------------

    def __str__(self) -> str:
        return self.term

    def __repr__(self) -> str:
        return f"Term({self.term!r})"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Term):
            return self.term == other.term
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.term)

    # -- scores -------------------------------------------------------------

    def own_score(self) -> int:
        return int(self.store.zscore(keys.TERMS, self.term) or 0)

    def links(self) -> List[str]:
        return sorted(self.store.smembers(keys.links(self.term)))

    def links_with_scores(self) -> List[Tuple[str, int]]:
        return [(link, self._other(link).own_score()) for link in self.links()]

    def total_score(self) -> int:
        return self.own_score() + sum(score for _, score in self.links_with_scores())

    def check(self) -> str:
        """``foo: 3`` or ``foo: 3 (2), linked to: bar: 1``."""
        linked = self.links_with_scores()
        own = self.own_score()
        text = f"{self}: {own + sum(score for _, score in linked)}"
        if linked:
            link_text = ", ".join(f"{term}: {score}" for term, score in linked)
            text += f" ({own}), {t('linked_to')}: {link_text}"
        return text

    # -- modification -------------------------------------------------------

    def modify(self, user_id: Optional[str], delta: int) -> int:
        """Apply ``delta`` on behalf of ``user_id``; return the new own score.

        Cooldowns are the caller's concern.  Anonymous changes
        (``user_id=None``) are scored but not attributed.
        """
        score = self.store.zincrby(keys.TERMS, delta, self.term)
        if user_id is not None:
            self.store.zincrby(keys.modified(self.term), 1, str(user_id))
        if self.decay is not None:
            self.decay.record(self.term, user_id, delta)
        return int(score)

    def increase(self, user_id: Optional[str]) -> int:
        return self.modify(user_id, 1)

    def decrease(self, user_id: Optional[str]) -> int:
        return self.modify(user_id, -1)

    def modifier_counts(self) -> List[Tuple[str, int]]:
        """``(user id, count)`` pairs, highest count first."""
        return [
            (user_id, int(count))
            for user_id, count in self.store.zrange(
                keys.modified(self.term), 0, -1, desc=True
            )
        ]

    def modified(self) -> List[Tuple[str, int]]:
        """``(display name, count)`` pairs, highest count first."""
        resolve = self.users.display_name if self.users is not None else str
        return [(resolve(uid), count) for uid, count in self.modifier_counts()]

    # -- links --------------------------------------------------------------

    def link(self, other: "Term") -> LinkResult:
        """Add ``other``'s score into this term's total."""
        threshold = self.config.link_karma_threshold
        if threshold is not None and other.own_score() < threshold:
            return LinkResult(LinkStatus.BELOW_THRESHOLD, threshold=threshold)

        added = self.store.sadd(keys.links(self.term), other.term)
        self.store.sadd(keys.linked_to(other.term), self.term)
        if not added:
            return LinkResult(LinkStatus.ALREADY_LINKED)
        return LinkResult(LinkStatus.SUCCESS)

    def unlink(self, other: "Term") -> bool:
        removed = self.store.srem(keys.links(self.term), other.term)
        self.store.srem(keys.linked_to(other.term), self.term)
        return removed

    # -- deletion -----------------------------------------------------------

    def exists(self) -> bool:
        return self.own_score() != 0 or self.store.exists(keys.modified(self.term))

    def delete(self) -> bool:
        """Remove the term everywhere.  False if there was nothing to delete."""
        if not self.exists():
            return False

        with self.store.batch():
            self.store.zrem(keys.TERMS, self.term)
            self.store.delete(keys.modified(self.term))

            for target in self.store.smembers(keys.links(self.term)):
                self.store.srem(keys.linked_to(target), self.term)
            self.store.delete(keys.links(self.term))

            for source in self.store.smembers(keys.linked_to(self.term)):
                self.store.srem(keys.links(source), self.term)
            self.store.delete(keys.linked_to(self.term))

            if self.decay is not None:
                self.decay.forget_term(self.term)

        log.info("Deleted term %r", self.term, extra={"term": self.term})
        return True
