"""
chatkarma.cooldown — Per-user, per-term rate limiting.

A cooldown is nothing more than an expiring key
``cooldown:<user>:<term>``; while it exists the user may not modify
the term again.  Check-then-set is not atomic: two requests from the
same user in the same instant can both get through.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from chatkarma import keys
from chatkarma.core.types import CooldownResult

if TYPE_CHECKING:
    from chatkarma.core.config import Config
    from chatkarma.store.base import ScoreStore

log = logging.getLogger(__name__)


class CooldownGate:
    def __init__(self, store: "ScoreStore", config: "Config") -> None:
        self.store = store
        self.config = config

    def remaining(self, user_id: str, term: str) -> Optional[int]:
        """Seconds left on the cooldown, or None when there is none."""
        ttl = self.store.ttl(keys.cooldown(user_id, term))
        return ttl if ttl >= 0 else None

    def check_and_set(self, user_id: str, term: str) -> CooldownResult:
        """Reject if cooling down, otherwise start a new cooldown.

        When no cooldown is configured every modification is allowed
        and nothing is written.
        """
        remaining = self.remaining(user_id, term)
        if remaining is not None:
            log.debug(
                "%s is cooling down on %r for %ds",
                user_id,
                term,
                remaining,
                extra={"user_id": user_id, "term": term},
            )
            return CooldownResult.on_cooldown(remaining)

        if self.config.cooldown_enabled:
            self.store.setex(keys.cooldown(user_id, term), int(self.config.cooldown), "1")
        return CooldownResult.ok()
