"""
chatkarma.core.types — Small value types shared across the engine.

Plain dataclasses and enums: results of term operations, the cooldown
gate's verdict, and the incoming chat message.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

# ---------------------------------------------------------------------------
# Type aliases
# ---------------------------------------------------------------------------

#: Returns the current unix time in seconds.
Clock = Callable[[], float]


def generate_id() -> str:
    """12-hex-char unique identifier."""
    return uuid.uuid4().hex[:12]


# ---------------------------------------------------------------------------
# Linking
# ---------------------------------------------------------------------------


class LinkStatus(Enum):
    SUCCESS = "success"
    ALREADY_LINKED = "already_linked"
    BELOW_THRESHOLD = "below_threshold"


@dataclass(frozen=True)
class LinkResult:
    """Outcome of ``Term.link``.  ``threshold`` is set only when rejected."""

    status: LinkStatus
    threshold: Optional[int] = None

    @property
    def linked(self) -> bool:
        return self.status is LinkStatus.SUCCESS


# ---------------------------------------------------------------------------
# Cooldowns
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CooldownResult:
    """Verdict of ``CooldownGate.check_and_set``."""

    allowed: bool
    remaining: int = 0

    @classmethod
    def ok(cls) -> "CooldownResult":
        return cls(allowed=True)

    @classmethod
    def on_cooldown(cls, remaining: int) -> "CooldownResult":
        return cls(allowed=False, remaining=remaining)


# ---------------------------------------------------------------------------
# ChatMessage: what the transport hands the dispatcher
# ---------------------------------------------------------------------------


@dataclass
class ChatMessage:
    """
    One incoming chat message.

    ``addressed`` is True when the message was directed at the bot
    (command routes only match addressed messages).  ``privileged``
    is the transport's verdict on whether the sender may run
    destructive commands.
    """

    body: str
    user_id: Optional[str] = None
    addressed: bool = False
    privileged: bool = False

    @classmethod
    def parse(
        cls,
        text: str,
        bot_name: str,
        user_id: Optional[str] = None,
        privileged: bool = False,
    ) -> "ChatMessage":
        """Build a message, treating a ``bot_name:`` prefix as addressing."""
        stripped = text.lstrip()
        for prefix in (f"{bot_name}:", f"{bot_name},", f"@{bot_name}"):
            if stripped.lower().startswith(prefix.lower()):
                return cls(
                    body=stripped[len(prefix):].lstrip(),
                    user_id=user_id,
                    addressed=True,
                    privileged=privileged,
                )
        return cls(body=text, user_id=user_id, privileged=privileged)
