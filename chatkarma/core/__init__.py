"""chatkarma.core — Configuration, shared value types, and logging setup."""

from chatkarma.core.config import Config
from chatkarma.core.types import (
    ChatMessage,
    Clock,
    CooldownResult,
    LinkResult,
    LinkStatus,
    generate_id,
)

__all__ = [
    "Config",
    "ChatMessage",
    "Clock",
    "CooldownResult",
    "LinkResult",
    "LinkStatus",
    "generate_id",
]
