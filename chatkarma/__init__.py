"""
chatkarma -- Karma tracking for chat bots.

    from chatkarma import KarmaSystem

    karma = KarmaSystem(data_dir="./data")
    karma.handle("foo++", user_id="1")   # -> ["foo: 1"]
"""

from chatkarma.action import Action
from chatkarma.core.config import Config
from chatkarma.core.types import ChatMessage, CooldownResult, LinkResult, LinkStatus
from chatkarma.system import KarmaSystem
from chatkarma.term import Term

__version__ = "0.1.0"

__all__ = [
    "KarmaSystem",
    "Config",
    "Term",
    "Action",
    "ChatMessage",
    "CooldownResult",
    "LinkResult",
    "LinkStatus",
]
