"""
chatkarma.system -- Top-level KarmaSystem: the public API.

    from chatkarma import KarmaSystem

    karma = KarmaSystem(data_dir="./data", cooldown=None)
    karma.handle("foo++", user_id="1")          # -> ["foo: 1"]
    karma.handle("karma best", addressed=True)  # -> ["1. foo (1)"]

Everything is wired up here: store, users, decay, cooldowns,
migrations and the dispatcher share one Config.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from chatkarma.chat import CommandDispatcher
from chatkarma.cooldown import CooldownGate
from chatkarma.core.config import Config
from chatkarma.core.types import ChatMessage, Clock
from chatkarma.decay import DecayEngine
from chatkarma.migrate import MigrationRunner
from chatkarma.store.base import ScoreStore
from chatkarma.store.sqlite import SQLiteScoreStore
from chatkarma.term import Term
from chatkarma.users import UserDirectory, UserLookup

log = logging.getLogger("chatkarma.system")


class KarmaSystem:
    """Wire every component together and expose message handling.

    Parameters
    ----------
    config:
        Full ``Config`` object.  If not given, ``data_dir`` and
        ``**kwargs`` are forwarded to ``Config``.
    data_dir:
        Shortcut -- if you just want to point at a directory and go.
    store:
        Use this store instead of opening ``config.db_path``.
    users:
        Use this user lookup instead of ``config.users_path``.
    clock:
        Source of unix time for decay and cooldown expiry.
    upgrade:
        Run pending data migrations on startup (default True).
    **kwargs:
        Extra keyword args forwarded to ``Config()``.
    """

    def __init__(
        self,
        config: Optional[Config] = None,
        data_dir: Optional[str | Path] = None,
        store: Optional[ScoreStore] = None,
        users: Optional[UserLookup] = None,
        clock: Clock = time.time,
        upgrade: bool = True,
        **kwargs: Any,
    ) -> None:
        # -- Resolve config ------------------------------------------------
        if config is not None:
            self.config = config
        elif data_dir is not None:
            self.config = Config.from_data_dir(data_dir, **kwargs)
        else:
            self.config = Config(**kwargs)

        if self.config.structured_logging:
            from chatkarma.core.logging import configure_from_config

            configure_from_config(self.config)

        # -- Collaborators -------------------------------------------------
        if store is None:
            self.config.ensure_directories()
            store = SQLiteScoreStore(self.config.db_path, clock=clock)
        self.store = store
        self.users = users if users is not None else UserDirectory(self.config.users_path)

        # -- Engine --------------------------------------------------------
        self.decay = DecayEngine(self.store, self.config, clock=clock)
        self.cooldowns = CooldownGate(self.store, self.config)
        self.migrations = MigrationRunner(self.store, self.config, self.decay)
        self.dispatcher = CommandDispatcher(
            self.store,
            self.config,
            users=self.users,
            decay=self.decay,
            gate=self.cooldowns,
        )

        if upgrade:
            self.upgrade_data()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def upgrade_data(self) -> Dict[str, bool]:
        """Run the one-time data migrations (idempotent)."""
        results = self.migrations.run()
        ran = [name for name, did in results.items() if did]
        if ran:
            log.info("Applied data upgrades: %s", ", ".join(ran))
        return results

    def handle(
        self,
        text: str,
        user_id: Optional[str] = None,
        addressed: bool = False,
        privileged: bool = False,
    ) -> List[str]:
        """Dispatch raw chat text and return the replies.

        A leading ``<bot_name>:`` also marks the message as addressed.
        """
        message = ChatMessage.parse(
            text, self.config.bot_name, user_id=user_id, privileged=privileged
        )
        if addressed:
            message.addressed = True
        return self.dispatcher.dispatch(message)

    def dispatch(self, message: ChatMessage) -> List[str]:
        return self.dispatcher.dispatch(message)

    def term(self, text: str, normalize: bool = True) -> Term:
        return self.dispatcher.term(text, normalize=normalize)

    def process_decay(self) -> int:
        """Run a decay pass now; returns the number of reversed actions."""
        return len(self.decay.process())

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the store connection."""
        self.store.close()

    def __enter__(self) -> "KarmaSystem":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
