"""
chatkarma.chat — Command dispatch for chat messages.

Incoming text is tried against an ordered route table; the first
route whose pattern matches handles the message, once per match, and
every handler answers with plain-text replies.  Routes flagged as
commands only match messages addressed to the bot.

    dispatcher = CommandDispatcher(store, config, users, decay, gate)
    dispatcher.dispatch(ChatMessage("foo++ bar++", user_id="1"))
    # -> ["foo: 1", "bar: 1"]
"""

from __future__ import annotations

import logging
import re
import shlex
from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

from chatkarma import keys
from chatkarma.core.types import ChatMessage, LinkStatus
from chatkarma.messages import t
from chatkarma.term import Term

if TYPE_CHECKING:
    from chatkarma.cooldown import CooldownGate
    from chatkarma.core.config import Config
    from chatkarma.decay import DecayEngine
    from chatkarma.store.base import ScoreStore
    from chatkarma.users import UserLookup

log = logging.getLogger(__name__)

DEFAULT_LIST_SIZE = 5
MAX_LIST_SIZE = 25


@dataclass(frozen=True)
class Route:
    """One row of the route table."""

    name: str
    pattern: "re.Pattern[str]"
    handler: str
    command: bool = False
    help_key: Optional[str] = None


class CommandDispatcher:
    """Route chat messages to karma operations.

    Parameters
    ----------
    store, config:
        Shared store and configuration.
    users:
        Display-name lookup for ``karma modified``.
    decay:
        Decay engine, run before every read or modification.
    gate:
        Cooldown gate consulted before every modification.
    """

    def __init__(
        self,
        store: "ScoreStore",
        config: "Config",
        users: Optional["UserLookup"] = None,
        decay: Optional["DecayEngine"] = None,
        gate: Optional["CooldownGate"] = None,
    ) -> None:
        self.store = store
        self.config = config
        self.users = users
        self.decay = decay
        self.gate = gate
        self.routes = self._build_routes()

    # ------------------------------------------------------------------
    # Route table
    # ------------------------------------------------------------------

    def _build_routes(self) -> List[Route]:
        term = self.config.term_regex().pattern
        return [
            Route("list_worst", re.compile(r"^karma\s+worst"), "list_worst", True, "help.list_worst"),
            Route("list_best", re.compile(r"^karma\s+best"), "list_best", True, "help.list_best"),
            Route("modified", re.compile(r"^karma\s+modified\b"), "modified", True, "help.modified"),
            Route("delete", re.compile(r"^karma\s+delete\b"), "delete", True, "help.delete"),
            Route("list_default", re.compile(r"^karma\s*$"), "list_best", True),
            Route("link", re.compile(rf"^({term})\s*\+=\s*({term})"), "link", True, "help.link"),
            Route("unlink", re.compile(rf"^({term})\s*-=\s*({term})"), "unlink", True, "help.unlink"),
            Route("increment", re.compile(rf"({term})\+\+"), "increment", False, "help.increment"),
            Route("decrement", re.compile(rf"({term})--"), "decrement", False, "help.decrement"),
            Route("check", re.compile(rf"({term})~~"), "check", False, "help.check"),
        ]

    def route_for(self, message: ChatMessage) -> Optional[Route]:
        for route in self.routes:
            if route.command and not message.addressed:
                continue
            if route.pattern.search(message.body):
                return route
        return None

    def dispatch(self, message: ChatMessage) -> List[str]:
        """Handle one message; return its replies (empty if nothing matched)."""
        route = self.route_for(message)
        if route is None:
            return []
        matches = list(route.pattern.finditer(message.body))
        log.debug("Routing %r to %s (%d match(es))", message.body, route.name, len(matches))
        return getattr(self, route.handler)(message, matches)

    def help(self) -> List[str]:
        return [t(route.help_key) for route in self.routes if route.help_key]

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def term(self, text: str, normalize: bool = True) -> Term:
        return Term(
            self.store,
            self.config,
            text,
            normalize=normalize,
            users=self.users,
            decay=self.decay,
        )

    def _process_decay(self) -> None:
        if self.decay is not None:
            self.decay.process()

    @property
    def _second_term_group(self) -> int:
        # the term pattern's own groups sit between the two outer groups
        return 2 + self.config.term_regex().groups

    @staticmethod
    def _args(body: str) -> List[str]:
        """Words after the command word, shell-quoting aware."""
        try:
            words = shlex.split(body)
        except ValueError:
            words = body.split()
        return words[1:]

    def _is_privileged(self, message: ChatMessage) -> bool:
        if message.privileged:
            return True
        return message.user_id is not None and str(message.user_id) in self.config.karma_admins

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def increment(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        return self._modify(message, matches, 1)

    def decrement(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        return self._modify(message, matches, -1)

    def _modify(
        self, message: ChatMessage, matches: List[re.Match], delta: int
    ) -> List[str]:
        replies = []
        decayed = False
        for match in matches:
            term = self.term(match.group(1))
            user_id = message.user_id
            if user_id is not None and self.gate is not None:
                verdict = self.gate.check_and_set(str(user_id), term.term)
                if not verdict.allowed:
                    replies.append(
                        t(
                            "cooling_down",
                            term=term,
                            ttl=verdict.remaining,
                            count=verdict.remaining,
                        )
                    )
                    continue
            # rejected modifications leave stored state alone
            if not decayed:
                self._process_decay()
                decayed = True
            term.modify(user_id, delta)
            replies.append(term.check())
        return replies

    def check(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        self._process_decay()
        return [self.term(match.group(1)).check() for match in matches]

    def list_best(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        return self._list(message, desc=True)

    def list_worst(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        return self._list(message, desc=False)

    def _list(self, message: ChatMessage, desc: bool) -> List[str]:
        args = self._args(message.body)
        try:
            n = int(args[1]) if len(args) > 1 else DEFAULT_LIST_SIZE
        except ValueError:
            n = DEFAULT_LIST_SIZE
        n = max(1, min(n, MAX_LIST_SIZE))

        self._process_decay()

        rows = self.store.zrange(keys.TERMS, 0, n - 1, desc=desc)
        if not rows:
            return [t("no_terms")]
        return [
            "\n".join(
                f"{i}. {term} ({int(score)})" for i, (term, score) in enumerate(rows, 1)
            )
        ]

    def link(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        self._process_decay()
        second = self._second_term_group
        replies = []
        for match in matches:
            target = self.term(match.group(1))
            source = self.term(match.group(second))
            result = target.link(source)
            if result.status is LinkStatus.BELOW_THRESHOLD:
                replies.append(t("threshold_not_satisfied", threshold=result.threshold))
            elif result.status is LinkStatus.SUCCESS:
                replies.append(t("link_success", source=source, target=target))
            else:
                replies.append(t("already_linked", source=source, target=target))
        return replies

    def unlink(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        second = self._second_term_group
        replies = []
        for match in matches:
            target = self.term(match.group(1))
            source = self.term(match.group(second))
            if target.unlink(source):
                replies.append(t("unlink_success", source=source, target=target))
            else:
                replies.append(t("already_unlinked", source=source, target=target))
        return replies

    def modified(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        text = " ".join(self._args(message.body)[1:])
        if not text.strip():
            return [t("modified_format", robot=self.config.bot_name)]

        self._process_decay()

        term = self.term(text)
        users = term.modified()
        if not users:
            return [t("never_modified", term=term)]
        return [", ".join(f"{name} ({count})" for name, count in users)]

    def delete(self, message: ChatMessage, matches: List[re.Match]) -> List[str]:
        if not self._is_privileged(message):
            log.info(
                "Refused delete from unprivileged user %s",
                message.user_id,
                extra={"user_id": message.user_id},
            )
            return [t("not_authorized")]

        # exact match, no normalization: everything after "karma delete "
        prefix = re.match(r"^karma\s+delete ?", message.body)
        term = self.term(message.body[prefix.end():], normalize=False)
        if term.delete():
            return [t("delete_success", term=term)]
        return [t("does_not_exist", term=term)]
