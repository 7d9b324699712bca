"""
chatkarma.core.config — Configuration for the karma engine.

Supports loading from YAML and programmatic construction.  Strategy
callables (term normalizer, modifier upgrade, decay distributor) can
only be set programmatically; the ``get_*`` accessors return the
configured callable or the documented default.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

#: ``(term) -> normalized term``
TermNormalizer = Callable[[str], str]

#: ``(score, sorted user ids) -> iterable of (user id, weight)``
ModifierDistributor = Callable[[int, List[str]], Iterable[Tuple[str, int]]]

#: ``(index, count) -> age offset in seconds``
DecayDistributor = Callable[[int, int], int]

DEFAULT_TERM_PATTERN = r"[^\s]{2,}"


def default_term_normalizer(term: str) -> str:
    """Lower-case and trim."""
    return str(term).lower().strip()


def even_modifier_distributor(
    score: int, user_ids: List[str]
) -> List[Tuple[str, int]]:
    """Split ``|score|`` evenly across ``user_ids``.

    The remainder goes to the first users in order.  Every user gets at
    least one point: each of them is known to have modified the term.
    """
    if not user_ids:
        return []
    base, extra = divmod(abs(int(score)), len(user_ids))
    return [
        (uid, max(1, base + (1 if i < extra else 0)))
        for i, uid in enumerate(user_ids)
    ]


@dataclass
class Config:
    """
    Central configuration object.

    Construct directly, via ``Config.from_yaml(path)``, or via
    ``Config.from_data_dir(path)`` for quick bootstrap.  A single
    instance is passed to every component.
    """

    # -- storage ------------------------------------------------------------
    data_dir: Path = field(default_factory=lambda: Path("./karma_data"))

    # -- chat surface -------------------------------------------------------
    bot_name: str = "karmabot"
    term_pattern: str = DEFAULT_TERM_PATTERN
    term_normalizer: Optional[TermNormalizer] = field(default=None, repr=False)
    karma_admins: List[str] = field(default_factory=list)

    # -- scoring ------------------------------------------------------------
    cooldown: Optional[int] = 300  # seconds; None or 0 disables
    link_karma_threshold: Optional[int] = None

    # -- decay --------------------------------------------------------------
    decay: bool = False
    decay_interval: int = 30 * 24 * 60 * 60  # 30 days
    decay_distributor: Optional[DecayDistributor] = field(default=None, repr=False)

    # -- migrations ---------------------------------------------------------
    upgrade_modified: Optional[ModifierDistributor] = field(default=None, repr=False)

    # -- logging ------------------------------------------------------------
    structured_logging: bool = False
    log_level: str = "INFO"

    # -----------------------------------------------------------------------
    # Derived paths (all relative to data_dir)
    # -----------------------------------------------------------------------

    @property
    def db_path(self) -> Path:
        return self.data_dir / "karma.db"

    @property
    def users_path(self) -> Path:
        return self.data_dir / "users.yaml"

    # -----------------------------------------------------------------------
    # Construction helpers
    # -----------------------------------------------------------------------

    def __post_init__(self) -> None:
        self.data_dir = Path(self.data_dir).resolve()
        self.karma_admins = [str(a) for a in self.karma_admins]

    @classmethod
    def from_yaml(cls, path: str | Path) -> "Config":
        """Load configuration from a YAML file.

        Any key in the YAML that matches a Config field is applied.
        Unknown keys are silently ignored so the file can carry
        bot-level settings alongside karma config.
        """
        import yaml

        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path, "r", encoding="utf-8") as fh:
            raw: Dict[str, Any] = yaml.safe_load(fh) or {}

        # pull the karma section if nested, else use top-level
        data = raw.get("karma", raw) or {}

        if "data_dir" in data:
            data["data_dir"] = Path(data["data_dir"])

        # callables cannot come from YAML
        known = {
            f.name
            for f in cls.__dataclass_fields__.values()
            if f.name not in _CALLABLE_FIELDS
        }
        filtered = {k: v for k, v in data.items() if k in known}

        return cls(**filtered)

    @classmethod
    def from_data_dir(cls, data_dir: str | Path, **overrides: Any) -> "Config":
        """Quick constructor — just point at a data directory."""
        return cls(data_dir=Path(data_dir), **overrides)

    def ensure_directories(self) -> None:
        """Create the data directory if it doesn't exist."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

    # -----------------------------------------------------------------------
    # Strategies
    # -----------------------------------------------------------------------

    @property
    def cooldown_enabled(self) -> bool:
        return bool(self.cooldown)

    def term_regex(self) -> "re.Pattern[str]":
        """Compile the configured term pattern (raises ``re.error`` if invalid)."""
        return re.compile(self.term_pattern)

    def get_term_normalizer(self) -> TermNormalizer:
        return self.term_normalizer or default_term_normalizer

    def get_modifier_distributor(self) -> ModifierDistributor:
        return self.upgrade_modified or even_modifier_distributor

    def get_decay_distributor(self) -> DecayDistributor:
        """Return the configured distributor, or spread evenly across the interval."""
        if self.decay_distributor is not None:
            return self.decay_distributor

        interval = int(self.decay_interval)

        def spread(index: int, count: int) -> int:
            return interval * index // max(count, 1)

        return spread

    # -----------------------------------------------------------------------
    # Serialisation
    # -----------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Serialise to a plain dict (YAML/JSON-safe, no callables)."""
        return {
            "data_dir": str(self.data_dir),
            "bot_name": self.bot_name,
            "term_pattern": self.term_pattern,
            "karma_admins": list(self.karma_admins),
            "cooldown": self.cooldown,
            "link_karma_threshold": self.link_karma_threshold,
            "decay": self.decay,
            "decay_interval": self.decay_interval,
            "structured_logging": self.structured_logging,
            "log_level": self.log_level,
        }


_CALLABLE_FIELDS = frozenset(
    {"term_normalizer", "decay_distributor", "upgrade_modified"}
)
