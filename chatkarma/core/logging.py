"""
chatkarma.core.logging — JSON log lines for the karma engine.

With ``Config.structured_logging`` on, every ``chatkarma.*`` logger
writes one JSON object per record.  Karma context passed through
``extra=`` (the term, the acting user, how many actions a decay pass
reversed, ...) is lifted into top-level fields, so log pipelines can
filter on ``term`` without parsing messages::

    log.info("Deleted term %r", term, extra={"term": term})
    # {"level": "INFO", "logger": "chatkarma.term", "term": "foo", ...}

Without structured logging only the level is applied; handlers and
formatting stay whatever the host application configured.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from chatkarma.core.config import Config

#: ``extra=`` keys copied into each JSON entry when present.
CONTEXT_FIELDS = ("term", "user_id", "cutoff", "count", "step")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, plus any karma context fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": self.formatTime(record, datefmt="%Y-%m-%dT%H:%M:%S")
            + f".{int(record.msecs):03d}Z",
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "func": record.funcName,
        }
        for name in CONTEXT_FIELDS:
            if hasattr(record, name):
                entry[name] = getattr(record, name)

        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str, ensure_ascii=False)


def configure_logging(
    structured: bool = False,
    level: str = "INFO",
    logger_name: str = "chatkarma",
) -> logging.Logger:
    """Set the level of the chatkarma loggers and, optionally, JSON output.

    Returns the configured package logger.  Calling it again replaces
    the JSON handler rather than stacking a second one.
    """
    logger = logging.getLogger(logger_name)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    if structured:
        logger.handlers = [
            h for h in logger.handlers
            if not isinstance(h.formatter, StructuredFormatter)
        ]
        handler = logging.StreamHandler()
        handler.setFormatter(StructuredFormatter())
        logger.addHandler(handler)
        # JSON lines only; the host's root handler would duplicate them
        logger.propagate = False

    return logger


def configure_from_config(
    config: "Config", logger_name: Optional[str] = None
) -> logging.Logger:
    """Apply ``config.structured_logging`` and ``config.log_level``."""
    return configure_logging(
        structured=config.structured_logging,
        level=config.log_level,
        logger_name=logger_name or "chatkarma",
    )
