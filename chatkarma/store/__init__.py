"""Ordered-score storage: the interface and its SQLite backend."""

from chatkarma.store.base import NEG_INF, POS_INF, ScoredMember, ScoreStore
from chatkarma.store.sqlite import SQLiteScoreStore

__all__ = ["ScoreStore", "SQLiteScoreStore", "ScoredMember", "NEG_INF", "POS_INF"]
