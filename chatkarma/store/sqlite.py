"""
SQLite-backed score store.

Three tables stand in for the three key types the engine needs:
``zsets`` (member + score), ``sets`` (member only) and ``strings``
(value + optional expiry).  Expired strings are purged lazily on
access, against an injectable clock.
"""

import fnmatch
import logging
import math
import sqlite3
import time
from pathlib import Path
from typing import Callable, List, Optional, Set, Tuple, Union

from chatkarma.store.base import NEG_INF, POS_INF, ScoredMember

log = logging.getLogger(__name__)

MEMORY = ":memory:"


class SQLiteScoreStore:
    """SQLite implementation of the ``ScoreStore`` interface."""

    def __init__(
        self,
        db_path: Union[str, Path] = MEMORY,
        clock: Callable[[], float] = time.time,
    ):
        self.clock = clock
        if str(db_path) == MEMORY:
            self.db_path = None
            self.conn = sqlite3.connect(MEMORY)
        else:
            self.db_path = Path(db_path)
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self.conn = sqlite3.connect(str(self.db_path))
            self.conn.execute("PRAGMA journal_mode=WAL")
        self.conn.row_factory = sqlite3.Row
        self._create_tables()

        # When _batch_depth > 0, individual commit() calls are
        # suppressed and a single commit runs when the outermost
        # batch context exits.
        self._batch_depth: int = 0

    # ── Batch writes ────────────────────────────────────────────

    class _BatchContext:
        """Context manager that defers commits until exit."""

        def __init__(self, store: "SQLiteScoreStore") -> None:
            self._store = store

        def __enter__(self) -> "SQLiteScoreStore":
            self._store._batch_depth += 1
            return self._store

        def __exit__(self, exc_type, exc_val, exc_tb) -> None:
            self._store._batch_depth -= 1
            if self._store._batch_depth <= 0:
                self._store._batch_depth = 0
                if exc_type is None:
                    self._store.conn.commit()
                else:
                    self._store.conn.rollback()

    def batch(self) -> "_BatchContext":
        """Return a context manager that batches writes into one commit.

        Usage::

            with store.batch():
                store.zincrby("terms", -1, "foo")
                store.zrem("actions", payload)
            # single commit happens here
        """
        return self._BatchContext(self)

    def _commit(self) -> None:
        """Commit unless inside a batch context."""
        if self._batch_depth <= 0:
            self.conn.commit()

    # ── Schema ────────────────────────────────────────────────

    def _create_tables(self):
        c = self.conn.cursor()
        c.execute("""
            CREATE TABLE IF NOT EXISTS zsets (
                key     TEXT NOT NULL,
                member  TEXT NOT NULL,
                score   REAL NOT NULL DEFAULT 0,
                PRIMARY KEY (key, member)
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS sets (
                key     TEXT NOT NULL,
                member  TEXT NOT NULL,
                PRIMARY KEY (key, member)
            )
        """)
        c.execute("""
            CREATE TABLE IF NOT EXISTS strings (
                key         TEXT PRIMARY KEY,
                value       TEXT,
                expires_at  REAL
            )
        """)
        c.execute("CREATE INDEX IF NOT EXISTS idx_zsets_score ON zsets(key, score)")
        self.conn.commit()

    # ── Helpers ───────────────────────────────────────────────

    @staticmethod
    def _score_clause(min_score: float, max_score: float) -> Tuple[str, list]:
        clause, params = "", []
        if min_score != NEG_INF:
            clause += " AND score >= ?"
            params.append(min_score)
        if max_score != POS_INF:
            clause += " AND score <= ?"
            params.append(max_score)
        return clause, params

    @staticmethod
    def _rank_window(start: int, stop: int, size: int) -> Optional[Tuple[int, int]]:
        """Resolve inclusive, possibly negative ranks to ``(offset, limit)``."""
        if start < 0:
            start = max(size + start, 0)
        if stop < 0:
            stop = size + stop
        stop = min(stop, size - 1)
        if start > stop or size == 0:
            return None
        return start, stop - start + 1

    def _purge_expired(self, key: Optional[str] = None) -> None:
        now = self.clock()
        if key is None:
            cur = self.conn.execute(
                "DELETE FROM strings WHERE expires_at IS NOT NULL AND expires_at <= ?",
                (now,),
            )
        else:
            cur = self.conn.execute(
                "DELETE FROM strings WHERE key = ? "
                "AND expires_at IS NOT NULL AND expires_at <= ?",
                (key, now),
            )
        if cur.rowcount:
            self._commit()

    # ── Sorted sets ───────────────────────────────────────────

    def zincrby(self, key: str, delta: float, member: str) -> float:
        self.conn.execute(
            "INSERT INTO zsets (key, member, score) VALUES (?, ?, ?) "
            "ON CONFLICT(key, member) DO UPDATE SET score = score + excluded.score",
            (key, member, delta),
        )
        self._commit()
        return self.zscore(key, member)

    def zscore(self, key: str, member: str) -> Optional[float]:
        row = self.conn.execute(
            "SELECT score FROM zsets WHERE key = ? AND member = ?", (key, member)
        ).fetchone()
        return None if row is None else row["score"]

    def zadd(self, key: str, score: float, member: str) -> bool:
        is_new = self.zscore(key, member) is None
        self.conn.execute(
            "INSERT INTO zsets (key, member, score) VALUES (?, ?, ?) "
            "ON CONFLICT(key, member) DO UPDATE SET score = excluded.score",
            (key, member, score),
        )
        self._commit()
        return is_new

    def zrem(self, key: str, *members: str) -> int:
        removed = 0
        for member in members:
            cur = self.conn.execute(
                "DELETE FROM zsets WHERE key = ? AND member = ?", (key, member)
            )
            removed += cur.rowcount
        self._commit()
        return removed

    def zcard(self, key: str) -> int:
        row = self.conn.execute(
            "SELECT COUNT(*) FROM zsets WHERE key = ?", (key,)
        ).fetchone()
        return row[0]

    def zrange(
        self, key: str, start: int, stop: int, desc: bool = False
    ) -> List[ScoredMember]:
        window = self._rank_window(start, stop, self.zcard(key))
        if window is None:
            return []
        order = "score DESC, member DESC" if desc else "score ASC, member ASC"
        rows = self.conn.execute(
            f"SELECT member, score FROM zsets WHERE key = ? "
            f"ORDER BY {order} LIMIT ? OFFSET ?",
            (key, window[1], window[0]),
        ).fetchall()
        return [(r["member"], r["score"]) for r in rows]

    def zrangebyscore(
        self, key: str, min_score: float = NEG_INF, max_score: float = POS_INF
    ) -> List[ScoredMember]:
        clause, params = self._score_clause(min_score, max_score)
        rows = self.conn.execute(
            f"SELECT member, score FROM zsets WHERE key = ?{clause} "
            f"ORDER BY score ASC, member ASC",
            [key, *params],
        ).fetchall()
        return [(r["member"], r["score"]) for r in rows]

    def zremrangebyscore(
        self, key: str, min_score: float = NEG_INF, max_score: float = POS_INF
    ) -> int:
        clause, params = self._score_clause(min_score, max_score)
        cur = self.conn.execute(
            f"DELETE FROM zsets WHERE key = ?{clause}", [key, *params]
        )
        self._commit()
        return cur.rowcount

    def zremrangebyrank(self, key: str, start: int, stop: int) -> int:
        members = [m for m, _ in self.zrange(key, start, stop)]
        return self.zrem(key, *members) if members else 0

    # ── Sets ──────────────────────────────────────────────────

    def sadd(self, key: str, member: str) -> bool:
        cur = self.conn.execute(
            "INSERT OR IGNORE INTO sets (key, member) VALUES (?, ?)", (key, member)
        )
        self._commit()
        return cur.rowcount > 0

    def srem(self, key: str, member: str) -> bool:
        cur = self.conn.execute(
            "DELETE FROM sets WHERE key = ? AND member = ?", (key, member)
        )
        self._commit()
        return cur.rowcount > 0

    def smembers(self, key: str) -> Set[str]:
        rows = self.conn.execute(
            "SELECT member FROM sets WHERE key = ?", (key,)
        ).fetchall()
        return {r["member"] for r in rows}

    def sismember(self, key: str, member: str) -> bool:
        row = self.conn.execute(
            "SELECT 1 FROM sets WHERE key = ? AND member = ?", (key, member)
        ).fetchone()
        return row is not None

    # ── Strings & keys ────────────────────────────────────────

    def get(self, key: str) -> Optional[str]:
        self._purge_expired(key)
        row = self.conn.execute(
            "SELECT value FROM strings WHERE key = ?", (key,)
        ).fetchone()
        return None if row is None else row["value"]

    def set(self, key: str, value: str) -> None:
        self.conn.execute(
            "INSERT OR REPLACE INTO strings (key, value, expires_at) VALUES (?, ?, NULL)",
            (key, str(value)),
        )
        self._commit()

    def setex(self, key: str, seconds: int, value: str) -> None:
        if int(seconds) <= 0:
            raise ValueError(f"invalid expire time in setex: {seconds!r}")
        self.conn.execute(
            "INSERT OR REPLACE INTO strings (key, value, expires_at) VALUES (?, ?, ?)",
            (key, str(value), self.clock() + int(seconds)),
        )
        self._commit()

    def ttl(self, key: str) -> int:
        self._purge_expired(key)
        row = self.conn.execute(
            "SELECT expires_at FROM strings WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return -2 if self.type(key) == "none" else -1
        if row["expires_at"] is None:
            return -1
        return max(0, math.ceil(row["expires_at"] - self.clock()))

    def exists(self, key: str) -> bool:
        return self.type(key) != "none"

    def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            found = False
            for table in ("strings", "zsets", "sets"):
                cur = self.conn.execute(f"DELETE FROM {table} WHERE key = ?", (key,))
                found = found or cur.rowcount > 0
            removed += int(found)
        self._commit()
        return removed

    def type(self, key: str) -> str:
        self._purge_expired(key)
        for table, name in (("strings", "string"), ("zsets", "zset"), ("sets", "set")):
            row = self.conn.execute(
                f"SELECT 1 FROM {table} WHERE key = ? LIMIT 1", (key,)
            ).fetchone()
            if row is not None:
                return name
        return "none"

    def keys(self, pattern: str = "*") -> List[str]:
        self._purge_expired()
        rows = self.conn.execute(
            "SELECT key FROM strings UNION SELECT key FROM zsets "
            "UNION SELECT key FROM sets"
        ).fetchall()
        return sorted(r["key"] for r in rows if fnmatch.fnmatchcase(r["key"], pattern))

    # ── Lifecycle ─────────────────────────────────────────────

    def close(self):
        self.conn.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
