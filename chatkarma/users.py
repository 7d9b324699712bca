"""
User directory — maps opaque chat user ids to display names.

The transport knows users by id; karma attribution is shown by name.
Unknown ids display as themselves.
"""

import yaml
from pathlib import Path
from typing import Dict, Optional, Protocol


class UserLookup(Protocol):
    def display_name(self, user_id: str) -> str: ...


class UserDirectory:
    """
    User id -> display name resolver backed by users.yaml.

    File format:
        users:
          "1":
            name: Test User
          U024BE7LH:
            name: Alice
    """

    def __init__(self, users_path: Optional[Path] = None):
        self.path = Path(users_path) if users_path is not None else None
        self._data: Dict = {}
        self._load()

    # ── Public API ────────────────────────────────────────────

    def display_name(self, user_id: str) -> str:
        """Return the user's name, or the id itself if unknown."""
        if user_id is None:
            return ""
        record = self._data.get("users", {}).get(str(user_id))
        if not record:
            return str(user_id)
        return str(record.get("name") or user_id)

    def add_user(self, user_id: str, name: str):
        """Register (or rename) a user and persist the file."""
        users = self._data.setdefault("users", {})
        record = dict(users.get(str(user_id), {}))
        record["name"] = name
        users[str(user_id)] = record
        self._save()

    # ── Persistence ───────────────────────────────────────────

    def _load(self):
        if self.path is not None and self.path.exists():
            with open(self.path, "r", encoding="utf-8") as fh:
                self._data = yaml.safe_load(fh) or {}
        else:
            self._data = {"users": {}}
        # YAML may parse numeric ids as ints
        self._data["users"] = {
            str(uid): record or {}
            for uid, record in (self._data.get("users") or {}).items()
        }

    def _save(self):
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as fh:
            yaml.dump(
                self._data, fh, default_flow_style=False, allow_unicode=True
            )
