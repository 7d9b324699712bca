"""Store key layout.  These names are the persisted schema."""

TERMS = "terms"
ACTIONS = "actions"

REVERSE_LINKS_MARKER = "support:reverse_links"
MODIFIED_COUNTS_MARKER = "support:modified_counts"
DECAY_MARKER = "support:decay"


def modified(term: str) -> str:
    return f"modified:{term}"


def links(term: str) -> str:
    return f"links:{term}"


def linked_to(term: str) -> str:
    return f"linked_to:{term}"


def cooldown(user_id: str, term: str) -> str:
    return f"cooldown:{user_id}:{term}"
