"""
chatkarma.messages — Reply templates.

Templates live in ``locales/<lang>.yaml`` next to this module and use
``str.format`` placeholders.  A template given as a mapping with
``one``/``other`` keys is pluralised on the ``count`` argument.

    t("delete_success", term="foo")          -> "foo has been deleted."
    t("cooling_down", term="foo", ttl=1, count=1)
"""

from __future__ import annotations

import functools
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

LOCALES_DIR = Path(__file__).parent / "locales"
DEFAULT_LOCALE = "en"


@functools.lru_cache(maxsize=None)
def load_templates(locale: str = DEFAULT_LOCALE) -> Dict[str, Any]:
    path = LOCALES_DIR / f"{locale}.yaml"
    if not path.exists():
        raise FileNotFoundError(f"No message templates for locale {locale!r}")
    with open(path, "r", encoding="utf-8") as fh:
        return yaml.safe_load(fh) or {}


def t(
    key: str,
    count: Optional[int] = None,
    locale: str = DEFAULT_LOCALE,
    **kwargs: Any,
) -> str:
    """Render template ``key`` (dotted for nested keys, e.g. ``help.check``)."""
    node: Any = load_templates(locale)
    for part in key.split("."):
        if not isinstance(node, dict) or part not in node:
            raise KeyError(f"Unknown message template: {key!r}")
        node = node[part]

    if isinstance(node, dict):
        if count is None or "one" not in node or "other" not in node:
            raise KeyError(f"Template {key!r} needs a count")
        node = node["one"] if count == 1 else node["other"]

    return str(node).format(count=count, **kwargs)
