"""Tag column helpers.

Listing tag columns (styles, moods, intents) arrive in whatever shape the
writer used: a real list, a JSON array string, or a comma separated string.
Readers always go through ``normalize_tag_column``.
"""
from __future__ import annotations

import json
import re

_EDGE_JUNK = re.compile(r'^[\["\s]+|[\]"\s]+$')
_INNER_JUNK = re.compile(r'["\[\]]')
_TIGHT_COMMA = re.compile(r",(\S)")


def clean_tag(tag) -> str:
    cleaned = str(tag if tag is not None else "").strip()
    cleaned = _EDGE_JUNK.sub("", cleaned)
    cleaned = _INNER_JUNK.sub("", cleaned)
    # "Home Decor,collectibles" -> "Home Decor, collectibles"
    cleaned = _TIGHT_COMMA.sub(r", \1", cleaned)
    return cleaned


def normalize_tag_column(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, (list, tuple, set)):
        return [t for t in (clean_tag(v) for v in value) if t]
    raw = str(value)
    if raw.strip().startswith("["):
        try:
            parsed = json.loads(raw)
        except ValueError:
            parsed = None
        if isinstance(parsed, list):
            return [t for t in (clean_tag(v) for v in parsed) if t]
    return [t for t in (clean_tag(v) for v in raw.split(",")) if t]


def tags_to_db_format(tags) -> str | None:
    cleaned = [t for t in (clean_tag(v) for v in (tags or [])) if t]
    return ",".join(cleaned) if cleaned else None
