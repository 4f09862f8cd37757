"""Term-group search used by visual search.

A term group is one concept plus the spellings that count as a hit for it.
Listings are ranked by how many groups they hit across their text and tag
columns.
"""
from __future__ import annotations

import re

from thriftshop.models import Listing
from thriftshop.services.search.interpret import local_interpret_query
from thriftshop.utils.moods import MOOD_MAPPINGS, get_mood_variations


SEARCHED_COLUMNS = (
    "title",
    "description",
    "category",
    "condition",
    "keywords",
    "story_text",
    "styles",
    "moods",
    "intents",
)
TERM_SCAN_LIMIT = 500

_NON_WORD = re.compile(r"[^a-z0-9\s-]")
_SPACES = re.compile(r"\s+")


def normalize_term(value) -> str:
    text = _NON_WORD.sub(" ", str(value or "").lower())
    return _SPACES.sub(" ", text).strip()


def terms_to_groups(terms) -> list[dict]:
    groups = []
    for term in terms or []:
        normalized = normalize_term(term)
        if normalized:
            groups.append({"term": normalized, "variants": [normalized]})
    return groups


def merge_term_groups(groups) -> list[dict]:
    merged: dict[str, list[str]] = {}
    for group in groups or []:
        key = normalize_term(group.get("term"))
        if not key:
            continue
        variants = merged.setdefault(key, [key])
        for variant in group.get("variants") or []:
            normalized = normalize_term(variant)
            if normalized and normalized not in variants:
                variants.append(normalized)
    return [{"term": term, "variants": variants} for term, variants in merged.items()]


def extract_term_groups(query: str) -> list[dict]:
    interp = local_interpret_query(query)
    groups = []
    for term in [*interp.keywords, *interp.styles, *interp.moods, *interp.intents, *interp.categories]:
        normalized = normalize_term(term)
        if not normalized:
            continue
        variants = get_mood_variations(normalized) if normalized in MOOD_MAPPINGS else [normalized]
        groups.append({"term": normalized, "variants": variants})
    return merge_term_groups(groups)


def _searchable_text(listing: Listing) -> str:
    parts = []
    for column in SEARCHED_COLUMNS:
        if column in ("styles", "moods", "intents"):
            parts.extend(listing.tag_list(column))
        else:
            parts.append(str(getattr(listing, column, None) or ""))
    return normalize_term(" ".join(parts))


def search_listings_by_terms(groups, *, limit: int = 24, source_query: str = "") -> dict:
    term_groups = merge_term_groups(groups)
    counts = {g["term"]: 0 for g in term_groups}
    debug = {
        "sourceQuery": source_query,
        "terms": [g["term"] for g in term_groups],
        "columnsSearched": list(SEARCHED_COLUMNS),
        "termMatchCounts": counts,
        "totalListingsScanned": 0,
    }
    if not term_groups:
        return {"listings": [], "termGroups": [], "debug": debug}

    rows = (
        Listing.query.filter(Listing.status == "active")
        .order_by(Listing.created_at.desc(), Listing.id.desc())
        .limit(TERM_SCAN_LIMIT)
        .all()
    )
    debug["totalListingsScanned"] = len(rows)
    scored = []
    for listing in rows:
        haystack = f" {_searchable_text(listing)} "
        hits = 0
        for group in term_groups:
            if any(f" {v} " in haystack for v in group["variants"]):
                hits += 1
                counts[group["term"]] += 1
        if hits:
            scored.append((hits, listing))
    scored.sort(key=lambda pair: pair[0], reverse=True)
    return {
        "listings": [listing for _hits, listing in scored[: max(0, int(limit))]],
        "termGroups": term_groups,
        "debug": debug,
    }
