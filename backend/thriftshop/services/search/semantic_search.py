from __future__ import annotations

import requests
from flask import current_app
from sqlalchemy import or_

from thriftshop.integrations.ai.base import AIProvider, QueryInterpretation
from thriftshop.integrations.common import IntegrationError
from thriftshop.models import Listing
from thriftshop.services.search.interpret import interpret_query
from thriftshop.services.search.similarity import match_listings_by_mood


KEYWORD_COLUMNS = ("title", "description", "category", "condition")
TAG_SCAN_LIMIT = 500
EMBEDDING_MATCH_THRESHOLD = 0.7


def _like(value: str) -> str:
    escaped = value.lower().replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def _base_query(interp: QueryInterpretation, limit: int):
    q = Listing.query.filter(Listing.status == "active")
    if interp.keywords:
        clauses = []
        for kw in interp.keywords:
            pattern = _like(kw)
            clauses.extend(getattr(Listing, col).ilike(pattern, escape="\\") for col in KEYWORD_COLUMNS)
        q = q.filter(or_(*clauses))
    price = interp.price_range or {}
    if price.get("min") is not None:
        q = q.filter(Listing.price >= float(price["min"]))
    if price.get("max") is not None:
        q = q.filter(Listing.price <= float(price["max"]))
    if interp.categories:
        q = q.filter(or_(*[Listing.category.ilike(_like(c), escape="\\") for c in interp.categories]))
    q = q.order_by(Listing.created_at.desc(), Listing.id.desc())
    # tag-only queries filter in Python, so scan wider
    return q.limit(int(limit) if interp.keywords else TAG_SCAN_LIMIT)


def _lower(values) -> list[str]:
    return [v.lower() for v in values]


def _score_listing(listing: Listing, interp: QueryInterpretation) -> tuple[bool, int]:
    moods = _lower(listing.tag_list("moods"))
    styles = _lower(listing.tag_list("styles"))
    intents = _lower(listing.tag_list("intents"))
    all_tags = moods + styles + intents
    want_moods = _lower(interp.moods)
    want_styles = _lower(interp.styles)
    want_intents = _lower(interp.intents)
    category = (listing.category or "").lower()
    want_categories = _lower(interp.categories)

    populated = sum(1 for group in (want_moods, want_styles, want_intents) if group)
    if populated == 1:
        query_tags = want_moods + want_styles + want_intents
        hits = sum(1 for t in query_tags if t in all_tags)
        passes_tags = hits > 0
        score = hits * 3
    else:
        mood_hits = sum(1 for t in want_moods if t in moods)
        style_hits = sum(1 for t in want_styles if t in styles)
        intent_hits = sum(1 for t in want_intents if t in intents)
        passes_tags = (
            (not want_moods or mood_hits > 0)
            and (not want_styles or style_hits > 0)
            and (not want_intents or intent_hits > 0)
        )
        score = mood_hits * 3 + style_hits * 2 + intent_hits * 3
        if len(want_intents) > 1 and intent_hits == len(want_intents):
            score += 5

    category_hits = sum(1 for c in want_categories if c in category)
    passes_category = not want_categories or category_hits > 0
    score += category_hits * 2
    return passes_tags and passes_category, score


def search_with_interpretation(interp: QueryInterpretation, limit: int) -> tuple[list[Listing], dict]:
    rows = _base_query(interp, limit).all()
    debug = {
        "columnsSearched": list(KEYWORD_COLUMNS),
        "totalListingsScanned": len(rows),
        "tagFiltered": False,
    }
    results = rows
    if rows and (interp.moods or interp.styles or interp.intents):
        scored = []
        for listing in rows:
            passes, score = _score_listing(listing, interp)
            if passes:
                scored.append((score, listing))
        # stable sort keeps newest-first among equal scores
        scored.sort(key=lambda pair: pair[0], reverse=True)
        results = [listing for _score, listing in scored]
        debug["tagFiltered"] = True

    if not results and interp.keywords and (interp.moods or interp.styles or interp.intents):
        broader = QueryInterpretation(
            keywords=list(interp.keywords),
            categories=list(interp.categories),
            price_range=interp.price_range,
            source=interp.source,
        )
        current_app.logger.info("semantic_search_broadened keywords=%s", ",".join(interp.keywords))
        results, broader_debug = search_with_interpretation(broader, limit)
        broader_debug["broadened"] = True
        return results[: int(limit)], broader_debug

    return results[: int(limit)], debug


def semantic_search(query: str, *, limit: int = 24, provider: AIProvider | None = None) -> dict:
    interp = interpret_query(query, provider)
    listings, debug = search_with_interpretation(interp, limit)
    current_app.logger.info(
        "semantic_search query=%r source=%s results=%s",
        query[:120],
        interp.source,
        len(listings),
    )
    return {"listings": listings, "interpretation": interp, "debug": debug}


def embedding_search(provider: AIProvider | None, text: str, limit: int, *, threshold: float = EMBEDDING_MATCH_THRESHOLD) -> list[Listing]:
    """Best-effort embedding matches; any failure yields an empty list."""
    if provider is None:
        return []
    try:
        vector = provider.embed(text)
    except (IntegrationError, requests.RequestException) as e:
        current_app.logger.warning("embedding_search_failed detail=%s", str(e)[:200])
        return []
    if not vector:
        return []
    return [m["listing"] for m in match_listings_by_mood(vector, threshold, limit)]


def merge_listings(primary: list[Listing], extra: list[Listing]) -> list[Listing]:
    seen = {int(l.id) for l in primary}
    merged = list(primary)
    for listing in extra:
        if int(listing.id) not in seen:
            merged.append(listing)
            seen.add(int(listing.id))
    return merged
