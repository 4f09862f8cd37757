from __future__ import annotations

import re

import requests
from flask import current_app

from thriftshop.integrations.ai.base import AIProvider, QueryInterpretation
from thriftshop.integrations.common import IntegrationError


INTENT_WORDS = {
    "gift": ["gifting"],
    "gifting": ["gifting"],
    "myself": ["selfish"],
    "personal": ["selfish"],
    "decor": ["home-decor"],
    "decoration": ["home-decor"],
    "collect": ["collection"],
    "collectible": ["collection"],
    "collectibles": ["collection"],
    "collector": ["collection"],
    "functional": ["functional"],
    "display": ["home-decor"],
}

STYLE_WORDS = {
    "vintage": "vintage",
    "retro": "retro",
    "antique": "antique",
    "mid-century": "mid-century",
    "modern": "modern",
    "rustic": "rustic",
    "industrial": "industrial",
    "bohemian": "bohemian",
    "minimalist": "minimalist",
    "art-deco": "art-deco",
}

MOOD_WORDS = {
    "cozy": "cozy",
    "elegant": "elegant",
    "whimsical": "whimsical",
    "playful": "playful",
    "romantic": "romantic",
    "quirky": "quirky",
    "sophisticated": "sophisticated",
}

CATEGORY_WORDS = {
    "collectible": "Collectibles",
    "collectibles": "Collectibles",
    "book": "Books & Media",
    "furniture": "Furniture",
    "lamp": "Home Decor",
    "art": "Art",
    "fashion": "Fashion",
    "jewelry": "Jewelry",
    "electronics": "Electronics",
}

_PRICE_CAP = re.compile(r"under\s+\$?(\d+)|<\s*\$?(\d+)|less than\s+\$?(\d+)")


def _dedupe(values: list[str]) -> list[str]:
    out: list[str] = []
    for v in values:
        if v not in out:
            out.append(v)
    return out


def local_interpret_query(query: str) -> QueryInterpretation:
    """Rule-based interpretation used when the language model is unavailable."""
    lowered = (query or "").lower()
    match = _PRICE_CAP.search(lowered)
    # the price phrase is a filter, not search text
    text = _PRICE_CAP.sub(" ", lowered) if match else lowered
    words = [w for w in text.split() if len(w) > 2]
    result = QueryInterpretation(source="local")
    for word in words:
        # a word lands in the first map that knows it
        if word in INTENT_WORDS:
            result.intents.extend(INTENT_WORDS[word])
        elif word in STYLE_WORDS:
            result.styles.append(STYLE_WORDS[word])
        elif word in MOOD_WORDS:
            result.moods.append(MOOD_WORDS[word])
        elif word in CATEGORY_WORDS:
            result.categories.append(CATEGORY_WORDS[word])
        else:
            result.keywords.append(word)
    result.intents = _dedupe(result.intents)
    result.styles = _dedupe(result.styles)
    result.moods = _dedupe(result.moods)
    result.categories = _dedupe(result.categories)
    if match:
        raw = match.group(1) or match.group(2) or match.group(3)
        result.price_range = {"max": float(int(raw))}
    return result


def interpret_query(query: str, provider: AIProvider | None) -> QueryInterpretation:
    if provider is None:
        return local_interpret_query(query)
    try:
        return provider.interpret_query(query)
    except IntegrationError as e:
        current_app.logger.warning("query_interpret_fallback reason=%s detail=%s", e.code, e.message[:200])
        return local_interpret_query(query)
    except requests.RequestException as e:
        current_app.logger.warning("query_interpret_fallback reason=network detail=%s", str(e)[:200])
        return local_interpret_query(query)
