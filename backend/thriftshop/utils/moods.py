from __future__ import annotations

import re

# Vibe wheel terms mapped to the words sellers (and the tagger) actually use.
MOOD_MAPPINGS: dict[str, list[str]] = {
    # vibes
    "whimsical": ["whimsical", "whimsy", "playful", "fun", "quirky"],
    "impulsive": ["impulsive", "impulse", "spontaneous"],
    "wild": ["wild", "bold", "daring"],
    "nostalgic": ["nostalgic", "nostalgia", "retro", "vintage"],
    "quirky": ["quirky", "quirks", "unique", "unusual"],
    "chill": ["chill", "chilled", "calm", "calming", "peaceful", "serene"],
    "party on": ["party on", "party", "party-on", "celebration", "celebrate", "festive"],
    "warm heart": ["warm heart", "warm-heart", "warm", "heart", "heartfelt", "cozy"],
    # purpose
    "gift": ["gift", "gifts", "gifting", "present", "presents"],
    "indulgence": ["indulgence", "indulge", "treat", "treat yourself", "selfish", "for me"],
    "practical": ["practical", "functional", "utility", "useful"],
    "collectibles": ["collectibles", "collectible", "collection", "collector", "collecting"],
    "accessorize": ["accessorize", "accessories", "accessory", "accessorizing"],
    "celebrate": ["celebrate", "celebration", "party", "festive", "special occasion"],
    "homestyle": ["homestyle", "home-style", "home", "decor", "home decor", "home decoration", "decorative"],
    "dine in": ["dine in", "dine-in", "dinein", "dining", "tableware", "serveware", "dinnerware", "kitchen", "cookware"],
    # styles
    "antique": ["antique", "antiques", "vintage", "classic"],
    "rustic": ["rustic", "country", "farmhouse", "natural", "earthy"],
    "retro": ["retro", "vintage", "nostalgic", "classic"],
    "vintage": ["vintage", "antique", "retro", "classic", "old"],
    "modern": ["modern", "contemporary", "sleek", "minimalist"],
    "mcm": ["mcm", "mid-century modern", "midcentury modern", "mid century modern", "mid-century", "midcentury"],
    "kitschy": ["kitschy", "kitsch", "tacky", "campy", "funky"],
    "elegant": ["elegant", "elegance", "sophisticated", "refined", "classy"],
}


def get_mood_variations(mood: str) -> list[str]:
    normalized = (mood or "").strip().lower()
    variations = MOOD_MAPPINGS.get(normalized, [])
    return [normalized] + [v.strip().lower() for v in variations]


def _word_match(variation: str, value: str) -> bool:
    return re.search(rf"\b{re.escape(variation)}\b", value, flags=re.IGNORECASE) is not None


def matches_mood(value: str, mood: str) -> bool:
    normalized = (value or "").strip().lower()
    variations = get_mood_variations(mood)
    if normalized in variations:
        return True
    return any(_word_match(v, normalized) for v in variations)


def matching_tags(tags: list[str], mood: str) -> list[str]:
    variations = get_mood_variations(mood)
    return [t for t in tags if any(_word_match(v, t.lower()) for v in variations)]
