from __future__ import annotations

import requests
from flask import Blueprint, current_app, jsonify

from thriftshop.integrations.ai.factory import ai_configured, build_ai_provider
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationError, IntegrationMisconfiguredError
from thriftshop.integrations.pricing.factory import build_pricing_provider
from thriftshop.services.pricing_service import lookup_prices, select_pricing_items
from thriftshop.services.search import (
    embedding_search,
    extract_term_groups,
    match_listings_by_mood,
    merge_term_groups,
    search_listings_by_terms,
    semantic_search,
    terms_to_groups,
)
from thriftshop.services.search.semantic_search import EMBEDDING_MATCH_THRESHOLD, merge_listings
from thriftshop.utils.api import int_arg, json_body, json_error


search_bp = Blueprint("search_bp", __name__, url_prefix="/api/search")


def _optional_ai_provider():
    if not ai_configured():
        return None
    try:
        return build_ai_provider()
    except (IntegrationDisabledError, IntegrationMisconfiguredError):
        return None


@search_bp.post("/pricing")
def pricing_lookup():
    data = json_body()
    items = data.get("items")
    if not isinstance(items, list) or not items:
        return json_error("items is required", 400)
    try:
        provider = build_pricing_provider()
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        return json_error("eBay pricing not configured", 503, details=str(e))

    try:
        selected = select_pricing_items(items, data.get("limit"))
        results = lookup_prices(provider, selected)
    except Exception as e:
        current_app.logger.exception("pricing_lookup_crashed")
        return json_error("Pricing lookup failed", 500, details=str(e))
    return jsonify({"pricing": results}), 200


@search_bp.post("/semantic-mood")
def semantic_mood():
    data = json_body()
    moods = data.get("moods")
    if not isinstance(moods, list) or not moods:
        return json_error("No moods provided", 400)
    try:
        threshold = float(data.get("threshold", 0.7))
    except (TypeError, ValueError):
        threshold = 0.7
    limit = int_arg(data.get("limit"), 50, minimum=1, maximum=500)
    query_text = ", ".join(str(m) for m in moods)

    try:
        provider = build_ai_provider()
        vector = provider.embed(query_text)
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.error("semantic_mood_unconfigured detail=%s", str(e))
        return json_error("Internal server error", 500, details=str(e))
    except IntegrationError as e:
        current_app.logger.warning("semantic_mood_embedding_failed detail=%s", e.message)
        return json_error("Internal server error", 500, details=f"Failed to generate embedding: {e.message}")
    except requests.RequestException as e:
        return json_error("Internal server error", 500, details=str(e))

    matches = match_listings_by_mood(vector, threshold, limit)
    listings = []
    for match in matches:
        row = match["listing"].to_dict()
        row["similarity"] = match["similarity"]
        listings.append(row)
    current_app.logger.info("semantic_mood moods=%s results=%s", query_text[:120], len(listings))
    return jsonify({"listings": listings}), 200


@search_bp.post("/semantic")
def semantic():
    data = json_body()
    query = data.get("query")
    if not query or not isinstance(query, str):
        return json_error("Query is required", 400)
    limit = int_arg(data.get("limit"), 24, maximum=200)

    try:
        provider = _optional_ai_provider()
        result = semantic_search(query, limit=limit, provider=provider)
        direct = result["listings"]
        extra = []
        if len(direct) < limit:
            extra = embedding_search(provider, query, limit, threshold=EMBEDDING_MATCH_THRESHOLD)
        merged = merge_listings(direct, extra)
    except Exception as e:
        current_app.logger.exception("semantic_search_failed")
        return json_error("Search failed", 500, details=str(e))

    debug = dict(result["debug"])
    debug["semanticMatchesAdded"] = len(merged) - len(direct)
    return jsonify(
        {
            "listings": [l.to_dict() for l in merged],
            "interpretation": result["interpretation"].to_dict(),
            "debug": debug,
        }
    ), 200


@search_bp.post("/visual")
def visual():
    data = json_body()
    image_url = data.get("imageUrl")
    if not image_url or not isinstance(image_url, str):
        return json_error("imageUrl is required", 400)
    limit = int_arg(data.get("limit"), 24, maximum=200)
    query = data.get("query") if isinstance(data.get("query"), str) else ""

    vision_terms: list[str] = []
    provider = _optional_ai_provider()
    if provider is not None:
        try:
            vision_terms = provider.analyze_image(image_url).terms()
        except (IntegrationError, requests.RequestException) as e:
            current_app.logger.warning("visual_search_vision_failed detail=%s", str(e)[:200])
            vision_terms = []

    try:
        combined = merge_term_groups([*extract_term_groups(query), *terms_to_groups(vision_terms)])
        result = search_listings_by_terms(combined, limit=limit, source_query=query)
    except Exception as e:
        current_app.logger.exception("visual_search_failed")
        return json_error("Search failed", 500, details=str(e))

    debug = dict(result["debug"])
    debug["vision"] = [{"source": provider.name if provider else "none", "terms": vision_terms}]
    current_app.logger.info("visual_search terms=%s results=%s", len(combined), len(result["listings"]))
    return jsonify(
        {
            "listings": [l.to_dict() for l in result["listings"]],
            "termGroups": result["termGroups"],
            "debug": debug,
        }
    ), 200
