from __future__ import annotations

import requests
from flask import current_app

from thriftshop.extensions import db
from thriftshop.integrations.ai.base import AIProvider
from thriftshop.integrations.ai.factory import build_ai_provider
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationError, IntegrationMisconfiguredError
from thriftshop.models import Listing
from thriftshop.utils.moods import get_mood_variations, matches_mood, matching_tags


def build_embedding_text(listing: Listing) -> str:
    parts = [
        listing.title or "",
        listing.description or "",
        " ".join(listing.tag_list("styles")),
        listing.category or "",
        listing.story_text or "",
    ]
    return " ".join(p.strip() for p in parts if p and p.strip()).strip()


def embed_listing(listing: Listing) -> bool:
    """Store an embedding for ``listing``; failures are logged, never raised."""
    text = build_embedding_text(listing)
    if not text:
        return False
    try:
        vector = build_ai_provider().embed(text)
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.info("listing_embed_skipped listing_id=%s detail=%s", listing.id, str(e))
        return False
    except (IntegrationError, requests.RequestException) as e:
        current_app.logger.warning("listing_embed_failed listing_id=%s detail=%s", listing.id, str(e)[:300])
        return False
    if not vector:
        current_app.logger.warning("listing_embed_failed listing_id=%s detail=empty vector", listing.id)
        return False
    listing.set_embedding(vector)
    return True


def _active_listings(limit=None) -> list[Listing]:
    q = Listing.query.filter(Listing.status == "active").order_by(Listing.id.asc())
    if limit:
        q = q.limit(max(1, int(limit)))
    return q.all()


def regenerate_embeddings(provider: AIProvider | None, *, dry_run: bool = False, limit=None) -> dict:
    listings = _active_listings(limit)
    if not listings:
        return {"message": "No listings found", "processed": 0, "errors": []}

    if dry_run:
        sample = []
        for listing in listings[:3]:
            sample.append(
                {
                    "id": int(listing.id),
                    "title": listing.title,
                    "styles": listing.tag_list("styles"),
                    "embeddingText": build_embedding_text(listing)[:200] + "...",
                }
            )
        return {
            "message": "Dry run - no embeddings regenerated",
            "totalListings": len(listings),
            "sample": sample,
        }

    processed = 0
    success = 0
    errors = []
    for listing in listings:
        text = build_embedding_text(listing)
        if not text:
            errors.append({"id": int(listing.id), "error": "No text content to generate embedding"})
            continue
        try:
            vector = provider.embed(text)
        except (IntegrationError, requests.RequestException) as e:
            errors.append({"id": int(listing.id), "error": str(e)[:300]})
            continue
        if not vector:
            errors.append({"id": int(listing.id), "error": "Failed to generate embedding"})
            continue
        listing.set_embedding(vector)
        db.session.commit()
        success += 1
        processed += 1

    current_app.logger.info(
        "embeddings_regenerated total=%s success=%s errors=%s",
        len(listings),
        success,
        len(errors),
    )
    return {
        "message": f"Processed {processed} listings",
        "totalListings": len(listings),
        "success": success,
        "errors": errors,
    }


def embedding_samples(limit: int = 5) -> dict:
    listings = _active_listings(limit)
    if not listings:
        return {"message": "No listings found", "samples": []}
    samples = []
    for listing in listings:
        vector = listing.embedding_vector()
        searchable = [listing.title or "", listing.description or "", *listing.tag_list("styles"), listing.category or "", listing.story_text or ""]
        samples.append(
            {
                "id": int(listing.id),
                "title": listing.title,
                "styles": listing.tag_list("styles"),
                "moods": listing.tag_list("moods"),
                "intents": listing.tag_list("intents"),
                "keywords": listing.keywords,
                "category": listing.category,
                "hasEmbedding": bool(vector),
                "embeddingLength": len(vector),
                "searchableText": " ".join(p for p in searchable if p)[:300],
            }
        )
    return {"message": f"Found {len(listings)} sample listings", "samples": samples}


def mood_filter_report(moods: list[str], limit: int = 10) -> dict:
    """Explain which active listings pass a multi-mood filter and why."""
    listings = _active_listings(max(1, int(limit)) * 3)
    if not listings:
        return {"message": "No listings found", "selectedMoods": moods, "matches": []}

    matches = []
    for listing in listings:
        styles = listing.tag_list("styles")
        listing_moods = listing.tag_list("moods")
        intents = listing.tag_list("intents")
        fields = [f.lower() for f in styles + listing_moods + intents]
        details = []
        for mood in moods:
            matched = any(matches_mood(field, mood) for field in fields)
            details.append(
                {
                    "selectedMood": mood,
                    "normalizedMood": mood.strip().lower(),
                    "variations": get_mood_variations(mood),
                    "matched": matched,
                    "matchedIn": {
                        "styles": matching_tags(styles, mood),
                        "moods": matching_tags(listing_moods, mood),
                        "intents": matching_tags(intents, mood),
                    }
                    if matched
                    else None,
                }
            )
        if all(d["matched"] for d in details):
            matches.append(
                {
                    "listing": {
                        "id": int(listing.id),
                        "title": (listing.title or "")[:50],
                        "stylesNormalized": styles,
                        "moodsNormalized": listing_moods,
                        "intentsNormalized": intents,
                    },
                    "matchDetails": details,
                    "allMatched": True,
                }
            )

    non_matches = []
    for listing in listings[:5]:
        styles = listing.tag_list("styles")
        listing_moods = listing.tag_list("moods")
        intents = listing.tag_list("intents")
        non_matches.append(
            {
                "id": int(listing.id),
                "title": (listing.title or "")[:40],
                "allFields": [f.lower() for f in styles + listing_moods + intents],
            }
        )
    return {
        "selectedMoods": moods,
        "totalListings": len(listings),
        "matchesFound": len(matches),
        "matches": matches[:10],
        "sampleNonMatches": non_matches,
        "debug": {"selectedMoodsNormalized": [m.strip().lower() for m in moods]},
    }
