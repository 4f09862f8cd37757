from __future__ import annotations

from datetime import datetime

from flask import Blueprint, current_app, jsonify, request

from thriftshop.extensions import db
from thriftshop.integrations.payments.factory import build_payments_provider
from thriftshop.models import Listing, Profile
from thriftshop.services.connect_service import ensure_payouts_connected
from thriftshop.services.embedding_service import embed_listing
from thriftshop.utils.api import int_arg, json_body, json_error
from thriftshop.utils.auth import current_user, is_admin, role_of


listings_bp = Blueprint("listings_bp", __name__, url_prefix="/api")

TAG_FIELDS = ("styles", "moods", "intents")
MAX_PAGE = 100


def _parse_price(value) -> float | None:
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if price < 0:
        return None
    return price


@listings_bp.post("/listings")
def create_listing():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    if role_of(user) not in ("seller", "admin"):
        return json_error("Only sellers can create listings", 403)

    data = json_body()
    title = (data.get("title") or "").strip()
    if not title:
        return json_error("Title is required", 400)
    price = _parse_price(data.get("price", 0))
    if price is None:
        return json_error("Price must be a non-negative number", 400)

    listing = Listing(
        seller_id=int(user.id),
        title=title[:200],
        description=(data.get("description") or "").strip() or None,
        price=price,
        category=(data.get("category") or "").strip() or None,
        condition=(data.get("condition") or "").strip() or None,
        keywords=(data.get("keywords") or "").strip() or None,
        story_text=(data.get("story_text") or data.get("storyText") or "").strip() or None,
        original_image_url=(data.get("original_image_url") or data.get("imageUrl") or "").strip() or None,
        clean_image_url=(data.get("clean_image_url") or "").strip() or None,
        status="draft",
    )
    for field in TAG_FIELDS:
        listing.set_tags(field, data.get(field))
    db.session.add(listing)
    db.session.commit()
    current_app.logger.info("listing_created listing_id=%s seller_id=%s", listing.id, user.id)
    return jsonify({"ok": True, "listing": listing.to_dict()}), 201


@listings_bp.get("/listings")
def list_listings():
    limit = int_arg(request.args.get("limit"), 24, maximum=MAX_PAGE)
    rows = (
        Listing.query.filter(Listing.status == "active")
        .order_by(Listing.created_at.desc(), Listing.id.desc())
        .limit(limit)
        .all()
    )
    return jsonify({"ok": True, "items": [l.to_dict() for l in rows]}), 200


@listings_bp.get("/listings/<int:listing_id>")
def get_listing(listing_id: int):
    listing = db.session.get(Listing, int(listing_id))
    if listing is None:
        return json_error("Listing not found", 404)
    if (listing.status or "") == "draft":
        user = current_user()
        if user is None or (int(user.id) != int(listing.seller_id) and not is_admin(user)):
            return json_error("Listing not found", 404)
    return jsonify({"ok": True, "listing": listing.to_dict()}), 200


@listings_bp.post("/listings/publish")
def publish_listing():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)

    data = json_body()
    listing_id = data.get("listingId")
    if not listing_id:
        return json_error("Listing ID is required", 400)
    try:
        listing = db.session.get(Listing, int(listing_id))
    except (TypeError, ValueError):
        listing = None
    if listing is None:
        return json_error("Listing not found", 404)
    if int(listing.seller_id) != int(user.id):
        return json_error("Unauthorized - You can only publish your own listings", 403)

    profile = Profile.query.filter_by(user_id=int(user.id)).first()
    if profile is None:
        return json_error("Profile not found", 404)

    if not ensure_payouts_connected(profile, build_payments_provider):
        current_app.logger.info("listing_publish_blocked listing_id=%s reason=payouts_not_connected", listing.id)
        return json_error("Connect payouts with Stripe to publish listings.", 403, code="STRIPE_NOT_COMPLETE")

    listing.status = "active"
    listing.updated_at = datetime.utcnow()
    listing.seller_stripe_account_id = profile.stripe_account_id
    listing.seller_name = profile.display_name or None
    embedded = embed_listing(listing)
    db.session.commit()
    current_app.logger.info("listing_published listing_id=%s seller_id=%s embedded=%s", listing.id, user.id, embedded)
    return jsonify({"success": True, "message": "Listing published successfully"}), 200
