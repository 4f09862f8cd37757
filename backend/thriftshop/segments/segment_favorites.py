from __future__ import annotations

from flask import Blueprint, jsonify

from thriftshop.extensions import db
from thriftshop.models import Favorite, Listing
from thriftshop.utils.api import json_body, json_error
from thriftshop.utils.auth import current_user


favorites_bp = Blueprint("favorites_bp", __name__, url_prefix="/api/favorites")


@favorites_bp.get("")
def list_favorites():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    rows = Favorite.query.filter_by(user_id=int(user.id)).order_by(Favorite.created_at.desc()).all()
    return jsonify({"ok": True, "listing_ids": [int(r.listing_id) for r in rows]}), 200


@favorites_bp.post("/toggle")
def toggle_favorite():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    data = json_body()
    try:
        listing_id = int(data.get("listingId"))
    except (TypeError, ValueError):
        return json_error("Listing ID is required", 400)
    if db.session.get(Listing, listing_id) is None:
        return json_error("Listing not found", 404)

    existing = Favorite.query.filter_by(user_id=int(user.id), listing_id=listing_id).first()
    if existing is not None:
        db.session.delete(existing)
        db.session.commit()
        return jsonify({"ok": True, "favorited": False, "listingId": listing_id}), 200
    db.session.add(Favorite(user_id=int(user.id), listing_id=listing_id))
    db.session.commit()
    return jsonify({"ok": True, "favorited": True, "listingId": listing_id}), 200
