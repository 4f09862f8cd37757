from __future__ import annotations

from datetime import datetime

import requests
from flask import Blueprint, current_app, jsonify, request, send_from_directory
from sqlalchemy.exc import SQLAlchemyError

from thriftshop.extensions import db
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationError, IntegrationMisconfiguredError
from thriftshop.integrations.imaging.factory import build_background_provider
from thriftshop.models import Listing
from thriftshop.services.media_service import media_dir, save_processed_image
from thriftshop.utils.auth import current_user
from thriftshop.utils.api import json_error


images_bp = Blueprint("images_bp", __name__, url_prefix="/api")


def _attach_clean_image(listing_id, user_id: int, url: str) -> None:
    # Failures here never fail the request; the processed image is already stored.
    try:
        listing = db.session.get(Listing, int(listing_id))
    except (TypeError, ValueError):
        listing = None
    if listing is None or int(listing.seller_id) != int(user_id):
        current_app.logger.info("clean_image_skipped listing_id=%s user_id=%s", listing_id, user_id)
        return
    try:
        listing.clean_image_url = url
        listing.updated_at = datetime.utcnow()
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("clean_image_update_failed listing_id=%s", listing_id)


@images_bp.post("/seller/remove-background")
def remove_background():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)

    image = request.files.get("image")
    if image is None:
        return json_error("No image provided", 400)

    try:
        provider = build_background_provider()
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.error("remove_bg_unconfigured detail=%s", str(e))
        return json_error("Background removal is not configured. Please contact support.", 503)

    blob = image.read() or b""
    try:
        result = provider.remove_background(image=blob, filename=image.filename or "image.jpg")
    except IntegrationError as e:
        current_app.logger.warning("remove_bg_failed status=%s detail=%s", e.status, e.message)
        return json_error("Background removal failed", 500, details=e.message)
    except requests.RequestException as e:
        current_app.logger.warning("remove_bg_failed detail=%s", str(e))
        return json_error("Background removal failed", 500, details=str(e))

    url = save_processed_image(result.image)
    listing_id = request.form.get("listingId")
    if listing_id:
        _attach_clean_image(listing_id, int(user.id), url)

    current_app.logger.info("remove_bg_ok user_id=%s bytes=%s", user.id, len(result.image))
    return jsonify({"success": True, "processedImageUrl": url, "backgroundRemoved": True}), 200


@images_bp.get("/uploads/<path:filename>")
def get_uploaded_file(filename):
    return send_from_directory(media_dir(), filename)
