from __future__ import annotations

import os

from flask import Blueprint, current_app, jsonify

from thriftshop.extensions import db
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationError, IntegrationMisconfiguredError
from thriftshop.integrations.payments.factory import build_payments_provider
from thriftshop.models import Listing, Profile
from thriftshop.services.connect_service import account_status_payload, refresh_account_status
from thriftshop.services.order_service import shipping_from_payload
from thriftshop.utils.api import json_body, json_error
from thriftshop.utils.auth import current_user


payments_bp = Blueprint("payments_bp", __name__, url_prefix="/api")


def _app_url() -> str:
    return (os.getenv("APP_URL") or "http://localhost:3000").strip().rstrip("/")


@payments_bp.post("/create-payment-intent")
def create_payment_intent():
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
    if (listing.status or "") != "active":
        return json_error("This item is no longer available", 400)

    buyer = current_user()
    shipping = shipping_from_payload(data.get("shippingInfo"))
    metadata = {
        "listing_id": int(listing.id),
        "listing_title": listing.title,
        "seller_id": int(listing.seller_id),
        "buyer_id": int(buyer.id) if buyer else None,
    }
    for key, value in shipping.items():
        metadata[f"shipping_{key}"] = value or ""

    try:
        provider = build_payments_provider()
        intent = provider.create_payment_intent(
            amount_cents=int(round(float(listing.price or 0.0) * 100)),
            currency="usd",
            metadata=metadata,
        )
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.error("payment_intent_unavailable detail=%s", str(e))
        return json_error("Payments are not configured", 500, details=str(e))
    except IntegrationError as e:
        current_app.logger.warning("payment_intent_failed listing_id=%s detail=%s", listing.id, e.message)
        return json_error(e.message, 500, details=e.message)

    current_app.logger.info("payment_intent_created listing_id=%s intent=%s", listing.id, intent.id)
    return jsonify(
        {
            "clientSecret": intent.client_secret,
            "paymentIntentId": intent.id,
            "amount": float(listing.price or 0.0),
        }
    ), 200


@payments_bp.post("/stripe/account-status")
def account_status():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    profile = Profile.query.filter_by(user_id=int(user.id)).first()
    if profile is None:
        return json_error("Profile not found", 404)
    if not profile.stripe_account_id:
        return jsonify(
            {
                "details_submitted": False,
                "charges_enabled": False,
                "payouts_enabled": False,
                "account_id": None,
            }
        ), 200
    try:
        refresh_account_status(profile, build_payments_provider())
    except (IntegrationError, IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.warning("connect_status_failed user_id=%s detail=%s", user.id, str(e))
        return json_error(f"Stripe error: {getattr(e, 'message', str(e))}", 500)
    return jsonify(account_status_payload(profile)), 200


@payments_bp.post("/stripe/create-account-link")
def create_account_link():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    profile = Profile.query.filter_by(user_id=int(user.id)).first()
    if profile is None:
        return json_error("Profile not found", 404)
    try:
        provider = build_payments_provider()
        if not profile.stripe_account_id:
            account = provider.create_account(
                email=(profile.email or user.email or "").strip(),
                metadata={"user_id": int(user.id), "profile_id": int(profile.id)},
            )
            profile.stripe_account_id = account.id
            db.session.commit()
            current_app.logger.info("connect_account_created user_id=%s account=%s", user.id, account.id)
        url = provider.create_account_link(
            account_id=profile.stripe_account_id,
            refresh_url=f"{_app_url()}/sell?stripe_refresh=true",
            return_url=f"{_app_url()}/sell?stripe_success=true",
        )
    except (IntegrationError, IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        db.session.rollback()
        current_app.logger.warning("connect_link_failed user_id=%s detail=%s", user.id, str(e))
        return json_error(getattr(e, "message", str(e)), 500)
    return jsonify({"url": url, "accountId": profile.stripe_account_id}), 200
