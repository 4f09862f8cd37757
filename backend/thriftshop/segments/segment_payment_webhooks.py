from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from sqlalchemy.exc import IntegrityError

from thriftshop.extensions import db
from thriftshop.integrations.payments.factory import webhook_secret
from thriftshop.integrations.payments.stripe_provider import WebhookSignatureError, construct_webhook_event
from thriftshop.models import WebhookEvent
from thriftshop.services.connect_service import sync_account_from_event
from thriftshop.services.order_service import OrderError, create_order_from_payment_intent, mark_listing_sold
from thriftshop.utils.api import json_error
from thriftshop.utils.observability import get_request_id


webhooks_bp = Blueprint("webhooks_bp", __name__, url_prefix="/api/stripe")


def _claim_event(event: dict, raw: bytes) -> tuple[WebhookEvent | None, bool]:
    """Returns ``(row, duplicate)``. Events without an id are processed untracked."""
    event_id = str(event.get("id") or "").strip()
    if not event_id:
        return None, False
    existing = WebhookEvent.query.filter_by(event_id=event_id).first()
    if existing is not None and existing.is_settled:
        return existing, True
    if existing is None:
        existing = WebhookEvent.from_stripe(event, raw, get_request_id())
        db.session.add(existing)
        try:
            db.session.commit()
        except IntegrityError:
            db.session.rollback()
            row = WebhookEvent.query.filter_by(event_id=event_id).first()
            return row, bool(row is not None and row.is_settled)
    return existing, False


def _handle_payment_intent_succeeded(intent: dict) -> None:
    listing_id = (intent.get("metadata") or {}).get("listing_id")
    if not listing_id:
        current_app.logger.warning("webhook_intent_missing_listing intent=%s", intent.get("id"))
        return
    mark_listing_sold(listing_id)
    try:
        create_order_from_payment_intent(intent)
    except (OrderError, IntegrityError) as e:
        db.session.rollback()
        current_app.logger.error("webhook_order_create_failed intent=%s detail=%s", intent.get("id"), str(e))


def _handle_checkout_completed(session: dict) -> None:
    listing_id = (session.get("metadata") or {}).get("listingId") or session.get("client_reference_id")
    if not listing_id:
        current_app.logger.warning("webhook_checkout_missing_listing session=%s", session.get("id"))
        return
    mark_listing_sold(listing_id)


def dispatch_event(event: dict) -> str:
    event_type = str(event.get("type") or "")
    obj = ((event.get("data") or {}).get("object")) or {}
    if event_type == "payment_intent.succeeded":
        _handle_payment_intent_succeeded(obj)
    elif event_type == "checkout.session.completed":
        _handle_checkout_completed(obj)
    elif event_type == "account.updated":
        sync_account_from_event(obj)
    else:
        current_app.logger.info("webhook_event_ignored type=%s", event_type)
        return "ignored"
    return "processed"


@webhooks_bp.post("/webhook")
def stripe_webhook():
    sig = (request.headers.get("Stripe-Signature") or "").strip()
    if not sig:
        return json_error("Missing stripe-signature", 400)
    secret = webhook_secret()
    if not secret:
        current_app.logger.error("webhook_secret_missing")
        return json_error("Missing STRIPE_WEBHOOK_SECRET", 500)

    raw = request.get_data(cache=True) or b""
    try:
        event = construct_webhook_event(raw, sig, secret)
    except WebhookSignatureError as e:
        current_app.logger.warning("webhook_signature_invalid detail=%s", str(e))
        return json_error(f"Webhook Error: {e}", 400)

    row, duplicate = _claim_event(event, raw)
    if duplicate:
        current_app.logger.info("webhook_duplicate event_id=%s", event.get("id"))
        return jsonify({"ok": True, "received": True, "duplicate": True}), 200

    try:
        outcome = dispatch_event(event)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("webhook_handler_failed event_id=%s type=%s", event.get("id"), event.get("type"))
        if row is not None:
            row.fail(str(e))
            db.session.commit()
        return json_error("Webhook handler failed", 500)

    if row is not None:
        row.settle(outcome)
        db.session.commit()
    return jsonify({"ok": True, "received": True, "outcome": outcome}), 200
