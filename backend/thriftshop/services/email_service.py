"""Transactional emails for the order lifecycle.

Every sender returns ``{"ok": bool, ...}`` and never raises: a failed email must
not fail the request that triggered it.
"""
from __future__ import annotations

import html
import os

from flask import current_app

from thriftshop.extensions import db
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from thriftshop.integrations.email.factory import build_email_provider, sender_address
from thriftshop.models import Listing, Order, User
from thriftshop.utils.observability import get_request_id


def _queue_enabled() -> bool:
    return (os.getenv("EMAIL_QUEUE") or "").strip().lower() in ("1", "true", "yes", "on")


def _app_url() -> str:
    return (os.getenv("APP_URL") or "http://localhost:3000").strip().rstrip("/")


def _money(amount) -> str:
    try:
        return f"${float(amount or 0.0):.2f}"
    except (TypeError, ValueError):
        return "$0.00"


def _wrap_html(title: str, lines: list[str], link: str = "", link_label: str = "") -> str:
    body = "".join(f"<p>{html.escape(line)}</p>" for line in lines if line)
    button = ""
    if link:
        button = f'<p><a href="{html.escape(link, quote=True)}">{html.escape(link_label or link)}</a></p>'
    return f"<html><body><h2>{html.escape(title)}</h2>{body}{button}</body></html>"


def render_order_confirmation(order: Order, listing: Listing) -> dict:
    link = f"{_app_url()}/orders/{int(order.id)}"
    lines = [
        f"Thanks for your purchase of {listing.title}.",
        f"Order #{int(order.id)} total: {_money(order.amount)}.",
        f"Shipping to: {order.shipping_name or ''} {order.shipping_city or ''}".strip(),
        "We'll email you again when the seller ships your item.",
    ]
    return {
        "subject": "Your ThriftShopper order confirmation",
        "text": "\n".join([*lines, link]),
        "html": _wrap_html("Order confirmed", lines, link, "View your order"),
    }


def render_item_sold(order: Order, listing: Listing) -> dict:
    link = f"{_app_url()}/seller"
    lines = [
        f"Good news! {listing.title} just sold for {_money(order.amount)}.",
        f"Ship to: {order.shipping_name or ''}",
        f"{order.shipping_address or ''}, {order.shipping_city or ''} {order.shipping_state or ''} {order.shipping_zip or ''}".strip(" ,"),
        "Please ship within 3 business days and add tracking from your dashboard.",
    ]
    return {
        "subject": "Your item sold!",
        "text": "\n".join([*lines, link]),
        "html": _wrap_html("Your item sold", lines, link, "Open seller dashboard"),
    }


def render_item_shipped(order: Order, listing: Listing) -> dict:
    link = f"{_app_url()}/orders/{int(order.id)}"
    lines = [
        f"{listing.title} is on the way.",
        f"Tracking number: {order.tracking_number}" if order.tracking_number else "",
    ]
    return {
        "subject": "Your order is on the way",
        "text": "\n".join([line for line in [*lines, link] if line]),
        "html": _wrap_html("Order shipped", lines, link, "Track your order"),
    }


_RENDERERS = {
    "order_confirmation": ("buyer", render_order_confirmation),
    "item_sold": ("seller", render_item_sold),
    "item_shipped": ("buyer", render_item_shipped),
}


def deliver_order_email(kind: str, order_id: int) -> dict:
    renderer = _RENDERERS.get(kind)
    if renderer is None:
        return {"ok": False, "error": f"unknown email kind {kind}"}
    party, render = renderer
    order = db.session.get(Order, int(order_id))
    if order is None:
        return {"ok": False, "error": "order not found"}
    listing = db.session.get(Listing, int(order.listing_id))
    recipient = db.session.get(User, int(order.buyer_id if party == "buyer" else order.seller_id))
    if listing is None or recipient is None or not (recipient.email or "").strip():
        current_app.logger.warning("email_skipped kind=%s order_id=%s reason=missing_recipient", kind, order_id)
        return {"ok": False, "error": "missing recipient"}
    try:
        provider = build_email_provider()
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.warning("email_provider_unavailable kind=%s order_id=%s detail=%s", kind, order_id, str(e))
        return {"ok": False, "error": str(e)}
    message = render(order, listing)
    result = provider.send(
        to=recipient.email,
        subject=message["subject"],
        html=message["html"],
        text=message["text"],
        sender=sender_address(),
    )
    if not result.ok:
        current_app.logger.warning(
            "email_send_failed kind=%s order_id=%s code=%s detail=%s",
            kind,
            order_id,
            result.code,
            result.message,
        )
        return {"ok": False, "error": result.message, "code": result.code}
    current_app.logger.info("email_sent kind=%s order_id=%s provider=%s", kind, order_id, provider.name)
    return {"ok": True, "id": result.provider_id}


def send_order_email(kind: str, order_id: int) -> dict:
    if _queue_enabled():
        try:
            from thriftshop.tasks.email_tasks import send_order_email_task

            send_order_email_task.delay(kind=kind, order_id=int(order_id), trace_id=get_request_id())
            return {"ok": True, "queued": True}
        except Exception as e:
            current_app.logger.warning("email_enqueue_failed kind=%s order_id=%s detail=%s", kind, order_id, str(e))
    try:
        return deliver_order_email(kind, order_id)
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("email_delivery_crashed kind=%s order_id=%s", kind, order_id)
        return {"ok": False, "error": str(e)}


def send_order_placed_emails(order_id: int) -> dict:
    return {
        "buyer": send_order_email("order_confirmation", order_id),
        "seller": send_order_email("item_sold", order_id),
    }
