from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy.exc import IntegrityError

from thriftshop.extensions import db
from thriftshop.models import Listing, Order, User
from thriftshop.models.order import ORDER_STATUSES, ORDER_TRANSITIONS, SETTLED_ORDER_STATUSES
from thriftshop.services.email_service import send_order_email, send_order_placed_emails


class OrderError(ValueError):
    def __init__(self, message: str, status: int = 400):
        super().__init__(message)
        self.message = message
        self.status = int(status)


SHIPPING_FIELDS = ("name", "address", "city", "state", "zip", "phone")


def _as_int(value) -> int | None:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def shipping_from_payload(payload) -> dict:
    if not isinstance(payload, dict):
        return {}
    return {k: (str(payload.get(k) or "").strip() or None) for k in SHIPPING_FIELDS}


def find_order_by_payment_intent(payment_intent_id: str) -> Order | None:
    return Order.query.filter_by(payment_intent_id=(payment_intent_id or "").strip()).first()


def listing_has_settled_order(listing_id: int) -> bool:
    q = Order.query.filter(Order.listing_id == int(listing_id), Order.status.in_(SETTLED_ORDER_STATUSES))
    return db.session.query(q.exists()).scalar()


def _apply_sold(listing: Listing, when: datetime | None = None) -> None:
    listing.status = "sold"
    listing.sold_at = when or datetime.utcnow()
    listing.updated_at = datetime.utcnow()


def mark_listing_sold(listing_id) -> bool:
    lid = _as_int(listing_id)
    if lid is None:
        return False
    listing = db.session.get(Listing, lid)
    if listing is None:
        current_app.logger.warning("listing_mark_sold_missing listing_id=%s", listing_id)
        return False
    _apply_sold(listing)
    db.session.commit()
    current_app.logger.info("listing_marked_sold listing_id=%s", lid)
    return True


def create_order(
    *,
    buyer_id: int,
    listing_id,
    payment_intent_id: str,
    stripe_session_id: str | None = None,
    amount=None,
    shipping: dict | None = None,
    seller_id: int | None = None,
    notify: bool = True,
) -> tuple[Order, bool]:
    """Record a paid order and flip its listing to sold.

    Returns ``(order, created)``. An order that already exists for the payment
    intent is returned with ``created=False`` so client retries and the
    webhook path converge on one row.
    """
    pid = (payment_intent_id or "").strip()
    if listing_id in (None, "") or not pid:
        raise OrderError("Missing required fields: listingId and paymentIntentId are required", 400)

    lid = _as_int(listing_id)
    listing = db.session.get(Listing, lid) if lid is not None else None
    if listing is None:
        raise OrderError("Listing not found", 404)

    existing = find_order_by_payment_intent(pid)
    if existing is not None:
        return existing, False

    if (listing.status or "") == "sold" and listing_has_settled_order(lid):
        raise OrderError("This item has already been sold", 400)

    try:
        total = float(amount) if amount not in (None, "") else float(listing.price or 0.0)
    except (TypeError, ValueError):
        total = float(listing.price or 0.0)

    ship = shipping or {}
    order = Order(
        buyer_id=int(buyer_id),
        seller_id=int(seller_id if seller_id is not None else listing.seller_id),
        listing_id=lid,
        amount=total,
        status="paid",
        payment_intent_id=pid,
        stripe_session_id=(stripe_session_id or "").strip() or None,
        shipping_name=ship.get("name"),
        shipping_address=ship.get("address"),
        shipping_city=ship.get("city"),
        shipping_state=ship.get("state"),
        shipping_zip=ship.get("zip"),
        shipping_phone=ship.get("phone"),
    )
    db.session.add(order)
    _apply_sold(listing)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        existing = find_order_by_payment_intent(pid)
        if existing is not None:
            current_app.logger.info("order_create_race_resolved payment_intent=%s order_id=%s", pid, existing.id)
            return existing, False
        raise

    current_app.logger.info(
        "order_created order_id=%s listing_id=%s buyer_id=%s payment_intent=%s",
        order.id,
        lid,
        buyer_id,
        pid,
    )
    if notify:
        send_order_placed_emails(int(order.id))
    return order, True


def create_order_from_payment_intent(intent: dict) -> Order | None:
    """Create the order for a succeeded payment intent, using its metadata."""
    pid = str(intent.get("id") or "").strip()
    if not pid:
        return None
    existing = find_order_by_payment_intent(pid)
    if existing is not None:
        return existing
    meta = intent.get("metadata") or {}
    listing_id = _as_int(meta.get("listing_id") or meta.get("listingId"))
    seller_id = _as_int(meta.get("seller_id"))
    buyer_id = _as_int(meta.get("buyer_id"))
    if listing_id is None or seller_id is None or buyer_id is None:
        current_app.logger.warning(
            "order_from_intent_skipped payment_intent=%s reason=missing_metadata listing_id=%s seller_id=%s buyer_id=%s",
            pid,
            meta.get("listing_id"),
            meta.get("seller_id"),
            meta.get("buyer_id"),
        )
        return None
    if db.session.get(User, buyer_id) is None:
        current_app.logger.warning("order_from_intent_skipped payment_intent=%s reason=unknown_buyer", pid)
        return None
    shipping = {k: (str(meta.get(f"shipping_{k}") or "").strip() or None) for k in SHIPPING_FIELDS}
    try:
        amount = float(intent.get("amount") or 0) / 100.0
    except (TypeError, ValueError):
        amount = None
    order, _created = create_order(
        buyer_id=buyer_id,
        seller_id=seller_id,
        listing_id=listing_id,
        payment_intent_id=pid,
        amount=amount or None,
        shipping=shipping,
    )
    return order


def can_manage_order(user: User | None, order: Order) -> bool:
    if user is None:
        return False
    if user.is_admin:
        return True
    return int(order.seller_id) == int(user.id)


def update_order_status(*, actor: User, order_id, status: str, tracking_number=None) -> Order:
    oid = _as_int(order_id)
    target = (status or "").strip().lower()
    if oid is None or not target:
        raise OrderError("Missing required fields: orderId and status are required", 400)
    if target not in ORDER_STATUSES:
        raise OrderError(f"Invalid status. Must be one of: {', '.join(ORDER_STATUSES)}", 400)

    order = db.session.get(Order, oid)
    if order is None:
        raise OrderError("Order not found", 404)
    if not can_manage_order(actor, order):
        raise OrderError("You do not have permission to update this order", 403)

    current = (order.status or "paid").strip().lower()
    if target not in ORDER_TRANSITIONS.get(current, ()):
        raise OrderError(f"Cannot change status from {current} to {target}", 400)

    order.status = target
    order.updated_at = datetime.utcnow()
    if target == "shipped":
        tracking = str(tracking_number or "").strip()
        if tracking:
            order.tracking_number = tracking
    db.session.commit()
    current_app.logger.info("order_status_updated order_id=%s from=%s to=%s actor=%s", oid, current, target, actor.id)

    if target == "shipped":
        send_order_email("item_shipped", int(order.id))
    return order


def orders_for_user(user: User, *, as_seller: bool = False, limit: int = 100) -> list[Order]:
    q = Order.query
    if as_seller:
        q = q.filter(Order.seller_id == int(user.id))
    else:
        q = q.filter(Order.buyer_id == int(user.id))
    return q.order_by(Order.created_at.desc()).limit(max(1, min(int(limit), 200))).all()


def can_view_order(user: User | None, order: Order) -> bool:
    if user is None:
        return False
    if user.is_admin:
        return True
    return int(user.id) in (int(order.buyer_id), int(order.seller_id))
