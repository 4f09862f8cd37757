from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request

from thriftshop.extensions import db
from thriftshop.models import Order
from thriftshop.services.order_service import (
    OrderError,
    can_view_order,
    create_order,
    orders_for_user,
    shipping_from_payload,
    update_order_status,
)
from thriftshop.utils.api import int_arg, json_body, json_error
from thriftshop.utils.auth import current_user


orders_bp = Blueprint("orders_bp", __name__, url_prefix="/api")


@orders_bp.post("/create-order")
def create_order_route():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)

    data = json_body()
    listing_id = data.get("listingId")
    payment_intent_id = (data.get("paymentIntentId") or "").strip()
    if not listing_id or not payment_intent_id:
        return json_error("Missing required fields: listingId and paymentIntentId are required", 400)

    claimed_buyer = data.get("buyer_id") or data.get("buyerId")
    if claimed_buyer is not None and str(claimed_buyer) != str(user.id):
        current_app.logger.warning("create_order_buyer_mismatch claimed=%s actual=%s", claimed_buyer, user.id)

    try:
        order, created = create_order(
            buyer_id=int(user.id),
            listing_id=listing_id,
            payment_intent_id=payment_intent_id,
            stripe_session_id=data.get("stripeSessionId"),
            amount=data.get("amount"),
            shipping=shipping_from_payload(data.get("shippingInfo")),
        )
    except OrderError as e:
        return json_error(e.message, e.status)

    if not created:
        return jsonify({"orderId": int(order.id), "success": True, "message": "Order already exists"}), 200
    return jsonify({"orderId": int(order.id), "success": True}), 200


@orders_bp.post("/orders/update-status")
def update_status_route():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    data = json_body()
    try:
        order = update_order_status(
            actor=user,
            order_id=data.get("orderId"),
            status=data.get("status") or "",
            tracking_number=data.get("trackingNumber"),
        )
    except OrderError as e:
        return json_error(e.message, e.status)
    return jsonify({"success": True, "order": order.to_dict()}), 200


@orders_bp.get("/orders/<int:order_id>")
def get_order(order_id: int):
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    order = db.session.get(Order, int(order_id))
    if order is None:
        return json_error("Order not found", 404)
    if not can_view_order(user, order):
        return json_error("Forbidden", 403)
    return jsonify({"ok": True, "order": order.to_dict()}), 200


@orders_bp.get("/orders")
def list_orders():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    as_seller = (request.args.get("as") or "").strip().lower() == "seller"
    limit = int_arg(request.args.get("limit"), 100, maximum=200)
    rows = orders_for_user(user, as_seller=as_seller, limit=limit)
    return jsonify({"ok": True, "items": [o.to_dict() for o in rows]}), 200
