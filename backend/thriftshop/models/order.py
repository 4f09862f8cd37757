from datetime import datetime

from thriftshop.extensions import db


ORDER_STATUSES = ("paid", "shipped", "delivered", "cancelled")

# delivered and cancelled are final
ORDER_TRANSITIONS = {
    "paid": ("shipped", "cancelled"),
    "shipped": ("delivered", "cancelled"),
    "delivered": (),
    "cancelled": (),
}

SETTLED_ORDER_STATUSES = ("paid", "shipped", "delivered")


class Order(db.Model):
    __tablename__ = "orders"

    id = db.Column(db.Integer, primary_key=True)

    buyer_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    listing_id = db.Column(db.Integer, db.ForeignKey("listings.id"), nullable=False, index=True)

    amount = db.Column(db.Float, nullable=False, default=0.0)
    status = db.Column(db.String(16), nullable=False, default="paid", index=True)

    payment_intent_id = db.Column(db.String(128), nullable=False, unique=True, index=True)
    stripe_session_id = db.Column(db.String(128), nullable=True)

    shipping_name = db.Column(db.String(200), nullable=True)
    shipping_address = db.Column(db.String(300), nullable=True)
    shipping_city = db.Column(db.String(120), nullable=True)
    shipping_state = db.Column(db.String(64), nullable=True)
    shipping_zip = db.Column(db.String(32), nullable=True)
    shipping_phone = db.Column(db.String(32), nullable=True)

    tracking_number = db.Column(db.String(120), nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=True)

    def shipping_dict(self) -> dict:
        return {
            "name": self.shipping_name or "",
            "address": self.shipping_address or "",
            "city": self.shipping_city or "",
            "state": self.shipping_state or "",
            "zip": self.shipping_zip or "",
            "phone": self.shipping_phone or "",
        }

    def to_dict(self) -> dict:
        return {
            "id": int(self.id),
            "buyer_id": int(self.buyer_id),
            "seller_id": int(self.seller_id),
            "listing_id": int(self.listing_id),
            "amount": float(self.amount or 0.0),
            "status": self.status or "paid",
            "payment_intent_id": self.payment_intent_id or "",
            "stripe_session_id": self.stripe_session_id,
            "shipping": self.shipping_dict(),
            "tracking_number": self.tracking_number,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
