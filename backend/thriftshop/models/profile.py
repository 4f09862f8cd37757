from datetime import datetime

from thriftshop.extensions import db


class Profile(db.Model):
    __tablename__ = "profiles"

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, unique=True, index=True)

    display_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    location_city = db.Column(db.String(120), nullable=True)
    avatar_url = db.Column(db.String(1024), nullable=True)

    # Connected payouts account state, refreshed from the payments provider.
    stripe_account_id = db.Column(db.String(64), nullable=True, index=True)
    stripe_details_submitted = db.Column(db.Boolean, nullable=False, default=False)
    stripe_charges_enabled = db.Column(db.Boolean, nullable=False, default=False)
    stripe_payouts_enabled = db.Column(db.Boolean, nullable=False, default=False)
    stripe_onboarded_at = db.Column(db.DateTime, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def payouts_connected(self) -> bool:
        if not self.stripe_account_id:
            return False
        return bool(self.stripe_details_submitted) or bool(self.stripe_charges_enabled)

    def to_dict(self) -> dict:
        return {
            "user_id": int(self.user_id),
            "display_name": self.display_name or "",
            "email": self.email or "",
            "location_city": self.location_city or "",
            "avatar_url": self.avatar_url or "",
            "stripe_account_id": self.stripe_account_id,
            "stripe_details_submitted": bool(self.stripe_details_submitted),
            "stripe_charges_enabled": bool(self.stripe_charges_enabled),
            "stripe_payouts_enabled": bool(self.stripe_payouts_enabled),
            "stripe_onboarded_at": self.stripe_onboarded_at.isoformat() if self.stripe_onboarded_at else None,
        }
