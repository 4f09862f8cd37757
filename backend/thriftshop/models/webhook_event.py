import hashlib
from datetime import datetime

from thriftshop.extensions import db


class WebhookEvent(db.Model):
    """One row per provider event id; a settled row makes replays no-ops."""

    __tablename__ = "webhook_events"

    SETTLED = ("processed", "ignored")

    id = db.Column(db.Integer, primary_key=True)
    provider = db.Column(db.String(32), nullable=False, default="stripe")
    event_id = db.Column(db.String(128), nullable=False, unique=True)
    event_type = db.Column(db.String(80), nullable=True)

    # received | processed | ignored | failed
    status = db.Column(db.String(32), nullable=False, default="received")
    processed_at = db.Column(db.DateTime, nullable=True)
    request_id = db.Column(db.String(64), nullable=True)
    payload_hash = db.Column(db.String(128), nullable=True)
    error = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @classmethod
    def from_stripe(cls, event: dict, raw: bytes, request_id: str = "") -> "WebhookEvent":
        return cls(
            provider="stripe",
            event_id=str(event.get("id") or "").strip(),
            event_type=str(event.get("type") or "")[:80],
            status="received",
            request_id=(request_id or "")[:64],
            payload_hash=hashlib.sha256(raw or b"").hexdigest(),
        )

    @property
    def is_settled(self) -> bool:
        return self.status in self.SETTLED

    def settle(self, outcome: str) -> None:
        self.status = outcome if outcome in self.SETTLED else "processed"
        self.processed_at = datetime.utcnow()
        self.error = None

    def fail(self, detail: str) -> None:
        self.status = "failed"
        self.error = (detail or "")[:2000]
