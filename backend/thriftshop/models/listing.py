from datetime import datetime, timedelta
import json

from thriftshop.extensions import db
from thriftshop.utils.tags import normalize_tag_column, tags_to_db_format


LISTING_STATUSES = ("draft", "active", "sold", "hidden")
JUST_SOLD_WINDOW = timedelta(days=7)


class Listing(db.Model):
    __tablename__ = "listings"

    id = db.Column(db.Integer, primary_key=True)

    seller_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    price = db.Column(db.Float, nullable=False, default=0.0)
    category = db.Column(db.String(120), nullable=True, index=True)
    condition = db.Column(db.String(64), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="draft", index=True)

    # Written comma-joined by set_tags; older rows may hold JSON arrays, so read via normalize_tag_column.
    styles = db.Column(db.Text, nullable=True)
    moods = db.Column(db.Text, nullable=True)
    intents = db.Column(db.Text, nullable=True)
    keywords = db.Column(db.Text, nullable=True)
    story_text = db.Column(db.Text, nullable=True)

    original_image_url = db.Column(db.String(1024), nullable=True)
    clean_image_url = db.Column(db.String(1024), nullable=True)

    # JSON array of floats
    embedding = db.Column(db.Text, nullable=True)

    # Denormalized at publish time for checkout and cards.
    seller_stripe_account_id = db.Column(db.String(64), nullable=True)
    seller_name = db.Column(db.String(120), nullable=True)

    sold_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
    updated_at = db.Column(db.DateTime, nullable=True)

    def tag_list(self, column: str) -> list[str]:
        return normalize_tag_column(getattr(self, column, None))

    def set_tags(self, column: str, tags) -> None:
        setattr(self, column, tags_to_db_format(normalize_tag_column(tags)))

    def embedding_vector(self) -> list[float]:
        raw = self.embedding
        if not raw:
            return []
        try:
            parsed = json.loads(raw)
        except ValueError:
            return []
        if not isinstance(parsed, list):
            return []
        try:
            return [float(x) for x in parsed]
        except (TypeError, ValueError):
            return []

    def set_embedding(self, vector) -> None:
        self.embedding = json.dumps([float(x) for x in (vector or [])]) if vector else None

    def is_just_sold(self, now: datetime | None = None) -> bool:
        if (self.status or "") != "sold" or not self.sold_at:
            return False
        elapsed = (now or datetime.utcnow()) - self.sold_at
        return timedelta(0) <= elapsed < JUST_SOLD_WINDOW

    def to_dict(self) -> dict:
        return {
            "id": int(self.id),
            "seller_id": int(self.seller_id),
            "title": self.title or "",
            "description": self.description or "",
            "price": float(self.price or 0.0),
            "category": self.category or "",
            "condition": self.condition or "",
            "status": self.status or "draft",
            "styles": self.tag_list("styles"),
            "moods": self.tag_list("moods"),
            "intents": self.tag_list("intents"),
            "keywords": self.keywords or "",
            "story_text": self.story_text or "",
            "original_image_url": self.original_image_url or "",
            "clean_image_url": self.clean_image_url or "",
            "seller_name": self.seller_name or "",
            "sold_at": self.sold_at.isoformat() if self.sold_at else None,
            "just_sold": self.is_just_sold(),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
