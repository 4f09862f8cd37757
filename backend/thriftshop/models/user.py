from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import check_password_hash, generate_password_hash

from thriftshop.extensions import db


ROLES = ("buyer", "seller", "admin")


class User(db.Model, UserMixin):
    __tablename__ = "users"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False, default="")
    email = db.Column(db.String(255), unique=True, index=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(32), nullable=False, default="buyer")
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @staticmethod
    def normalize_email(raw) -> str:
        return (raw or "").strip().lower()

    @classmethod
    def by_email(cls, raw) -> "User | None":
        email = cls.normalize_email(raw)
        return cls.query.filter_by(email=email).first() if email else None

    @property
    def normalized_role(self) -> str:
        role = (self.role or "buyer").strip().lower()
        return role if role in ROLES else "buyer"

    @property
    def is_admin(self) -> bool:
        return self.normalized_role == "admin"

    def set_password(self, raw_password: str) -> None:
        self.password_hash = generate_password_hash(raw_password)

    def check_password(self, raw_password: str) -> bool:
        return bool(self.password_hash) and check_password_hash(self.password_hash, raw_password)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.normalized_role,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
