from __future__ import annotations

from flask import g, request
from sqlalchemy.exc import SQLAlchemyError

from thriftshop.extensions import db
from thriftshop.models import User
from thriftshop.utils.jwt_utils import user_id_from_header


def current_user() -> User | None:
    cached = getattr(g, "_current_user", None)
    if cached is not None:
        return cached
    uid = user_id_from_header(request.headers.get("Authorization", ""))
    if uid is None:
        return None
    try:
        user = db.session.get(User, uid)
    except SQLAlchemyError:
        db.session.rollback()
        return None
    if user is not None:
        g._current_user = user
    return user


def role_of(user: User | None) -> str:
    if not user:
        return "guest"
    return user.normalized_role


def is_admin(user: User | None) -> bool:
    return role_of(user) == "admin"
