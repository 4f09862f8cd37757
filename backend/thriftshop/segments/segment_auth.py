from __future__ import annotations

from flask import Blueprint, current_app, jsonify
from sqlalchemy.exc import IntegrityError

from thriftshop.extensions import db
from thriftshop.models import Profile, User
from thriftshop.utils.api import json_body, json_error
from thriftshop.utils.auth import current_user
from thriftshop.utils.jwt_utils import create_token


auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/auth")

SIGNUP_ROLES = ("buyer", "seller")
MIN_PASSWORD_LENGTH = 8


def _session_payload(user: User) -> dict:
    profile = Profile.query.filter_by(user_id=int(user.id)).first()
    return {
        "ok": True,
        "token": create_token(int(user.id), role=user.normalized_role),
        "user": user.to_dict(),
        "profile": profile.to_dict() if profile else None,
    }


@auth_bp.post("/register")
def register():
    data = json_body()
    email = User.normalize_email(data.get("email"))
    password = data.get("password") or ""
    name = (data.get("name") or "").strip() or email.split("@")[0]
    role = (data.get("role") or "buyer").strip().lower()

    if not email or "@" not in email:
        return json_error("A valid email is required", 400)
    if len(password) < MIN_PASSWORD_LENGTH:
        return json_error(f"Password must be at least {MIN_PASSWORD_LENGTH} characters", 400)
    if role not in SIGNUP_ROLES:
        return json_error("Role must be buyer or seller", 400)
    if User.by_email(email) is not None:
        return json_error("Email already in use", 409)

    user = User(name=name, email=email, role=role)
    user.set_password(password)
    db.session.add(user)
    try:
        db.session.flush()
        db.session.add(Profile(user_id=int(user.id), display_name=name, email=email))
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return json_error("Email already in use", 409)

    current_app.logger.info("user_registered user_id=%s role=%s", user.id, role)
    return jsonify(_session_payload(user)), 201


@auth_bp.post("/login")
def login():
    data = json_body()
    email = User.normalize_email(data.get("email"))
    password = data.get("password") or ""
    if not email or not password:
        return json_error("Email and password are required", 400)
    user = User.by_email(email)
    if user is None or not user.check_password(password):
        current_app.logger.info("login_failed email_domain=%s", email.split("@")[-1])
        return json_error("Invalid credentials", 401)
    return jsonify(_session_payload(user)), 200


@auth_bp.get("/me")
def me():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    profile = Profile.query.filter_by(user_id=int(user.id)).first()
    return jsonify({"ok": True, "user": user.to_dict(), "profile": profile.to_dict() if profile else None}), 200
