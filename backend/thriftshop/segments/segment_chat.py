from __future__ import annotations

import requests
from flask import Blueprint, current_app, jsonify

from thriftshop.integrations.chat.factory import build_chat_provider
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationError, IntegrationMisconfiguredError
from thriftshop.utils.api import json_error
from thriftshop.utils.auth import current_user


chat_bp = Blueprint("chat_bp", __name__, url_prefix="/api/stream")


@chat_bp.get("/token")
def stream_token():
    try:
        provider = build_chat_provider()
    except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
        current_app.logger.error("chat_unconfigured detail=%s", str(e))
        return json_error(
            "Stream Chat is not configured on the server",
            500,
            details="Missing STREAM_API_KEY/STREAM_APP_ID or STREAM_API_SECRET/STREAM_SECRET",
        )

    user = current_user()
    if user is None:
        return json_error("Authentication required", 401)

    uid = str(user.id)
    try:
        provider.upsert_user(user_id=uid, name=user.email or uid)
        token = provider.create_user_token(uid)
    except (IntegrationError, requests.RequestException) as e:
        current_app.logger.warning("chat_token_failed user_id=%s detail=%s", uid, str(e)[:200])
        return json_error("Failed to create Stream token", 500, details=getattr(e, "message", str(e)))

    return jsonify({"token": token, "userId": uid, "apiKey": provider.api_key}), 200
