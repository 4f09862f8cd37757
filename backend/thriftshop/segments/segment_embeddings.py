from __future__ import annotations

import os

from flask import Blueprint, current_app, jsonify, request

from thriftshop.integrations.ai.factory import build_ai_provider
from thriftshop.integrations.common import IntegrationDisabledError, IntegrationMisconfiguredError
from thriftshop.services.embedding_service import embedding_samples, mood_filter_report, regenerate_embeddings
from thriftshop.utils.api import int_arg, json_body, json_error
from thriftshop.utils.auth import current_user, is_admin


embeddings_bp = Blueprint("embeddings_bp", __name__, url_prefix="/api")


def _debug_routes_enabled() -> bool:
    return (os.getenv("DEBUG_ROUTES") or "").strip() == "1"


def _admin_guard():
    user = current_user()
    if user is None:
        return json_error("Unauthorized", 401)
    if not is_admin(user):
        return json_error("Forbidden", 403)
    return None


@embeddings_bp.post("/embeddings/regenerate")
def regenerate():
    denied = _admin_guard()
    if denied is not None:
        return denied
    data = json_body()
    dry_run = bool(data.get("dryRun"))
    limit = data.get("limit")
    provider = None
    if not dry_run:
        try:
            provider = build_ai_provider()
        except (IntegrationDisabledError, IntegrationMisconfiguredError) as e:
            return json_error("Failed to regenerate embeddings", 500, details=str(e))
    try:
        result = regenerate_embeddings(provider, dry_run=dry_run, limit=limit)
    except Exception as e:
        current_app.logger.exception("embeddings_regenerate_failed")
        return json_error("Failed to regenerate embeddings", 500, details=str(e))
    return jsonify(result), 200


@embeddings_bp.get("/embeddings/test-sample")
def test_sample():
    denied = _admin_guard()
    if denied is not None:
        return denied
    limit = int_arg(request.args.get("limit"), 5, maximum=100)
    return jsonify(embedding_samples(limit)), 200


@embeddings_bp.get("/debug/mood-filter")
def debug_mood_filter():
    if not _debug_routes_enabled():
        return jsonify({"message": "Not found"}), 404
    moods = [m.strip() for m in (request.args.get("moods") or "").split(",") if m.strip()]
    if not moods:
        return jsonify(
            {
                "error": "No moods provided. Use ?moods=Collectibles,Antique",
                "example": "/api/debug/mood-filter?moods=Collectibles,Antique&limit=10",
            }
        ), 200
    limit = int_arg(request.args.get("limit"), 10, maximum=100)
    return jsonify(mood_filter_report(moods, limit)), 200
