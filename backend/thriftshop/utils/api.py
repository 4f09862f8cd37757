from __future__ import annotations

from flask import jsonify, request

from thriftshop.utils.observability import get_request_id


def json_error(message: str, status: int, **extra):
    payload = {
        "ok": False,
        "error": message,
        "message": message,
        "status": int(status),
    }
    payload.update(extra)
    rid = (get_request_id() or "").strip()
    if rid:
        payload["trace_id"] = rid
    return jsonify(payload), int(status)


def json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def int_arg(value, default: int, *, minimum: int = 1, maximum: int = 500) -> int:
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        parsed = int(default)
    return max(minimum, min(parsed, maximum))
