"""Request ids, the JSON access log and optional Sentry reporting."""
from __future__ import annotations

import hashlib
import json
import os
import time
import uuid
from datetime import datetime

import sentry_sdk
from flask import g, request
from sentry_sdk.integrations.flask import FlaskIntegration


REQUEST_ID_HEADER = "X-Request-Id"

SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "stripe-signature", "x-api-key"})
SENSITIVE_FIELDS = frozenset({"password", "clientSecret", "client_secret", "shippingInfo"})

QUIET_PATHS = frozenset({"/", "/api/health"})


def get_request_id() -> str:
    return getattr(g, "request_id", "")


def _sample_rate() -> float:
    try:
        rate = float((os.getenv("SENTRY_TRACES_SAMPLE_RATE") or "0").strip())
    except ValueError:
        return 0.0
    return max(0.0, min(rate, 1.0))


def init_sentry(app) -> None:
    dsn = (os.getenv("SENTRY_DSN") or "").strip()
    if not dsn:
        app.logger.info("sentry_disabled reason=no_dsn")
        return
    sentry_sdk.init(
        dsn=dsn,
        environment=os.getenv("SENTRY_ENVIRONMENT") or os.getenv("THRIFTSHOP_ENV") or "dev",
        release=os.getenv("GIT_SHA") or "unknown",
        integrations=[FlaskIntegration()],
        send_default_pii=False,
        traces_sample_rate=_sample_rate(),
        before_send=_before_send_scrub,
    )
    app.logger.info("sentry_enabled env=%s", os.getenv("THRIFTSHOP_ENV") or "dev")


def _before_send_scrub(event, hint):
    req = event.get("request") or {}
    headers = req.get("headers") or {}
    req["headers"] = {k: ("[REDACTED]" if k.lower() in SENSITIVE_HEADERS else v) for k, v in headers.items()}
    body = req.get("data")
    if isinstance(body, dict):
        req["data"] = {k: ("[REDACTED]" if k in SENSITIVE_FIELDS else v) for k, v in body.items()}
    event["request"] = req
    return event


def _ip_fingerprint(salt: str) -> str:
    ip = request.headers.get("X-Forwarded-For", request.remote_addr or "")
    return hashlib.sha256(f"{salt}:{ip}".encode("utf-8")).hexdigest()[:16]


def install_request_observers(app) -> None:
    @app.before_request
    def _begin_request():
        g.request_id = (request.headers.get(REQUEST_ID_HEADER) or "").strip() or str(uuid.uuid4())
        g.request_started_at = time.perf_counter()
        sentry_sdk.set_tag("request_id", g.request_id)

    @app.after_request
    def _finish_request(response):
        rid = get_request_id() or str(uuid.uuid4())
        response.headers[REQUEST_ID_HEADER] = rid
        if request.path in QUIET_PATHS and response.status_code < 400:
            return response
        started = getattr(g, "request_started_at", None)
        app.logger.info(json.dumps({
            "ts": datetime.utcnow().isoformat(),
            "request_id": rid,
            "method": request.method,
            "path": request.path,
            "endpoint": request.endpoint or "",
            "status": int(response.status_code),
            "latency_ms": round((time.perf_counter() - started) * 1000.0, 2) if started is not None else None,
            "user_id": getattr(g, "auth_user_id", None),
            "ip_hash": _ip_fingerprint(app.config.get("SECRET_KEY") or "thriftshop"),
        }))
        return response
