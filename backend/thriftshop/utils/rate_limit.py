"""Fixed-window request limiting for the API.

Counters live in Redis when ``RATE_LIMIT_REDIS_URL``/``REDIS_URL`` points at a
reachable server and fall back to per-process sliding windows otherwise, so a
single web worker still enforces limits without Redis.
"""
from __future__ import annotations

import os
import threading
import time
from dataclasses import dataclass

import redis


EXEMPT_PATHS = frozenset({"/api/stripe/webhook"})


@dataclass(frozen=True)
class RateRule:
    name: str
    limit: int
    window_seconds: int
    per_user: bool = True
    per_route: bool = True


AUTH_RULES = (
    RateRule("auth:minute", 10, 60, per_user=False, per_route=False),
    RateRule("auth:hour", 30, 3600, per_user=False, per_route=False),
)
BROWSE_RULE = RateRule("browse", 120, 60)
WRITE_RULE = RateRule("write", 60, 60)


def _flag(name: str, default: bool) -> bool:
    raw = (os.getenv(name) or "").strip().lower()
    if not raw:
        return bool(default)
    return raw in ("1", "true", "yes", "on")


def rate_limit_enabled(default: bool = True) -> bool:
    return _flag("RATE_LIMIT_ENABLED", default)


def trust_proxy_headers(default: bool = False) -> bool:
    return _flag("TRUST_PROXY_HEADERS", default)


def _redis_url() -> str:
    return (os.getenv("RATE_LIMIT_REDIS_URL") or os.getenv("REDIS_URL") or "").strip()


class WindowLimiter:
    def __init__(self):
        self._lock = threading.Lock()
        self._windows: dict[str, list[float]] = {}
        self._client = None
        self._client_checked = False
        self.counters = {"redis_hits": 0, "redis_errors": 0, "memory_blocks": 0}

    def _bump(self, name: str) -> None:
        with self._lock:
            self.counters[name] += 1

    def _redis(self):
        if not rate_limit_enabled(True):
            return None
        with self._lock:
            if self._client_checked:
                return self._client
            self._client_checked = True
        url = _redis_url()
        if not url:
            return None
        try:
            client = redis.Redis.from_url(url, decode_responses=True, socket_connect_timeout=0.75, socket_timeout=0.75)
            client.ping()
        except redis.RedisError:
            return None
        with self._lock:
            self._client = client
        return client

    def hit(self, key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
        """Count one request against ``key``. Returns ``(allowed, retry_after_seconds)``."""
        window = max(1, int(window_seconds))
        cap = max(1, int(limit))
        client = self._redis()
        if client is not None:
            now = int(time.time())
            bucket_key = f"thriftshop:rl:{key}:{now // window}"
            try:
                count = int(client.incr(bucket_key))
                if count == 1:
                    client.expire(bucket_key, window + 1)
            except redis.RedisError:
                self._bump("redis_errors")
            else:
                self._bump("redis_hits")
                if count <= cap:
                    return True, 0
                return False, max(1, window - (now % window))
        return self._hit_memory(key, cap, window)

    def _hit_memory(self, key: str, cap: int, window: int) -> tuple[bool, int]:
        now = time.time()
        with self._lock:
            recent = [ts for ts in self._windows.get(key, ()) if ts >= now - window]
            if len(recent) >= cap:
                self._windows[key] = recent
                self.counters["memory_blocks"] += 1
                return False, int(max(1, window - (now - recent[0])))
            recent.append(now)
            self._windows[key] = recent
        return True, 0

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def stats(self) -> dict:
        with self._lock:
            out = dict(self.counters)
            connected = self._client is not None
        out.update(
            enabled=rate_limit_enabled(True),
            redis_configured=bool(_redis_url()),
            redis_connected=connected,
        )
        return out


_LIMITER = WindowLimiter()


def check_limit(key: str, *, limit: int, window_seconds: int) -> tuple[bool, int]:
    return _LIMITER.hit(key, limit=limit, window_seconds=window_seconds)


def reset_memory_windows() -> None:
    _LIMITER.reset()


def limiter_stats() -> dict:
    return _LIMITER.stats()


def client_ip(req) -> str:
    if trust_proxy_headers(False):
        forwarded = (req.headers.get("X-Forwarded-For") or "").split(",")[0].strip()
        if forwarded:
            return forwarded
        real_ip = (req.headers.get("X-Real-IP") or "").strip()
        if real_ip:
            return real_ip
    return (req.remote_addr or "").strip() or "unknown"


def rules_for(path: str, method: str) -> tuple[RateRule, ...]:
    if not path.startswith("/api/") or path in EXEMPT_PATHS or method == "OPTIONS":
        return ()
    if path.startswith("/api/auth"):
        return AUTH_RULES
    return (BROWSE_RULE,) if method == "GET" else (WRITE_RULE,)


def enforce_request_limits(req, user_id: int | None = None) -> tuple[bool, int]:
    """Apply every rule matching ``req``; the first exhausted rule wins."""
    method = (req.method or "GET").upper()
    path = req.path or ""
    for rule in rules_for(path, method):
        subject = f"u:{int(user_id)}" if rule.per_user and user_id is not None else f"ip:{client_ip(req)}"
        key = f"{rule.name}:{method}:{path}:{subject}" if rule.per_route else f"{rule.name}:{subject}"
        allowed, retry_after = check_limit(key, limit=rule.limit, window_seconds=rule.window_seconds)
        if not allowed:
            return False, retry_after
    return True, 0


__all__ = [
    "RateRule",
    "check_limit",
    "client_ip",
    "enforce_request_limits",
    "limiter_stats",
    "rate_limit_enabled",
    "reset_memory_windows",
    "rules_for",
]
