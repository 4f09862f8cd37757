import os
import time
from typing import Any, Dict, Optional

import jwt


TOKEN_TYPE = "session"
DEFAULT_TTL_SECONDS = 60 * 60 * 24 * 7


def _secret() -> str:
    return os.getenv("SECRET_KEY") or "dev-secret-change-me"


def _ttl_seconds() -> int:
    raw = (os.getenv("SESSION_TTL_SECONDS") or "").strip()
    try:
        return max(60, int(raw)) if raw else DEFAULT_TTL_SECONDS
    except ValueError:
        return DEFAULT_TTL_SECONDS


def create_token(user_id: int, role: Optional[str] = None, ttl_seconds: Optional[int] = None) -> str:
    """HS256 session token; ``sub`` carries the user id as a string."""
    issued = int(time.time())
    claims: Dict[str, Any] = {
        "sub": str(int(user_id)),
        "iat": issued,
        "exp": issued + int(ttl_seconds or _ttl_seconds()),
        "type": TOKEN_TYPE,
    }
    if role:
        claims["role"] = role
    return jwt.encode(claims, _secret(), algorithm="HS256")


def decode_token(token: str) -> Optional[Dict[str, Any]]:
    try:
        claims = jwt.decode(token, _secret(), algorithms=["HS256"])
    except jwt.PyJWTError:
        return None
    if claims.get("type") != TOKEN_TYPE:
        return None
    return claims


def get_bearer_token(auth_header: str) -> Optional[str]:
    scheme, _, value = (auth_header or "").strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def user_id_from_header(auth_header: str) -> Optional[int]:
    token = get_bearer_token(auth_header)
    claims = decode_token(token) if token else None
    if not claims:
        return None
    try:
        return int(claims.get("sub"))
    except (TypeError, ValueError):
        return None
