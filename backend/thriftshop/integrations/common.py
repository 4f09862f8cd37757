from __future__ import annotations

import os


class IntegrationDisabledError(RuntimeError):
    pass


class IntegrationMisconfiguredError(RuntimeError):
    pass


class IntegrationError(RuntimeError):
    """Upstream call failed. Carries the upstream HTTP status when there was one."""

    def __init__(self, code: str, message: str = "", *, status: int | None = None, raw: dict | None = None):
        self.code = code
        self.message = message or code
        self.status = status
        self.raw = raw
        super().__init__(f"{code}:{self.message}")


def integrations_mode() -> str:
    return (os.getenv("INTEGRATIONS_MODE") or "live").strip().lower()


def env_first(*names: str) -> str:
    for name in names:
        value = (os.getenv(name) or "").strip()
        if value:
            return value
    return ""


def require_live(kind: str) -> str:
    mode = integrations_mode()
    if mode == "disabled":
        raise IntegrationDisabledError(f"INTEGRATION_DISABLED:{kind}")
    return mode


def response_json(r) -> dict:
    try:
        data = r.json() if r.content else {}
    except ValueError:
        return {"payload": (r.text or "")[:500]}
    return data if isinstance(data, dict) else {"payload": data}


def upstream_message(data: dict, status: int) -> str:
    err = data.get("error")
    if isinstance(err, dict):
        msg = err.get("message") or err.get("code")
    else:
        msg = err or data.get("message") or data.get("detail")
    return str(msg or f"HTTP {status}").strip()[:300]
