from __future__ import annotations

import requests

from thriftshop.integrations.common import response_json, upstream_message
from thriftshop.integrations.email.base import EmailProvider, EmailResult


RESEND_URL = "https://api.resend.com/emails"


class ResendEmailProvider(EmailProvider):
    name = "resend"

    def __init__(self, api_key: str):
        self.api_key = api_key

    def send(self, *, to: str, subject: str, html: str, text: str, sender: str) -> EmailResult:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "from": sender,
            "to": [(to or "").strip()],
            "subject": subject,
            "html": html,
            "text": text,
        }
        try:
            r = requests.post(RESEND_URL, headers=headers, json=payload, timeout=12)
        except requests.Timeout:
            return EmailResult(ok=False, code="RESEND_PROVIDER_DOWN", message="timeout")
        except requests.RequestException as e:
            return EmailResult(ok=False, code="RESEND_PROVIDER_DOWN", message=str(e)[:200])
        data = response_json(r)
        if 200 <= r.status_code < 300:
            return EmailResult(ok=True, code="OK", message="sent", provider_id=str(data.get("id") or ""), raw=data)
        code = "RESEND_AUTH_FAILED" if r.status_code in (401, 403) else "RESEND_REJECTED"
        if r.status_code == 429:
            code = "RESEND_RATE_LIMITED"
        elif r.status_code >= 500:
            code = "RESEND_PROVIDER_DOWN"
        return EmailResult(ok=False, code=code, message=upstream_message(data, r.status_code), raw=data)
