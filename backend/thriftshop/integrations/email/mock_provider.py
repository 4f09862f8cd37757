from __future__ import annotations

import os

from thriftshop.integrations.email.base import EmailProvider, EmailResult


class MockEmailProvider(EmailProvider):
    name = "mock"

    def __init__(self):
        self.sent: list[dict] = []

    def send(self, *, to: str, subject: str, html: str, text: str, sender: str) -> EmailResult:
        if "[fail]" in (subject or "").lower() or (os.getenv("MOCK_EMAIL_FORCE_FAIL") or "").strip() == "1":
            return EmailResult(ok=False, code="RESEND_PROVIDER_DOWN", message="mock forced failure")
        self.sent.append({"to": to, "subject": subject, "sender": sender})
        return EmailResult(ok=True, code="OK", message="mock_sent", raw={"to": to})
