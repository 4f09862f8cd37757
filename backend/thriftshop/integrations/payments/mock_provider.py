from __future__ import annotations

import uuid

from thriftshop.integrations.payments.base import ConnectAccountResult, PaymentIntentResult, PaymentsProvider


class MockPaymentsProvider(PaymentsProvider):
    name = "mock"

    def create_payment_intent(self, *, amount_cents: int, currency: str, metadata: dict | None = None) -> PaymentIntentResult:
        pid = f"pi_mock_{uuid.uuid4().hex[:16]}"
        return PaymentIntentResult(
            id=pid,
            client_secret=f"{pid}_secret_mock",
            amount=int(amount_cents),
            currency=(currency or "usd").lower(),
            status="requires_payment_method",
            raw={"metadata": metadata or {}, "provider": self.name},
        )

    def create_account(self, *, email: str, metadata: dict | None = None) -> ConnectAccountResult:
        return ConnectAccountResult(
            id=f"acct_mock_{uuid.uuid4().hex[:12]}",
            details_submitted=False,
            charges_enabled=False,
            payouts_enabled=False,
            raw={"email": email, "metadata": metadata or {}},
        )

    def retrieve_account(self, account_id: str) -> ConnectAccountResult:
        return ConnectAccountResult(
            id=account_id,
            details_submitted=True,
            charges_enabled=True,
            payouts_enabled=True,
            raw={"provider": self.name},
        )

    def create_account_link(self, *, account_id: str, refresh_url: str, return_url: str) -> str:
        return f"https://example.com/mock/onboard?account={account_id}"
