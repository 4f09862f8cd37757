from __future__ import annotations

from dataclasses import dataclass


@dataclass
class PaymentIntentResult:
    id: str
    client_secret: str
    amount: int
    currency: str
    status: str
    raw: dict | None = None


@dataclass
class ConnectAccountResult:
    id: str
    details_submitted: bool
    charges_enabled: bool
    payouts_enabled: bool
    raw: dict | None = None


class PaymentsProvider:
    name = "unknown"

    def create_payment_intent(self, *, amount_cents: int, currency: str, metadata: dict | None = None) -> PaymentIntentResult:
        raise NotImplementedError

    def create_account(self, *, email: str, metadata: dict | None = None) -> ConnectAccountResult:
        raise NotImplementedError

    def retrieve_account(self, account_id: str) -> ConnectAccountResult:
        raise NotImplementedError

    def create_account_link(self, *, account_id: str, refresh_url: str, return_url: str) -> str:
        raise NotImplementedError
