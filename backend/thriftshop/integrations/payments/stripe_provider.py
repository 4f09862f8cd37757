from __future__ import annotations

import hashlib
import hmac
import json
import time

import requests

from thriftshop.integrations.common import IntegrationError, response_json, upstream_message
from thriftshop.integrations.payments.base import ConnectAccountResult, PaymentIntentResult, PaymentsProvider


STRIPE_BASE = "https://api.stripe.com/v1"
WEBHOOK_TOLERANCE_SECONDS = 300


def _form_metadata(metadata: dict | None) -> dict:
    out = {}
    for key, value in (metadata or {}).items():
        if value is None:
            continue
        out[f"metadata[{key}]"] = str(value)
    return out


def _account_result(data: dict) -> ConnectAccountResult:
    return ConnectAccountResult(
        id=str(data.get("id") or ""),
        details_submitted=bool(data.get("details_submitted")),
        charges_enabled=bool(data.get("charges_enabled")),
        payouts_enabled=bool(data.get("payouts_enabled")),
        raw=data,
    )


class StripePaymentsProvider(PaymentsProvider):
    name = "stripe"

    def __init__(self, secret_key: str):
        self.secret_key = secret_key

    def _headers(self) -> dict:
        return {"Authorization": f"Bearer {self.secret_key}"}

    def _call(self, method: str, path: str, code: str, data: dict | None = None) -> dict:
        r = requests.request(method, f"{STRIPE_BASE}{path}", headers=self._headers(), data=data, timeout=25)
        j = response_json(r)
        if r.status_code < 200 or r.status_code >= 300:
            raise IntegrationError(code, upstream_message(j, r.status_code), status=r.status_code, raw=j)
        return j

    def create_payment_intent(self, *, amount_cents: int, currency: str, metadata: dict | None = None) -> PaymentIntentResult:
        payload = {
            "amount": int(amount_cents),
            "currency": (currency or "usd").lower(),
            "automatic_payment_methods[enabled]": "true",
        }
        payload.update(_form_metadata(metadata))
        j = self._call("POST", "/payment_intents", "STRIPE_INTENT_FAILED", payload)
        return PaymentIntentResult(
            id=str(j.get("id") or ""),
            client_secret=str(j.get("client_secret") or ""),
            amount=int(j.get("amount") or amount_cents),
            currency=str(j.get("currency") or currency),
            status=str(j.get("status") or ""),
            raw=j,
        )

    def create_account(self, *, email: str, metadata: dict | None = None) -> ConnectAccountResult:
        payload = {
            "type": "standard",
            "country": "US",
            "email": email,
            "capabilities[card_payments][requested]": "true",
            "capabilities[transfers][requested]": "true",
        }
        payload.update(_form_metadata(metadata))
        return _account_result(self._call("POST", "/accounts", "STRIPE_ACCOUNT_FAILED", payload))

    def retrieve_account(self, account_id: str) -> ConnectAccountResult:
        aid = (account_id or "").strip()
        return _account_result(self._call("GET", f"/accounts/{aid}", "STRIPE_ACCOUNT_FAILED"))

    def create_account_link(self, *, account_id: str, refresh_url: str, return_url: str) -> str:
        payload = {
            "account": account_id,
            "refresh_url": refresh_url,
            "return_url": return_url,
            "type": "account_onboarding",
        }
        j = self._call("POST", "/account_links", "STRIPE_ACCOUNT_LINK_FAILED", payload)
        return str(j.get("url") or "")


class WebhookSignatureError(ValueError):
    pass


def _parse_signature_header(header: str) -> tuple[int | None, list[str]]:
    timestamp = None
    signatures = []
    for part in (header or "").split(","):
        key, _, value = part.strip().partition("=")
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                timestamp = None
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def construct_webhook_event(
    payload: bytes,
    sig_header: str,
    secret: str,
    *,
    tolerance: int = WEBHOOK_TOLERANCE_SECONDS,
    now: int | None = None,
) -> dict:
    timestamp, signatures = _parse_signature_header(sig_header)
    if timestamp is None or not signatures:
        raise WebhookSignatureError("Unable to extract timestamp and signatures from header")
    signed = f"{timestamp}.".encode("utf-8") + (payload or b"")
    expected = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature for payload")
    current = int(now if now is not None else time.time())
    if tolerance and abs(current - timestamp) > tolerance:
        raise WebhookSignatureError("Timestamp outside the tolerance zone")
    try:
        event = json.loads((payload or b"").decode("utf-8"))
    except (UnicodeDecodeError, ValueError) as e:
        raise WebhookSignatureError(f"Invalid payload: {e}") from e
    if not isinstance(event, dict):
        raise WebhookSignatureError("Invalid payload: not an object")
    return event
