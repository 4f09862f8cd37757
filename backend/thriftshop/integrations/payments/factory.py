from __future__ import annotations

import os

from thriftshop.integrations.common import IntegrationMisconfiguredError, require_live
from thriftshop.integrations.payments.base import PaymentsProvider
from thriftshop.integrations.payments.mock_provider import MockPaymentsProvider
from thriftshop.integrations.payments.stripe_provider import StripePaymentsProvider


def build_payments_provider() -> PaymentsProvider:
    mode = require_live("payments")
    if mode == "sandbox":
        return MockPaymentsProvider()

    secret_key = (os.getenv("STRIPE_SECRET_KEY") or "").strip()
    if not secret_key:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing STRIPE_SECRET_KEY")
    return StripePaymentsProvider(secret_key=secret_key)


def webhook_secret() -> str:
    return (os.getenv("STRIPE_WEBHOOK_SECRET") or "").strip()


def payment_health() -> dict:
    mode = (os.getenv("INTEGRATIONS_MODE") or "live").strip().lower()
    missing = []
    if mode == "live":
        if not (os.getenv("STRIPE_SECRET_KEY") or "").strip():
            missing.append("STRIPE_SECRET_KEY")
        if not webhook_secret():
            missing.append("STRIPE_WEBHOOK_SECRET")
    if mode == "disabled":
        status = "disabled"
    elif missing:
        status = "misconfigured"
    else:
        status = "configured"
    return {"status": status, "mode": mode, "provider": "mock" if mode == "sandbox" else "stripe", "missing": missing}
