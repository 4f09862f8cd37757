from __future__ import annotations

import os

from thriftshop.integrations.common import IntegrationMisconfiguredError, require_live
from thriftshop.integrations.email.base import EmailProvider
from thriftshop.integrations.email.mock_provider import MockEmailProvider
from thriftshop.integrations.email.resend_provider import ResendEmailProvider


FROM_EMAIL_ORDERS = "ThriftShopper <orders@thriftshopper.com>"


def sender_address() -> str:
    return (os.getenv("EMAIL_FROM_ORDERS") or FROM_EMAIL_ORDERS).strip()


def build_email_provider() -> EmailProvider:
    mode = require_live("email")
    if mode == "sandbox":
        return MockEmailProvider()

    api_key = (os.getenv("RESEND_API_KEY") or "").strip()
    if not api_key:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing RESEND_API_KEY")
    return ResendEmailProvider(api_key=api_key)
