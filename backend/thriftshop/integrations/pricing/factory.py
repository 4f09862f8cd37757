from __future__ import annotations

import os

from thriftshop.integrations.common import IntegrationMisconfiguredError, require_live
from thriftshop.integrations.pricing.base import PricingProvider
from thriftshop.integrations.pricing.ebay_provider import EbayPricingProvider
from thriftshop.integrations.pricing.mock_provider import MockPricingProvider


def build_pricing_provider() -> PricingProvider:
    mode = require_live("pricing")
    if mode == "sandbox":
        return MockPricingProvider()

    app_id = (os.getenv("EBAY_APP_ID") or "").strip()
    if not app_id:
        raise IntegrationMisconfiguredError("INTEGRATION_MISCONFIGURED:missing EBAY_APP_ID")
    return EbayPricingProvider(app_id=app_id)
