from __future__ import annotations

import requests

from thriftshop.integrations.common import IntegrationError, response_json, upstream_message
from thriftshop.integrations.pricing.base import PriceSummary, PricingProvider, summarize_prices


EBAY_FINDING_URL = "https://svcs.ebay.com/services/search/FindingService/v1"
SOLD_ENTRIES_PER_PAGE = 20


def _first(value):
    if isinstance(value, list):
        return value[0] if value else None
    return value


def extract_sold_prices(payload: dict) -> list:
    response = _first(payload.get("findCompletedItemsResponse")) or {}
    search_result = _first(response.get("searchResult")) or {}
    items = search_result.get("item") or []
    prices = []
    for item in items:
        status = _first(item.get("sellingStatus")) or {}
        price = _first(status.get("currentPrice")) or {}
        prices.append(price.get("__value__") or "0")
    return prices


class EbayPricingProvider(PricingProvider):
    name = "ebay"

    def __init__(self, app_id: str):
        self.app_id = app_id

    def sold_price_summary(self, query: str) -> PriceSummary | None:
        params = {
            "OPERATION-NAME": "findCompletedItems",
            "SERVICE-VERSION": "1.0.0",
            "SECURITY-APPNAME": self.app_id,
            "RESPONSE-DATA-FORMAT": "JSON",
            "REST-PAYLOAD": "",
            "keywords": query,
            "itemFilter(0).name": "SoldItemsOnly",
            "itemFilter(0).value": "true",
            "itemFilter(1).name": "ListingType",
            "itemFilter(1).value": "FixedPrice",
            "sortOrder": "EndTimeSoonest",
            "paginationInput.entriesPerPage": str(SOLD_ENTRIES_PER_PAGE),
        }
        r = requests.get(EBAY_FINDING_URL, params=params, timeout=15)
        j = response_json(r)
        if r.status_code < 200 or r.status_code >= 300:
            raise IntegrationError("EBAY_LOOKUP_FAILED", upstream_message(j, r.status_code), status=r.status_code, raw=j)
        return summarize_prices(extract_sold_prices(j))
