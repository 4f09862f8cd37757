from __future__ import annotations

import os
import threading
import time
import unittest
from unittest.mock import MagicMock, patch

import requests

from thriftshop import create_app
from thriftshop.integrations.pricing.base import PricingProvider, summarize_prices
from thriftshop.integrations.pricing.ebay_provider import EbayPricingProvider, extract_sold_prices
from thriftshop.services.pricing_service import DEFAULT_PRICING_LIMIT, lookup_prices, select_pricing_items


class _SlowFlakyProvider(PricingProvider):
    name = "fake"

    def __init__(self):
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def sold_price_summary(self, query: str):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        try:
            time.sleep(0.02)
            if "broken" in query:
                raise requests.ConnectionError("upstream down")
            return summarize_prices([10, 20, 31])
        finally:
            with self._lock:
                self.active -= 1


class PricingLookupTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_env = {k: os.getenv(k) for k in ("SQLALCHEMY_DATABASE_URI", "INTEGRATIONS_MODE")}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        os.environ["INTEGRATIONS_MODE"] = "sandbox"
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        cls.client = cls.app.test_client()

    @classmethod
    def tearDownClass(cls):
        for key, value in cls._prev_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def test_summary_math(self):
        summary = summarize_prices(["12.5", 0, "bad", 20, 30])
        self.assertEqual(summary.min_price, 12.5)
        self.assertEqual(summary.max_price, 30.0)
        self.assertEqual(summary.avg_price, 21)
        self.assertEqual(summary.recent_sales, 3)
        self.assertIsNone(summarize_prices([0, "0"]))

    def test_average_rounds_halves_up(self):
        self.assertEqual(summarize_prices([10, 15]).avg_price, 13)
        self.assertEqual(summarize_prices([11, 14]).avg_price, 13)
        self.assertEqual(summarize_prices([10, 14]).avg_price, 12)
        self.assertEqual(summarize_prices([10.2, 10.2]).avg_price, 10)

    def test_select_caps_and_skips_invalid(self):
        items = [{"id": i, "title": f"Item {i}"} for i in range(1, 31)]
        items.insert(0, {"id": 0, "title": "zero id"})
        items.insert(0, {"id": "x"})
        items.insert(0, "junk")
        self.assertEqual(len(select_pricing_items(items)), DEFAULT_PRICING_LIMIT)
        self.assertEqual(len(select_pricing_items(items, 5)), 5)
        self.assertEqual(select_pricing_items(items, 1)[0]["id"], 1)
        self.assertEqual(select_pricing_items([{"id": 0, "title": "zero id"}, {"id": 5, "title": "  "}]), [])

    def test_failed_lookups_are_dropped_and_order_kept(self):
        provider = _SlowFlakyProvider()
        items = [
            {"id": 1, "title": "fiesta pitcher"},
            {"id": 2, "title": "broken radio"},
            {"id": 3, "title": "wool blanket"},
        ]
        with self.app.app_context():
            results = lookup_prices(provider, items, max_workers=3)
        self.assertEqual([r["id"] for r in results], [1, 3])
        self.assertEqual(results[0]["pricing"]["avgPrice"], 20)

    def test_lookups_run_concurrently_within_bound(self):
        provider = _SlowFlakyProvider()
        items = [{"id": i, "title": f"thing {i}"} for i in range(8)]
        with self.app.app_context():
            results = lookup_prices(provider, items, max_workers=4)
        self.assertEqual(len(results), 8)
        self.assertGreater(provider.peak, 1)
        self.assertLessEqual(provider.peak, 4)

    def test_endpoint_contract(self):
        res = self.client.post(
            "/api/search/pricing",
            json={"items": [{"id": "a", "title": "jadeite mug"}, {"id": "b", "title": "odd thing [nosales]"}]},
        )
        self.assertEqual(res.status_code, 200)
        pricing = (res.get_json(force=True) or {}).get("pricing")
        self.assertEqual([p["id"] for p in pricing], ["a", "b"])
        self.assertIsNotNone(pricing[0]["pricing"])
        self.assertIsNone(pricing[1]["pricing"])

        empty = self.client.post("/api/search/pricing", json={"items": []})
        self.assertEqual(empty.status_code, 400)

    def test_endpoint_without_credentials_is_503(self):
        with patch.dict(os.environ, {"INTEGRATIONS_MODE": "live", "EBAY_APP_ID": ""}):
            res = self.client.post("/api/search/pricing", json={"items": [{"id": 1, "title": "lamp"}]})
        self.assertEqual(res.status_code, 503)
        self.assertEqual((res.get_json(force=True) or {}).get("error"), "eBay pricing not configured")


class EbayProviderTestCase(unittest.TestCase):
    def _payload(self, *values):
        return {
            "findCompletedItemsResponse": [
                {
                    "searchResult": [
                        {"item": [{"sellingStatus": [{"currentPrice": [{"__value__": v}]}]} for v in values]}
                    ]
                }
            ]
        }

    def test_extracts_prices_from_nested_lists(self):
        self.assertEqual(extract_sold_prices(self._payload("5.00", "7.50")), ["5.00", "7.50"])
        self.assertEqual(extract_sold_prices({}), [])

    def test_requests_sold_fixed_price_items(self):
        response = MagicMock()
        response.status_code = 200
        response.content = b"{}"
        response.json.return_value = self._payload("10", "20")
        with patch("thriftshop.integrations.pricing.ebay_provider.requests.get", return_value=response) as get:
            summary = EbayPricingProvider(app_id="app-1").sold_price_summary("pyrex bowl")
        params = get.call_args.kwargs["params"]
        self.assertEqual(params["keywords"], "pyrex bowl")
        self.assertEqual(params["itemFilter(0).name"], "SoldItemsOnly")
        self.assertEqual(params["SECURITY-APPNAME"], "app-1")
        self.assertEqual(summary.to_dict(), {"minPrice": 10.0, "maxPrice": 20.0, "avgPrice": 15, "recentSales": 2})


if __name__ == "__main__":
    unittest.main()
