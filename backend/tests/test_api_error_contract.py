from __future__ import annotations

import os
import unittest
from unittest.mock import patch

from thriftshop import create_app
from thriftshop.extensions import db


class ApiErrorContractTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_env = {k: os.getenv(k) for k in ("SQLALCHEMY_DATABASE_URI",)}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        with cls.app.app_context():
            db.create_all()
        cls.client = cls.app.test_client()

    @classmethod
    def tearDownClass(cls):
        for key, value in cls._prev_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def _envelope(self, res, status: int) -> dict:
        self.assertEqual(res.status_code, status)
        self.assertTrue(res.is_json)
        body = res.get_json(force=True) or {}
        self.assertIs(body.get("ok"), False)
        self.assertEqual(int(body.get("status") or 0), status)
        self.assertTrue(str(body.get("message") or "").strip())
        self.assertEqual(body.get("trace_id"), res.headers.get("X-Request-Id"))
        return body

    def test_unknown_api_route(self):
        body = self._envelope(self.client.get("/api/does-not-exist"), 404)
        self.assertEqual(body.get("error"), "Not Found")

    def test_wrong_method_on_order_route(self):
        self._envelope(self.client.get("/api/create-order"), 405)

    def test_segment_validation_errors_share_the_envelope(self):
        body = self._envelope(self.client.post("/api/search/semantic", json={}), 400)
        self.assertEqual(body.get("error"), "Query is required")

    def test_unhandled_exception_is_json_500(self):
        with patch("thriftshop.segments.segment_listings.int_arg", side_effect=RuntimeError("boom")):
            body = self._envelope(self.client.get("/api/listings"), 500)
        self.assertEqual(body.get("error"), "InternalServerError")
        self.assertNotIn("boom", body.get("message", ""))

    def test_non_api_404_is_not_rewritten(self):
        res = self.client.get("/no-such-page")
        self.assertEqual(res.status_code, 404)
        self.assertFalse(res.is_json)


if __name__ == "__main__":
    unittest.main()
