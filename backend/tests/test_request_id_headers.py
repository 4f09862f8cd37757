from __future__ import annotations

import os
import unittest
import uuid

import jwt

from thriftshop import create_app
from thriftshop.extensions import db
from thriftshop.models import User
from thriftshop.utils.jwt_utils import create_token, user_id_from_header


class RequestIdHeadersTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_env = {k: os.getenv(k) for k in ("SQLALCHEMY_DATABASE_URI", "DATABASE_URL")}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        os.environ["DATABASE_URL"] = "sqlite:///:memory:"
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        with cls.app.app_context():
            db.create_all()
            seller = User(name="Rid Seller", email="rid-seller@thriftshop.test", role="seller")
            seller.set_password("Passw0rd!")
            db.session.add(seller)
            db.session.commit()
            cls.seller_id = int(seller.id)
        cls.client = cls.app.test_client()

    @classmethod
    def tearDownClass(cls):
        for key, value in cls._prev_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def test_generated_when_missing(self):
        res = self.client.get("/api/health")
        self.assertEqual(res.status_code, 200)
        uuid.UUID((res.headers.get("X-Request-ID") or "").strip())

    def test_incoming_id_is_echoed(self):
        res = self.client.get("/api/listings", headers={"X-Request-ID": "rid-listings-7"})
        self.assertEqual(res.status_code, 200)
        self.assertEqual(res.headers.get("X-Request-ID"), "rid-listings-7")

    def test_unauthenticated_error_carries_trace_id(self):
        res = self.client.post("/api/listings", json={"title": "Brass lamp"}, headers={"X-Request-ID": "rid-401"})
        self.assertEqual(res.status_code, 401)
        body = res.get_json(force=True) or {}
        self.assertEqual(body.get("trace_id"), "rid-401")

    def test_foreign_token_type_is_ignored(self):
        forged = jwt.encode({"sub": str(self.seller_id), "type": "refresh"}, os.getenv("SECRET_KEY") or "dev-secret-change-me", algorithm="HS256")
        self.assertIsNone(user_id_from_header(f"Bearer {forged}"))
        res = self.client.post("/api/listings", json={"title": "Brass lamp"}, headers={"Authorization": f"Bearer {forged}"})
        self.assertEqual(res.status_code, 401)

    def test_session_token_resolves_user(self):
        token = create_token(self.seller_id, role="seller")
        self.assertEqual(user_id_from_header(f"Bearer {token}"), self.seller_id)
        self.assertIsNone(user_id_from_header(f"Token {token}"))
        res = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(res.status_code, 200)

    def test_health_reports_dependencies(self):
        body = self.client.get("/api/health").get_json(force=True) or {}
        self.assertTrue(body.get("ok"))
        self.assertEqual(body.get("service"), "thriftshop-backend")
        self.assertEqual(body.get("db"), "ok")
        self.assertIn(body.get("payments", {}).get("status"), ("configured", "misconfigured", "disabled"))
        self.assertIn("redis_connected", body.get("rate_limit", {}))


if __name__ == "__main__":
    unittest.main()
