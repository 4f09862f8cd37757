from __future__ import annotations

import os
import time
import unittest

from thriftshop import create_app
from thriftshop.extensions import db
from thriftshop.models import Profile, User


class AuthFlowTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_db_uri = os.getenv("SQLALCHEMY_DATABASE_URI")
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        with cls.app.app_context():
            db.create_all()
        cls.client = cls.app.test_client()

    @classmethod
    def tearDownClass(cls):
        if cls._prev_db_uri is None:
            os.environ.pop("SQLALCHEMY_DATABASE_URI", None)
        else:
            os.environ["SQLALCHEMY_DATABASE_URI"] = cls._prev_db_uri

    def _email(self, prefix: str) -> str:
        return f"{prefix}-{time.time_ns()}@thriftshop.test"

    def test_register_login_me_roundtrip(self):
        email = self._email("seller")
        reg = self.client.post(
            "/api/auth/register",
            json={"email": email, "password": "Passw0rd!", "name": "Rae", "role": "seller"},
        )
        self.assertEqual(reg.status_code, 201)
        body = reg.get_json(force=True) or {}
        self.assertTrue(body.get("token"))
        self.assertEqual(body["user"]["role"], "seller")
        self.assertEqual(body["profile"]["display_name"], "Rae")

        login = self.client.post("/api/auth/login", json={"email": email.upper(), "password": "Passw0rd!"})
        self.assertEqual(login.status_code, 200)
        token = (login.get_json(force=True) or {}).get("token")

        me = self.client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        self.assertEqual(me.status_code, 200)
        self.assertEqual((me.get_json(force=True) or {})["user"]["email"], email)

        with self.app.app_context():
            user = User.query.filter_by(email=email).first()
            self.assertIsNotNone(user)
            self.assertIsNotNone(Profile.query.filter_by(user_id=user.id).first())

    def test_register_rejects_bad_input(self):
        bad_email = self.client.post("/api/auth/register", json={"email": "nope", "password": "Passw0rd!"})
        self.assertEqual(bad_email.status_code, 400)
        short = self.client.post("/api/auth/register", json={"email": self._email("s"), "password": "short"})
        self.assertEqual(short.status_code, 400)
        admin = self.client.post(
            "/api/auth/register",
            json={"email": self._email("a"), "password": "Passw0rd!", "role": "admin"},
        )
        self.assertEqual(admin.status_code, 400)

    def test_duplicate_email_conflicts(self):
        email = self._email("dup")
        first = self.client.post("/api/auth/register", json={"email": email, "password": "Passw0rd!"})
        self.assertEqual(first.status_code, 201)
        again = self.client.post("/api/auth/register", json={"email": email, "password": "Passw0rd!"})
        self.assertEqual(again.status_code, 409)

    def test_bad_credentials_and_missing_token(self):
        email = self._email("buyer")
        self.client.post("/api/auth/register", json={"email": email, "password": "Passw0rd!"})
        res = self.client.post("/api/auth/login", json={"email": email, "password": "wrong-pass"})
        self.assertEqual(res.status_code, 401)
        me = self.client.get("/api/auth/me")
        self.assertEqual(me.status_code, 401)
        garbage = self.client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        self.assertEqual(garbage.status_code, 401)


if __name__ == "__main__":
    unittest.main()
