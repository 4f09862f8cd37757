from __future__ import annotations

import os
import time
import unittest
from unittest.mock import patch

from thriftshop import create_app
from thriftshop.extensions import db
from thriftshop.integrations.common import IntegrationError
from thriftshop.integrations.payments.base import ConnectAccountResult
from thriftshop.models import Listing, Profile


class ListingsPublishTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_env = {k: os.getenv(k) for k in ("SQLALCHEMY_DATABASE_URI", "INTEGRATIONS_MODE")}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        os.environ["INTEGRATIONS_MODE"] = "sandbox"
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

    def _register(self, role: str) -> tuple[int, dict]:
        email = f"{role}-{time.time_ns()}@thriftshop.test"
        res = self.client.post("/api/auth/register", json={"email": email, "password": "Passw0rd!", "role": role})
        body = res.get_json(force=True) or {}
        return int(body["user"]["id"]), {"Authorization": f"Bearer {body['token']}"}

    def _create_listing(self, headers: dict, **fields) -> int:
        payload = {"title": "Brass Owl Lamp", "price": 45, "styles": ["vintage", "brass"]}
        payload.update(fields)
        res = self.client.post("/api/listings", json=payload, headers=headers)
        self.assertEqual(res.status_code, 201)
        return int((res.get_json(force=True) or {})["listing"]["id"])

    def test_buyers_cannot_create_listings(self):
        _uid, headers = self._register("buyer")
        res = self.client.post("/api/listings", json={"title": "Nope"}, headers=headers)
        self.assertEqual(res.status_code, 403)

    def test_draft_hidden_from_public_until_published(self):
        _uid, headers = self._register("seller")
        listing_id = self._create_listing(headers)
        self.assertEqual(self.client.get(f"/api/listings/{listing_id}").status_code, 404)
        own = self.client.get(f"/api/listings/{listing_id}", headers=headers)
        self.assertEqual(own.status_code, 200)
        self.assertEqual((own.get_json(force=True) or {})["listing"]["styles"], ["vintage", "brass"])

    def test_publish_blocked_without_payouts(self):
        _uid, headers = self._register("seller")
        listing_id = self._create_listing(headers)
        res = self.client.post("/api/listings/publish", json={"listingId": listing_id}, headers=headers)
        self.assertEqual(res.status_code, 403)
        self.assertEqual((res.get_json(force=True) or {}).get("code"), "STRIPE_NOT_COMPLETE")
        with self.app.app_context():
            self.assertEqual(db.session.get(Listing, listing_id).status, "draft")

    def test_publish_refreshes_stale_account_flags_once(self):
        uid, headers = self._register("seller")
        listing_id = self._create_listing(headers)
        with self.app.app_context():
            profile = Profile.query.filter_by(user_id=uid).first()
            profile.stripe_account_id = "acct_mock_stale"
            db.session.commit()

        res = self.client.post("/api/listings/publish", json={"listingId": listing_id}, headers=headers)
        self.assertEqual(res.status_code, 200)
        self.assertTrue((res.get_json(force=True) or {}).get("success"))

        with self.app.app_context():
            listing = db.session.get(Listing, listing_id)
            self.assertEqual(listing.status, "active")
            self.assertEqual(listing.seller_stripe_account_id, "acct_mock_stale")
            profile = Profile.query.filter_by(user_id=uid).first()
            self.assertTrue(profile.stripe_details_submitted)
            self.assertIsNotNone(profile.stripe_onboarded_at)

        public = self.client.get("/api/listings")
        ids = [row["id"] for row in (public.get_json(force=True) or {}).get("items", [])]
        self.assertIn(listing_id, ids)

    def test_publish_refresh_still_incomplete_blocks(self):
        uid, headers = self._register("seller")
        listing_id = self._create_listing(headers)
        with self.app.app_context():
            profile = Profile.query.filter_by(user_id=uid).first()
            profile.stripe_account_id = "acct_incomplete"
            db.session.commit()
        incomplete = ConnectAccountResult(
            id="acct_incomplete",
            details_submitted=False,
            charges_enabled=False,
            payouts_enabled=False,
            raw={},
        )
        with patch(
            "thriftshop.integrations.payments.mock_provider.MockPaymentsProvider.retrieve_account",
            return_value=incomplete,
        ) as retrieve:
            res = self.client.post("/api/listings/publish", json={"listingId": listing_id}, headers=headers)
        self.assertEqual(res.status_code, 403)
        self.assertEqual(retrieve.call_count, 1)

    def test_only_owner_may_publish(self):
        _owner, owner_headers = self._register("seller")
        _other, other_headers = self._register("seller")
        listing_id = self._create_listing(owner_headers)
        res = self.client.post("/api/listings/publish", json={"listingId": listing_id}, headers=other_headers)
        self.assertEqual(res.status_code, 403)
        missing = self.client.post("/api/listings/publish", json={}, headers=owner_headers)
        self.assertEqual(missing.status_code, 400)

    def _publishable_listing(self, **fields) -> tuple[int, dict]:
        uid, headers = self._register("seller")
        listing_id = self._create_listing(headers, **fields)
        with self.app.app_context():
            profile = Profile.query.filter_by(user_id=uid).first()
            profile.stripe_account_id = f"acct_mock_{uid}"
            db.session.commit()
        return listing_id, headers

    def test_publish_stores_listing_embedding(self):
        listing_id, headers = self._publishable_listing(description="Heavy brass owl reading lamp")
        res = self.client.post("/api/listings/publish", json={"listingId": listing_id}, headers=headers)
        self.assertEqual(res.status_code, 200)
        with self.app.app_context():
            vector = db.session.get(Listing, listing_id).embedding_vector()
        self.assertTrue(vector)
        self.assertTrue(all(isinstance(v, float) for v in vector))

    def test_publish_succeeds_when_embedding_fails(self):
        listing_id, headers = self._publishable_listing()
        with patch(
            "thriftshop.integrations.ai.mock_provider.MockAIProvider.embed",
            side_effect=IntegrationError("EMBED_FAILED", "upstream down", status=502),
        ), self.assertLogs(self.app.logger, level="WARNING") as logs:
            res = self.client.post("/api/listings/publish", json={"listingId": listing_id}, headers=headers)
        self.assertEqual(res.status_code, 200)
        self.assertTrue(any("listing_embed_failed" in line for line in logs.output))
        with self.app.app_context():
            listing = db.session.get(Listing, listing_id)
            self.assertEqual(listing.status, "active")
            self.assertIsNone(listing.embedding)


if __name__ == "__main__":
    unittest.main()
