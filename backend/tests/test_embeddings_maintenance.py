from __future__ import annotations

import os
import time
import unittest
from unittest.mock import patch

from thriftshop import create_app
from thriftshop.extensions import db
from thriftshop.integrations.ai.mock_provider import MockAIProvider
from thriftshop.integrations.common import IntegrationError
from thriftshop.models import Listing, User
from thriftshop.services.embedding_service import build_embedding_text
from thriftshop.utils.jwt_utils import create_token


class EmbeddingsMaintenanceTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_env = {k: os.getenv(k) for k in ("SQLALCHEMY_DATABASE_URI", "INTEGRATIONS_MODE", "DEBUG_ROUTES")}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        os.environ["INTEGRATIONS_MODE"] = "sandbox"
        os.environ.pop("DEBUG_ROUTES", None)
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        cls.client = cls.app.test_client()
        with cls.app.app_context():
            db.create_all()
            admin = User(name="admin", email=f"admin-{time.time_ns()}@thriftshop.test", role="admin")
            admin.set_password("Passw0rd!")
            seller = User(name="seller", email=f"seller-{time.time_ns()}@thriftshop.test", role="seller")
            seller.set_password("Passw0rd!")
            db.session.add_all([admin, seller])
            db.session.commit()
            cls.admin_headers = {"Authorization": f"Bearer {create_token(int(admin.id))}"}
            cls.seller_headers = {"Authorization": f"Bearer {create_token(int(seller.id))}"}
            for title, styles, moods in (
                ("Hummel Figurine", '["antique", "Collectibles"]', "nostalgic"),
                ("Pyrex Bowl", "vintage,kitchen", '["Warm Heart"]'),
                ("Long Story Quilt", "rustic", "cozy"),
            ):
                db.session.add(
                    Listing(
                        seller_id=int(seller.id),
                        title=title,
                        description="x" * 250 if "Quilt" in title else "A lovely piece",
                        styles=styles,
                        moods=moods,
                        status="active",
                    )
                )
            db.session.add(Listing(seller_id=int(seller.id), title="Draft Thing", status="draft"))
            db.session.commit()

    @classmethod
    def tearDownClass(cls):
        for key, value in cls._prev_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def test_embedding_text_uses_normalized_styles(self):
        with self.app.app_context():
            listing = Listing.query.filter_by(title="Hummel Figurine").first()
            self.assertEqual(build_embedding_text(listing), "Hummel Figurine A lovely piece antique Collectibles")

    def test_regenerate_requires_admin(self):
        self.assertEqual(self.client.post("/api/embeddings/regenerate", json={}).status_code, 401)
        res = self.client.post("/api/embeddings/regenerate", json={}, headers=self.seller_headers)
        self.assertEqual(res.status_code, 403)

    def test_dry_run_samples_without_writing(self):
        res = self.client.post("/api/embeddings/regenerate", json={"dryRun": True}, headers=self.admin_headers)
        self.assertEqual(res.status_code, 200)
        body = res.get_json(force=True) or {}
        self.assertEqual(body["totalListings"], 3)
        self.assertEqual(len(body["sample"]), 3)
        for row in body["sample"]:
            self.assertTrue(row["embeddingText"].endswith("..."))
            self.assertLessEqual(len(row["embeddingText"]), 203)

    def test_regenerate_writes_vectors_and_collects_errors(self):
        original = MockAIProvider.embed

        def _flaky(provider, text):
            if text.startswith("Pyrex"):
                raise IntegrationError("OPENAI_EMBEDDING_FAILED", "rate limited")
            return original(provider, text)

        with patch.object(MockAIProvider, "embed", _flaky):
            res = self.client.post("/api/embeddings/regenerate", json={}, headers=self.admin_headers)
        self.assertEqual(res.status_code, 200)
        body = res.get_json(force=True) or {}
        self.assertEqual(body["totalListings"], 3)
        self.assertEqual(body["success"], 2)
        self.assertEqual(len(body["errors"]), 1)

        sample = self.client.get("/api/embeddings/test-sample?limit=5", headers=self.admin_headers)
        samples = {s["title"]: s for s in (sample.get_json(force=True) or {})["samples"]}
        self.assertTrue(samples["Hummel Figurine"]["hasEmbedding"])
        self.assertEqual(samples["Hummel Figurine"]["embeddingLength"], 32)
        self.assertFalse(samples["Pyrex Bowl"]["hasEmbedding"])
        self.assertEqual(samples["Pyrex Bowl"]["styles"], ["vintage", "kitchen"])

    def test_mood_filter_hidden_by_default(self):
        res = self.client.get("/api/debug/mood-filter?moods=Collectibles")
        self.assertEqual(res.status_code, 404)
        self.assertEqual((res.get_json(force=True) or {}).get("message"), "Not found")

    def test_mood_filter_explains_matches(self):
        with patch.dict(os.environ, {"DEBUG_ROUTES": "1"}):
            res = self.client.get("/api/debug/mood-filter?moods=Collectibles,Antique&limit=10")
            empty = self.client.get("/api/debug/mood-filter")
        self.assertEqual(res.status_code, 200)
        body = res.get_json(force=True) or {}
        self.assertEqual(body["selectedMoods"], ["Collectibles", "Antique"])
        self.assertEqual(body["matchesFound"], 1)
        match = body["matches"][0]
        self.assertEqual(match["listing"]["title"], "Hummel Figurine")
        self.assertEqual(match["matchDetails"][0]["matchedIn"]["styles"], ["Collectibles"])
        self.assertIn("error", empty.get_json(force=True) or {})


if __name__ == "__main__":
    unittest.main()
