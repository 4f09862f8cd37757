from __future__ import annotations

import os
import time
import unittest
from datetime import datetime, timedelta
from unittest.mock import patch

from thriftshop import create_app
from thriftshop.extensions import db
from thriftshop.integrations.ai.base import ImageAnalysis
from thriftshop.integrations.ai.mock_provider import MockAIProvider
from thriftshop.integrations.common import IntegrationError
from thriftshop.models import Listing, User
from thriftshop.services.search import (
    cosine_scores,
    cosine_similarity,
    extract_term_groups,
    interpret_query,
    local_interpret_query,
    match_listings_by_mood,
)


class SemanticSearchTestCase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls._prev_env = {k: os.getenv(k) for k in ("SQLALCHEMY_DATABASE_URI", "INTEGRATIONS_MODE")}
        os.environ["SQLALCHEMY_DATABASE_URI"] = "sqlite:///:memory:"
        os.environ["INTEGRATIONS_MODE"] = "sandbox"
        cls.app = create_app()
        cls.app.config.update(TESTING=True)
        cls.client = cls.app.test_client()
        with cls.app.app_context():
            db.create_all()
            seller = User(name="seller", email=f"seller-{time.time_ns()}@thriftshop.test", role="seller")
            seller.set_password("Passw0rd!")
            db.session.add(seller)
            db.session.commit()
            cls.seller_id = int(seller.id)
            cls.ids = {}
            now = datetime.utcnow()
            rows = [
                ("mug", "Fire King Jadeite Mug", "Kitchen & Dining", 18.0, ["vintage"], ["cozy"], ["functional"], "active"),
                ("lamp", "Brass Owl Lamp", "Home Decor", 65.0, ["retro", "brass"], ["whimsical"], ["home-decor"], "active"),
                ("figurine", "Hummel Figurine", "Collectibles", 40.0, ["antique"], ["nostalgic"], ["collection", "gifting"], "active"),
                ("draft", "Jadeite Cake Stand", "Kitchen & Dining", 22.0, ["vintage"], ["cozy"], [], "draft"),
            ]
            for offset, (key, title, category, price, styles, moods, intents, status) in enumerate(rows):
                listing = Listing(
                    seller_id=cls.seller_id,
                    title=title,
                    category=category,
                    price=price,
                    status=status,
                    created_at=now - timedelta(minutes=offset),
                )
                listing.set_tags("styles", styles)
                listing.set_tags("moods", moods)
                listing.set_tags("intents", intents)
                db.session.add(listing)
                db.session.flush()
                cls.ids[key] = int(listing.id)
            db.session.commit()

    @classmethod
    def tearDownClass(cls):
        for key, value in cls._prev_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value

    def _set_embedding(self, key: str, vector):
        with self.app.app_context():
            listing = db.session.get(Listing, self.ids[key])
            listing.set_embedding(vector)
            db.session.commit()

    def test_cosine_similarity_edges(self):
        self.assertAlmostEqual(cosine_similarity([1, 0], [1, 0]), 1.0)
        self.assertAlmostEqual(cosine_similarity([1, 0], [0, 1]), 0.0)
        self.assertEqual(cosine_similarity([1, 0], [1, 0, 0]), 0.0)
        self.assertEqual(cosine_similarity([0, 0], [1, 0]), 0.0)
        self.assertEqual(cosine_similarity([], []), 0.0)

    def test_cosine_scores_batch_guards_bad_rows(self):
        scores = cosine_scores([3.0, 4.0], [[3.0, 4.0], [0.0, 0.0], [1.0], None, [-3.0, -4.0], [4.0, 3.0]])
        self.assertEqual(len(scores), 6)
        self.assertAlmostEqual(scores[0], 1.0)
        self.assertEqual(list(scores[1:4]), [0.0, 0.0, 0.0])
        self.assertAlmostEqual(scores[4], -1.0)
        self.assertAlmostEqual(scores[5], 24.0 / 25.0)
        self.assertEqual(list(cosine_scores([0.0, 0.0], [[1.0, 0.0]])), [0.0])
        self.assertEqual(len(cosine_scores([1.0], [])), 0)

    def test_match_threshold_is_strict_and_active_only(self):
        self._set_embedding("mug", [1.0, 0.0])
        self._set_embedding("lamp", [1.0, 1.0])
        self._set_embedding("draft", [1.0, 0.0])
        with self.app.app_context():
            at_lamp = cosine_similarity([1.0, 0.0], [1.0, 1.0])
            matches = match_listings_by_mood([1.0, 0.0], at_lamp, 10)
            ids = [m["id"] for m in matches]
            self.assertEqual(ids[0], self.ids["mug"])
            self.assertNotIn(self.ids["draft"], ids)
            # cosine exactly at the threshold does not match
            self.assertNotIn(self.ids["lamp"], ids)
            self.assertIn(self.ids["lamp"], [m["id"] for m in match_listings_by_mood([1.0, 0.0], at_lamp - 1e-9, 10)])
            self.assertEqual(match_listings_by_mood([1.0, 0.0], 0.7, 0), [])
            self.assertEqual(match_listings_by_mood([], 0.7, 10), [])

    def test_semantic_mood_endpoint_ranks_by_similarity(self):
        provider = MockAIProvider()
        self._set_embedding("figurine", provider.embed("nostalgic, gift"))
        self._set_embedding("mug", [-v for v in provider.embed("nostalgic, gift")])
        res = self.client.post("/api/search/semantic-mood", json={"moods": ["nostalgic", "gift"], "threshold": 0.5})
        self.assertEqual(res.status_code, 200)
        listings = (res.get_json(force=True) or {}).get("listings")
        self.assertEqual(listings[0]["id"], self.ids["figurine"])
        self.assertAlmostEqual(listings[0]["similarity"], 1.0, places=4)
        self.assertNotIn(self.ids["mug"], [row["id"] for row in listings])

    def test_semantic_mood_validation_and_embedding_failure(self):
        self.assertEqual(self.client.post("/api/search/semantic-mood", json={"moods": []}).status_code, 400)
        with patch.object(MockAIProvider, "embed", side_effect=IntegrationError("OPENAI_EMBEDDING_FAILED", "quota")):
            res = self.client.post("/api/search/semantic-mood", json={"moods": ["cozy"]})
        self.assertEqual(res.status_code, 500)
        self.assertIn("Failed to generate embedding", (res.get_json(force=True) or {}).get("details", ""))

    def test_local_interpretation(self):
        interp = local_interpret_query("cozy vintage gift mug under $30")
        self.assertEqual(interp.moods, ["cozy"])
        self.assertEqual(interp.styles, ["vintage"])
        self.assertEqual(interp.intents, ["gifting"])
        self.assertEqual(interp.keywords, ["mug"])
        self.assertEqual(interp.price_range, {"max": 30.0})

    def test_interpretation_falls_back_when_model_fails(self):
        class _Broken(MockAIProvider):
            def interpret_query(self, query):
                raise IntegrationError("OPENAI_CHAT_FAILED", "timeout")

        with self.app.app_context():
            interp = interpret_query("retro lamp", _Broken())
        self.assertEqual(interp.source, "local")
        self.assertEqual(interp.styles, ["retro"])

    def test_semantic_search_filters_by_tags_and_keywords(self):
        res = self.client.post("/api/search/semantic", json={"query": "cozy jadeite"})
        self.assertEqual(res.status_code, 200)
        body = res.get_json(force=True) or {}
        ids = [row["id"] for row in body["listings"]]
        self.assertEqual(ids, [self.ids["mug"]])
        self.assertEqual(body["interpretation"]["moods"], ["cozy"])
        self.assertTrue(body["debug"]["tagFiltered"])

    def test_semantic_search_broadens_when_tags_exclude_everything(self):
        res = self.client.post("/api/search/semantic", json={"query": "elegant jadeite"})
        body = res.get_json(force=True) or {}
        self.assertEqual([row["id"] for row in body["listings"]], [self.ids["mug"]])
        self.assertTrue(body["debug"].get("broadened"))

    def test_semantic_search_price_cap(self):
        res = self.client.post("/api/search/semantic", json={"query": "retro lamp under $50"})
        body = res.get_json(force=True) or {}
        self.assertEqual(body["listings"], [])
        self.assertEqual(self.client.post("/api/search/semantic", json={}).status_code, 400)

    def test_term_groups_expand_known_moods(self):
        groups = extract_term_groups("nostalgic brass")
        by_term = {g["term"]: g["variants"] for g in groups}
        self.assertIn("retro", by_term["nostalgic"])
        self.assertEqual(by_term["brass"], ["brass"])

    def test_visual_search_merges_vision_terms(self):
        analysis = ImageAnalysis(title="owl lamp", attributes=["brass"], styles=["retro"])
        with patch.object(MockAIProvider, "analyze_image", return_value=analysis):
            res = self.client.post("/api/search/visual", json={"imageUrl": "https://img.example/owl.jpg"})
        self.assertEqual(res.status_code, 200)
        body = res.get_json(force=True) or {}
        self.assertEqual(body["listings"][0]["id"], self.ids["lamp"])
        self.assertIn("brass", [g["term"] for g in body["termGroups"]])
        self.assertEqual(body["debug"]["vision"][0]["terms"], ["brass", "retro", "owl lamp"])
        self.assertGreaterEqual(body["debug"]["termMatchCounts"]["brass"], 1)

    def test_visual_search_requires_image(self):
        res = self.client.post("/api/search/visual", json={"query": "lamp"})
        self.assertEqual(res.status_code, 400)


if __name__ == "__main__":
    unittest.main()
