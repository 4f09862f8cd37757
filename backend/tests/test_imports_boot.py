from __future__ import annotations

import importlib
import os
import unittest
from unittest.mock import patch


class ImportsBootTestCase(unittest.TestCase):
    def test_import_create_app(self):
        module = importlib.import_module("thriftshop")
        create_app = getattr(module, "create_app", None)
        self.assertTrue(callable(create_app))

    def test_import_main_app(self):
        module = importlib.import_module("main")
        app = getattr(module, "app", None)
        self.assertIsNotNone(app)

    def test_import_segments(self):
        for name in (
            "thriftshop.segments.segment_auth",
            "thriftshop.segments.segment_listings",
            "thriftshop.segments.segment_orders",
            "thriftshop.segments.segment_payments",
            "thriftshop.segments.segment_payment_webhooks",
            "thriftshop.segments.segment_search",
            "thriftshop.segments.segment_embeddings",
            "thriftshop.segments.segment_chat",
            "thriftshop.segments.segment_transcribe",
            "thriftshop.segments.segment_favorites",
            "thriftshop.segments.segment_images",
            "thriftshop.segments.segment_pages",
        ):
            self.assertIsNotNone(importlib.import_module(name))

    def test_email_task_registered_under_stable_name(self):
        module = importlib.import_module("thriftshop.tasks.email_tasks")
        self.assertEqual(module.send_order_email_task.name, "thriftshop.tasks.email_tasks.send_order_email_task")

    def test_celery_app_routes_email_queue(self):
        from thriftshop import create_app
        from thriftshop.celery_app import EMAIL_TASK, create_celery_app

        env = {"SQLALCHEMY_DATABASE_URI": "sqlite:///:memory:", "CELERY_TASK_ALWAYS_EAGER": "1", "EMAIL_QUEUE_NAME": "order-mail"}
        with patch.dict(os.environ, env):
            celery = create_celery_app(create_app())
        self.assertTrue(celery.conf.task_always_eager)
        self.assertEqual(celery.conf.task_routes[EMAIL_TASK]["queue"], "order-mail")
        self.assertEqual(celery.conf.task_serializer, "json")


if __name__ == "__main__":
    unittest.main()
