from __future__ import annotations

import json
import time

from celery import shared_task
from flask import current_app

from thriftshop.services.email_service import deliver_order_email


@shared_task(bind=True, name="thriftshop.tasks.email_tasks.send_order_email_task")
def send_order_email_task(self, kind: str, order_id: int, trace_id: str = ""):
    """Worker side of ``send_order_email``; delivery failures come back as ``{"ok": False}``."""
    started = time.perf_counter()
    result = deliver_order_email(kind, int(order_id))
    current_app.logger.info(json.dumps({
        "task_name": self.name,
        "task_id": getattr(self.request, "id", None) or "",
        "kind": kind,
        "order_id": int(order_id),
        "status": "sent" if result.get("ok") else "failed",
        "duration_ms": int((time.perf_counter() - started) * 1000),
        "trace_id": trace_id or "",
    }))
    return result
