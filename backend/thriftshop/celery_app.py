from __future__ import annotations

import json
import os
from datetime import datetime

from celery import Celery
from celery.signals import task_failure, task_retry


EMAIL_TASK = "thriftshop.tasks.email_tasks.send_order_email_task"

_observers_bound = False


def _truthy(name: str) -> bool:
    return (os.getenv(name) or "").strip().lower() in ("1", "true", "yes", "on")


def _urls() -> tuple[str, str]:
    redis_url = (os.getenv("REDIS_URL") or "").strip()
    broker = (os.getenv("CELERY_BROKER_URL") or "").strip() or redis_url or "redis://localhost:6379/0"
    backend = (os.getenv("CELERY_RESULT_BACKEND") or "").strip() or redis_url or broker
    return broker, backend


def email_queue_name() -> str:
    return (os.getenv("EMAIL_QUEUE_NAME") or "").strip() or "emails"


def _task_context(kwargs) -> dict:
    kwargs = kwargs if isinstance(kwargs, dict) else {}
    return {
        "trace_id": str(kwargs.get("trace_id") or ""),
        "kind": str(kwargs.get("kind") or ""),
        "order_id": kwargs.get("order_id"),
    }


def _log_task_event(flask_app, level: str, payload: dict) -> None:
    payload["timestamp"] = datetime.utcnow().isoformat()
    getattr(flask_app.logger, level)(json.dumps(payload, default=str))


def _bind_task_observers(flask_app) -> None:
    global _observers_bound
    if _observers_bound:
        return

    @task_failure.connect(weak=False)
    def _on_task_failure(sender=None, task_id=None, exception=None, kwargs=None, **extra):
        payload = {
            "event": "celery_task_failure",
            "task_name": getattr(sender, "name", "") or "",
            "task_id": str(task_id or ""),
            "exception": repr(exception),
        }
        payload.update(_task_context(kwargs))
        _log_task_event(flask_app, "error", payload)

    @task_retry.connect(weak=False)
    def _on_task_retry(request=None, reason=None, **extra):
        payload = {
            "event": "celery_task_retry",
            "task_name": str(getattr(request, "task", "") or ""),
            "task_id": str(getattr(request, "id", "") or ""),
            "reason": str(reason or ""),
            "retries": int(getattr(request, "retries", 0) or 0),
        }
        payload.update(_task_context(getattr(request, "kwargs", None)))
        _log_task_event(flask_app, "warning", payload)

    _observers_bound = True


def create_celery_app(flask_app) -> Celery:
    """Worker app for outbound order email.

    Tasks run inside ``flask_app``'s context so they can use the SQLAlchemy
    session and the integration factories. ``CELERY_TASK_ALWAYS_EAGER=1`` runs
    them inline in the calling process.
    """
    broker, backend = _urls()
    celery = Celery(flask_app.import_name, broker=broker, backend=backend)
    celery.conf.update(
        task_serializer="json",
        result_serializer="json",
        accept_content=["json"],
        task_acks_late=True,
        worker_prefetch_multiplier=1,
        broker_connection_retry_on_startup=True,
        task_routes={EMAIL_TASK: {"queue": email_queue_name()}},
        task_always_eager=_truthy("CELERY_TASK_ALWAYS_EAGER"),
        timezone="UTC",
        enable_utc=True,
    )

    class FlaskContextTask(celery.Task):
        def __call__(self, *args, **kwargs):
            with flask_app.app_context():
                return self.run(*args, **kwargs)

    celery.Task = FlaskContextTask
    celery.set_default()
    celery.autodiscover_tasks(["thriftshop.tasks"], related_name="email_tasks")
    _bind_task_observers(flask_app)
    return celery
