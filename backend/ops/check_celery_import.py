from __future__ import annotations

import sys
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


def main() -> int:
    try:
        from celery_app import celery

        import thriftshop.tasks.email_tasks  # noqa: F401
        from thriftshop.celery_app import EMAIL_TASK

        if EMAIL_TASK not in celery.tasks:
            print(f"error: {EMAIL_TASK} is not registered", file=sys.stderr)
            return 1
        queue = (celery.conf.task_routes or {}).get(EMAIL_TASK, {}).get("queue", "celery")
        print(f"ok: broker={celery.conf.broker_url or '-'} email_task={EMAIL_TASK} queue={queue}")
        return 0
    except Exception as exc:
        print(f"error: failed to import celery_app:celery -> {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
