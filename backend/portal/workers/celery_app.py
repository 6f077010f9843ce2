# backend/portal/workers/celery_app.py
from __future__ import annotations

from celery import Celery

from ..config import settings

celery_app = Celery(
    "portal",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["portal.workers.notification_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
    # tests and single-process dev run tasks inline
    task_always_eager=settings.celery_task_always_eager,
    task_store_eager_result=False,
)

celery_app.conf.task_routes = {
    "portal.notifications.*": {"queue": "notifications"},
}
