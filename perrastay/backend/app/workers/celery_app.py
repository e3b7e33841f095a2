# backend/app/workers/celery_app.py
from __future__ import annotations

from celery import Celery
from celery.signals import setup_logging

from ..config import settings
from ..logging_config import configure_logging

celery_app = Celery(
    "perrastay",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.workers.email_tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    task_reject_on_worker_lost=True,
    task_track_started=True,
    timezone="UTC",
)

# Outbound mail is the only background work; it gets its own queue.
celery_app.conf.task_routes = {
    "app.workers.email_tasks.*": {"queue": "emails"},
}


@setup_logging.connect
def _worker_logging(**_kwargs) -> None:
    # Replaces Celery's own handlers so worker lines match the API's JSON.
    configure_logging(settings)
