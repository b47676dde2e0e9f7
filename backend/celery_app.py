# backend/celery_app.py
from core.env import load_env

load_env()

import logging

from celery import Celery
from celery.signals import setup_logging

from core.config import settings
from core.logging import setup_json_logging

logger = logging.getLogger("celery_app")

app = Celery(
    "interview_ledger",
    broker=settings.broker_url,
    backend=settings.result_backend,
    include=["tasks.extraction_tasks"],
)

# Bounded pool. Late acks: a task held by a dead worker is redelivered.
app.conf.worker_concurrency = settings.extraction_worker_concurrency
app.conf.worker_prefetch_multiplier = 1
app.conf.task_acks_late = True
app.conf.task_reject_on_worker_lost = True
app.conf.task_soft_time_limit = settings.extraction_task_time_limit
app.conf.task_time_limit = settings.extraction_task_time_limit + 30
app.conf.broker_connection_retry_on_startup = True

app.conf.task_ignore_result = False
app.conf.result_expires = 3600 * 24

app.conf.task_always_eager = settings.celery_task_always_eager

app.conf.beat_schedule = {
    "requeue-stale-extractions": {
        "task": "tasks.requeue_stale_extractions",
        "schedule": max(settings.extraction_stale_after_seconds // 3, 60),
    },
}


@setup_logging.connect
def _configure_worker_logging(**kwargs):
    setup_json_logging(settings.log_level)
