"""
Celery worker and beat configuration.

Only subscription housekeeping runs here. Quota checks and usage recording
happen inline in the request, never through the queue.
"""

from celery import Celery
from celery.schedules import crontab
from kombu import Queue

from petcare.core.config import settings

HOUSEKEEPING_QUEUE = "housekeeping"

celery_app = Celery(
    "petcare",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["petcare.tasks.subscriptions"],
)

celery_app.conf.update(
    # JSON payloads only
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,

    # A sweep that dies with its worker is picked up again
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_time_limit=300,
    task_soft_time_limit=270,
    result_expires=24 * 3600,
    worker_prefetch_multiplier=1,

    task_queues=(Queue(HOUSEKEEPING_QUEUE, routing_key="housekeeping.#"),),
    task_default_queue=HOUSEKEEPING_QUEUE,
    task_default_routing_key="housekeeping.default",

    # Keep the app's logging setup; prefix task lines with the task id
    worker_hijack_root_logger=False,
    worker_task_log_format="[%(asctime)s: %(levelname)s] [%(task_name)s(%(task_id)s)] %(message)s",

    beat_schedule={
        # Daily at 01:00 UTC; read-time expiry checks make the exact time unimportant
        "expire-lapsed-subscriptions": {
            "task": "petcare.tasks.subscriptions.expire_lapsed_subscriptions",
            "schedule": crontab(hour="1", minute="0"),
            "options": {"queue": HOUSEKEEPING_QUEUE},
        },
    },
)
