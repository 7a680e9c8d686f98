"""
celery_app.py — Celery instance for LegalBeacon background work.

Broker and result backend come from the same Config the web app uses, so a
worker started with

    celery -A tasks.celery_app worker --loglevel=info

talks to the Redis the app enqueues to. Only outbound email runs here; no
request path waits on a task.
"""

from celery import Celery

from config import Config

celery = Celery(
    "legalbeacon",
    broker=Config.CELERY_BROKER_URL,
    backend=Config.CELERY_RESULT_BACKEND,
    include=[
        "tasks.notifications",
    ],
)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    # invitation results are never read back
    task_ignore_result=True,
    broker_connection_retry_on_startup=True,
    # .delay() from a request fails fast when Redis is down
    broker_transport_options={"max_retries": 1},
)
