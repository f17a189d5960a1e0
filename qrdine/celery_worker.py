"""
Celery Worker Configuration
Redis is both broker and result backend. Only used when
NOTIFICATION_BACKEND=celery; the inline backend needs no worker.

Run with:
    celery -A qrdine.celery_worker.celery_app worker -Q notifications --loglevel=info
"""

from celery import Celery
from celery.signals import setup_logging as celery_setup_logging

from qrdine.core.config import get_settings, setup_logging

settings = get_settings()

celery_app = Celery(
    "qrdine_worker",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["qrdine.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,

    task_routes={"qrdine.tasks.deliver_notification": {"queue": "notifications"}},

    # One notification at a time per process; each opens its own DB engine
    worker_prefetch_multiplier=1,
    worker_concurrency=4,

    # Delivery results are only useful for debugging
    result_expires=3600,

    # A row must not be lost if the worker dies mid-send
    task_acks_late=True,
    task_reject_on_worker_lost=True,

    broker_connection_retry_on_startup=True,
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs) -> None:
    """Use the API's log format in the worker too."""
    setup_logging()


if __name__ == "__main__":
    celery_app.start()
