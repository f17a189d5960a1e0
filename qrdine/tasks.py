"""
Celery Tasks
Out-of-process delivery for the notification queue.
"""

import asyncio
import logging
from typing import Optional

from qrdine.celery_worker import celery_app
from qrdine.core.config import get_settings
from qrdine.database import create_worker_session_factory
from qrdine.services.notifications import NotificationDispatcher, get_notification_service

logger = logging.getLogger(__name__)
settings = get_settings()


class NotificationDeliveryError(Exception):
    """A delivery attempt failed and attempts remain."""


async def _attempt(notification_id: int) -> Optional[tuple[bool, int]]:
    worker_engine, session_factory = create_worker_session_factory()
    try:
        dispatcher = NotificationDispatcher(get_notification_service(), session_factory, settings)
        return await dispatcher.attempt(notification_id)
    finally:
        await worker_engine.dispose()


@celery_app.task(
    bind=True,
    max_retries=max(settings.notification_max_attempts - 1, 0),
    autoretry_for=(NotificationDeliveryError,),
    retry_backoff=max(int(settings.notification_backoff_seconds), 1),
    retry_jitter=False,
)
def deliver_notification(self, notification_id: int) -> dict:
    """
    Make one delivery attempt for a queued NotificationLog row.

    Failed attempts raise NotificationDeliveryError so Celery retries
    with exponential backoff; the row itself turns ``failed`` on the
    last attempt.
    """
    outcome = asyncio.run(_attempt(notification_id))
    if outcome is None:
        return {"notification_id": notification_id, "status": "skipped"}

    sent, attempts = outcome
    if sent:
        return {"notification_id": notification_id, "status": "sent", "attempts": attempts}

    if attempts < settings.notification_max_attempts:
        logger.info(f"Task {self.request.id}: notification {notification_id} attempt {attempts} failed")
        raise NotificationDeliveryError(f"Notification {notification_id} attempt {attempts} failed")

    return {"notification_id": notification_id, "status": "failed", "attempts": attempts}

