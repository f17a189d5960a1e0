"""
Notification gateway selection and the dispatcher dependency.

Development logs messages to MockNotificationService; staging and
production send through Twilio and SendGrid.
"""

import logging
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from qrdine.core.config import get_settings
from qrdine.database import get_session_factory
from qrdine.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from qrdine.services.notifications.dispatcher import NotificationDispatcher
from qrdine.services.notifications.mock import MockNotificationService
from qrdine.services.notifications.real import RealNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    settings = get_settings()

    if settings.is_development:
        logger.info("Notifications: mock gateway (development)")
        return MockNotificationService(
            failure_rate=settings.mock_failure_rate,
            min_latency=settings.mock_min_latency,
            max_latency=settings.mock_max_latency,
        )

    logger.info(f"Notifications: Twilio + SendGrid ({settings.env_mode.value})")
    return RealNotificationService()


def reset_notification_service() -> None:
    get_notification_service.cache_clear()


def get_notification_dispatcher(
    service: BaseNotificationService = Depends(get_notification_service),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> NotificationDispatcher:
    return NotificationDispatcher(service, session_factory, get_settings())


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "get_notification_dispatcher",
    "BaseNotificationService",
    "NotificationDispatcher",
    "NotificationResult",
    "MockNotificationService",
    "RealNotificationService",
]
