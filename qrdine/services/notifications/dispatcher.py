"""
Outbound Notification Queue

Every notification is first written as a NotificationLog row in the same
transaction as the change that caused it. After the response is sent the
rows are delivered either inline (FastAPI BackgroundTasks, retried with
exponential backoff) or by the Celery worker.

Delivery never raises into the request path: failures end up in
``last_error`` and, after the last attempt, ``status=failed``.

Author: QR Dine Team
Version: 1.0.0
"""

import asyncio
import logging
from typing import Iterable, Optional

from fastapi import BackgroundTasks
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from qrdine.core.config import NotificationBackend, Settings
from qrdine.models import (
    NotificationChannel,
    NotificationLog,
    NotificationStatus,
    Order,
    Restaurant,
    WaitingListEntry,
    utcnow,
)
from qrdine.schemas import restaurant_settings
from qrdine.services.notifications import templates
from qrdine.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Queues notifications and delivers them with retry."""

    def __init__(
        self,
        service: BaseNotificationService,
        session_factory: async_sessionmaker,
        settings: Settings,
    ):
        self.service = service
        self.session_factory = session_factory
        self.settings = settings

    # =========================================================================
    # QUEUEING (inside the caller's transaction)
    # =========================================================================

    def queue(
        self,
        db: AsyncSession,
        *,
        kind: str,
        recipient: str,
        body: str,
        restaurant_id: Optional[int] = None,
        order_id: Optional[int] = None,
        channel: NotificationChannel = NotificationChannel.SMS,
        subject: Optional[str] = None,
    ) -> NotificationLog:
        """Add a queued NotificationLog row to the session (caller commits)."""
        log = NotificationLog(
            restaurant_id=restaurant_id,
            order_id=order_id,
            channel=channel,
            kind=kind,
            recipient=recipient,
            subject=subject,
            body=body,
            status=NotificationStatus.QUEUED,
            attempts=0,
        )
        db.add(log)
        return log

    def queue_order_created(
        self,
        db: AsyncSession,
        order: Order,
        restaurant: Restaurant,
    ) -> list[NotificationLog]:
        """Customer confirmation (SMS + optional email receipt) and kitchen allergen alert."""
        options = restaurant_settings(restaurant)
        if not options.enable_order_notifications:
            return []

        queued = [
            self.queue(
                db,
                kind=templates.ORDER_CONFIRMATION,
                recipient=order.customer_phone,
                body=templates.order_confirmation_sms(order, restaurant.name),
                restaurant_id=restaurant.id,
                order_id=order.id,
            )
        ]

        if order.customer_email:
            subject, html, _ = templates.order_receipt_email(order, restaurant.name)
            queued.append(
                self.queue(
                    db,
                    kind=templates.ORDER_RECEIPT_EMAIL,
                    channel=NotificationChannel.EMAIL,
                    recipient=order.customer_email,
                    subject=subject,
                    body=html,
                    restaurant_id=restaurant.id,
                    order_id=order.id,
                )
            )

        if order.has_allergen_concerns and options.enable_allergen_alerts:
            if restaurant.phone:
                queued.append(
                    self.queue(
                        db,
                        kind=templates.ALLERGEN_ALERT,
                        recipient=restaurant.phone,
                        body=templates.allergen_alert_sms(order),
                        restaurant_id=restaurant.id,
                        order_id=order.id,
                    )
                )
            else:
                logger.warning(
                    f"Allergen alert for order #{order.id} skipped: "
                    f"restaurant {restaurant.id} has no phone number"
                )

        return queued

    def queue_status_update(
        self,
        db: AsyncSession,
        order: Order,
        restaurant: Restaurant,
    ) -> list[NotificationLog]:
        if not restaurant_settings(restaurant).enable_order_notifications:
            return []

        body = templates.status_update_sms(order, restaurant.name)
        if body is None:
            return []

        return [
            self.queue(
                db,
                kind=f"{templates.ORDER_STATUS}:{order.status.value}",
                recipient=order.customer_phone,
                body=body,
                restaurant_id=restaurant.id,
                order_id=order.id,
            )
        ]

    def queue_payment_confirmed(
        self,
        db: AsyncSession,
        order: Order,
        restaurant: Optional[Restaurant] = None,
    ) -> list[NotificationLog]:
        if restaurant is not None and not restaurant_settings(restaurant).enable_order_notifications:
            return []

        return [
            self.queue(
                db,
                kind=templates.PAYMENT_CONFIRMED,
                recipient=order.customer_phone,
                body=templates.payment_confirmed_sms(order),
                restaurant_id=order.restaurant_id,
                order_id=order.id,
            )
        ]

    def queue_table_ready(
        self,
        db: AsyncSession,
        entry: WaitingListEntry,
        restaurant: Restaurant,
    ) -> NotificationLog:
        return self.queue(
            db,
            kind=templates.TABLE_READY,
            recipient=entry.customer_phone,
            body=templates.table_ready_sms(entry, restaurant.name),
            restaurant_id=restaurant.id,
        )

    # =========================================================================
    # DELIVERY (after the response)
    # =========================================================================

    def schedule(
        self,
        background_tasks: BackgroundTasks,
        notifications: Iterable[NotificationLog],
    ) -> None:
        """Hand committed rows to the configured backend once the response is sent."""
        ids = [n.id for n in notifications if n.id is not None]
        if ids:
            background_tasks.add_task(self.dispatch, ids)

    async def dispatch(self, notification_ids: list[int]) -> None:
        for notification_id in notification_ids:
            if self.settings.notification_backend == NotificationBackend.CELERY:
                # local import: qrdine.tasks imports this module
                from qrdine.tasks import deliver_notification

                try:
                    deliver_notification.delay(notification_id)
                    continue
                except Exception as e:
                    logger.error(
                        f"Could not enqueue notification {notification_id} on Celery, "
                        f"delivering inline: {e}"
                    )

            try:
                await self.deliver(notification_id)
            except Exception as e:
                logger.exception(f"Notification {notification_id} delivery crashed: {e}")

    async def deliver(self, notification_id: int) -> bool:
        """Attempt delivery until sent or the attempt budget is used up."""
        max_attempts = self.settings.notification_max_attempts

        while True:
            outcome = await self.attempt(notification_id)
            if outcome is None:
                return False
            sent, attempts = outcome
            if sent:
                return True
            if attempts >= max_attempts:
                return False

            delay = self.settings.notification_backoff_seconds * 2 ** (attempts - 1)
            logger.info(
                f"Notification {notification_id} attempt {attempts}/{max_attempts} failed, "
                f"retrying in {delay:.1f}s"
            )
            if delay > 0:
                await asyncio.sleep(delay)

    async def attempt(self, notification_id: int) -> Optional[tuple[bool, int]]:
        """
        Make one delivery attempt and record it.

        Returns:
            (sent, attempts) or None when the row is gone or already final.
        """
        async with self.session_factory() as session:
            log = await session.get(NotificationLog, notification_id)
            if log is None:
                logger.warning(f"Notification {notification_id} not found")
                return None
            if log.status == NotificationStatus.SENT:
                return True, log.attempts
            if log.status == NotificationStatus.FAILED:
                return None

            try:
                result = await self.service.send(log.channel, log.recipient, log.body, log.subject)
            except Exception as e:
                logger.exception(f"Notification {notification_id}: provider raised {e}")
                result = NotificationResult(
                    success=False,
                    error_message=str(e),
                    provider=self.service.provider_name,
                )

            log.attempts = (log.attempts or 0) + 1
            if result.success:
                log.status = NotificationStatus.SENT
                log.sent_at = utcnow()
                log.provider_message_id = result.message_id
                log.last_error = None
                logger.info(f"Notification {notification_id} ({log.kind}) sent to {log.recipient}")
            else:
                log.last_error = result.error_message or "Unknown delivery error"
                if log.attempts >= self.settings.notification_max_attempts:
                    log.status = NotificationStatus.FAILED
                    logger.error(
                        f"Notification {notification_id} ({log.kind}) failed after "
                        f"{log.attempts} attempts: {log.last_error}"
                    )

            attempts = log.attempts
            await session.commit()
            return result.success, attempts
