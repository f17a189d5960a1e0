"""
Mock notification gateway for development.

Nothing leaves the process: every message is logged and appended to
``outbox`` so seed and simulation runs can show what a guest would have
received. Failure rate and latency come from the MOCK_* settings.
"""

import asyncio
import logging
import random
import uuid
from typing import Optional

from qrdine.services.notifications.base import BaseNotificationService, NotificationResult

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.outbox: list[dict] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def messages_to(self, recipient: str) -> list[dict]:
        return [m for m in self.outbox if m["to"] == recipient]

    async def _deliver(self, channel: str, recipient: str, preview: str, **fields) -> NotificationResult:
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)

        if random.random() < self.failure_rate:
            logger.warning(f"Mock {channel} to {recipient} dropped (simulated outage)")
            return NotificationResult(
                success=False,
                error_message=f"Simulated {channel} failure",
                provider=self.provider_name,
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.outbox.append({"id": message_id, "channel": channel, "to": recipient, **fields})
        logger.info(f"Mock {channel} -> {recipient}: {preview[:60]} ({message_id})")
        return NotificationResult(success=True, message_id=message_id, provider=self.provider_name)

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        return await self._deliver("sms", to_phone, message, body=message)

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        return await self._deliver("email", to_email, subject, subject=subject, body=body_html)

    async def health_check(self) -> bool:
        return True
