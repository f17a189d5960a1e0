"""
Notification gateway interface.

A gateway knows how to put one SMS or one email on the wire. Queueing,
retries and templating live in the dispatcher; gateways only report what
happened through a NotificationResult.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from qrdine.models import NotificationChannel

_NON_DIGITS = re.compile(r"\D")


@dataclass
class NotificationResult:
    """Outcome of a single send."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


def to_e164(phone: str, default_country_code: str = "1") -> str:
    """
    Normalize a customer-typed phone number for SMS providers.

    "555-123-4567" -> "+15551234567"; numbers that already carry a
    country code ("+44 20 7946 0958") keep it.
    """
    digits = _NON_DIGITS.sub("", phone)
    if phone.strip().startswith("+") or len(digits) > 10:
        return f"+{digits}"
    return f"+{default_country_code}{digits}"


class BaseNotificationService(ABC):
    """SMS + email gateway."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        pass

    async def send(
        self,
        channel: NotificationChannel,
        recipient: str,
        body: str,
        subject: Optional[str] = None,
    ) -> NotificationResult:
        """Route a queued notification to the matching channel."""
        if channel == NotificationChannel.EMAIL:
            return await self.send_email(to_email=recipient, subject=subject or "", body_html=body)
        return await self.send_sms(to_phone=recipient, message=body)
