"""
Production notification gateway: Twilio for SMS, SendGrid for email.

Both SDKs block, so every call runs through ``asyncio.to_thread``. A
channel whose credentials are missing reports a failed result instead of
raising, which lets the dispatcher record it and retry later.
"""

import asyncio
import logging
from typing import Optional

from python_http_client.exceptions import HTTPError as SendGridHTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from qrdine.core.config import Settings, get_settings
from qrdine.services.notifications.base import BaseNotificationService, NotificationResult, to_e164

logger = logging.getLogger(__name__)

SENDGRID_ACCEPTED = (200, 201, 202)


class RealNotificationService(BaseNotificationService):

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()

        self.twilio_client = None
        self.twilio_from_number = settings.twilio_phone_number
        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        else:
            logger.warning("Twilio credentials missing; SMS notifications will fail")

        self.sendgrid_client = None
        self.sendgrid_from_email = settings.sendgrid_from_email
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
        else:
            logger.warning("SendGrid API key missing; email notifications will fail")

    @property
    def provider_name(self) -> str:
        return "twilio+sendgrid"

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        if self.twilio_client is None:
            return NotificationResult(success=False, error_message="Twilio not configured", provider="twilio")

        recipient = to_e164(to_phone)
        try:
            sent = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=message,
                from_=self.twilio_from_number,
                to=recipient,
            )
        except TwilioException as e:
            logger.error(f"Twilio rejected SMS to {recipient}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="twilio")

        logger.info(f"SMS {sent.sid} queued at Twilio for {recipient}")
        return NotificationResult(success=True, message_id=sent.sid, provider="twilio")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        if self.sendgrid_client is None:
            return NotificationResult(success=False, error_message="SendGrid not configured", provider="sendgrid")

        mail = Mail(
            from_email=self.sendgrid_from_email,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        try:
            response = await asyncio.to_thread(self.sendgrid_client.send, mail)
        except SendGridHTTPError as e:
            logger.error(f"SendGrid rejected email to {to_email}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

        if response.status_code not in SENDGRID_ACCEPTED:
            return NotificationResult(
                success=False,
                error_message=f"SendGrid answered HTTP {response.status_code}",
                provider="sendgrid",
            )
        return NotificationResult(
            success=True,
            message_id=response.headers.get("X-Message-Id"),
            provider="sendgrid",
        )

    async def health_check(self) -> bool:
        # SMS carries every order notification; email is only receipts.
        return self.twilio_client is not None
