"""
Mock Payment Service Implementation

Simulates Stripe-like payment intents without making real API calls.
Used in development mode (ENV_MODE=development) to:
    - Test the complete checkout flow locally
    - Run simulations without incurring costs
    - Develop without internet connectivity

Behavior:
    - Simulates response times
    - Randomly fails a configurable share of calls
    - Generates Stripe-like IDs (pi_xxx, re_xxx)
    - Intents report "succeeded" when retrieved, unless a test forces
      another status with set_intent_status()
    - Webhooks are verified with the same ``t=...,v1=...`` HMAC-SHA256
      scheme Stripe uses, so local webhook calls must be signed

Author: QR Dine Team
Version: 1.0.0
"""

import asyncio
import hashlib
import hmac
import json
import logging
import random
import time
import uuid
from datetime import datetime
from typing import Optional

from qrdine.services.payment.base import (
    INTENT_SUCCEEDED,
    BasePaymentService,
    PaymentResult,
    RefundResult,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

SIGNATURE_TOLERANCE_SECONDS = 300


def sign_webhook_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """
    Build a Stripe-style signature header for a payload.

    Used by the simulation script and tests to send authentic webhooks
    to a development server.
    """
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    digest = hmac.new(secret.encode("utf-8"), signed, hashlib.sha256).hexdigest()
    return f"t={timestamp},v1={digest}"


class MockPaymentService(BasePaymentService):
    """
    Mock implementation of the payment gateway.

    Attributes:
        failure_rate: Probability of a simulated gateway failure (0.0-1.0)
        min_latency: Minimum simulated response time in seconds
        max_latency: Maximum simulated response time in seconds
        webhook_secret: Secret used to verify webhook signatures

    Example:
        >>> service = MockPaymentService(failure_rate=0.0)
        >>> result = await service.create_payment_intent(27.00)
        >>> result.payment_intent_id
        'pi_mock_...'
    """

    DECLINE_REASONS = [
        ("card_declined", "Your card was declined."),
        ("insufficient_funds", "Your card has insufficient funds."),
        ("processing_error", "An error occurred while processing your card."),
    ]

    def __init__(
        self,
        failure_rate: float = 0.0,
        min_latency: float = 0.0,
        max_latency: float = 0.0,
        webhook_secret: Optional[str] = None,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.webhook_secret = webhook_secret
        self._intents: dict[str, dict] = {}

        logger.info(
            f"MockPaymentService initialized "
            f"(failure_rate={failure_rate:.0%}, "
            f"latency={min_latency}-{max_latency}s)"
        )

    @property
    def provider_name(self) -> str:
        return "mock"

    def _generate_payment_intent_id(self) -> str:
        return f"pi_mock_{uuid.uuid4().hex[:24]}"

    def _generate_refund_id(self) -> str:
        return f"re_mock_{uuid.uuid4().hex[:24]}"

    async def _simulate_latency(self) -> float:
        """Sleep for a random latency; returns it in milliseconds."""
        latency = random.uniform(self.min_latency, self.max_latency)
        if latency > 0:
            await asyncio.sleep(latency)
        return latency * 1000

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def set_intent_status(self, payment_intent_id: str, status: str) -> None:
        """Force the status a later retrieve_payment_intent() reports."""
        self._intents[payment_intent_id]["status"] = status

    async def create_payment_intent(
        self,
        amount: float,
        currency: str = "usd",
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        latency_ms = await self._simulate_latency()

        if amount <= 0:
            return PaymentResult(
                success=False,
                error_message="Amount must be greater than 0",
                error_code="invalid_amount",
                response_time_ms=latency_ms,
            )

        if self._should_fail():
            error_code, error_message = random.choice(self.DECLINE_REASONS)
            logger.debug(f"Mock: Intent creation failed - {error_code}")
            return PaymentResult(
                success=False,
                error_message=error_message,
                error_code=error_code,
                response_time_ms=latency_ms,
            )

        payment_intent_id = self._generate_payment_intent_id()
        self._intents[payment_intent_id] = {
            "amount": amount,
            "currency": currency,
            "status": INTENT_SUCCEEDED,
            "metadata": dict(metadata or {}),
            "created": datetime.now().isoformat(),
        }

        logger.info(f"Mock: Created payment intent {payment_intent_id} - ${amount:.2f}")

        return PaymentResult(
            success=True,
            payment_intent_id=payment_intent_id,
            client_secret=f"{payment_intent_id}_secret_mock",
            status="requires_payment_method",
            amount=amount,
            currency=currency,
            response_time_ms=latency_ms,
            metadata=dict(metadata or {}),
        )

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentResult:
        latency_ms = await self._simulate_latency()

        intent = self._intents.get(payment_intent_id)
        if intent is None:
            return PaymentResult(
                success=False,
                payment_intent_id=payment_intent_id,
                error_message="No such payment_intent",
                error_code="resource_missing",
                response_time_ms=latency_ms,
            )

        return PaymentResult(
            success=True,
            payment_intent_id=payment_intent_id,
            client_secret=f"{payment_intent_id}_secret_mock",
            status=intent["status"],
            amount=intent["amount"],
            currency=intent["currency"],
            response_time_ms=latency_ms,
            metadata=intent["metadata"],
        )

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        await self._simulate_latency()

        if not payment_intent_id.startswith("pi_"):
            return RefundResult(
                success=False,
                status="failed",
                error_message="Invalid payment intent ID",
            )

        refund_id = self._generate_refund_id()
        intent = self._intents.get(payment_intent_id)
        refunded = amount if amount is not None else (intent["amount"] if intent else None)

        logger.info(f"Mock: Refund processed - {refund_id}")

        return RefundResult(
            success=True,
            refund_id=refund_id,
            amount=refunded,
            status="succeeded",
        )

    async def verify_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        if not self.webhook_secret:
            raise WebhookVerificationError("Webhook secret not configured")
        if not signature:
            raise WebhookVerificationError("Missing signature header")

        parts = dict(
            item.split("=", 1) for item in signature.split(",") if "=" in item
        )
        try:
            timestamp = int(parts.get("t", ""))
        except ValueError:
            raise WebhookVerificationError("Malformed signature header")

        if abs(time.time() - timestamp) > SIGNATURE_TOLERANCE_SECONDS:
            raise WebhookVerificationError("Timestamp outside the tolerance zone")

        expected = sign_webhook_payload(payload, self.webhook_secret, timestamp)
        if not hmac.compare_digest(expected.split("v1=", 1)[1], parts.get("v1", "")):
            raise WebhookVerificationError("Signature mismatch")

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise WebhookVerificationError("Payload is not a JSON event object") from e
        if not isinstance(event, dict):
            raise WebhookVerificationError("Payload is not a JSON event object")
        return event

    async def health_check(self) -> bool:
        logger.debug("Mock: Health check passed")
        return True
