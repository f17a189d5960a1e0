"""
Stripe gateway (staging and production).

Card payments use PaymentIntents confirmed in the browser with Stripe.js;
this side creates and inspects intents, issues refunds and authenticates
webhooks. The SDK is synchronous, so each call runs in a worker thread.

Client secrets are never logged.

Author: QR Dine Team
Version: 1.0.0
"""

import asyncio
import logging
import time
from typing import Any, Callable, Optional

import stripe

from qrdine.core.config import Settings, get_settings
from qrdine.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
    WebhookVerificationError,
)

logger = logging.getLogger(__name__)

STRIPE_API_VERSION = "2023-10-16"

# (exception, error_code, message shown to callers); None keeps Stripe's own
_ERROR_MAP: list[tuple[type, Optional[str], Optional[str]]] = [
    (stripe.CardError, None, None),
    (stripe.AuthenticationError, "authentication_error", "Payment service configuration error"),
    (stripe.APIConnectionError, "connection_error", "Payment service temporarily unavailable"),
    (stripe.InvalidRequestError, "invalid_request", None),
    (stripe.StripeError, "stripe_error", "Payment processing error"),
]


def to_minor_units(amount: float) -> int:
    return int(round(amount * 100))


def from_minor_units(cents: int) -> float:
    return cents / 100.0


class StripePaymentService(BasePaymentService):
    """PaymentIntent-based Stripe gateway. Requires STRIPE_SECRET_KEY."""

    def __init__(self, settings: Optional[Settings] = None):
        settings = settings or get_settings()
        if not settings.stripe_secret_key:
            raise ValueError(
                f"STRIPE_SECRET_KEY is required in {settings.env_mode.value} mode; "
                "set it in .env or the environment"
            )

        stripe.api_key = settings.stripe_secret_key
        stripe.api_version = STRIPE_API_VERSION
        self._webhook_secret = settings.stripe_webhook_secret
        self._currency = settings.stripe_currency
        logger.info(f"StripePaymentService ready (api_version={STRIPE_API_VERSION})")

    @property
    def provider_name(self) -> str:
        return "stripe"

    async def _call_intent_api(self, fn: Callable[..., Any], *args, **kwargs) -> PaymentResult:
        """Run a PaymentIntent SDK call and normalize the outcome."""
        started = time.perf_counter()
        try:
            intent = await asyncio.to_thread(fn, *args, **kwargs)
        except stripe.StripeError as e:
            elapsed_ms = (time.perf_counter() - started) * 1000
            code, message = next((c, m) for t, c, m in _ERROR_MAP if isinstance(e, t))
            if isinstance(e, stripe.CardError):
                logger.warning(f"Stripe: card declined ({e.code}): {e.user_message}")
            elif isinstance(e, stripe.AuthenticationError):
                logger.critical(f"Stripe: authentication failed - {e}")
            else:
                logger.error(f"Stripe: {type(e).__name__} - {e}")
            return PaymentResult(
                success=False,
                error_message=message or getattr(e, "user_message", None) or str(e),
                error_code=code or getattr(e, "code", None),
                response_time_ms=elapsed_ms,
            )

        return PaymentResult(
            success=True,
            payment_intent_id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            amount=from_minor_units(intent.amount),
            currency=intent.currency,
            response_time_ms=(time.perf_counter() - started) * 1000,
            metadata=dict(intent.metadata or {}),
        )

    async def create_payment_intent(
        self,
        amount: float,
        currency: str = "usd",
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        metadata = {k: str(v) for k, v in (metadata or {}).items()}
        cents = to_minor_units(amount)
        params: dict[str, Any] = {
            "amount": cents,
            "currency": currency or self._currency,
            "metadata": metadata,
            "automatic_payment_methods": {"enabled": True},
        }
        # A retried checkout maps to one intent; replacing a canceled one gets a fresh key.
        if "order_id" in metadata:
            attempt = metadata.get("replaces_intent", "initial")
            params["idempotency_key"] = f"qrdine-order-{metadata['order_id']}-{cents}-{attempt}"

        result = await self._call_intent_api(stripe.PaymentIntent.create, **params)
        if result.success:
            logger.info(f"Stripe: intent {result.payment_intent_id} created for ${amount:.2f}")
        return result

    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentResult:
        result = await self._call_intent_api(stripe.PaymentIntent.retrieve, payment_intent_id)
        if result.success:
            logger.debug(f"Stripe: intent {payment_intent_id} is {result.status}")
        return result

    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        params: dict[str, Any] = {"payment_intent": payment_intent_id}
        if amount is not None:
            params["amount"] = to_minor_units(amount)
        if reason:
            params["reason"] = reason

        try:
            refund = await asyncio.to_thread(stripe.Refund.create, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe: refund of {payment_intent_id} failed - {e}")
            return RefundResult(success=False, status="failed", error_message=str(e))

        logger.info(f"Stripe: refund {refund.id} for {payment_intent_id} is {refund.status}")
        return RefundResult(
            success=True,
            refund_id=refund.id,
            amount=from_minor_units(refund.amount),
            status=refund.status,
        )

    async def verify_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        if not self._webhook_secret:
            logger.error("Stripe: STRIPE_WEBHOOK_SECRET unset, refusing webhook")
            raise WebhookVerificationError("Webhook secret not configured")
        if not signature:
            raise WebhookVerificationError("Missing signature header")

        try:
            event = stripe.Webhook.construct_event(payload, signature, self._webhook_secret)
        except stripe.SignatureVerificationError as e:
            logger.warning(f"Stripe: bad webhook signature - {e}")
            raise WebhookVerificationError("Signature verification failed") from e
        except (ValueError, AttributeError, TypeError) as e:
            raise WebhookVerificationError("Payload is not a JSON event object") from e

        data = event.to_dict() if hasattr(event, "to_dict") else event
        if not isinstance(data, dict):
            raise WebhookVerificationError("Payload is not a JSON event object")
        logger.debug(f"Stripe: webhook {data.get('id')} ({data.get('type')}) verified")
        return data

    async def health_check(self) -> bool:
        try:
            await asyncio.to_thread(stripe.Account.retrieve)
        except stripe.StripeError as e:
            logger.error(f"Stripe: health check failed - {e}")
            return False
        return True
