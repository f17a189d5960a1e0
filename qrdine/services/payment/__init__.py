"""
Payment gateway selection.

Development runs against MockPaymentService, which keeps intents in memory
and signs webhooks with the same scheme Stripe uses. Staging and production
use StripePaymentService with test or live keys respectively. Handlers get
the instance through ``Depends(get_payment_service)``.
"""

import logging
from functools import lru_cache

from qrdine.core.config import get_settings
from qrdine.services.payment.base import (
    BasePaymentService,
    PaymentResult,
    RefundResult,
    WebhookVerificationError,
)
from qrdine.services.payment.mock import MockPaymentService, sign_webhook_payload
from qrdine.services.payment.stripe import StripePaymentService

logger = logging.getLogger(__name__)


@lru_cache()
def get_payment_service() -> BasePaymentService:
    """
    Cached so the mock keeps its intents across requests.

    Raises:
        ValueError: outside development without STRIPE_SECRET_KEY
    """
    settings = get_settings()

    if settings.is_development:
        logger.info("Payments: mock gateway (development)")
        return MockPaymentService(
            failure_rate=settings.mock_failure_rate,
            min_latency=settings.mock_min_latency,
            max_latency=settings.mock_max_latency,
            webhook_secret=settings.stripe_webhook_secret,
        )

    logger.info(f"Payments: Stripe ({settings.env_mode.value})")
    return StripePaymentService()


def reset_payment_service() -> None:
    get_payment_service.cache_clear()


__all__ = [
    "get_payment_service",
    "reset_payment_service",
    "BasePaymentService",
    "PaymentResult",
    "RefundResult",
    "WebhookVerificationError",
    "MockPaymentService",
    "StripePaymentService",
    "sign_webhook_payload",
]
