"""
Payment Service Abstract Base Class

Defines the interface contract for all payment gateway implementations.
Both MockPaymentService and StripePaymentService implement these methods,
so order handlers behave identically whichever one is injected.

Design Pattern: Strategy Pattern
    - Runtime switching between payment providers
    - Tests inject a deterministic implementation via dependency overrides

Author: QR Dine Team
Version: 1.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional


# Stripe PaymentIntent status meaning the charge went through
INTENT_SUCCEEDED = "succeeded"
# A canceled intent can never be confirmed again
INTENT_CANCELED = "canceled"


@dataclass
class PaymentResult:
    """
    Standardized result from a payment-intent operation.

    Attributes:
        success: Whether the gateway call itself succeeded
        payment_intent_id: Gateway identifier (pi_xxx)
        client_secret: Secret the frontend uses to confirm the intent
        status: Gateway intent status (requires_payment_method, succeeded, ...)
        amount: Amount in major currency units (dollars)
        currency: Currency code (e.g., "usd")
        error_message: Error description if the call failed
        error_code: Machine-readable error code
        response_time_ms: Time taken by the gateway call
        metadata: Metadata attached to the intent
    """
    success: bool
    payment_intent_id: Optional[str] = None
    client_secret: Optional[str] = None
    status: Optional[str] = None
    amount: Optional[float] = None
    currency: str = "usd"
    error_message: Optional[str] = None
    error_code: Optional[str] = None
    response_time_ms: float = 0.0
    metadata: dict = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.success and self.status == INTENT_SUCCEEDED

    @property
    def payable(self) -> bool:
        return self.success and self.status != INTENT_CANCELED


@dataclass
class RefundResult:
    """
    Standardized result from refund processing.

    Attributes:
        success: Whether the refund was accepted
        refund_id: Unique identifier for the refund
        amount: Amount refunded in dollars
        status: Refund status (pending, succeeded, failed)
        error_message: Error description if refund failed
    """
    success: bool
    refund_id: Optional[str] = None
    amount: Optional[float] = None
    status: str = "pending"
    error_message: Optional[str] = None


class WebhookVerificationError(Exception):
    """Webhook payload could not be authenticated."""


class BasePaymentService(ABC):
    """
    Abstract base class for payment gateways.

    Amounts are always passed in dollars; implementations convert to the
    gateway's minor units.
    """

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the name of the payment provider (e.g., "mock", "stripe")."""
        pass

    @abstractmethod
    async def create_payment_intent(
        self,
        amount: float,
        currency: str = "usd",
        metadata: Optional[dict] = None,
    ) -> PaymentResult:
        """
        Create a payment intent for client-side confirmation.

        Returns:
            PaymentResult: Contains the intent id and client_secret
        """
        pass

    @abstractmethod
    async def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentResult:
        """
        Fetch the current state of an intent.

        Returns:
            PaymentResult: ``status`` carries the gateway intent status
        """
        pass

    @abstractmethod
    async def refund_payment(
        self,
        payment_intent_id: str,
        amount: Optional[float] = None,
        reason: Optional[str] = None,
    ) -> RefundResult:
        """
        Refund a previous payment.

        Args:
            payment_intent_id: The payment to refund
            amount: Amount to refund (None = full refund)
            reason: duplicate, fraudulent or requested_by_customer
        """
        pass

    @abstractmethod
    async def verify_webhook(self, payload: bytes, signature: Optional[str]) -> dict:
        """
        Authenticate and parse a webhook from the payment provider.

        Args:
            payload: Raw request body bytes
            signature: Signature header from the request

        Returns:
            dict: Parsed event

        Raises:
            WebhookVerificationError: missing secret, bad signature or
                unparseable payload
        """
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Verify connectivity to the payment gateway."""
        pass
