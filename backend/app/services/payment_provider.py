"""Payment provider abstraction used to collect invoices during dunning.

Supports Stripe and a manual provider that cannot collect automatically.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.core.config import settings

logger = logging.getLogger(__name__)


class PaymentProvider(str, Enum):
    STRIPE = "stripe"
    MANUAL = "manual"


@dataclass
class PaymentOutcome:
    """Result of asking a provider to collect an invoice."""

    success: bool
    failure_reason: str | None = None
    decline_code: str | None = None


class PaymentProviderError(Exception):
    """The provider refused or failed to collect the invoice."""

    def __init__(self, message: str, decline_code: str | None = None):
        super().__init__(message)
        self.decline_code = decline_code


class DunningPaymentProvider(ABC):
    """Abstract base class for providers able to re-attempt invoice payment."""

    @property
    @abstractmethod
    def provider_name(self) -> PaymentProvider:
        """Return the provider enum value."""
        pass  # pragma: no cover

    @abstractmethod
    def pay_now(self, provider_invoice_id: str) -> None:
        """Charge the invoice immediately.

        Raises:
            PaymentProviderError: The charge was declined or rejected.
        """
        pass  # pragma: no cover

    def attempt_payment(self, provider_invoice_id: str) -> PaymentOutcome:
        """Charge the invoice, reporting any failure as an outcome."""
        try:
            self.pay_now(provider_invoice_id)
        except PaymentProviderError as e:
            logger.warning("Payment retry failed for %s: %s", provider_invoice_id, e)
            return PaymentOutcome(
                success=False, failure_reason=str(e), decline_code=e.decline_code
            )
        except Exception as e:
            logger.warning("Payment retry errored for %s: %s", provider_invoice_id, e)
            return PaymentOutcome(success=False, failure_reason=str(e) or type(e).__name__)
        return PaymentOutcome(success=True)


class StripeProvider(DunningPaymentProvider):
    """Stripe payment provider implementation."""

    def __init__(self, api_key: str | None = None):
        self.api_key = api_key or settings.stripe_api_key
        self._stripe: Any = None

    @property
    def stripe(self) -> Any:
        """Lazy-load stripe module."""
        if self._stripe is None:
            try:
                import stripe

                stripe.api_key = self.api_key
                self._stripe = stripe
            except ImportError as e:
                raise ImportError("stripe package not installed. Run: pip install stripe") from e
        return self._stripe

    @property
    def provider_name(self) -> PaymentProvider:
        return PaymentProvider.STRIPE

    def pay_now(self, provider_invoice_id: str) -> None:
        """Pay an open Stripe invoice with the customer's default payment method."""
        try:
            self.stripe.Invoice.pay(provider_invoice_id)
        except self.stripe.StripeError as e:
            error_body = getattr(e, "error", None)
            decline_code = getattr(error_body, "decline_code", None) or getattr(e, "code", None)
            message = getattr(e, "user_message", None) or str(e)
            raise PaymentProviderError(message, decline_code=decline_code) from e


class ManualProvider(DunningPaymentProvider):
    """Invoices settled outside the platform; nothing can be charged."""

    @property
    def provider_name(self) -> PaymentProvider:
        return PaymentProvider.MANUAL

    def pay_now(self, provider_invoice_id: str) -> None:
        raise PaymentProviderError("Provider does not support invoice payment")


def get_payment_provider(provider: str) -> DunningPaymentProvider:
    """Get the provider instance for an invoice's provider name."""
    try:
        name = PaymentProvider(provider)
    except ValueError:
        raise ValueError(f"Unsupported payment provider: {provider}") from None
    if name == PaymentProvider.STRIPE:
        return StripeProvider()
    return ManualProvider()
