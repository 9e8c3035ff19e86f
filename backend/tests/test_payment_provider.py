"""Tests for the dunning payment provider abstraction."""

from unittest.mock import MagicMock, patch

import pytest

from app.services.payment_provider import (
    DunningPaymentProvider,
    ManualProvider,
    PaymentOutcome,
    PaymentProvider,
    PaymentProviderError,
    StripeProvider,
    get_payment_provider,
)


class _ScriptedProvider(DunningPaymentProvider):
    def __init__(self, error: Exception | None = None):
        self.error = error
        self.charged: list[str] = []

    @property
    def provider_name(self) -> PaymentProvider:
        return PaymentProvider.MANUAL

    def pay_now(self, provider_invoice_id: str) -> None:
        self.charged.append(provider_invoice_id)
        if self.error is not None:
            raise self.error


class TestGetPaymentProvider:
    def test_get_stripe_provider(self):
        provider = get_payment_provider("stripe")
        assert isinstance(provider, StripeProvider)
        assert provider.provider_name == PaymentProvider.STRIPE

    def test_get_manual_provider(self):
        provider = get_payment_provider("manual")
        assert isinstance(provider, ManualProvider)
        assert provider.provider_name == PaymentProvider.MANUAL

    def test_unknown_provider(self):
        with pytest.raises(ValueError, match="Unsupported payment provider: paypal"):
            get_payment_provider("paypal")


class TestAttemptPayment:
    def test_success(self):
        provider = _ScriptedProvider()

        outcome = provider.attempt_payment("in_1")

        assert outcome == PaymentOutcome(success=True)
        assert provider.charged == ["in_1"]

    def test_decline_becomes_failure_outcome(self):
        provider = _ScriptedProvider(
            PaymentProviderError("Insufficient funds", decline_code="insufficient_funds")
        )

        outcome = provider.attempt_payment("in_1")

        assert outcome.success is False
        assert outcome.failure_reason == "Insufficient funds"
        assert outcome.decline_code == "insufficient_funds"

    def test_unexpected_error_becomes_failure_outcome(self):
        provider = _ScriptedProvider(ConnectionError("connection reset"))

        outcome = provider.attempt_payment("in_1")

        assert outcome.success is False
        assert outcome.failure_reason == "connection reset"
        assert outcome.decline_code is None

    def test_error_without_message_uses_type_name(self):
        outcome = _ScriptedProvider(TimeoutError()).attempt_payment("in_1")

        assert outcome.failure_reason == "TimeoutError"


class TestManualProvider:
    def test_pay_now_refuses(self):
        with pytest.raises(PaymentProviderError, match="does not support invoice payment"):
            ManualProvider().pay_now("in_1")

    def test_attempt_payment_fails(self):
        outcome = ManualProvider().attempt_payment("in_1")

        assert outcome.success is False
        assert outcome.failure_reason == "Provider does not support invoice payment"


class TestStripeProvider:
    def test_lazy_import_sets_api_key(self):
        provider = StripeProvider(api_key="sk_test_123")
        assert provider._stripe is None

        stripe_module = provider.stripe

        assert stripe_module is not None
        assert stripe_module.api_key == "sk_test_123"

    def test_import_error_handling(self):
        """Test that Stripe provider raises ImportError when stripe fails to import."""
        provider = StripeProvider(api_key="sk_test_123")

        import sys

        original_stripe = sys.modules.get("stripe")
        sys.modules["stripe"] = None  # type: ignore[assignment]

        try:
            with pytest.raises(ImportError, match="stripe package not installed"):
                _ = provider.stripe
        finally:
            if original_stripe is not None:
                sys.modules["stripe"] = original_stripe
            else:
                del sys.modules["stripe"]

    def test_pay_now_pays_invoice(self):
        import stripe

        provider = StripeProvider(api_key="sk_test_key")
        _ = provider.stripe

        with patch.object(stripe.Invoice, "pay", return_value=MagicMock()) as mock_pay:
            outcome = provider.attempt_payment("in_123")

        assert outcome.success is True
        mock_pay.assert_called_once_with("in_123")

    def test_card_error_is_reported_with_decline_code(self):
        import stripe

        provider = StripeProvider(api_key="sk_test_key")
        _ = provider.stripe
        error = stripe.CardError("Your card was declined.", None, "card_declined")

        with (
            patch.object(stripe.Invoice, "pay", side_effect=error),
            pytest.raises(PaymentProviderError) as exc_info,
        ):
            provider.pay_now("in_123")

        assert str(exc_info.value) == "Your card was declined."
        assert exc_info.value.decline_code == "card_declined"

    def test_decline_code_prefers_error_body(self):
        class FakeStripeError(Exception):
            pass

        body = MagicMock()
        body.decline_code = "do_not_honor"
        error = FakeStripeError("Card declined")
        error.error = body  # type: ignore[attr-defined]
        error.code = "card_declined"  # type: ignore[attr-defined]
        error.user_message = None  # type: ignore[attr-defined]

        mock_stripe = MagicMock()
        mock_stripe.StripeError = FakeStripeError
        mock_stripe.Invoice.pay.side_effect = error
        provider = StripeProvider(api_key="sk_test_key")
        provider._stripe = mock_stripe

        outcome = provider.attempt_payment("in_123")

        assert outcome.success is False
        assert outcome.failure_reason == "Card declined"
        assert outcome.decline_code == "do_not_honor"

    def test_non_stripe_error_propagates_from_pay_now(self):
        mock_stripe = MagicMock()
        mock_stripe.StripeError = type("FakeStripeError", (Exception,), {})
        mock_stripe.Invoice.pay.side_effect = RuntimeError("socket closed")
        provider = StripeProvider(api_key="sk_test_key")
        provider._stripe = mock_stripe

        with pytest.raises(RuntimeError, match="socket closed"):
            provider.pay_now("in_123")
