"""API clients for external payment providers."""

from .stripe_client import PaymentIntentData, StripePaymentClient, is_retryable_gateway_error

__all__ = ["StripePaymentClient", "PaymentIntentData", "is_retryable_gateway_error"]
