"""Business services."""

from .payment_service import (
    InvalidAmountError,
    InvalidCurrencyError,
    PaymentError,
    PaymentGatewayError,
    PaymentService,
    PaymentValidationError,
)

__all__ = [
    "PaymentService",
    "PaymentError",
    "PaymentValidationError",
    "InvalidAmountError",
    "InvalidCurrencyError",
    "PaymentGatewayError",
]
