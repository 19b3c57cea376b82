"""Payment service for creating payment intents."""

import logging
import math
import re
import uuid
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from numbers import Real
from typing import Any

from checkout_service.clients import PaymentIntentData, StripePaymentClient, is_retryable_gateway_error
from checkout_service.clients.stripe_client import gateway_error_message
from checkout_service.config import Settings
from checkout_service.utils import RetryOptions, retry_operation

logger = logging.getLogger(__name__)

CURRENCY_PATTERN = re.compile(r"^[A-Za-z]{3}$")


class PaymentError(Exception):
    """Base class for payment failures."""


class PaymentValidationError(PaymentError, ValueError):
    """Request rejected before reaching the payment provider."""


class InvalidAmountError(PaymentValidationError):
    """Amount is missing, not a number, or not positive."""


class InvalidCurrencyError(PaymentValidationError):
    """Currency is not a three-letter code."""


class PaymentGatewayError(PaymentError):
    """The payment provider failed to create the intent."""


def validate_amount(amount: Any) -> float:
    """Check that amount is a finite number greater than zero.

    Booleans and numeric strings are rejected.

    Raises:
        InvalidAmountError: If the amount is not a positive number
    """
    if isinstance(amount, bool) or not isinstance(amount, Real):
        raise InvalidAmountError("Amount must be a positive number")
    if not math.isfinite(amount) or amount <= 0:
        raise InvalidAmountError("Amount must be a positive number")
    return float(amount)


def validate_currency(currency: Any) -> str:
    """Return the currency as a lower-case three-letter code.

    Raises:
        InvalidCurrencyError: If the currency is not a three-letter code
    """
    if not isinstance(currency, str) or not CURRENCY_PATTERN.match(currency):
        raise InvalidCurrencyError("Currency must be a three-letter ISO code")
    return currency.lower()


def to_minor_units(amount: float) -> int:
    """Convert a major-unit amount to integer minor units, rounding half up.

    Raises:
        InvalidAmountError: If the amount has too many digits to represent
    """
    try:
        minor = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    except InvalidOperation as e:
        raise InvalidAmountError("Amount is too large") from e
    return int(minor)


class PaymentService:
    """Service for creating payment intents.

    Handles:
    - Amount and currency validation
    - Conversion from dollars to minor units
    - Retrying transient gateway failures with one idempotency key per request

    Usage:
        service = PaymentService(stripe_client, settings)

        intent = await service.create_payment_intent(19.99)
        return {"clientSecret": intent.client_secret}
    """

    def __init__(self, client: StripePaymentClient, settings: Settings) -> None:
        """Initialize payment service.

        Args:
            client: Initialized Stripe client
            settings: Application settings
        """
        self._client = client
        self._settings = settings
        self._retry_options = RetryOptions(
            max_retries=settings.payment_max_retries,
            initial_delay=settings.payment_initial_delay_ms,
            max_delay=settings.payment_max_delay_ms,
            should_retry=is_retryable_gateway_error,
        )

    async def create_payment_intent(
        self,
        amount: Any,
        currency: Any = None
    ) -> PaymentIntentData:
        """Create a payment intent for an amount in major units.

        Args:
            amount: Amount in dollars (or the currency's major unit)
            currency: Three-letter currency code (default: settings.default_currency)

        Returns:
            PaymentIntentData with the client secret

        Raises:
            InvalidAmountError: If amount is not a positive number
            InvalidCurrencyError: If currency is not a three-letter code
            PaymentGatewayError: If the provider call fails
        """
        value = validate_amount(amount)
        code = validate_currency(self._settings.default_currency if currency is None else currency)

        minor_units = to_minor_units(value)
        if minor_units < 1:
            raise InvalidAmountError("Amount must be at least one minor currency unit")

        idempotency_key = str(uuid.uuid4())
        logger.info(f"Creating payment intent: amount={minor_units} currency={code}")

        try:
            intent = await retry_operation(
                self._client.create_payment_intent,
                minor_units,
                code,
                idempotency_key=idempotency_key,
                options=self._retry_options,
            )
        except Exception as e:
            logger.error(f"Error creating payment intent: {e!r}")
            raise PaymentGatewayError(gateway_error_message(e)) from e

        logger.info(f"Created payment intent {intent.id} (status={intent.status})")
        return intent
