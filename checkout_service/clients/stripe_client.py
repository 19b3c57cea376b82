"""Stripe payment gateway client."""

import uuid
from dataclasses import dataclass

import aiohttp
import stripe

from checkout_service.config import Settings


@dataclass
class PaymentIntentData:
    """Normalized payment intent."""
    id: str
    client_secret: str
    status: str
    amount: int  # Minor units (cents for USD)
    currency: str


def is_retryable_gateway_error(error: Exception) -> bool:
    """Return True for transient gateway failures.

    Connection problems, rate limiting and upstream 5xx responses are worth
    another attempt; card, validation and authentication errors are not.
    """
    if isinstance(error, (stripe.APIConnectionError, stripe.RateLimitError)):
        return True
    if isinstance(error, stripe.StripeError):
        return (error.http_status or 0) >= 500
    return isinstance(error, (TimeoutError, aiohttp.ClientError))


def gateway_error_message(error: Exception) -> str:
    """Extract a human-readable message from a gateway error."""
    if isinstance(error, stripe.StripeError):
        return error.user_message or str(error) or "Payment provider error"
    return str(error) or error.__class__.__name__


class StripePaymentClient:
    """Async Stripe client for payment intents.

    Payment confirmation happens client-side with the returned client
    secret; this client only creates intents.

    Usage:
        settings = Settings()
        client = StripePaymentClient(settings)

        await client.initialize()

        intent = await client.create_payment_intent(1999, "usd")
        print(intent.client_secret)

        await client.close()
    """

    def __init__(self, settings: Settings) -> None:
        """Initialize Stripe client.

        Args:
            settings: Application settings with the secret key
        """
        self._settings = settings
        self._http_client: stripe.AIOHTTPClient | None = None
        self._client: stripe.StripeClient | None = None
        self._initialized = False

    async def initialize(self) -> None:
        """Create the SDK client and its aiohttp transport."""
        if self._initialized:
            return

        self._http_client = stripe.AIOHTTPClient(
            timeout=self._settings.stripe_timeout_seconds
        )
        self._client = stripe.StripeClient(
            self._settings.stripe_secret_key,
            stripe_version=self._settings.stripe_api_version,
            http_client=self._http_client,
        )

        self._initialized = True

    async def close(self) -> None:
        """Release the HTTP transport."""
        if self._http_client is not None:
            await self._http_client.close_async()
        self._http_client = None
        self._client = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        """Whether the client is ready to make requests."""
        return self._initialized

    async def create_payment_intent(
        self,
        amount: int,
        currency: str,
        idempotency_key: str | None = None
    ) -> PaymentIntentData:
        """Create a payment intent with automatic payment methods.

        Args:
            amount: Amount in minor units (e.g. cents)
            currency: Three-letter ISO currency code
            idempotency_key: Key that makes retried requests safe; a fresh
                one is generated when omitted

        Returns:
            PaymentIntentData with the client secret

        Raises:
            stripe.StripeError: On any upstream failure
        """
        if not self._initialized or self._client is None:
            raise RuntimeError("Client not initialized. Call initialize() first.")

        intent = await self._client.v1.payment_intents.create_async(
            params={
                "amount": amount,
                "currency": currency.lower(),
                "automatic_payment_methods": {"enabled": True},
            },
            options={"idempotency_key": idempotency_key or str(uuid.uuid4())},
        )

        return PaymentIntentData(
            id=intent.id,
            client_secret=intent.client_secret,
            status=intent.status,
            amount=intent.amount,
            currency=intent.currency,
        )

    async def __aenter__(self) -> "StripePaymentClient":
        """Async context manager entry."""
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.close()
