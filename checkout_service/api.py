"""FastAPI REST API for checkout payments."""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator

from fastapi import APIRouter, Depends, FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from checkout_service import __version__
from checkout_service.clients import StripePaymentClient
from checkout_service.config import Settings
from checkout_service.logger import log_manager, setup_logging
from checkout_service.services import PaymentService, PaymentValidationError

logger = logging.getLogger(__name__)

ALLOWED_METHODS = "POST"
REJECTED_METHODS = ["GET", "HEAD", "PUT", "PATCH", "DELETE", "OPTIONS"]


# Global state for the API (initialized during lifespan)
_settings: Settings | None = None
_stripe_client: StripePaymentClient | None = None
_payment_service: PaymentService | None = None


class PaymentIntentCreate(BaseModel):
    """Request model for creating a payment intent.

    Fields are validated by the payment service so that bad values map to
    400 responses with a readable message.
    """
    amount: Any = Field(default=None, description="Amount in dollars", examples=[19.99])
    currency: Any = Field(default=None, description="Three-letter currency code", examples=["usd"])


class PaymentIntentResponse(BaseModel):
    """Response model carrying the client secret."""
    clientSecret: str


def get_settings() -> Settings:
    """Get the current settings instance.

    Raises:
        RuntimeError: If settings are not initialized.
    """
    if _settings is None:
        raise RuntimeError("Settings not initialized")
    return _settings


def get_payment_service() -> PaymentService:
    """Get the current payment service instance.

    Raises:
        RuntimeError: If the payment service is not initialized.
    """
    if _payment_service is None:
        raise RuntimeError("Payment service not initialized")
    return _payment_service


def get_stripe_client() -> StripePaymentClient | None:
    """Get the Stripe client, or None before startup."""
    return _stripe_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Async lifespan context manager for startup and shutdown events."""
    global _settings, _stripe_client, _payment_service

    # Missing STRIPE_SECRET_KEY fails here and aborts startup
    _settings = Settings()
    setup_logging(_settings)
    log_manager.get_api_logger()

    _stripe_client = StripePaymentClient(_settings)
    try:
        await _stripe_client.initialize()
    except Exception:
        await _stripe_client.close()
        _stripe_client = None
        _settings = None
        raise

    _payment_service = PaymentService(_stripe_client, _settings)

    yield

    if _stripe_client:
        await _stripe_client.close()
        _stripe_client = None
    _settings = None
    _payment_service = None


app = FastAPI(
    title="Checkout Service API",
    description="REST API for creating payment intents",
    version=__version__,
    lifespan=lifespan,
)

payment_router = APIRouter(prefix="/api/payment", tags=["payments"])


def configure_cors(application: FastAPI, origins: list[str]) -> None:
    """Allow browser requests from the given origins.

    Only the first call installs the middleware; later calls are ignored.
    """
    if any(middleware.cls is CORSMiddleware for middleware in application.user_middleware):
        logger.debug("CORS already configured, keeping existing origins")
        return
    application.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed request bodies as 400 instead of 422."""
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "Request body must be a JSON object"},
    )


def method_not_allowed() -> JSONResponse:
    """405 response advertising the accepted method."""
    return JSONResponse(
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        content={"error": "Method Not Allowed"},
        headers={"Allow": ALLOWED_METHODS},
    )


async def _create_intent(
    payload: PaymentIntentCreate,
    service: PaymentService,
    nested_error: bool,
) -> PaymentIntentResponse | JSONResponse:
    """Shared handler body for both payment intent routes.

    Args:
        payload: Parsed request body.
        service: Payment service instance.
        nested_error: Report 500s as ``{"error": {"message": ...}}``
            instead of ``{"error": ...}``.
    """
    try:
        intent = await service.create_payment_intent(payload.amount, payload.currency)
    except PaymentValidationError as e:
        logger.warning(f"Rejected payment intent request: {e}")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": str(e)},
        )
    except Exception as e:
        logger.error(f"Error creating payment intent: {e!r}")
        message = str(e) or "Unexpected error"
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": {"message": message} if nested_error else message},
        )

    return PaymentIntentResponse(clientSecret=intent.client_secret)


@app.get("/health", response_class=JSONResponse)
async def health_check(client: StripePaymentClient | None = Depends(get_stripe_client)) -> JSONResponse:
    """Health check endpoint reporting payment gateway readiness.

    Returns:
        JSONResponse: 200 with status "healthy" when the gateway client is
        initialized, otherwise 503 with status "unhealthy".
    """
    ready = client is not None and client.is_initialized
    health_status = {
        "status": "healthy" if ready else "unhealthy",
        "payment_gateway": "ready" if ready else "unavailable",
    }
    status_code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=health_status, status_code=status_code)


@app.get("/")
async def root() -> dict:
    """Root endpoint returning API information."""
    return {
        "name": "Checkout Service API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health",
        "payment_intents": "/api/create-payment-intent",
    }


@app.post("/api/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent(
    payload: PaymentIntentCreate,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse | JSONResponse:
    """Create a payment intent and return its client secret.

    Returns:
        PaymentIntentResponse: ``{"clientSecret": ...}`` on success; 400
        ``{"error": str}`` for an invalid amount or currency; 500
        ``{"error": str}`` when the payment provider fails.
    """
    return await _create_intent(payload, service, nested_error=False)


@app.api_route("/api/create-payment-intent", methods=REJECTED_METHODS, include_in_schema=False)
async def create_payment_intent_wrong_method() -> JSONResponse:
    return method_not_allowed()


@payment_router.post("/create-payment-intent", response_model=PaymentIntentResponse)
async def create_payment_intent_routed(
    payload: PaymentIntentCreate,
    service: PaymentService = Depends(get_payment_service),
) -> PaymentIntentResponse | JSONResponse:
    """Router-mounted variant used by the checkout form.

    Same validation as ``POST /api/create-payment-intent``; provider
    failures are reported as ``{"error": {"message": str}}``.
    """
    return await _create_intent(payload, service, nested_error=True)


@payment_router.api_route("/create-payment-intent", methods=REJECTED_METHODS, include_in_schema=False)
async def create_payment_intent_routed_wrong_method() -> JSONResponse:
    return method_not_allowed()


app.include_router(payment_router)
