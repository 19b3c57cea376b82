"""Configuration management using pydantic-settings."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Stripe
    stripe_secret_key: str = Field(min_length=1, description="Stripe secret API key")
    stripe_api_version: str = Field(default="2025-09-30.clover", description="Pinned Stripe API version")
    stripe_timeout_seconds: float = Field(default=30.0, gt=0, description="Network timeout for Stripe requests")

    # Payments
    default_currency: str = Field(default="usd", pattern=r"^[A-Za-z]{3}$", description="Currency used when none is given")
    payment_max_retries: int = Field(default=2, ge=0, le=10, description="Retries for transient gateway failures")
    payment_initial_delay_ms: int = Field(default=500, ge=0, description="First backoff delay in milliseconds")
    payment_max_delay_ms: int = Field(default=5000, ge=0, description="Backoff cap in milliseconds")

    # Server
    host: str = Field(default="0.0.0.0", description="Interface the API server binds to")
    port: int = Field(default=3001, ge=1, le=65535, description="Port the API server listens on")
    cors_origins: list[str] = Field(default=["*"], description="Origins allowed by CORS")

    # Logging
    log_level: str = Field(default="INFO", pattern=r"^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$")
    log_dir: Path = Field(default=Path("./logs"), description="Directory for log files")

    @property
    def base_url(self) -> str:
        """Return the local URL the API is reachable on."""
        host = "127.0.0.1" if self.host == "0.0.0.0" else self.host
        return f"http://{host}:{self.port}"
