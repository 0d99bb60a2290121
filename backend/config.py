"""
Configuration management for the School Canteen API.

Loads settings from .env via pydantic-settings.

Notes:
    - The Midtrans server key never leaves the backend; the client key is
      the only value exposed to the frontend.
    - validate_production_settings() refuses to boot a production process
      without gateway and auth secrets.
"""
import logging

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── Midtrans ────────────────────────────────────────────────────
    midtrans_server_key: str = ""
    midtrans_client_key: str = ""
    midtrans_is_production: bool = False
    midtrans_va_bank: str = "permata"
    midtrans_va_expiry_days: int = 7     # reusable VA lifetime
    midtrans_timeout_seconds: float = 30.0

    # ── Database ────────────────────────────────────────────────────
    database_url: str = "sqlite:///./data/canteen.db"

    # ── Auth (Supabase-issued JWT) ──────────────────────────────────
    supabase_jwt_secret: str = ""
    supabase_jwt_audience: str = "authenticated"

    # ── Application ─────────────────────────────────────────────────
    environment: str = "development"
    payment_rate_limit: int = 10         # payment calls per minute per caller

    # ── CORS ────────────────────────────────────────────────────────
    cors_origins: str = "*"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # allow unknown .env keys without crashing
    )

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def midtrans_snap_base_url(self) -> str:
        if self.midtrans_is_production:
            return "https://app.midtrans.com"
        return "https://app.sandbox.midtrans.com"

    @property
    def midtrans_api_base_url(self) -> str:
        if self.midtrans_is_production:
            return "https://api.midtrans.com"
        return "https://api.sandbox.midtrans.com"

    def validate_production_settings(self):
        """
        Validate settings for production safety.

        Called during app startup.
        """
        if self.environment == "production":
            if not self.midtrans_server_key:
                raise ValueError(
                    "MIDTRANS_SERVER_KEY must be set in production. "
                    "It authenticates every call to the payment gateway."
                )
            if not self.supabase_jwt_secret:
                raise ValueError(
                    "SUPABASE_JWT_SECRET must be set in production. "
                    "It is used to verify user access tokens."
                )
            if not self.midtrans_is_production:
                logger.warning("⚠️  Production environment is pointed at the Midtrans sandbox")
            logger.info("✅ Production settings validated")
        else:
            warnings = []
            if not self.midtrans_server_key:
                warnings.append("MIDTRANS_SERVER_KEY not set (payment creation will fail)")
            if not self.supabase_jwt_secret:
                warnings.append("SUPABASE_JWT_SECRET not set (authenticated routes will fail)")
            if "*" in self.cors_origins:
                warnings.append("CORS_ORIGINS contains '*' (open access)")
            for w in warnings:
                logger.warning(f"⚠️  {w}")


# Global settings instance
settings = Settings()
