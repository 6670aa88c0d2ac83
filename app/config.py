"""Application configuration via pydantic-settings."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "DabaBlane"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production", "test"] = "development"
    debug: bool = False
    api_prefix: str = "/api/v1"
    timezone: str = "Africa/Casablanca"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    workers: int = 4

    # Database
    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_user: str = "dabablane"
    postgres_password: str = Field(default="dabablane_secret")
    postgres_db: str = "dabablane"
    db_pool_size: int = 20
    db_max_overflow: int = 10
    database_url_override: Optional[str] = None

    @computed_field
    @property
    def database_url(self) -> str:
        """Async database connection URL."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    # Redis (Celery broker)
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: Optional[str] = None
    redis_db: int = 0

    @computed_field
    @property
    def redis_url(self) -> str:
        """Redis connection URL."""
        auth = f":{self.redis_password}@" if self.redis_password else ""
        return f"redis://{auth}{self.redis_host}:{self.redis_port}/{self.redis_db}"

    # JWT Authentication
    jwt_secret_key: str = Field(default="your-super-secret-key-change-in-production")
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 60

    # CMI payment gateway
    cmi_client_id: str = ""
    cmi_store_key: str = ""
    cmi_base_uri: str = "https://testpayment.cmi.co.ma/fim/est3Dgate"
    cmi_ok_fail_url: str = "http://localhost:3000/payment"
    cmi_ok_url: str = "success"
    cmi_fail_url: str = "failure"
    cmi_callback_url: str = "http://localhost:8000/api/v1/payments/cmi/callback"
    cmi_currency: str = "504"  # MAD
    cmi_lang: str = "fr"
    cmi_store_type: str = "3d_pay_hosting"
    cmi_tran_type: str = "PreAuth"
    cmi_hash_algorithm: str = "ver3"

    # Booking
    order_price_multiplier: Decimal = Decimal("1.00")
    unlimited_capacity_sentinel: int = 9999
    default_slot_interval_minutes: int = 60
    booking_code_max_attempts: int = 50
    cancel_token_lifetime_seconds: int = 3600
    cancel_request_window_seconds: int = 900

    # Commission defaults (used until the settings row is loaded)
    partial_payment_commission_rate: Decimal = Decimal("3.5")
    vat_rate: Decimal = Decimal("20.00")
    transfer_processing_day: str = "wednesday"
    daba_blane_account_iban: str = ""

    # Notifications
    webhook_url: Optional[str] = None
    email_api_url: Optional[str] = None
    email_api_key: Optional[str] = None
    email_from_address: str = "noreply@dabablane.com"
    email_from_name: str = "DabaBlane"
    mail_contact_address: Optional[str] = None

    # CORS
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:8080"]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
