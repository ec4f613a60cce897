# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

_DEFAULT_SECRET_KEY = SecretStr("dev-secret-key-change-me")

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    environment: Literal["development", "test", "production"] = "development"
    log_level: str = "INFO"

    # Auth (token decoding only; issuance lives in the identity service)
    secret_key: SecretStr = Field(
        default=_DEFAULT_SECRET_KEY,
        description="Secret key for JWT tokens",
    )
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 720  # 12 hours

    database_url_raw: str = Field(
        default="sqlite:///./mentorship.db",
        alias="DATABASE_URL",
        description="SQLAlchemy database URL",
    )
    database_pool_size: int = Field(default=20, description="Persistent pool connections")
    database_max_overflow: int = Field(default=10, description="Pool overflow connections")

    # Availability
    availability_horizon_weeks: int = Field(
        default=4,
        ge=1,
        le=52,
        description="Weeks of dated slots kept materialized ahead of today",
    )
    max_recurring_weeks: int = Field(
        default=12,
        ge=1,
        description="Maximum weeks a recurring one-off slot may be repeated",
    )

    # Booking concurrency
    booking_lock_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for the per-mentor booking lock",
    )
    booking_lock_ttl_seconds: int = Field(
        default=30,
        ge=1,
        description="Expiry of the distributed booking lock key",
    )
    booking_lock_redis_url: Optional[str] = Field(
        default=None,
        alias="BOOKING_LOCK_REDIS_URL",
        description="Redis URL for cross-process booking locks (in-process only when unset)",
    )
    booking_lock_namespace: str = "mentorship"
    transaction_timeout_ms: int = Field(
        default=5000,
        ge=100,
        description="Statement timeout applied to booking transactions on PostgreSQL",
    )

    # Background jobs
    celery_broker_url: str = Field(
        default="redis://localhost:6379/0",
        alias="CELERY_BROKER_URL",
    )
    celery_result_backend: Optional[str] = Field(default=None, alias="CELERY_RESULT_BACKEND")

    # Use ConfigDict instead of Config class (Pydantic V2 style)
    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,  # allows SECRET_KEY to match secret_key
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("secret_key")
    @classmethod
    def require_secret_in_prod(cls, value: SecretStr, info: ValidationInfo) -> SecretStr:
        """Refuse the development secret when running in production."""

        environment = info.data.get("environment", "development")
        if environment == "production" and value.get_secret_value() == (
            _DEFAULT_SECRET_KEY.get_secret_value()
        ):
            raise ValueError("SECRET_KEY must be set in production environments.")
        return value

    @field_validator("database_url_raw")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Accept Heroku-style postgres:// URLs."""
        if v.startswith("postgres://"):
            return "postgresql://" + v[len("postgres://") :]
        return v

    def get_database_url(self) -> str:
        """Get the database URL for the current context."""
        return self.database_url_raw


settings = Settings()
