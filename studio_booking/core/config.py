# studio_booking/core/config.py
from datetime import date
import logging
import os
from pathlib import Path
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).resolve().parents[2] / ".env"
    logger.info(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


_DEFAULT_SECRET_KEY = SecretStr("dev-only-insecure-secret-change-me")

# Studio calendar: official holidays plus high-demand dates priced as holidays.
DEFAULT_HOLIDAYS: List[str] = [
    "2026-01-01",
    "2026-02-02",
    "2026-03-16",
    "2026-04-02",
    "2026-04-03",
    "2026-05-01",
    "2026-05-10",
    "2026-09-16",
    "2026-11-16",
    "2026-12-12",
    "2026-12-24",
    "2026-12-25",
    "2026-12-31",
]


class Settings(BaseSettings):
    environment: str = Field(default="development", description="Deployment environment")
    is_testing: bool = Field(default_factory=is_running_tests)

    database_url: str = Field(
        default="sqlite:///./studio_booking.db",
        description="SQLAlchemy database URL",
    )

    # Auth
    secret_key: SecretStr = Field(
        default=_DEFAULT_SECRET_KEY,
        description="Secret key for session JWT tokens",
    )
    algorithm: str = "HS256"
    guest_token_secret: Optional[SecretStr] = Field(
        default=None,
        description="Optional override secret for guest tokens (defaults to SECRET_KEY)",
    )
    guest_token_ttl_days: int = Field(
        default=365,
        description="Hard ceiling for guest token lifetime; reservation status is the real expiry",
    )

    app_url: str = Field(default="http://localhost:3000", description="Public site URL")

    # Studio rules
    business_timezone: str = Field(
        default="America/Monterrey",
        description="Civil timezone used to compute 'today'",
    )
    session_duration_minutes: int = Field(default=45, ge=1)
    lead_time_business_days: int = Field(
        default=5,
        ge=0,
        description="Business days of notice required to reschedule or cancel",
    )
    max_customer_reschedules: int = Field(default=1, ge=0)
    refund_percentage: float = Field(default=0.80, ge=0, le=1)
    refund_reconciliation_mode: Literal["manual"] = Field(
        default="manual",
        description="Refunds are recorded as pending and reconciled by staff",
    )

    # Loyalty
    loyalty_points_divisor: int = Field(
        default=10,
        ge=1,
        description="One point is granted per this many currency units charged",
    )
    loyalty_points_expiry_days: int = Field(default=365, ge=1)

    # Pricing
    price_normal: int = Field(default=1500, ge=0)
    price_weekend: int = Field(default=1800, ge=0)
    price_holiday: int = Field(default=2000, ge=0)
    holidays: List[date] = Field(
        default_factory=lambda: [date.fromisoformat(day) for day in DEFAULT_HOLIDAYS]
    )

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def guest_token_signing_key(self) -> str:
        secret = self.guest_token_secret or self.secret_key
        return secret.get_secret_value()


settings = Settings()
logger.info(
    "[CONFIG] Studio configuration: environment=%s timezone=%s lead_time=%s",
    settings.environment,
    settings.business_timezone,
    settings.lead_time_business_days,
)
