"""Environment-driven settings.

All values are read from environment variables once per process through
``get_settings()``. Tests call ``get_settings.cache_clear()`` after changing
the environment.
"""

import os
from decimal import Decimal
from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field, model_validator


class Settings(BaseModel):
    """Runtime configuration for the booking core."""

    model_config = ConfigDict(frozen=True)

    environment: str = Field(default="dev", description="Deployment environment")
    table_prefix: str = Field(
        default="stayledger-dev", description="Prefix prepended to every table name"
    )
    aws_region: str | None = Field(default=None, description="AWS region override")
    dynamodb_endpoint_url: str | None = Field(
        default=None, description="Custom endpoint (DynamoDB Local)"
    )
    dynamodb_timeout_seconds: float = Field(default=5.0, gt=0)
    dynamodb_max_attempts: int = Field(default=3, ge=1)

    points_per_currency_unit: Decimal = Field(
        default=Decimal("1"), gt=0, description="Points earned per whole currency unit"
    )
    point_value: Decimal = Field(
        default=Decimal("0.01"), gt=0, description="Discount value of one point"
    )
    min_redemption_points: int = Field(default=100, ge=1)
    max_redemption_points: int = Field(default=10000, ge=1)
    max_stay_nights: int = Field(default=30, ge=1)
    max_booking_hours: int = Field(
        default=8, ge=1, description="Longest hourly booking of an installation"
    )
    ledger_currency: str = Field(
        default="EUR", pattern=r"^[A-Z]{3}$", description="Currency points are earned in"
    )

    log_level: str = Field(default="INFO")

    @model_validator(mode="after")
    def _check_redemption_bounds(self) -> "Settings":
        if self.min_redemption_points > self.max_redemption_points:
            raise ValueError("min_redemption_points must not exceed max_redemption_points")
        return self

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Returns:
            Settings populated from the process environment with defaults
            for anything unset.
        """
        environment = os.getenv("ENVIRONMENT", "dev")
        return cls(
            environment=environment,
            # Allow override via DYNAMODB_TABLE_PREFIX for testing
            table_prefix=os.getenv("DYNAMODB_TABLE_PREFIX", f"stayledger-{environment}"),
            aws_region=os.getenv("AWS_DEFAULT_REGION") or None,
            dynamodb_endpoint_url=os.getenv("DYNAMODB_ENDPOINT_URL") or None,
            dynamodb_timeout_seconds=float(os.getenv("DYNAMODB_TIMEOUT_SECONDS", "5")),
            dynamodb_max_attempts=int(os.getenv("DYNAMODB_MAX_ATTEMPTS", "3")),
            points_per_currency_unit=Decimal(os.getenv("LOYALTY_POINTS_PER_UNIT", "1")),
            point_value=Decimal(os.getenv("LOYALTY_POINT_VALUE", "0.01")),
            min_redemption_points=int(os.getenv("LOYALTY_MIN_REDEMPTION", "100")),
            max_redemption_points=int(os.getenv("LOYALTY_MAX_REDEMPTION", "10000")),
            max_stay_nights=int(os.getenv("BOOKING_MAX_STAY_NIGHTS", "30")),
            max_booking_hours=int(os.getenv("BOOKING_MAX_HOURS", "8")),
            ledger_currency=os.getenv("LOYALTY_CURRENCY", "EUR"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings for this process."""
    return Settings.from_env()
