"""
Application settings.

Loads configuration from environment variables using pydantic-settings.
"""

from decimal import Decimal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from refchain.config.constants import (
    COMMISSION_RATES,
    DEFAULT_CHAIN_DEPTH,
    NOTIFICATION_TIMEOUT,
    REFERRAL_CODE_LENGTH,
    REFERRAL_CODE_MAX_ATTEMPTS,
    STORE_TIMEOUT,
    TIER_DEPTH_LIMITS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    database_url: str
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    # Timeouts
    store_timeout_seconds: float = Field(
        default=STORE_TIMEOUT, gt=0,
        description="Upper bound for one store operation"
    )
    notification_timeout_seconds: float = Field(
        default=NOTIFICATION_TIMEOUT, gt=0,
        description="Upper bound for one notification hook call"
    )

    # Referral codes
    referral_code_length: int = Field(default=REFERRAL_CODE_LENGTH, ge=6, le=32)
    referral_code_max_attempts: int = Field(
        default=REFERRAL_CODE_MAX_ATTEMPTS, ge=1
    )
    frontend_url: str = "https://site.com"

    # Commission program
    commission_rates: dict[int, Decimal] = Field(
        default_factory=lambda: dict(COMMISSION_RATES),
        description="Layer → commission rate (JSON in env)"
    )
    tier_depth_limits: dict[str, int] = Field(
        default_factory=lambda: dict(TIER_DEPTH_LIMITS),
        description="Tier → max chain depth (JSON in env)"
    )
    default_chain_depth: int = Field(default=DEFAULT_CHAIN_DEPTH, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator('database_url')
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Validate database URL."""
        if not v.startswith((
            'postgresql://', 'postgresql+asyncpg://', 'sqlite+aiosqlite://'
        )):
            raise ValueError(
                'DATABASE_URL must start with postgresql+asyncpg:// '
                'or sqlite+aiosqlite://'
            )
        if v.startswith('postgresql://'):
            return v.replace('postgresql://', 'postgresql+asyncpg://', 1)
        return v

    @field_validator('commission_rates')
    @classmethod
    def validate_commission_rates(
        cls, v: dict[int, Decimal]
    ) -> dict[int, Decimal]:
        """Rates must be fractions in (0, 1) keyed by positive layers."""
        for layer, rate in v.items():
            if layer < 1:
                raise ValueError(f'Invalid commission layer: {layer}')
            if not Decimal("0") < rate < Decimal("1"):
                raise ValueError(
                    f'Commission rate for layer {layer} must be in (0, 1), '
                    f'got {rate}'
                )
        return v

    @field_validator('tier_depth_limits')
    @classmethod
    def validate_tier_depth_limits(cls, v: dict[str, int]) -> dict[str, int]:
        """Depths must be positive; tier names are matched lower-case."""
        normalized = {}
        for tier, depth in v.items():
            if depth < 1:
                raise ValueError(f'Depth for tier {tier!r} must be >= 1')
            normalized[tier.strip().lower()] = depth
        return normalized

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = [
            'TRACE', 'DEBUG', 'INFO', 'SUCCESS',
            'WARNING', 'ERROR', 'CRITICAL',
        ]
        if v.upper() not in valid_levels:
            raise ValueError(f'Invalid log level. Must be one of: {valid_levels}')
        return v.upper()


# Global settings instance
settings = Settings()
