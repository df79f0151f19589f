"""Unit tests for Settings validation."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from refchain.config.settings import Settings


def make_settings(**overrides):
    """Build Settings without reading a .env file."""
    values = {"database_url": "sqlite+aiosqlite:///./test.db", **overrides}
    return Settings(_env_file=None, **values)


class TestDatabaseUrl:
    """Test database URL validation."""

    def test_plain_postgres_url_uses_asyncpg(self):
        """postgresql:// is rewritten to the asyncpg driver."""
        settings = make_settings(database_url="postgresql://u:p@db/refchain")
        assert settings.database_url == "postgresql+asyncpg://u:p@db/refchain"

    def test_sqlite_url_kept(self):
        """aiosqlite URLs are accepted unchanged."""
        settings = make_settings()
        assert settings.database_url == "sqlite+aiosqlite:///./test.db"

    def test_unsupported_url(self):
        """Other drivers are rejected."""
        with pytest.raises(ValidationError):
            make_settings(database_url="mysql://u:p@db/refchain")


class TestCommissionSettings:
    """Test rate and depth validation."""

    def test_defaults(self):
        """Defaults are 12/8/4 and gold 3/silver 2/bronze 1."""
        settings = make_settings()

        assert settings.commission_rates == {
            1: Decimal("0.12"), 2: Decimal("0.08"), 3: Decimal("0.04")
        }
        assert settings.tier_depth_limits == {"gold": 3, "silver": 2, "bronze": 1}
        assert settings.default_chain_depth == 1

    @pytest.mark.parametrize(
        "rates",
        [{1: "0"}, {1: "1"}, {1: "-0.1"}, {0: "0.1"}],
    )
    def test_invalid_rates(self, rates):
        """Rates must be in (0, 1) and layers positive."""
        with pytest.raises(ValidationError):
            make_settings(commission_rates=rates)

    def test_tier_names_lower_cased(self):
        """Tier names are normalized."""
        settings = make_settings(tier_depth_limits={" Gold ": 4})
        assert settings.tier_depth_limits == {"gold": 4}

    def test_invalid_tier_depth(self):
        """Depth below 1 is rejected."""
        with pytest.raises(ValidationError):
            make_settings(tier_depth_limits={"gold": 0})


class TestLogLevel:
    """Test log level validation."""

    def test_upper_cased(self):
        """Log level is case-insensitive."""
        assert make_settings(log_level="warning").log_level == "WARNING"

    def test_invalid(self):
        """Unknown levels are rejected."""
        with pytest.raises(ValidationError):
            make_settings(log_level="LOUD")
