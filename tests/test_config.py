"""Tests for application settings."""

from decimal import Decimal

import pytest
from pydantic import ValidationError

from rewards.config import Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings(_env_file=None)

        assert settings.db_isolation_level == "SERIALIZABLE"
        assert settings.default_house_edge_percent == Decimal("5")
        assert settings.default_jackpot_contribution_rate == Decimal("0.05")
        assert settings.default_allotment_amount == Decimal("1000")
        assert settings.notification_webhook_url is None

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_MAX_BET", "250")
        monkeypatch.setenv("NOTIFICATION_WEBHOOK_URL", "https://hooks.example.com/rewards")

        settings = Settings(_env_file=None)

        assert settings.default_max_bet == Decimal("250")
        assert settings.notification_webhook_url == "https://hooks.example.com/rewards"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"default_house_edge_percent": Decimal("100")},
            {"default_house_edge_percent": Decimal("-1")},
            {"default_jackpot_contribution_rate": Decimal("1.5")},
            {"default_min_bet": Decimal("0")},
            {"default_min_bet": Decimal("10"), "default_max_bet": Decimal("5")},
            {"db_retry_attempts": 0},
        ],
    )
    def test_rejects_invalid_values(self, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    def test_production_requires_postgres_and_serializable(self):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, app_env="production")
        with pytest.raises(ValidationError):
            Settings(
                _env_file=None,
                app_env="production",
                database_url="postgresql+asyncpg://rewards@localhost/rewards",
                db_isolation_level="READ COMMITTED",
            )

        settings = Settings(
            _env_file=None,
            app_env="production",
            database_url="postgresql+asyncpg://rewards@localhost/rewards",
        )
        assert settings.app_env == "production"
