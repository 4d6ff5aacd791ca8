"""Application configuration."""
from decimal import Decimal
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_env: str = "development"
    log_level: str = "INFO"
    json_logs: bool = False

    # Database
    database_url: str = Field(
        default="sqlite+aiosqlite:///./rewards.db",
        description="Async database URL (postgresql+asyncpg in production)",
    )
    db_pool_size: int = Field(
        default=20,
        description="DB connection pool size",
    )
    db_max_overflow: int = Field(
        default=10,
        description="Max overflow connections",
    )
    db_echo: bool = False
    db_isolation_level: str = Field(
        default="SERIALIZABLE",
        description="Isolation level for every unit of work",
    )
    db_retry_attempts: int = Field(
        default=5,
        description="Attempts for a unit of work aborted by a serialization failure",
    )

    # Wagering defaults, used when a game config row is first created
    default_min_bet: Decimal = Decimal("1")
    default_max_bet: Decimal = Decimal("100")
    default_house_edge_percent: Decimal = Field(
        default=Decimal("5"),
        description="House edge applied to fair multipliers (percent)",
    )
    default_jackpot_contribution_rate: Decimal = Field(
        default=Decimal("0.05"),
        description="Fraction of a losing bet routed to the active jackpot",
    )

    # Allotments
    default_allotment_amount: Decimal = Field(
        default=Decimal("1000"),
        description="Budget granted to a manager for a new period",
    )

    # Peer transfers
    default_peer_transfer_limit: Decimal = Field(
        default=Decimal("500"),
        description="Monthly cap on coins a principal may send to peers",
    )

    # Notifications (best-effort webhook)
    notification_webhook_url: str | None = Field(
        default=None,
        description="Webhook receiving transfer/award/bank events (optional)",
    )
    notification_timeout_seconds: float = 5.0

    @field_validator("default_house_edge_percent")
    @classmethod
    def validate_house_edge(cls, v: Decimal) -> Decimal:
        """House edge must be a percentage below 100."""
        if v < 0 or v >= 100:
            raise ValueError("default_house_edge_percent must be within [0, 100)")
        return v

    @field_validator("default_jackpot_contribution_rate")
    @classmethod
    def validate_contribution_rate(cls, v: Decimal) -> Decimal:
        if v < 0 or v > 1:
            raise ValueError("default_jackpot_contribution_rate must be within [0, 1]")
        return v

    @field_validator("db_retry_attempts")
    @classmethod
    def validate_retry_attempts(cls, v: int) -> int:
        if v < 1:
            raise ValueError("db_retry_attempts must be at least 1")
        return v

    @model_validator(mode="after")
    def validate_bet_limits(self) -> "Settings":
        """Validate default bet limits."""
        if self.default_min_bet <= 0:
            raise ValueError("default_min_bet must be positive")
        if self.default_min_bet > self.default_max_bet:
            raise ValueError("default_min_bet must not exceed default_max_bet")
        return self

    @model_validator(mode="after")
    def validate_production_settings(self) -> "Settings":
        """Validate settings for production environment."""
        if self.app_env == "production":
            if self.db_isolation_level.upper() != "SERIALIZABLE":
                raise ValueError(
                    "db_isolation_level must be SERIALIZABLE in production environment"
                )
            if self.db_echo:
                raise ValueError("db_echo must be False in production environment")
            if self.database_url.startswith("sqlite"):
                raise ValueError(
                    "SQLite is not supported in production environment. "
                    "Use a postgresql+asyncpg URL."
                )
        return self

    model_config = {
        "env_file": ".env",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
