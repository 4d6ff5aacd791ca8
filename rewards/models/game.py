"""Wagering models.

- GameKind: playable mini-games
- GameConfig: operator-owned limits, house edge and enabled flag
- Game / GameParticipant / GameTransaction: immutable record of one play
- GameStats: per-principal aggregate updated with every play
- DailyBonusSpin: one free spin per principal per UTC day
- FairnessState: per-principal nonce counter and pre-committed seed
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from rewards.models.account import MONEY
from rewards.models.base import Base, TimestampMixin, UUIDMixin


class GameKind(str, Enum):
    """Playable games."""

    COIN_FLIP = "coin_flip"
    DICE_ROLL = "dice_roll"
    SPIN_WHEEL = "spin_wheel"
    HIGHER_LOWER = "higher_lower"
    SCRATCH_CARD = "scratch_card"
    DAILY_BONUS = "daily_bonus"


class GameStatus(str, Enum):
    COMPLETED = "completed"


class GameTransactionKind(str, Enum):
    """What a GameTransaction row records."""

    BET = "bet"
    WIN = "win"
    JACKPOT_CONTRIBUTION = "jackpot_contribution"
    BONUS = "bonus"


class GameConfig(Base, UUIDMixin, TimestampMixin):
    """Operator configuration for one game kind."""

    __tablename__ = "game_configs"

    game_kind: Mapped[GameKind] = mapped_column(
        SQLEnum(GameKind, native_enum=False, length=32),
        unique=True,
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    min_bet: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    max_bet: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    house_edge_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2),
        default=Decimal("5"),
        nullable=False,
        comment="Subtracted from the fair multiplier (percent)",
    )
    jackpot_contribution_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 4),
        default=Decimal("0.05"),
        nullable=False,
        comment="Fraction of a losing bet routed to the active jackpot",
    )
    custom_config: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
    )
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def snapshot(self) -> dict[str, Any]:
        """Serializable copy stored on every Game row."""
        return {
            "game_kind": self.game_kind.value,
            "min_bet": str(self.min_bet),
            "max_bet": str(self.max_bet),
            "house_edge_percent": str(self.house_edge_percent),
            "jackpot_contribution_rate": str(self.jackpot_contribution_rate),
            "custom_config": dict(self.custom_config or {}),
        }

    def __repr__(self) -> str:
        return f"<GameConfig {self.game_kind.value} enabled={self.enabled}>"


class Game(Base, UUIDMixin, TimestampMixin):
    """One resolved play. Never mutated after completion."""

    __tablename__ = "games"
    __table_args__ = (
        UniqueConstraint("principal_id", "nonce", name="uq_game_principal_nonce"),
    )

    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    game_kind: Mapped[GameKind] = mapped_column(
        SQLEnum(GameKind, native_enum=False, length=32),
        nullable=False,
        index=True,
    )
    status: Mapped[GameStatus] = mapped_column(
        SQLEnum(GameStatus, native_enum=False, length=16),
        default=GameStatus.COMPLETED,
        nullable=False,
    )
    config_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Provably fair inputs
    server_seed: Mapped[str] = mapped_column(String(64), nullable=False)
    server_seed_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    client_seed: Mapped[str] = mapped_column(String(128), nullable=False)
    nonce: Mapped[int] = mapped_column(Integer, nullable=False)

    # Result
    outcome: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    won: Mapped[bool] = mapped_column(Boolean, nullable=False)
    bet: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    payout: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    fair_multiplier: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    effective_multiplier: Mapped[Decimal] = mapped_column(Numeric(10, 4), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<Game {self.game_kind.value} nonce={self.nonce} won={self.won}>"


class GameParticipant(Base, UUIDMixin, TimestampMixin):
    """A principal's seat in a game."""

    __tablename__ = "game_participants"

    game_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    prediction: Mapped[Any] = mapped_column(JSON, nullable=True)
    bet: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    payout: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    is_winner: Mapped[bool] = mapped_column(Boolean, nullable=False)


class GameTransaction(Base, UUIDMixin, TimestampMixin):
    """Money leg of a game, linked to the ledger row it produced."""

    __tablename__ = "game_transactions"

    game_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        nullable=False,
    )
    kind: Mapped[GameTransactionKind] = mapped_column(
        SQLEnum(GameTransactionKind, native_enum=False, length=32),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    ledger_transaction_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("ledger_transactions.id", ondelete="SET NULL"),
        nullable=True,
        comment="Null for carve-outs that never touch the player's account",
    )
    jackpot_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("jackpots.id", ondelete="SET NULL"),
        nullable=True,
    )


class GameStats(Base, UUIDMixin, TimestampMixin):
    """Rolling per-principal wagering aggregate."""

    __tablename__ = "game_stats"

    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    games_played: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    games_won: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_bet: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    total_won: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    net_profit: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    current_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    longest_streak: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    stats_by_game: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        default=dict,
        nullable=False,
        comment="game_kind -> {played, won, bet, payout}; amounts as strings",
    )
    jackpots_won: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_jackpot_winnings: Mapped[Decimal] = mapped_column(
        MONEY, default=Decimal("0"), nullable=False
    )


class DailyBonusSpin(Base, UUIDMixin, TimestampMixin):
    """One claimed daily bonus."""

    __tablename__ = "daily_bonus_spins"
    __table_args__ = (
        UniqueConstraint("principal_id", "spin_date", name="uq_daily_bonus_principal_date"),
    )

    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    spin_date: Mapped[date] = mapped_column(Date, nullable=False, comment="UTC date")
    prize: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    segment_index: Mapped[int] = mapped_column(Integer, nullable=False)
    game_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("games.id", ondelete="CASCADE"),
        nullable=False,
    )


class FairnessState(Base, UUIDMixin, TimestampMixin):
    """Per-principal nonce counter and optional pre-committed server seed."""

    __tablename__ = "fairness_states"

    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    last_nonce: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Highest nonce handed out; strictly increasing",
    )
    next_server_seed: Mapped[str | None] = mapped_column(String(64), nullable=True)
    next_server_seed_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
