"""Shared liquidity pools: the game bank and jackpots."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import Boolean, DateTime, Enum as SQLEnum, ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rewards.models.account import MONEY
from rewards.models.base import Base, TimestampMixin, UUIDMixin

BANK_ACCOUNT_ID = "bank"


class JackpotType(str, Enum):
    """Jackpot drawing cadence."""

    ROLLING = "rolling"
    DAILY = "daily"
    WEEKLY = "weekly"
    EVENT = "event"


class GameBankAccount(Base, TimestampMixin):
    """Single-row pool that nets every wager outcome.

    The only row has ``id == BANK_ACCOUNT_ID``; BankService creates it on
    first access inside the unit of work that mutates it.
    """

    __tablename__ = "game_bank_account"

    id: Mapped[str] = mapped_column(String(16), primary_key=True, default=BANK_ACCOUNT_ID)
    balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)

    def __repr__(self) -> str:
        return f"<GameBankAccount balance={self.balance}>"


class Jackpot(Base, UUIDMixin, TimestampMixin):
    """Named pool fed by a fraction of losing bets."""

    __tablename__ = "jackpots"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    type: Mapped[JackpotType] = mapped_column(
        SQLEnum(JackpotType, native_enum=False, length=16),
        unique=True,
        nullable=False,
    )
    balance: Mapped[Decimal] = mapped_column(MONEY, default=Decimal("0"), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    last_won_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    last_won_by: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_won_amount: Mapped[Decimal | None] = mapped_column(MONEY, nullable=True)

    def __repr__(self) -> str:
        return f"<Jackpot {self.type.value} balance={self.balance} active={self.is_active}>"


class JackpotContribution(Base, UUIDMixin, TimestampMixin):
    """Append-only record used as drawing weight."""

    __tablename__ = "jackpot_contributions"

    jackpot_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("jackpots.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    game_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("games.id", ondelete="SET NULL"),
        nullable=True,
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
