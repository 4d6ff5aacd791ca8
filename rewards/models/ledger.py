"""Ledger transaction model and kind classification.

Every change to an account balance goes through a LedgerTransaction:
- TransactionKind: closed set of money movements
- TransactionStatus: pending -> posted | rejected (both terminal)
- LedgerTransaction: immutable intent plus lifecycle timestamps
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rewards.models.account import MONEY
from rewards.models.base import Base, TimestampMixin, UUIDMixin
from rewards.utils.errors import UnknownTransactionKindError


class TransactionKind(str, Enum):
    """Kinds of ledger transactions."""

    AWARD = "award"
    PEER_TRANSFER_SENT = "peer_transfer_sent"
    PEER_TRANSFER_RECEIVED = "peer_transfer_received"
    WELLNESS_REWARD = "wellness_reward"
    ADJUSTMENT = "adjustment"
    STORE_PURCHASE = "store_purchase"
    WAGER_BET = "wager_bet"
    WAGER_WIN = "wager_win"
    WAGER_REFUND = "wager_refund"
    JACKPOT_CONTRIBUTION = "jackpot_contribution"
    JACKPOT_WIN = "jackpot_win"
    DAILY_BONUS = "daily_bonus"
    BULK_IMPORT = "bulk_import"
    ALLOTMENT_DEPOSIT = "allotment_deposit"


class TransactionStatus(str, Enum):
    """Lifecycle of a ledger transaction."""

    PENDING = "pending"
    POSTED = "posted"
    REJECTED = "rejected"


def balance_sign(kind: TransactionKind) -> int:
    """Return +1 for credit kinds and -1 for debit kinds.

    Raises:
        UnknownTransactionKindError: ``kind`` has no classification
    """
    match kind:
        case (
            TransactionKind.AWARD
            | TransactionKind.PEER_TRANSFER_RECEIVED
            | TransactionKind.WELLNESS_REWARD
            | TransactionKind.ADJUSTMENT
            | TransactionKind.WAGER_WIN
            | TransactionKind.WAGER_REFUND
            | TransactionKind.JACKPOT_WIN
            | TransactionKind.DAILY_BONUS
            | TransactionKind.BULK_IMPORT
        ):
            return 1
        case (
            TransactionKind.PEER_TRANSFER_SENT
            | TransactionKind.STORE_PURCHASE
            | TransactionKind.WAGER_BET
            | TransactionKind.JACKPOT_CONTRIBUTION
            | TransactionKind.ALLOTMENT_DEPOSIT
        ):
            return -1
        case _:
            raise UnknownTransactionKindError(kind)


def signed_amount(kind: TransactionKind, amount: Decimal) -> Decimal:
    return amount * balance_sign(kind)


class LedgerTransaction(Base, UUIDMixin, TimestampMixin):
    """One money movement against one account.

    ``amount`` is always positive; the direction comes from ``kind``.
    """

    __tablename__ = "ledger_transactions"
    __table_args__ = (
        Index("ix_ledger_account_status", "account_id", "status"),
        Index("ix_ledger_source_kind", "source_principal_id", "kind"),
    )

    account_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("accounts.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    kind: Mapped[TransactionKind] = mapped_column(
        SQLEnum(TransactionKind, native_enum=False, length=32),
        nullable=False,
        index=True,
    )
    amount: Mapped[Decimal] = mapped_column(
        MONEY,
        nullable=False,
        comment="Positive amount; sign is derived from kind",
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(TransactionStatus, native_enum=False, length=16),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True,
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)

    # Parties for transfers and awards
    source_principal_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="SET NULL"),
        nullable=True,
    )
    target_principal_id: Mapped[str | None] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="SET NULL"),
        nullable=True,
    )
    link_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        index=True,
        comment="Game, transfer or submission this entry belongs to",
    )

    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    rejected_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    reject_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @property
    def signed_amount(self) -> Decimal:
        return signed_amount(self.kind, self.amount)

    def __repr__(self) -> str:
        return (
            f"<LedgerTransaction {self.id[:8]}... "
            f"kind={self.kind.value} amount={self.amount} status={self.status.value}>"
        )
