"""Escrowed transfers to recipients who have not registered yet, and monthly send limits."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, String, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rewards.models.account import MONEY
from rewards.models.base import Base, TimestampMixin, UUIDMixin


class PendingTransferStatus(str, Enum):
    PENDING = "pending"
    CLAIMED = "claimed"
    CANCELLED = "cancelled"


class PendingTransfer(Base, UUIDMixin, TimestampMixin):
    """Value sent to an email with no account yet.

    The sender's peer_transfer_sent transaction stays pending until the
    transfer is claimed (posted) or cancelled (rejected).
    """

    __tablename__ = "pending_transfers"

    sender_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    recipient_email: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        index=True,
        comment="Lower-cased",
    )
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    message: Mapped[str | None] = mapped_column(String(500), nullable=True)
    status: Mapped[PendingTransferStatus] = mapped_column(
        SQLEnum(PendingTransferStatus, native_enum=False, length=16),
        default=PendingTransferStatus.PENDING,
        nullable=False,
        index=True,
    )
    sender_transaction_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("ledger_transactions.id", ondelete="RESTRICT"),
        nullable=False,
    )
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<PendingTransfer {self.recipient_email} {self.amount} {self.status.value}>"


class PeerTransferLimit(Base, UUIDMixin, TimestampMixin):
    """Most a principal may send to peers within one calendar month.

    Usage is summed from posted and pending peer_transfer_sent
    transactions the principal sourced inside the period.
    """

    __tablename__ = "peer_transfer_limits"
    __table_args__ = (
        UniqueConstraint("principal_id", "period_start", name="uq_transfer_limit_period"),
    )

    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    max_amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    def __repr__(self) -> str:
        return f"<PeerTransferLimit {self.period_start:%Y-%m} max={self.max_amount}>"
