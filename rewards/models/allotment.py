"""Manager allotment budgets."""

from datetime import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import DateTime, Enum as SQLEnum, ForeignKey, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rewards.models.account import MONEY
from rewards.models.base import Base, TimestampMixin, UUIDMixin


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class ManagerAllotment(Base, UUIDMixin, TimestampMixin):
    """Budget a manager may award within one period.

    Only the budget is stored; the used amount is summed from posted award
    transactions sourced by the manager inside the period.
    """

    __tablename__ = "manager_allotments"
    __table_args__ = (
        UniqueConstraint(
            "manager_id", "period_type", "period_start", name="uq_allotment_manager_period"
        ),
    )

    manager_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    period_type: Mapped[PeriodType] = mapped_column(
        SQLEnum(PeriodType, native_enum=False, length=16),
        nullable=False,
    )
    period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ManagerAllotment {self.period_type.value} "
            f"{self.period_start:%Y-%m-%d} amount={self.amount}>"
        )
