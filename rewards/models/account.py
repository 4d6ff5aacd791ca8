"""Principal directory and per-principal account models."""

from decimal import Decimal

from sqlalchemy import Boolean, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from rewards.models.base import Base, TimestampMixin, UUIDMixin

MONEY = Numeric(14, 2)


class Principal(Base, UUIDMixin, TimestampMixin):
    """A person who can own an account (employee or manager)."""

    __tablename__ = "principals"

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
        comment="Lower-cased login email",
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    is_manager: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Principal {self.email}>"


class Account(Base, UUIDMixin, TimestampMixin):
    """Wallet account with a cached posted balance.

    ``balance`` is only ever written by LedgerService.post_transaction and
    always equals the signed sum of the account's posted transactions.
    """

    __tablename__ = "accounts"

    principal_id: Mapped[str] = mapped_column(
        Uuid(as_uuid=False),
        ForeignKey("principals.id", ondelete="RESTRICT"),
        unique=True,
        nullable=False,
    )
    balance: Mapped[Decimal] = mapped_column(
        MONEY,
        default=Decimal("0"),
        nullable=False,
        comment="Posted balance only",
    )

    def __repr__(self) -> str:
        return f"<Account {self.id[:8]}... balance={self.balance}>"
