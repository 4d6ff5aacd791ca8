"""Ledger result schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from rewards.models.ledger import TransactionKind, TransactionStatus
from rewards.schemas.common import BaseSchema


class TransactionResponse(BaseSchema):
    """Ledger transaction as returned to callers."""

    id: str
    account_id: str
    kind: TransactionKind
    amount: Decimal
    status: TransactionStatus
    description: str | None = None
    source_principal_id: str | None = None
    target_principal_id: str | None = None
    link_id: str | None = None
    created_at: datetime
    posted_at: datetime | None = None
    rejected_at: datetime | None = None
    reject_reason: str | None = None


class BalanceSummary(BaseSchema):
    """Posted balance, signed pending sum and their total."""

    posted: Decimal
    pending: Decimal = Field(default=Decimal("0"), description="Signed sum of pending transactions")
    total: Decimal


class TransactionPage(BaseSchema):
    transactions: list[TransactionResponse]
    total: int
    limit: int
    offset: int


class ReconciliationReport(BaseSchema):
    """Cached balance compared with the signed sum of posted transactions."""

    account_id: str
    cached_balance: Decimal
    computed_balance: Decimal
    posted_count: int

    @property
    def is_consistent(self) -> bool:
        return self.cached_balance == self.computed_balance
