"""Allotment and pending transfer schemas."""

from datetime import datetime
from decimal import Decimal

from rewards.models.allotment import PeriodType
from rewards.models.pending_transfer import PendingTransferStatus
from rewards.schemas.common import BaseSchema
from rewards.schemas.ledger import TransactionResponse


class AllotmentSummary(BaseSchema):
    id: str
    manager_id: str
    period_type: PeriodType
    period_start: datetime
    period_end: datetime
    amount: Decimal
    used: Decimal
    remaining: Decimal


class AwardResult(BaseSchema):
    transaction: TransactionResponse
    recipient_id: str
    recipient_email: str
    remaining: Decimal


class AwardHistoryPage(BaseSchema):
    awards: list[TransactionResponse]
    total: int
    limit: int
    offset: int


class PendingTransferResponse(BaseSchema):
    id: str
    sender_id: str
    recipient_email: str
    amount: Decimal
    message: str | None = None
    status: PendingTransferStatus
    sender_transaction_id: str
    created_at: datetime
    claimed_at: datetime | None = None
    cancelled_at: datetime | None = None


class ClaimSummary(BaseSchema):
    """Result of claiming every pending transfer for an email."""

    claimed: list[PendingTransferResponse]
    failed: list[str]
    total_amount: Decimal


class TransferLimitSummary(BaseSchema):
    """Monthly send limit with posted and held usage."""

    principal_id: str
    period_start: datetime
    period_end: datetime
    max_amount: Decimal
    used: Decimal
    remaining: Decimal


class DepositHistoryPage(BaseSchema):
    deposits: list[TransactionResponse]
    total: int
    limit: int
    offset: int
