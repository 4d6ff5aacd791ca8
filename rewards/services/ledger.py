"""Ledger service: the only writer of account balances.

Features:
- Pending -> posted | rejected lifecycle for every money movement
- Row lock on the account while a balance delta is applied
- Pending amounts re-summed on read, never cached
- Reconciliation of cached balances against the posted log
"""

from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards.logging_config import get_logger
from rewards.models.account import Account
from rewards.models.base import utcnow
from rewards.models.ledger import (
    LedgerTransaction,
    TransactionKind,
    TransactionStatus,
    balance_sign,
    signed_amount,
)
from rewards.schemas.ledger import (
    BalanceSummary,
    ReconciliationReport,
    TransactionPage,
    TransactionResponse,
)
from rewards.utils.errors import (
    AccountNotFoundError,
    InsufficientFundsError,
    NotPendingError,
    TransactionNotFoundError,
    ValidationError,
)
from rewards.utils.money import ZERO, require_positive, to_amount

logger = get_logger(__name__)


def coerce_kind(kind: TransactionKind | str) -> TransactionKind:
    if isinstance(kind, TransactionKind):
        return kind
    try:
        return TransactionKind(kind)
    except ValueError as e:
        raise ValidationError(
            f"Unknown transaction type: {kind}", details={"kind": kind}
        ) from e


class LedgerService:
    """Ledger operations on one session.

    Every method runs on the session passed in, so a caller composing
    several calls inside one unit of work gets all-or-nothing behavior.
    """

    HISTORY_DEFAULT_LIMIT = 50
    HISTORY_MAX_LIMIT = 100

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    # =========================================================================
    # Lookups
    # =========================================================================

    async def get_account(self, account_id: str) -> Account:
        account = await self.session.get(Account, account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def lock_account(self, account_id: str) -> Account:
        result = await self.session.execute(
            select(Account)
            .where(Account.id == account_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        account = result.scalar_one_or_none()
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    async def lock_transaction(self, transaction_id: str) -> LedgerTransaction:
        result = await self.session.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.id == transaction_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        transaction = result.scalar_one_or_none()
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def create_pending_transaction(
        self,
        account_id: str,
        kind: TransactionKind | str,
        amount: Decimal | int | str,
        description: str | None = None,
        *,
        source_principal_id: str | None = None,
        target_principal_id: str | None = None,
        link_id: str | None = None,
    ) -> LedgerTransaction:
        """Record a pending transaction. Does not touch the balance.

        Args:
            account_id: Account the transaction applies to
            kind: Transaction kind (sign comes from its classification)
            amount: Positive amount
            description: Optional description
            source_principal_id: Sender / awarding principal
            target_principal_id: Recipient principal
            link_id: Game, transfer or submission reference

        Returns:
            The pending LedgerTransaction

        Raises:
            ValidationError: Amount not positive or unknown kind
            AccountNotFoundError: Account does not exist
        """
        amount = require_positive(amount)
        kind = coerce_kind(kind)
        await self.get_account(account_id)

        transaction = LedgerTransaction(
            id=str(uuid4()),
            account_id=account_id,
            kind=kind,
            amount=amount,
            status=TransactionStatus.PENDING,
            description=description,
            source_principal_id=source_principal_id,
            target_principal_id=target_principal_id,
            link_id=link_id,
            created_at=utcnow(),
        )
        self.session.add(transaction)
        await self.session.flush()

        logger.debug(
            "transaction_created",
            transaction_id=transaction.id,
            account_id=account_id,
            kind=kind.value,
            amount=str(amount),
        )
        return transaction

    async def post_transaction(self, transaction_id: str) -> LedgerTransaction:
        """Apply a pending transaction to its account balance.

        Raises:
            TransactionNotFoundError: Unknown transaction id
            NotPendingError: Transaction already posted or rejected
            UnknownTransactionKindError: Kind has no sign classification
            InsufficientFundsError: Debit would make the balance negative
        """
        transaction = await self.lock_transaction(transaction_id)
        if transaction.status != TransactionStatus.PENDING:
            raise NotPendingError(transaction_id, transaction.status.value)

        delta = signed_amount(transaction.kind, transaction.amount)
        account = await self.lock_account(transaction.account_id)

        new_balance = account.balance + delta
        if new_balance < 0:
            raise InsufficientFundsError(
                required=transaction.amount,
                available=account.balance,
            )

        account.balance = new_balance
        transaction.status = TransactionStatus.POSTED
        transaction.posted_at = utcnow()
        await self.session.flush()

        logger.info(
            "transaction_posted",
            transaction_id=transaction.id,
            account_id=account.id,
            kind=transaction.kind.value,
            delta=str(delta),
            balance=str(new_balance),
        )
        return transaction

    async def reject_transaction(
        self,
        transaction_id: str,
        reason: str | None = None,
    ) -> LedgerTransaction:
        """Mark a pending transaction rejected. No balance effect."""
        transaction = await self.lock_transaction(transaction_id)
        if transaction.status != TransactionStatus.PENDING:
            raise NotPendingError(transaction_id, transaction.status.value)

        transaction.status = TransactionStatus.REJECTED
        transaction.rejected_at = utcnow()
        transaction.reject_reason = reason
        await self.session.flush()

        logger.info(
            "transaction_rejected",
            transaction_id=transaction.id,
            kind=transaction.kind.value,
            reason=reason,
        )
        return transaction

    async def record_posted(
        self,
        account_id: str,
        kind: TransactionKind | str,
        amount: Decimal | int | str,
        description: str | None = None,
        **references: str | None,
    ) -> LedgerTransaction:
        """Create and immediately post a transaction."""
        transaction = await self.create_pending_transaction(
            account_id, kind, amount, description, **references
        )
        return await self.post_transaction(transaction.id)

    # =========================================================================
    # Reads
    # =========================================================================

    async def pending_delta(self, account_id: str) -> Decimal:
        """Signed sum of the account's pending transactions."""
        result = await self.session.execute(
            select(LedgerTransaction.kind, func.sum(LedgerTransaction.amount))
            .where(
                LedgerTransaction.account_id == account_id,
                LedgerTransaction.status == TransactionStatus.PENDING,
            )
            .group_by(LedgerTransaction.kind)
        )
        total = ZERO
        for kind, amount in result.all():
            total += to_amount(amount) * balance_sign(kind)
        return total

    async def get_account_balance(
        self,
        account_id: str,
        include_pending: bool = False,
    ) -> BalanceSummary:
        """Posted balance, optionally with the signed pending sum.

        Returns:
            BalanceSummary(posted, pending, total)
        """
        account = await self.get_account(account_id)
        posted = to_amount(account.balance)
        pending = await self.pending_delta(account_id) if include_pending else ZERO
        return BalanceSummary(posted=posted, pending=pending, total=posted + pending)

    async def get_transaction_history(
        self,
        account_id: str,
        *,
        status: TransactionStatus | None = None,
        kind: TransactionKind | str | None = None,
        limit: int = HISTORY_DEFAULT_LIMIT,
        offset: int = 0,
    ) -> TransactionPage:
        """Newest-first page of an account's transactions."""
        limit = min(max(limit, 1), self.HISTORY_MAX_LIMIT)
        offset = max(offset, 0)

        query = select(LedgerTransaction).where(LedgerTransaction.account_id == account_id)
        if status is not None:
            query = query.where(LedgerTransaction.status == status)
        if kind is not None:
            query = query.where(LedgerTransaction.kind == coerce_kind(kind))

        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        result = await self.session.execute(
            query.order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id)
            .limit(limit)
            .offset(offset)
        )
        return TransactionPage(
            transactions=[
                TransactionResponse.model_validate(tx) for tx in result.scalars().all()
            ],
            total=total or 0,
            limit=limit,
            offset=offset,
        )

    async def get_pending_transactions(self, account_id: str) -> list[LedgerTransaction]:
        result = await self.session.execute(
            select(LedgerTransaction)
            .where(
                LedgerTransaction.account_id == account_id,
                LedgerTransaction.status == TransactionStatus.PENDING,
            )
            .order_by(LedgerTransaction.created_at)
        )
        return list(result.scalars().all())

    async def reconcile_account(self, account_id: str) -> ReconciliationReport:
        """Recompute the posted balance from the log and compare with the cache."""
        account = await self.get_account(account_id)
        result = await self.session.execute(
            select(
                LedgerTransaction.kind,
                func.sum(LedgerTransaction.amount),
                func.count(LedgerTransaction.id),
            )
            .where(
                LedgerTransaction.account_id == account_id,
                LedgerTransaction.status == TransactionStatus.POSTED,
            )
            .group_by(LedgerTransaction.kind)
        )

        computed = ZERO
        count = 0
        for kind, amount, rows in result.all():
            computed += to_amount(amount) * balance_sign(kind)
            count += rows

        report = ReconciliationReport(
            account_id=account_id,
            cached_balance=to_amount(account.balance),
            computed_balance=computed,
            posted_count=count,
        )
        if not report.is_consistent:
            logger.error(
                "balance_mismatch",
                account_id=account_id,
                cached=str(report.cached_balance),
                computed=str(computed),
            )
        return report
