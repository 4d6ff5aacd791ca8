"""Manager allotment budgets and awards."""

from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rewards.config import get_settings
from rewards.logging_config import get_logger
from rewards.models.allotment import ManagerAllotment, PeriodType
from rewards.models.base import utcnow
from rewards.models.ledger import LedgerTransaction, TransactionKind, TransactionStatus
from rewards.schemas.allotment import (
    AllotmentSummary,
    AwardHistoryPage,
    AwardResult,
    DepositHistoryPage,
)
from rewards.schemas.ledger import TransactionResponse
from rewards.services.accounts import AccountDirectory, normalize_email
from rewards.services.ledger import LedgerService
from rewards.services.notifications import NotificationDispatcher, NotificationEvent
from rewards.utils.db import get_session_factory, run_in_unit_of_work
from rewards.utils.errors import (
    AccountNotFoundError,
    InsufficientAllotmentError,
    ValidationError,
)
from rewards.utils.money import ZERO, require_positive, to_amount

logger = get_logger(__name__)

PERIOD_MONTHS = {
    PeriodType.MONTHLY: 1,
    PeriodType.QUARTERLY: 3,
}


def period_bounds(period_type: PeriodType, now: datetime) -> tuple[datetime, datetime]:
    """UTC start and inclusive end of the calendar month or quarter containing ``now``."""
    now = now.astimezone(timezone.utc)
    months = PERIOD_MONTHS[PeriodType(period_type)]
    first_month = (now.month - 1) // months * months + 1
    start = datetime(now.year, first_month, 1, tzinfo=timezone.utc)

    next_month = first_month + months
    next_start = datetime(
        now.year + (next_month - 1) // 12,
        (next_month - 1) % 12 + 1,
        1,
        tzinfo=timezone.utc,
    )
    return start, next_start - timedelta(microseconds=1)


class AllotmentService:
    """Per-period award budgets for managers.

    Only the budget is stored. Usage is summed from posted award
    transactions the manager sourced inside the period, so it can never
    drift from the ledger.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        notifier: NotificationDispatcher | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory or get_session_factory()
        self.notifier = notifier or NotificationDispatcher()
        self.clock = clock

    # -------------------------------------------------------------------------
    # Helpers (caller's session)
    # -------------------------------------------------------------------------

    async def _fetch_or_create(
        self,
        session: AsyncSession,
        manager_id: str,
        period_type: PeriodType,
    ) -> ManagerAllotment:
        start, end = period_bounds(period_type, self.clock())
        result = await session.execute(
            select(ManagerAllotment)
            .where(
                ManagerAllotment.manager_id == manager_id,
                ManagerAllotment.period_type == period_type,
                ManagerAllotment.period_start == start,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        allotment = result.scalar_one_or_none()
        if allotment is None:
            await AccountDirectory(session).get_principal(manager_id)
            allotment = ManagerAllotment(
                id=str(uuid4()),
                manager_id=manager_id,
                period_type=period_type,
                period_start=start,
                period_end=end,
                amount=to_amount(get_settings().default_allotment_amount),
            )
            session.add(allotment)
            await session.flush()
            logger.info(
                "allotment_created",
                manager_id=manager_id,
                period_type=period_type.value,
                period_start=start.isoformat(),
            )
        return allotment

    async def _used(
        self,
        session: AsyncSession,
        manager_id: str,
        period_type: PeriodType,
    ) -> Decimal:
        start, end = period_bounds(period_type, self.clock())
        total = await session.scalar(
            select(func.sum(LedgerTransaction.amount)).where(
                LedgerTransaction.source_principal_id == manager_id,
                LedgerTransaction.kind == TransactionKind.AWARD,
                LedgerTransaction.status == TransactionStatus.POSTED,
                LedgerTransaction.created_at >= start,
                LedgerTransaction.created_at <= end,
            )
        )
        return to_amount(total or ZERO)

    async def _summary(
        self,
        session: AsyncSession,
        manager_id: str,
        period_type: PeriodType,
    ) -> AllotmentSummary:
        allotment = await self._fetch_or_create(session, manager_id, period_type)
        used = await self._used(session, manager_id, period_type)
        amount = to_amount(allotment.amount)
        return AllotmentSummary(
            id=allotment.id,
            manager_id=manager_id,
            period_type=period_type,
            period_start=allotment.period_start,
            period_end=allotment.period_end,
            amount=amount,
            used=used,
            remaining=amount - used,
        )

    # -------------------------------------------------------------------------
    # Operations
    # -------------------------------------------------------------------------

    async def get_current_allotment(
        self,
        manager_id: str,
        period_type: PeriodType | str = PeriodType.MONTHLY,
    ) -> AllotmentSummary:
        period_type = PeriodType(period_type)

        async def work(session: AsyncSession) -> AllotmentSummary:
            return await self._summary(session, manager_id, period_type)

        return await run_in_unit_of_work(work, self.session_factory)

    async def award_coins(
        self,
        manager_id: str,
        recipient_email: str,
        amount: Decimal | int | str,
        description: str | None = None,
    ) -> AwardResult:
        """Award coins from the manager's current monthly budget.

        The remaining budget is re-checked under lock in the same unit of
        work that posts the award.

        Raises:
            ValidationError: Amount not positive
            AccountNotFoundError: Unknown manager or recipient
            InsufficientAllotmentError: Amount exceeds the remaining budget
        """
        amount = require_positive(amount)
        email = normalize_email(recipient_email)

        async def work(session: AsyncSession) -> AwardResult:
            directory = AccountDirectory(session)
            recipient = await directory.find_by_email(email)
            if recipient is None:
                raise AccountNotFoundError(email)
            account = await directory.get_account(recipient.id)

            summary = await self._summary(session, manager_id, PeriodType.MONTHLY)
            if summary.remaining < amount:
                raise InsufficientAllotmentError(amount, summary.remaining)

            transaction = await LedgerService(session).record_posted(
                account.id,
                TransactionKind.AWARD,
                amount,
                description or "Award from manager",
                source_principal_id=manager_id,
                target_principal_id=recipient.id,
            )
            return AwardResult(
                transaction=TransactionResponse.model_validate(transaction),
                recipient_id=recipient.id,
                recipient_email=recipient.email,
                remaining=summary.remaining - amount,
            )

        result = await run_in_unit_of_work(work, self.session_factory)

        logger.info(
            "coins_awarded",
            manager_id=manager_id,
            recipient_id=result.recipient_id,
            amount=str(amount),
            remaining=str(result.remaining),
        )
        await self.notifier.dispatch(
            NotificationEvent.COINS_AWARDED,
            {
                "managerId": manager_id,
                "recipientEmail": result.recipient_email,
                "amount": str(amount),
                "transactionId": result.transaction.id,
            },
        )
        return result

    async def _sourced_by(
        self,
        manager_id: str,
        kind: TransactionKind,
        limit: int,
        offset: int,
    ) -> tuple[list[TransactionResponse], int]:
        query = select(LedgerTransaction).where(
            LedgerTransaction.source_principal_id == manager_id,
            LedgerTransaction.kind == kind,
        )

        async with self.session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(query.subquery()))
            result = await session.execute(
                query.order_by(LedgerTransaction.created_at.desc(), LedgerTransaction.id)
                .limit(limit)
                .offset(offset)
            )
            transactions = [TransactionResponse.model_validate(tx) for tx in result.scalars().all()]
        return transactions, total or 0

    async def get_award_history(
        self,
        manager_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> AwardHistoryPage:
        limit = min(max(limit, 1), 100)
        offset = max(offset, 0)
        awards, total = await self._sourced_by(manager_id, TransactionKind.AWARD, limit, offset)
        return AwardHistoryPage(awards=awards, total=total, limit=limit, offset=offset)

    async def get_deposit_history(
        self,
        manager_id: str,
        limit: int = 20,
        offset: int = 0,
    ) -> DepositHistoryPage:
        """Wallet-to-budget deposits by ``manager_id``, newest first."""
        limit = min(max(limit, 1), 100)
        offset = max(offset, 0)
        deposits, total = await self._sourced_by(
            manager_id, TransactionKind.ALLOTMENT_DEPOSIT, limit, offset
        )
        return DepositHistoryPage(deposits=deposits, total=total, limit=limit, offset=offset)

    async def set_recurring_budget(
        self,
        manager_id: str,
        amount: Decimal | int | str,
        period_type: PeriodType | str = PeriodType.MONTHLY,
    ) -> AllotmentSummary:
        """Replace the current period's budget."""
        amount = to_amount(amount)
        if amount < 0:
            raise ValidationError("Budget must not be negative", details={"amount": str(amount)})
        period_type = PeriodType(period_type)

        async def work(session: AsyncSession) -> AllotmentSummary:
            allotment = await self._fetch_or_create(session, manager_id, period_type)
            allotment.amount = amount
            await session.flush()
            return await self._summary(session, manager_id, period_type)

        summary = await run_in_unit_of_work(work, self.session_factory)
        logger.info(
            "allotment_budget_set",
            manager_id=manager_id,
            period_type=period_type.value,
            amount=str(amount),
        )
        return summary

    async def deposit_allotment(
        self,
        manager_id: str,
        amount: Decimal | int | str,
        description: str | None = None,
    ) -> AllotmentSummary:
        """Move coins from the manager's wallet into this month's budget.

        Raises:
            InsufficientFundsError: Wallet cannot cover the deposit
        """
        amount = require_positive(amount)

        async def work(session: AsyncSession) -> AllotmentSummary:
            account = await AccountDirectory(session).get_account(manager_id)
            await LedgerService(session).record_posted(
                account.id,
                TransactionKind.ALLOTMENT_DEPOSIT,
                amount,
                description or "Allotment deposit",
                source_principal_id=manager_id,
            )
            allotment = await self._fetch_or_create(session, manager_id, PeriodType.MONTHLY)
            allotment.amount = to_amount(allotment.amount) + amount
            await session.flush()
            return await self._summary(session, manager_id, PeriodType.MONTHLY)

        summary = await run_in_unit_of_work(work, self.session_factory)
        logger.info(
            "allotment_deposited",
            manager_id=manager_id,
            amount=str(amount),
            budget=str(summary.amount),
        )
        return summary
