"""Escrowed peer transfers to emails that have no account yet.

The sender's debit is recorded as a pending peer_transfer_sent transaction
at creation time, so it counts against the sender's available balance
without touching the posted balance. Claiming posts it together with the
recipient's credit; cancelling rejects it. Held and posted sends both
count against the sender's monthly transfer limit.
"""

from collections.abc import Callable
from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rewards.config import get_settings
from rewards.logging_config import get_logger
from rewards.models.allotment import PeriodType
from rewards.models.base import utcnow
from rewards.models.ledger import LedgerTransaction, TransactionKind, TransactionStatus
from rewards.models.pending_transfer import (
    PeerTransferLimit,
    PendingTransfer,
    PendingTransferStatus,
)
from rewards.schemas.allotment import (
    ClaimSummary,
    PendingTransferResponse,
    TransferLimitSummary,
)
from rewards.services.accounts import AccountDirectory, normalize_email
from rewards.services.allotment import period_bounds
from rewards.services.ledger import LedgerService
from rewards.services.notifications import NotificationDispatcher, NotificationEvent
from rewards.utils.db import get_session_factory, run_in_unit_of_work
from rewards.utils.errors import (
    InsufficientFundsError,
    LedgerError,
    NotPendingError,
    PendingTransferNotFoundError,
    TransferLimitExceededError,
    TransferNotOwnedError,
    ValidationError,
)
from rewards.utils.money import ZERO, require_positive, to_amount

logger = get_logger(__name__)


class PendingTransferService:
    """Create, claim and cancel escrowed transfers."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        notifier: NotificationDispatcher | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self.session_factory = session_factory or get_session_factory()
        self.notifier = notifier or NotificationDispatcher()
        self.clock = clock

    async def _lock(self, session: AsyncSession, transfer_id: str) -> PendingTransfer:
        result = await session.execute(
            select(PendingTransfer)
            .where(PendingTransfer.id == transfer_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        transfer = result.scalar_one_or_none()
        if transfer is None:
            raise PendingTransferNotFoundError(transfer_id)
        return transfer

    async def _fetch_or_create_limit(
        self,
        session: AsyncSession,
        principal_id: str,
    ) -> PeerTransferLimit:
        start, end = period_bounds(PeriodType.MONTHLY, self.clock())
        result = await session.execute(
            select(PeerTransferLimit)
            .where(
                PeerTransferLimit.principal_id == principal_id,
                PeerTransferLimit.period_start == start,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        limit = result.scalar_one_or_none()
        if limit is None:
            await AccountDirectory(session).get_principal(principal_id)
            limit = PeerTransferLimit(
                id=str(uuid4()),
                principal_id=principal_id,
                period_start=start,
                period_end=end,
                max_amount=to_amount(get_settings().default_peer_transfer_limit),
            )
            session.add(limit)
            await session.flush()
        return limit

    async def _limit_summary(self, session: AsyncSession, principal_id: str) -> TransferLimitSummary:
        limit = await self._fetch_or_create_limit(session, principal_id)
        used = await session.scalar(
            select(func.sum(LedgerTransaction.amount)).where(
                LedgerTransaction.source_principal_id == principal_id,
                LedgerTransaction.kind == TransactionKind.PEER_TRANSFER_SENT,
                LedgerTransaction.status.in_(
                    [TransactionStatus.POSTED, TransactionStatus.PENDING]
                ),
                LedgerTransaction.created_at >= limit.period_start,
                LedgerTransaction.created_at <= limit.period_end,
            )
        )
        used = to_amount(used or ZERO)
        max_amount = to_amount(limit.max_amount)
        return TransferLimitSummary(
            principal_id=principal_id,
            period_start=limit.period_start,
            period_end=limit.period_end,
            max_amount=max_amount,
            used=used,
            remaining=max(max_amount - used, ZERO),
        )

    async def get_transfer_limit(self, principal_id: str) -> TransferLimitSummary:
        """This month's send limit, creating it at the default if needed."""

        async def work(session: AsyncSession) -> TransferLimitSummary:
            return await self._limit_summary(session, principal_id)

        return await run_in_unit_of_work(work, self.session_factory)

    async def set_transfer_limit(
        self,
        principal_id: str,
        max_amount: Decimal | int | str,
    ) -> TransferLimitSummary:
        """Replace this month's send limit for ``principal_id``."""
        max_amount = to_amount(max_amount)
        if max_amount < 0:
            raise ValidationError(
                "Transfer limit must not be negative", details={"maxAmount": str(max_amount)}
            )

        async def work(session: AsyncSession) -> TransferLimitSummary:
            limit = await self._fetch_or_create_limit(session, principal_id)
            limit.max_amount = max_amount
            await session.flush()
            return await self._limit_summary(session, principal_id)

        summary = await run_in_unit_of_work(work, self.session_factory)
        logger.info("transfer_limit_set", principal_id=principal_id, max_amount=str(max_amount))
        return summary

    async def create_pending_transfer(
        self,
        sender_id: str,
        recipient_email: str,
        amount: Decimal | int | str,
        message: str | None = None,
    ) -> PendingTransferResponse:
        """Hold ``amount`` from the sender for ``recipient_email``.

        Only emails without an account can be escrowed to; registered
        recipients (the sender included) are refused.

        Raises:
            ValidationError: Amount not positive, malformed email or registered recipient
            InsufficientFundsError: Posted plus pending balance cannot cover it
            TransferLimitExceededError: Amount exceeds this month's remaining limit
        """
        amount = require_positive(amount)
        email = normalize_email(recipient_email)

        async def work(session: AsyncSession) -> PendingTransferResponse:
            directory = AccountDirectory(session)
            account = await directory.get_account(sender_id)
            recipient = await directory.find_by_email(email)
            if recipient is not None and recipient.id == sender_id:
                raise ValidationError("Cannot send coins to yourself")
            if recipient is not None:
                raise ValidationError(
                    "Recipient already has an account", details={"recipientEmail": email}
                )

            ledger = LedgerService(session)

            # Lock the sender so concurrent holds see each other
            await ledger.lock_account(account.id)
            balance = await ledger.get_account_balance(account.id, include_pending=True)
            if balance.total < amount:
                raise InsufficientFundsError(required=amount, available=balance.total)

            limit = await self._limit_summary(session, sender_id)
            if amount > limit.remaining:
                raise TransferLimitExceededError(amount, limit.remaining)

            transfer_id = str(uuid4())
            held = await ledger.create_pending_transaction(
                account.id,
                TransactionKind.PEER_TRANSFER_SENT,
                amount,
                message or f"Transfer to {email}",
                source_principal_id=sender_id,
                link_id=transfer_id,
            )
            transfer = PendingTransfer(
                id=transfer_id,
                sender_id=sender_id,
                recipient_email=email,
                amount=amount,
                message=message,
                status=PendingTransferStatus.PENDING,
                sender_transaction_id=held.id,
                created_at=self.clock(),
            )
            session.add(transfer)
            await session.flush()
            return PendingTransferResponse.model_validate(transfer)

        result = await run_in_unit_of_work(work, self.session_factory)

        logger.info(
            "pending_transfer_created",
            transfer_id=result.id,
            sender_id=sender_id,
            amount=str(amount),
        )
        await self.notifier.dispatch(
            NotificationEvent.PENDING_TRANSFER_CREATED,
            {
                "transferId": result.id,
                "senderId": sender_id,
                "recipientEmail": email,
                "amount": str(amount),
            },
        )
        return result

    async def _claim_one(
        self,
        session: AsyncSession,
        transfer_id: str,
        recipient_id: str,
        recipient_account_id: str,
    ) -> PendingTransferResponse:
        transfer = await self._lock(session, transfer_id)
        if transfer.status != PendingTransferStatus.PENDING:
            raise NotPendingError(transfer_id, transfer.status.value)

        ledger = LedgerService(session)
        held = await ledger.lock_transaction(transfer.sender_transaction_id)
        if held.status == TransactionStatus.PENDING:
            await ledger.post_transaction(held.id)

        await ledger.record_posted(
            recipient_account_id,
            TransactionKind.PEER_TRANSFER_RECEIVED,
            to_amount(transfer.amount),
            transfer.message or "Transfer received",
            source_principal_id=transfer.sender_id,
            target_principal_id=recipient_id,
            link_id=transfer.id,
        )

        transfer.status = PendingTransferStatus.CLAIMED
        transfer.claimed_at = self.clock()
        await session.flush()
        return PendingTransferResponse.model_validate(transfer)

    async def claim_pending_transfers(self, recipient_email: str) -> ClaimSummary:
        """Deliver every pending transfer addressed to ``recipient_email``.

        Each transfer settles in its own unit of work. A transfer that
        fails (for example because the sender no longer has the funds) is
        logged and left pending; the others still go through.
        """
        email = normalize_email(recipient_email)

        async def lookup(session: AsyncSession) -> tuple[str, str, list[str]] | None:
            directory = AccountDirectory(session)
            recipient = await directory.find_by_email(email)
            if recipient is None:
                return None
            account = await directory.get_or_create_account(recipient.id)
            result = await session.execute(
                select(PendingTransfer.id)
                .where(
                    PendingTransfer.recipient_email == email,
                    PendingTransfer.status == PendingTransferStatus.PENDING,
                )
                .order_by(PendingTransfer.created_at)
            )
            return recipient.id, account.id, list(result.scalars().all())

        found = await run_in_unit_of_work(lookup, self.session_factory)
        if found is None:
            return ClaimSummary(claimed=[], failed=[], total_amount=ZERO)
        recipient_id, account_id, transfer_ids = found

        claimed: list[PendingTransferResponse] = []
        failed: list[str] = []
        for transfer_id in transfer_ids:

            async def work(session: AsyncSession, transfer_id=transfer_id) -> PendingTransferResponse:
                return await self._claim_one(session, transfer_id, recipient_id, account_id)

            try:
                transfer = await run_in_unit_of_work(work, self.session_factory)
            except LedgerError as e:
                logger.warning(
                    "pending_transfer_claim_failed",
                    transfer_id=transfer_id,
                    error_code=e.code,
                    error=e.message,
                )
                failed.append(transfer_id)
                continue

            claimed.append(transfer)
            await self.notifier.dispatch(
                NotificationEvent.PENDING_TRANSFER_CLAIMED,
                {
                    "transferId": transfer.id,
                    "senderId": transfer.sender_id,
                    "recipientId": recipient_id,
                    "amount": str(transfer.amount),
                },
            )

        total = sum((t.amount for t in claimed), ZERO)
        logger.info(
            "pending_transfers_claimed",
            recipient_id=recipient_id,
            claimed=len(claimed),
            failed=len(failed),
            total_amount=str(total),
        )
        return ClaimSummary(claimed=claimed, failed=failed, total_amount=total)

    async def cancel_pending_transfer(
        self,
        transfer_id: str,
        sender_id: str,
    ) -> PendingTransferResponse:
        """Release the hold and mark the transfer cancelled.

        Raises:
            PendingTransferNotFoundError: Unknown transfer
            TransferNotOwnedError: Caller is not the sender
            NotPendingError: Transfer already claimed or cancelled
        """

        async def work(session: AsyncSession) -> PendingTransferResponse:
            transfer = await self._lock(session, transfer_id)
            if transfer.sender_id != sender_id:
                raise TransferNotOwnedError(transfer_id)
            if transfer.status != PendingTransferStatus.PENDING:
                raise NotPendingError(transfer_id, transfer.status.value)

            ledger = LedgerService(session)
            held = await ledger.lock_transaction(transfer.sender_transaction_id)
            if held.status == TransactionStatus.PENDING:
                await ledger.reject_transaction(held.id, reason="Transfer cancelled")

            transfer.status = PendingTransferStatus.CANCELLED
            transfer.cancelled_at = self.clock()
            await session.flush()
            return PendingTransferResponse.model_validate(transfer)

        result = await run_in_unit_of_work(work, self.session_factory)
        logger.info("pending_transfer_cancelled", transfer_id=transfer_id, sender_id=sender_id)
        return result

    async def list_pending_for_sender(self, sender_id: str) -> list[PendingTransferResponse]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(PendingTransfer)
                .where(
                    PendingTransfer.sender_id == sender_id,
                    PendingTransfer.status == PendingTransferStatus.PENDING,
                )
                .order_by(PendingTransfer.created_at.desc())
            )
            return [PendingTransferResponse.model_validate(t) for t in result.scalars().all()]
