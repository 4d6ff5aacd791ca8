"""Game bank: the shared liquidity pool behind every wager."""

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards.logging_config import get_logger
from rewards.models.bank import BANK_ACCOUNT_ID, GameBankAccount, Jackpot
from rewards.utils.errors import JackpotNotFoundError, ValidationError
from rewards.utils.money import ZERO, require_positive, to_amount

logger = get_logger(__name__)


class BankService:
    """Fetch-or-create and mutate the single bank row.

    Callers run every read-modify-write inside the unit of work of the
    operation it settles. Neither ``deposit`` nor ``transfer_from_jackpot``
    re-enables games; that is a separate operator action.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_or_create(self) -> GameBankAccount:
        """Locked bank row, created at zero if absent."""
        result = await self.session.execute(
            select(GameBankAccount)
            .where(GameBankAccount.id == BANK_ACCOUNT_ID)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        bank = result.scalar_one_or_none()
        if bank is None:
            bank = GameBankAccount(id=BANK_ACCOUNT_ID, balance=ZERO)
            self.session.add(bank)
            await self.session.flush()
            logger.info("bank_account_created")
        return bank

    async def get_balance(self) -> Decimal:
        bank = await self.get_or_create()
        return to_amount(bank.balance)

    async def apply(self, delta: Decimal) -> Decimal:
        """Add ``delta`` (may be negative) and return the new balance."""
        bank = await self.get_or_create()
        bank.balance = to_amount(bank.balance) + delta
        await self.session.flush()
        return bank.balance

    async def deposit(
        self,
        amount: Decimal | int | str,
        operator_id: str | None = None,
        reason: str | None = None,
    ) -> Decimal:
        """Operator top-up of the bank."""
        amount = require_positive(amount)
        balance = await self.apply(amount)
        logger.info(
            "bank_deposit",
            amount=str(amount),
            balance=str(balance),
            operator_id=operator_id,
            reason=reason,
        )
        return balance

    async def transfer_from_jackpot(
        self,
        jackpot_id: str,
        amount: Decimal | int | str | None = None,
    ) -> Decimal:
        """Move ``amount`` (default: everything) from a jackpot into the bank."""
        result = await self.session.execute(
            select(Jackpot)
            .where(Jackpot.id == jackpot_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        jackpot = result.scalar_one_or_none()
        if jackpot is None:
            raise JackpotNotFoundError(jackpot_id)

        available = to_amount(jackpot.balance)
        amount = available if amount is None else require_positive(amount)
        if amount <= 0:
            raise ValidationError("Jackpot is empty", details={"jackpotId": jackpot_id})
        if amount > available:
            raise ValidationError(
                "Transfer exceeds jackpot balance",
                details={"amount": str(amount), "available": str(available)},
            )

        jackpot.balance = available - amount
        balance = await self.apply(amount)
        logger.info(
            "bank_transfer_from_jackpot",
            jackpot_id=jackpot_id,
            amount=str(amount),
            balance=str(balance),
        )
        return balance
