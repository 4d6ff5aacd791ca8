"""Jackpot pools: contributions, operator controls and weighted drawings."""

import secrets
from collections.abc import Callable
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards.logging_config import get_logger
from rewards.models.bank import Jackpot, JackpotContribution, JackpotType
from rewards.models.base import utcnow
from rewards.models.ledger import TransactionKind
from rewards.schemas.game import DrawingResult, JackpotStatus
from rewards.services.accounts import AccountDirectory
from rewards.services.game_stats import GameStatsService
from rewards.services.ledger import LedgerService
from rewards.utils.errors import JackpotNotFoundError, ValidationError
from rewards.utils.money import ZERO, to_amount

logger = get_logger(__name__)

# Contribution routing prefers the earliest type that is active
JACKPOT_PRIORITY: tuple[JackpotType, ...] = (
    JackpotType.ROLLING,
    JackpotType.DAILY,
    JackpotType.WEEKLY,
    JackpotType.EVENT,
)

DEFAULT_JACKPOTS: dict[JackpotType, str] = {
    JackpotType.ROLLING: "Rolling Jackpot",
    JackpotType.DAILY: "Daily Jackpot",
    JackpotType.WEEKLY: "Weekly Jackpot",
}


def pick_weighted(
    weights: list[tuple[str, int]],
    random_below: Callable[[int], int],
) -> str:
    """Key chosen with probability proportional to its weight."""
    total = sum(weight for _, weight in weights)
    point = random_below(total)
    cumulative = 0
    for key, weight in weights:
        cumulative += weight
        if point < cumulative:
            return key
    raise AssertionError("random_below returned a value outside [0, total)")


class JackpotService:
    """Jackpot operations on one session."""

    def __init__(
        self,
        session: AsyncSession,
        random_below: Callable[[int], int] = secrets.randbelow,
    ) -> None:
        self.session = session
        self.random_below = random_below

    async def _lock(self, jackpot_id: str) -> Jackpot:
        result = await self.session.execute(
            select(Jackpot)
            .where(Jackpot.id == jackpot_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        jackpot = result.scalar_one_or_none()
        if jackpot is None:
            raise JackpotNotFoundError(jackpot_id)
        return jackpot

    async def initialize_jackpots(self) -> list[Jackpot]:
        """Create the default rolling, daily and weekly pools if missing."""
        result = await self.session.execute(select(Jackpot))
        existing = {j.type: j for j in result.scalars().all()}
        for jackpot_type, name in DEFAULT_JACKPOTS.items():
            if jackpot_type not in existing:
                jackpot = Jackpot(
                    id=str(uuid4()),
                    name=name,
                    type=jackpot_type,
                    balance=ZERO,
                    is_active=True,
                )
                self.session.add(jackpot)
                existing[jackpot_type] = jackpot
                logger.info("jackpot_created", jackpot_type=jackpot_type.value)
        await self.session.flush()
        return list(existing.values())

    async def get_active_for_contribution(self) -> Jackpot | None:
        """Highest-priority active jackpot, locked, or None."""
        result = await self.session.execute(
            select(Jackpot)
            .where(Jackpot.is_active.is_(True))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        active = {j.type: j for j in result.scalars().all()}
        for jackpot_type in JACKPOT_PRIORITY:
            if jackpot_type in active:
                return active[jackpot_type]
        return None

    async def contribute(
        self,
        jackpot: Jackpot,
        principal_id: str,
        amount: Decimal,
        game_id: str | None = None,
    ) -> JackpotContribution:
        contribution = JackpotContribution(
            id=str(uuid4()),
            jackpot_id=jackpot.id,
            principal_id=principal_id,
            game_id=game_id,
            amount=amount,
            created_at=utcnow(),
        )
        jackpot.balance = to_amount(jackpot.balance) + amount
        self.session.add(contribution)
        await self.session.flush()
        return contribution

    async def toggle(self, jackpot_id: str) -> Jackpot:
        jackpot = await self._lock(jackpot_id)
        jackpot.is_active = not jackpot.is_active
        await self.session.flush()
        logger.info("jackpot_toggled", jackpot_id=jackpot_id, is_active=jackpot.is_active)
        return jackpot

    async def admin_adjust_balance(
        self,
        jackpot_id: str,
        adjustment: Decimal | int | str,
        admin_id: str | None = None,
        reason: str | None = None,
    ) -> Jackpot:
        """Add a signed adjustment; the balance may not go negative."""
        adjustment = to_amount(adjustment)
        if adjustment == 0:
            raise ValidationError("Adjustment must be non-zero")

        jackpot = await self._lock(jackpot_id)
        new_balance = to_amount(jackpot.balance) + adjustment
        if new_balance < 0:
            raise ValidationError(
                "Adjustment would make the jackpot balance negative",
                details={"balance": str(jackpot.balance), "adjustment": str(adjustment)},
            )
        jackpot.balance = new_balance
        await self.session.flush()

        logger.info(
            "jackpot_adjusted",
            jackpot_id=jackpot_id,
            adjustment=str(adjustment),
            balance=str(new_balance),
            admin_id=admin_id,
            reason=reason,
        )
        return jackpot

    def _contributions_since_last_win(self, jackpot: Jackpot):
        query = (
            select(
                JackpotContribution.principal_id,
                func.sum(JackpotContribution.amount),
            )
            .where(JackpotContribution.jackpot_id == jackpot.id)
            .group_by(JackpotContribution.principal_id)
            .order_by(JackpotContribution.principal_id)
        )
        if jackpot.last_won_at is not None:
            query = query.where(JackpotContribution.created_at > jackpot.last_won_at)
        return query

    async def contributor_weights(self, jackpot: Jackpot) -> list[tuple[str, Decimal]]:
        """Cumulative contribution per principal since the last win."""
        result = await self.session.execute(self._contributions_since_last_win(jackpot))
        return [(principal_id, to_amount(total)) for principal_id, total in result.all()]

    async def trigger_drawing(
        self,
        jackpot_id: str,
        random_below: Callable[[int], int] | None = None,
    ) -> DrawingResult | None:
        """Pay the whole jackpot to one contributor, weighted by contribution.

        Returns None, leaving the pool intact, when the jackpot is empty or
        nobody contributed since the last win.
        """
        jackpot = await self._lock(jackpot_id)
        amount = to_amount(jackpot.balance)
        if amount <= 0:
            logger.info("jackpot_drawing_skipped", jackpot_id=jackpot_id, reason="empty")
            return None

        contributors = await self.contributor_weights(jackpot)
        weights = [(pid, int(total * 100)) for pid, total in contributors if total > 0]
        if not weights:
            logger.info("jackpot_drawing_skipped", jackpot_id=jackpot_id, reason="no_contributors")
            return None

        winner_id = pick_weighted(weights, random_below or self.random_below)

        account = await AccountDirectory(self.session).get_or_create_account(winner_id)
        transaction = await LedgerService(self.session).record_posted(
            account.id,
            TransactionKind.JACKPOT_WIN,
            amount,
            f"{jackpot.name} win",
            target_principal_id=winner_id,
            link_id=jackpot.id,
        )

        jackpot.balance = ZERO
        jackpot.last_won_at = utcnow()
        jackpot.last_won_by = winner_id
        jackpot.last_won_amount = amount
        await GameStatsService(self.session).record_jackpot_win(winner_id, amount)
        await self.session.flush()

        logger.info(
            "jackpot_won",
            jackpot_id=jackpot_id,
            winner_id=winner_id,
            amount=str(amount),
            contributors=len(weights),
        )
        return DrawingResult(
            jackpot_id=jackpot.id,
            winner_id=winner_id,
            amount=amount,
            transaction_id=transaction.id,
            contributor_count=len(weights),
        )

    async def trigger_drawing_for_type(
        self,
        jackpot_type: JackpotType | str,
        random_below: Callable[[int], int] | None = None,
    ) -> DrawingResult | None:
        """Scheduled drawing entry point (daily / weekly jobs)."""
        jackpot_type = JackpotType(jackpot_type)
        result = await self.session.execute(
            select(Jackpot.id).where(
                Jackpot.type == jackpot_type,
                Jackpot.is_active.is_(True),
            )
        )
        jackpot_id = result.scalar_one_or_none()
        if jackpot_id is None:
            return None
        return await self.trigger_drawing(jackpot_id, random_below)

    async def get_status(self) -> list[JackpotStatus]:
        result = await self.session.execute(select(Jackpot).order_by(Jackpot.created_at))
        statuses = []
        for jackpot in result.scalars().all():
            contributors = await self.contributor_weights(jackpot)
            status = JackpotStatus.model_validate(jackpot)
            status.contributor_count = len(contributors)
            statuses.append(status)
        return statuses

    async def get_contributions(
        self,
        jackpot_id: str,
        limit: int = 50,
        offset: int = 0,
    ) -> list[JackpotContribution]:
        result = await self.session.execute(
            select(JackpotContribution)
            .where(JackpotContribution.jackpot_id == jackpot_id)
            .order_by(JackpotContribution.created_at.desc())
            .limit(min(max(limit, 1), 100))
            .offset(max(offset, 0))
        )
        return list(result.scalars().all())
