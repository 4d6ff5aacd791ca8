"""Wagering engine.

Orchestrates one wager end-to-end inside a single serializable unit of
work: bank check, config and bet validation, nonce and seed, bet debit,
provably fair resolution, house edge, payout credit, bank and jackpot
settlement, safety brake, game records and statistics.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from rewards.engine.provably_fair import FairSeed, ProvablyFairRng, SeedCommitment
from rewards.engine.resolvers import (
    COIN_SIDES,
    GRID_DRAWS,
    THRESHOLD_CALLS,
    Resolution,
    prizes_from_config,
    resolve_binary,
    resolve_bonus,
    resolve_grid,
    resolve_range_pick,
    resolve_threshold,
    resolve_weighted_segments,
    segments_from_config,
)
from rewards.logging_config import get_logger, log_context
from rewards.models.base import utcnow
from rewards.models.game import (
    DailyBonusSpin,
    FairnessState,
    Game,
    GameConfig,
    GameKind,
    GameParticipant,
    GameTransaction,
    GameTransactionKind,
)
from rewards.models.bank import JackpotType
from rewards.models.ledger import TransactionKind
from rewards.schemas.game import (
    DailyBonusResult,
    DailyBonusStatus,
    DrawingResult,
    FairnessVerification,
    GameConfigResponse,
    GameHistoryPage,
    GameOverview,
    GameStatsResponse,
    GameSummary,
    Leaderboard,
    PlayerStatsPage,
    SeedCommitmentResponse,
    WagerResult,
)
from rewards.services.accounts import AccountDirectory
from rewards.services.bank import BankService
from rewards.services.game_config import GameConfigService, coerce_game_kind
from rewards.services.game_stats import GameStatsService
from rewards.services.jackpot import JackpotService
from rewards.services.ledger import LedgerService
from rewards.services.notifications import NotificationDispatcher, NotificationEvent
from rewards.utils.db import get_session_factory, run_in_unit_of_work
from rewards.utils.errors import (
    BetOutOfRangeError,
    DailyBonusAlreadyClaimedError,
    GameDisabledError,
    GamesUnavailableError,
    ValidationError,
)
from rewards.utils.money import ZERO, require_positive, round_down, to_amount

logger = get_logger(__name__)

MULTIPLIER_PLACES = Decimal("0.0001")
DEFAULT_DICE_SIDES = 6
DEFAULT_MIDPOINT = 50

LEADERBOARD_PERIODS: dict[str, timedelta | None] = {
    "all": None,
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


# =============================================================================
# Resolution dispatch
# =============================================================================


def normalize_prediction(
    game_kind: GameKind,
    prediction: Any,
    custom_config: dict[str, Any] | None = None,
) -> Any:
    """Validate and canonicalize the player's call for ``game_kind``.

    Raises:
        ValidationError: Missing or malformed prediction
    """
    custom_config = custom_config or {}
    match game_kind:
        case GameKind.COIN_FLIP:
            call = str(prediction or "").strip().lower()
            if call not in COIN_SIDES:
                raise ValidationError(
                    f"Prediction must be one of {', '.join(COIN_SIDES)}",
                    details={"prediction": prediction},
                )
            return call
        case GameKind.DICE_ROLL:
            sides = int(custom_config.get("sides", DEFAULT_DICE_SIDES))
            if isinstance(prediction, bool):
                raise ValidationError("Prediction must be a number")
            try:
                call = int(prediction)
            except (TypeError, ValueError) as e:
                raise ValidationError(
                    "Prediction must be a number", details={"prediction": prediction}
                ) from e
            if not 1 <= call <= sides:
                raise ValidationError(
                    f"Prediction must be between 1 and {sides}",
                    details={"prediction": call},
                )
            return call
        case GameKind.HIGHER_LOWER:
            call = str(prediction or "").strip().lower()
            if call not in THRESHOLD_CALLS:
                raise ValidationError(
                    f"Prediction must be one of {', '.join(THRESHOLD_CALLS)}",
                    details={"prediction": prediction},
                )
            return call
        case GameKind.SPIN_WHEEL | GameKind.SCRATCH_CARD | GameKind.DAILY_BONUS:
            return None
        case _:
            raise ValidationError(f"Unknown game type: {game_kind}")


def resolve_wager(
    game_kind: GameKind,
    seed: FairSeed,
    call: Any,
    custom_config: dict[str, Any] | None = None,
) -> Resolution:
    """Draw from ``seed`` and resolve it with the game's resolver."""
    custom_config = custom_config or {}
    draw = ProvablyFairRng.draw(seed.server_seed, seed.client_seed, seed.nonce)

    match game_kind:
        case GameKind.COIN_FLIP:
            return resolve_binary(draw, call)
        case GameKind.DICE_ROLL:
            return resolve_range_pick(
                draw, call, int(custom_config.get("sides", DEFAULT_DICE_SIDES))
            )
        case GameKind.SPIN_WHEEL:
            return resolve_weighted_segments(
                draw, segments_from_config(custom_config.get("segments"))
            )
        case GameKind.HIGHER_LOWER:
            return resolve_threshold(
                draw, call, int(custom_config.get("midpoint", DEFAULT_MIDPOINT))
            )
        case GameKind.SCRATCH_CARD:
            draws = ProvablyFairRng.draws(
                seed.server_seed, seed.client_seed, seed.nonce, GRID_DRAWS
            )
            return resolve_grid(draws)
        case GameKind.DAILY_BONUS:
            return resolve_bonus(draw, prizes_from_config(custom_config.get("prizes")))
        case _:
            raise ValidationError(f"Unknown game type: {game_kind}")


def apply_house_edge(fair_multiplier: Decimal, house_edge_percent: Decimal) -> Decimal:
    """``fair * (1 - edge / 100)``."""
    return fair_multiplier * (Decimal(1) - Decimal(house_edge_percent) / Decimal(100))


# =============================================================================
# Engine
# =============================================================================


class WageringEngine:
    """Entry point for plays, daily bonuses and fairness checks.

    Each public operation opens its own unit of work, retried on
    serialization failures. Notifications go out only after commit.
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
    # Seeds and nonces
    # -------------------------------------------------------------------------

    async def _lock_fairness_state(self, session: AsyncSession, principal_id: str) -> FairnessState:
        result = await session.execute(
            select(FairnessState)
            .where(FairnessState.principal_id == principal_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        state = result.scalar_one_or_none()
        if state is None:
            state = FairnessState(id=str(uuid4()), principal_id=principal_id, last_nonce=0)
            session.add(state)
            await session.flush()
        return state

    async def _next_seed(
        self,
        session: AsyncSession,
        principal_id: str,
        client_seed: str | None,
    ) -> FairSeed:
        """Advance the principal's nonce and take the committed seed."""
        state = await self._lock_fairness_state(session, principal_id)
        state.last_nonce += 1

        if state.next_server_seed and state.next_server_seed_hash:
            commitment = SeedCommitment(state.next_server_seed, state.next_server_seed_hash)
            state.next_server_seed = None
            state.next_server_seed_hash = None
        else:
            commitment = ProvablyFairRng.commit()
        await session.flush()

        return FairSeed(
            server_seed=commitment.server_seed,
            server_seed_hash=commitment.server_seed_hash,
            client_seed=(client_seed or "").strip() or ProvablyFairRng.generate_client_seed(),
            nonce=state.last_nonce,
        )

    async def commit_next_seed(self, principal_id: str) -> SeedCommitmentResponse:
        """Publish the hash of the server seed the next play will use."""

        async def work(session: AsyncSession) -> SeedCommitmentResponse:
            await AccountDirectory(session).get_principal(principal_id)
            state = await self._lock_fairness_state(session, principal_id)
            if not state.next_server_seed:
                commitment = ProvablyFairRng.commit()
                state.next_server_seed = commitment.server_seed
                state.next_server_seed_hash = commitment.server_seed_hash
                await session.flush()
            return SeedCommitmentResponse(
                server_seed_hash=state.next_server_seed_hash,
                next_nonce=state.last_nonce + 1,
            )

        return await run_in_unit_of_work(work, self.session_factory)

    # -------------------------------------------------------------------------
    # Shared steps
    # -------------------------------------------------------------------------

    @staticmethod
    async def _require_bank(bank_service: BankService) -> None:
        balance = await bank_service.get_balance()
        if balance <= 0:
            raise GamesUnavailableError(balance)

    @staticmethod
    async def _brake_if_depleted(session: AsyncSession, bank_balance: Decimal) -> bool:
        """Disable every game once the bank is at or below zero."""
        if bank_balance > 0:
            return False
        changed = await GameConfigService(session).disable_all()
        logger.warning("games_auto_disabled", bank_balance=str(bank_balance), changed=changed)
        return True

    def _new_game(
        self,
        game_id: str,
        principal_id: str,
        config: GameConfig,
        seed: FairSeed,
        resolution: Resolution,
        bet: Decimal,
        payout: Decimal,
        effective_multiplier: Decimal,
    ) -> Game:
        now = self.clock()
        return Game(
            id=game_id,
            principal_id=principal_id,
            game_kind=config.game_kind,
            config_snapshot=config.snapshot(),
            **seed.to_revealed_dict(),
            outcome=resolution.outcome,
            won=resolution.won,
            bet=bet,
            payout=payout,
            fair_multiplier=resolution.fair_multiplier.quantize(MULTIPLIER_PLACES),
            effective_multiplier=effective_multiplier.quantize(MULTIPLIER_PLACES),
            completed_at=now,
            created_at=now,
        )

    # -------------------------------------------------------------------------
    # Play
    # -------------------------------------------------------------------------

    async def play_game(
        self,
        principal_id: str,
        game_kind: GameKind | str,
        bet: Decimal | int | str,
        prediction: Any = None,
        client_seed: str | None = None,
    ) -> WagerResult:
        """Play one wager.

        Args:
            principal_id: Player
            game_kind: Game to play (not the daily bonus)
            bet: Stake, within the game's limits
            prediction: Player's call where the game needs one
            client_seed: Player-chosen seed; generated when omitted

        Returns:
            WagerResult with outcome, revealed seed, payout and new balance

        Raises:
            GamesUnavailableError: Bank depleted
            GameDisabledError: Game switched off
            BetOutOfRangeError: Bet outside [min_bet, max_bet]
            ValidationError: Malformed bet or prediction
            InsufficientFundsError: Player cannot cover the bet
        """
        game_kind = coerce_game_kind(game_kind)
        if game_kind == GameKind.DAILY_BONUS:
            raise ValidationError("The daily bonus is claimed with play_daily_bonus")
        bet = require_positive(bet, "bet")

        async def work(session: AsyncSession) -> WagerResult:
            return await self._play(session, principal_id, game_kind, bet, prediction, client_seed)

        with log_context(principal_id=principal_id, game_kind=game_kind.value):
            result = await run_in_unit_of_work(work, self.session_factory)

            if result.games_disabled:
                await self.notifier.dispatch(
                    NotificationEvent.GAMES_AUTO_DISABLED,
                    {"gameId": result.game_id, "gameKind": result.game_kind.value},
                )
        return result

    async def _play(
        self,
        session: AsyncSession,
        principal_id: str,
        game_kind: GameKind,
        bet: Decimal,
        prediction: Any,
        client_seed: str | None,
    ) -> WagerResult:
        bank_service = BankService(session)
        await self._require_bank(bank_service)

        config = await GameConfigService(session).get(game_kind)
        if not config.enabled:
            raise GameDisabledError(game_kind.value)
        min_bet, max_bet = to_amount(config.min_bet), to_amount(config.max_bet)
        if bet < min_bet or bet > max_bet:
            raise BetOutOfRangeError(bet, min_bet, max_bet)
        call = normalize_prediction(game_kind, prediction, config.custom_config)

        account = await AccountDirectory(session).get_account(principal_id)
        seed = await self._next_seed(session, principal_id, client_seed)
        game_id = str(uuid4())

        ledger = LedgerService(session)
        bet_tx = await ledger.record_posted(
            account.id,
            TransactionKind.WAGER_BET,
            bet,
            f"{config.name} bet",
            source_principal_id=principal_id,
            link_id=game_id,
        )

        resolution = resolve_wager(game_kind, seed, call, config.custom_config)
        effective = apply_house_edge(resolution.fair_multiplier, config.house_edge_percent)
        payout = round_down(bet * effective) if resolution.won else ZERO

        win_tx = None
        if payout > 0:
            win_tx = await ledger.record_posted(
                account.id,
                TransactionKind.WAGER_WIN,
                payout,
                f"{config.name} win",
                target_principal_id=principal_id,
                link_id=game_id,
            )

        game = self._new_game(
            game_id, principal_id, config, seed, resolution, bet, payout, effective
        )
        session.add(game)
        await session.flush()
        session.add(
            GameParticipant(
                id=str(uuid4()),
                game_id=game_id,
                principal_id=principal_id,
                prediction=call,
                bet=bet,
                payout=payout,
                is_winner=resolution.won,
            )
        )
        await session.flush()

        session.add(
            GameTransaction(
                id=str(uuid4()),
                game_id=game_id,
                principal_id=principal_id,
                kind=GameTransactionKind.BET,
                amount=bet,
                ledger_transaction_id=bet_tx.id,
            )
        )
        if win_tx is not None:
            session.add(
                GameTransaction(
                    id=str(uuid4()),
                    game_id=game_id,
                    principal_id=principal_id,
                    kind=GameTransactionKind.WIN,
                    amount=payout,
                    ledger_transaction_id=win_tx.id,
                )
            )

        # Settle the pool
        contribution = ZERO
        if resolution.won:
            bank_delta = bet - payout
        else:
            contribution = await self._contribute_to_jackpot(
                session, config, principal_id, game_id, bet
            )
            bank_delta = bet - contribution
        bank_balance = await bank_service.apply(bank_delta)
        games_disabled = await self._brake_if_depleted(session, bank_balance)

        await GameStatsService(session).record_play(
            principal_id, game_kind, bet, payout, resolution.won
        )

        logger.info(
            "wager_resolved",
            game_id=game_id,
            nonce=seed.nonce,
            bet=str(bet),
            payout=str(payout),
            won=resolution.won,
            bank_balance=str(bank_balance),
        )
        return WagerResult(
            game_id=game_id,
            game_kind=game_kind,
            outcome=resolution.outcome,
            won=resolution.won,
            bet=bet,
            payout=payout,
            fair_multiplier=game.fair_multiplier,
            effective_multiplier=game.effective_multiplier,
            **seed.to_revealed_dict(),
            new_balance=to_amount(account.balance),
            jackpot_contribution=contribution,
            games_disabled=games_disabled,
        )

    async def _contribute_to_jackpot(
        self,
        session: AsyncSession,
        config: GameConfig,
        principal_id: str,
        game_id: str,
        bet: Decimal,
    ) -> Decimal:
        """Carve the configured share of a losing bet into the active jackpot."""
        rate = Decimal(config.jackpot_contribution_rate)
        if rate <= 0:
            return ZERO
        jackpots = JackpotService(session)
        jackpot = await jackpots.get_active_for_contribution()
        if jackpot is None:
            return ZERO
        contribution = round_down(bet * rate)
        if contribution <= 0:
            return ZERO

        await jackpots.contribute(jackpot, principal_id, contribution, game_id)
        session.add(
            GameTransaction(
                id=str(uuid4()),
                game_id=game_id,
                principal_id=principal_id,
                kind=GameTransactionKind.JACKPOT_CONTRIBUTION,
                amount=contribution,
                jackpot_id=jackpot.id,
            )
        )
        await session.flush()
        return contribution

    # -------------------------------------------------------------------------
    # Daily bonus
    # -------------------------------------------------------------------------

    def _next_bonus_at(self, spin_date) -> datetime:
        midnight = datetime.combine(spin_date, datetime.min.time(), tzinfo=self.clock().tzinfo)
        return midnight + timedelta(days=1)

    async def play_daily_bonus(
        self,
        principal_id: str,
        client_seed: str | None = None,
    ) -> DailyBonusResult:
        """Claim today's free spin (one per UTC calendar day)."""

        async def work(session: AsyncSession) -> DailyBonusResult:
            return await self._daily_bonus(session, principal_id, client_seed)

        with log_context(principal_id=principal_id, game_kind=GameKind.DAILY_BONUS.value):
            result = await run_in_unit_of_work(work, self.session_factory)

            if result.games_disabled:
                await self.notifier.dispatch(
                    NotificationEvent.GAMES_AUTO_DISABLED,
                    {"gameId": result.game_id, "gameKind": GameKind.DAILY_BONUS.value},
                )
        return result

    async def _daily_bonus(
        self,
        session: AsyncSession,
        principal_id: str,
        client_seed: str | None,
    ) -> DailyBonusResult:
        bank_service = BankService(session)
        await self._require_bank(bank_service)

        today = self.clock().date()
        claimed = await session.scalar(
            select(DailyBonusSpin.id).where(
                DailyBonusSpin.principal_id == principal_id,
                DailyBonusSpin.spin_date == today,
            )
        )
        if claimed is not None:
            raise DailyBonusAlreadyClaimedError(
                today.isoformat(), self._next_bonus_at(today).isoformat()
            )

        config = await GameConfigService(session).get(GameKind.DAILY_BONUS)
        account = await AccountDirectory(session).get_account(principal_id)
        seed = await self._next_seed(session, principal_id, client_seed)
        game_id = str(uuid4())

        resolution = resolve_wager(GameKind.DAILY_BONUS, seed, None, config.custom_config)
        prize = to_amount(resolution.prize or ZERO)

        game = self._new_game(
            game_id, principal_id, config, seed, resolution, ZERO, prize, ZERO
        )
        session.add(game)
        await session.flush()
        session.add(
            GameParticipant(
                id=str(uuid4()),
                game_id=game_id,
                principal_id=principal_id,
                prediction=None,
                bet=ZERO,
                payout=prize,
                is_winner=True,
            )
        )
        session.add(
            DailyBonusSpin(
                id=str(uuid4()),
                principal_id=principal_id,
                spin_date=today,
                prize=prize,
                segment_index=resolution.outcome["segment_index"],
                game_id=game_id,
            )
        )
        try:
            await session.flush()
        except IntegrityError as e:
            raise DailyBonusAlreadyClaimedError(
                today.isoformat(), self._next_bonus_at(today).isoformat()
            ) from e

        if prize > 0:
            bonus_tx = await LedgerService(session).record_posted(
                account.id,
                TransactionKind.DAILY_BONUS,
                prize,
                "Daily bonus",
                target_principal_id=principal_id,
                link_id=game_id,
            )
            session.add(
                GameTransaction(
                    id=str(uuid4()),
                    game_id=game_id,
                    principal_id=principal_id,
                    kind=GameTransactionKind.BONUS,
                    amount=prize,
                    ledger_transaction_id=bonus_tx.id,
                )
            )

        bank_balance = await bank_service.apply(-prize)
        games_disabled = await self._brake_if_depleted(session, bank_balance)

        await GameStatsService(session).record_play(
            principal_id, GameKind.DAILY_BONUS, ZERO, prize, True, counts_for_streak=False
        )

        logger.info(
            "daily_bonus_claimed",
            game_id=game_id,
            prize=str(prize),
            bank_balance=str(bank_balance),
        )
        return DailyBonusResult(
            game_id=game_id,
            prize=prize,
            segment_index=resolution.outcome["segment_index"],
            **seed.to_revealed_dict(),
            new_balance=to_amount(account.balance),
            spin_date=today,
            games_disabled=games_disabled,
        )

    async def get_daily_bonus_status(self, principal_id: str) -> DailyBonusStatus:
        async with self.session_factory() as session:
            last = await session.scalar(
                select(func.max(DailyBonusSpin.spin_date)).where(
                    DailyBonusSpin.principal_id == principal_id
                )
            )
        now = self.clock()
        if last is not None and last >= now.date():
            return DailyBonusStatus(
                can_play=False,
                last_spin_date=last,
                next_available_at=self._next_bonus_at(last),
            )
        return DailyBonusStatus(can_play=True, last_spin_date=last, next_available_at=now)

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def get_game_config(self, game_kind: GameKind | str) -> GameConfigResponse:
        async def work(session: AsyncSession) -> GameConfigResponse:
            config = await GameConfigService(session).get(game_kind)
            return GameConfigResponse.model_validate(config)

        return await run_in_unit_of_work(work, self.session_factory)

    async def get_game_history(
        self,
        principal_id: str,
        game_kind: GameKind | str | None = None,
        limit: int = 20,
        offset: int = 0,
    ) -> GameHistoryPage:
        limit = min(max(limit, 1), 100)
        offset = max(offset, 0)
        query = select(Game).where(Game.principal_id == principal_id)
        if game_kind is not None:
            query = query.where(Game.game_kind == coerce_game_kind(game_kind))

        async with self.session_factory() as session:
            total = await session.scalar(select(func.count()).select_from(query.subquery()))
            result = await session.execute(
                query.order_by(Game.nonce.desc()).limit(limit).offset(offset)
            )
            games = [GameSummary.model_validate(g) for g in result.scalars().all()]
        return GameHistoryPage(games=games, total=total or 0, limit=limit, offset=offset)

    async def get_stats(self, principal_id: str) -> GameStatsResponse:
        async with self.session_factory() as session:
            return await GameStatsService(session).get_stats(principal_id)

    async def get_leaderboard(
        self,
        principal_id: str,
        period: str = "all",
        limit: int = 20,
    ) -> Leaderboard:
        """Net-profit ranking over all time or the last week or month."""
        if period not in LEADERBOARD_PERIODS:
            raise ValidationError(
                f"Unknown leaderboard period: {period!r}",
                details={"period": period, "allowed": list(LEADERBOARD_PERIODS)},
            )
        window = LEADERBOARD_PERIODS[period]
        since = None if window is None else self.clock() - window
        async with self.session_factory() as session:
            return await GameStatsService(session).leaderboard(principal_id, period, since, limit)

    async def get_game_overview(self) -> GameOverview:
        async with self.session_factory() as session:
            return await GameStatsService(session).overview()

    async def list_player_stats(
        self,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "net_profit",
        descending: bool = True,
    ) -> PlayerStatsPage:
        async with self.session_factory() as session:
            return await GameStatsService(session).list_players(limit, offset, sort_by, descending)

    # -------------------------------------------------------------------------
    # Jackpot drawings
    # -------------------------------------------------------------------------

    async def trigger_jackpot_drawing(
        self,
        jackpot_id: str | None = None,
        jackpot_type: JackpotType | str | None = None,
        random_below: Callable[[int], int] | None = None,
    ) -> DrawingResult | None:
        """Draw one jackpot by id or by active type and announce the winner.

        The payout commits before JACKPOT_WON is dispatched. Returns None
        when there was nothing to draw.
        """
        if (jackpot_id is None) == (jackpot_type is None):
            raise ValidationError("Pass exactly one of jackpot_id or jackpot_type")

        async def work(session: AsyncSession) -> DrawingResult | None:
            jackpots = JackpotService(session)
            if jackpot_id is not None:
                return await jackpots.trigger_drawing(jackpot_id, random_below)
            return await jackpots.trigger_drawing_for_type(jackpot_type, random_below)

        result = await run_in_unit_of_work(work, self.session_factory)
        if result is not None:
            await self.notifier.dispatch(
                NotificationEvent.JACKPOT_WON,
                {
                    "jackpotId": result.jackpot_id,
                    "winnerId": result.winner_id,
                    "amount": str(result.amount),
                    "transactionId": result.transaction_id,
                },
            )
        return result

    @staticmethod
    def verify_outcome(
        server_seed: str,
        client_seed: str,
        nonce: int,
        claimed_outcome: int,
        modulus: int,
        server_seed_hash: str | None = None,
    ) -> FairnessVerification:
        """Recompute ``draw % modulus`` for a revealed seed; no database access."""
        valid = ProvablyFairRng.verify(server_seed, client_seed, nonce, claimed_outcome, modulus)
        draw = ProvablyFairRng.draw(server_seed, client_seed, nonce)
        commitment_valid = None
        if server_seed_hash is not None:
            commitment_valid = ProvablyFairRng.verify_commitment(server_seed, server_seed_hash)
        return FairnessVerification(
            valid=valid and commitment_valid is not False,
            computed_outcome=draw % modulus,
            claimed_outcome=claimed_outcome,
            modulus=modulus,
            draw=draw,
            server_seed_hash=ProvablyFairRng.hash_server_seed(server_seed),
            commitment_valid=commitment_valid,
        )
