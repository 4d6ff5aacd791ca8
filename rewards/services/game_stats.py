"""Per-principal wagering statistics, leaderboards and operator totals."""

from datetime import datetime
from decimal import Decimal
from uuid import uuid4

from sqlalchemy import case, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from rewards.models.account import Principal
from rewards.models.game import Game, GameKind, GameStats
from rewards.schemas.game import (
    GameOverview,
    GameStatsResponse,
    Leaderboard,
    LeaderboardEntry,
    PlayerStats,
    PlayerStatsPage,
)
from rewards.utils.errors import ValidationError
from rewards.utils.money import ZERO, to_amount

RATE_PLACES = Decimal("0.0001")

PLAYER_SORT_COLUMNS = {
    "games_played": GameStats.games_played,
    "games_won": GameStats.games_won,
    "total_bet": GameStats.total_bet,
    "total_won": GameStats.total_won,
    "net_profit": GameStats.net_profit,
    "longest_streak": GameStats.longest_streak,
    "jackpots_won": GameStats.jackpots_won,
    "total_jackpot_winnings": GameStats.total_jackpot_winnings,
}


def win_rate(games_won: int, games_played: int) -> Decimal:
    if not games_played:
        return Decimal("0")
    return (Decimal(games_won) / Decimal(games_played)).quantize(RATE_PLACES)


class GameStatsService:
    """Updates and reads GameStats on the caller's session."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get_or_create(self, principal_id: str) -> GameStats:
        result = await self.session.execute(
            select(GameStats)
            .where(GameStats.principal_id == principal_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        stats = result.scalar_one_or_none()
        if stats is None:
            stats = GameStats(
                id=str(uuid4()),
                principal_id=principal_id,
                games_played=0,
                games_won=0,
                total_bet=ZERO,
                total_won=ZERO,
                net_profit=ZERO,
                current_streak=0,
                longest_streak=0,
                stats_by_game={},
                jackpots_won=0,
                total_jackpot_winnings=ZERO,
            )
            self.session.add(stats)
            await self.session.flush()
        return stats

    async def record_play(
        self,
        principal_id: str,
        game_kind: GameKind,
        bet: Decimal,
        payout: Decimal,
        won: bool,
        counts_for_streak: bool = True,
    ) -> GameStats:
        """Fold one play into the aggregate.

        A win extends the current streak and a loss resets it to zero.
        Free bonus plays pass ``counts_for_streak=False``.
        """
        stats = await self.get_or_create(principal_id)

        stats.games_played += 1
        stats.total_bet = to_amount(stats.total_bet) + bet
        stats.total_won = to_amount(stats.total_won) + payout
        stats.net_profit = to_amount(stats.net_profit) + payout - bet
        if won:
            stats.games_won += 1

        if counts_for_streak:
            if won:
                stats.current_streak += 1
                stats.longest_streak = max(stats.longest_streak, stats.current_streak)
            else:
                stats.current_streak = 0

        # JSON columns only track reassignment
        by_game = dict(stats.stats_by_game or {})
        entry = dict(by_game.get(game_kind.value) or {})
        entry["played"] = int(entry.get("played", 0)) + 1
        entry["won"] = int(entry.get("won", 0)) + (1 if won else 0)
        entry["bet"] = str(to_amount(entry.get("bet", "0")) + bet)
        entry["payout"] = str(to_amount(entry.get("payout", "0")) + payout)
        by_game[game_kind.value] = entry
        stats.stats_by_game = by_game

        await self.session.flush()
        return stats

    async def record_jackpot_win(self, principal_id: str, amount: Decimal) -> GameStats:
        stats = await self.get_or_create(principal_id)
        stats.jackpots_won += 1
        stats.total_jackpot_winnings = to_amount(stats.total_jackpot_winnings) + amount
        await self.session.flush()
        return stats

    async def get_stats(self, principal_id: str) -> GameStatsResponse:
        result = await self.session.execute(
            select(GameStats).where(GameStats.principal_id == principal_id)
        )
        stats = result.scalar_one_or_none()
        if stats is None:
            return GameStatsResponse(principal_id=principal_id)
        return GameStatsResponse.model_validate(stats)

    # -------------------------------------------------------------------------
    # Leaderboards
    # -------------------------------------------------------------------------

    @staticmethod
    def _period_totals(since: datetime):
        """Per-principal totals over games completed since ``since``."""
        return (
            select(
                Game.principal_id.label("principal_id"),
                func.count(Game.id).label("games_played"),
                func.sum(case((Game.won.is_(True), 1), else_=0)).label("games_won"),
                func.sum(Game.bet).label("total_bet"),
                func.sum(Game.payout).label("total_won"),
                (func.sum(Game.payout) - func.sum(Game.bet)).label("net_profit"),
            )
            .where(Game.completed_at >= since)
            .group_by(Game.principal_id)
            .subquery()
        )

    @staticmethod
    def _entry(rank: int, row, name: str, longest_streak: int | None = None) -> LeaderboardEntry:
        return LeaderboardEntry(
            rank=rank,
            principal_id=row.principal_id,
            name=name,
            games_played=row.games_played,
            games_won=row.games_won,
            win_rate=win_rate(row.games_won, row.games_played),
            total_bet=to_amount(row.total_bet or ZERO),
            total_won=to_amount(row.total_won or ZERO),
            net_profit=to_amount(row.net_profit or ZERO),
            longest_streak=longest_streak,
        )

    async def leaderboard(
        self,
        principal_id: str,
        period: str = "all",
        since: datetime | None = None,
        limit: int = 20,
    ) -> Leaderboard:
        """Top ``limit`` players by net profit and ``principal_id``'s rank.

        With ``since`` the ranking is rebuilt from games completed after
        it; otherwise the all-time aggregates are used. A player's rank is
        one more than the number of players strictly ahead of them.
        """
        limit = min(max(limit, 1), 100)

        if since is None:
            result = await self.session.execute(
                select(GameStats, Principal.name)
                .join(Principal, Principal.id == GameStats.principal_id)
                .order_by(GameStats.net_profit.desc(), GameStats.principal_id)
                .limit(limit)
            )
            entries = [
                self._entry(rank, stats, name, stats.longest_streak)
                for rank, (stats, name) in enumerate(result.all(), start=1)
            ]

            mine = await self.session.execute(
                select(GameStats, Principal.name)
                .join(Principal, Principal.id == GameStats.principal_id)
                .where(GameStats.principal_id == principal_id)
            )
            row = mine.one_or_none()
            if row is None:
                return Leaderboard(period=period, entries=entries)
            stats, name = row
            ahead = await self.session.scalar(
                select(func.count())
                .select_from(GameStats)
                .where(GameStats.net_profit > stats.net_profit)
            )
            rank = (ahead or 0) + 1
            return Leaderboard(
                period=period,
                entries=entries,
                current_rank=rank,
                current_entry=self._entry(rank, stats, name, stats.longest_streak),
            )

        totals = self._period_totals(since)
        result = await self.session.execute(
            select(totals, Principal.name)
            .join(Principal, Principal.id == totals.c.principal_id)
            .order_by(totals.c.net_profit.desc(), totals.c.principal_id)
            .limit(limit)
        )
        entries = [
            self._entry(rank, row, row.name) for rank, row in enumerate(result.all(), start=1)
        ]

        mine = await self.session.execute(
            select(totals, Principal.name)
            .join(Principal, Principal.id == totals.c.principal_id)
            .where(totals.c.principal_id == principal_id)
        )
        row = mine.one_or_none()
        if row is None:
            return Leaderboard(period=period, entries=entries)
        ahead = await self.session.scalar(
            select(func.count())
            .select_from(totals)
            .where(totals.c.net_profit > row.net_profit)
        )
        rank = (ahead or 0) + 1
        return Leaderboard(
            period=period,
            entries=entries,
            current_rank=rank,
            current_entry=self._entry(rank, row, row.name),
        )

    # -------------------------------------------------------------------------
    # Operator views
    # -------------------------------------------------------------------------

    async def overview(self) -> GameOverview:
        games = await self.session.scalar(select(func.count()).select_from(Game))
        sums = (
            await self.session.execute(
                select(
                    func.count(GameStats.id),
                    func.sum(GameStats.total_bet),
                    func.sum(GameStats.total_won),
                    func.sum(GameStats.net_profit),
                    func.sum(GameStats.jackpots_won),
                    func.sum(GameStats.total_jackpot_winnings),
                )
            )
        ).one()
        players, total_bet, total_won, net_profit, jackpots_won, jackpot_payouts = sums

        by_kind = await self.session.execute(
            select(Game.game_kind, func.count(Game.id)).group_by(Game.game_kind)
        )
        return GameOverview(
            games=games or 0,
            unique_players=players or 0,
            total_bet=to_amount(total_bet or ZERO),
            total_won=to_amount(total_won or ZERO),
            house_profit=ZERO - to_amount(net_profit or ZERO),
            jackpots_won=jackpots_won or 0,
            jackpot_payouts=to_amount(jackpot_payouts or ZERO),
            games_by_kind={kind.value: count for kind, count in by_kind.all()},
        )

    async def list_players(
        self,
        limit: int = 50,
        offset: int = 0,
        sort_by: str = "net_profit",
        descending: bool = True,
    ) -> PlayerStatsPage:
        column = PLAYER_SORT_COLUMNS.get(sort_by)
        if column is None:
            raise ValidationError(
                f"Cannot sort players by {sort_by!r}",
                details={"sortBy": sort_by, "allowed": sorted(PLAYER_SORT_COLUMNS)},
            )
        limit = min(max(limit, 1), 100)
        offset = max(offset, 0)

        total = await self.session.scalar(select(func.count()).select_from(GameStats))
        result = await self.session.execute(
            select(GameStats, Principal.name, Principal.email)
            .join(Principal, Principal.id == GameStats.principal_id)
            .order_by(column.desc() if descending else column.asc(), GameStats.principal_id)
            .limit(limit)
            .offset(offset)
        )
        players = [
            PlayerStats(
                **GameStatsResponse.model_validate(stats).model_dump(),
                name=name,
                email=email,
                win_rate=win_rate(stats.games_won, stats.games_played),
            )
            for stats, name, email in result.all()
        ]
        total = total or 0
        return PlayerStatsPage(
            players=players,
            total=total,
            limit=limit,
            offset=offset,
            has_more=offset + limit < total,
        )
