"""Wagering schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from pydantic import Field, model_validator

from rewards.models.bank import JackpotType
from rewards.models.game import GameKind
from rewards.schemas.common import BaseSchema


class GameConfigResponse(BaseSchema):
    game_kind: GameKind
    name: str
    enabled: bool
    min_bet: Decimal
    max_bet: Decimal
    house_edge_percent: Decimal
    jackpot_contribution_rate: Decimal
    custom_config: dict[str, Any] = Field(default_factory=dict)
    display_order: int = 0


class GameConfigUpdate(BaseSchema):
    """Partial update of a game configuration."""

    name: str | None = None
    enabled: bool | None = None
    min_bet: Decimal | None = Field(default=None, gt=0)
    max_bet: Decimal | None = Field(default=None, gt=0)
    house_edge_percent: Decimal | None = Field(default=None, ge=0, lt=100)
    jackpot_contribution_rate: Decimal | None = Field(default=None, ge=0, le=1)
    custom_config: dict[str, Any] | None = None
    display_order: int | None = None

    @model_validator(mode="after")
    def validate_bet_range(self) -> "GameConfigUpdate":
        if (
            self.min_bet is not None
            and self.max_bet is not None
            and self.min_bet > self.max_bet
        ):
            raise ValueError("min_bet must not exceed max_bet")
        return self


class WagerResult(BaseSchema):
    """Outcome of one play, including the revealed seed."""

    game_id: str
    game_kind: GameKind
    outcome: dict[str, Any]
    won: bool
    bet: Decimal
    payout: Decimal
    fair_multiplier: Decimal
    effective_multiplier: Decimal
    server_seed: str
    server_seed_hash: str
    client_seed: str
    nonce: int
    new_balance: Decimal
    jackpot_contribution: Decimal = Decimal("0")
    games_disabled: bool = False


class DailyBonusResult(BaseSchema):
    game_id: str
    prize: Decimal
    segment_index: int
    server_seed: str
    server_seed_hash: str
    client_seed: str
    nonce: int
    new_balance: Decimal
    spin_date: date
    games_disabled: bool = False


class DailyBonusStatus(BaseSchema):
    can_play: bool
    last_spin_date: date | None = None
    next_available_at: datetime


class FairnessVerification(BaseSchema):
    """Independent recomputation of a past draw."""

    valid: bool
    computed_outcome: int
    claimed_outcome: int
    modulus: int
    draw: int
    server_seed_hash: str
    commitment_valid: bool | None = Field(
        default=None, description="Set when a published hash was supplied"
    )


class SeedCommitmentResponse(BaseSchema):
    server_seed_hash: str
    next_nonce: int


class GameSummary(BaseSchema):
    id: str
    game_kind: GameKind
    bet: Decimal
    payout: Decimal
    won: bool
    nonce: int
    server_seed_hash: str
    outcome: dict[str, Any]
    completed_at: datetime


class GameHistoryPage(BaseSchema):
    games: list[GameSummary]
    total: int
    limit: int
    offset: int


class GameStatsResponse(BaseSchema):
    principal_id: str
    games_played: int = 0
    games_won: int = 0
    total_bet: Decimal = Decimal("0")
    total_won: Decimal = Decimal("0")
    net_profit: Decimal = Decimal("0")
    current_streak: int = 0
    longest_streak: int = 0
    stats_by_game: dict[str, Any] = Field(default_factory=dict)
    jackpots_won: int = 0
    total_jackpot_winnings: Decimal = Decimal("0")


class BankStatus(BaseSchema):
    balance: Decimal
    games_available: bool


class JackpotStatus(BaseSchema):
    id: str
    name: str
    type: JackpotType
    balance: Decimal
    is_active: bool
    contributor_count: int = 0
    last_won_at: datetime | None = None
    last_won_by: str | None = None
    last_won_amount: Decimal | None = None


class DrawingResult(BaseSchema):
    jackpot_id: str
    winner_id: str
    amount: Decimal
    transaction_id: str
    contributor_count: int


class LeaderboardEntry(BaseSchema):
    rank: int
    principal_id: str
    name: str
    games_played: int
    games_won: int
    win_rate: Decimal
    total_bet: Decimal
    total_won: Decimal
    net_profit: Decimal
    longest_streak: int | None = Field(
        default=None,
        description="All-time leaderboards only; streaks are not kept per period",
    )


class Leaderboard(BaseSchema):
    """Top players by net profit, plus the caller's own rank."""

    period: str
    entries: list[LeaderboardEntry]
    current_rank: int | None = None
    current_entry: LeaderboardEntry | None = None


class GameOverview(BaseSchema):
    """Operator totals across every player."""

    games: int
    unique_players: int
    total_bet: Decimal
    total_won: Decimal
    house_profit: Decimal
    jackpots_won: int
    jackpot_payouts: Decimal
    games_by_kind: dict[str, int] = Field(default_factory=dict)


class PlayerStats(GameStatsResponse):
    name: str
    email: str
    win_rate: Decimal


class PlayerStatsPage(BaseSchema):
    players: list[PlayerStats]
    total: int
    limit: int
    offset: int
    has_more: bool
