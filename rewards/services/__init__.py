"""Business logic services."""

from rewards.services.accounts import AccountDirectory, normalize_email
from rewards.services.allotment import AllotmentService, period_bounds
from rewards.services.bank import BankService
from rewards.services.game_config import GameConfigService
from rewards.services.game_stats import GameStatsService
from rewards.services.jackpot import JackpotService
from rewards.services.ledger import LedgerService
from rewards.services.notifications import NotificationDispatcher, NotificationEvent
from rewards.services.pending_transfer import PendingTransferService
from rewards.services.wagering import WageringEngine

__all__ = [
    # Accounts
    "AccountDirectory",
    "normalize_email",
    # Ledger
    "LedgerService",
    # Wagering
    "WageringEngine",
    "GameConfigService",
    "GameStatsService",
    # Pools
    "BankService",
    "JackpotService",
    # Allotments and transfers
    "AllotmentService",
    "period_bounds",
    "PendingTransferService",
    # Notifications
    "NotificationDispatcher",
    "NotificationEvent",
]
