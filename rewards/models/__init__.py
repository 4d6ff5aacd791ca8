"""Database models."""

from rewards.models.account import Account, Principal
from rewards.models.allotment import ManagerAllotment, PeriodType
from rewards.models.bank import (
    BANK_ACCOUNT_ID,
    GameBankAccount,
    Jackpot,
    JackpotContribution,
    JackpotType,
)
from rewards.models.base import Base, TimestampMixin, UUIDMixin
from rewards.models.game import (
    DailyBonusSpin,
    FairnessState,
    Game,
    GameConfig,
    GameKind,
    GameParticipant,
    GameStats,
    GameStatus,
    GameTransaction,
    GameTransactionKind,
)
from rewards.models.ledger import (
    LedgerTransaction,
    TransactionKind,
    TransactionStatus,
    balance_sign,
    signed_amount,
)
from rewards.models.pending_transfer import (
    PeerTransferLimit,
    PendingTransfer,
    PendingTransferStatus,
)

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    # Accounts
    "Principal",
    "Account",
    # Ledger
    "LedgerTransaction",
    "TransactionKind",
    "TransactionStatus",
    "balance_sign",
    "signed_amount",
    # Pools
    "BANK_ACCOUNT_ID",
    "GameBankAccount",
    "Jackpot",
    "JackpotContribution",
    "JackpotType",
    # Games
    "DailyBonusSpin",
    "FairnessState",
    "Game",
    "GameConfig",
    "GameKind",
    "GameParticipant",
    "GameStats",
    "GameStatus",
    "GameTransaction",
    "GameTransactionKind",
    # Allotments
    "ManagerAllotment",
    "PeriodType",
    # Pending transfers
    "PendingTransfer",
    "PendingTransferStatus",
    "PeerTransferLimit",
]
