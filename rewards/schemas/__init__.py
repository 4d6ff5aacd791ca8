"""Pydantic result schemas."""

from rewards.schemas.allotment import (
    AllotmentSummary,
    AwardHistoryPage,
    AwardResult,
    ClaimSummary,
    PendingTransferResponse,
)
from rewards.schemas.common import BaseSchema
from rewards.schemas.game import (
    BankStatus,
    DailyBonusResult,
    DailyBonusStatus,
    DrawingResult,
    FairnessVerification,
    GameConfigResponse,
    GameConfigUpdate,
    GameHistoryPage,
    GameStatsResponse,
    GameSummary,
    JackpotStatus,
    SeedCommitmentResponse,
    WagerResult,
)
from rewards.schemas.ledger import (
    BalanceSummary,
    ReconciliationReport,
    TransactionPage,
    TransactionResponse,
)

__all__ = [
    "AllotmentSummary",
    "AwardHistoryPage",
    "AwardResult",
    "BalanceSummary",
    "BankStatus",
    "BaseSchema",
    "ClaimSummary",
    "DailyBonusResult",
    "DailyBonusStatus",
    "DrawingResult",
    "FairnessVerification",
    "GameConfigResponse",
    "GameConfigUpdate",
    "GameHistoryPage",
    "GameStatsResponse",
    "GameSummary",
    "JackpotStatus",
    "PendingTransferResponse",
    "ReconciliationReport",
    "SeedCommitmentResponse",
    "TransactionPage",
    "TransactionResponse",
    "WagerResult",
]
