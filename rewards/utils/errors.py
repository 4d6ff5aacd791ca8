"""Custom exception classes for ledger and wagering errors.

Provides structured error handling with error codes and user-friendly messages.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Standard error codes for ledger errors."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"

    # Ledger errors
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"
    NOT_PENDING = "NOT_PENDING"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    UNKNOWN_TRANSACTION_KIND = "UNKNOWN_TRANSACTION_KIND"

    # Wagering errors
    BET_OUT_OF_RANGE = "BET_OUT_OF_RANGE"
    GAMES_UNAVAILABLE = "GAMES_UNAVAILABLE"
    GAME_DISABLED = "GAME_DISABLED"
    DAILY_BONUS_ALREADY_CLAIMED = "DAILY_BONUS_ALREADY_CLAIMED"
    JACKPOT_NOT_FOUND = "JACKPOT_NOT_FOUND"

    # Allotment / transfer errors
    INSUFFICIENT_ALLOTMENT = "INSUFFICIENT_ALLOTMENT"
    TRANSFER_LIMIT_EXCEEDED = "TRANSFER_LIMIT_EXCEEDED"
    PENDING_TRANSFER_NOT_FOUND = "PENDING_TRANSFER_NOT_FOUND"


def _money(value: Decimal | int | float | str | None) -> str | None:
    return None if value is None else str(value)


class LedgerError(Exception):
    """Base exception for ledger-related errors.

    Attributes:
        code: Error code for programmatic handling
        message: User-friendly error message
        details: Additional error details
        recoverable: Whether the error is recoverable
    """

    def __init__(
        self,
        code: ErrorCode | str,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.code = code if isinstance(code, str) else code.value
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "errorCode": self.code,
            "errorMessage": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


class ValidationError(LedgerError):
    """Raised for a malformed amount, bet, prediction or type."""

    def __init__(
        self,
        message: str = "Invalid request",
        details: dict[str, Any] | None = None,
    ):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details=details,
            recoverable=True,
        )


class BetOutOfRangeError(ValidationError):
    """Raised when a bet falls outside the game's configured limits."""

    def __init__(self, bet: Decimal, min_bet: Decimal, max_bet: Decimal):
        super().__init__(
            message=f"Bet {bet} is outside the allowed range {min_bet} - {max_bet}",
            details={
                "bet": _money(bet),
                "minBet": _money(min_bet),
                "maxBet": _money(max_bet),
            },
        )
        self.code = ErrorCode.BET_OUT_OF_RANGE.value


class InsufficientFundsError(LedgerError):
    """Raised when a debit would drive a posted balance below zero."""

    def __init__(self, required: Decimal, available: Decimal):
        super().__init__(
            code=ErrorCode.INSUFFICIENT_FUNDS,
            message=f"Insufficient funds: required {required}, available {available}",
            details={"required": _money(required), "available": _money(available)},
            recoverable=True,
        )


class InsufficientAllotmentError(LedgerError):
    """Raised when an award exceeds the manager's remaining budget."""

    def __init__(self, requested: Decimal, remaining: Decimal):
        super().__init__(
            code=ErrorCode.INSUFFICIENT_ALLOTMENT,
            message=(
                f"Insufficient allotment remaining: requested {requested}, "
                f"remaining {remaining}"
            ),
            details={"requested": _money(requested), "remaining": _money(remaining)},
            recoverable=True,
        )


class TransferLimitExceededError(LedgerError):
    """Raised when a transfer would exceed the sender's monthly limit."""

    def __init__(self, requested: Decimal, remaining: Decimal):
        super().__init__(
            code=ErrorCode.TRANSFER_LIMIT_EXCEEDED,
            message=f"Transfer limit exceeded: requested {requested}, remaining {remaining}",
            details={"requested": _money(requested), "remaining": _money(remaining)},
            recoverable=True,
        )


class NotPendingError(LedgerError):
    """Raised when posting or rejecting a transaction that is already terminal."""

    def __init__(self, transaction_id: str, status: str):
        super().__init__(
            code=ErrorCode.NOT_PENDING,
            message=f"Transaction is not pending: {transaction_id} ({status})",
            details={"transactionId": transaction_id, "status": status},
            recoverable=False,
        )


class TransactionNotFoundError(LedgerError):
    """Raised when a ledger transaction is not found."""

    def __init__(self, transaction_id: str):
        super().__init__(
            code=ErrorCode.TRANSACTION_NOT_FOUND,
            message=f"Transaction not found: {transaction_id}",
            details={"transactionId": transaction_id},
            recoverable=False,
        )


class AccountNotFoundError(LedgerError):
    """Raised when an account or principal cannot be resolved."""

    def __init__(self, reference: str):
        super().__init__(
            code=ErrorCode.ACCOUNT_NOT_FOUND,
            message=f"Account not found: {reference}",
            details={"reference": reference},
            recoverable=False,
        )


class UnknownTransactionKindError(LedgerError):
    """Raised when a transaction kind has no credit/debit classification."""

    def __init__(self, kind: Any):
        super().__init__(
            code=ErrorCode.UNKNOWN_TRANSACTION_KIND,
            message=f"Unknown transaction type: {kind!r}",
            details={"kind": str(kind)},
            recoverable=False,
        )


class GamesUnavailableError(LedgerError):
    """Raised when the game bank is depleted."""

    def __init__(self, bank_balance: Decimal):
        super().__init__(
            code=ErrorCode.GAMES_UNAVAILABLE,
            message="Games are temporarily unavailable",
            details={"bankBalance": _money(bank_balance)},
            recoverable=True,
        )


class GameDisabledError(LedgerError):
    """Raised when the requested game is disabled."""

    def __init__(self, game_kind: str):
        super().__init__(
            code=ErrorCode.GAME_DISABLED,
            message=f"Game is disabled: {game_kind}",
            details={"gameKind": game_kind},
            recoverable=True,
        )


class DailyBonusAlreadyClaimedError(LedgerError):
    """Raised when the daily bonus was already played today."""

    def __init__(self, spin_date: str, next_available_at: str):
        super().__init__(
            code=ErrorCode.DAILY_BONUS_ALREADY_CLAIMED,
            message="Daily bonus already claimed today",
            details={"spinDate": spin_date, "nextAvailableAt": next_available_at},
            recoverable=True,
        )


class JackpotNotFoundError(LedgerError):
    """Raised when a jackpot is not found."""

    def __init__(self, jackpot_id: str):
        super().__init__(
            code=ErrorCode.JACKPOT_NOT_FOUND,
            message=f"Jackpot not found: {jackpot_id}",
            details={"jackpotId": jackpot_id},
            recoverable=False,
        )


class PendingTransferNotFoundError(LedgerError):
    """Raised when a pending transfer is not found."""

    def __init__(self, transfer_id: str):
        super().__init__(
            code=ErrorCode.PENDING_TRANSFER_NOT_FOUND,
            message=f"Pending transfer not found: {transfer_id}",
            details={"transferId": transfer_id},
            recoverable=False,
        )


class TransferNotOwnedError(LedgerError):
    """Raised when someone other than the sender cancels a transfer."""

    def __init__(self, transfer_id: str):
        super().__init__(
            code=ErrorCode.FORBIDDEN,
            message="Only the sender can cancel this transfer",
            details={"transferId": transfer_id},
            recoverable=False,
        )
