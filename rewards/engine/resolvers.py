"""Outcome resolvers.

Each resolver maps one or more 32-bit draws to a Resolution carrying the
outcome payload, whether the player won, and the *fair* multiplier
implied by the game's odds. House edge is never applied here.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from rewards.utils.errors import ValidationError


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class Resolution:
    """Result of resolving a draw."""

    outcome: dict[str, Any]
    won: bool
    fair_multiplier: Decimal
    prize: Decimal | None = None


@dataclass(frozen=True)
class Segment:
    """Wheel segment: payout multiplier and relative weight."""

    multiplier: Decimal
    weight: int
    label: str = ""


@dataclass(frozen=True)
class GridSymbol:
    """Scratch card symbol. ``multiplier`` pays for three in a line."""

    name: str
    weight: int
    multiplier: Decimal
    blank: bool = False


@dataclass(frozen=True)
class Prize:
    amount: Decimal
    weight: int = 1


# =============================================================================
# Default tables
# =============================================================================


def _segments(pairs: Sequence[tuple[str, int]]) -> tuple[Segment, ...]:
    return tuple(Segment(Decimal(m), w, f"{m}x") for m, w in pairs)


WHEEL_SEGMENTS: tuple[Segment, ...] = _segments(
    [
        ("0", 10),
        ("0.5", 20),
        ("1", 25),
        ("1.5", 15),
        ("2", 12),
        ("3", 8),
        ("5", 5),
        ("10", 3),
        ("0.5", 15),
        ("1", 12),
    ]
)

DAILY_BONUS_PRIZES: tuple[Prize, ...] = tuple(
    Prize(Decimal(p)) for p in ("0.5", "1", "1.5", "2", "3", "5", "0.25", "1", "0.5", "2")
)

SCRATCH_SYMBOLS: tuple[GridSymbol, ...] = (
    GridSymbol("blank", 30, Decimal("0"), blank=True),
    GridSymbol("cherry", 25, Decimal("2")),
    GridSymbol("lemon", 20, Decimal("3")),
    GridSymbol("bell", 12, Decimal("5")),
    GridSymbol("star", 8, Decimal("10")),
    GridSymbol("diamond", 5, Decimal("25")),
)

COIN_SIDES = ("heads", "tails")
THRESHOLD_CALLS = ("higher", "lower")
GRID_DRAWS = 9

# rows, columns, diagonals over a row-major 3x3 grid
GRID_LINES: tuple[tuple[str, tuple[int, int, int]], ...] = (
    ("row_1", (0, 1, 2)),
    ("row_2", (3, 4, 5)),
    ("row_3", (6, 7, 8)),
    ("col_1", (0, 3, 6)),
    ("col_2", (1, 4, 7)),
    ("col_3", (2, 5, 8)),
    ("diag_down", (0, 4, 8)),
    ("diag_up", (6, 4, 2)),
)


# =============================================================================
# Helpers
# =============================================================================


def weighted_index(draw: int, weights: Sequence[int]) -> int:
    """Index of the bucket containing ``draw % sum(weights)``.

    Buckets are contiguous and sized by weight, in table order.
    """
    total = sum(weights)
    if total <= 0 or any(w < 0 for w in weights):
        raise ValidationError("Weights must be non-negative with a positive total")
    point = draw % total
    cumulative = 0
    for index, weight in enumerate(weights):
        cumulative += weight
        if point < cumulative:
            return index
    raise AssertionError("unreachable: point below total weight")


def segments_from_config(raw: Any) -> tuple[Segment, ...]:
    """Parse ``[{"multiplier": .., "weight": .., "label": ..}, ...]``."""
    if not raw:
        return WHEEL_SEGMENTS
    try:
        return tuple(
            Segment(
                multiplier=Decimal(str(item["multiplier"])),
                weight=int(item["weight"]),
                label=str(item.get("label", f"{item['multiplier']}x")),
            )
            for item in raw
        )
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise ValidationError("Invalid wheel segment configuration") from e


def prizes_from_config(raw: Any) -> tuple[Prize, ...]:
    """Parse a list of amounts or ``{"amount": .., "weight": ..}`` items."""
    if not raw:
        return DAILY_BONUS_PRIZES
    prizes = []
    try:
        for item in raw:
            if isinstance(item, dict):
                prizes.append(Prize(Decimal(str(item["amount"])), int(item.get("weight", 1))))
            else:
                prizes.append(Prize(Decimal(str(item))))
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise ValidationError("Invalid bonus prize configuration") from e
    return tuple(prizes)


# =============================================================================
# Resolvers
# =============================================================================


def resolve_binary(draw: int, call: str) -> Resolution:
    """Two equiprobable sides; even draws are heads."""
    if call not in COIN_SIDES:
        raise ValidationError(f"Prediction must be one of {', '.join(COIN_SIDES)}")
    result = COIN_SIDES[draw % 2]
    return Resolution(
        outcome={"result": result, "call": call},
        won=result == call,
        fair_multiplier=Decimal(2),
    )


def resolve_range_pick(draw: int, call: int, sides: int = 6) -> Resolution:
    """Uniform value in ``1..sides``; wins on an exact match."""
    if sides < 2:
        raise ValidationError("A range pick needs at least two values")
    if not 1 <= call <= sides:
        raise ValidationError(f"Prediction must be between 1 and {sides}")
    value = draw % sides + 1
    return Resolution(
        outcome={"result": value, "call": call, "sides": sides},
        won=value == call,
        fair_multiplier=Decimal(sides),
    )


def resolve_weighted_segments(draw: int, segments: Sequence[Segment]) -> Resolution:
    """Prize wheel. A zero-multiplier segment is a loss."""
    index = weighted_index(draw, [s.weight for s in segments])
    segment = segments[index]
    return Resolution(
        outcome={
            "segment_index": index,
            "multiplier": str(segment.multiplier),
            "label": segment.label,
        },
        won=segment.multiplier > 0,
        fair_multiplier=segment.multiplier,
    )


def resolve_threshold(draw: int, call: str, midpoint: int = 50) -> Resolution:
    """Value in ``1..100`` against ``midpoint``; the midpoint itself loses.

    The fair multiplier is ``100 / winning values`` for the chosen side.
    """
    if call not in THRESHOLD_CALLS:
        raise ValidationError(f"Prediction must be one of {', '.join(THRESHOLD_CALLS)}")
    if not 1 < midpoint < 100:
        raise ValidationError("Midpoint must be between 2 and 99")

    value = draw % 100 + 1
    if call == "higher":
        won = value > midpoint
        winning_values = 100 - midpoint
    else:
        won = value < midpoint
        winning_values = midpoint - 1

    return Resolution(
        outcome={"result": value, "call": call, "midpoint": midpoint},
        won=won,
        fair_multiplier=Decimal(100) / Decimal(winning_values),
    )


def resolve_grid(
    draws: Sequence[int],
    symbols: Sequence[GridSymbol] = SCRATCH_SYMBOLS,
) -> Resolution:
    """3x3 scratch grid. The best non-blank line of three pays."""
    if len(draws) != GRID_DRAWS:
        raise ValidationError(f"A grid needs exactly {GRID_DRAWS} draws")

    weights = [s.weight for s in symbols]
    cells = [symbols[weighted_index(d, weights)] for d in draws]

    best_line: str | None = None
    best_symbol: GridSymbol | None = None
    for name, (a, b, c) in GRID_LINES:
        symbol = cells[a]
        if symbol.blank or cells[b] != symbol or cells[c] != symbol:
            continue
        if best_symbol is None or symbol.multiplier > best_symbol.multiplier:
            best_line, best_symbol = name, symbol

    names = [cell.name for cell in cells]
    multiplier = best_symbol.multiplier if best_symbol else Decimal(0)
    return Resolution(
        outcome={
            "grid": [names[0:3], names[3:6], names[6:9]],
            "winning_line": best_line,
            "symbol": best_symbol.name if best_symbol else None,
        },
        won=best_symbol is not None,
        fair_multiplier=multiplier,
    )


def resolve_bonus(draw: int, prizes: Sequence[Prize] = DAILY_BONUS_PRIZES) -> Resolution:
    """Free spin over a published prize table. Always won."""
    index = weighted_index(draw, [p.weight for p in prizes])
    prize = prizes[index]
    return Resolution(
        outcome={"segment_index": index, "prize": str(prize.amount)},
        won=True,
        fair_multiplier=Decimal(0),
        prize=prize.amount,
    )
