"""Tests for outcome resolvers."""

import random
from collections import Counter
from decimal import Decimal

import pytest
from hypothesis import given, settings, strategies as st

from rewards.engine.resolvers import (
    DAILY_BONUS_PRIZES,
    WHEEL_SEGMENTS,
    Segment,
    prizes_from_config,
    resolve_binary,
    resolve_bonus,
    resolve_grid,
    resolve_range_pick,
    resolve_threshold,
    resolve_weighted_segments,
    segments_from_config,
    weighted_index,
)
from rewards.utils.errors import ValidationError


draws = st.integers(min_value=0, max_value=2**32 - 1)


class TestBinary:
    def test_even_draw_is_heads(self):
        result = resolve_binary(0, "heads")

        assert result.won is True
        assert result.outcome == {"result": "heads", "call": "heads"}
        assert result.fair_multiplier == Decimal(2)

    def test_odd_draw_is_tails(self):
        result = resolve_binary(1, "heads")

        assert result.won is False
        assert result.outcome["result"] == "tails"

    def test_invalid_call(self):
        with pytest.raises(ValidationError):
            resolve_binary(0, "edge")


class TestRangePick:
    def test_exact_match_wins(self):
        result = resolve_range_pick(2, 3)

        assert result.won is True
        assert result.outcome["result"] == 3
        assert result.fair_multiplier == Decimal(6)

    def test_custom_sides(self):
        result = resolve_range_pick(19, 20, sides=20)

        assert result.won is True
        assert result.fair_multiplier == Decimal(20)

    def test_call_out_of_range(self):
        with pytest.raises(ValidationError):
            resolve_range_pick(0, 7)

    @given(draw=draws, call=st.integers(min_value=1, max_value=6))
    def test_value_in_range(self, draw, call):
        result = resolve_range_pick(draw, call)
        assert 1 <= result.outcome["result"] <= 6
        assert result.won == (result.outcome["result"] == call)


class TestWeightedSegments:
    def test_zero_multiplier_segment_loses(self):
        result = resolve_weighted_segments(0, WHEEL_SEGMENTS)

        assert result.won is False
        assert result.fair_multiplier == Decimal(0)
        assert result.outcome["segment_index"] == 0

    def test_bucket_boundaries(self):
        # weights 10, 20, ...: draw 10 is the first value of the second bucket
        result = resolve_weighted_segments(10, WHEEL_SEGMENTS)

        assert result.outcome["segment_index"] == 1
        assert result.fair_multiplier == Decimal("0.5")
        assert result.won is True

    def test_draw_wraps_modulo_total_weight(self):
        total = sum(s.weight for s in WHEEL_SEGMENTS)

        assert resolve_weighted_segments(total, WHEEL_SEGMENTS).outcome["segment_index"] == 0

    def test_distribution_follows_weights(self):
        segments = (
            Segment(Decimal("0"), 10),
            Segment(Decimal("2"), 40),
            Segment(Decimal("5"), 80),
        )
        rng = random.Random(20240219)
        trials = 100_000
        counts = Counter(
            resolve_weighted_segments(rng.getrandbits(32), segments).outcome["segment_index"]
            for _ in range(trials)
        )

        for index, segment in enumerate(segments):
            expected = segment.weight / 130
            assert abs(counts[index] / trials - expected) < 0.01


class TestThreshold:
    def test_midpoint_loses_both_ways(self):
        # draw 49 -> value 50
        assert resolve_threshold(49, "higher").won is False
        assert resolve_threshold(49, "lower").won is False

    def test_higher_wins_above_midpoint(self):
        result = resolve_threshold(99, "higher")

        assert result.outcome["result"] == 100
        assert result.won is True
        assert result.fair_multiplier == Decimal(2)

    def test_lower_multiplier_reflects_winning_values(self):
        result = resolve_threshold(0, "lower")

        assert result.won is True
        assert result.fair_multiplier == Decimal(100) / Decimal(49)

    def test_invalid_midpoint(self):
        with pytest.raises(ValidationError):
            resolve_threshold(0, "lower", midpoint=100)


class TestGrid:
    def test_line_of_three_wins(self):
        # 30 -> cherry, 0 -> blank, 1 and 2 also blank
        result = resolve_grid([30, 30, 30, 0, 1, 2, 0, 1, 2])

        assert result.won is True
        assert result.outcome["winning_line"] == "row_1"
        assert result.outcome["symbol"] == "cherry"
        assert result.fair_multiplier == Decimal(2)

    def test_best_line_pays(self):
        # cherries on top, diamonds (95..99) on the bottom, a lemon (55) in the middle
        result = resolve_grid([30, 30, 30, 0, 55, 0, 95, 95, 95])

        assert result.outcome["winning_line"] == "row_3"
        assert result.outcome["symbol"] == "diamond"
        assert result.fair_multiplier == Decimal(25)

    def test_blank_line_does_not_win(self):
        result = resolve_grid([0] * 9)

        assert result.won is False
        assert result.outcome["winning_line"] is None
        assert result.fair_multiplier == Decimal(0)

    def test_grid_shape(self):
        result = resolve_grid([0, 30, 55, 75, 87, 95, 1, 31, 56])

        assert result.outcome["grid"] == [
            ["blank", "cherry", "lemon"],
            ["bell", "star", "diamond"],
            ["blank", "cherry", "lemon"],
        ]

    def test_requires_nine_draws(self):
        with pytest.raises(ValidationError):
            resolve_grid([0] * 8)


class TestBonus:
    def test_always_won_with_prize(self):
        result = resolve_bonus(3)

        assert result.won is True
        assert result.fair_multiplier == Decimal(0)
        assert result.prize == DAILY_BONUS_PRIZES[3].amount
        assert result.outcome["segment_index"] == 3

    @settings(max_examples=50)
    @given(draw=draws)
    def test_prize_from_table(self, draw):
        result = resolve_bonus(draw)
        assert result.prize in {p.amount for p in DAILY_BONUS_PRIZES}


class TestConfigParsing:
    def test_defaults_when_empty(self):
        assert segments_from_config(None) == WHEEL_SEGMENTS
        assert prizes_from_config([]) == DAILY_BONUS_PRIZES

    def test_custom_segments(self):
        segments = segments_from_config(
            [{"multiplier": 0, "weight": 1}, {"multiplier": "3", "weight": 2, "label": "big"}]
        )

        assert segments[1] == Segment(Decimal("3"), 2, "big")

    def test_custom_prizes(self):
        prizes = prizes_from_config([5, {"amount": "10", "weight": 3}])

        assert [p.amount for p in prizes] == [Decimal("5"), Decimal("10")]
        assert prizes[1].weight == 3

    def test_invalid_segments(self):
        with pytest.raises(ValidationError):
            segments_from_config([{"weight": 1}])

    def test_weights_must_have_positive_total(self):
        with pytest.raises(ValidationError):
            weighted_index(0, [0, 0])
