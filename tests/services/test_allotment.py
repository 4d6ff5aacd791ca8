"""Tests for AllotmentService."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from rewards.models.allotment import PeriodType
from rewards.models.ledger import TransactionKind, TransactionStatus
from rewards.services.allotment import AllotmentService, period_bounds
from rewards.services.notifications import NotificationEvent
from rewards.utils.errors import (
    AccountNotFoundError,
    InsufficientAllotmentError,
    InsufficientFundsError,
    ValidationError,
)


@pytest.fixture
def allotments(session_factory, notifier):
    return AllotmentService(session_factory, notifier=notifier)


class TestPeriodBounds:
    def test_monthly(self):
        start, end = period_bounds(PeriodType.MONTHLY, datetime(2026, 2, 14, 9, tzinfo=timezone.utc))

        assert start == datetime(2026, 2, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 2, 28, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_quarterly(self):
        start, end = period_bounds(PeriodType.QUARTERLY, datetime(2026, 5, 3, tzinfo=timezone.utc))

        assert start == datetime(2026, 4, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 6, 30, 23, 59, 59, 999999, tzinfo=timezone.utc)

    def test_year_rollover(self):
        start, end = period_bounds(PeriodType.QUARTERLY, datetime(2026, 12, 31, 23, tzinfo=timezone.utc))

        assert start == datetime(2026, 10, 1, tzinfo=timezone.utc)
        assert end.date() == datetime(2026, 12, 31).date()

        start, end = period_bounds(PeriodType.MONTHLY, datetime(2026, 12, 5, tzinfo=timezone.utc))
        assert end == datetime(2026, 12, 31, 23, 59, 59, 999999, tzinfo=timezone.utc)


class TestAwards:
    @pytest.mark.asyncio
    async def test_fresh_allotment_uses_default_budget(self, allotments, register):
        manager = await register("manager@example.com", is_manager=True)

        summary = await allotments.get_current_allotment(manager)

        assert summary.amount == Decimal("1000")
        assert summary.used == Decimal("0")
        assert summary.remaining == Decimal("1000")
        assert summary.period_type == PeriodType.MONTHLY

    @pytest.mark.asyncio
    async def test_award_posts_and_consumes_budget(self, allotments, notifier, register, balance_of):
        manager = await register("boss@example.com", is_manager=True)
        employee = await register("employee@example.com")

        result = await allotments.award_coins(manager, "Employee@Example.com", 150, "Great job")

        assert result.recipient_id == employee
        assert result.remaining == Decimal("850")
        assert result.transaction.kind == TransactionKind.AWARD
        assert result.transaction.status == TransactionStatus.POSTED
        assert result.transaction.source_principal_id == manager
        assert result.transaction.target_principal_id == employee
        assert await balance_of(employee) == Decimal("150")

        summary = await allotments.get_current_allotment(manager)
        assert summary.used == Decimal("150")

        notifier.dispatch.assert_awaited_once()
        assert notifier.dispatch.await_args.args[0] == NotificationEvent.COINS_AWARDED

    @pytest.mark.asyncio
    async def test_award_over_remaining_fails(self, allotments, notifier, register, balance_of):
        """Budget 1000 with 400 used; awarding 700 fails and creates nothing."""
        manager = await register("lead@example.com", is_manager=True)
        employee = await register("dev@example.com")
        await allotments.award_coins(manager, "dev@example.com", 400)
        notifier.dispatch.reset_mock()

        with pytest.raises(InsufficientAllotmentError) as exc_info:
            await allotments.award_coins(manager, "dev@example.com", 700)

        assert exc_info.value.details == {"requested": "700.00", "remaining": "600.00"}
        assert await balance_of(employee) == Decimal("400")
        history = await allotments.get_award_history(manager)
        assert history.total == 1
        notifier.dispatch.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_recipient(self, allotments, register):
        manager = await register("nobody-manager@example.com", is_manager=True)

        with pytest.raises(AccountNotFoundError):
            await allotments.award_coins(manager, "ghost@example.com", 10)

    @pytest.mark.asyncio
    async def test_award_must_be_positive(self, allotments, register):
        manager = await register("positive@example.com", is_manager=True)
        await register("target@example.com")

        with pytest.raises(ValidationError):
            await allotments.award_coins(manager, "target@example.com", 0)

    @pytest.mark.asyncio
    async def test_award_history(self, allotments, register):
        manager = await register("historian@example.com", is_manager=True)
        await register("r1@example.com")
        await register("r2@example.com")
        await allotments.award_coins(manager, "r1@example.com", 10)
        await allotments.award_coins(manager, "r2@example.com", 20)

        page = await allotments.get_award_history(manager, limit=1)

        assert page.total == 2
        assert len(page.awards) == 1
        assert page.limit == 1


class TestBudget:
    @pytest.mark.asyncio
    async def test_set_recurring_budget(self, allotments, register):
        manager = await register("budget@example.com", is_manager=True)

        summary = await allotments.set_recurring_budget(manager, 250)

        assert summary.amount == Decimal("250")
        assert (await allotments.get_current_allotment(manager)).amount == Decimal("250")

    @pytest.mark.asyncio
    async def test_budgets_are_per_period_type(self, allotments, register):
        manager = await register("quarters@example.com", is_manager=True)

        await allotments.set_recurring_budget(manager, 3000, PeriodType.QUARTERLY)

        assert (await allotments.get_current_allotment(manager, "quarterly")).amount == Decimal("3000")
        assert (await allotments.get_current_allotment(manager)).amount == Decimal("1000")

    @pytest.mark.asyncio
    async def test_negative_budget_rejected(self, allotments, register):
        manager = await register("negative@example.com", is_manager=True)

        with pytest.raises(ValidationError):
            await allotments.set_recurring_budget(manager, -1)

    @pytest.mark.asyncio
    async def test_deposit_moves_wallet_into_budget(self, allotments, register, balance_of):
        manager = await register("depositor@example.com", balance=300, is_manager=True)

        summary = await allotments.deposit_allotment(manager, 120)

        assert summary.amount == Decimal("1120")
        assert await balance_of(manager) == Decimal("180")

    @pytest.mark.asyncio
    async def test_deposit_needs_wallet_funds(self, allotments, register, balance_of):
        manager = await register("poor-manager@example.com", balance=50, is_manager=True)

        with pytest.raises(InsufficientFundsError):
            await allotments.deposit_allotment(manager, 120)

        assert await balance_of(manager) == Decimal("50")
        assert (await allotments.get_current_allotment(manager)).amount == Decimal("1000")

    @pytest.mark.asyncio
    async def test_deposit_history(self, allotments, register):
        manager = await register("history-depositor@example.com", balance=300, is_manager=True)
        other = await register("other-depositor@example.com", balance=300, is_manager=True)
        await allotments.deposit_allotment(manager, 50, "Q1 top-up")
        await allotments.deposit_allotment(manager, 70)
        await allotments.deposit_allotment(other, 10)
        await allotments.award_coins(manager, "other-depositor@example.com", 5)

        page = await allotments.get_deposit_history(manager)

        assert page.total == 2
        assert {d.amount for d in page.deposits} == {Decimal("50"), Decimal("70")}
        assert {d.description for d in page.deposits} == {"Q1 top-up", "Allotment deposit"}
        assert all(d.kind == TransactionKind.ALLOTMENT_DEPOSIT for d in page.deposits)
        assert all(d.status == TransactionStatus.POSTED for d in page.deposits)

        second = await allotments.get_deposit_history(manager, limit=1, offset=1)
        assert len(second.deposits) == 1
        assert second.total == 2
        assert (await allotments.get_deposit_history(other)).total == 1
