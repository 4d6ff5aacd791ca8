"""Tests for LedgerService.

Tests for the pending -> posted | rejected lifecycle, balance integrity,
history paging and reconciliation.
"""

import asyncio
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st
from sqlalchemy.pool import NullPool

from rewards.models.ledger import (
    TransactionKind,
    TransactionStatus,
    balance_sign,
)
from rewards.services.accounts import AccountDirectory
from rewards.services.ledger import LedgerService
from rewards.utils.db import build_session_factory, create_engine, init_db, run_in_unit_of_work
from rewards.utils.errors import (
    InsufficientFundsError,
    NotPendingError,
    TransactionNotFoundError,
    UnknownTransactionKindError,
    ValidationError,
)

from conftest import make_test_settings


async def create_pending(session_factory, account_id, kind, amount, description=None):
    async def work(session):
        tx = await LedgerService(session).create_pending_transaction(
            account_id, kind, amount, description
        )
        return tx.id

    return await run_in_unit_of_work(work, session_factory)


async def post(session_factory, transaction_id):
    async def work(session):
        return await LedgerService(session).post_transaction(transaction_id)

    return await run_in_unit_of_work(work, session_factory)


async def reject(session_factory, transaction_id, reason=None):
    async def work(session):
        return await LedgerService(session).reject_transaction(transaction_id, reason)

    return await run_in_unit_of_work(work, session_factory)


class TestKindClassification:
    def test_every_kind_is_classified(self):
        for kind in TransactionKind:
            assert balance_sign(kind) in (1, -1)

    def test_debit_kinds(self):
        assert balance_sign(TransactionKind.WAGER_BET) == -1
        assert balance_sign(TransactionKind.PEER_TRANSFER_SENT) == -1
        assert balance_sign(TransactionKind.ALLOTMENT_DEPOSIT) == -1

    def test_unknown_kind(self):
        with pytest.raises(UnknownTransactionKindError):
            balance_sign("lottery")


class TestPosting:
    @pytest.mark.asyncio
    async def test_debit_on_empty_account_fails(self, session_factory, register, account_of, balance_of):
        """Balance 0, debit 50 -> InsufficientFunds, balance still 0."""
        principal_id = await register("empty@example.com")
        account_id = await account_of(principal_id)
        tx_id = await create_pending(
            session_factory, account_id, TransactionKind.STORE_PURCHASE, 50
        )

        with pytest.raises(InsufficientFundsError) as exc_info:
            await post(session_factory, tx_id)

        assert exc_info.value.details == {"required": "50.00", "available": "0.00"}
        assert await balance_of(principal_id) == Decimal("0")

        async with session_factory() as session:
            tx = await LedgerService(session).lock_transaction(tx_id)
            assert tx.status == TransactionStatus.PENDING

    @pytest.mark.asyncio
    async def test_credit_then_debit(self, session_factory, register, account_of, balance_of):
        principal_id = await register("flow@example.com", balance=100)
        account_id = await account_of(principal_id)

        tx_id = await create_pending(
            session_factory, account_id, TransactionKind.STORE_PURCHASE, "30.25"
        )
        assert await balance_of(principal_id) == Decimal("100")

        posted = await post(session_factory, tx_id)

        assert posted.status == TransactionStatus.POSTED
        assert posted.posted_at is not None
        assert await balance_of(principal_id) == Decimal("69.75")

    @pytest.mark.asyncio
    async def test_posting_twice_fails(self, session_factory, register, account_of, balance_of):
        principal_id = await register("twice@example.com")
        account_id = await account_of(principal_id)
        tx_id = await create_pending(session_factory, account_id, TransactionKind.AWARD, 10)
        await post(session_factory, tx_id)

        with pytest.raises(NotPendingError):
            await post(session_factory, tx_id)

        assert await balance_of(principal_id) == Decimal("10")

    @pytest.mark.asyncio
    async def test_reject_has_no_balance_effect(self, session_factory, register, account_of, balance_of):
        principal_id = await register("reject@example.com", balance=20)
        account_id = await account_of(principal_id)
        tx_id = await create_pending(
            session_factory, account_id, TransactionKind.PEER_TRANSFER_SENT, 5
        )

        rejected = await reject(session_factory, tx_id, "changed my mind")

        assert rejected.status == TransactionStatus.REJECTED
        assert rejected.reject_reason == "changed my mind"
        assert await balance_of(principal_id) == Decimal("20")

        with pytest.raises(NotPendingError):
            await post(session_factory, tx_id)
        with pytest.raises(NotPendingError):
            await reject(session_factory, tx_id)

    @pytest.mark.asyncio
    async def test_unknown_transaction(self, session_factory):
        with pytest.raises(TransactionNotFoundError):
            await post(session_factory, "00000000-0000-0000-0000-000000000000")

    @pytest.mark.asyncio
    async def test_amount_must_be_positive(self, session_factory, register, account_of):
        account_id = await account_of(await register("zero@example.com"))

        with pytest.raises(ValidationError):
            await create_pending(session_factory, account_id, TransactionKind.AWARD, 0)
        with pytest.raises(ValidationError):
            await create_pending(session_factory, account_id, TransactionKind.AWARD, "-3")

    @pytest.mark.asyncio
    async def test_unknown_kind_is_rejected_at_creation(self, session_factory, register, account_of):
        account_id = await account_of(await register("kind@example.com"))

        with pytest.raises(ValidationError):
            await create_pending(session_factory, account_id, "lottery", 1)


class TestBalanceAndHistory:
    @pytest.mark.asyncio
    async def test_pending_sum_is_signed(self, session_factory, register, account_of):
        principal_id = await register("pending@example.com", balance=100)
        account_id = await account_of(principal_id)
        await create_pending(session_factory, account_id, TransactionKind.AWARD, 15)
        await create_pending(session_factory, account_id, TransactionKind.PEER_TRANSFER_SENT, 40)

        async with session_factory() as session:
            summary = await LedgerService(session).get_account_balance(
                account_id, include_pending=True
            )

        assert summary.posted == Decimal("100")
        assert summary.pending == Decimal("-25")
        assert summary.total == Decimal("75")

    @pytest.mark.asyncio
    async def test_history_filters_and_pages(self, session_factory, register, account_of):
        principal_id = await register("history@example.com", balance=50)
        account_id = await account_of(principal_id)
        for _ in range(3):
            await create_pending(session_factory, account_id, TransactionKind.AWARD, 1)

        async with session_factory() as session:
            ledger = LedgerService(session)
            page = await ledger.get_transaction_history(account_id, limit=2)
            pending = await ledger.get_transaction_history(
                account_id, status=TransactionStatus.PENDING
            )
            adjustments = await ledger.get_transaction_history(
                account_id, kind="adjustment"
            )
            pending_rows = await ledger.get_pending_transactions(account_id)

        assert page.total == 4
        assert len(page.transactions) == 2
        assert page.limit == 2
        assert pending.total == 3
        assert adjustments.total == 1
        assert len(pending_rows) == 3

    @pytest.mark.asyncio
    async def test_reconcile_consistent(self, session_factory, register, account_of):
        principal_id = await register("reconcile@example.com", balance=80)
        account_id = await account_of(principal_id)
        tx_id = await create_pending(
            session_factory, account_id, TransactionKind.STORE_PURCHASE, 30
        )
        await post(session_factory, tx_id)
        await create_pending(session_factory, account_id, TransactionKind.AWARD, 999)

        async with session_factory() as session:
            report = await LedgerService(session).reconcile_account(account_id)

        assert report.cached_balance == Decimal("50")
        assert report.computed_balance == Decimal("50")
        assert report.posted_count == 2
        assert report.is_consistent


# =============================================================================
# Property Tests: Balance Invariant
# =============================================================================

operations = st.lists(
    st.tuples(
        st.sampled_from(list(TransactionKind)),
        st.integers(min_value=1, max_value=500),
        st.sampled_from(["post", "reject", "leave"]),
    ),
    max_size=12,
)


async def _apply_operations(db_path, ops) -> None:
    engine = create_engine(make_test_settings(db_path), poolclass=NullPool)
    try:
        await init_db(engine)
        factory = build_session_factory(engine)

        async def setup(session):
            principal = await AccountDirectory(session).register("prop@example.com", "prop")
            account = await AccountDirectory(session).get_account(principal.id)
            return account.id

        account_id = await run_in_unit_of_work(setup, factory)
        expected = Decimal("0")

        for kind, amount, action in ops:
            tx_id = await create_pending(factory, account_id, kind, amount)
            if action == "post":
                try:
                    await post(factory, tx_id)
                    expected += amount * balance_sign(kind)
                except InsufficientFundsError:
                    assert expected - amount < 0
            elif action == "reject":
                await reject(factory, tx_id)

        async with factory() as session:
            report = await LedgerService(session).reconcile_account(account_id)

        assert report.is_consistent
        assert report.cached_balance == expected
        assert report.cached_balance >= 0
    finally:
        await engine.dispose()


class TestBalanceInvariantProperties:
    @settings(
        max_examples=15,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(ops=operations)
    def test_posted_balance_equals_posted_sum(self, tmp_path_factory, ops):
        """Property: cached balance always equals the signed sum of posted rows."""
        db_path = tmp_path_factory.mktemp("ledger") / "prop.db"
        asyncio.run(_apply_operations(db_path, ops))
