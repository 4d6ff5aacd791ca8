"""Shared fixtures.

Every test gets a fresh SQLite file database with the full schema. The
engine comes from ``rewards.utils.db.create_engine`` so units of work take
the write lock at BEGIN, the same serializable behaviour the services
rely on in production.
"""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from sqlalchemy.pool import NullPool

from rewards.config import Settings
from rewards.models.ledger import TransactionKind
from rewards.services.accounts import AccountDirectory
from rewards.services.bank import BankService
from rewards.services.jackpot import JackpotService
from rewards.services.ledger import LedgerService
from rewards.utils.db import build_session_factory, create_engine, init_db, run_in_unit_of_work


# =============================================================================
# Database Fixtures
# =============================================================================


def make_test_settings(db_path) -> Settings:
    return Settings(
        app_env="test",
        database_url=f"sqlite+aiosqlite:///{db_path}",
        notification_webhook_url=None,
    )


@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Fresh database with every table created."""
    engine = create_engine(make_test_settings(tmp_path / "rewards.db"), poolclass=NullPool)
    await init_db(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return build_session_factory(db_engine)


@pytest.fixture
def notifier():
    """Dispatcher stand-in that records calls."""
    mock = MagicMock()
    mock.dispatch = AsyncMock(return_value=True)
    return mock


# =============================================================================
# Data Helpers
# =============================================================================


@pytest.fixture
def register(session_factory):
    """Register a principal, optionally with an opening balance.

    Returns the principal id.
    """

    async def _register(
        email: str,
        balance: Decimal | int | str = 0,
        is_manager: bool = False,
        name: str | None = None,
    ) -> str:
        async def work(session):
            directory = AccountDirectory(session)
            principal = await directory.register(email, name or email.split("@")[0], is_manager)
            if Decimal(balance) > 0:
                account = await directory.get_account(principal.id)
                await LedgerService(session).record_posted(
                    account.id,
                    TransactionKind.ADJUSTMENT,
                    balance,
                    "Opening balance",
                    target_principal_id=principal.id,
                )
            return principal.id

        return await run_in_unit_of_work(work, session_factory)

    return _register


@pytest.fixture
def account_of(session_factory):
    """Account id for a principal."""

    async def _account_of(principal_id: str) -> str:
        async with session_factory() as session:
            account = await AccountDirectory(session).get_account(principal_id)
            return account.id

    return _account_of


@pytest.fixture
def balance_of(session_factory):
    """Posted balance for a principal."""

    async def _balance_of(principal_id: str) -> Decimal:
        async with session_factory() as session:
            account = await AccountDirectory(session).get_account(principal_id)
            summary = await LedgerService(session).get_account_balance(account.id)
            return summary.posted

    return _balance_of


@pytest.fixture
def fund_bank(session_factory):
    async def _fund_bank(amount: Decimal | int | str) -> Decimal:
        async def work(session):
            return await BankService(session).deposit(amount, reason="test funding")

        return await run_in_unit_of_work(work, session_factory)

    return _fund_bank


@pytest.fixture
def bank_balance(session_factory):
    async def _bank_balance() -> Decimal:
        async def work(session):
            return await BankService(session).get_balance()

        return await run_in_unit_of_work(work, session_factory)

    return _bank_balance


@pytest.fixture
def init_jackpots(session_factory):
    """Create the default jackpots; returns {type: id}."""

    async def _init_jackpots() -> dict:
        async def work(session):
            jackpots = await JackpotService(session).initialize_jackpots()
            return {j.type: j.id for j in jackpots}

        return await run_in_unit_of_work(work, session_factory)

    return _init_jackpots
