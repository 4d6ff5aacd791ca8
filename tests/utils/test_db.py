"""Tests for serializable units of work."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, OperationalError

from rewards.models.account import Principal
from rewards.services.accounts import AccountDirectory
from rewards.utils import db
from rewards.utils.db import is_serialization_failure, run_in_unit_of_work

from conftest import make_test_settings


class FakeDriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None):
        super().__init__(message)
        self.sqlstate = sqlstate


def driver_error(message: str, sqlstate: str | None = None) -> OperationalError:
    return OperationalError("UPDATE accounts ...", {}, FakeDriverError(message, sqlstate))


async def count_principals(session_factory) -> int:
    async with session_factory() as session:
        return await session.scalar(select(func.count()).select_from(Principal))


class TestIsSerializationFailure:
    def test_postgres_serialization_failure(self):
        assert is_serialization_failure(driver_error("could not serialize access", "40001"))

    def test_postgres_deadlock(self):
        assert is_serialization_failure(driver_error("deadlock detected", "40P01"))

    def test_sqlite_locked(self):
        assert is_serialization_failure(driver_error("database is locked"))

    def test_other_errors(self):
        assert not is_serialization_failure(driver_error("disk I/O error"))
        assert not is_serialization_failure(
            IntegrityError("INSERT ...", {}, FakeDriverError("UNIQUE constraint failed", "23505"))
        )
        assert not is_serialization_failure(ValueError("database is locked"))


class TestRunInUnitOfWork:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, session_factory):
        async def work(session):
            principal = await AccountDirectory(session).register("commit@example.com", "commit")
            return principal.id

        principal_id = await run_in_unit_of_work(work, session_factory)

        assert principal_id
        assert await count_principals(session_factory) == 1

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, session_factory):
        async def work(session):
            await AccountDirectory(session).register("rollback@example.com", "rollback")
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            await run_in_unit_of_work(work, session_factory)

        assert await count_principals(session_factory) == 0

    @pytest.mark.asyncio
    async def test_retries_serialization_failures(self, session_factory):
        calls = []

        async def work(session):
            calls.append(1)
            await AccountDirectory(session).register(f"retry{len(calls)}@example.com", "retry")
            if len(calls) < 3:
                raise driver_error("could not serialize access", "40001")
            return len(calls)

        assert await run_in_unit_of_work(work, session_factory) == 3
        # Only the successful attempt is committed
        assert await count_principals(session_factory) == 1

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self, session_factory):
        calls = []

        async def work(session):
            calls.append(1)
            raise driver_error("database is locked")

        with pytest.raises(OperationalError):
            await run_in_unit_of_work(work, session_factory, attempts=2)

        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self, session_factory):
        calls = []

        async def work(session):
            calls.append(1)
            raise driver_error("disk I/O error")

        with pytest.raises(OperationalError):
            await run_in_unit_of_work(work, session_factory)

        assert len(calls) == 1


class TestProcessWideEngine:
    @pytest.mark.asyncio
    async def test_init_use_and_close(self, tmp_path, monkeypatch):
        monkeypatch.setattr(db, "get_settings", lambda: make_test_settings(tmp_path / "global.db"))

        await db.init_db()
        try:
            factory = db.get_session_factory()
            assert db.get_session_factory() is factory

            async def work(session):
                principal = await AccountDirectory(session).register("global@example.com", "global")
                return principal.id

            assert await run_in_unit_of_work(work) is not None
            assert await count_principals(factory) == 1
        finally:
            await db.close_db()

        assert db._engine is None
        assert db._session_factory is None


class TestSqliteLocking:
    @pytest.mark.asyncio
    async def test_reads_do_not_block_each_other(self, session_factory, register):
        await register("reader@example.com")

        async with session_factory() as first:
            await first.execute(select(Principal))
            # A second read while the first transaction is still open
            assert await count_principals(session_factory) == 1

    @pytest.mark.asyncio
    async def test_read_runs_while_unit_of_work_holds_write_lock(self, session_factory):
        seen = []

        async def work(session):
            await AccountDirectory(session).register("writer@example.com", "writer")
            await session.flush()
            seen.append(await count_principals(session_factory))

        await run_in_unit_of_work(work, session_factory)

        # The reader saw the state before the commit
        assert seen == [0]
        assert await count_principals(session_factory) == 1

    @pytest.mark.asyncio
    async def test_unit_of_work_starts_beside_open_read(self, session_factory, register):
        await register("beside@example.com")

        async def work(session):
            return await session.scalar(select(func.count()).select_from(Principal))

        async with session_factory() as reader:
            await reader.execute(select(Principal))
            assert await run_in_unit_of_work(work, session_factory) == 1
