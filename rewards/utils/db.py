"""Database connection, session management and serializable units of work."""

import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from sqlalchemy import event
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from rewards.config import Settings, get_settings

logger = logging.getLogger(__name__)

T = TypeVar("T")

# serialization_failure, deadlock_detected
SERIALIZATION_SQLSTATES = frozenset({"40001", "40P01"})

# Ignored by dialects other than SQLite
UNIT_OF_WORK_OPTIONS = {"sqlite_immediate": True}

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def _enable_sqlite_serializable(engine: AsyncEngine) -> None:
    """Make SQLite units of work take the write lock at BEGIN.

    pysqlite defers BEGIN until the first write, which lets two units of
    work read the same balance before either writes it. Connections flagged
    with the ``sqlite_immediate`` execution option begin IMMEDIATE; plain
    reads keep a deferred BEGIN so they never queue behind a writer.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _do_begin(conn):
        if conn.get_execution_options().get("sqlite_immediate"):
            conn.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            conn.exec_driver_sql("BEGIN")


def create_engine(settings: Settings | None = None, **kwargs) -> AsyncEngine:
    """Create an async engine whose transactions run serializable.

    Args:
        settings: Settings to read the URL and pool options from
        **kwargs: Extra ``create_async_engine`` arguments (e.g. ``poolclass``)

    Returns:
        Configured AsyncEngine
    """
    settings = settings or get_settings()
    url = settings.database_url

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=settings.db_echo, **kwargs)
        _enable_sqlite_serializable(engine)
        return engine

    options = {
        "echo": settings.db_echo,
        "isolation_level": settings.db_isolation_level,
        "pool_pre_ping": True,
    }
    if "poolclass" not in kwargs:
        options["pool_size"] = settings.db_pool_size
        options["max_overflow"] = settings.db_max_overflow
    options.update(kwargs)
    return create_async_engine(url, **options)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to ``engine``."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


def get_engine() -> AsyncEngine:
    """Process-wide engine, created on first use."""
    global _engine
    if _engine is None:
        _engine = create_engine()
    return _engine


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Process-wide session factory, created on first use."""
    global _session_factory
    if _session_factory is None:
        _session_factory = build_session_factory(get_engine())
    return _session_factory


def is_serialization_failure(exc: BaseException) -> bool:
    """Whether ``exc`` is a conflict abort that is safe to retry."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in SERIALIZATION_SQLSTATES:
        return True
    return isinstance(exc, OperationalError) and "database is locked" in str(orig)


async def run_in_unit_of_work(
    work: Callable[[AsyncSession], Awaitable[T]],
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    attempts: int | None = None,
) -> T:
    """Run ``work`` inside one serializable transaction.

    The transaction commits when ``work`` returns and rolls back on any
    exception. Serialization failures and deadlocks re-run ``work`` from
    scratch on a fresh session; every other error propagates.

    Args:
        work: Coroutine function receiving the session
        session_factory: Factory to open sessions from
        attempts: Total attempts (defaults to ``db_retry_attempts``)

    Returns:
        Whatever ``work`` returns
    """
    factory = session_factory or get_session_factory()
    attempts = attempts or get_settings().db_retry_attempts

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=0.05, max=1),
        retry=retry_if_exception(is_serialization_failure),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    ):
        with attempt:
            async with factory() as session:
                async with session.begin():
                    await session.connection(execution_options=UNIT_OF_WORK_OPTIONS)
                    result = await work(session)
    return result


async def init_db(engine: AsyncEngine | None = None) -> None:
    """Create all tables."""
    from rewards.models import Base

    engine = engine or get_engine()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connection pool."""
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
    _engine = None
    _session_factory = None
