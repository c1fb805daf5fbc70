# src/signoff/store/db.py
"""Database session creation, migrations, and helpers."""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import lru_cache
from pathlib import Path
from typing import Any

from alembic import command as alembic_command  # type: ignore[attr-defined]
from alembic.config import Config
from sqlalchemy import BigInteger, bindparam
from sqlalchemy import text as sa_text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.sql import func, select

from signoff.config import config
from signoff.core.logs import EventType, Priority, get_event_logger, log_message

event_logger = get_event_logger()

# Stable advisory lock id for schema setup (truncated to signed 63 bits).
_RAW_SCHEMA_LOCK_ID = 0x5369676E6F66665F534348454D41
SCHEMA_LOCK_ID = int(_RAW_SCHEMA_LOCK_ID & 0x7FFF_FFFF_FFFF_FFFF)


@lru_cache(maxsize=1)
def get_engine() -> AsyncEngine:
    """Return the process-wide async engine, created on first use."""
    return create_async_engine(config.database.postgres_url, pool_pre_ping=True)


@lru_cache(maxsize=1)
def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=get_engine(), class_=AsyncSession, expire_on_commit=False)


async def _maybe_await(value: Any) -> Any:
    """Return awaited ``value`` if it is awaitable."""

    if inspect.isawaitable(value):
        return await value
    return value


@asynccontextmanager
async def get_pg() -> AsyncIterator[AsyncSession]:
    """Return a SQLAlchemy asynchronous session.

    Uncommitted work is rolled back when the block exits.
    """

    start_time = time.time()
    try:
        async with get_sessionmaker()() as session:
            yield session
            event_logger.debug(
                "PostgreSQL session completed",
                event_type=EventType.DATABASE_OPERATION,
                operation="session_complete",
                total_duration=time.time() - start_time,
            )
    except SQLAlchemyError as exc:
        event_logger.log_error_handling_start(
            error_type=type(exc).__name__,
            error_msg=str(exc),
            context="PostgreSQL session",
            operation="session",
            duration=time.time() - start_time,
        )
        raise


@asynccontextmanager
async def advisory_lock(session: AsyncSession, lock_id: int) -> AsyncIterator[None]:
    """Acquire a session-level PostgreSQL advisory lock.

    Uses explicit bigint casts to avoid psycopg/SQLAlchemy binding as NUMERIC.
    """

    stmt_lock = select(func.pg_advisory_lock(bindparam("id", type_=BigInteger))).params(
        id=int(lock_id)
    )
    await session.execute(stmt_lock)
    event_logger.debug(
        f"Acquired advisory lock: {lock_id}",
        event_type=EventType.DATABASE_OPERATION,
        lock_id=lock_id,
    )
    try:
        yield
    finally:
        stmt_unlock = select(
            func.pg_advisory_unlock(bindparam("id", type_=BigInteger))
        ).params(id=int(lock_id))
        await session.execute(stmt_unlock)
        event_logger.debug(
            f"Released advisory lock: {lock_id}",
            event_type=EventType.DATABASE_OPERATION,
            lock_id=lock_id,
        )


def _alembic_config() -> Config:
    root = Path(__file__).resolve().parents[3]
    cfg = Config(str(root / "alembic.ini"))
    cfg.set_main_option("script_location", str(root / "migrations"))
    return cfg


async def ensure_schema() -> None:
    """Apply Alembic migrations once, serialized with an advisory lock.

    Several processes may start at the same time (reloaders, replicas); the
    lock makes the upgrade run exactly once.
    """
    start_time = time.time()
    event_logger.info(
        "Starting database schema initialization",
        event_type=EventType.DATABASE_OPERATION,
        priority=Priority.HIGH,
        operation="schema_ensure",
    )

    async with get_pg() as session:
        async with advisory_lock(session, SCHEMA_LOCK_ID):
            result = await session.execute(
                sa_text("SELECT to_regclass('public.alembic_version')")
            )
            alembic_present = await _maybe_await(result.scalar())
            if alembic_present is None:
                log_message("Alembic version table not found, upgrading from empty")

            # Alembic drives its own synchronous engine
            await asyncio.to_thread(
                alembic_command.upgrade, _alembic_config(), "head"
            )

    event_logger.info(
        f"Schema initialization completed in {time.time() - start_time:.2f}s",
        event_type=EventType.DATABASE_OPERATION,
        priority=Priority.HIGH,
        operation="schema_ensure",
    )


__all__ = [
    "get_engine",
    "get_sessionmaker",
    "get_pg",
    "advisory_lock",
    "ensure_schema",
    "_maybe_await",
    "SCHEMA_LOCK_ID",
]
