# src/signoff/bootstrap.py
"""Startup sequence for the review service.

Loads the environment, waits for PostgreSQL and applies the Alembic
migrations.  :func:`is_ready` and :func:`bootstrap_status` back the
``/health`` endpoint.
"""

from __future__ import annotations

import time
from dataclasses import asdict, dataclass, field
from typing import Any

from sqlalchemy import text as sa_text
from sqlalchemy.exc import SQLAlchemyError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from signoff.config import config
from signoff.core.env import load_env
from signoff.core.logging import get_logger
from signoff.store.db import ensure_schema, get_pg

logger = get_logger(__name__)


@dataclass
class BootstrapStatus:
    started_at: float = 0.0
    finished_at: float | None = None
    pg_ready: bool = False
    pg_migrated: bool = False
    failures: list[dict[str, Any]] = field(default_factory=list)
    error: str | None = None

    @property
    def ready(self) -> bool:
        return self.pg_migrated and self.error is None


_STATUS = BootstrapStatus()


class BootstrapError(RuntimeError):
    """The database could not be reached or migrated."""


def is_ready() -> bool:
    return _STATUS.ready


def bootstrap_status() -> dict[str, object]:
    return asdict(_STATUS)


async def _ping_postgres() -> None:
    async with get_pg() as session:
        await session.execute(sa_text("SELECT 1"))


def _record_failure(state: RetryCallState) -> None:
    exc = state.outcome.exception() if state.outcome else None
    _STATUS.failures.append({"step": "pg_wait", "attempt": state.attempt_number, "error": str(exc)})
    logger.warning("bootstrap.pg.retry", extra={"attempt": state.attempt_number})


async def bootstrap_all() -> None:
    """Wait for PostgreSQL and migrate it; raises :class:`BootstrapError` on failure."""
    global _STATUS
    if is_ready():
        return

    _STATUS = BootstrapStatus(started_at=time.time())
    load_env()

    attempts = config.database.connect_attempts
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=0.5, max=config.database.connect_wait_max),
            retry=retry_if_exception_type((SQLAlchemyError, OSError)),
            before_sleep=_record_failure,
            reraise=True,
        ):
            with attempt:
                await _ping_postgres()
    except (SQLAlchemyError, OSError) as exc:
        _STATUS.error = f"PostgreSQL unavailable after {attempts} attempts: {exc}"
        raise BootstrapError(_STATUS.error) from exc
    _STATUS.pg_ready = True
    logger.info("bootstrap.pg.ready")

    try:
        await ensure_schema()
    except SQLAlchemyError as exc:
        _STATUS.error = f"Migration failed: {exc}"
        raise BootstrapError(_STATUS.error) from exc
    _STATUS.pg_migrated = True
    _STATUS.finished_at = time.time()
    logger.info("bootstrap.ready", extra={"status": bootstrap_status()})


__all__ = ["BootstrapError", "BootstrapStatus", "bootstrap_all", "bootstrap_status", "is_ready"]
