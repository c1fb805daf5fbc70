# scripts/init_db.py
"""Wait for PostgreSQL and apply the review schema migrations."""

from __future__ import annotations

from signoff.bootstrap import bootstrap_all, bootstrap_status
from signoff.core.logging import get_logger, init_logging

logger = get_logger(__name__)


async def init_db() -> None:
    """Apply Alembic migrations."""
    logger.info("Applying Alembic migrations to initialize the database")
    try:
        await bootstrap_all()
        logger.info("Alembic migrations applied successfully")
    except Exception as e:
        logger.exception("Failed to apply Alembic migrations: %s", e)
        logger.info("Bootstrap status: %s", bootstrap_status())
        raise


if __name__ == "__main__":  # pragma: no cover - CLI execution
    import asyncio

    init_logging()
    asyncio.run(init_db())
