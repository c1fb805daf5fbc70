# src/signoff/web/main.py
"""ASGI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from signoff import __version__
from signoff.bootstrap import bootstrap_all, bootstrap_status, is_ready
from signoff.config import config
from signoff.core.logging import init_logging
from signoff.review import (
    FanoutPublisher,
    LoggingNotificationPublisher,
    ReviewOrchestrator,
)
from signoff.store import SqlReviewStore
from signoff.web.routes import router
from signoff.web.websocket import WebSocketManager, websocket_manager


def create_app(
    orchestrator: ReviewOrchestrator | None = None,
    *,
    manager: WebSocketManager | None = None,
) -> FastAPI:
    """Build the application.

    Without an explicit ``orchestrator`` the app talks to PostgreSQL and runs
    the bootstrap (migrations) on startup.
    """
    manager = manager or websocket_manager
    run_bootstrap = orchestrator is None
    if orchestrator is None:
        orchestrator = ReviewOrchestrator(
            SqlReviewStore(),
            FanoutPublisher(LoggingNotificationPublisher(), manager),
        )

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        if run_bootstrap:
            await bootstrap_all()
        yield
        await _app.state.orchestrator.notifier.drain()

    app = FastAPI(
        title="Signoff",
        description="Review and approval workflow for marketing assets",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.orchestrator = orchestrator
    app.state.websocket_manager = manager
    app.include_router(router)

    @app.get("/health")
    async def health_check() -> dict[str, object]:
        return {
            "status": "healthy",
            "ready": is_ready() or not run_bootstrap,
            "bootstrap": bootstrap_status() if run_bootstrap else None,
        }

    return app


def run() -> None:
    """Serve the API with uvicorn on the configured port."""
    init_logging()
    uvicorn.run(create_app(), host="0.0.0.0", port=config.system.port, log_config=None)


if __name__ == "__main__":  # pragma: no cover - CLI execution
    run()
