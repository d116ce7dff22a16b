from __future__ import annotations

import asyncio
import logging
import signal
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from core import db, errors, logging_config, server, settings
from expenses import router as expenses_router
from expenses.repository import ExpenseRepository
from expenses.service import ExpenseService

logger = logging.getLogger(__name__)


def create_app(database: db.Database | None = None) -> FastAPI:
    database = database if database is not None else db.Database()
    repository = ExpenseRepository(database)

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        # A failure here aborts startup; no request is served without a table.
        try:
            await database.connect()
            await repository.initialize()
        except Exception:
            logger.exception("database_startup_failed")
            await database.close()
            raise
        logger.info("database_ready")
        try:
            yield
        finally:
            await database.close()

    app = FastAPI(title="Expense Tracker API", lifespan=lifespan)
    app.state.expense_service = ExpenseService(repository)

    errors.register_exception_handlers(app)
    app.middleware("http")(logging_config.log_requests)

    origins = settings.cors_allow_origins()
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(expenses_router.router, tags=["expenses"])

    @app.get("/healthCheck")
    def health_check() -> str:
        return "OK"

    return app


app = create_app()


def install_stop_signals(loop: asyncio.AbstractEventLoop, stop_event: asyncio.Event) -> None:
    """
    Route SIGINT and SIGTERM onto the supervisor's stop event.
    """
    for signum in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(signum, stop_event.set)


async def serve() -> int:
    port = settings.informational_port()
    if port is not None and port != str(settings.SERVER_PORT):
        logger.info("port_env_ignored PORT=%s listening_port=%s", port, settings.SERVER_PORT)

    config = uvicorn.Config(
        app,
        host=settings.host(),
        port=settings.SERVER_PORT,
        lifespan="on",
        access_log=False,
        log_config=None,
    )
    supervisor = server.Supervisor(
        server.HTTPServer(config),
        shutdown_timeout=settings.shutdown_timeout(),
    )

    stop_event = asyncio.Event()
    install_stop_signals(asyncio.get_running_loop(), stop_event)

    logger.info("server_starting host=%s port=%s", settings.host(), settings.SERVER_PORT)
    return await supervisor.run(stop_event)


def run() -> int:
    logging_config.setup_logging(settings.log_level())
    return asyncio.run(serve())


if __name__ == "__main__":
    sys.exit(run())
