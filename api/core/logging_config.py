"""
Process-wide logging setup.

Modules log through `logging.getLogger(__name__)` with event-style messages
(`expense_created id=%s`). This module only wires the root handler once.
"""

from __future__ import annotations

import logging
import time

from fastapi import Request
from starlette.responses import Response

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

access_logger = logging.getLogger("expense_api.access")


def setup_logging(level: int = logging.INFO) -> None:
    root = logging.getLogger()
    root.setLevel(level)
    if root.handlers:
        # Already configured (tests, or a host process that owns logging).
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)


async def log_requests(request: Request, call_next) -> Response:
    """
    HTTP middleware: one access line per request.
    """
    started = time.perf_counter()
    status_code = 500
    try:
        response = await call_next(request)
        status_code = response.status_code
        return response
    finally:
        access_logger.info(
            "request method=%s path=%s status=%s duration_ms=%.1f",
            request.method,
            request.url.path,
            status_code,
            (time.perf_counter() - started) * 1000,
        )
