"""
HTTP server supervision.

The supervisor runs uvicorn as a background task and walks a small state
machine:

    starting -> serving -> draining -> stopped

`run()` takes a cancellation token (an `asyncio.Event`). Setting it moves
the server into draining: no new connections are accepted and in-flight
requests get at most `shutdown_timeout` seconds before they are abandoned.
OS signals are not handled here; the entrypoint maps them onto the token.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from typing import Iterator, Protocol

import uvicorn

logger = logging.getLogger(__name__)

STARTUP_POLL_INTERVAL = 0.05


class ServerState(str, enum.Enum):
    STARTING = "starting"
    SERVING = "serving"
    DRAINING = "draining"
    STOPPED = "stopped"


_TRANSITIONS: dict[ServerState, frozenset[ServerState]] = {
    ServerState.STARTING: frozenset({ServerState.SERVING, ServerState.DRAINING, ServerState.STOPPED}),
    ServerState.SERVING: frozenset({ServerState.DRAINING, ServerState.STOPPED}),
    ServerState.DRAINING: frozenset({ServerState.STOPPED}),
    ServerState.STOPPED: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    pass


class ServesHTTP(Protocol):
    started: bool
    should_exit: bool
    force_exit: bool

    async def serve(self) -> None: ...


class HTTPServer(uvicorn.Server):
    """
    uvicorn server that leaves signal handling to the caller.
    """

    def install_signal_handlers(self) -> None:
        # uvicorn < 0.29
        return None

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        # uvicorn >= 0.29
        yield


class Supervisor:
    def __init__(self, server: ServesHTTP, *, shutdown_timeout: float = 10.0) -> None:
        self._server = server
        self._shutdown_timeout = shutdown_timeout
        self._state = ServerState.STARTING
        self.history: list[ServerState] = [ServerState.STARTING]

    @property
    def state(self) -> ServerState:
        return self._state

    def _transition(self, new_state: ServerState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise InvalidTransitionError(f"cannot move from {self._state.value} to {new_state.value}")
        logger.info("server_state from=%s to=%s", self._state.value, new_state.value)
        self._state = new_state
        self.history.append(new_state)

    async def _wait_started(self, serve_task: asyncio.Task) -> None:
        while not self._server.started and not serve_task.done():
            await asyncio.sleep(STARTUP_POLL_INTERVAL)

    async def run(self, stop_event: asyncio.Event) -> int:
        """
        Serve until `stop_event` is set, then drain. Returns a process exit code.
        """
        if self._state is not ServerState.STARTING:
            raise InvalidTransitionError(f"cannot run a supervisor in state {self._state.value}")

        serve_task = asyncio.create_task(self._server.serve(), name="http-server")
        stop_task = asyncio.create_task(stop_event.wait(), name="stop-signal")
        started_task = asyncio.create_task(self._wait_started(serve_task), name="startup-probe")
        try:
            await asyncio.wait({serve_task, stop_task, started_task}, return_when=asyncio.FIRST_COMPLETED)
            if serve_task.done():
                return self._finished_on_its_own(serve_task)

            if self._server.started and not stop_task.done():
                self._transition(ServerState.SERVING)
                await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
                if serve_task.done():
                    return self._finished_on_its_own(serve_task)

            return await self._drain(serve_task)
        finally:
            for task in (stop_task, started_task):
                task.cancel()

    def _finished_on_its_own(self, serve_task: asyncio.Task) -> int:
        exit_code = 0
        if serve_task.cancelled():
            logger.error("server_task_cancelled")
            exit_code = 1
        elif serve_task.exception() is not None:
            logger.error("server_crashed", exc_info=serve_task.exception())
            exit_code = 1
        elif self._state is ServerState.STARTING:
            # uvicorn returns without raising when the lifespan startup fails.
            logger.error("server_startup_failed")
            exit_code = 1
        self._transition(ServerState.STOPPED)
        return exit_code

    async def _drain(self, serve_task: asyncio.Task) -> int:
        self._transition(ServerState.DRAINING)
        logger.info("server_draining timeout_s=%s", self._shutdown_timeout)
        self._server.should_exit = True

        exit_code = 0
        try:
            await asyncio.wait_for(asyncio.shield(serve_task), timeout=self._shutdown_timeout)
        except asyncio.TimeoutError:
            logger.warning("server_drain_timeout timeout_s=%s abandoning in-flight requests", self._shutdown_timeout)
            self._server.force_exit = True
            serve_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await serve_task
        except Exception:
            logger.exception("server_shutdown_failed")
            exit_code = 1

        self._transition(ServerState.STOPPED)
        logger.info("server_stopped")
        return exit_code
