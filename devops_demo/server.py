"""HTTP server lifecycle: bind, serve, drain on signal, stop."""
from __future__ import annotations

import asyncio
import contextlib
import signal
import socket
from enum import Enum
from typing import Any, Callable, Iterator, Protocol

import structlog
import uvicorn

from devops_demo.config import Settings, get_settings
from devops_demo.exceptions import LifecycleError
from devops_demo.main import create_app
from devops_demo.observability.logging import configure_logging


TERMINATION_SIGNALS = (signal.SIGTERM, signal.SIGINT)

logger = structlog.get_logger("lifecycle")


class ServerState(str, Enum):
    STARTING = "starting"
    LISTENING = "listening"
    DRAINING = "draining"
    STOPPED = "stopped"


_TRANSITIONS: dict[ServerState, set[ServerState]] = {
    ServerState.STARTING: {ServerState.LISTENING, ServerState.DRAINING, ServerState.STOPPED},
    ServerState.LISTENING: {ServerState.DRAINING, ServerState.STOPPED},
    ServerState.DRAINING: {ServerState.STOPPED},
    ServerState.STOPPED: set(),
}


SignalHandler = Callable[[signal.Signals], None]


class SignalSource(Protocol):
    def subscribe(self, handler: SignalHandler) -> None: ...

    def close(self) -> None: ...


class LoopSignalSource:
    """Delivers process termination signals through the running event loop."""

    def __init__(self, signals: tuple[signal.Signals, ...] = TERMINATION_SIGNALS) -> None:
        self._signals = signals
        self._loop: asyncio.AbstractEventLoop | None = None
        self._previous: dict[signal.Signals, Any] = {}

    def subscribe(self, handler: SignalHandler) -> None:
        self._loop = asyncio.get_running_loop()
        for sig in self._signals:
            try:
                self._loop.add_signal_handler(sig, handler, sig)
            except NotImplementedError:
                # Windows event loops have no add_signal_handler.
                loop = self._loop
                self._previous[sig] = signal.signal(
                    sig, lambda signum, _frame: loop.call_soon_threadsafe(handler, signal.Signals(signum))
                )

    def close(self) -> None:
        if self._loop is None:
            return
        for sig in self._signals:
            if sig in self._previous:
                signal.signal(sig, self._previous.pop(sig))
            else:
                self._loop.remove_signal_handler(sig)
        self._loop = None


class _LifecycleServer(uvicorn.Server):
    def __init__(self, config: uvicorn.Config, on_listening: Callable[[_LifecycleServer], None]) -> None:
        super().__init__(config)
        self._on_listening = on_listening

    @contextlib.contextmanager
    def capture_signals(self) -> Iterator[None]:
        # Signals are routed through ServerLifecycle's SignalSource instead.
        yield

    async def startup(self, sockets: list[socket.socket] | None = None) -> None:
        await super().startup(sockets=sockets)
        if self.started:
            self._on_listening(self)

    def bound_address(self) -> tuple[str, int] | None:
        for server in getattr(self, "servers", []):
            for sock in server.sockets:
                host, port = sock.getsockname()[:2]
                return str(host), int(port)
        return None


class ServerLifecycle:
    """Runs the ASGI app under uvicorn as an explicit state machine.

    STARTING -> LISTENING once the socket is bound, LISTENING -> DRAINING on
    the first termination signal, DRAINING -> STOPPED when every connection
    has closed or the drain timeout has elapsed.
    """

    def __init__(self, app: Any, settings: Settings, signal_source: SignalSource | None = None) -> None:
        self.settings = settings
        self.state = ServerState.STARTING
        self.history: list[ServerState] = [ServerState.STARTING]
        self.bound_port: int | None = None
        self._signal_source = signal_source if signal_source is not None else LoopSignalSource()

        config = uvicorn.Config(
            app,
            host=settings.host,
            port=settings.port,
            log_config=None,
            access_log=False,
            timeout_graceful_shutdown=settings.shutdown_timeout_seconds,
        )
        self._server = _LifecycleServer(config, on_listening=self._handle_listening)

    def _transition(self, target: ServerState) -> None:
        if target not in _TRANSITIONS[self.state]:
            raise LifecycleError(f"Illegal server state transition {self.state.value} -> {target.value}")
        logger.info("server_state_changed", previous=self.state.value, state=target.value)
        self.state = target
        self.history.append(target)

    def _handle_listening(self, server: _LifecycleServer) -> None:
        if self.state is not ServerState.STARTING:
            return
        self._transition(ServerState.LISTENING)

        address = server.bound_address()
        host, port = address if address is not None else (self.settings.host, self.settings.port)
        self.bound_port = port
        base_url = f"http://localhost:{port}"
        logger.info(
            "server_listening",
            host=host,
            port=port,
            metrics_url=f"{base_url}/metrics",
            health_url=f"{base_url}/health",
            readiness_url=f"{base_url}/ready",
        )

    def request_shutdown(self, sig: signal.Signals) -> None:
        """Begin draining; repeated signals while draining are ignored."""

        if self.state in (ServerState.DRAINING, ServerState.STOPPED):
            logger.info("shutdown_already_in_progress", signal=sig.name)
            return

        logger.info("shutdown_signal_received", signal=sig.name)
        self._transition(ServerState.DRAINING)
        self._server.should_exit = True

    async def serve(self) -> int:
        """Serve until shut down; return the process exit code."""

        startup_failed = False
        self._signal_source.subscribe(self.request_shutdown)
        try:
            await self._server.serve()
        except SystemExit as exc:
            # uvicorn exits the process itself when the socket cannot be bound.
            logger.error("server_startup_failed", host=self.settings.host, port=self.settings.port, code=exc.code)
            startup_failed = True
        finally:
            self._signal_source.close()

        graceful = self.state is ServerState.DRAINING and not startup_failed
        self._transition(ServerState.STOPPED)
        if graceful:
            logger.info("server_stopped")
            return 0

        logger.error("server_stopped_unexpectedly")
        return 1


def main() -> None:
    settings = get_settings()
    configure_logging(settings.log_level, service="devops-demo", version=settings.app_version)

    lifecycle = ServerLifecycle(create_app(settings), settings)
    raise SystemExit(asyncio.run(lifecycle.serve()))
