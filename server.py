"""HTTP listener lifecycle: bind, serve, graceful shutdown."""

import asyncio
import contextlib
import socket
from collections.abc import Mapping
from typing import Literal

import httpx
import uvicorn

from app import create_app
from core.exceptions import ExporterError, ListenerBindError, ShutdownTimeoutError
from core.protocols import MetricsLogger
from core.readiness import ReadySignal
from services.aggregator import MetricsAggregator
from services.fetcher import FETCH_TIMEOUT, MetricsFetcher

SHUTDOWN_GRACE_PERIOD = 5.0  # seconds

ExporterState = Literal["stopped", "listening", "draining"]


class _Server(uvicorn.Server):
    """uvicorn server that leaves signal handling to whoever owns the stop event."""

    def install_signal_handlers(self) -> None:
        pass

    @contextlib.contextmanager
    def capture_signals(self):
        yield


class MetricExporter:
    """Serve ``GET /metrics`` until told to stop, then drain in-flight requests.

    ``ready`` closes exactly once, after the listener has fully stopped,
    whether shutdown was clean, forced, or start-up failed.
    """

    def __init__(
        self,
        upstreams: Mapping[str, str],
        host: str,
        port: int,
        logger: MetricsLogger,
        *,
        fetch_timeout: float = FETCH_TIMEOUT,
        grace_period: float = SHUTDOWN_GRACE_PERIOD,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._upstreams = upstreams
        self._host = host
        self._port = port
        self._logger = logger
        self._fetch_timeout = fetch_timeout
        self._grace_period = grace_period
        self._transport = transport
        self._server: _Server | None = None
        self._bound_port: int | None = None
        self.state: ExporterState = "stopped"
        self.ready = ReadySignal()

    @property
    def port(self) -> int | None:
        """Port actually bound (useful when configured with port 0)."""
        return self._bound_port

    @property
    def started(self) -> bool:
        """True once the listener accepts connections."""
        return self._server is not None and self._server.started

    async def run(self, stop: asyncio.Event) -> None:
        """Serve until ``stop`` is set, then shut down within the grace period.

        Raises:
            ListenerBindError: if the listen address cannot be bound.
        """
        if self.ready.is_closed or self.state != "stopped":
            raise ExporterError("MetricExporter can only be run once")

        client = httpx.AsyncClient(
            timeout=self._fetch_timeout,
            limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            transport=self._transport,
        )
        sock: socket.socket | None = None
        try:
            try:
                sock = self._bind()
            except ListenerBindError as e:
                self._logger.error(str(e), host=e.host, port=e.port)
                raise

            fetcher = MetricsFetcher(client, self._logger, timeout=self._fetch_timeout)
            aggregator = MetricsAggregator(self._upstreams, fetcher, self._logger)
            config = uvicorn.Config(create_app(aggregator), log_level="warning")
            self._server = _Server(config)

            serve_task = asyncio.create_task(self._server.serve(sockets=[sock]))
            self.state = "listening"
            self._logger.info(
                "Start to export metrics...",
                host=self._host,
                port=self._bound_port,
                upstreams=len(aggregator.upstreams),
            )

            stop_task = asyncio.create_task(stop.wait())
            await asyncio.wait({serve_task, stop_task}, return_when=asyncio.FIRST_COMPLETED)
            stop_task.cancel()

            self.state = "draining"
            try:
                await self._drain(serve_task)
            except ShutdownTimeoutError as e:
                self._logger.error(f"HTTP server shutdown error: {e}")
            else:
                self._logger.info("Metric exporter shut down gracefully.")
        finally:
            await client.aclose()
            if sock is not None:
                sock.close()
            self.state = "stopped"
            self.ready.close()

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self._host else socket.AF_INET
        sock = socket.socket(family=family, type=socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind((self._host, self._port))
        except OSError as e:
            sock.close()
            raise ListenerBindError(
                f"Error starting HTTP server: {e}", self._host, self._port
            ) from e
        sock.set_inheritable(True)
        self._bound_port = sock.getsockname()[1]
        return sock

    async def _drain(self, serve_task: asyncio.Task) -> None:
        """Stop accepting and wait for in-flight requests, up to the grace period."""
        self._server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(serve_task), timeout=self._grace_period)
        except TimeoutError:
            self._server.force_exit = True
            for connection in list(self._server.server_state.connections):
                connection.transport.close()
            for task in list(self._server.server_state.tasks):
                task.cancel()
            serve_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await serve_task
            raise ShutdownTimeoutError(self._grace_period) from None
        finally:
            # uvicorn skips its own shutdown when told to exit mid start-up
            for server in self._server.servers:
                server.close()
