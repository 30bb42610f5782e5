"""
API server for the metrics and health endpoints.

Provides HTTP endpoints for:
- /metrics - Prometheus metrics endpoint
- /health - Health check endpoint
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from aiohttp import web

from vote_watcher.metrics import WatcherMetrics

from .endpoints import health, metrics
from .endpoints.health import WatcherStatus

logger = logging.getLogger(__name__)

DEFAULT_LISTEN_ADDRESS = "localhost:8080"
"""Default host:port for the metrics listener."""


@dataclass(frozen=True, slots=True)
class ApiServerConfig:
    """Configuration for the API server."""

    host: str = "localhost"
    """Host address to bind to."""

    port: int = 8080
    """Port to listen on. Zero picks a free port."""

    @classmethod
    def from_address(cls, address: str) -> ApiServerConfig:
        """
        Parse a `host:port` listen address.

        An empty host (":8080") binds all interfaces. IPv6 hosts are written
        in brackets ("[::1]:8080").

        Raises:
            ValueError: If the address has no port or the port is not a number.
        """
        host, sep, port = address.rpartition(":")
        if not sep or not port.isdigit():
            raise ValueError(f"Invalid listen address {address!r}, expected host:port")
        host = host.strip("[]") or "0.0.0.0"
        return cls(host=host, port=int(port))


@dataclass(slots=True)
class ApiServer:
    """
    HTTP server exposing the watcher to a metrics collector.

    Uses aiohttp to handle HTTP protocol details. Handlers only read shared
    state, so scrapes never wait on chain activity.
    """

    config: ApiServerConfig
    """Server configuration."""

    metrics: WatcherMetrics
    """Metrics rendered on /metrics."""

    status_getter: Callable[[], WatcherStatus]
    """Callable returning the current watcher status for /health."""

    _runner: web.AppRunner | None = field(default=None, init=False)
    """The aiohttp application runner."""

    _site: web.TCPSite | None = field(default=None, init=False)
    """The TCP site for the server."""

    async def start(self) -> None:
        """Start the API server in the background."""
        app = web.Application()
        app.add_routes(
            [
                web.get("/metrics", self._handle_metrics),
                web.get("/health", self._handle_health),
            ]
        )

        self._runner = web.AppRunner(app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info("Metrics server listening on %s:%s", self.config.host, self.bound_port)

    async def run(self) -> None:
        """
        Run the API server until shutdown.

        Starts the server if needed and blocks until stop() is called.
        """
        if self._runner is None:
            await self.start()

        # Keep running until stopped
        while self._runner is not None:
            await asyncio.sleep(1)

    def stop(self) -> None:
        """Request graceful shutdown."""
        if self._runner is not None:
            asyncio.create_task(self._async_stop())

    async def close(self) -> None:
        """Stop the server and wait until it is down."""
        await self._async_stop()

    async def _async_stop(self) -> None:
        """Gracefully stop the server."""
        if self._runner:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("Metrics server stopped")

    @property
    def bound_port(self) -> int | None:
        """Port actually bound, None when not running."""
        if self._runner is None:
            return None
        for address in self._runner.addresses:
            # IPv4 and IPv6 socket names both carry the port second.
            return int(address[1])
        return None

    async def _handle_metrics(self, _request: web.Request) -> web.Response:
        """Handle Prometheus metrics endpoint."""
        return metrics.render(self.metrics)

    async def _handle_health(self, _request: web.Request) -> web.Response:
        """Handle health check endpoint."""
        return health.render(self.status_getter())
