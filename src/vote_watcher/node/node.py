"""
Vote watcher orchestrator.

Wires together the subscription, the watcher service and the metrics server,
and runs them with structured concurrency.

Two activities share the process and communicate only through the
latest-vote state::

    NodeSubscription --> VoteWatcherService --> LatestVoteState
                                                      ^
                              ApiServer (/metrics) ---+  (read on every scrape)
"""

from __future__ import annotations

import asyncio
import logging
import signal
from dataclasses import dataclass, field

from vote_watcher.api import ApiServer, ApiServerConfig, WatcherStatus
from vote_watcher.chain import ValidatorAddress
from vote_watcher.metrics import LatestVoteState, WatcherMetrics
from vote_watcher.subscription import NodeSubscription
from vote_watcher.watcher import VoteWatcherService

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Watcher:
    """
    Vote watcher orchestrator.

    Owns the latest-vote state and hands it to its single writer (the watcher
    service) and its reader (the metrics endpoint).
    """

    subscription: NodeSubscription
    """Open node subscription; closing it ends the event stream."""

    state: LatestVoteState
    """Latest voted height shared by the service and the metrics endpoint."""

    metrics: WatcherMetrics
    """Metrics published on /metrics."""

    service: VoteWatcherService
    """Service consuming the subscription."""

    api_server: ApiServer
    """HTTP server for /metrics and /health."""

    _shutdown: asyncio.Event = field(default_factory=asyncio.Event)
    """Event signaling shutdown request."""

    @classmethod
    def create(
        cls,
        subscription: NodeSubscription,
        validator: ValidatorAddress,
        api_config: ApiServerConfig,
    ) -> Watcher:
        """
        Create a fully-wired watcher around an open subscription.

        Args:
            subscription: Subscription delivering new block events.
            validator: Address of the monitored validator.
            api_config: Metrics server bind address.

        Returns:
            A Watcher ready to run.
        """
        state = LatestVoteState()
        metrics = WatcherMetrics.create(state, validator)

        service = VoteWatcherService(
            validator=validator,
            event_source=subscription,
            state=state,
            metrics=metrics,
        )

        def current_status() -> WatcherStatus:
            return WatcherStatus(
                subscription=subscription.state,
                latest_voted_height=state.read(),
            )

        api_server = ApiServer(
            config=api_config,
            metrics=metrics,
            status_getter=current_status,
        )

        return cls(
            subscription=subscription,
            state=state,
            metrics=metrics,
            service=service,
            api_server=api_server,
        )

    async def run(self, *, install_signal_handlers: bool = True) -> None:
        """
        Run the watcher until shutdown.

        Returns when shutdown is requested. Errors from the event stream
        propagate (wrapped in an ExceptionGroup by the task group). When the
        node closes the stream cleanly, the metrics server keeps serving the
        last known height until shutdown.

        Args:
            install_signal_handlers: Whether to handle SIGINT/SIGTERM.
                Disable for testing or non-main threads.
        """
        if install_signal_handlers:
            self._install_signal_handlers()

        try:
            # Bind before consuming events so a busy port fails startup.
            await self.api_server.start()

            async with asyncio.TaskGroup() as tg:
                tg.create_task(self._watch())
                tg.create_task(self.api_server.run())
                tg.create_task(self._wait_shutdown())
        finally:
            await self.subscription.close()
            await self.api_server.close()

    async def _watch(self) -> None:
        """Run the watcher service and report an unexpected end of stream."""
        await self.service.run()
        if not self._shutdown.is_set():
            logger.error(
                "Event stream ended; serving last voted height %s until shutdown",
                self.state.read(),
            )

    def _install_signal_handlers(self) -> None:
        """
        Install signal handlers for graceful shutdown.

        Handles SIGINT (Ctrl+C) and SIGTERM (process termination).

        Silently ignores errors if handlers cannot be installed.
        This happens in non-main threads or embedded contexts.
        """
        try:
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                loop.add_signal_handler(sig, self._shutdown.set)
        except (ValueError, RuntimeError):
            # Cannot add handlers outside main thread.
            pass

    async def _wait_shutdown(self) -> None:
        """
        Wait for shutdown signal then stop services.

        Closing the subscription is the cancellation path: it wakes up the
        service waiting on the next event and ends its loop.
        """
        await self._shutdown.wait()
        logger.info("Shutting down watcher")

        self.service.stop()
        await self.subscription.close()
        self.api_server.stop()

    def stop(self) -> None:
        """
        Request graceful shutdown.

        Signals the watcher to stop all services and exit.
        """
        self._shutdown.set()
