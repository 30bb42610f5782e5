"""Pytest configuration for metrics server tests."""

import asyncio
import threading
import time
from typing import Generator

import httpx
import pytest

from tests.api.helpers import ServedWatcher
from tests.vote_watcher.helpers import TEST_VALIDATOR
from vote_watcher.api import ApiServer, ApiServerConfig, WatcherStatus
from vote_watcher.metrics import LatestVoteState, WatcherMetrics
from vote_watcher.subscription import SubscriptionState


class _ServerThread(threading.Thread):
    """Thread that runs the API server in its own event loop."""

    def __init__(self, state: LatestVoteState, subscription: list[SubscriptionState]):
        super().__init__(daemon=True)
        self.state = state
        self.subscription = subscription
        self.server: ApiServer | None = None
        self.loop: asyncio.AbstractEventLoop | None = None
        self.ready = threading.Event()
        self.error: Exception | None = None

    def run(self) -> None:
        """Run the server in a new event loop."""
        try:
            self.loop = asyncio.new_event_loop()
            asyncio.set_event_loop(self.loop)

            self.server = self._create_server()
            self.loop.run_until_complete(self.server.start())
            self.ready.set()

            self.loop.run_forever()

        except Exception as e:
            self.error = e
            self.ready.set()
        finally:
            if self.loop:
                self.loop.close()

    def _create_server(self) -> ApiServer:
        """Create the API server on a free port."""
        metrics = WatcherMetrics.create(self.state, TEST_VALIDATOR)

        def current_status() -> WatcherStatus:
            return WatcherStatus(
                subscription=self.subscription[0],
                latest_voted_height=self.state.read(),
            )

        config = ApiServerConfig(host="127.0.0.1", port=0)
        return ApiServer(config=config, metrics=metrics, status_getter=current_status)

    def stop(self) -> None:
        """Stop the server and event loop."""
        if self.server and self.loop:
            self.loop.call_soon_threadsafe(self.server.stop)
            self.loop.call_soon_threadsafe(self.loop.stop)


def _wait_for_server(url: str, timeout: float = 5.0) -> bool:
    """Wait for server to be ready by polling the health endpoint."""
    start = time.time()
    while time.time() - start < timeout:
        try:
            response = httpx.get(f"{url}/health", timeout=1.0)
            if response.status_code == 200:
                return True
        except (httpx.ConnectError, httpx.ReadTimeout):
            pass
        time.sleep(0.1)
    return False


@pytest.fixture(scope="module")
def served() -> Generator[ServedWatcher, None, None]:
    """Start a local metrics server for the test module."""
    state = LatestVoteState()
    subscription = [SubscriptionState.SUBSCRIBED]

    server_thread = _ServerThread(state, subscription)
    server_thread.start()
    server_thread.ready.wait(timeout=10.0)

    if server_thread.error or server_thread.server is None:
        pytest.fail(f"Failed to start local server: {server_thread.error}")

    url = f"http://127.0.0.1:{server_thread.server.bound_port}"

    if not _wait_for_server(url):
        server_thread.stop()
        pytest.fail("Local server failed to become ready")

    yield ServedWatcher(url=url, state=state, subscription=subscription)

    server_thread.stop()


@pytest.fixture
def server_url(served: ServedWatcher) -> str:
    """Base URL of the local metrics server."""
    return served.url
