"""
API server module for the watcher's HTTP endpoints.

Provides HTTP endpoints for:
- /metrics - Prometheus metrics, including the latest voted height
- /health - Health check with the subscription state
"""

from .endpoints.health import WatcherStatus
from .server import DEFAULT_LISTEN_ADDRESS, ApiServer, ApiServerConfig

__all__ = [
    "DEFAULT_LISTEN_ADDRESS",
    "ApiServer",
    "ApiServerConfig",
    "WatcherStatus",
]
