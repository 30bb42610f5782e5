"""Health endpoint handler."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Final

from aiohttp import web

from vote_watcher.subscription import SubscriptionState

STATUS_HEALTHY: Final = "healthy"
"""Status reported while the node subscription is active."""

STATUS_DEGRADED: Final = "degraded"
"""Status reported when the node subscription is not active."""

SERVICE_NAME: Final = "vote-watcher"
"""Fixed service identifier returned by the health endpoint."""


@dataclass(frozen=True, slots=True)
class WatcherStatus:
    """Point-in-time view of the watcher used by the health endpoint."""

    subscription: SubscriptionState
    """State of the node subscription."""

    latest_voted_height: int | None
    """Latest voted height, None while unknown."""


def render(status: WatcherStatus) -> web.Response:
    """
    Build the health check response.

    Response: JSON object with fields:
        - status (string): "healthy" while subscribed, "degraded" otherwise.
        - service (string): Fixed identifier "vote-watcher".
        - subscription (string): Subscription state name.
        - latest_voted_height (int or null): Latest voted height.

    Status Codes:
        200 OK: Server is running, whatever the subscription state.
    """
    body = {
        "status": STATUS_HEALTHY if status.subscription.is_active else STATUS_DEGRADED,
        "service": SERVICE_NAME,
        "subscription": status.subscription.name,
        "latest_voted_height": status.latest_voted_height,
    }
    return web.Response(body=json.dumps(body), content_type="application/json")
