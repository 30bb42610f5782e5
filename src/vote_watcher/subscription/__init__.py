"""
Node Subscription Module.

Connects to the node's RPC websocket and turns its push notifications into
chain events.

Components
----------
NodeSubscription
    Implements ChainEventSource over a websocket connection.
    Doubles as the cancellation handle through close().

SubscriptionState
    Lifecycle states of a subscription.
"""

from .client import (
    DEFAULT_WEBSOCKET_ENDPOINT,
    NEW_BLOCK_QUERY,
    NodeSubscription,
    SubscriptionError,
    build_websocket_url,
)
from .states import SubscriptionState

__all__ = [
    "DEFAULT_WEBSOCKET_ENDPOINT",
    "NEW_BLOCK_QUERY",
    "NodeSubscription",
    "SubscriptionError",
    "SubscriptionState",
    "build_websocket_url",
]
