"""Shared types for metrics server tests."""

from dataclasses import dataclass

from vote_watcher.metrics import LatestVoteState
from vote_watcher.subscription import SubscriptionState


@dataclass
class ServedWatcher:
    """A running metrics server and the state it reads."""

    url: str
    """Base URL of the server."""

    state: LatestVoteState
    """Latest-vote state behind the gauge."""

    subscription: list[SubscriptionState]
    """Single-item holder for the reported subscription state."""
