"""
Metrics module for observability.

Holds the latest voted height and exposes it, with event processing counters,
in Prometheus text format.
"""

from .registry import WatcherMetrics
from .state import LatestVoteState

__all__ = [
    "LatestVoteState",
    "WatcherMetrics",
]
