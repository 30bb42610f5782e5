"""Block event processing for the monitored validator."""

from .service import VoteWatcherService

__all__ = ["VoteWatcherService"]
