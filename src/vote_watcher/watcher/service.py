"""
Vote watcher service that turns block events into the latest voted height.

The Problem
-----------
The node pushes one event per committed block. Each block carries the commit
of its predecessor: one precommit slot per validator. Operators want to know
the last height at which their validator signed, so that a stalled value
reveals missed votes.

The watcher service:

1. Consumes events from an abstract source (async iterator)
2. Runs vote detection on every new block
3. Records the signed height when the validator is found
4. Runs until stopped or the source is exhausted

It does not:

- Reorder or buffer events (delivery order is trusted)
- Guard against a lower height overwriting a higher one
- Backfill blocks missed while disconnected
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from vote_watcher.chain import (
    Block,
    ChainEvent,
    ChainEventSource,
    NewBlockEvent,
    UnknownEvent,
    ValidatorAddress,
    detect_vote,
)
from vote_watcher.metrics import LatestVoteState, WatcherMetrics

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class VoteWatcherService:
    """
    Routes chain events to vote detection and records the result.

    The only writer of the latest-vote state.
    """

    validator: ValidatorAddress
    """Address of the monitored validator."""

    event_source: ChainEventSource
    """Source of chain events (node subscription or test mock)."""

    state: LatestVoteState
    """Latest voted height, written on every detected vote."""

    metrics: WatcherMetrics | None = field(default=None)
    """Optional counters for processed, missed and unknown events."""

    _running: bool = field(default=False, repr=False)
    """Whether the event loop is running."""

    _events_processed: int = field(default=0, repr=False)
    """Counter for processed events (for monitoring)."""

    async def run(self) -> None:
        """
        Main event loop - handle events until stopped.

        The loop exits when:
        - stop() is called
        - The event source raises StopAsyncIteration

        Errors raised by the source propagate to the caller.
        """
        self._running = True

        try:
            async for event in self.event_source:
                if not self._running:
                    break

                self._handle_event(event)
                self._events_processed += 1

        finally:
            self._running = False

        logger.info("Event stream ended after %d events", self._events_processed)

    def _handle_event(self, event: ChainEvent) -> None:
        """
        Dispatch one event.

        Args:
            event: Chain event to handle.
        """
        match event:
            case NewBlockEvent(block=block):
                self._check_for_vote(block)

            case UnknownEvent(kind=kind, payload=payload, reason=reason):
                # Not an error: the subscription query should filter these out,
                # but a node may still push other notifications.
                if reason is None:
                    logger.warning("Unknown message received: %s", kind)
                else:
                    logger.warning("Undecodable message received: %s (%s)", kind, reason)
                logger.debug("Unknown message payload: %r", payload)
                if self.metrics is not None:
                    self.metrics.unknown_events.inc()

    def _check_for_vote(self, block: Block) -> None:
        """Run vote detection on a block and record a hit."""
        if self.metrics is not None:
            self.metrics.blocks_processed.inc()

        height = detect_vote(block.last_commit, self.validator)
        if height is None:
            # The state keeps its last value; a flat gauge is the signal.
            logger.info(
                "Validator %s has no precommit in block %d (%d/%d signed)",
                self.validator,
                block.height,
                block.last_commit.signed,
                len(block.last_commit),
            )
            if self.metrics is not None:
                self.metrics.blocks_missed.inc()
            return

        logger.info("Validator has voted at height %d", height)
        self.state.record(height)

    def stop(self) -> None:
        """
        Signal the event loop to stop.

        The run() loop exits on the next delivered event. Closing the event
        source ends it immediately.
        """
        self._running = False

    @property
    def is_running(self) -> bool:
        """Check if the event loop is currently running."""
        return self._running

    @property
    def events_processed(self) -> int:
        """Total events processed since creation."""
        return self._events_processed
