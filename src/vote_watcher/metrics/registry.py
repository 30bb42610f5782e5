"""
Metric registry using prometheus_client.

Provides the vote watcher's metrics.
Exposes metrics in Prometheus text format via the /metrics endpoint.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    generate_latest,
)

from vote_watcher.chain import ValidatorAddress

from .state import LatestVoteState


@dataclass(frozen=True, slots=True)
class WatcherMetrics:
    """
    Metrics for one watcher instance.

    Each instance owns a dedicated registry. This keeps default Python process
    metrics out of the output and lets tests build independent instances.
    """

    registry: CollectorRegistry
    """Registry holding every metric below."""

    latest_block_vote: Gauge
    """Latest block height voted on by the monitored validator."""

    blocks_processed: Counter
    """New block events handled."""

    blocks_missed: Counter
    """New blocks whose commit does not contain the monitored validator."""

    unknown_events: Counter
    """Events discarded because their type is not recognized."""

    @classmethod
    def create(cls, state: LatestVoteState, validator: ValidatorAddress) -> WatcherMetrics:
        """
        Build the metrics for a validator, reading the vote gauge from `state`.

        The gauge is evaluated on every scrape. Before the first vote is
        recorded the gauge reports NaN.

        Args:
            state: Shared latest-vote state; only read here.
            validator: Address used as the gauge's `validator` label.
        """
        registry = CollectorRegistry()

        # -----------------------------------------------------------------
        # Validator Votes
        # -----------------------------------------------------------------

        latest_block_vote = Gauge(
            "gaia_validator_latest_block_vote",
            "Height of the latest block that was voted on by the validator",
            labelnames=("validator",),
            registry=registry,
        )

        def read_height() -> float:
            height = state.read()
            return math.nan if height is None else float(height)

        latest_block_vote.labels(validator=validator).set_function(read_height)

        # -----------------------------------------------------------------
        # Event Processing
        # -----------------------------------------------------------------

        blocks_processed = Counter(
            "vote_watcher_blocks_processed_total",
            "Total new block events processed",
            registry=registry,
        )

        blocks_missed = Counter(
            "vote_watcher_blocks_missed_total",
            "New blocks without a precommit from the validator",
            registry=registry,
        )

        unknown_events = Counter(
            "vote_watcher_unknown_events_total",
            "Events of an unrecognized type that were discarded",
            registry=registry,
        )

        return cls(
            registry=registry,
            latest_block_vote=latest_block_vote,
            blocks_processed=blocks_processed,
            blocks_missed=blocks_missed,
            unknown_events=unknown_events,
        )

    def generate(self) -> bytes:
        """
        Generate Prometheus metrics output.

        Returns:
            Prometheus text format output as bytes.
        """
        return generate_latest(self.registry)
