"""
Chain Event Types and Source Protocol.

This module defines the events that flow from the node subscription to the
vote watcher, plus the abstract protocol that event sources must implement.

Event Flow
----------
The node subscription (or a test mock) produces events as an async stream.
The watcher service consumes them and dispatches with pattern matching.

::

    Event Source (async iterator)
           |
    Vote Watcher Service (pattern matching dispatch)
           |
           +-- New block events   --> Vote detection
           +-- Unknown events     --> Logged and discarded
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from .containers import Block

NEW_BLOCK_EVENT_TYPE = "tendermint/event/NewBlock"
"""Type tag the node attaches to new block event payloads."""


@dataclass(frozen=True, slots=True)
class NewBlockEvent:
    """
    A block was committed by the chain.

    Fired once per block height, in height order.
    """

    block: Block
    """The committed block with the commit it carries."""


@dataclass(frozen=True, slots=True)
class UnknownEvent:
    """
    An event the watcher does not understand.

    Kept so the service can log it. Never changes watcher state.
    """

    kind: str
    """Type tag reported by the node, or a short description when absent."""

    payload: Any = field(default=None, repr=False)
    """Raw decoded JSON payload."""

    reason: str | None = field(default=None)
    """Why a known event type could not be decoded, when that is the case."""


ChainEvent = NewBlockEvent | UnknownEvent
"""Union of all chain event types for pattern matching dispatch."""


@runtime_checkable
class ChainEventSource(Protocol):
    """
    Abstract source of chain events.

    Any class that implements async iteration over ChainEvent can serve
    as a source.

    Usage
    -----
    ::

        async for event in event_source:
            await handle_event(event)

    The source controls delivery timing. When no event is ready, the consumer
    suspends inside `__anext__`.
    """

    def __aiter__(self) -> ChainEventSource:
        """Return self as async iterator."""
        ...

    async def __anext__(self) -> ChainEvent:
        """
        Yield the next chain event.

        Blocks until an event is available.

        Raises:
            StopAsyncIteration: When the subscription has been closed.
        """
        ...
