"""
Chain data model, event types and vote detection.

Everything in this package is free of I/O.
"""

from .codec import EventDecodeError, decode_block, decode_event
from .containers import Block, Commit, PrecommitSlot, ValidatorAddress
from .detector import detect_vote
from .events import (
    NEW_BLOCK_EVENT_TYPE,
    ChainEvent,
    ChainEventSource,
    NewBlockEvent,
    UnknownEvent,
)

__all__ = [
    "NEW_BLOCK_EVENT_TYPE",
    "Block",
    "ChainEvent",
    "ChainEventSource",
    "Commit",
    "EventDecodeError",
    "NewBlockEvent",
    "PrecommitSlot",
    "UnknownEvent",
    "ValidatorAddress",
    "decode_block",
    "decode_event",
    "detect_vote",
]
