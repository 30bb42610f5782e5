"""Test helpers for vote watcher unit tests."""

from __future__ import annotations

from .builders import (
    make_block,
    make_commit,
    make_new_block_result,
    make_notification,
    make_rpc_block,
)
from .mocks import BlockingEventSource, FakeNode, MockEventSource

TEST_VALIDATOR = "6E0D8AB8F4B54D2D6D9C1B7A1E4BA3F0E9C4D2A1"
"""Address of the monitored validator in tests."""

OTHER_VALIDATOR = "0A1B2C3D4E5F60718293A4B5C6D7E8F901234567"
"""Address of another validator in the set."""

__all__ = [
    "OTHER_VALIDATOR",
    "TEST_VALIDATOR",
    "BlockingEventSource",
    "FakeNode",
    "MockEventSource",
    "make_block",
    "make_commit",
    "make_new_block_result",
    "make_notification",
    "make_rpc_block",
]
