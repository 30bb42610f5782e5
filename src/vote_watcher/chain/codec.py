"""
Decoding of node event payloads into chain events.

The node pushes JSON-RPC notifications whose `result` looks like::

    {
        "query": "tm.event = 'NewBlock'",
        "data": {
            "type": "tendermint/event/NewBlock",
            "value": {"block": {"header": {...}, "last_commit": {...}}}
        }
    }


COMMIT ENCODINGS
----------------
Two commit layouts are in circulation.

Legacy nodes send `last_commit.precommits`: one entry per validator, either
null or a full vote object that carries its own height::

    {"precommits": [null, {"validator_address": "AB..", "height": "99", ...}]}

Current nodes send `last_commit.signatures` with a `block_id_flag` per entry
and a single commit-level height::

    {"height": "99", "signatures": [{"block_id_flag": 1, "validator_address": ""},
                                    {"block_id_flag": 2, "validator_address": "AB.."}]}

Flag 2 is a signature for the committed block. Flag 1 (absent) and flag 3
(a vote for nil) become absent slots, matching the legacy layout where only
votes for the committed block are kept.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from vote_watcher.types import RpcModel

from .containers import Block, Commit, PrecommitSlot
from .events import NEW_BLOCK_EVENT_TYPE, ChainEvent, NewBlockEvent, UnknownEvent

BLOCK_ID_FLAG_COMMIT = 2
"""Signature flag for a precommit on the committed block."""


class EventDecodeError(Exception):
    """Raised when a new block payload does not match the block schema."""


class _RpcVote(RpcModel):
    """Legacy precommit vote."""

    validator_address: str
    height: int


class _RpcCommitSig(RpcModel):
    """Current commit signature entry."""

    block_id_flag: int
    validator_address: str = ""


class _RpcCommit(RpcModel):
    height: int | None = None
    precommits: list[_RpcVote | None] | None = None
    signatures: list[_RpcCommitSig] | None = None


class _RpcHeader(RpcModel):
    height: int


class _RpcBlock(RpcModel):
    header: _RpcHeader
    last_commit: _RpcCommit | None = None


def _to_commit(raw: _RpcCommit | None) -> Commit:
    """Flatten either commit layout into ordered precommit slots."""
    if raw is None:
        return Commit()

    if raw.precommits is not None:
        return Commit(
            slots=tuple(
                None
                if vote is None
                else PrecommitSlot(validator_address=vote.validator_address, height=vote.height)
                for vote in raw.precommits
            )
        )

    if raw.signatures is not None:
        if raw.height is None:
            raise EventDecodeError("Commit signatures present without a commit height")
        height = raw.height
        return Commit(
            slots=tuple(
                PrecommitSlot(validator_address=sig.validator_address, height=height)
                if sig.block_id_flag == BLOCK_ID_FLAG_COMMIT
                else None
                for sig in raw.signatures
            )
        )

    return Commit()


def decode_block(payload: Any) -> Block:
    """
    Decode a block JSON object.

    Raises:
        EventDecodeError: If the payload does not match the block schema.
    """
    try:
        raw = _RpcBlock.model_validate(payload)
    except ValidationError as e:
        raise EventDecodeError(f"Invalid block payload: {e}") from e
    return Block(height=raw.header.height, last_commit=_to_commit(raw.last_commit))


def decode_event(result: Any) -> ChainEvent:
    """
    Decode the `result` of a subscription notification.

    Anything other than a new block is returned as an UnknownEvent, as is a
    new block whose payload cannot be decoded.
    """
    data = result.get("data") if isinstance(result, dict) else None
    if not isinstance(data, dict):
        return UnknownEvent(kind="<no data>", payload=result)

    kind = data.get("type")
    if kind != NEW_BLOCK_EVENT_TYPE:
        return UnknownEvent(kind=str(kind), payload=data)

    value = data.get("value")
    block_payload = value.get("block") if isinstance(value, dict) else None
    try:
        return NewBlockEvent(block=decode_block(block_payload))
    except EventDecodeError as e:
        return UnknownEvent(kind=kind, payload=data, reason=str(e))
