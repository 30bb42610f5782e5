"""
Block and commit containers as seen by the vote watcher.

Only the parts of a block that matter for vote detection are kept: the block
height and the commit it carries. Everything else in the node's payload is
dropped during decoding.

Commit Layout
-------------
A commit holds one slot per validator of the active set, in validator-set
order::

    Commit
      +-- slot 0: PrecommitSlot(validator_address="A1...", height=99)
      +-- slot 1: None                    (validator did not sign)
      +-- slot 2: PrecommitSlot(validator_address="C3...", height=99)

An absent slot is a hole, not an error.
"""

from __future__ import annotations

from dataclasses import dataclass, field

ValidatorAddress = str
"""Canonical validator address as printed by the node (uppercase hex)."""


@dataclass(frozen=True, slots=True)
class PrecommitSlot:
    """A precommit signature present in a commit."""

    validator_address: ValidatorAddress
    """Address of the validator that signed."""

    height: int
    """Height the validator signed."""


@dataclass(frozen=True, slots=True)
class Commit:
    """
    The aggregate set of precommit slots that finalizes a block.

    Slots are kept in the order the node delivered them.
    """

    slots: tuple[PrecommitSlot | None, ...] = field(default=())
    """One entry per validator in the active set; None marks an absent signature."""

    def __len__(self) -> int:
        """Number of slots, present or absent."""
        return len(self.slots)

    @property
    def signed(self) -> int:
        """Number of present slots."""
        return sum(1 for slot in self.slots if slot is not None)


@dataclass(frozen=True, slots=True)
class Block:
    """
    A committed block.

    The commit attached to block `h` finalizes block `h - 1`, so the heights
    recorded in its slots trail the block height by one.
    """

    height: int
    """Height of this block."""

    last_commit: Commit = field(default_factory=Commit)
    """Commit for the previous block, carried in this block."""
