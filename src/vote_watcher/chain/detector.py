"""Precommit vote detection."""

from __future__ import annotations

from .containers import Commit, ValidatorAddress


def detect_vote(commit: Commit, target: ValidatorAddress) -> int | None:
    """
    Find the height the target validator signed in a commit.

    Slots are scanned in their given order. Absent slots are skipped. The
    address comparison is exact: no case folding or prefix stripping.

    Args:
        commit: Commit whose slots are scanned.
        target: Address of the monitored validator.

    Returns:
        The signed height of the first matching slot, or None when the
        validator did not sign this commit.
    """
    for slot in commit.slots:
        if slot is None:
            continue
        if slot.validator_address == target:
            return slot.height
    return None
