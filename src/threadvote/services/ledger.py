"""Vote set mutation and score derivation.

A vote set maps voter id to ``+1`` or ``-1``; there is never a stored zero.
The cached score of a votable is always a full re-sum of its vote set.
"""
from __future__ import annotations

from collections.abc import Mapping

from threadvote.core.errors import InvalidValue

VALID_VOTE_VALUES = frozenset({-1, 0, 1})


def validate_vote_value(value: object) -> int:
    """Return ``value`` as a vote value or raise InvalidValue."""
    # bool is an int subclass; True must not count as an upvote.
    if isinstance(value, bool) or not isinstance(value, int) or value not in VALID_VOTE_VALUES:
        raise InvalidValue(f"Invalid vote value: {value!r}")
    return value


class VoteLedger:
    """Applies cast and retract operations to a vote set."""

    @staticmethod
    def cast_vote(votes: Mapping[int, int], voter_id: int, value: int) -> dict[int, int]:
        """Return the vote set after ``voter_id`` casts ``value``.

        Args:
            votes: Current vote set; left untouched.
            voter_id: The voter, already authenticated by the caller.
            value: ``1`` or ``-1`` to set the vote, ``0`` to retract it.

        Returns:
            A new vote set. Casting the value already held, or retracting a
            vote that does not exist, returns an equal set.

        Raises:
            InvalidValue: If ``value`` is not one of -1, 0, 1.
        """
        value = validate_vote_value(value)
        updated = dict(votes)
        if value == 0:
            updated.pop(voter_id, None)
        else:
            updated[voter_id] = value
        return updated


class AggregateCounter:
    """Derives the displayed score of a votable from its vote set."""

    @staticmethod
    def recompute(votes: Mapping[int, int]) -> int:
        """Return the sum of all vote values."""
        return sum(votes.values())
