"""Vote-related Pydantic schemas."""

from pydantic import BaseModel, Field

from threadvote.models.vote import VotableKind


class VoteCreate(BaseModel):
    """Schema for casting or retracting a vote.

    The value range is checked by the vote ledger rather than here, so an
    out-of-range value surfaces as the engine's `invalid_value` error.
    """

    target: VotableKind = Field(..., description="Kind of entity being voted on")
    target_id: int
    value: int = Field(..., description="1 for upvote, -1 for downvote, 0 to retract")


class VoteResponse(BaseModel):
    """Outcome of a vote: the refreshed score and the value now held."""

    target: VotableKind
    target_id: int
    score: int
    voter_value: int


class VoterValueResponse(BaseModel):
    """The caller's current vote on a single votable."""

    value: int = Field(..., description="-1, 0 (no vote) or 1")
