# src/threadvote/api/v1/endpoints/votes.py
"""Vote-related endpoints for the threadvote API."""

import logging

from fastapi import APIRouter

from threadvote.models import VotableKind
from threadvote.schemas.vote import VoteCreate, VoteResponse, VoterValueResponse
from threadvote.services.voting import VoteService

from ..dependencies import CurrentUserDep, KarmaSchedulerDep, SessionDep

router = APIRouter(prefix="/votes", tags=["votes"])
logger = logging.getLogger(__name__)


@router.post("/", response_model=VoteResponse)
async def cast_vote(
    vote_data: VoteCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    karma: KarmaSchedulerDep,
) -> VoteResponse:
    """Cast, change or retract (value 0) a vote on a post or comment.

    The vote and the refreshed score commit together. The author's karma
    follows afterwards and never fails the vote.
    """
    outcome = VoteService(db).cast_vote(
        vote_data.target,
        vote_data.target_id,
        current_user.id,
        vote_data.value,
    )
    if outcome.changed:
        karma.schedule(outcome.author_id)

    return VoteResponse(
        target=outcome.kind,
        target_id=outcome.target_id,
        score=outcome.score,
        voter_value=outcome.voter_value,
    )


@router.get("/{target}/{target_id}/my-vote", response_model=VoterValueResponse)
async def get_my_vote(
    target: VotableKind,
    target_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> VoterValueResponse:
    """Get the current user's vote on a post or comment."""
    value = VoteService(db).current_vote(target, target_id, current_user.id)
    return VoterValueResponse(value=value)
