# src/threadvote/api/v1/endpoints/comments.py
"""Comment-related endpoints for the threadvote API."""

from fastapi import APIRouter, Response, status

from threadvote.schemas.comment import CommentCreate, CommentResponse, CommentUpdate
from threadvote.services.comment_service import CommentService

from ..dependencies import CurrentUserDep, KarmaSchedulerDep, SessionDep

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("/", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_data: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommentResponse:
    """Comment on a post, or reply to a comment when `parent_id` is set."""
    comment = CommentService(db).create_comment(
        author=current_user,
        post_id=comment_data.post_id,
        body=comment_data.body,
        parent_id=comment_data.parent_id,
    )
    return CommentResponse.model_validate(comment)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    comment_data: CommentUpdate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> CommentResponse:
    """Edit a comment's body; only its author may do so."""
    comment = CommentService(db).update_comment(
        comment_id=comment_id,
        actor=current_user,
        body=comment_data.body,
    )
    return CommentResponse.model_validate(comment)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    karma: KarmaSchedulerDep,
) -> Response:
    """Soft-delete a comment; its author or an admin may do so."""
    comment = CommentService(db).delete_comment(comment_id=comment_id, actor=current_user)
    karma.schedule(comment.author_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
