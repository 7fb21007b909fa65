# src/threadvote/api/v1/endpoints/users.py
"""User endpoints: public records with karma, and authored content."""

from __future__ import annotations

from fastapi import APIRouter
from sqlalchemy.orm import Session

from threadvote.core.errors import NotFound
from threadvote.models import User
from threadvote.repositories.comment_repo import CommentRepository
from threadvote.repositories.post_repo import PostRepository
from threadvote.repositories.user_repo import UserRepository
from threadvote.schemas.comment import CommentResponse
from threadvote.schemas.post import PostResponse
from threadvote.schemas.user import UserResponse
from threadvote.services.karma import KarmaAggregator

from ..dependencies import AdminUserDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


def _get_user_or_404(db: Session, username: str) -> User:
    user = UserRepository(db).get_by_username(username)
    if user is None:
        raise NotFound("User not found")
    return user


@router.get("/{username}", response_model=UserResponse)
async def get_user(username: str, db: SessionDep) -> User:
    """Return a user's public record, karma included."""
    return _get_user_or_404(db, username)


@router.get("/{username}/posts", response_model=list[PostResponse])
async def list_user_posts(username: str, db: SessionDep) -> list[PostResponse]:
    """List a user's live posts, newest first."""
    user = _get_user_or_404(db, username)
    posts = PostRepository(db).list_by_author(user.id)
    return [
        PostResponse.model_validate(post).model_copy(update={"author_username": user.username})
        for post in posts
    ]


@router.get("/{username}/comments", response_model=list[CommentResponse])
async def list_user_comments(username: str, db: SessionDep) -> list[CommentResponse]:
    """List a user's live comments, newest first."""
    user = _get_user_or_404(db, username)
    comments = CommentRepository(db).list_by_author(user.id)
    return [CommentResponse.model_validate(comment) for comment in comments]


@router.post("/{username}/karma/recompute", response_model=UserResponse)
async def recompute_user_karma(
    username: str,
    _admin: AdminUserDep,
    db: SessionDep,
) -> User:
    """Force a synchronous karma recompute for a user (admin only)."""
    user = _get_user_or_404(db, username)
    KarmaAggregator(db).recompute_karma(user.id)
    db.refresh(user)
    return user
