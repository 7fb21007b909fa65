"""Data access helpers for user records and karma."""
from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from threadvote.models import Comment, Post, User

__all__ = ["UserRepository"]


class UserRepository:
    """Thin wrapper around database access for users."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, user_id: int) -> User | None:
        """Return a user by identifier."""
        return self.session.get(User, user_id)

    def get_by_username(self, username: str) -> User | None:
        """Return a user by handle."""
        return self.session.execute(
            select(User).where(User.username == username)
        ).scalars().first()

    def authored_score_totals(self, user_id: int) -> tuple[int, int]:
        """Return the summed cached scores of the user's live posts and live comments."""
        post_total = self.session.execute(
            select(func.coalesce(func.sum(Post.score), 0)).where(
                Post.author_id == user_id,
                Post.deleted.is_(False),
            )
        ).scalar_one()
        comment_total = self.session.execute(
            select(func.coalesce(func.sum(Comment.score), 0)).where(
                Comment.author_id == user_id,
                Comment.deleted.is_(False),
            )
        ).scalar_one()
        return int(post_total), int(comment_total)

    def store_karma(self, user_id: int, karma: int) -> None:
        """Overwrite the user's karma value."""
        self.session.execute(
            update(User).where(User.id == user_id).values(karma=karma)
        )
        self.session.flush()
