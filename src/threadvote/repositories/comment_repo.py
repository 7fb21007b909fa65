"""Data access helpers for working with comments."""
from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from threadvote.models import Comment

__all__ = ["CommentRepository"]


class CommentRepository:
    """Thin wrapper around database access for comment entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, comment_id: int, *, include_deleted: bool = False) -> Comment | None:
        """Return a comment by identifier."""
        stmt = select(Comment).where(Comment.id == comment_id)
        if not include_deleted:
            stmt = stmt.where(Comment.deleted.is_(False))
        return self.session.execute(stmt).scalars().first()

    def list_for_post(self, post_id: int) -> list[Comment]:
        """Return every comment of a post in one query, soft-deleted ones included."""
        stmt = (
            select(Comment)
            .where(Comment.post_id == post_id)
            .options(selectinload(Comment.author))
            .order_by(Comment.id)
        )
        return list(self.session.execute(stmt).scalars())

    def list_by_author(self, author_id: int) -> list[Comment]:
        """Return an author's live comments, newest first."""
        stmt = (
            select(Comment)
            .where(Comment.author_id == author_id, Comment.deleted.is_(False))
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        return list(self.session.execute(stmt).scalars())

    def create(
        self,
        *,
        post_id: int,
        author_id: int,
        body: str,
        parent_id: int | None,
    ) -> Comment:
        """Insert a new comment and return the persisted ORM instance."""
        comment = Comment(
            post_id=post_id,
            author_id=author_id,
            body=body,
            parent_id=parent_id,
        )
        self.session.add(comment)
        self.session.flush()
        return comment
