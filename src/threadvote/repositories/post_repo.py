"""Data access helpers for working with posts."""
from __future__ import annotations

from collections.abc import Sequence

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.orm import Session, selectinload

from threadvote.models import Post

__all__ = ["PostRepository"]


class PostRepository:
    """Thin wrapper around database access for post entities."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get_by_id(self, post_id: int, *, include_deleted: bool = False) -> Post | None:
        """Return a post by identifier."""
        stmt = select(Post).where(Post.id == post_id).options(selectinload(Post.author))
        if not include_deleted:
            stmt = stmt.where(Post.deleted.is_(False))
        return self.session.execute(stmt).scalars().first()

    def _visible(self, community: str | None):
        stmt = select(Post).where(Post.deleted.is_(False))
        if community is not None:
            stmt = stmt.where(Post.community == community.lower())
        return stmt

    def count_visible(self, community: str | None = None) -> int:
        """Return the number of live posts, optionally within one community."""
        stmt = select(func.count()).select_from(Post).where(Post.deleted.is_(False))
        if community is not None:
            stmt = stmt.where(Post.community == community.lower())
        return int(self.session.execute(stmt).scalar_one())

    def list_ordered(
        self,
        order_by: Sequence[ColumnElement],
        *,
        offset: int,
        limit: int,
        community: str | None = None,
    ) -> list[Post]:
        """Return one page of live posts in the given SQL order."""
        stmt = (
            self._visible(community)
            .options(selectinload(Post.author))
            .order_by(*order_by)
            .offset(offset)
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def list_recent(self, limit: int, community: str | None = None) -> list[Post]:
        """Return the newest live posts, used as the candidate window for decayed ranking."""
        stmt = (
            self._visible(community)
            .options(selectinload(Post.author))
            .order_by(Post.created_at.desc(), Post.id.desc())
            .limit(limit)
        )
        return list(self.session.execute(stmt).scalars())

    def list_by_author(self, author_id: int) -> list[Post]:
        """Return an author's live posts, newest first."""
        stmt = (
            select(Post)
            .where(Post.author_id == author_id, Post.deleted.is_(False))
            .options(selectinload(Post.author))
            .order_by(Post.created_at.desc(), Post.id.desc())
        )
        return list(self.session.execute(stmt).scalars())

    def create(
        self,
        *,
        author_id: int,
        community: str,
        title: str,
        kind: str,
        body: str | None,
        url: str | None,
    ) -> Post:
        """Insert a new post and return the persisted ORM instance."""
        post = Post(
            author_id=author_id,
            community=community.lower(),
            title=title,
            kind=kind,
            body=body,
            url=url,
        )
        self.session.add(post)
        self.session.flush()
        return post
