# src/threadvote/models/post.py
"""SQLAlchemy model for top-level posts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, get_args

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from threadvote.db.session import Base
from threadvote.db.time import utcnow
from threadvote.models.user import User

PostKind = Literal["text", "link", "image"]
POST_KINDS: tuple[str, ...] = get_args(PostKind)
# Kinds that carry their content behind a url.
URL_POST_KINDS = ("link", "image")


class Post(Base):
    """Votable top-level content submitted to a community.

    `score` is a cache of the sum of `post_vote.value` rows and is only
    written together with the vote set. `version` guards that unit against
    concurrent writers.
    """

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_community_created", "community", "created_at"),
        Index("ix_post_author_id", "author_id"),
        CheckConstraint(
            "kind IN (" + ", ".join(f"'{kind}'" for kind in POST_KINDS) + ")",
            name="ck_post_kind",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("app_user.id"),
        nullable=False,
    )
    # Lower-cased community name; communities themselves live elsewhere.
    community: Mapped[str] = mapped_column(String(21), nullable=False)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    kind: Mapped[str] = mapped_column(String(8), nullable=False, default="text")
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    url: Mapped[str | None] = mapped_column(Text, nullable=True)

    score: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    author: Mapped[User] = relationship("User")

    __mapper_args__ = {"version_id_col": version}
